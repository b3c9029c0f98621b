"""
Marks catalog items that already exist on the Plex server.
"""

import threading
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from src.plexrequests.apps.plex.matcher import resolve_match
from src.plexrequests.utils.logger import get_logger

logger = get_logger("plex_index")

DEFAULT_WEB_APP_URL = "https://app.plex.tv/desktop"


class AvailabilityAnnotator:
    """Sets is_available / plex_url on catalog item dicts using the cached index."""

    def __init__(self, client, cache, web_app_url: str = DEFAULT_WEB_APP_URL):
        self.client = client
        self.cache = cache
        self.web_app_url = (web_app_url or DEFAULT_WEB_APP_URL).rstrip('/')
        self._machine_id: Optional[str] = None
        self._machine_id_lock = threading.Lock()

    def _get_machine_id(self) -> Optional[str]:
        """Fetched on first use; only a successful answer is remembered."""
        with self._machine_id_lock:
            if self._machine_id is None:
                self._machine_id = self.client.get_machine_identifier()
                if self._machine_id:
                    logger.debug(f"Plex machine identifier: {self._machine_id}")
            return self._machine_id

    def build_plex_url(self, library_key: str) -> str:
        return self.format_plex_url(library_key, self._get_machine_id())

    def format_plex_url(self, library_key: str, machine_id: Optional[str]) -> str:
        """App deep link when the machine id is known, the server's own web client otherwise."""
        key_param = quote(f"/library/metadata/{library_key}", safe='')
        if machine_id:
            return f"{self.web_app_url}#!/server/{machine_id}/details?key={key_param}"
        return f"{self.client.base_url}/web/index.html#!/details?key={key_param}"

    def annotate(self, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Annotate items in place (the same list is returned for convenience)."""
        if not items or not self.client.is_configured:
            return items

        index = self.cache.get_or_build()
        matched = 0
        machine_id: Optional[str] = None
        machine_id_resolved = False
        for item in items:
            if item.get('is_available'):
                continue
            result = resolve_match(
                index,
                tmdb_id=item.get('tmdb_id'),
                imdb_id=item.get('imdb_id'),
                tvdb_id=item.get('tvdb_id'),
                title=item.get('title'),
                year=item.get('year'),
            )
            if not result.matched:
                continue
            matched += 1
            item['is_available'] = True
            if result.library_key:
                # At most one identity request per batch, even while it keeps failing
                if not machine_id_resolved:
                    machine_id = self._get_machine_id()
                    machine_id_resolved = True
                item['plex_url'] = self.format_plex_url(result.library_key, machine_id)

        logger.debug(f"Annotated {len(items)} catalog items, {matched} available on Plex")
        return items
