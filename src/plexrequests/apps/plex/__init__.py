"""
Plex availability module: library index, matching and catalog annotation.

PlexAvailabilityService is constructed once at startup (see web_server.create_app)
and owns the Plex client, the index cache and the annotator.
"""

import threading
from typing import Any, Dict, List, Optional

from src.plexrequests.apps.plex.annotator import AvailabilityAnnotator
from src.plexrequests.apps.plex.availability_index import AvailabilityIndexBuilder
from src.plexrequests.apps.plex.index_cache import AvailabilityIndexCache
from src.plexrequests.apps.plex.library_enumerator import PAGE_SIZE
from src.plexrequests.apps.plex.matcher import resolve_match
from src.plexrequests.apps.plex.plex_client import PlexServerClient
from src.plexrequests.utils.logger import get_logger

logger = get_logger("plex_index")

__all__ = ["PlexAvailabilityService"]


class PlexAvailabilityService:
    """Facade used by the routes and the background refresher.

    Index (enumerate sections, build, cache)  → AvailabilityIndexBuilder / AvailabilityIndexCache
    Matching and deep links                   → matcher.resolve_match / AvailabilityAnnotator
    Server diagnostics (health, raw, search)  → PlexServerClient
    """

    def __init__(self, settings: Dict[str, Any], db, client: Optional[PlexServerClient] = None):
        self.db = db
        self._lock = threading.Lock()
        self._configure(settings, client)

    def _configure(self, settings: Dict[str, Any], client: Optional[PlexServerClient] = None):
        self.settings = dict(settings)
        self.client = client or PlexServerClient.from_settings(self.settings)
        self.builder = AvailabilityIndexBuilder(
            self.client, self.db, page_size=int(self.settings.get('page_size', PAGE_SIZE))
        )
        self.cache = AvailabilityIndexCache(
            self.builder, ttl_seconds=int(self.settings.get('index_ttl_seconds', 600))
        )
        self.annotator = AvailabilityAnnotator(self.client, self.cache, self.settings.get('web_app_url'))

    def reload_settings(self, settings: Dict[str, Any]):
        """Swap in a new client/cache after the Plex settings changed."""
        with self._lock:
            old_client = self.client
            self._configure(settings)
        old_client.close()
        logger.info(f"Plex settings reloaded (configured: {self.client.is_configured})")

    @property
    def is_configured(self) -> bool:
        return self.client.is_configured

    # ── Annotation ──

    def annotate(self, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return self.annotator.annotate(items)

    # ── Index diagnostics ──

    def get_index_stats(self) -> Dict[str, Any]:
        """Counts and build time of the cached index; builds it if there is none yet."""
        stats = {'configured': self.is_configured}
        if self.is_configured:
            stats.update(self.cache.get_or_build().stats())
        stats['persisted_mappings'] = self.db.count_plex_mappings()
        return stats

    def rebuild_index(self) -> Dict[str, Any]:
        index = self.cache.force_rebuild()
        return index.stats()

    def test_match(self, tmdb_id=None, imdb_id=None, tvdb_id=None, title=None, year=None) -> Dict[str, Any]:
        index = self.cache.get_or_build()
        result = resolve_match(index, tmdb_id=tmdb_id, imdb_id=imdb_id, tvdb_id=tvdb_id, title=title, year=year)
        data = result.to_dict()
        if result.library_key:
            data['plex_url'] = self.annotator.build_plex_url(result.library_key)
        return data

    # ── Server diagnostics ──

    def health(self) -> Dict[str, Any]:
        if not self.is_configured:
            return {'configured': False, 'online': False}
        info = self.client.get_server_info()
        if info is None:
            return {'configured': True, 'online': False, 'server_url': self.client.base_url}
        info.update({'configured': True, 'server_url': self.client.base_url})
        return info

    def sections_raw(self) -> str:
        return self.client.get_sections_raw()

    def metadata(self, rating_key: str) -> Optional[Dict[str, Any]]:
        record = self.client.get_metadata(rating_key)
        if record is None:
            return None
        data = record.to_dict()
        data['persisted_mappings'] = self.db.get_plex_mappings_for_rating_key(rating_key)
        data['plex_url'] = self.annotator.build_plex_url(record.library_key)
        return data

    def search(self, query: str, media_kind: Optional[str] = None) -> List[Dict[str, Any]]:
        return [record.to_dict() for record in self.client.search(query, media_kind)]
