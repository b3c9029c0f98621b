"""
Plex Media Server HTTP client.

Thin wrapper over a requests.Session carrying the X-Plex-Token header. Methods never
raise for transport problems: they log and return None / empty results so the index
builder can treat a failing server as an empty or truncated library.
"""

import time
import uuid
from typing import Any, Dict, List, Optional

import requests

from src.plexrequests.apps.plex.response_decoders import (
    CONTAINER_DECODERS,
    ITEM_DECODERS,
    SECTION_DECODERS,
    LibraryItemRecord,
    LibrarySection,
    RawPage,
    decode_page,
)
from src.plexrequests.utils.logger import get_logger

logger = get_logger("plex_index")

PLEX_PRODUCT_NAME = "PlexRequests"

# Plex search "type" filter values
PLEX_SEARCH_TYPES = {"movie": 1, "tv": 2}


class PlexServerClient:
    """Client for one Plex Media Server."""

    def __init__(self, server_url: str = '', token: str = '', client_identifier: str = '',
                 timeout: int = 30, retries: int = 1, verify_ssl: bool = True):
        self._base_url = (server_url or '').strip().rstrip('/')
        self._token = (token or '').strip()
        self._timeout = timeout
        self._retries = max(0, int(retries))
        self._session = requests.Session()
        self._session.verify = verify_ssl
        self._session.headers.update({
            'Accept': 'application/json',
            'X-Plex-Product': PLEX_PRODUCT_NAME,
            'X-Plex-Client-Identifier': client_identifier or str(uuid.uuid4()),
        })
        if self._token:
            self._session.headers['X-Plex-Token'] = self._token

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> 'PlexServerClient':
        return cls(
            server_url=settings.get('server_url', ''),
            token=settings.get('server_token', ''),
            client_identifier=settings.get('client_identifier', ''),
            timeout=int(settings.get('api_timeout', 30)),
            retries=int(settings.get('api_retries', 1)),
            verify_ssl=not settings.get('allow_invalid_certs', False),
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url and self._token)

    def close(self):
        self._session.close()

    # ── Transport ──

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[RawPage]:
        """GET a server path. Retries timeouts/connection errors with backoff; None when it gives up."""
        if not self.is_configured:
            return None
        url = f"{self._base_url}{path}"
        attempts = self._retries + 1
        for attempt in range(attempts):
            try:
                r = self._session.get(url, params=params, timeout=self._timeout)
                return RawPage(
                    status_code=r.status_code,
                    content=r.content,
                    content_type=r.headers.get('Content-Type', ''),
                )
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                if attempt < attempts - 1:
                    wait_time = 2 ** attempt
                    logger.warning(f"Plex request {path} failed (attempt {attempt + 1}/{attempts}): {e}. Retrying in {wait_time}s...")
                    time.sleep(wait_time)
                    continue
                logger.error(f"Plex request {path} failed after {attempts} attempts: {e}")
                return None
            except requests.exceptions.RequestException as e:
                logger.error(f"Plex request {path} failed: {e}")
                return None
        return None

    def _get_decoded(self, path: str, table, params: Optional[Dict[str, Any]] = None):
        page = self._get(path, params)
        if page is None:
            return None
        if not page.ok:
            logger.warning(f"Plex {path} returned HTTP {page.status_code}")
            return None
        decoded = decode_page(page, table)
        if decoded is None:
            logger.warning(f"Plex {path} returned an unreadable body ({page.content_type or 'no content-type'})")
        return decoded

    # ── Library ──

    def list_library_sections(self) -> List[LibrarySection]:
        """All library sections on the server, in server order."""
        return self._get_decoded('/library/sections', SECTION_DECODERS) or []

    def get_items_page(self, section_key: str, offset: int, page_size: int) -> Optional[RawPage]:
        """One undecoded page of a section listing, with external GUIDs included."""
        return self._get(
            f"/library/sections/{section_key}/all",
            params={
                'X-Plex-Container-Start': offset,
                'X-Plex-Container-Size': page_size,
                'includeGuids': 1,
            },
        )

    def get_metadata(self, rating_key: str) -> Optional[LibraryItemRecord]:
        """Metadata for one ratingKey."""
        items = self._get_decoded(f"/library/metadata/{rating_key}", ITEM_DECODERS, params={'includeGuids': 1})
        return items[0] if items else None

    def search(self, query: str, media_kind: Optional[str] = None, limit: int = 20) -> List[LibraryItemRecord]:
        """Title search across the server's libraries."""
        params = {'query': query, 'limit': limit, 'includeGuids': 1}
        if media_kind in PLEX_SEARCH_TYPES:
            params['type'] = PLEX_SEARCH_TYPES[media_kind]
        return self._get_decoded('/search', ITEM_DECODERS, params=params) or []

    # ── Server ──

    def get_machine_identifier(self) -> Optional[str]:
        """The server's machineIdentifier, used for app.plex.tv deep links."""
        attrs = self._get_decoded('/identity', CONTAINER_DECODERS)
        if not attrs:
            return None
        machine_id = attrs.get('machineIdentifier')
        return str(machine_id) if machine_id else None

    def get_server_info(self) -> Optional[Dict[str, Any]]:
        """Name/version of the server, None when it can't be reached."""
        attrs = self._get_decoded('/', CONTAINER_DECODERS)
        if attrs is None:
            return None
        return {
            'name': attrs.get('friendlyName', ''),
            'version': attrs.get('version', ''),
            'machine_identifier': attrs.get('machineIdentifier'),
            'online': True,
        }

    def get_sections_raw(self) -> str:
        """Raw /library/sections body, for first-connection troubleshooting."""
        page = self._get('/library/sections')
        if page is None:
            return ''
        return page.content.decode('utf-8', errors='replace')
