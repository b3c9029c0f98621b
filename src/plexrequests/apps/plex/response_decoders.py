"""
Decoders for Plex Media Server responses.

The same endpoint answers with JSON (Accept: application/json) or XML depending on
server version and endpoint. Each decoder is a plain function returning the same
record shape, or None when the body is not in its encoding. decoders_for() picks the
order to try them in from the response content-type.
"""

import json
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from src.plexrequests.apps.plex.identifiers import parse_year

# Plex section "type" -> media kind used by the index
PLEX_SECTION_KINDS = {
    "movie": "movie",
    "show": "tv",
    "artist": "music",
    "photo": "photo",
}


@dataclass(frozen=True)
class LibraryItemRecord:
    """One item from a library listing. Lives only for the duration of an index build."""
    library_key: str                  # Plex ratingKey
    title: Optional[str] = None
    year: Optional[int] = None
    external_ids: Tuple[str, ...] = ()  # Raw GUIDs, e.g. "tmdb://27205"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'library_key': self.library_key,
            'title': self.title,
            'year': self.year,
            'external_ids': list(self.external_ids),
        }


@dataclass(frozen=True)
class LibrarySection:
    """A Plex library section ("Movies", "TV Shows")."""
    key: str
    kind: str     # movie / tv / music / photo / other
    title: str

    def to_dict(self) -> Dict[str, Any]:
        return {'key': self.key, 'kind': self.kind, 'title': self.title}


@dataclass(frozen=True)
class RawPage:
    """Undecoded HTTP response body from the Plex server."""
    status_code: int
    content: bytes
    content_type: str = ''

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


# ── Shared field helpers ─────────────────────────────────────────

def _as_key(value: Any) -> Optional[str]:
    """ratingKey arrives as int or str in JSON, always str in XML."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, str)):
        key = str(value).strip()
        return key or None
    return None


def _as_title(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value.strip() else None


def _section_kind(plex_type: Any) -> str:
    return PLEX_SECTION_KINDS.get(str(plex_type or '').lower(), 'other')


def _load_json_container(content: bytes) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(content)
    except (ValueError, TypeError):
        return None
    if not isinstance(data, dict):
        return None
    container = data.get('MediaContainer')
    return container if isinstance(container, dict) else None


def _load_xml_root(content: bytes) -> Optional[ET.Element]:
    try:
        return ET.fromstring(content)
    except (ET.ParseError, TypeError, ValueError):
        return None


# ── Library items ────────────────────────────────────────────────

def decode_items_json(content: bytes) -> Optional[List[LibraryItemRecord]]:
    """MediaContainer.Metadata[] with ratingKey/title/year and Guid[].id"""
    container = _load_json_container(content)
    if container is None:
        return None
    entries = container.get('Metadata') or []
    if not isinstance(entries, list):
        return None

    records = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        key = _as_key(entry.get('ratingKey'))
        if not key:
            continue
        guids = entry.get('Guid') or []
        external_ids = tuple(
            g['id'] for g in guids
            if isinstance(g, dict) and isinstance(g.get('id'), str) and g['id']
        ) if isinstance(guids, list) else ()
        records.append(LibraryItemRecord(
            library_key=key,
            title=_as_title(entry.get('title')),
            year=parse_year(entry.get('year')),
            external_ids=external_ids,
        ))
    return records


def decode_items_xml(content: bytes) -> Optional[List[LibraryItemRecord]]:
    """<MediaContainer> children with ratingKey attributes and <Guid id=.../> children"""
    root = _load_xml_root(content)
    if root is None:
        return None

    records = []
    for element in root:
        key = _as_key(element.get('ratingKey'))
        if not key:
            continue
        external_ids = tuple(g.get('id') for g in element.findall('Guid') if g.get('id'))
        if not external_ids and element.get('guid'):
            # Older servers only expose the primary agent GUID inline
            external_ids = (element.get('guid'),)
        records.append(LibraryItemRecord(
            library_key=key,
            title=_as_title(element.get('title')),
            year=parse_year(element.get('year')),
            external_ids=external_ids,
        ))
    return records


# ── Library sections ─────────────────────────────────────────────

def decode_sections_json(content: bytes) -> Optional[List[LibrarySection]]:
    container = _load_json_container(content)
    if container is None:
        return None
    directories = container.get('Directory') or []
    if not isinstance(directories, list):
        return None
    sections = []
    for directory in directories:
        if not isinstance(directory, dict):
            continue
        key = _as_key(directory.get('key'))
        if key:
            sections.append(LibrarySection(key, _section_kind(directory.get('type')), directory.get('title') or ''))
    return sections


def decode_sections_xml(content: bytes) -> Optional[List[LibrarySection]]:
    root = _load_xml_root(content)
    if root is None:
        return None
    sections = []
    for directory in root.findall('Directory'):
        key = _as_key(directory.get('key'))
        if key:
            sections.append(LibrarySection(key, _section_kind(directory.get('type')), directory.get('title') or ''))
    return sections


# ── Container attributes (/identity, server root) ────────────────

def decode_container_json(content: bytes) -> Optional[Dict[str, Any]]:
    container = _load_json_container(content)
    if container is None:
        return None
    return {k: v for k, v in container.items() if not isinstance(v, (list, dict))}


def decode_container_xml(content: bytes) -> Optional[Dict[str, Any]]:
    root = _load_xml_root(content)
    if root is None:
        return None
    return dict(root.attrib)


ITEM_DECODERS = {'json': decode_items_json, 'xml': decode_items_xml}
SECTION_DECODERS = {'json': decode_sections_json, 'xml': decode_sections_xml}
CONTAINER_DECODERS = {'json': decode_container_json, 'xml': decode_container_xml}


def decoders_for(content_type: Optional[str], table: Dict[str, Callable]) -> List[Callable]:
    """Order decoders by content-type: declared encoding first, the other as fallback."""
    ct = (content_type or '').lower()
    if 'xml' in ct:
        return [table['xml'], table['json']]
    return [table['json'], table['xml']]


def decode_page(page: RawPage, table: Dict[str, Callable]):
    """Run decoders in content-type order; None if no decoder understood the body."""
    for decoder in decoders_for(page.content_type, table):
        result = decoder(page.content)
        if result is not None:
            return result
    return None
