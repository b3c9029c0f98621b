"""
Plex availability index.

Crawls every movie/TV section of the Plex server and builds two lookups:
external id ("tmdb:27205") -> ratingKey, and normalized "title|year" -> ratingKey.
Every external id seen is also upserted into the plex_mappings table as a trail.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Tuple

from src.plexrequests.apps.plex.identifiers import external_key, normalize_title_year, parse_external_id
from src.plexrequests.apps.plex.library_enumerator import PAGE_SIZE, enumerate_section
from src.plexrequests.utils.db_mixins import MappingWriteResult
from src.plexrequests.utils.logger import get_logger

logger = get_logger("plex_index")

# Section kinds that are indexed; music/photo/other sections never are
INDEXED_KINDS = ("movie", "tv")


@dataclass(frozen=True)
class AvailabilityIndex:
    """A finished, read-only index. Rebuilding always produces a new instance."""
    by_external_id: Mapping[str, str]
    by_title_year: FrozenSet[str]
    by_title_year_key: Mapping[str, str]
    built_at: float
    sections_scanned: int = 0
    items_scanned: int = 0
    errors: Tuple[str, ...] = ()

    @classmethod
    def empty(cls, built_at: float) -> 'AvailabilityIndex':
        return cls(MappingProxyType({}), frozenset(), MappingProxyType({}), built_at)

    @property
    def is_partial(self) -> bool:
        return bool(self.errors)

    def stats(self) -> Dict[str, Any]:
        return {
            'external_ids': len(self.by_external_id),
            'title_years': len(self.by_title_year),
            'title_year_keys': len(self.by_title_year_key),
            'sections_scanned': self.sections_scanned,
            'items_scanned': self.items_scanned,
            'built_at': datetime.fromtimestamp(self.built_at, tz=timezone.utc).isoformat(),
            'partial': self.is_partial,
            'errors': list(self.errors),
        }


@dataclass
class _IndexDraft:
    """Mutable working copy; only ever visible to the builder."""
    by_external_id: Dict[str, str] = field(default_factory=dict)
    by_title_year: set = field(default_factory=set)
    by_title_year_key: Dict[str, str] = field(default_factory=dict)
    sections_scanned: int = 0
    items_scanned: int = 0
    errors: List[str] = field(default_factory=list)

    def freeze(self, built_at: float) -> AvailabilityIndex:
        return AvailabilityIndex(
            by_external_id=MappingProxyType(dict(self.by_external_id)),
            by_title_year=frozenset(self.by_title_year),
            by_title_year_key=MappingProxyType(dict(self.by_title_year_key)),
            built_at=built_at,
            sections_scanned=self.sections_scanned,
            items_scanned=self.items_scanned,
            errors=tuple(self.errors),
        )


class AvailabilityIndexBuilder:
    """Builds AvailabilityIndex instances from a Plex client and persists mappings to the database."""

    def __init__(self, client, db, page_size: int = PAGE_SIZE, clock: Callable[[], float] = time.time):
        self.client = client
        self.db = db
        self.page_size = page_size
        self.clock = clock

    def build(self) -> AvailabilityIndex:
        """Crawl the server and return a new index. Never raises; failures leave a partial index."""
        if not self.client.is_configured:
            logger.debug("Plex not configured, returning empty availability index")
            return AvailabilityIndex.empty(self.clock())

        started = time.monotonic()
        draft = _IndexDraft()
        try:
            sections = self.client.list_library_sections()
        except Exception as e:
            logger.error(f"Error listing Plex library sections: {e}")
            draft.errors.append(f"sections: {e}")
            sections = []

        for section in sections:
            if section.kind not in INDEXED_KINDS:
                logger.debug(f"Skipping Plex section '{section.title}' ({section.kind})")
                continue
            self._index_section(section, draft)

        index = draft.freeze(self.clock())
        logger.info(
            f"Built Plex availability index: {len(index.by_external_id)} external ids, "
            f"{len(index.by_title_year)} title/year keys from {index.items_scanned} items "
            f"in {index.sections_scanned} sections ({time.monotonic() - started:.1f}s)"
        )
        return index

    def _index_section(self, section, draft: _IndexDraft):
        pending: List[Dict[str, Any]] = []
        try:
            for item in enumerate_section(self.client, section.key, self.page_size):
                draft.items_scanned += 1
                self._index_item(item, section.kind, draft, pending)
        except Exception as e:
            # Keep everything indexed so far; the section is simply incomplete
            logger.error(f"Error indexing Plex section '{section.title}' ({section.key}): {e}")
            draft.errors.append(f"section {section.key}: {e}")
        finally:
            draft.sections_scanned += 1
            self._flush_mappings(section, pending)

    @staticmethod
    def _index_item(item, media_kind: str, draft: _IndexDraft, pending: List[Dict[str, Any]]):
        if item.title and item.year is not None:
            title_year = normalize_title_year(item.title, item.year)
            draft.by_title_year.add(title_year)
            # In memory: first writer wins (first section in server order)
            draft.by_title_year_key.setdefault(title_year, item.library_key)

        for raw_id in item.external_ids:
            parsed = parse_external_id(raw_id)
            if parsed is None:
                continue
            key = external_key(*parsed)
            # In memory: first writer wins, the answer stays stable for the life of this index
            draft.by_external_id.setdefault(key, item.library_key)
            # Durable trail: always written, so storage holds the most recently seen ratingKey
            pending.append({
                'external_key': key,
                'rating_key': item.library_key,
                'media_type': media_kind,
                'title': item.title,
                'year': item.year,
            })

    def _flush_mappings(self, section, pending: List[Dict[str, Any]]):
        if not pending:
            return
        try:
            result = self.db.upsert_plex_mappings(pending)
        except Exception as e:
            result = MappingWriteResult(ok=False, error=f"{type(e).__name__}: {e}")
        if not result.ok:
            # Best effort: the in-memory index is unaffected
            logger.warning(f"Could not persist {len(pending)} Plex mappings for section '{section.title}': {result.error}")
        else:
            logger.debug(f"Persisted {result.written} Plex mappings for section '{section.title}'")
