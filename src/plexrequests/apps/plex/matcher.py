"""
Tiered matching of a catalog item against the availability index.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from src.plexrequests.apps.plex.availability_index import AvailabilityIndex
from src.plexrequests.apps.plex.identifiers import external_key, normalize_title_year, parse_year

REASON_TITLE_YEAR_MISS = "title-year miss"
REASON_MISSING_TITLE_YEAR = "missing title/year"

# Checked in this order; the first hit wins
EXTERNAL_ID_NAMESPACES = ("tmdb", "imdb", "tvdb")
YEAR_OFFSETS = ((0, "title-year"), (-1, "title-year-1"), (1, "title-year+1"))


@dataclass(frozen=True)
class MatchResult:
    matched: bool
    strategy: Optional[str] = None
    library_key: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'matched': self.matched,
            'strategy': self.strategy,
            'library_key': self.library_key,
            'reason': self.reason,
        }


def _clean_id(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def resolve_match(index: AvailabilityIndex, tmdb_id: Any = None, imdb_id: Any = None, tvdb_id: Any = None,
                  title: Optional[str] = None, year: Any = None) -> MatchResult:
    """Resolve one item: tmdb, imdb, tvdb, then title+year at year, year-1, year+1.

    Identifier hits always outrank title/year hits. A title/year hit may come back
    without a library key; it still counts as a match.
    """
    ids = {'tmdb': tmdb_id, 'imdb': imdb_id, 'tvdb': tvdb_id}
    for namespace in EXTERNAL_ID_NAMESPACES:
        ident = _clean_id(ids[namespace])
        if ident is None:
            continue
        library_key = index.by_external_id.get(external_key(namespace, ident))
        if library_key is not None:
            return MatchResult(True, strategy=namespace, library_key=library_key)

    year = parse_year(year)
    if not title or not str(title).strip() or year is None:
        return MatchResult(False, reason=REASON_MISSING_TITLE_YEAR)

    for offset, strategy in YEAR_OFFSETS:
        key = normalize_title_year(title, year + offset)
        if key in index.by_title_year:
            return MatchResult(True, strategy=strategy, library_key=index.by_title_year_key.get(key))

    return MatchResult(False, reason=REASON_TITLE_YEAR_MISS)
