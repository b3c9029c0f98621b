"""Plex external-id -> ratingKey mapping trail, see db_mixins/__init__.py"""
import sqlite3
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Any, Optional, Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MappingWriteResult:
    """Outcome of a mapping upsert batch. Failures are values, not exceptions."""
    ok: bool
    written: int = 0
    error: Optional[str] = None


class PlexMappingsMixin:
    """Upsert and lookup of persisted Plex mappings (rows are overwritten, never deleted)."""

    def upsert_plex_mappings(self, rows: Iterable[Dict[str, Any]]) -> MappingWriteResult:
        """Upsert a batch of mappings in one transaction.

        Each row carries external_key, rating_key and optional media_type, title, year.
        A later row for the same external_key overwrites an earlier one (last writer wins).
        """
        rows = list(rows)
        if not rows:
            return MappingWriteResult(ok=True)

        now = datetime.now(timezone.utc).isoformat()
        try:
            params = [
                (row['external_key'], str(row['rating_key']), row.get('media_type'),
                 row.get('title'), row.get('year'), now)
                for row in rows
            ]
            with self.get_connection() as conn:
                conn.executemany('''
                    INSERT INTO plex_mappings (external_key, rating_key, media_type, title, year, last_seen_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(external_key) DO UPDATE SET
                        rating_key = excluded.rating_key,
                        media_type = excluded.media_type,
                        title = excluded.title,
                        year = excluded.year,
                        last_seen_at = excluded.last_seen_at
                ''', params)
                conn.commit()
            return MappingWriteResult(ok=True, written=len(params))
        except (sqlite3.Error, KeyError) as e:
            return MappingWriteResult(ok=False, error=f"{type(e).__name__}: {e}")

    def upsert_plex_mapping(self, external_key: str, rating_key: str, media_type: str = None,
                            title: str = None, year: int = None) -> MappingWriteResult:
        """Upsert a single mapping."""
        return self.upsert_plex_mappings([{
            'external_key': external_key,
            'rating_key': rating_key,
            'media_type': media_type,
            'title': title,
            'year': year,
        }])

    def get_plex_mapping(self, external_key: str) -> Optional[Dict[str, Any]]:
        """Get the persisted mapping for one external key ("tmdb:27205")."""
        try:
            with self.get_connection() as conn:
                conn.row_factory = sqlite3.Row
                row = conn.execute(
                    'SELECT * FROM plex_mappings WHERE external_key = ?', (external_key,)
                ).fetchone()
                return dict(row) if row else None
        except sqlite3.Error as e:
            logger.error(f"Error getting plex mapping {external_key}: {e}")
            return None

    def get_plex_mappings_for_rating_key(self, rating_key: str) -> List[Dict[str, Any]]:
        """All external keys last seen on a given Plex ratingKey."""
        try:
            with self.get_connection() as conn:
                conn.row_factory = sqlite3.Row
                rows = conn.execute(
                    'SELECT * FROM plex_mappings WHERE rating_key = ? ORDER BY external_key',
                    (str(rating_key),)
                ).fetchall()
                return [dict(r) for r in rows]
        except sqlite3.Error as e:
            logger.error(f"Error getting plex mappings for ratingKey {rating_key}: {e}")
            return []

    def count_plex_mappings(self) -> int:
        """Number of persisted mappings (diagnostics)."""
        try:
            with self.get_connection() as conn:
                return conn.execute('SELECT COUNT(*) FROM plex_mappings').fetchone()[0]
        except sqlite3.Error as e:
            logger.error(f"Error counting plex mappings: {e}")
            return 0
