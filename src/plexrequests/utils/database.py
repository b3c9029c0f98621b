"""
SQLite storage for PlexRequests
Holds the settings blobs (app_configs) and the Plex external-id → ratingKey trail (plex_mappings).
"""

import logging
import sqlite3
import time
from pathlib import Path
from typing import List, Optional, Union

from src.plexrequests.utils.config_paths import CONFIG_DIR
from src.plexrequests.utils.db_mixins import ConfigMixin, PlexMappingsMixin

logger = logging.getLogger(__name__)

DATABASE_FILENAME = "plexrequests.db"

# Applied to every new connection; WAL falls back to DELETE where the filesystem refuses it
CONNECTION_PRAGMAS = (
    'PRAGMA synchronous = NORMAL',
    'PRAGMA temp_store = MEMORY',
    'PRAGMA busy_timeout = 30000',
)

SCHEMA = (
    '''
    CREATE TABLE IF NOT EXISTS app_configs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        app_type TEXT NOT NULL UNIQUE,
        config_data TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    ''',
    # One row per external id ever seen on the Plex server; rows are overwritten, never pruned
    '''
    CREATE TABLE IF NOT EXISTS plex_mappings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        external_key TEXT NOT NULL UNIQUE,
        rating_key TEXT NOT NULL,
        media_type TEXT,
        title TEXT,
        year INTEGER,
        last_seen_at TIMESTAMP NOT NULL
    )
    ''',
    'CREATE INDEX IF NOT EXISTS idx_plex_mappings_rating_key ON plex_mappings(rating_key)',
)

CORRUPTION_MARKERS = ("file is not a database", "database disk image is malformed")


class PlexRequestsDatabase(ConfigMixin, PlexMappingsMixin):
    """sqlite3 database composed from the db_mixins method groups"""

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        self.db_path = Path(db_path) if db_path else CONFIG_DIR / DATABASE_FILENAME
        self.ensure_database_exists()

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute('PRAGMA journal_mode = WAL')
        except sqlite3.DatabaseError as e:
            logger.warning(f"WAL journal unavailable, using DELETE: {e}")
            conn.execute('PRAGMA journal_mode = DELETE')
        for pragma in CONNECTION_PRAGMAS:
            conn.execute(pragma)
        return conn

    def get_connection(self) -> sqlite3.Connection:
        """Open a configured connection, recovering once from a corrupted file."""
        try:
            conn = self._open()
            conn.execute("SELECT 1 FROM sqlite_master LIMIT 1").fetchone()
            return conn
        except sqlite3.DatabaseError as e:
            if not self._is_corruption_error(e):
                raise
            logger.error(f"Corrupted database on connect: {e}")
            self._handle_database_corruption()
            return self._open()

    def execute_query(self, query: str, params: tuple = ()) -> List[tuple]:
        """Run one statement and return all rows"""
        with self.get_connection() as conn:
            return conn.execute(query, params).fetchall()

    @staticmethod
    def _is_corruption_error(error: Exception) -> bool:
        return any(marker in str(error) for marker in CORRUPTION_MARKERS)

    def _check_and_recover_corruption(self, error: Exception) -> bool:
        """Recover from a corrupted database file. Returns True when a retry makes sense."""
        if not self._is_corruption_error(error):
            return False
        logger.error(f"Corrupted database during query: {error}")
        self._handle_database_corruption()
        self._create_all_tables()
        return True

    def _handle_database_corruption(self):
        """Move the damaged file aside so a fresh database is created in its place"""
        if not self.db_path.exists():
            return
        backup_path = self.db_path.with_name(f"plexrequests_corrupted_backup_{int(time.time())}.db")
        try:
            self.db_path.rename(backup_path)
            logger.warning(f"Corrupted database moved to {backup_path}")
        except OSError as e:
            logger.error(f"Could not back up corrupted database, deleting it: {e}")
            self.db_path.unlink()

    def ensure_database_exists(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._create_all_tables()
        except sqlite3.DatabaseError as e:
            if not self._is_corruption_error(e):
                raise
            logger.error(f"Corrupted database while creating tables: {e}")
            self._handle_database_corruption()
            self._create_all_tables()

    def _create_all_tables(self):
        with self.get_connection() as conn:
            for statement in SCHEMA:
                conn.execute(statement)
            conn.commit()


_database_instance: Optional[PlexRequestsDatabase] = None


def get_database() -> PlexRequestsDatabase:
    """Process-wide database in CONFIG_DIR"""
    global _database_instance
    if _database_instance is None:
        _database_instance = PlexRequestsDatabase()
    return _database_instance
