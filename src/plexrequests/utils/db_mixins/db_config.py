"""Settings blobs, one JSON document per app type, see db_mixins/__init__.py"""
import json
import logging
import sqlite3
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ConfigMixin:
    """app_configs access for the 'general' and 'plex' settings."""

    def _read_app_config(self, app_type: str) -> Optional[Dict[str, Any]]:
        with self.get_connection() as conn:
            row = conn.execute('SELECT config_data FROM app_configs WHERE app_type = ?', (app_type,)).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except ValueError as e:
            logger.error(f"Stored {app_type} settings are not valid JSON: {e}")
            return None

    def get_app_config(self, app_type: str) -> Optional[Dict[str, Any]]:
        """Stored settings for app_type, None if nothing was saved yet"""
        try:
            return self._read_app_config(app_type)
        except sqlite3.DatabaseError as e:
            if not self._check_and_recover_corruption(e):
                raise
        # Fresh database after recovery; one more attempt
        try:
            return self._read_app_config(app_type)
        except sqlite3.Error as e:
            logger.error(f"Reading {app_type} settings failed after recovery: {e}")
            return None

    def save_app_config(self, app_type: str, config_data: Dict[str, Any]):
        """Insert or replace the settings blob for app_type"""
        payload = json.dumps(config_data, indent=2)
        with self.get_connection() as conn:
            conn.execute('''
                INSERT INTO app_configs (app_type, config_data, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(app_type) DO UPDATE SET
                    config_data = excluded.config_data,
                    updated_at = CURRENT_TIMESTAMP
            ''', (app_type, payload))
            conn.commit()
