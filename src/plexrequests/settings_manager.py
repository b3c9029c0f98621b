#!/usr/bin/env python3
"""
Settings manager for PlexRequests
Handles loading, saving, and providing settings from SQLite database
Environment variables (and a .env file) override stored Plex connection settings
"""

import os
import logging
import time
from typing import Dict, Any, Optional

from dotenv import load_dotenv, find_dotenv

from src.plexrequests.utils.database import get_database
from src.plexrequests.default_settings import get_default_config

settings_logger = logging.getLogger("settings_manager")

# Known app types
KNOWN_APP_TYPES = ["general", "plex"]

# Environment variable -> plex setting key
PLEX_ENV_OVERRIDES = {
    "PLEX_URL": "server_url",
    "PLEX_TOKEN": "server_token",
    "PLEX_CLIENT_IDENTIFIER": "client_identifier",
    "PLEX_ALLOW_INVALID_CERTS": "allow_invalid_certs",
}

# Add a settings cache with timestamps to avoid excessive database reads
settings_cache = {}  # Format: {app_name: {'timestamp': timestamp, 'data': settings_dict}}
CACHE_TTL = 5  # Cache time-to-live in seconds


def load_environment(dotenv_path: Optional[str] = None) -> bool:
    """Load a .env file into os.environ (existing variables win). Returns True if a file was found."""
    path = dotenv_path or find_dotenv(usecwd=True)
    if not path:
        return False
    loaded = load_dotenv(path, override=False)
    if loaded:
        settings_logger.info(f"Loaded environment from {path}")
    clear_cache()
    return loaded


def clear_cache(app_name=None):
    """Clear the settings cache for a specific app or all apps."""
    global settings_cache
    if app_name:
        settings_cache.pop(app_name, None)
    else:
        settings_cache = {}


def _parse_bool(value: str) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(app_type: str, settings: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay PLEX_* environment variables onto plex settings"""
    if app_type != "plex":
        return settings
    for env_name, key in PLEX_ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is None or value == "":
            continue
        settings[key] = _parse_bool(value) if key == "allow_invalid_certs" else value.strip()
    return settings


def load_settings(app_type, use_cache=True):
    """
    Load settings for a specific app type from database

    Args:
        app_type: The app type to load settings for
        use_cache: Whether to use the cached settings if available and recent

    Returns:
        Dict containing the app settings (defaults filled in, env overrides applied)
    """
    if app_type not in KNOWN_APP_TYPES:
        settings_logger.warning(f"load_settings called with unexpected app_type: {app_type}")

    if use_cache and app_type in settings_cache:
        cache_entry = settings_cache[app_type]
        if time.time() - cache_entry.get('timestamp', 0) < CACHE_TTL:
            return dict(cache_entry['data'])

    try:
        stored = get_database().get_app_config(app_type)
    except Exception as e:
        settings_logger.error(f"Database error loading {app_type}: {e}")
        raise

    current_settings = get_default_config(app_type)
    if stored is None:
        # Config doesn't exist in database yet, store the defaults
        if current_settings:
            get_database().save_app_config(app_type, current_settings)
            settings_logger.info(f"Created default settings in database for {app_type}")
    else:
        # Add missing keys from defaults without overwriting existing values
        current_settings.update(stored)

    current_settings = _apply_env_overrides(app_type, current_settings)
    settings_cache[app_type] = {'timestamp': time.time(), 'data': current_settings}
    return dict(current_settings)


def save_settings(app_type: str, settings_data: Dict[str, Any]) -> bool:
    """
    Save settings for an app type. Unknown keys are dropped.

    Returns:
        bool: True if saved successfully
    """
    defaults = get_default_config(app_type)
    try:
        stored = get_database().get_app_config(app_type) or {}
        merged = dict(defaults)
        merged.update(stored)
        merged.update({k: v for k, v in settings_data.items() if k in defaults})
        get_database().save_app_config(app_type, merged)
        clear_cache(app_type)
        settings_logger.info(f"Saved {app_type} settings")
        return True
    except Exception as e:
        settings_logger.error(f"Error saving {app_type} settings: {e}")
        return False


def get_plex_settings(use_cache: bool = True) -> Dict[str, Any]:
    """Convenience accessor for the Plex connection/index settings"""
    return load_settings("plex", use_cache=use_cache)
