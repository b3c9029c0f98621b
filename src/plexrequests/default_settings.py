"""
Default configuration settings for PlexRequests.

These defaults are used when initializing a fresh database and to fill in
keys missing from stored configurations.
"""

import copy
from typing import Dict, Any


DEFAULT_CONFIGS: Dict[str, Dict[str, Any]] = {
    "general": {
        "timezone": "UTC",
        "enable_debug_logs": False,
        "log_rotation_enabled": True,
        "log_max_size_mb": 50,
        "log_backup_count": 5,
        "log_retention_days": 30,
        "log_auto_cleanup": True,
    },
    "plex": {
        "server_url": "",
        "server_token": "",
        "client_identifier": "",
        "allow_invalid_certs": False,  # Self-signed / IP-based TLS on the Plex server
        "api_timeout": 30,
        "api_retries": 1,  # Extra attempts on timeout/connection errors only
        "page_size": 200,
        "index_ttl_seconds": 600,
        "background_refresh_minutes": 0,  # 0 = only rebuild on demand when the TTL expires
        "web_app_url": "https://app.plex.tv/desktop",
    },
}


def get_default_config(app_type: str) -> Dict[str, Any]:
    """
    Get a fresh copy of the default configuration for an app type.

    Args:
        app_type: 'general' or 'plex'

    Returns:
        Dictionary containing default settings (empty for unknown app types)
    """
    return copy.deepcopy(DEFAULT_CONFIGS.get(app_type, {}))
