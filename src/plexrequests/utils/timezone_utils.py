#!/usr/bin/env python3
"""
Timezone used for log timestamps: TZ env var, then the general "timezone" setting, then UTC
"""

import os
import time
from typing import Optional

import pytz

CACHE_TTL = 5  # seconds

_cached_tz: Optional[pytz.BaseTzInfo] = None
_cached_at = 0.0


def clear_timezone_cache():
    global _cached_tz, _cached_at
    _cached_tz = None
    _cached_at = 0.0


def safe_get_timezone(timezone_name: Optional[str]) -> Optional[pytz.BaseTzInfo]:
    """pytz timezone for a name, None for blank or unknown names."""
    if not timezone_name or not str(timezone_name).strip():
        return None
    try:
        return pytz.timezone(str(timezone_name).strip())
    except pytz.UnknownTimeZoneError:
        return None


def _settings_timezone() -> Optional[pytz.BaseTzInfo]:
    try:
        from src.plexrequests.settings_manager import load_settings
        return safe_get_timezone(load_settings("general").get("timezone"))
    except Exception:
        # Database not ready yet (early startup)
        return None


def get_user_timezone(use_cache: bool = True) -> pytz.BaseTzInfo:
    """Effective timezone. Never raises; unknown names fall through to the next source."""
    global _cached_tz, _cached_at

    now = time.time()
    if use_cache and _cached_tz is not None and now - _cached_at < CACHE_TTL:
        return _cached_tz

    tz = safe_get_timezone(os.environ.get('TZ')) or _settings_timezone() or pytz.UTC
    _cached_tz, _cached_at = tz, now
    return tz
