#!/usr/bin/env python3
"""
Logging for PlexRequests
One log file per component (plex_index, web_server) plus the main plexrequests.log,
rotated by size and pruned by age according to the general settings
"""

import datetime
import logging
import logging.handlers
import sys
import time
from typing import Any, Dict, Optional

from src.plexrequests.utils.config_paths import LOG_DIR

MAIN_LOG_FILE = LOG_DIR / "plexrequests.log"

APP_LOG_FILES = {
    "plex_index": LOG_DIR / "plex_index.log",
    "web_server": LOG_DIR / "web_server.log",
}

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_ROTATION = {
    "enabled": True,
    "max_bytes": 50 * 1024 * 1024,
    "backup_count": 5,
    "retention_days": 30,
    "auto_cleanup": True,
}

logger: Optional[logging.Logger] = None
app_loggers: Dict[str, logging.Logger] = {}


def get_rotation_settings() -> Dict[str, Any]:
    """Rotation/retention values from the general settings, defaults if they can't be read."""
    # settings_manager imports the database, which must not import this module first
    try:
        from src.plexrequests.settings_manager import load_settings
        general = load_settings("general")
    except Exception as e:
        print(f"[Logger] Using default rotation, settings unavailable: {e}")
        return dict(DEFAULT_ROTATION)

    return {
        "enabled": bool(general.get("log_rotation_enabled", DEFAULT_ROTATION["enabled"])),
        "max_bytes": int(general.get("log_max_size_mb", 50)) * 1024 * 1024,
        "backup_count": int(general.get("log_backup_count", DEFAULT_ROTATION["backup_count"])),
        "retention_days": int(general.get("log_retention_days", DEFAULT_ROTATION["retention_days"])),
        "auto_cleanup": bool(general.get("log_auto_cleanup", DEFAULT_ROTATION["auto_cleanup"])),
    }


class LocalTimeFormatter(logging.Formatter):
    """Stamps records in the user's timezone, e.g. '2024-05-01 18:02:11 Europe/Berlin'"""

    def formatTime(self, record, datefmt=None):
        fmt = datefmt or DATE_FORMAT
        try:
            from src.plexrequests.utils.timezone_utils import get_user_timezone
            tz = get_user_timezone()
            return f"{datetime.datetime.fromtimestamp(record.created, tz=tz).strftime(fmt)} {tz}"
        except Exception:
            return time.strftime(fmt, time.localtime(record.created))


class DebugLogsFilter(logging.Filter):
    """Drops DEBUG records unless enable_debug_logs is on (index builds log per section)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno > logging.DEBUG:
            return True
        try:
            from src.plexrequests.settings_manager import load_settings
            return bool(load_settings("general").get("enable_debug_logs", False))
        except Exception:
            return True  # Early startup: settings not readable yet


def _file_handler(log_file, rotation: Dict[str, Any]) -> logging.Handler:
    if not rotation["enabled"]:
        return logging.FileHandler(log_file, encoding="utf-8")
    return logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=rotation["max_bytes"],
        backupCount=rotation["backup_count"],
        encoding="utf-8",
    )


def _attach_handlers(target: logging.Logger, log_file, name: str):
    """Replace target's handlers with a stdout handler and a file handler."""
    for old in list(target.handlers):
        old.close()
        target.removeHandler(old)
    target.setLevel(logging.DEBUG)
    target.propagate = False

    formatter = LocalTimeFormatter(f"%(asctime)s - {name} - %(levelname)s - %(message)s", datefmt=DATE_FORMAT)
    for handler in (logging.StreamHandler(sys.stdout), _file_handler(log_file, get_rotation_settings())):
        handler.setLevel(logging.DEBUG)
        handler.addFilter(DebugLogsFilter())
        handler.setFormatter(formatter)
        target.addHandler(handler)


def setup_main_logger() -> logging.Logger:
    """(Re)configure the main 'plexrequests' logger and return it."""
    global logger
    main_logger = logging.getLogger("plexrequests")
    _attach_handlers(main_logger, MAIN_LOG_FILE, "plexrequests")
    logger = main_logger
    return main_logger


def get_logger(app_type: str) -> logging.Logger:
    """
    Logger for one component, writing to its own file.

    Args:
        app_type: 'plex_index' or 'web_server'. Anything else gets the main logger.
    """
    if app_type not in APP_LOG_FILES:
        return logger if logger is not None else setup_main_logger()

    name = f"plexrequests.{app_type}"
    if name not in app_loggers:
        component_logger = logging.getLogger(name)
        _attach_handlers(component_logger, APP_LOG_FILES[app_type], name)
        app_loggers[name] = component_logger
    return app_loggers[name]


def refresh_log_handlers():
    """Rebuild every handler so changed rotation settings apply."""
    setup_main_logger()
    for name in list(app_loggers):
        app_loggers.pop(name)
        get_logger(name.rsplit('.', 1)[-1])


def cleanup_old_logs() -> int:
    """Remove rotated files (plexrequests.log.1, ...) past the retention window. Returns the count."""
    rotation = get_rotation_settings()
    if not rotation["auto_cleanup"] or rotation["retention_days"] <= 0:
        return 0

    cutoff = time.time() - rotation["retention_days"] * 86400
    removed = 0
    for path in LOG_DIR.glob("*.log.*"):
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
                removed += 1
        except OSError as e:
            print(f"[Logger] Could not remove {path.name}: {e}")
    if removed:
        print(f"[Logger] Removed {removed} expired log files")
    return removed


logger = setup_main_logger()

try:
    cleanup_old_logs()
except Exception as e:
    print(f"[Logger] Startup log cleanup failed: {e}")
