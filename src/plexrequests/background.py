#!/usr/bin/env python3
"""
Background refresh of the Plex availability index.

Off unless background_refresh_minutes > 0; otherwise the index is only rebuilt on
demand when a request finds it expired.
"""

import threading
from typing import Optional

from src.plexrequests.utils.logger import get_logger

logger = get_logger("plex_index")

stop_event = threading.Event()  # Use an event for clearer stop signaling

index_refresh_thread: Optional[threading.Thread] = None


def index_refresh_loop(service, interval_seconds: float):
    """Keep the cached index warm until stop_event is set."""
    logger.info(f"Plex index refresher thread started (every {interval_seconds:.0f}s)")
    try:
        while not stop_event.is_set():
            try:
                if service.is_configured:
                    service.cache.get_or_build()
                else:
                    logger.debug("Plex not configured, skipping index refresh")
            except Exception as e:
                logger.error(f"Plex index refresh error: {e}", exc_info=True)

            if stop_event.wait(interval_seconds):
                break
    finally:
        logger.info("Plex index refresher thread stopped")


def start_index_refresh_thread(service, refresh_minutes: Optional[float] = None) -> Optional[threading.Thread]:
    """Start the refresher if enabled. Returns the thread, or None when refresh is disabled."""
    global index_refresh_thread

    if refresh_minutes is None:
        refresh_minutes = service.settings.get('background_refresh_minutes', 0)
    try:
        refresh_minutes = float(refresh_minutes)
    except (TypeError, ValueError):
        logger.warning(f"Invalid background_refresh_minutes {refresh_minutes!r}, background refresh disabled")
        return None
    if refresh_minutes <= 0:
        logger.info("Background Plex index refresh disabled")
        return None

    if index_refresh_thread and index_refresh_thread.is_alive():
        logger.info("Plex index refresher already running")
        return index_refresh_thread

    stop_event.clear()
    index_refresh_thread = threading.Thread(
        target=index_refresh_loop,
        args=(service, refresh_minutes * 60),
        name="PlexIndexRefresher",
        daemon=True,
    )
    index_refresh_thread.start()
    return index_refresh_thread


def shutdown(timeout: float = 5.0):
    """Signal the refresher to stop and wait briefly for it."""
    global index_refresh_thread
    stop_event.set()
    if index_refresh_thread and index_refresh_thread.is_alive():
        index_refresh_thread.join(timeout)
    index_refresh_thread = None
