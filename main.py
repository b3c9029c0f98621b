#!/usr/bin/env python3
"""
PlexRequests - main entry point
Starts the Plex index refresher (if enabled) and the web server
"""

import signal
import sys

from src.plexrequests import settings_manager

__version__ = "1.0.0"


def main():
    settings_manager.load_environment()

    from src.plexrequests import background
    from src.plexrequests.utils.logger import setup_main_logger
    from src.plexrequests.web_server import create_app, start_web_server

    logger = setup_main_logger()
    logger.info(f"--- Starting PlexRequests {__version__} ---")

    app = create_app()
    service = app.extensions['plex_availability']

    def shutdown_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        background.shutdown()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown_handler)
    signal.signal(signal.SIGTERM, shutdown_handler)

    background.start_index_refresh_thread(service)
    try:
        start_web_server(app)
    finally:
        background.shutdown()
        logger.info("--- PlexRequests stopped ---")


if __name__ == '__main__':
    main()
