#!/usr/bin/env python3
"""
Web server for PlexRequests
Builds the Flask app and owns the process-wide PlexAvailabilityService
"""

import os
from typing import Optional

from flask import Flask, jsonify, request

from src.plexrequests import settings_manager
from src.plexrequests.apps.plex import PlexAvailabilityService
from src.plexrequests.routes.plex_routes import plex_bp
from src.plexrequests.utils.config_paths import LOG_DIR
from src.plexrequests.utils.database import get_database
from src.plexrequests.utils.logger import get_logger, refresh_log_handlers
from src.plexrequests.utils.timezone_utils import clear_timezone_cache, safe_get_timezone

DEFAULT_PORT = 9705


def create_app(service: Optional[PlexAvailabilityService] = None) -> Flask:
    """Create the Flask app. A service built from the stored Plex settings is used unless one is given."""
    web_logger = get_logger("web_server")
    app = Flask(__name__)

    if service is None:
        service = PlexAvailabilityService(settings_manager.get_plex_settings(), get_database())
    app.extensions['plex_availability'] = service

    app.register_blueprint(plex_bp, url_prefix='/api/plex')

    # Docker health check endpoint
    @app.route('/ping', methods=['GET'])
    def health_check():
        web_logger.debug("Health check endpoint accessed")
        return jsonify({"status": "OK"})

    @app.route('/api/health', methods=['GET'])
    def api_health_check():
        return jsonify({
            "status": "OK",
            "message": "PlexRequests is running",
            "plex_configured": service.is_configured,
        })

    @app.route('/api/settings/general', methods=['GET'])
    def get_general_settings():
        return jsonify(settings_manager.load_settings('general'))

    @app.route('/api/settings/general', methods=['POST'])
    def save_general_settings():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"success": False, "error": "Expected JSON data"}), 400

        timezone_changed = False
        if 'timezone' in data:
            current_timezone = settings_manager.load_settings('general').get('timezone', 'UTC')
            if safe_get_timezone(data['timezone']) is None:
                web_logger.warning(f"Invalid timezone '{data['timezone']}' provided, using 'UTC' instead")
                data['timezone'] = 'UTC'
            timezone_changed = data['timezone'] != current_timezone

        if not settings_manager.save_settings('general', data):
            return jsonify({"success": False, "error": "Failed to save general settings"}), 500

        if timezone_changed:
            clear_timezone_cache()
            web_logger.info(f"Timezone changed to {data['timezone']}")
        # Rotation size/count changes only take effect on new handlers
        refresh_log_handlers()
        return jsonify(settings_manager.load_settings('general', use_cache=False))

    web_logger.info(f"Flask app created (Plex configured: {service.is_configured})")
    return app


def start_web_server(app: Flask):
    """Run the app on PORT (default 9705); DEBUG=true enables Flask debug mode"""
    web_logger = get_logger("web_server")
    debug_mode = os.environ.get('DEBUG', 'false').lower() == 'true'
    host = '0.0.0.0'  # Listen on all interfaces
    port = int(os.environ.get('PORT', DEFAULT_PORT))

    os.makedirs(LOG_DIR, exist_ok=True)

    web_logger.info(f"Starting web server on {host}:{port} (Debug: {debug_mode})")
    app.run(host=host, port=port, debug=debug_mode, use_reloader=False, threaded=True)
