#!/usr/bin/env python3
"""
Plex availability routes
Annotation endpoint, index diagnostics and Plex connection settings
"""

from flask import Blueprint, Response, current_app, jsonify, request

from src.plexrequests import settings_manager
from src.plexrequests.utils.logger import get_logger

logger = get_logger("web_server")

plex_bp = Blueprint('plex', __name__)

TOKEN_MASK = "********"
MEDIA_KINDS = ("movie", "tv")


def _service():
    return current_app.extensions['plex_availability']


def _media_kind(value):
    """Accept movie/tv (and Plex's 'show'); anything else means no filter."""
    value = (value or '').strip().lower()
    if value == 'show':
        return 'tv'
    return value if value in MEDIA_KINDS else None


def _masked(settings):
    data = dict(settings)
    if data.get('server_token'):
        data['server_token'] = TOKEN_MASK
    return data


# ── Annotation ──

@plex_bp.route('/availability', methods=['POST'])
def annotate_items():
    """Annotate a list of catalog items with is_available / plex_url"""
    try:
        payload = request.get_json(silent=True)
        items = payload.get('items') if isinstance(payload, dict) else payload
        if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
            return jsonify({'success': False, 'error': 'Expected a list of items'}), 400
        _service().annotate(items)
        return jsonify({'success': True, 'items': items})
    except Exception as e:
        logger.error(f"Error annotating catalog items: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


# ── Index diagnostics ──

@plex_bp.route('/index/stats', methods=['GET'])
def index_stats():
    try:
        return jsonify({'success': True, 'stats': _service().get_index_stats()})
    except Exception as e:
        logger.error(f"Error getting Plex index stats: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@plex_bp.route('/index/rebuild', methods=['POST'])
def rebuild_index():
    try:
        service = _service()
        if not service.is_configured:
            return jsonify({'success': False, 'error': 'Plex is not configured'}), 400
        stats = service.rebuild_index()
        if stats.get('partial'):
            logger.warning(f"Plex index rebuilt with errors: {stats.get('errors')}")
        return jsonify({'success': True, 'partial': stats.get('partial', False), 'stats': stats})
    except Exception as e:
        logger.error(f"Error rebuilding Plex index: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@plex_bp.route('/match', methods=['GET'])
def test_match():
    """Run the matcher directly: ?tmdbId=&imdbId=&tvdbId=&title=&year=&mediaType="""
    try:
        args = request.args
        result = _service().test_match(
            tmdb_id=args.get('tmdbId'),
            imdb_id=args.get('imdbId'),
            tvdb_id=args.get('tvdbId'),
            title=args.get('title'),
            year=args.get('year'),
        )
        result['media_type'] = _media_kind(args.get('mediaType'))
        return jsonify({'success': True, 'match': result})
    except Exception as e:
        logger.error(f"Error testing Plex match: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


# ── Server diagnostics ──

@plex_bp.route('/health', methods=['GET'])
def plex_health():
    try:
        return jsonify({'success': True, **_service().health()})
    except Exception as e:
        logger.error(f"Error checking Plex health: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@plex_bp.route('/sections/raw', methods=['GET'])
def sections_raw():
    """Raw /library/sections body as returned by the server"""
    try:
        return Response(_service().sections_raw(), mimetype='text/plain')
    except Exception as e:
        logger.error(f"Error fetching raw Plex sections: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@plex_bp.route('/metadata/<rating_key>', methods=['GET'])
def metadata(rating_key):
    try:
        data = _service().metadata(rating_key)
        if data is None:
            return jsonify({'success': False, 'error': f'No metadata for ratingKey {rating_key}'}), 404
        return jsonify({'success': True, 'metadata': data})
    except Exception as e:
        logger.error(f"Error fetching Plex metadata {rating_key}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@plex_bp.route('/search', methods=['GET'])
def search():
    try:
        query = (request.args.get('query') or '').strip()
        if not query:
            return jsonify({'success': False, 'error': 'query is required'}), 400
        results = _service().search(query, _media_kind(request.args.get('mediaType')))
        return jsonify({'success': True, 'results': results})
    except Exception as e:
        logger.error(f"Error searching Plex: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


# ── Settings ──

@plex_bp.route('/settings', methods=['GET'])
def get_settings():
    try:
        return jsonify({'success': True, 'settings': _masked(settings_manager.get_plex_settings())})
    except Exception as e:
        logger.error(f"Error loading Plex settings: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@plex_bp.route('/settings', methods=['POST'])
def save_settings():
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'success': False, 'error': 'Expected a JSON object'}), 400
        if data.get('server_token') == TOKEN_MASK:
            # Unchanged token echoed back by the UI
            data.pop('server_token')

        if not settings_manager.save_settings('plex', data):
            return jsonify({'success': False, 'error': 'Failed to save settings'}), 500

        settings = settings_manager.get_plex_settings(use_cache=False)
        _service().reload_settings(settings)
        return jsonify({'success': True, 'settings': _masked(settings)})
    except Exception as e:
        logger.error(f"Error saving Plex settings: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
