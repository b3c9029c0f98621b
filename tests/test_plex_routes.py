"""
Tests for the /api/plex routes and liveness endpoints
"""
from unittest.mock import MagicMock, patch

import pytest

from src.plexrequests.apps.plex import PlexAvailabilityService
from src.plexrequests.default_settings import get_default_config
from src.plexrequests.web_server import create_app
from tests.plex_fakes import FakePlexClient


@pytest.fixture
def service(sample_plex_client, db):
    return PlexAvailabilityService(get_default_config("plex"), db, client=sample_plex_client)


@pytest.fixture
def client(service):
    app = create_app(service)
    app.config['TESTING'] = True
    return app.test_client()


@pytest.fixture
def mock_service():
    service = MagicMock()
    service.is_configured = True
    return service


@pytest.fixture
def mock_client(mock_service):
    app = create_app(mock_service)
    app.config['TESTING'] = True
    return app.test_client()


class TestLiveness:
    def test_ping(self, client):
        assert client.get('/ping').get_json() == {"status": "OK"}

    def test_api_health(self, client):
        data = client.get('/api/health').get_json()
        assert data["status"] == "OK"
        assert data["plex_configured"] is True


class TestAvailability:
    """Tests for POST /api/plex/availability"""

    def test_annotates_list(self, client, sample_catalog_items):
        response = client.post('/api/plex/availability', json=sample_catalog_items)
        assert response.status_code == 200
        items = response.get_json()["items"]
        assert [i["is_available"] for i in items] == [True, True, False]
        assert "abc123" in items[0]["plex_url"]

    def test_accepts_items_envelope(self, client):
        response = client.post('/api/plex/availability', json={"items": [{"tmdb_id": 27205}]})
        assert response.get_json()["items"][0]["is_available"] is True

    @pytest.mark.parametrize("payload", [{"items": "nope"}, [1, 2], "text"])
    def test_rejects_bad_payload(self, client, payload):
        response = client.post('/api/plex/availability', json=payload)
        assert response.status_code == 400
        assert response.get_json()["success"] is False


class TestIndexDiagnostics:
    """Tests for stats / rebuild / match"""

    def test_stats(self, client):
        stats = client.get('/api/plex/index/stats').get_json()["stats"]
        assert stats["configured"] is True
        assert stats["external_ids"] == 2
        assert stats["persisted_mappings"] == 2
        assert stats["built_at"]

    def test_rebuild(self, client, sample_plex_client):
        client.get('/api/plex/index/stats')
        requests_before = len(sample_plex_client.page_requests)
        data = client.post('/api/plex/index/rebuild').get_json()
        assert data["success"] is True
        assert data["partial"] is False
        assert len(sample_plex_client.page_requests) > requests_before

    def test_rebuild_partial(self, mock_client, mock_service):
        mock_service.rebuild_index.return_value = {"partial": True, "errors": ["section 1: boom"]}
        data = mock_client.post('/api/plex/index/rebuild').get_json()
        assert data["success"] is True
        assert data["partial"] is True

    def test_rebuild_unconfigured(self, mock_client, mock_service):
        mock_service.is_configured = False
        response = mock_client.post('/api/plex/index/rebuild')
        assert response.status_code == 400
        mock_service.rebuild_index.assert_not_called()

    def test_match_by_tmdb(self, client):
        match = client.get('/api/plex/match?tmdbId=27205&mediaType=movie').get_json()["match"]
        assert match["matched"] is True
        assert match["strategy"] == "tmdb"
        assert match["library_key"] == "100"
        assert match["media_type"] == "movie"
        assert match["plex_url"].endswith("%2Flibrary%2Fmetadata%2F100")

    def test_match_miss(self, client):
        match = client.get('/api/plex/match?title=Unknown%20Film&year=2050').get_json()["match"]
        assert match["matched"] is False
        assert match["reason"] == "title-year miss"

    def test_unexpected_error_is_500(self, mock_client, mock_service):
        mock_service.get_index_stats.side_effect = RuntimeError("boom")
        response = mock_client.get('/api/plex/index/stats')
        assert response.status_code == 500
        assert response.get_json() == {"success": False, "error": "boom"}


class TestServerDiagnostics:
    """Tests for health / raw sections / metadata / search"""

    def test_health_unconfigured(self, db):
        service = PlexAvailabilityService(get_default_config("plex"), db, client=FakePlexClient(configured=False))
        data = create_app(service).test_client().get('/api/plex/health').get_json()
        assert data["success"] is True
        assert data["configured"] is False
        assert data["online"] is False

    def test_sections_raw_is_text(self, mock_client, mock_service):
        mock_service.sections_raw.return_value = '<MediaContainer size="0" />'
        response = mock_client.get('/api/plex/sections/raw')
        assert response.mimetype == 'text/plain'
        assert response.get_data(as_text=True) == '<MediaContainer size="0" />'

    def test_metadata_not_found(self, mock_client, mock_service):
        mock_service.metadata.return_value = None
        assert mock_client.get('/api/plex/metadata/999').status_code == 404

    def test_metadata(self, mock_client, mock_service):
        mock_service.metadata.return_value = {"library_key": "100", "title": "Inception"}
        data = mock_client.get('/api/plex/metadata/100').get_json()
        assert data["metadata"]["title"] == "Inception"
        mock_service.metadata.assert_called_once_with("100")

    def test_search_requires_query(self, mock_client):
        assert mock_client.get('/api/plex/search').status_code == 400

    def test_search_media_type(self, mock_client, mock_service):
        mock_service.search.return_value = []
        mock_client.get('/api/plex/search?query=dune&mediaType=show')
        mock_service.search.assert_called_once_with("dune", "tv")


class TestSettingsRoutes:
    """Tests for GET/POST /api/plex/settings"""

    def test_get_masks_token(self, mock_client):
        stored = dict(get_default_config("plex"), server_url="http://plex:32400", server_token="secret")
        with patch('src.plexrequests.routes.plex_routes.settings_manager.get_plex_settings', return_value=stored):
            settings = mock_client.get('/api/plex/settings').get_json()["settings"]
        assert settings["server_token"] == "********"
        assert settings["server_url"] == "http://plex:32400"

    def test_save_reloads_service(self, mock_client, mock_service):
        saved = dict(get_default_config("plex"), server_url="http://new:32400", server_token="secret")
        with patch('src.plexrequests.routes.plex_routes.settings_manager.save_settings', return_value=True) as save, \
                patch('src.plexrequests.routes.plex_routes.settings_manager.get_plex_settings', return_value=saved):
            response = mock_client.post('/api/plex/settings',
                                        json={"server_url": "http://new:32400", "server_token": "********"})

        assert response.status_code == 200
        save.assert_called_once_with('plex', {"server_url": "http://new:32400"})
        mock_service.reload_settings.assert_called_once_with(saved)
        assert response.get_json()["settings"]["server_token"] == "********"

    def test_save_rejects_non_object(self, mock_client):
        assert mock_client.post('/api/plex/settings', json=[1]).status_code == 400


class TestGeneralSettings:
    """Tests for /api/settings/general"""

    @pytest.fixture
    def general_client(self, mock_service, db):
        from src.plexrequests import settings_manager
        settings_manager.clear_cache()
        with patch.object(settings_manager, "get_database", return_value=db):
            yield create_app(mock_service).test_client()
        settings_manager.clear_cache()

    def test_get_defaults(self, general_client):
        data = general_client.get('/api/settings/general').get_json()
        assert data["timezone"] == "UTC"
        assert data["enable_debug_logs"] is False

    def test_save_timezone_clears_cache(self, general_client):
        with patch('src.plexrequests.web_server.clear_timezone_cache') as clear_tz, \
                patch('src.plexrequests.web_server.refresh_log_handlers') as refresh:
            data = general_client.post('/api/settings/general', json={"timezone": "Europe/Berlin"}).get_json()
        assert data["timezone"] == "Europe/Berlin"
        clear_tz.assert_called_once()
        refresh.assert_called_once()

    def test_invalid_timezone_falls_back_to_utc(self, general_client):
        with patch('src.plexrequests.web_server.refresh_log_handlers'):
            data = general_client.post('/api/settings/general', json={"timezone": "Mars/Olympus"}).get_json()
        assert data["timezone"] == "UTC"

    def test_rejects_non_json(self, general_client):
        assert general_client.post('/api/settings/general', data="x").status_code == 400
