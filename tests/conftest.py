"""
Pytest fixtures and configuration for PlexRequests tests
"""
import os
import tempfile

# Config dir must point somewhere disposable before any src.plexrequests import
os.environ["PLEXREQUESTS_CONFIG_DIR"] = tempfile.mkdtemp(prefix="plexrequests-tests-")

import pytest

from src.plexrequests.apps.plex.response_decoders import LibrarySection
from src.plexrequests.utils.database import PlexRequestsDatabase
from tests.plex_fakes import FakeClock, FakePlexClient, plex_item

PLEX_ENV_VARS = ("PLEX_URL", "PLEX_TOKEN", "PLEX_CLIENT_IDENTIFIER", "PLEX_ALLOW_INVALID_CERTS")


@pytest.fixture(autouse=True)
def clean_plex_env(monkeypatch):
    """Keep a developer's PLEX_* variables out of the tests"""
    for name in PLEX_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def db(tmp_path):
    """Fresh database in a temp directory"""
    return PlexRequestsDatabase(tmp_path / "test.db")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def movie_section():
    return LibrarySection("1", "movie", "Movies")


@pytest.fixture
def tv_section():
    return LibrarySection("2", "tv", "TV Shows")


@pytest.fixture
def sample_plex_client(movie_section, tv_section):
    """Two sections: Inception (with ids) in Movies, The Matrix (no ids) in TV"""
    return FakePlexClient(
        sections=[movie_section, tv_section, LibrarySection("3", "music", "Music")],
        items={
            "1": [plex_item("100", "Inception", 2010, "tmdb://27205", "imdb://tt1375666")],
            "2": [plex_item("200", "The Matrix", 1999)],
            "3": [plex_item("300", "Some Album", 2001, "tmdb://999")],
        },
    )


@pytest.fixture
def sample_catalog_items():
    """Catalog items as produced by the discovery/search layer"""
    return [
        {'tmdb_id': 27205, 'imdb_id': None, 'tvdb_id': None, 'title': 'Inception', 'year': 2010,
         'is_available': False, 'plex_url': None},
        {'tmdb_id': 603, 'imdb_id': None, 'tvdb_id': None, 'title': 'The Matrix', 'year': 1999,
         'is_available': False, 'plex_url': None},
        {'tmdb_id': 1, 'imdb_id': None, 'tvdb_id': None, 'title': 'Unknown Film', 'year': 2050,
         'is_available': False, 'plex_url': None},
    ]
