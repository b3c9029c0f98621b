"""
Tests for paginated section enumeration
"""
from unittest.mock import MagicMock

from src.plexrequests.apps.plex.library_enumerator import enumerate_section
from src.plexrequests.apps.plex.response_decoders import RawPage
from tests.plex_fakes import FakePlexClient, json_items_page, plex_item


def _items(count, start=1):
    return [plex_item(str(n), f"Movie {n}", 2000, f"tmdb://{n}") for n in range(start, start + count)]


class TestPagination:
    """Tests for page size / termination behaviour"""

    def test_exact_full_page_then_empty_page(self):
        client = FakePlexClient(items={"1": _items(200)})
        records = list(enumerate_section(client, "1", page_size=200))
        assert len(records) == 200
        assert records[0].library_key == "1"
        assert records[-1].library_key == "200"
        assert client.page_requests == [("1", 0, 200), ("1", 200, 200)]

    def test_multiple_pages_with_short_last_page(self):
        client = FakePlexClient(items={"1": _items(450)})
        records = list(enumerate_section(client, "1"))
        assert len(records) == 450
        assert [offset for _, offset, _ in client.page_requests] == [0, 200, 400]

    def test_small_page_size(self):
        client = FakePlexClient(items={"1": _items(5)})
        keys = [r.library_key for r in enumerate_section(client, "1", page_size=2)]
        assert keys == ["1", "2", "3", "4", "5"]
        assert len(client.page_requests) == 3

    def test_empty_section(self):
        client = FakePlexClient(items={"1": []})
        assert list(enumerate_section(client, "1")) == []
        assert client.page_requests == [("1", 0, 200)]

    def test_restartable(self):
        client = FakePlexClient(items={"1": _items(3)})
        first = list(enumerate_section(client, "1", page_size=2))
        second = list(enumerate_section(client, "1", page_size=2))
        assert first == second
        assert [offset for _, offset, _ in client.page_requests] == [0, 2, 0, 2]


class TestTruncation:
    """Tests for early termination on failures"""

    def _client(self, *pages):
        client = MagicMock()
        client.is_configured = True
        client.get_items_page.side_effect = list(pages)
        return client

    def test_http_error_on_second_page_keeps_first_page(self):
        client = self._client(
            json_items_page(_items(2)),
            RawPage(500, b"error", "text/plain"),
        )
        records = list(enumerate_section(client, "1", page_size=2))
        assert [r.library_key for r in records] == ["1", "2"]
        assert client.get_items_page.call_count == 2

    def test_transport_failure_stops(self):
        client = self._client(None)
        assert list(enumerate_section(client, "1")) == []

    def test_malformed_page_stops(self):
        client = self._client(RawPage(200, b"<<not a body", "application/json"))
        assert list(enumerate_section(client, "1")) == []

    def test_xml_page(self):
        body = b'<MediaContainer size="1"><Video ratingKey="7" title="Heat" year="1995"><Guid id="tmdb://949"/></Video></MediaContainer>'
        client = self._client(RawPage(200, body, "text/xml"))
        records = list(enumerate_section(client, "1"))
        assert records[0].library_key == "7"
        assert records[0].external_ids == ("tmdb://949",)

    def test_unconfigured_client_yields_nothing(self):
        client = FakePlexClient(items={"1": _items(3)}, configured=False)
        assert list(enumerate_section(client, "1")) == []
        assert client.page_requests == []
