"""
In-memory stand-ins for the Plex server client used across the tests
"""
import json

from src.plexrequests.apps.plex.response_decoders import RawPage


def plex_item(key, title=None, year=None, *guids):
    return {'key': key, 'title': title, 'year': year, 'guids': list(guids)}


def json_items_page(items, status_code=200):
    """Render items the way Plex answers /library/sections/{key}/all with Accept: application/json"""
    metadata = []
    for item in items:
        entry = {'ratingKey': item['key']}
        if item.get('title') is not None:
            entry['title'] = item['title']
        if item.get('year') is not None:
            entry['year'] = item['year']
        if item.get('guids'):
            entry['Guid'] = [{'id': g} for g in item['guids']]
        metadata.append(entry)
    body = {'MediaContainer': {'size': len(metadata), 'Metadata': metadata}}
    return RawPage(status_code, json.dumps(body).encode('utf-8'), 'application/json')


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakePlexClient:
    """Serves sections/items from dicts and records every page request"""

    def __init__(self, sections=None, items=None, machine_id='abc123', configured=True,
                 base_url='http://plex.local:32400'):
        self.sections = list(sections or [])
        self.items = dict(items or {})
        self.machine_id = machine_id
        self.is_configured = configured
        self.base_url = base_url if configured else ''
        self.failing_sections = set()
        self.page_requests = []
        self.machine_id_calls = 0

    def list_library_sections(self):
        return list(self.sections)

    def get_items_page(self, section_key, offset, page_size):
        self.page_requests.append((section_key, offset, page_size))
        if section_key in self.failing_sections:
            return RawPage(500, b'Internal Server Error', 'text/plain')
        items = self.items.get(section_key, [])
        return json_items_page(items[offset:offset + page_size])

    def get_machine_identifier(self):
        self.machine_id_calls += 1
        return self.machine_id

    def close(self):
        pass
