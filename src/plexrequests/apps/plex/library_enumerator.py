"""
Paginated enumeration of a Plex library section.
"""

import time
from typing import Iterator

from src.plexrequests.apps.plex.response_decoders import ITEM_DECODERS, LibraryItemRecord, decode_page
from src.plexrequests.utils.logger import get_logger

logger = get_logger("plex_index")

PAGE_SIZE = 200


def enumerate_section(client, section_key: str, page_size: int = PAGE_SIZE) -> Iterator[LibraryItemRecord]:
    """Yield every item of a section, one remote page at a time.

    Each call starts again at offset 0. A failed request or an unreadable page ends the
    sequence early; whatever was already yielded stands, so callers must accept an
    incomplete listing. An unconfigured client yields nothing.
    """
    if not client.is_configured:
        return

    offset = 0
    while True:
        page = client.get_items_page(section_key, offset, page_size)
        if page is None or not page.ok:
            status = page.status_code if page is not None else 'no response'
            logger.warning(f"Stopping enumeration of section {section_key} at offset {offset} ({status})")
            return

        records = decode_page(page, ITEM_DECODERS)
        if records is None:
            logger.warning(f"Unreadable listing for section {section_key} at offset {offset}, stopping")
            return

        yield from records

        if len(records) < page_size:
            return
        offset += page_size
        # Let other request threads run between pages
        time.sleep(0)
