"""
Listing Extractor - reads the current results view into normalized listings
"""

import logging
from typing import List, Optional

from bs4 import BeautifulSoup, Tag
from playwright.sync_api import Error as PlaywrightError

from .models import JobListing

logger = logging.getLogger(__name__)

CHROME_TAGS = ("header", "aside")
CHROME_CLASS_MARKERS = ("header", "popover", "modal", "Notification", "dropdown", "jb-absolute", "sidebar")


def element_text(element: Optional[Tag]) -> str:
    """Approximate innerText: text nodes joined by newlines, trimmed."""
    if element is None:
        return ""
    return element.get_text("\n", strip=True)


def select_text(row: Tag, selector: str) -> str:
    if not selector:
        return ""
    return element_text(row.select_one(selector))


def is_page_chrome(element: Tag) -> bool:
    """True when the element is, or sits inside, a header, sidebar, popover, modal or notification region."""
    for node in [element, *element.parents]:
        if not isinstance(node, Tag) or node.name == "[document]":
            continue
        if node.name in CHROME_TAGS or node.get("role") == "dialog":
            return True
        classes = " ".join(node.get("class") or [])
        if any(marker in classes for marker in CHROME_CLASS_MARKERS):
            return True
    return False


def listing_rows(soup: BeautifulSoup, board) -> List[Tag]:
    """Rows matching the item locator after structural and content filtering, in document order."""
    rows = [el for el in soup.select(board.site.listing.item) if not is_page_chrome(el)]
    return board.filter_rows(rows)


def dedupe_listings(listings: List[JobListing]) -> List[JobListing]:
    seen = set()
    unique = []
    for listing in listings:
        if listing.dedupe_key in seen:
            continue
        seen.add(listing.dedupe_key)
        unique.append(listing)
    return unique


def parse_listings(html: str, board, base_url: str = "") -> List[JobListing]:
    soup = BeautifulSoup(html, "html.parser")
    return dedupe_listings(board.parse_rows(listing_rows(soup, board), base_url))


class ListingExtractor:
    """Scrolls for lazy-loaded rows, then parses a snapshot of the results DOM."""

    def __init__(self, config):
        self.config = config

    def load_more(self, page, item_selector: str) -> None:
        target = self.config.get_scroll_target()
        for _ in range(self.config.get_scroll_cycles()):
            page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")
            page.wait_for_timeout(2000)
            try:
                count = page.locator(item_selector).count()
            except PlaywrightError:
                logger.debug("Row count failed", exc_info=True)
                continue
            if count >= target:
                break

    def extract(self, page, board) -> List[JobListing]:
        page.keyboard.press("Escape")
        self.load_more(page, board.site.listing.item)
        page.keyboard.press("Escape")

        listings = parse_listings(page.content(), board, base_url=page.url or board.site.url)
        logger.info("Extracted %s listings from %s", len(listings), board.key)
        return listings
