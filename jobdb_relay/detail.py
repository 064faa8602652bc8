"""
Detail Enricher - opens a listing's detail view and reads its long-form fields.

Field discovery is a small rule engine: label strategies are tried in order
(exact before partial), and for the first label found the value strategies
are tried in order (accessible region, then a bounded sibling/parent walk).
"""

import logging
from typing import Callable, Dict, List, Optional

from bs4 import BeautifulSoup, Tag
from playwright.sync_api import Error as PlaywrightError

from .listing import element_text
from .models import EnrichedJob, JobDetail, JobListing, NOT_AVAILABLE

logger = logging.getLogger(__name__)

SCOPE_SELECTOR = 'div[class*="jb-bg-white"], main, article, [role="tabpanel"]'
LABEL_SELECTOR = 'div, span, h1, h2, h3, h4, h5, dt, th, b, strong, [class*="font-bold"]'

MIN_SCOPE_CHARS = 400
MIN_VALUE_CHARS = 20
MAX_PARTIAL_LABEL_CHARS = 15
MAX_WALK_LEVELS = 4
FALLBACK_MIN_CHARS = 200
FALLBACK_EXCERPT_CHARS = 500

STOP_ANCESTORS = ("body", "html", "[document]")


def label_text(element: Tag) -> str:
    # Inline fragments are concatenated the way innerText renders them
    return element.get_text().strip()


def _css_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


# === Label strategies ===

class ExactLabel:
    """Text equals the phrase, optionally followed by a colon."""

    def matches(self, text: str, phrase: str) -> bool:
        return text in (phrase, phrase + ":", phrase + "：")


class PartialLabel:
    """Short text containing the phrase."""

    def matches(self, text: str, phrase: str) -> bool:
        return len(text) < MAX_PARTIAL_LABEL_CHARS and phrase in text


# === Value strategies ===

class RegionValue:
    """Content region tied to the label by id, aria-labelledby or aria-controls (accordion panels)."""

    def selectors(self, label: Tag) -> List[str]:
        found = []
        ref = label.get("id") or label.get("aria-labelledby")
        if ref:
            quoted = _css_string(ref)
            found += [f"[aria-labelledby={quoted}]", f"[id={quoted}] + div"]
        controls = label.get("aria-controls")
        if controls:
            found.append(f"[id={_css_string(controls)}]")
        return found

    def resolve(self, label: Tag, root) -> Optional[str]:
        # Selector priority order, not document order
        for selector in self.selectors(label):
            region = root.select_one(selector)
            if region is None or region is label:
                continue
            text = element_text(region)
            if len(text) > MIN_VALUE_CHARS:
                return text
        return None


class SiblingWalkValue:
    """First long text among following siblings, climbing up to four ancestors."""

    def resolve(self, label: Tag, root) -> Optional[str]:
        current = label
        for _ in range(MAX_WALK_LEVELS):
            for sibling in current.find_next_siblings():
                text = element_text(sibling)
                if len(text) > MIN_VALUE_CHARS:
                    return text
            current = current.parent
            if current is None or current.name in STOP_ANCESTORS:
                break
        return None


LABEL_STRATEGIES = (ExactLabel(), PartialLabel())
VALUE_STRATEGIES = (RegionValue(), SiblingWalkValue())


def find_scope(root: Tag) -> Tag:
    """Largest text container among page/article/tab-panel regions, else the whole body."""
    best, best_len = None, MIN_SCOPE_CHARS
    for candidate in root.select(SCOPE_SELECTOR):
        length = len(element_text(candidate))
        if length > best_len:
            best, best_len = candidate, length
    return best if best is not None else root


def find_label(scope: Tag, phrases: List[str], strategies=LABEL_STRATEGIES) -> Optional[Tag]:
    candidates = [(el, label_text(el)) for el in scope.select(LABEL_SELECTOR)]
    for strategy in strategies:
        for element, text in candidates:
            if any(strategy.matches(text, phrase) for phrase in phrases):
                return element
    return None


def resolve_value(label: Optional[Tag], root, strategies=VALUE_STRATEGIES) -> Optional[str]:
    if label is None:
        return None
    for strategy in strategies:
        value = strategy.resolve(label, root)
        if value:
            return value
    return None


def extract_detail(html: str, labels: Dict[str, List[str]]) -> JobDetail:
    """Read description/requirements/conditions/process out of a detail page's HTML."""
    soup = BeautifulSoup(html, "html.parser")
    root = soup.body or soup
    scope = find_scope(root)

    values = {}
    for field, phrases in labels.items():
        values[field] = resolve_value(find_label(scope, phrases), soup) or NOT_AVAILABLE

    if values.get("description", NOT_AVAILABLE) == NOT_AVAILABLE:
        scope_text = element_text(scope)
        if len(scope_text) > FALLBACK_MIN_CHARS:
            values["description"] = scope_text[:FALLBACK_EXCERPT_CHARS] + "..."

    return JobDetail(**values)


class DetailEnricher:
    """Opens a detail view through the board, extracts fields and always releases the view."""

    def __init__(self, config):
        self.config = config

    def enrich(self, context, page, board, listing: JobListing, emit: Callable) -> Optional[EnrichedJob]:
        detail_page = board.open_detail(context, page, listing, emit)
        if detail_page is None:
            return None

        try:
            detail_page.wait_for_timeout(self.config.get_detail_settle_ms())
            try:
                board.prepare_detail(detail_page)
            except PlaywrightError as exc:
                logger.debug("%s detail pre-steps failed: %s", board.key, exc)

            detail = extract_detail(detail_page.content(), board.detail_labels)
            return EnrichedJob.from_listing(listing, detail, actual_url=detail_page.url)
        finally:
            board.release_detail(page, detail_page)
