"""
Board adapter base - the per-source strategy shared by filter application,
listing row parsing, detail navigation and document export.

A source is added by subclassing BoardAdapter and overriding the hooks its UI
needs; the engines in listing.py, detail.py and orchestrator.py only talk to
this interface.
"""

import logging
from typing import Callable, Dict, List, Optional
from urllib.parse import urljoin, urlparse

from playwright.sync_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from ..listing import element_text, select_text
from ..models import (
    FilterCriteria, JobListing, LogEvent,
    SALARY_TBD, UNDISCLOSED_COMPANY, UNKNOWN_LOCATION, UNTITLED,
)
from ..sites import SiteConfig

logger = logging.getLogger(__name__)

# Exact label first, then the shortest element whose text contains the label
FIND_BY_TEXT_JS = r"""
  const textOf = el => (el.innerText || el.textContent || '').trim().replace(/\n/g, ' ');
  const findByText = (selector, text, root) => {
    const els = Array.from((root || document).querySelectorAll(selector));
    const exact = els.find(el => textOf(el) === text);
    if (exact) return exact;
    const partial = els.filter(el => textOf(el).includes(text));
    partial.sort((a, b) => textOf(a).length - textOf(b).length);
    return partial[0] || null;
  };
"""

# Reactive inputs ignore plain `.value =`, so go through the native setter
SET_VALUE_JS = r"""
  const setValue = (el, val) => {
    const proto = el instanceof HTMLSelectElement ? HTMLSelectElement.prototype : HTMLInputElement.prototype;
    const desc = Object.getOwnPropertyDescriptor(proto, 'value');
    if (desc && desc.set) desc.set.call(el, val); else el.value = val;
    el.dispatchEvent(new Event('input', { bubbles: true }));
    el.dispatchEvent(new Event('change', { bubbles: true }));
  };
"""

TICK_LABEL_JS = r"""
({ selector, text }) => {
""" + FIND_BY_TEXT_JS + r"""
  const match = findByText(selector, text);
  if (!match) return false;
  const cb = match.querySelector('input[type="checkbox"], input') ||
    (match.parentElement && match.parentElement.querySelector('input[type="checkbox"]'));
  if (cb) { if (!cb.checked) cb.click(); }
  else match.click();
  return true;
}
"""

OPTION_VALUE_JS = r"""
({ selector, text }) => {
  const select = document.querySelector(selector);
  if (!select) return null;
  const opts = Array.from(select.options);
  const label = o => (o.label || o.text || '').trim();
  const opt = opts.find(o => label(o) === text) || opts.find(o => label(o).includes(text));
  return opt ? opt.value : null;
}
"""

CLICK_TEXT_JS = r"""
({ selector, texts, all }) => {
  const els = Array.from(document.querySelectorAll(selector));
  const hit = e => {
    const t = e.innerText || '';
    return all ? texts.every(x => t.includes(x)) : texts.some(x => t.includes(x));
  };
  const el = els.find(hit);
  if (!el) return false;
  el.click();
  return true;
}
"""

DEFAULT_DETAIL_LABELS: Dict[str, List[str]] = {
    "description": ["職務内容", "仕事内容", "業務内容"],
    "requirements": ["応募資格", "必須要件", "スキル"],
    "conditions": ["勤務条件", "福利厚生", "年収"],
    "process": ["選考プロセス", "採用の流れ"],
}


class BoardAdapter:
    """Default strategy: URL-addressable rows and a plain keyword search box."""

    key = ""
    synthetic_urls = False
    detail_labels: Dict[str, List[str]] = DEFAULT_DETAIL_LABELS
    search_button = 'button:has-text("件を検索"), .jb-bg-agent-primary'
    results_selector = ".jb-shadow, .jb-job-card, .feas_job_list_item, tr.grid, tbody tr"

    def __init__(self, site: SiteConfig, config):
        self.site = site
        self.config = config
        self.key = site.key

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.key}>"

    # === Shared page helpers ===

    def click_text(self, page, selector: str, texts: List[str], all_texts: bool = False) -> bool:
        return bool(page.evaluate(CLICK_TEXT_JS, {"selector": selector, "texts": texts, "all": all_texts}))

    def tick_label(self, page, text: str, selector: str = "label, div, span") -> bool:
        return bool(page.evaluate(TICK_LABEL_JS, {"selector": selector, "text": text}))

    def select_by_label(self, page, selector: str, text: str) -> bool:
        value = page.evaluate(OPTION_VALUE_JS, {"selector": selector, "text": text})
        if value is None:
            return False
        page.select_option(selector, value=value)
        return True

    def run_facet(self, page, emit: Callable, label: str, value, action: Callable) -> None:
        """Apply one facet; failures are reported and the next facet still runs."""
        if not value:
            return
        try:
            action(page, value, emit)
        except Exception as exc:
            logger.warning("%s facet %s failed: %s", self.key, label, exc)
            emit(LogEvent(message=f"{self.key}: {label}設定中にエラー: {exc}", level="warning"))

    # === Search view ===

    def open_search(self, page, emit: Callable) -> None:
        """Make sure the page shows the source's search view."""
        emit(LogEvent(message=f"{self.key} で画面を読み込んでいます...", level="info"))
        current = page.url or ""
        host = urlparse(self.site.url).hostname or ""
        if host not in current or "login" in current:
            try:
                page.goto(self.site.url, wait_until="load",
                          timeout=self.config.get_search_navigation_timeout())
            except PlaywrightTimeoutError as exc:
                logger.debug("Search page navigation incomplete: %s", exc)

    def find_search_box(self, page, emit: Callable):
        selector = self.site.search.search_box
        try:
            return page.wait_for_selector(selector, state="visible",
                                          timeout=self.config.get_search_box_timeout())
        except PlaywrightError:
            emit(LogEvent(message=f"{self.key}: 検索窓が見つかりません。リロードして再試行します...", level="warning"))

        try:
            page.reload(wait_until="load")
        except PlaywrightError as exc:
            logger.debug("%s: reload incomplete: %s", self.key, exc)
        try:
            return page.wait_for_selector(selector, state="visible",
                                          timeout=self.config.get_search_box_retry_timeout())
        except PlaywrightError:
            logger.info("%s: search box still missing after reload", self.key)
            return None

    def ensure_and_operator(self, page) -> None:
        """Switch multi-keyword search to AND where the UI defaults to OR."""

    def apply_facets(self, page, criteria: FilterCriteria, emit: Callable) -> None:
        """Drive the source's structured facets. Default: none."""

    def type_query(self, page, criteria: FilterCriteria) -> None:
        page.keyboard.type(criteria.query, delay=50)
        page.keyboard.press("Enter")

    def submit_keywords(self, page, search_box, criteria: FilterCriteria) -> None:
        if search_box is None or not criteria.query:
            return
        search_box.focus()
        search_box.click(click_count=3)
        page.keyboard.press("Backspace")
        self.type_query(page, criteria)
        page.wait_for_timeout(2000)

    def trigger_search(self, page) -> None:
        button = page.locator(self.search_button).last
        if button.is_visible():
            button.click(force=True)
        else:
            page.keyboard.press("Enter")

    def settle(self, page) -> None:
        page.wait_for_timeout(self.config.get_results_settle_ms())
        try:
            page.wait_for_selector(self.results_selector, timeout=self.config.get_results_timeout())
        except PlaywrightError:
            logger.debug("%s: no results container appeared", self.key)

    def apply_filters(self, page, criteria: FilterCriteria, emit: Callable) -> None:
        """Translate criteria into UI interactions and run the search. Best-effort."""
        try:
            search_box = self.find_search_box(page, emit)
            try:
                self.ensure_and_operator(page)
            except PlaywrightError as exc:
                logger.debug("%s: AND operator toggle failed: %s", self.key, exc)
            self.apply_facets(page, criteria, emit)

            emit(LogEvent(message=f"{self.key} で検索を実行中...", level="info"))
            self.submit_keywords(page, search_box, criteria)
            self.trigger_search(page)
            self.settle(page)
        except Exception as exc:
            logger.warning("%s search preparation failed: %s", self.key, exc)
            emit(LogEvent(message=f"{self.key} 検索準備エラー: {exc}", level="warning"))

    # === Listing rows ===

    def filter_rows(self, rows: list) -> list:
        """Content-based row filtering on top of the structural exclusion."""
        return rows

    def row_fields(self, row) -> tuple:
        loc = self.site.listing
        return (
            select_text(row, loc.company),
            select_text(row, loc.location),
            select_text(row, loc.salary),
        )

    def parse_row(self, row, index: int, base_url: str) -> Optional[JobListing]:
        """Build a listing from one row; rows without a detail URL are dropped."""
        title_el = row.select_one(self.site.listing.title)
        title = element_text(title_el) or UNTITLED
        url = ""
        if title_el is not None and title_el.name == "a" and title_el.get("href"):
            url = urljoin(base_url, title_el["href"])
        if not url:
            return None

        company, location, salary = self.row_fields(row)
        return JobListing(
            source=self.key,
            title=title,
            url=url,
            company=company or UNDISCLOSED_COMPANY,
            location=location or UNKNOWN_LOCATION,
            salary=salary or SALARY_TBD,
        )

    def parse_rows(self, rows: list, base_url: str) -> List[JobListing]:
        listings = []
        for index, row in enumerate(rows):
            try:
                listing = self.parse_row(row, index, base_url)
            except Exception as exc:
                logger.warning("Failed to parse %s row %s: %s", self.key, index, exc)
                continue
            if listing is not None:
                listings.append(listing)
        return listings

    # === Detail view ===

    def open_detail(self, context, page, listing: JobListing, emit: Callable):
        """Open the listing's detail view; returns the page showing it, or None."""
        detail_page = context.new_page()
        try:
            detail_page.goto(listing.url, wait_until="load", timeout=self.config.get_navigation_timeout())
        except PlaywrightError as exc:
            logger.debug("Detail navigation incomplete for %s: %s", listing.url, exc)
        return detail_page

    def prepare_detail(self, page) -> None:
        """Reveal collapsed detail content. Default: nothing to do."""

    def release_detail(self, page, detail_page) -> None:
        if detail_page is not page:
            try:
                detail_page.close()
            except PlaywrightError:
                logger.debug("Detail page close failed", exc_info=True)
            return
        try:
            page.go_back(wait_until="load")
        except PlaywrightError:
            logger.debug("Back navigation failed", exc_info=True)
        page.wait_for_timeout(2000)

    # === Export ===

    def trigger_export(self, page) -> None:
        """Click the source's native export control. Default: none, so the page is rendered."""
