"""
jobins - agent SPA whose result cards carry no per-row URL.

Listings get a synthetic `click_index=<i>` URL and a `position` into the
filtered card set; the detail view is reached by clicking the card again.
Structured facets live in modal pickers (region -> prefecture, category -> job).
"""

import logging
import re
from typing import Dict, List, Optional

from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from ..listing import element_text, listing_rows
from ..models import (
    JobListing, LOCATION_SENTINELS, LogEvent,
    SALARY_TBD, UNDISCLOSED_COMPANY, UNKNOWN_LOCATION, UNTITLED,
)
from .base import BoardAdapter, FIND_BY_TEXT_JS, SET_VALUE_JS

logger = logging.getLogger(__name__)

SYNTHETIC_URL = "https://jobins.jp/agent/job/click_index={index}"

NOTICE_WORDS = ("通知", "お知らせ", "既読")
TITLE_NOISE = NOTICE_WORDS + ("メッセージ",)
HEADING_SELECTOR = 'h1, h2, h3, h4, [class*="job-title"]'
CARD_LINK_SELECTOR = 'a, h4, [class*="jb-text-agent-secondary"]'

LOCATION_HINTS = ("東京", "神奈川", "埼玉", "千葉", "大阪", "京都", "兵庫", "愛知", "福岡", "北海道")

COMPANY_RE = re.compile(r"採用企業\s*([^\n]+)")
SALARY_RE = re.compile(r"\d+万円[～~]\d+万円|\d+万円～|\d+万円")
UPDATE_RE = re.compile(r"\d{4}[/-]\d{1,2}[/-]\d{1,2}|\d+日前")
STATUS_RE = re.compile(r"募集中|面談設定済|選考中|内定|不合格|辞退")

APP_CATEGORY_LABELS = {"career": "中途", "new-graduate": "新卒"}
NO_EXPERIENCE_LABELS = ("職種未経験OK", "完全未経験OK")
APPLY_BUTTON_TEXTS = ["この条件を反映する", "反映する", "確定"]
DEFAULT_REGION = "首都圏"

REGION_BY_PREFECTURE: Dict[str, str] = {
    "東京都": "首都圏", "神奈川県": "首都圏", "埼玉県": "首都圏", "千葉県": "首都圏",
    "茨城県": "北関東", "栃木県": "北関東", "群馬県": "北関東",
    "大阪府": "近畿", "京都府": "近畿", "兵庫県": "近畿", "奈良県": "近畿", "和歌山県": "近畿", "滋賀県": "近畿",
    "愛知県": "東海", "静岡県": "東海", "岐阜県": "東海", "三重県": "東海",
    "福岡県": "九州", "佐賀県": "九州", "長崎県": "九州", "熊本県": "九州",
    "大分県": "九州", "宮崎県": "九州", "鹿児島県": "九州", "沖縄県": "九州",
    "北海道": "北海道",
    "青森県": "東北", "岩手県": "東北", "宮城県": "東北", "秋田県": "東北", "山形県": "東北", "福島県": "東北",
}

PREFECTURE_IDS: Dict[str, str] = {
    "東京都": "13", "神奈川県": "14", "埼玉県": "11", "千葉県": "12",
    "大阪府": "27", "愛知県": "23", "福岡県": "40", "北海道": "01",
}

AND_STATE_JS = r"""
() => {
  const drop = document.querySelector('[class*="jb-operator-dropdown"]');
  return !!drop && !(drop.innerText || '').includes('AND');
}
"""

AND_OPTION_JS = r"""
() => {
  const items = Array.from(document.querySelectorAll('div, span, li, a'));
  const opt = items.find(el => (el.innerText || '').trim().startsWith('AND'));
  if (!opt) return false;
  opt.click();
  return true;
}
"""

MIN_SALARY_JS = r"""
(val) => {
""" + FIND_BY_TEXT_JS + SET_VALUE_JS + r"""
  const label = findByText('div, span, label', '最低年収');
  if (!label) return false;
  const container = label.closest('div[class*="jb-"]') || label.parentElement;
  const scope = container && container.parentElement;
  const input = (scope && scope.querySelector('input[placeholder="入力"], input[type="number"]')) ||
    document.querySelector('input[placeholder="入力"]');
  if (!input) return false;
  setValue(input, val);
  return true;
}
"""

OPEN_PICKER_JS = r"""
(label) => {
  const els = Array.from(document.querySelectorAll('label, div, span'));
  const target = els.find(el => (el.innerText || '').trim() === label);
  if (!target) return false;
  const container = target.closest('div[class*="jb-"], .jb-border') || target.parentElement;
  const trigger = container.querySelector('button, [class*="cursor-pointer"], .jb-border') || container;
  trigger.click();
  return true;
}
"""

# Two- or three-column picker: columns are the outermost scrollable panes
PICKER_SELECT_JS = r"""
async ({ kind, value, region, prefId, parentFallbacks }) => {
  const modal = document.querySelector('[class*="jb-shadow-"], [role="dialog"], [class*="modal"]') || document.body;
  const sleep = ms => new Promise(r => setTimeout(r, ms));
""" + FIND_BY_TEXT_JS + r"""
  const columns = () => {
    const panes = Array.from(modal.querySelectorAll('div')).filter(el => {
      const style = window.getComputedStyle(el);
      return (style.overflowY === 'auto' || style.overflow === 'auto') && el.offsetHeight > 150;
    });
    return panes.filter(c => !panes.some(o => o !== c && o.contains(c)));
  };
  const ITEMS = 'li, div, span, label, button';
  const tick = el => {
    const cb = el.querySelector('input[type="checkbox"]') ||
      (el.parentElement && el.parentElement.querySelector('input[type="checkbox"]'));
    if (cb) { if (!cb.checked) cb.click(); }
    else el.click();
  };
  const cols = columns();

  if (kind === 'location') {
    const regItem = findByText(ITEMS, region, cols[0] || modal);
    if (regItem) { regItem.click(); await sleep(1500); }
    const prefCol = cols.length > 1 ? cols[1] : modal;
    const prefInput = prefId ? prefCol.querySelector('#prefecture_' + prefId) : null;
    if (prefInput) {
      if (!prefInput.checked) prefInput.click();
      return 'ok';
    }
    const prefLabel = findByText(ITEMS, value, prefCol);
    if (!prefLabel) return 'prefecture_not_found';
    tick(prefLabel);
    return 'ok';
  }

  if (kind === 'category') {
    const catCol = cols[0] || modal;
    let catItem = findByText(ITEMS, value, catCol);
    for (const fallback of parentFallbacks) {
      if (catItem) break;
      catItem = findByText(ITEMS, fallback, catCol);
    }
    if (catItem) { catItem.click(); await sleep(1500); }
    const selectAll = Array.from(modal.querySelectorAll('button, span, div'))
      .find(el => (el.innerText || '').trim() === 'すべて選択');
    if (selectAll) { selectAll.click(); return 'ok'; }
    const jobCol = cols.length > 1 ? cols[cols.length - 1] : modal;
    const leaf = findByText(ITEMS, value, jobCol);
    if (!leaf) return 'item_not_found';
    tick(leaf);
    return 'ok';
  }
  return 'unhandled';
}
"""

EXPAND_DETAIL_JS = r"""
() => {
  const tabs = Array.from(document.querySelectorAll('button, [role="tab"]'));
  const contentTab = tabs.find(t => (t.innerText || '').includes('求人内容'));
  if (contentTab) contentTab.click();
  document.querySelectorAll('[id^="radix-"][aria-expanded="false"]').forEach(t => t.click());
}
"""


def normalize_prefecture(value: str) -> str:
    """Expand a short prefecture name ("東京") to the key used by the picker maps ("東京都")."""
    if value in REGION_BY_PREFECTURE:
        return value
    for name in REGION_BY_PREFECTURE:
        if name.startswith(value):
            return name
    return value


def region_for(prefecture: str) -> str:
    return REGION_BY_PREFECTURE.get(normalize_prefecture(prefecture), DEFAULT_REGION)


def category_fallbacks(value: str) -> List[str]:
    if "エンジニア" in value or "IT" in value:
        return ["ITエンジニア", "エンジニア"]
    return []


def _is_notice(text: str, words=NOTICE_WORDS) -> bool:
    return any(word in text for word in words)


def _first_match(pattern, text: str, default: str = "") -> str:
    match = pattern.search(text)
    return match.group(0) if match else default


class JobinsBoard(BoardAdapter):
    synthetic_urls = True
    detail_labels = {
        "description": ["仕事内容", "職務内容", "業務内容", "求人概要", "募集背景"],
        "requirements": ["応募条件", "応募資格", "必須要件", "求める人物像", "対象となる方", "必須スキル"],
        "conditions": ["給与", "福利厚生", "待遇", "休日・休暇", "勤務時間", "諸手当"],
        "process": ["選考プロセス", "採用フロー", "選考の流れ"],
    }

    # === Search view ===

    def open_search(self, page, emit) -> None:
        super().open_search(page, emit)
        page.wait_for_timeout(5000)
        self.click_text(page, "a, button, li", ["求人検索", "求人/推薦"])
        page.wait_for_timeout(5000)

    def ensure_and_operator(self, page) -> None:
        if not page.evaluate(AND_STATE_JS):
            return
        page.click('[class*="jb-operator-dropdown"] button')
        page.wait_for_timeout(1000)
        page.evaluate(AND_OPTION_JS)
        page.wait_for_timeout(1000)

    def _set_app_category(self, page, value, emit) -> None:
        label = APP_CATEGORY_LABELS.get(value)
        if label is None:
            emit(LogEvent(message=f"jobins: 未対応の応募区分です: {value}", level="warning"))
            return
        emit(LogEvent(message=f"jobins: 応募区分「{label}」をセット中...", level="info"))
        self.tick_label(page, label)
        page.wait_for_timeout(1000)

    def _set_min_salary(self, page, value, emit) -> None:
        emit(LogEvent(message=f"jobins: 最低年収「{value}万円」をセット中...", level="info"))
        if not page.evaluate(MIN_SALARY_JS, str(value)):
            emit(LogEvent(message="jobins: 年収入力欄が見つかりませんでした。", level="warning"))
        page.wait_for_timeout(1000)

    def _set_no_experience(self, page, value, emit) -> None:
        emit(LogEvent(message="jobins: 「未経験OK」をセット中...", level="info"))
        for label in NO_EXPERIENCE_LABELS:
            self.tick_label(page, label)
        page.wait_for_timeout(2000)

    def _pick(self, page, label: str, args: dict, emit) -> None:
        value = args["value"]
        emit(LogEvent(message=f"jobins: {label}「{value}」を選択中...", level="info"))
        if not page.evaluate(OPEN_PICKER_JS, label):
            emit(LogEvent(message=f"jobins: {label}の選択エリアが見つかりません。", level="warning"))
            return
        page.wait_for_timeout(2000)

        status = page.evaluate(PICKER_SELECT_JS, args)
        if status != "ok":
            emit(LogEvent(message=f"jobins: {label}「{value}」を選択できませんでした ({status})。", level="warning"))

        self.click_text(page, "button", APPLY_BUTTON_TEXTS)
        page.wait_for_timeout(2000)

    def _pick_category(self, page, value, emit) -> None:
        self._pick(page, "職種", {
            "kind": "category", "value": value, "region": None, "prefId": None,
            "parentFallbacks": category_fallbacks(value),
        }, emit)

    def _pick_location(self, page, value, emit) -> None:
        prefecture = normalize_prefecture(value)
        self._pick(page, "勤務地", {
            "kind": "location", "value": value, "region": region_for(value),
            "prefId": PREFECTURE_IDS.get(prefecture), "parentFallbacks": [],
        }, emit)

    def apply_facets(self, page, criteria, emit) -> None:
        self.run_facet(page, emit, "応募区分", criteria.app_category, self._set_app_category)
        self.run_facet(page, emit, "最低年収", criteria.min_salary, self._set_min_salary)
        self.run_facet(page, emit, "未経験", criteria.wants_no_experience(), self._set_no_experience)
        self.run_facet(page, emit, "職種", criteria.job_category, self._pick_category)
        location = None if criteria.location in LOCATION_SENTINELS else criteria.location
        self.run_facet(page, emit, "勤務地", location, self._pick_location)

    def type_query(self, page, criteria) -> None:
        # Chip input: one term per Enter
        for term in criteria.terms():
            page.keyboard.type(term, delay=50)
            page.keyboard.press("Enter")
            page.wait_for_timeout(500)

    # === Listing rows ===

    def filter_rows(self, rows: list) -> list:
        kept = []
        for row in rows:
            text = element_text(row)
            if "求人ID" in text and not _is_notice(text):
                kept.append(row)
        return kept

    def parse_row(self, row, index: int, base_url: str) -> Optional[JobListing]:
        title_el = row.select_one(self.site.listing.title)
        if title_el is None:
            title_el = row.select_one(HEADING_SELECTOR)
        title = element_text(title_el) or UNTITLED
        if _is_notice(title, TITLE_NOISE):
            return None

        text = element_text(row)
        company_match = COMPANY_RE.search(text)
        location = next((hint for hint in LOCATION_HINTS if hint in text), UNKNOWN_LOCATION)
        return JobListing(
            source=self.key,
            title=title,
            url=SYNTHETIC_URL.format(index=index),
            company=company_match.group(1).strip() if company_match else UNDISCLOSED_COMPANY,
            location=location,
            salary=_first_match(SALARY_RE, text, SALARY_TBD),
            update_date=_first_match(UPDATE_RE, text),
            status=_first_match(STATUS_RE, text),
            position=index,
        )

    def parse_rows(self, rows: list, base_url: str) -> List[JobListing]:
        seen = set()
        unique = []
        for listing in super().parse_rows(rows, base_url):
            key = (listing.title, listing.company, listing.salary)
            if key in seen:
                continue
            seen.add(key)
            unique.append(listing)
        return unique

    # === Detail view ===

    def _raw_index(self, page, position: int) -> Optional[int]:
        """Map a position in the filtered card set to an index among all item matches."""
        soup = BeautifulSoup(page.content(), "html.parser")
        everything = soup.select(self.site.listing.item)
        filtered = listing_rows(soup, self)
        if position >= len(filtered):
            return None
        target = filtered[position]
        for raw, element in enumerate(everything):
            if element is target:
                return raw
        return None

    def open_detail(self, context, page, listing: JobListing, emit):
        if listing.position is None:
            return super().open_detail(context, page, listing, emit)

        emit(LogEvent(message=f"解析中: {listing.title[:30]}...", level="info"))
        raw = self._raw_index(page, listing.position)
        if raw is None:
            emit(LogEvent(message="詳細画面が開きませんでした。スキップします。", level="warning"))
            return None

        card = page.locator(self.site.listing.item).nth(raw)
        link = card.locator(CARD_LINK_SELECTOR).first
        target = link if link.count() else card
        target.scroll_into_view_if_needed()

        try:
            with context.expect_page(timeout=15000) as page_info:
                target.click()
            detail_page = page_info.value
        except PlaywrightTimeoutError:
            # No new tab: the card may have navigated the listing page itself
            url = page.url or ""
            if "/job/detail/" in url or "click_index" in url:
                return page
            emit(LogEvent(message="詳細画面が開きませんでした。スキップします。", level="warning"))
            return None

        try:
            detail_page.bring_to_front()
        except PlaywrightError:
            logger.debug("bring_to_front failed", exc_info=True)
        return detail_page

    def prepare_detail(self, page) -> None:
        page.evaluate(EXPAND_DETAIL_JS)
        page.wait_for_timeout(1500)

    # === Export ===

    def trigger_export(self, page) -> None:
        self.click_text(page, "button, a", ["ダウンロード"])
        page.wait_for_timeout(1000)
        self.click_text(page, "div, span, a, li", ["求人票", "候補者向け"], all_texts=True)
