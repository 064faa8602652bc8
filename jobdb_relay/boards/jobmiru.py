"""
jobmiru - SPA job table with autocomplete facets and an AND/OR keyword toggle
"""

import logging

from ..models import LOCATION_SENTINELS, LogEvent
from .base import BoardAdapter, FIND_BY_TEXT_JS, SET_VALUE_JS

logger = logging.getLogger(__name__)

AND_OPERATOR_JS = r"""
() => {
  const labels = Array.from(document.querySelectorAll('label'));
  const andLabel = labels.find(l => (l.innerText || '').trim() === 'AND') ||
    labels.find(l => (l.innerText || '').includes('AND'));
  if (!andLabel) return false;
  const input = andLabel.querySelector('input') || andLabel.previousElementSibling;
  if (!input) return false;
  input.click();
  return true;
}
"""

MIN_SALARY_JS = r"""
(val) => {
""" + FIND_BY_TEXT_JS + SET_VALUE_JS + r"""
  const label = findByText('label, span, div', '年収');
  if (!label) return false;
  const sibling = label.nextElementSibling;
  const input = label.querySelector('input, select') ||
    (sibling && (sibling.matches('input, select') ? sibling : sibling.querySelector('input, select'))) ||
    (label.parentElement && label.parentElement.querySelector('input, select'));
  if (!input) return false;
  setValue(input, val);
  return true;
}
"""

# Exact option text, then containment, then the first suggestion
PICK_OPTION_JS = r"""
(text) => {
  const list = document.querySelector('ul[role="listbox"], .dropdown-content, [class*="listbox"]');
  if (!list) return false;
  const opts = Array.from(list.querySelectorAll('li, [role="option"], [class*="item"]'));
  const t = o => (o.innerText || '').trim();
  let opt = null;
  if (text) opt = opts.find(o => t(o) === text) || opts.find(o => t(o).includes(text));
  opt = opt || opts[0];
  if (!opt) return false;
  opt.click();
  return true;
}
"""

MORE_MENU_JS = r"""
() => {
  const btns = Array.from(document.querySelectorAll('button'));
  const more = btns.find(b => (b.innerText || '').trim() === '...' ||
    b.querySelector('svg[class*="DotsHorizontal"]'));
  if (!more) return false;
  more.click();
  return true;
}
"""


class JobmiruBoard(BoardAdapter):

    def ensure_and_operator(self, page) -> None:
        if page.evaluate(AND_OPERATOR_JS):
            page.wait_for_timeout(500)

    def _autocomplete(self, page, selector: str, value: str, label: str, emit) -> None:
        emit(LogEvent(message=f"jobmiru: {label}「{value}」をセット中...", level="info"))
        field = page.query_selector(selector)
        if field is None:
            emit(LogEvent(message=f"jobmiru: {label}の入力欄が見つかりません。", level="warning"))
            return
        field.focus()
        field.fill(value)
        page.wait_for_timeout(2000)
        if not page.evaluate(PICK_OPTION_JS, value):
            logger.info("jobmiru: no %s suggestion for %s", label, value)
        page.wait_for_timeout(2000)

    def _set_min_salary(self, page, value, emit) -> None:
        emit(LogEvent(message=f"jobmiru: 最低年収「{value}万円」をセット中...", level="info"))
        if not page.evaluate(MIN_SALARY_JS, str(value)):
            logger.info("jobmiru: salary input not found")

    def _set_job_category(self, page, value, emit) -> None:
        self._autocomplete(page, self.site.search.job_category, value, "職種", emit)

    def _set_location(self, page, value, emit) -> None:
        self._autocomplete(page, self.site.search.location, value, "勤務地", emit)

    def apply_facets(self, page, criteria, emit) -> None:
        self.run_facet(page, emit, "年収", criteria.min_salary, self._set_min_salary)
        self.run_facet(page, emit, "職種", criteria.job_category, self._set_job_category)
        location = None if criteria.location in LOCATION_SENTINELS else criteria.location
        self.run_facet(page, emit, "勤務地", location, self._set_location)

    def trigger_export(self, page) -> None:
        if page.evaluate(MORE_MENU_JS):
            page.wait_for_timeout(1000)
        self.click_text(page, "div, span, button, a", ["PDF で出力"])
