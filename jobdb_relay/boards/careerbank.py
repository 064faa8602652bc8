"""
careerbank - WordPress job search with SiteGuard login CAPTCHA and th/td result panels
"""

import logging

from ..listing import element_text
from .base import BoardAdapter

logger = logging.getLogger(__name__)

CATEGORY_LABELS = ".feas_clevel_01, .feas_clevel_02, label"


def th_value(row, label: str) -> str:
    """Text of the cell next to the first <th> mentioning the label."""
    for th in row.find_all("th"):
        if label in element_text(th):
            return element_text(th.find_next_sibling())
    return ""


class CareerbankBoard(BoardAdapter):
    detail_labels = {
        "description": ["仕事内容", "職務概要"],
        "requirements": ["応募資格", "求める経験", "スキル"],
        "conditions": ["給与", "福利厚生", "諸手当", "想定勤務地"],
        "process": ["選考内容", "選考プロセス", "採用の流れ"],
    }

    def _select_location(self, page, value, emit) -> None:
        if not self.select_by_label(page, self.site.search.location, value):
            logger.info("careerbank: no location option for %s", value)

    def _tick_category(self, page, value, emit) -> None:
        if not self.tick_label(page, value, selector=CATEGORY_LABELS):
            logger.info("careerbank: no job category checkbox for %s", value)

    def apply_facets(self, page, criteria, emit) -> None:
        self.run_facet(page, emit, "勤務地", criteria.location, self._select_location)
        self.run_facet(page, emit, "職種", criteria.job_category, self._tick_category)

    def row_fields(self, row) -> tuple:
        return th_value(row, "企業名"), th_value(row, "勤務地"), th_value(row, "年収")

    def trigger_export(self, page) -> None:
        self.click_text(page, "button, a", ["求人票", "印刷"], all_texts=True)
