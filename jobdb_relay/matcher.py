"""
Match Validator - re-checks an enriched job against the request filter criteria
"""

import re
from typing import Optional

from .models import EnrichedJob, FilterCriteria, LOCATION_SENTINELS, MatchResult

SALARY_TOKEN = re.compile(r"(\d+)万円")


def parse_salary_floor(salary: str) -> Optional[int]:
    """Leading integer of the first "<N>万円" token, e.g. 450 for "450万円～600万円"."""
    match = SALARY_TOKEN.search(salary or "")
    return int(match.group(1)) if match else None


def _check_keywords(job: EnrichedJob, criteria: FilterCriteria) -> Optional[str]:
    full_text = (
        (job.title or "")
        + (job.detail.description or "")
        + (job.detail.requirements or "")
        + (job.company or "")
    ).lower()
    for term in criteria.terms():
        if term.lower() not in full_text:
            return f"キーワード「{term}」が見つかりません"
    return None


def _check_salary(job: EnrichedJob, criteria: FilterCriteria) -> Optional[str]:
    if criteria.min_salary is None:
        return None
    job_min = parse_salary_floor(job.salary)
    if job_min is not None and job_min < criteria.min_salary:
        return f"年収({job_min}万)が希望({criteria.min_salary}万)を下回っています"
    return None


def _check_location(job: EnrichedJob, criteria: FilterCriteria) -> Optional[str]:
    if not criteria.location or criteria.location in LOCATION_SENTINELS:
        return None
    job_loc = (job.location or "").lower()
    filter_loc = criteria.location.lower()
    # Prefecture vs city granularity: either side may contain the other
    if job_loc in filter_loc or filter_loc in job_loc:
        return None
    return f"勤務地「{job.location}」が条件「{criteria.location}」に合致しません"


CHECKS = (_check_keywords, _check_salary, _check_location)


def validate(job: EnrichedJob, criteria: FilterCriteria) -> MatchResult:
    for check in CHECKS:
        reason = check(job, criteria)
        if reason:
            return MatchResult(match=False, reason=reason)
    return MatchResult(match=True)
