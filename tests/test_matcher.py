import pytest

from jobdb_relay.matcher import parse_salary_floor, validate
from jobdb_relay.models import EnrichedJob, FilterCriteria, JobDetail


def make_job(title="Backend Engineer (Python)", location="東京都", salary="450万円～600万円",
             company="株式会社テスト", description="", requirements=""):
    return EnrichedJob(
        source="jobmiru", title=title, url="https://example.com/1", company=company,
        location=location, salary=salary,
        detail=JobDetail(description=description or "情報なし", requirements=requirements or "情報なし"),
    )


CRITERIA = FilterCriteria(query="engineer python", location="東京", min_salary="500")


def test_salary_below_minimum_is_rejected():
    result = validate(make_job(), CRITERIA)

    assert result.match is False
    assert result.reason == "年収(450万)が希望(500万)を下回っています"


def test_location_mismatch_names_both_sides():
    result = validate(make_job(location="神奈川", salary="600万円～800万円"), CRITERIA)

    assert result.match is False
    assert result.reason == "勤務地「神奈川」が条件「東京」に合致しません"


def test_all_checks_pass():
    result = validate(make_job(salary="600万円～800万円"), CRITERIA)

    assert result.match is True
    assert result.reason is None


def test_missing_keyword_is_named():
    result = validate(make_job(), FilterCriteria(query="python golang"))

    assert result.reason == "キーワード「golang」が見つかりません"


def test_keywords_are_found_in_detail_text_case_insensitively():
    job = make_job(title="開発職", description="GoLang を用いたAPI開発", requirements="AWS経験")

    assert validate(job, FilterCriteria(query="golang，aws")).match


def test_empty_criteria_accept_everything():
    assert validate(make_job(title="", location="", salary=""), FilterCriteria()).match


def test_salary_without_token_passes():
    assert validate(make_job(salary="要確認"), FilterCriteria(min_salary=900)).match


@pytest.mark.parametrize("location", ["全国", "不明"])
def test_location_sentinels_skip_the_check(location):
    assert validate(make_job(location="北海道"), FilterCriteria(location=location)).match


def test_city_level_constraint_matches_prefecture_listing():
    assert validate(make_job(location="東京"), FilterCriteria(location="東京都港区")).match


def test_validation_is_deterministic():
    job = make_job()
    assert validate(job, CRITERIA) == validate(job, CRITERIA)


def test_parse_salary_floor():
    assert parse_salary_floor("450万円～600万円") == 450
    assert parse_salary_floor("月給30万円以上") == 30
    assert parse_salary_floor("応相談") is None
