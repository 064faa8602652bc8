from unittest.mock import MagicMock

import pytest
from bs4 import BeautifulSoup

from jobdb_relay.detail import (
    DetailEnricher, RegionValue, extract_detail, find_label, find_scope,
)
from jobdb_relay.models import JobListing, NOT_AVAILABLE

LABELS = {
    "description": ["職務内容", "仕事内容", "業務内容"],
    "requirements": ["応募資格", "必須要件", "スキル"],
    "conditions": ["勤務条件", "福利厚生", "年収"],
    "process": ["選考プロセス", "採用の流れ"],
}

FILLER = "当社は創業二十年の受託開発企業で、金融や物流の基幹システムを数多く手掛けています。" * 10

DETAIL_HTML = f"""
<html><body>
<nav><div>仕事内容</div><div>目次</div></nav>
<main>
  <section><h3>仕事内容</h3><p>自社サービスのバックエンド開発をお任せします。Python と Django を利用しています。</p></section>
  <dl><dt>応募資格：</dt><dd>Webアプリケーションの開発経験が三年以上ある方を歓迎します。</dd></dl>
  <div><b>選考プロセス（2回）</b></div>
  <div>書類選考、一次面接、最終面接の順に進みます。内定まで約三週間です。</div>
  <p>{FILLER}</p>
</main>
</body></html>
"""


def test_fields_are_resolved_from_labels():
    detail = extract_detail(DETAIL_HTML, LABELS)

    assert detail.description.startswith("自社サービスのバックエンド開発")
    assert detail.requirements.startswith("Webアプリケーションの開発経験")
    assert detail.process.startswith("書類選考")
    assert detail.conditions == NOT_AVAILABLE


def test_scope_skips_navigation_outside_main():
    soup = BeautifulSoup(DETAIL_HTML, "html.parser")

    scope = find_scope(soup.body)

    assert scope.name == "main"
    assert find_label(scope, ["仕事内容"]).name == "h3"


def test_short_pages_use_the_whole_body_as_scope():
    soup = BeautifulSoup("<html><body><main>短い</main><p>本文</p></body></html>", "html.parser")

    assert find_scope(soup.body) is soup.body


def test_region_value_follows_aria_labelledby():
    soup = BeautifulSoup(
        '<div><span id="acc-1">給与</span></div>'
        '<section><div aria-labelledby="acc-1">月給三十万円から五十万円、賞与年二回、交通費全額支給</div></section>',
        "html.parser",
    )

    value = RegionValue().resolve(soup.find(id="acc-1"), soup)

    assert value == "月給三十万円から五十万円、賞与年二回、交通費全額支給"


ACCORDION_HTML = """
<main>
  <div><button id="radix-1" aria-controls="radix-1-content">仕事内容</button></div>
  <div id="radix-1-content" role="region" aria-labelledby="radix-1">自社サービスのバックエンド開発をお任せします。Python と Django を利用しています。</div>
  <div><button id="radix-2" aria-controls="radix-2-content">応募資格</button></div>
  <div id="radix-2-content" role="region" aria-labelledby="radix-2">Webアプリケーションの開発経験が三年以上ある方を歓迎します。</div>
</main>
"""


def test_region_value_reads_the_labels_own_section():
    soup = BeautifulSoup(ACCORDION_HTML, "html.parser")

    first = RegionValue().resolve(soup.find(id="radix-1"), soup)
    second = RegionValue().resolve(soup.find(id="radix-2"), soup)

    assert first.startswith("自社サービスのバックエンド開発")
    assert second.startswith("Webアプリケーションの開発経験")


def test_region_value_follows_aria_controls():
    soup = BeautifulSoup(
        '<div role="region">ページ上部のお知らせ欄です。本日のメンテナンス予定をご確認ください。</div>'
        '<span aria-controls="panel-2">給与</span>'
        '<div id="panel-2">月給三十万円から五十万円、賞与年二回、交通費全額支給</div>',
        "html.parser",
    )

    value = RegionValue().resolve(soup.span, soup)

    assert value == "月給三十万円から五十万円、賞与年二回、交通費全額支給"


def test_exact_label_beats_earlier_longer_label():
    html = f"""
    <html><body><main>
      <div>給与の詳細</div><div>詳細は面談時にお伝えします。賞与や各種手当の条件も含めてご説明します。</div>
      <div>給与</div><div>年収四百五十万円から六百万円、経験と能力を考慮の上で決定します。</div>
      <p>{FILLER}</p>
    </main></body></html>
    """
    soup = BeautifulSoup(html, "html.parser")

    label = find_label(soup.main, ["給与"])
    detail = extract_detail(html, {"conditions": ["給与"]})

    assert label.get_text() == "給与"
    assert detail.conditions.startswith("年収四百五十万円")


def test_region_value_needs_a_reference():
    soup = BeautifulSoup("<div><span>給与</span></div>", "html.parser")

    assert RegionValue().resolve(soup.span, soup) is None


def test_description_falls_back_to_an_excerpt():
    html = f"<html><body><article><p>{FILLER * 2}</p></article></body></html>"

    detail = extract_detail(html, LABELS)

    assert detail.description.endswith("...")
    assert len(detail.description) == 503
    assert detail.requirements == NOT_AVAILABLE


def test_short_values_are_not_accepted():
    html = "<html><body><div><h4>福利厚生</h4><p>あり</p></div></body></html>"

    assert extract_detail(html, LABELS).conditions == NOT_AVAILABLE


@pytest.fixture
def board():
    fake = MagicMock(name="board")
    fake.key = "jobmiru"
    fake.detail_labels = LABELS
    return fake


def test_enricher_builds_job_and_releases_view(config, board, page, events):
    detail_page = MagicMock(name="detail_page")
    detail_page.content.return_value = DETAIL_HTML
    detail_page.url = "https://rightjob.app.jobmiru.cloud/p/jobs/abc"
    board.open_detail.return_value = detail_page
    listing = JobListing(source="jobmiru", title="法人営業", url="https://rightjob.app.jobmiru.cloud/p/jobs/abc")

    job = DetailEnricher(config).enrich(MagicMock(), page, board, listing, events)

    assert job.title == "法人営業"
    assert job.detail.description.startswith("自社サービス")
    board.prepare_detail.assert_called_once_with(detail_page)
    board.release_detail.assert_called_once_with(page, detail_page)


def test_enricher_releases_view_on_failure(config, board, page, events):
    detail_page = MagicMock(name="detail_page")
    detail_page.content.side_effect = RuntimeError("target closed")
    board.open_detail.return_value = detail_page

    with pytest.raises(RuntimeError):
        DetailEnricher(config).enrich(MagicMock(), page, board, JobListing(source="jobmiru"), events)

    board.release_detail.assert_called_once_with(page, detail_page)


def test_enricher_skips_when_view_does_not_open(config, board, page, events):
    board.open_detail.return_value = None

    assert DetailEnricher(config).enrich(MagicMock(), page, board, JobListing(source="jobins"), events) is None
    board.release_detail.assert_not_called()
