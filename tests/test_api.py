import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from jobdb_relay.api import RelayRuntime, create_app
from jobdb_relay.exporter import ExportResult
from jobdb_relay.models import CompleteEvent, EnrichedJob, JobDetail, JobEvent, LogEvent


class FakeOrchestrator:
    def __init__(self):
        self.requests = []

    def run(self, request, emit):
        self.requests.append(request)
        emit(LogEvent(message="jobins から求人を抽出しています...", level="info"))
        emit(JobEvent(job=EnrichedJob(source="jobins", title="経理", url="https://jobins.jp/agent/job/detail/1",
                                      detail=JobDetail())))
        emit(CompleteEvent())


@pytest.fixture
def session():
    return MagicMock(name="session")


@pytest.fixture
def runtime(config, session):
    runtime = RelayRuntime(config, session=session)
    runtime.orchestrator = FakeOrchestrator()
    runtime.exporter = MagicMock(name="exporter")
    return runtime


@pytest.fixture
def client(config, runtime):
    with TestClient(create_app(config, runtime)) as client:
        yield client


def test_collect_streams_ndjson(client, runtime):
    response = client.post("/api/collect", json={
        "query": "経理", "minSalary": "500", "databases": ["jobins"],
        "credentials": {"jobins": {"email": "agent@example.com", "password": "pw"}},
    })

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")
    lines = [json.loads(line) for line in response.text.splitlines()]
    assert [line["type"] for line in lines] == ["log", "job", "complete"]
    assert lines[1]["job"]["title"] == "経理"

    request = runtime.orchestrator.requests[0]
    assert request.databases == ["jobins"]
    assert request.min_salary == 500
    assert request.credentials["jobins"].user == "agent@example.com"


def test_captcha_answer_reaches_the_mailbox(client, runtime):
    response = client.post("/api/input", json={"value": "あいうえ"})

    assert response.json() == {"success": True}
    assert runtime.mailbox.take() == "あいうえ"


def test_open_browser_rejects_unknown_source(client):
    response = client.get("/api/open-browser", params={"db": "indeed"})

    assert response.status_code == 400
    assert response.text == "Invalid DB"


def test_open_browser_opens_entry_page_headed(client, session):
    response = client.get("/api/open-browser", params={"db": "careerbank"})

    assert response.status_code == 200
    assert response.text == "Browser opened"
    site, headless = session.open_site.call_args.args
    assert site.key == "careerbank"
    assert headless is False


def test_download_pdf_returns_document(client, runtime):
    runtime.exporter.export.return_value = ExportResult(filename="求人票.pdf", content=b"%PDF-1.7")

    response = client.post("/api/download-pdf", json={
        "url": "https://jobins.jp/agent/job/detail/1", "source": "jobins", "title": "経理",
    })

    assert response.status_code == 200
    assert response.content == b"%PDF-1.7"
    assert response.headers["content-type"] == "application/pdf"
    assert "filename*=UTF-8''" in response.headers["content-disposition"]
    runtime.exporter.export.assert_called_once_with("jobins", "https://jobins.jp/agent/job/detail/1", "経理")


def test_download_pdf_failure_is_500(client, runtime):
    runtime.exporter.export.side_effect = RuntimeError("net::ERR_NAME_NOT_RESOLVED")

    response = client.post("/api/download-pdf", json={"url": "https://x", "source": "jobins"})

    assert response.status_code == 500
    assert response.json() == {"error": "net::ERR_NAME_NOT_RESOLVED"}


def test_download_pdf_unknown_source_is_400(client):
    response = client.post("/api/download-pdf", json={"url": "https://x", "source": "indeed"})

    assert response.status_code == 400


def test_shutdown_closes_the_session(config, runtime, session):
    with TestClient(create_app(config, runtime)):
        pass

    session.close.assert_called_once()
