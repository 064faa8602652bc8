import json

from jobdb_relay.models import (
    BatchRequest, CompleteEvent, Credentials, EnrichedJob, FilterCriteria,
    JobDetail, JobEvent, JobListing, LogEvent, NOT_AVAILABLE,
)


def test_criteria_accepts_front_end_aliases():
    criteria = FilterCriteria(**{"query": "営業", "jobCategory": "営業", "minSalary": "500", "appCategory": "career"})

    assert criteria.job_category == "営業"
    assert criteria.min_salary == 500
    assert criteria.app_category == "career"


def test_non_numeric_min_salary_means_no_constraint():
    assert FilterCriteria(min_salary="指定なし").min_salary is None
    assert FilterCriteria(min_salary=None).min_salary is None
    assert FilterCriteria(min_salary="600万円").min_salary == 600


def test_terms_split_on_spaces_and_commas():
    criteria = FilterCriteria(query=" Python，AWS  SQL, Go ")

    assert criteria.terms() == ["Python", "AWS", "SQL", "Go"]
    assert FilterCriteria(query="").terms() == []


def test_no_experience_values():
    assert FilterCriteria(experience="no-experience").wants_no_experience()
    assert FilterCriteria(experience="no-experience-required").wants_no_experience()
    assert not FilterCriteria(experience="experienced").wants_no_experience()


def test_batch_request_accepts_databases_and_credential_aliases():
    request = BatchRequest(**{
        "query": "python",
        "databases": ["careerbank", "jobins"],
        "credentials": {"careerbank": {"email": "me@example.com", "pass": "pw"}},
    })

    assert request.databases == ["careerbank", "jobins"]
    assert request.credentials["careerbank"].user == "me@example.com"
    assert request.credentials["careerbank"].password == "pw"
    assert request.criteria() == FilterCriteria(query="python")


def test_credentials_repr_masks_password():
    assert "pw" not in repr(Credentials(user="me", password="pw"))


def test_enriched_job_takes_the_opened_url():
    listing = JobListing(source="jobins", title="A", url="https://jobins.jp/agent/job/click_index=3", position=3)

    job = EnrichedJob.from_listing(listing, JobDetail(), actual_url="https://jobins.jp/agent/job/detail/999")
    blank = EnrichedJob.from_listing(listing, JobDetail(), actual_url="about:blank")

    assert job.url == "https://jobins.jp/agent/job/detail/999"
    assert blank.url == listing.url
    assert job.id.startswith("job_") and len(job.id) == 13
    assert job.id != blank.id
    assert job.detail.description == NOT_AVAILABLE


def test_job_event_line_uses_wire_names():
    listing = JobListing(source="jobins", title="求人", url="u", update_date="3日前", position=0)
    line = JobEvent(job=EnrichedJob.from_listing(listing, JobDetail())).to_line()

    assert line.endswith("\n")
    assert "求人" in line
    payload = json.loads(line)
    assert payload["type"] == "job"
    assert payload["job"]["updateDate"] == "3日前"
    assert "position" not in payload["job"]


def test_log_and_complete_lines():
    assert json.loads(LogEvent(message="hi", level="success").to_line()) == {
        "type": "log", "message": "hi", "level": "success",
    }
    assert json.loads(CompleteEvent().to_line()) == {"type": "complete"}
