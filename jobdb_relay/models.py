"""
Data models for jobdb-relay
Defines structure for listings, enriched jobs, filter criteria and stream events
"""

import json
import re
import uuid
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

NOT_AVAILABLE = "情報なし"
UNTITLED = "無題の求人"
UNDISCLOSED_COMPANY = "社名非公開"
UNKNOWN_LOCATION = "不明"
SALARY_TBD = "要確認"

NATIONWIDE = "全国"
LOCATION_SENTINELS = (NATIONWIDE, UNKNOWN_LOCATION)
NO_EXPERIENCE_VALUES = ("no-experience", "no-experience-required")

KEYWORD_SPLIT = re.compile(r"[\s,，]+")

LogLevel = Literal["info", "warning", "error", "success"]


class Credentials(BaseModel):
    """Per-source login pair, supplied per request and never persisted"""

    user: str = ""
    password: str = ""

    @model_validator(mode="before")
    @classmethod
    def _accept_aliases(cls, data):
        if isinstance(data, dict):
            data = dict(data)
            if not data.get("user") and data.get("email"):
                data["user"] = data.pop("email")
            if not data.get("password") and data.get("pass"):
                data["password"] = data.pop("pass")
        return data

    def __repr__(self) -> str:
        return f"Credentials(user={self.user!r}, password=***)"


class FilterCriteria(BaseModel):
    """Search constraints shared by every source. Empty means no constraint."""

    model_config = ConfigDict(populate_by_name=True)

    query: str = ""
    location: str = ""
    job_category: str = Field(default="", alias="jobCategory")
    min_salary: Optional[int] = Field(default=None, alias="minSalary")
    experience: str = ""
    app_category: str = Field(default="", alias="appCategory")

    @field_validator("query", "location", "job_category", "experience", "app_category", mode="before")
    @classmethod
    def _blank_none(cls, value):
        return "" if value is None else str(value).strip()

    @field_validator("min_salary", mode="before")
    @classmethod
    def _parse_min_salary(cls, value):
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return int(value)
        match = re.match(r"\s*(\d+)", str(value))
        return int(match.group(1)) if match else None

    def terms(self) -> List[str]:
        """Split the keyword query into AND terms"""
        return [t for t in KEYWORD_SPLIT.split(self.query or "") if t.strip()]

    def wants_no_experience(self) -> bool:
        return self.experience in NO_EXPERIENCE_VALUES

    def __str__(self) -> str:
        return f"'{self.query}' in {self.location or NATIONWIDE}"


class JobListing(BaseModel):
    """A summary row for one posting, as read from a results view"""

    source: str
    title: str = UNTITLED
    url: str = ""
    company: str = UNDISCLOSED_COMPANY
    location: str = UNKNOWN_LOCATION
    salary: str = SALARY_TBD
    update_date: str = Field(default="", serialization_alias="updateDate")
    status: str = ""

    # Index into the filtered row set for sources without per-row URLs
    position: Optional[int] = Field(default=None, exclude=True)

    @property
    def dedupe_key(self) -> tuple:
        return (self.url, self.title)

    def __str__(self) -> str:
        return f"{self.title} at {self.company} ({self.location})"


class JobDetail(BaseModel):
    """Long-form fields read from a detail view"""

    description: str = NOT_AVAILABLE
    requirements: str = NOT_AVAILABLE
    conditions: str = NOT_AVAILABLE
    process: str = NOT_AVAILABLE


def _new_job_id() -> str:
    return "job_" + uuid.uuid4().hex[:9]


class EnrichedJob(JobListing):
    """A listing combined with its detail fields"""

    id: str = Field(default_factory=_new_job_id)
    detail: JobDetail = Field(default_factory=JobDetail)

    @classmethod
    def from_listing(cls, listing: JobListing, detail: JobDetail, actual_url: str = "") -> "EnrichedJob":
        data = listing.model_dump()
        data["position"] = listing.position
        if actual_url and actual_url != "about:blank":
            data["url"] = actual_url
        return cls(**data, detail=detail)


class MatchResult(BaseModel):
    match: bool
    reason: Optional[str] = None


# === Stream events ===


class _Event(BaseModel):
    def to_line(self) -> str:
        """Serialize as one newline-delimited JSON record"""
        return json.dumps(self.model_dump(mode="json", by_alias=True), ensure_ascii=False) + "\n"


class LogEvent(_Event):
    type: Literal["log"] = "log"
    message: str
    level: LogLevel = "info"


class CaptchaRequiredEvent(_Event):
    type: Literal["captcha_required"] = "captcha_required"
    source: str
    image: str


class JobEvent(_Event):
    type: Literal["job"] = "job"
    job: EnrichedJob


class CompleteEvent(_Event):
    type: Literal["complete"] = "complete"


StreamEvent = Union[LogEvent, CaptchaRequiredEvent, JobEvent, CompleteEvent]


class BatchRequest(FilterCriteria):
    """One batch submission: criteria, sources to crawl and their credentials"""

    databases: List[str] = Field(default_factory=list, alias="sources")
    credentials: Dict[str, Credentials] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _accept_databases_key(cls, data):
        # The web front end posts `databases`; the CLI and newer callers use `sources`
        if isinstance(data, dict) and "databases" in data and "sources" not in data:
            data = dict(data)
            data["sources"] = data.pop("databases")
        return data

    def criteria(self) -> FilterCriteria:
        return FilterCriteria(**self.model_dump(include=set(FilterCriteria.model_fields)))
