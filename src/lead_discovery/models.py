"""Pydantic models for lead discovery data structures."""

import math
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MIN_SIZE = 1
MAX_SIZE = 30
DEFAULT_SIZE = 10

CONTACT_COLUMNS = [
    "Full Name",
    "Title",
    "Company",
    "Email",
    "Email Status",
    "Phone",
    "Location",
    "LinkedIn",
    "Company Domain",
    "Company LinkedIn",
]

STATUS_COLUMNS = ["Status", "List ID"]


def clamp_size(value: Any) -> int:
    """Clamp a requested result size into [MIN_SIZE, MAX_SIZE].

    Missing, zero and non-numeric sizes fall back to DEFAULT_SIZE.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_SIZE
    if isinstance(value, float) and not math.isfinite(value):
        return DEFAULT_SIZE
    size = int(value)
    if size == 0:
        return DEFAULT_SIZE
    return max(MIN_SIZE, min(size, MAX_SIZE))


class Provider(str, Enum):
    """Which provider satisfied a request."""

    PRIMARY = "primary"
    FALLBACK = "fallback"


class JobStatus(str, Enum):
    """Lifecycle states of a prospect list job."""

    CREATED = "created"
    POLLING = "polling"
    COMPLETE = "complete"
    FAILED = "failed"
    TIMEOUT = "timeout"


TERMINAL_STATUSES = {JobStatus.COMPLETE, JobStatus.FAILED, JobStatus.TIMEOUT}


class UserLocation(BaseModel):
    """Caller coordinates used as a soft location hint."""

    lat: float
    lng: float
    label: Optional[str] = None


class SearchRequest(BaseModel):
    """A lead table request as received from the caller."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(default="", description="Free-text lead request")
    size: int = Field(default=DEFAULT_SIZE, description="Number of contacts wanted")
    existing_job_id: Optional[str] = Field(
        default=None, alias="listId", description="Prospect list to resume polling"
    )
    user_location: Optional[UserLocation] = Field(
        default=None, alias="userLocation", description="Optional location hint"
    )

    @field_validator("prompt", mode="before")
    @classmethod
    def strip_prompt(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("size", mode="before")
    @classmethod
    def clamp(cls, v: Any) -> int:
        return clamp_size(v)

    @field_validator("existing_job_id", mode="before")
    @classmethod
    def coerce_job_id(cls, v: Any) -> Optional[str]:
        if isinstance(v, bool):
            return None
        if isinstance(v, int):
            return str(v)
        if isinstance(v, str) and v.strip():
            return v.strip()
        return None

    @field_validator("user_location", mode="before")
    @classmethod
    def drop_malformed_location(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return None
        lat, lng = v.get("lat"), v.get("lng")
        for coord in (lat, lng):
            if isinstance(coord, bool) or not isinstance(coord, (int, float)):
                return None
        return v

    @model_validator(mode="after")
    def require_prompt_or_job(self) -> "SearchRequest":
        if not self.prompt and not self.existing_job_id:
            raise ValueError("Missing prompt")
        return self


class ProspectSearchRequest(BaseModel):
    """Synchronous prospect search request."""

    filters: Any = None
    size: int = DEFAULT_SIZE

    @field_validator("size", mode="before")
    @classmethod
    def clamp(cls, v: Any) -> int:
        return clamp_size(v)


class ValueHash(BaseModel):
    """A `{v}` filter entry."""

    v: str


class LocationHash(BaseModel):
    """A `{v, b}` location filter entry; `b` is the location bucket."""

    v: str
    b: str = "city"


class FilterSet(BaseModel):
    """Complete Wiza prospect filter object.

    Every key is always present; the provider rejects partial filter sets.
    """

    first_name: List[str] = Field(default_factory=list)
    last_name: List[str] = Field(default_factory=list)
    job_title: List[ValueHash] = Field(default_factory=list)
    job_title_level: List[str] = Field(default_factory=list)
    job_role: List[str] = Field(default_factory=list)
    job_sub_role: List[str] = Field(default_factory=list)
    location: Dict[str, Any] = Field(default_factory=dict)
    skill: List[str] = Field(default_factory=list)
    school: List[str] = Field(default_factory=list)
    major: List[str] = Field(default_factory=list)
    linkedin_slug: List[str] = Field(default_factory=list)
    job_company: List[str] = Field(default_factory=list)
    past_company: List[str] = Field(default_factory=list)
    company_location: List[LocationHash] = Field(default_factory=list)
    company_industry: List[str] = Field(default_factory=list)
    company_size: List[str] = Field(default_factory=list)
    revenue: List[str] = Field(default_factory=list)
    company_type: List[str] = Field(default_factory=list)
    company_summary: List[str] = Field(default_factory=list)
    year_founded_start: str = ""
    year_founded_end: str = ""


FILTER_KEYS = tuple(FilterSet.model_fields)


class ProspectJob(BaseModel):
    """An asynchronous prospect list job tracked until a terminal state."""

    id: str
    status: JobStatus = JobStatus.CREATED
    provider_name: str = "wiza"
    provider_status: str = Field(default="", description="Raw status string from the provider")
    name: str = ""
    attempts: int = 0
    payload: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition(self, status: JobStatus) -> None:
        """Move the job to ``status``; terminal jobs never change again."""
        if self.is_terminal:
            raise ValueError(
                f"Job {self.id} is already {self.status.value}, cannot move to {status.value}"
            )
        self.status = status


class NormalizedContact(BaseModel):
    """Canonical contact row; every field is a string, blank when unknown."""

    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(default="", alias="fullName")
    title: str = ""
    company: str = ""
    email: str = ""
    email_status: str = Field(default="", alias="emailStatus")
    phone: str = ""
    location: str = ""
    linkedin: str = ""
    company_domain: str = Field(default="", alias="companyDomain")
    company_linkedin: str = Field(default="", alias="companyLinkedIn")

    def to_row(self) -> List[str]:
        """Render the contact in CONTACT_COLUMNS order."""
        return [
            self.full_name,
            self.title,
            self.company,
            self.email,
            self.email_status,
            self.phone,
            self.location,
            self.linkedin,
            self.company_domain,
            self.company_linkedin,
        ]


class TableSpec(BaseModel):
    """Table returned to the caller."""

    title: str
    description: str = ""
    columns: List[str]
    rows: List[List[str]] = Field(default_factory=list)

    @model_validator(mode="after")
    def rows_match_columns(self) -> "TableSpec":
        width = len(self.columns)
        for index, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(
                    f"Row {index} has {len(row)} cells, expected {width}"
                )
        return self


class JobMeta(BaseModel):
    """Primary provider job details reported alongside a table."""

    model_config = ConfigDict(populate_by_name=True)

    total: Optional[int] = None
    returned: Optional[int] = None
    filters: Optional[Dict[str, Any]] = None
    list_id: Optional[str] = Field(default=None, alias="listId")
    list_status: Optional[str] = Field(default=None, alias="listStatus")


class LeadTableResponse(BaseModel):
    """Response envelope for successful and in-progress lead tables."""

    model_config = ConfigDict(populate_by_name=True)

    table_spec: TableSpec = Field(..., alias="tableSpec")
    provider: Optional[Provider] = None
    job_meta: Optional[JobMeta] = Field(default=None, alias="jobMeta")


class ErrorResponse(BaseModel):
    """Response envelope for failures."""

    error: str
    details: Any = None
