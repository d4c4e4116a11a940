# talentmatch/schemas/profile.py
# -----------------------------------------------------------------------------
# Structured records produced by the profile extractor.
# - Every scalar is optional and every collection defaults to empty: a field the
#   model did not return stays null/empty and is never guessed.
# - Lifecycle enums (pipeline_stage, job status) fall back to their first state
#   when missing or invalid, so partially written records still load.
# -----------------------------------------------------------------------------
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PipelineStage(str, Enum):
    NEW_CANDIDATE = "new_candidate"
    SCREENING = "screening"
    INTERVIEW = "interview"
    OFFER = "offer"
    HIRED = "hired"
    REJECTED = "rejected"


class CandidateStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BLOCKED = "blocked"
    UNAVAILABLE = "unavailable"


class JobStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    CLOSED = "closed"
    HALTED = "halted"


class JobType(str, Enum):
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    FREELANCE = "freelance"
    REMOTE = "remote"


def _lenient_enum(enum_cls, value: Any, default):
    """Return the enum member for `value`, or `default` when it is missing/unknown."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        key = value.strip().lower().replace(" ", "_")
        for member in enum_cls:
            if member.value == key or member.value.replace("-", "_") == key:
                return member
    return default


def validate_pipeline_stage(value: Any) -> PipelineStage:
    return _lenient_enum(PipelineStage, value, PipelineStage.NEW_CANDIDATE)


def validate_candidate_status(value: Any) -> CandidateStatus:
    return _lenient_enum(CandidateStatus, value, CandidateStatus.ACTIVE)


def validate_job_status(value: Any) -> JobStatus:
    return _lenient_enum(JobStatus, value, JobStatus.DRAFT)


def validate_job_type(value: Any) -> Optional[JobType]:
    return _lenient_enum(JobType, value, None)


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None


def _str_list(value: Any) -> List[str]:
    """Coerce to a list of non-empty strings, keeping order and duplicates."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    out = []
    for item in value:
        s = _clean_str(item) if isinstance(item, (str, int, float)) else None
        if s:
            out.append(s)
    return out


def _object_list(value: Any) -> List[Dict[str, Any]]:
    """Keep only object entries; anything else in a record list is dropped."""
    if value is None:
        return []
    if isinstance(value, dict):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, dict)]


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=False)


class EducationEntry(_Record):
    institution: Optional[str] = None
    degree: Optional[str] = None
    field_of_study: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    grade: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _scalars(cls, v):
        return _clean_str(v)


class ExperienceEntry(_Record):
    company: Optional[str] = None
    title: Optional[str] = None
    location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    current: bool = False
    responsibilities: List[str] = Field(default_factory=list)

    @field_validator("company", "title", "location", "start_date", "end_date", mode="before")
    @classmethod
    def _scalars(cls, v):
        return _clean_str(v)

    @field_validator("current", mode="before")
    @classmethod
    def _current(cls, v):
        if v is None:
            return False
        if isinstance(v, str):
            return v.strip().lower() in {"true", "yes", "1", "current", "present"}
        return bool(v)

    @field_validator("responsibilities", mode="before")
    @classmethod
    def _responsibilities(cls, v):
        return _str_list(v)


class ProjectEntry(_Record):
    name: Optional[str] = None
    description: Optional[str] = None
    technologies: List[str] = Field(default_factory=list)
    url: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    @field_validator("name", "description", "url", "start_date", "end_date", mode="before")
    @classmethod
    def _scalars(cls, v):
        return _clean_str(v)

    @field_validator("technologies", mode="before")
    @classmethod
    def _technologies(cls, v):
        return _str_list(v)


class PublicationEntry(_Record):
    title: Optional[str] = None
    publisher: Optional[str] = None
    date: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _scalars(cls, v):
        return _clean_str(v)


class CandidateProfile(_Record):
    """Structured candidate record decoded from model output."""
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    resume_summary: Optional[str] = None
    objective: Optional[str] = None

    skills: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    other_links: List[str] = Field(default_factory=list)
    social_media: Dict[str, str] = Field(default_factory=dict)

    education: List[EducationEntry] = Field(default_factory=list)
    experience: List[ExperienceEntry] = Field(default_factory=list)
    projects: List[ProjectEntry] = Field(default_factory=list)
    publications: List[PublicationEntry] = Field(default_factory=list)

    pipeline_stage: PipelineStage = PipelineStage.NEW_CANDIDATE

    @field_validator("full_name", "email", "phone", "linkedin_url", "resume_summary", "objective", mode="before")
    @classmethod
    def _scalars(cls, v):
        return _clean_str(v)

    @field_validator("skills", "languages", "other_links", mode="before")
    @classmethod
    def _lists(cls, v):
        return _str_list(v)

    @field_validator("social_media", mode="before")
    @classmethod
    def _social(cls, v):
        if not isinstance(v, dict):
            return {}
        return {str(k).strip(): _clean_str(val) for k, val in v.items() if str(k).strip() and _clean_str(val)}

    @field_validator("education", "experience", "projects", "publications", mode="before")
    @classmethod
    def _records(cls, v):
        return _object_list(v)

    @field_validator("pipeline_stage", mode="before")
    @classmethod
    def _stage(cls, v):
        return validate_pipeline_stage(v)

    def to_row_fields(self) -> Dict[str, Any]:
        """Plain-JSON column values for a Candidate row."""
        data = self.model_dump(mode="json")
        data["pipeline_stage"] = self.pipeline_stage.value
        return data


class JobProfile(_Record):
    """Structured job record decoded from model output."""
    title: Optional[str] = None
    description: Optional[str] = None
    requirements: List[str] = Field(default_factory=list)
    responsibilities: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    salary_range: Optional[str] = None
    job_type: Optional[JobType] = None
    status: JobStatus = JobStatus.DRAFT

    @field_validator("title", "description", "location", "salary_range", mode="before")
    @classmethod
    def _scalars(cls, v):
        return _clean_str(v)

    @field_validator("requirements", "responsibilities", mode="before")
    @classmethod
    def _lists(cls, v):
        return _str_list(v)

    @field_validator("job_type", mode="before")
    @classmethod
    def _job_type(cls, v):
        return validate_job_type(v)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return validate_job_status(v)

    def to_row_fields(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        data["status"] = self.status.value
        data["job_type"] = self.job_type.value if self.job_type else None
        return data


StructuredRecord = Union[CandidateProfile, JobProfile]
