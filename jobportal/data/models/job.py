"""
Job posting data models.

Defines the stored job document, the create and patch schemas, and the
filters accepted by job listings.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from jobportal.utils.constants import JobStatus

from .base import BaseDocument, EmbeddedModel, PatchModel, PyObjectId
from .user import UserPublic


def normalize_skills(skills: list[str]) -> list[str]:
    """Lower-case and trim skill tokens, dropping blanks and repeats."""
    normalized: list[str] = []
    for skill in skills:
        token = skill.strip().lower()
        if token and token not in normalized:
            normalized.append(token)
    return normalized


class ExperienceRange(EmbeddedModel):
    """Required years of experience."""

    min: float = Field(0, ge=0)
    max: float = Field(0, ge=0)

    @model_validator(mode="after")
    def check_bounds(self) -> "ExperienceRange":
        if self.max < self.min:
            raise ValueError("experience.max must not be lower than experience.min")
        return self


class Job(BaseDocument):
    """
    Main job posting model.

    Owned by its creator (an HR or admin user) for writes; readable by the
    public only while published.
    """

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    required_skills: list[str] = Field(default_factory=list)
    experience: ExperienceRange = Field(default_factory=ExperienceRange)
    location: str = ""
    salary: Optional[float] = Field(None, ge=0)
    status: JobStatus = JobStatus.DRAFT
    created_by: PyObjectId

    @field_validator("required_skills")
    @classmethod
    def normalize_required_skills(cls, v: list[str]) -> list[str]:
        return normalize_skills(v)

    @property
    def is_published(self) -> bool:
        return self.status == JobStatus.PUBLISHED

    class Settings:
        """MongoDB collection settings."""

        name = "jobs"
        indexes = [
            "status",
            "location",
            "required_skills",
            "created_at",
            "created_by",
        ]


class JobWithCreator(BaseDocument):
    """Job as listed, with its creator joined in (None if the creator is gone)."""

    title: str
    description: str
    required_skills: list[str] = Field(default_factory=list)
    experience: ExperienceRange = Field(default_factory=ExperienceRange)
    location: str = ""
    salary: Optional[float] = None
    status: JobStatus
    created_by: Optional[PyObjectId] = None
    creator: Optional[UserPublic] = None


class PublicCreator(EmbeddedModel):
    """Creator details shown on public listings (no email)."""

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    name: str


class PublishedJob(BaseDocument):
    """Job as shown to the public."""

    title: str
    description: str
    required_skills: list[str] = Field(default_factory=list)
    experience: ExperienceRange = Field(default_factory=ExperienceRange)
    location: str = ""
    salary: Optional[float] = None
    status: JobStatus
    creator: Optional[PublicCreator] = None


class JobCreate(BaseModel):
    """Schema for creating a new job posting."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    required_skills: list[str] = Field(..., min_length=1)
    experience: ExperienceRange = Field(default_factory=ExperienceRange)
    location: str = ""
    salary: Optional[float] = Field(None, ge=0)
    status: JobStatus = JobStatus.DRAFT

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Must not be blank")
        return stripped

    @field_validator("required_skills")
    @classmethod
    def normalize_required_skills(cls, v: list[str]) -> list[str]:
        normalized = normalize_skills(v)
        if not normalized:
            raise ValueError("At least one required skill is needed")
        return normalized

    @field_validator("location")
    @classmethod
    def strip_location(cls, v: str) -> str:
        return v.strip()


class JobUpdate(PatchModel):
    """Schema for updating an existing job posting."""

    NULLABLE_FIELDS = frozenset({"salary"})

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    required_skills: Optional[list[str]] = None
    experience: Optional[ExperienceRange] = None
    location: Optional[str] = None
    salary: Optional[float] = Field(None, ge=0)
    status: Optional[JobStatus] = None

    @field_validator("required_skills")
    @classmethod
    def normalize_required_skills(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return v
        normalized = normalize_skills(v)
        if not normalized:
            raise ValueError("At least one required skill is needed")
        return normalized


class JobFilters(BaseModel):
    """Caller-supplied filters for job listings."""

    status: Optional[JobStatus] = None
    location: Optional[str] = None
    skills: Optional[list[str]] = None
    experience: Optional[float] = Field(None, ge=0)

    @field_validator("skills", mode="before")
    @classmethod
    def split_skills(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.split(",")
        return v

    @field_validator("skills")
    @classmethod
    def normalize_filter_skills(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return normalize_skills(v) if v else None
