"""
Application data models.

An application links one applicant to one job and moves through the review
lifecycle in ``jobportal.core.lifecycle``.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from jobportal.utils.constants import (
    MAX_RESUME_SCORE,
    MIN_RESUME_SCORE,
    ApplicationStatus,
)
from jobportal.utils.timeutils import utcnow

from .base import BaseDocument, EmbeddedModel, PyObjectId


class ResumeArtifact(EmbeddedModel):
    """Reference to a stored resume file."""

    file_id: str
    filename: str
    content_type: str
    size_bytes: int = Field(0, ge=0)


class Application(BaseDocument):
    """Stored application document."""

    job_id: PyObjectId
    applicant_id: PyObjectId
    resume_score: float = Field(0.0, ge=MIN_RESUME_SCORE, le=MAX_RESUME_SCORE)
    status: ApplicationStatus = ApplicationStatus.PENDING
    resume: Optional[ResumeArtifact] = None
    applied_at: datetime = Field(default_factory=utcnow)

    class Settings:
        """MongoDB collection settings."""

        name = "applications"
        indexes = [
            "job_id",
            "applicant_id",
            "status",
            "resume_score",
            "applied_at",
        ]


class ApplicantSummary(EmbeddedModel):
    """Applicant fields shown next to an application."""

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    name: str
    email: str
    phone: Optional[str] = None


class JobSummary(EmbeddedModel):
    """Job fields shown next to an application."""

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    title: str
    location: str = ""
    status: Optional[str] = None


class ApplicationDetail(Application):
    """Application with its applicant and job joined in (None when missing)."""

    applicant: Optional[ApplicantSummary] = None
    job: Optional[JobSummary] = None


class ApplicationFilters(BaseModel):
    """Caller-supplied filters for application listings."""

    status: Optional[ApplicationStatus] = None
    job_id: Optional[PyObjectId] = None
    min_score: Optional[float] = Field(None, ge=MIN_RESUME_SCORE, le=MAX_RESUME_SCORE)


class ResumeDownload(BaseModel):
    """Resume bytes plus the metadata needed to serve them."""

    filename: str
    content_type: str
    data: bytes
