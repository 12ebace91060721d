"""
Report result models.

Shapes returned by the reporting engine. Ranking rows come straight from
aggregation pipelines, so they are built from ``{"_id": ..., "count": ...}``
style documents.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .base import PyObjectId


class ReportModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)


class SkillCount(ReportModel):
    skill: str = Field(..., alias="_id")
    count: int


class JobApplicationCount(ReportModel):
    """A job ranked by the number of applications it received."""

    job_id: PyObjectId = Field(..., alias="_id")
    title: str
    status: Optional[str] = None
    count: int


class TopHR(ReportModel):
    """An HR user ranked by the number of jobs they created."""

    user_id: PyObjectId = Field(..., alias="_id")
    name: str
    email: str
    job_count: int


class RecentActivity(ReportModel):
    application_id: PyObjectId = Field(..., alias="_id")
    applicant_name: str
    job_title: str
    status: str
    applied_at: datetime


class JobStats(ReportModel):
    """Job statistics within a principal's scope."""

    total_jobs: int = 0
    jobs_by_status: dict[str, int] = Field(default_factory=dict)
    total_applications: int = 0
    top_skills: list[SkillCount] = Field(default_factory=list)
    top_jobs: list[JobApplicationCount] = Field(default_factory=list)


class DashboardStats(ReportModel):
    total_jobs: int = 0
    jobs_by_status: dict[str, int] = Field(default_factory=dict)
    total_applications: int = 0
    applications_by_status: dict[str, int] = Field(default_factory=dict)
    total_users: int = 0
    users_by_role: dict[str, int] = Field(default_factory=dict)


class QuickStats(ReportModel):
    """Time-windowed counts and the platform-wide average score."""

    jobs_this_month: int = 0
    applications_this_week: int = 0
    shortlisted_today: int = 0
    interviews_scheduled: int = 0
    avg_resume_score: int = 0


class AdminDashboard(ReportModel):
    """Platform-wide dashboard, assembled from independently computed parts."""

    stats: DashboardStats
    quick_stats: QuickStats
    top_jobs: list[JobApplicationCount] = Field(default_factory=list)
    top_skills: list[SkillCount] = Field(default_factory=list)
    top_hrs: list[TopHR] = Field(default_factory=list)
    recent_activities: list[RecentActivity] = Field(default_factory=list)
    generated_at: datetime


class ApplicationStats(ReportModel):
    """Per-status application counts within a principal's scope."""

    total: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    avg_score: float = 0.0
