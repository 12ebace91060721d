"""
Pydantic data models and schemas for the job portal.

This module provides all data models used throughout the application,
including database documents, embedded models, patch schemas and report
results.
"""

# Base models
from .base import BaseDocument, EmbeddedModel, PatchModel, PyObjectId, TimestampMixin

# User models
from .user import StaffUserCreate, User, UserPublic, UserRegister, UserUpdate

# Job models
from .job import (
    ExperienceRange,
    Job,
    JobCreate,
    JobFilters,
    JobUpdate,
    JobWithCreator,
    PublicCreator,
    PublishedJob,
)

# Application models
from .application import (
    ApplicantSummary,
    Application,
    ApplicationDetail,
    ApplicationFilters,
    JobSummary,
    ResumeArtifact,
    ResumeDownload,
)

# Report models
from .reports import (
    AdminDashboard,
    ApplicationStats,
    DashboardStats,
    JobApplicationCount,
    JobStats,
    QuickStats,
    RecentActivity,
    SkillCount,
    TopHR,
)

# Pagination
from .pagination import Page, PageParams

__all__ = [
    # Base
    "BaseDocument",
    "EmbeddedModel",
    "PatchModel",
    "PyObjectId",
    "TimestampMixin",
    # User
    "StaffUserCreate",
    "User",
    "UserPublic",
    "UserRegister",
    "UserUpdate",
    # Job
    "ExperienceRange",
    "Job",
    "JobCreate",
    "JobFilters",
    "JobUpdate",
    "JobWithCreator",
    "PublicCreator",
    "PublishedJob",
    # Application
    "ApplicantSummary",
    "Application",
    "ApplicationDetail",
    "ApplicationFilters",
    "JobSummary",
    "ResumeArtifact",
    "ResumeDownload",
    # Reports
    "AdminDashboard",
    "ApplicationStats",
    "DashboardStats",
    "JobApplicationCount",
    "JobStats",
    "QuickStats",
    "RecentActivity",
    "SkillCount",
    "TopHR",
    # Pagination
    "Page",
    "PageParams",
]
