"""
Application-wide constants for the job portal.

This module contains all constant values used throughout the application.
"""

from enum import Enum
from typing import Final


# =============================================================================
# Application Constants
# =============================================================================

APP_NAME: Final[str] = "jobportal"
APP_DISPLAY_NAME: Final[str] = "Job Portal Recruitment Tracker"
VERSION: Final[str] = "0.1.0"


# =============================================================================
# Collections
# =============================================================================

USERS_COLLECTION: Final[str] = "users"
JOBS_COLLECTION: Final[str] = "jobs"
APPLICATIONS_COLLECTION: Final[str] = "applications"


# =============================================================================
# Pagination & Ranking
# =============================================================================

DEFAULT_PAGE: Final[int] = 1
DEFAULT_PAGE_LIMIT: Final[int] = 10

TOP_SKILLS_LIMIT: Final[int] = 10
TOP_JOBS_LIMIT: Final[int] = 5
TOP_HRS_LIMIT: Final[int] = 5
RECENT_ACTIVITIES_LIMIT: Final[int] = 10

# Trailing window for "applications this week"
APPLICATIONS_WINDOW_DAYS: Final[int] = 7


# =============================================================================
# Scores
# =============================================================================

MIN_RESUME_SCORE: Final[float] = 0.0
MAX_RESUME_SCORE: Final[float] = 100.0


# =============================================================================
# Enums
# =============================================================================


class UserRole(str, Enum):
    """Role of a user account."""

    APPLICANT = "applicant"
    HR = "hr"
    ADMIN = "admin"

    @property
    def is_staff(self) -> bool:
        return self in (UserRole.HR, UserRole.ADMIN)


class JobStatus(str, Enum):
    """Status of a job posting."""

    DRAFT = "draft"
    PUBLISHED = "published"
    CLOSED = "closed"


class ApplicationStatus(str, Enum):
    """Status of an application in the review pipeline."""

    PENDING = "pending"
    REVIEWED = "reviewed"
    SHORTLISTED = "shortlisted"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    SELECTED = "selected"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ApplicationStatus.SELECTED,
            ApplicationStatus.REJECTED,
            ApplicationStatus.WITHDRAWN,
        )


class ResourceKind(str, Enum):
    """Kinds of records a visibility filter can be derived for."""

    JOB = "job"
    APPLICATION = "application"
