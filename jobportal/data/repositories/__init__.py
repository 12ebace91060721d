"""
Database repositories for job portal data access.

This module provides repository classes for all database collections,
implementing the repository pattern for clean data access. Repositories are
constructed with the ``DocumentStore`` they operate on.
"""

# Base repository
from .base import BaseRepository

# Entity repositories
from .user_repository import UserRepository
from .job_repository import JobRepository
from .application_repository import ApplicationRepository

__all__ = [
    # Base
    "BaseRepository",
    # Entities
    "UserRepository",
    "JobRepository",
    "ApplicationRepository",
]
