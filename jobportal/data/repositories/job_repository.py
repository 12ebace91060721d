"""
Job repository for the job portal.

Provides data access operations for job posting documents, including the
listing joins and the analytics pipelines used by the reporting engine.
"""

from typing import Any, Optional

from jobportal.data.models.job import Job
from jobportal.data.models.pagination import PageParams
from jobportal.data.pipeline import Pipeline
from jobportal.utils.constants import JOBS_COLLECTION, USERS_COLLECTION, JobStatus, UserRole
from jobportal.utils.logger import get_logger

from .base import BaseRepository

logger = get_logger(__name__)

# Creator fields never exposed on listings
PRIVATE_CREATOR_FIELDS = ("creator.password_hash",)
# Additionally hidden from public (unauthenticated) listings
PUBLIC_HIDDEN_CREATOR_FIELDS = (
    "creator.email",
    "creator.phone",
    "creator.role",
    "creator.created_by",
    "creator.created_at",
    "creator.updated_at",
)

LISTING_SORT = {"created_at": -1, "_id": -1}


class JobRepository(BaseRepository[Job]):
    """Repository for job posting document operations."""

    @property
    def collection_name(self) -> str:
        return JOBS_COLLECTION

    @property
    def model_class(self) -> type[Job]:
        return Job

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    async def list_with_creator(
        self,
        query: dict[str, Any],
        params: PageParams,
        public: bool = False,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        One page of jobs, newest first, with the creator joined in.

        The creator join keeps jobs whose creator no longer exists; for those
        the ``creator`` field is simply absent.
        """
        hidden = PRIVATE_CREATOR_FIELDS + (PUBLIC_HIDDEN_CREATOR_FIELDS if public else ())
        pipeline = (
            Pipeline()
            .match(query)
            .sort(LISTING_SORT)
            .skip(params.skip)
            .limit(params.limit)
            .join_one(USERS_COLLECTION, "created_by", "creator", preserve_missing=True)
            .project({field: 0 for field in hidden})
        )
        rows = await self.aggregate(pipeline)
        total = await self.count(query)
        return rows, total

    async def get_with_creator(
        self, query: dict[str, Any], public: bool = False
    ) -> Optional[dict[str, Any]]:
        rows, _ = await self.list_with_creator(query, PageParams(page=1, limit=1), public=public)
        return rows[0] if rows else None

    # -------------------------------------------------------------------------
    # Analytics
    # -------------------------------------------------------------------------

    async def count_by_status(self, query: Optional[dict[str, Any]] = None) -> dict[str, int]:
        """Job counts for every status within ``query``, zero-filled."""
        counts = await self.count_by("status", query)
        return {status.value: counts.get(status.value, 0) for status in JobStatus}

    async def get_top_skills(self, query: dict[str, Any], limit: int) -> list[dict[str, Any]]:
        """
        Most requested skills across the matching jobs.

        Returns ``[{"_id": skill, "count": n}, ...]``; ties go to the
        alphabetically lower skill.
        """
        pipeline = (
            Pipeline()
            .match(query)
            .unwind("required_skills")
            .group("$required_skills", count={"$sum": 1})
            .sort({"count": -1, "_id": 1})
            .limit(limit)
        )
        return await self.aggregate(pipeline)

    async def get_most_active_hrs(self, limit: int) -> list[dict[str, Any]]:
        """
        HR users ranked by the number of jobs they created.

        Jobs whose creator is gone, or is not an HR user, do not rank.
        Ties go to the lower user id.
        """
        pipeline = (
            Pipeline()
            .group("$created_by", job_count={"$sum": 1})
            .join_one(USERS_COLLECTION, "_id", "user")
            .match({"user.role": UserRole.HR.value})
            .sort({"job_count": -1, "_id": 1})
            .limit(limit)
            .project({"_id": 1, "name": "$user.name", "email": "$user.email", "job_count": 1})
        )
        return await self.aggregate(pipeline)
