"""
Application repository for the job portal.

Provides data access for applications. The unique index on
``(job_id, applicant_id)`` is the only guard against duplicate
applications: ``create`` surfaces the store's ``DuplicateKeyError``.
"""

from typing import Any, Optional

from jobportal.data.models.application import Application
from jobportal.data.models.pagination import PageParams
from jobportal.data.pipeline import Pipeline
from jobportal.utils.constants import (
    APPLICATIONS_COLLECTION,
    JOBS_COLLECTION,
    USERS_COLLECTION,
    ApplicationStatus,
)
from jobportal.utils.logger import get_logger

from .base import BaseRepository

logger = get_logger(__name__)

# Best candidates first, then the most recent
REVIEW_SORT = {"resume_score": -1, "applied_at": -1, "_id": -1}
RECENT_SORT = {"applied_at": -1, "_id": -1}


class ApplicationRepository(BaseRepository[Application]):
    """Repository for application document operations."""

    @property
    def collection_name(self) -> str:
        return APPLICATIONS_COLLECTION

    @property
    def model_class(self) -> type[Application]:
        return Application

    # -------------------------------------------------------------------------
    # Status Updates
    # -------------------------------------------------------------------------

    async def compare_and_set_status(
        self,
        id_value: Any,
        current: ApplicationStatus,
        target: ApplicationStatus,
    ) -> Optional[Application]:
        """
        Move an application from ``current`` to ``target``.

        Returns None if the application no longer has status ``current``.
        """
        object_id = self.parse_id(id_value)
        if object_id is None:
            return None
        return await self.update_where(
            {"_id": object_id, "status": ApplicationStatus(current).value},
            {"status": ApplicationStatus(target).value},
        )

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    async def list_detailed(
        self,
        query: dict[str, Any],
        params: PageParams,
        sort: Optional[dict[str, int]] = None,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        One page of applications with applicant and job joined in.

        Applications whose applicant or job has been deleted are kept; the
        missing side is left out of the row.
        """
        pipeline = (
            Pipeline()
            .match(query)
            .sort(sort or REVIEW_SORT)
            .skip(params.skip)
            .limit(params.limit)
            .join_one(USERS_COLLECTION, "applicant_id", "applicant", preserve_missing=True)
            .join_one(JOBS_COLLECTION, "job_id", "job", preserve_missing=True)
            .project({"applicant.password_hash": 0})
        )
        rows = await self.aggregate(pipeline)
        total = await self.count(query)
        return rows, total

    # -------------------------------------------------------------------------
    # Analytics
    # -------------------------------------------------------------------------

    async def count_by_status(self, query: Optional[dict[str, Any]] = None) -> dict[str, int]:
        """Application counts for every status within ``query``, zero-filled."""
        counts = await self.count_by("status", query)
        return {status.value: counts.get(status.value, 0) for status in ApplicationStatus}

    async def get_average_score(self, query: Optional[dict[str, Any]] = None) -> Optional[float]:
        """Mean ``resume_score``; None when nothing matches."""
        pipeline = (
            Pipeline()
            .match(query or {})
            .group(None, avg_score={"$avg": "$resume_score"})
        )
        results = await self.aggregate(pipeline)
        if results:
            return results[0]["avg_score"]
        return None

    async def get_top_jobs(self, query: dict[str, Any], limit: int) -> list[dict[str, Any]]:
        """
        Jobs ranked by application count.

        Applications whose job no longer exists are not ranked. Ties go to
        the lower job id. Returns ``[{"_id", "title", "status", "count"}]``.
        """
        pipeline = (
            Pipeline()
            .match(query)
            .group("$job_id", count={"$sum": 1})
            .join_one(JOBS_COLLECTION, "_id", "job")
            .sort({"count": -1, "_id": 1})
            .limit(limit)
            .project({"_id": 1, "title": "$job.title", "status": "$job.status", "count": 1})
        )
        return await self.aggregate(pipeline)

    async def get_recent(self, limit: int) -> list[dict[str, Any]]:
        """
        Most recent applications with applicant name and job title.

        Rows missing either counterpart are dropped before the limit applies.
        """
        pipeline = (
            Pipeline()
            .sort(RECENT_SORT)
            .join_one(USERS_COLLECTION, "applicant_id", "applicant")
            .join_one(JOBS_COLLECTION, "job_id", "job")
            .limit(limit)
            .project(
                {
                    "_id": 1,
                    "applicant_name": "$applicant.name",
                    "job_title": "$job.title",
                    "status": 1,
                    "applied_at": 1,
                }
            )
        )
        return await self.aggregate(pipeline)
