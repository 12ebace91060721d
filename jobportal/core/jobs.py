"""
Job posting operations.

HR users manage their own postings, admins manage every posting and the
public sees published postings only.
"""

from typing import Any, Optional

from jobportal.core.boundary import operation
from jobportal.core.principal import Principal
from jobportal.core.scoping import PUBLISHED_ONLY, and_filters, job_filter_query, scope_filter
from jobportal.data.models.job import (
    Job,
    JobCreate,
    JobFilters,
    JobUpdate,
    JobWithCreator,
    PublishedJob,
)
from jobportal.data.models.pagination import Page, PageParams
from jobportal.data.repositories.job_repository import JobRepository
from jobportal.utils.constants import JobStatus, ResourceKind
from jobportal.utils.exceptions import ForbiddenException, NotFoundException, ValidationException
from jobportal.utils.logger import AuditType, audit_log, get_logger

logger = get_logger(__name__)


class JobService:
    """Create, list, update, publish and delete job postings."""

    def __init__(self, jobs: JobRepository) -> None:
        self._jobs = jobs

    @staticmethod
    def _require_staff(principal: Optional[Principal]) -> Principal:
        if principal is None or not principal.is_staff:
            raise ForbiddenException("Only HR and admin users can manage jobs")
        return principal

    async def _owned_job(self, principal: Principal, job_id: Any) -> Job:
        """A job the principal may write; others look absent."""
        object_id = self._jobs.parse_id(job_id)
        job = None
        if object_id is not None:
            job = await self._jobs.find_one(
                and_filters(scope_filter(principal, ResourceKind.JOB), {"_id": object_id})
            )
        if job is None:
            raise NotFoundException("Job", job_id)
        return job

    # -------------------------------------------------------------------------
    # Staff operations
    # -------------------------------------------------------------------------

    @operation("create_job")
    async def create_job(self, principal: Principal, data: JobCreate | dict[str, Any]) -> Job:
        self._require_staff(principal)
        if not isinstance(data, JobCreate):
            data = JobCreate.model_validate(data)

        job = Job(**data.model_dump(), created_by=principal.id)
        job = await self._jobs.create(job)
        logger.info(f"Job created: {job.id} by {principal.id}")
        return job

    @operation("list_jobs")
    async def list_jobs(
        self,
        principal: Principal,
        filters: Optional[JobFilters] = None,
        params: Optional[PageParams] = None,
    ) -> Page[JobWithCreator]:
        """Jobs within scope, newest first, with their creator."""
        self._require_staff(principal)
        params = params or PageParams()
        query = and_filters(scope_filter(principal, ResourceKind.JOB), job_filter_query(filters))
        rows, total = await self._jobs.list_with_creator(query, params)
        items = [JobWithCreator.model_validate(row) for row in rows]
        return Page[JobWithCreator].build(items, total, params)

    @operation("get_job")
    async def get_job(self, principal: Principal, job_id: Any) -> JobWithCreator:
        self._require_staff(principal)
        job = await self._owned_job(principal, job_id)
        row = await self._jobs.get_with_creator({"_id": job.id})
        if row is None:
            raise NotFoundException("Job", job_id)
        return JobWithCreator.model_validate(row)

    @operation("update_job")
    async def update_job(
        self, principal: Principal, job_id: Any, patch: JobUpdate | dict[str, Any]
    ) -> Job:
        """Apply a partial update; only the creator or an admin may update."""
        self._require_staff(principal)
        if not isinstance(patch, JobUpdate):
            patch = JobUpdate.model_validate(patch)

        job = await self._owned_job(principal, job_id)
        fields = patch.to_update_fields()
        if not fields:
            return job

        updated = await self._jobs.update(job.id, fields)
        if updated is None:
            raise NotFoundException("Job", job_id)
        logger.info(f"Job updated: {job.id} fields={sorted(fields)}")
        return updated

    @operation("publish_job")
    async def publish_job(
        self,
        principal: Principal,
        job_id: Any,
        status: JobStatus = JobStatus.PUBLISHED,
    ) -> Job:
        """Set a job's status (draft, published or closed)."""
        self._require_staff(principal)
        try:
            status = JobStatus(status)
        except ValueError:
            raise ValidationException.for_field("status", f"Invalid status: {status}") from None

        job = await self._owned_job(principal, job_id)
        updated = await self._jobs.update(job.id, {"status": status.value})
        if updated is None:
            raise NotFoundException("Job", job_id)
        logger.info(f"Job {job.id} status set to {status.value}")
        return updated

    @operation("delete_job")
    async def delete_job(self, principal: Principal, job_id: Any) -> None:
        """Hard delete. Applications to the job are left in place."""
        self._require_staff(principal)
        job = await self._owned_job(principal, job_id)
        if not await self._jobs.delete(job.id):
            raise NotFoundException("Job", job_id)
        audit_log(
            "job_deleted",
            AuditType.DELETION,
            actor=principal.id,
            job_id=job.id,
        )

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    @operation("list_published_jobs")
    async def list_published_jobs(
        self,
        filters: Optional[JobFilters] = None,
        params: Optional[PageParams] = None,
    ) -> Page[PublishedJob]:
        """Published jobs for anyone, newest first; the status filter is ignored."""
        params = params or PageParams()
        job_filters = job_filter_query(filters)
        job_filters.pop("status", None)
        query = and_filters(PUBLISHED_ONLY, job_filters)
        rows, total = await self._jobs.list_with_creator(query, params, public=True)
        items = [PublishedJob.model_validate(row) for row in rows]
        return Page[PublishedJob].build(items, total, params)

    @operation("get_published_job")
    async def get_published_job(self, job_id: Any) -> PublishedJob:
        object_id = self._jobs.parse_id(job_id)
        row = None
        if object_id is not None:
            row = await self._jobs.get_with_creator(
                and_filters(PUBLISHED_ONLY, {"_id": object_id}), public=True
            )
        if row is None:
            raise NotFoundException("Job", job_id)
        return PublishedJob.model_validate(row)
