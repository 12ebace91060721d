"""
Visibility and scoping policy.

Derives the base filter that narrows every query and report to the records
a principal may see:

- Jobs: HR users see their own jobs, admins see all jobs, applicants and the
  public see published jobs only.
- Applications: applicants see their own applications; HR users and admins
  see applications to the jobs visible to them.

Caller-supplied filters are compiled separately and AND-ed onto the scope.
"""

import re
from typing import Any, Iterable, Optional

from bson import ObjectId

from jobportal.core.principal import Principal
from jobportal.data.models.application import ApplicationFilters
from jobportal.data.models.job import JobFilters
from jobportal.data.repositories.job_repository import JobRepository
from jobportal.utils.constants import ApplicationStatus, JobStatus, ResourceKind, UserRole
from jobportal.utils.exceptions import ForbiddenException, UnauthenticatedException

Query = dict[str, Any]

PUBLISHED_ONLY: Query = {"status": JobStatus.PUBLISHED.value}


def scope_filter(
    principal: Optional[Principal],
    kind: ResourceKind,
    visible_job_ids: Optional[Iterable[ObjectId]] = None,
) -> Query:
    """
    Base predicate for ``kind`` as seen by ``principal``.

    For staff application scopes the visible job ids must be resolved first
    (see ``ScopingPolicy.visible_job_ids``) and passed in.
    """
    kind = ResourceKind(kind)

    if kind == ResourceKind.JOB:
        if principal is None or principal.role == UserRole.APPLICANT:
            return dict(PUBLISHED_ONLY)
        if principal.role == UserRole.HR:
            return {"created_by": principal.id}
        return {}

    if principal is None:
        raise UnauthenticatedException()
    if principal.role == UserRole.APPLICANT:
        return {"applicant_id": principal.id}
    if visible_job_ids is None:
        raise ValueError("visible_job_ids is required for staff application scope")
    return {"job_id": {"$in": list(visible_job_ids)}}


def and_filters(*filters: Optional[Query]) -> Query:
    """Combine predicates with logical AND; empty ones are dropped."""
    parts = [f for f in filters if f]
    if not parts:
        return {}
    if len(parts) == 1:
        return dict(parts[0])
    return {"$and": parts}


def job_filter_query(filters: Optional[JobFilters]) -> Query:
    """Compile job listing filters into a predicate."""
    if filters is None:
        return {}
    query: Query = {}
    if filters.status:
        query["status"] = JobStatus(filters.status).value
    if filters.location:
        query["location"] = {"$regex": re.escape(filters.location.strip()), "$options": "i"}
    if filters.skills:
        query["required_skills"] = {"$in": filters.skills}
    if filters.experience is not None:
        # Jobs whose minimum requirement the candidate meets
        query["experience.min"] = {"$lte": filters.experience}
    return query


def application_filter_query(filters: Optional[ApplicationFilters]) -> Query:
    """Compile application listing filters into a predicate."""
    if filters is None:
        return {}
    query: Query = {}
    if filters.status:
        query["status"] = ApplicationStatus(filters.status).value
    if filters.job_id is not None:
        query["job_id"] = filters.job_id
    if filters.min_score is not None:
        query["resume_score"] = {"$gte": filters.min_score}
    return query


class ScopingPolicy:
    """Resolves principal-dependent scopes that need a store lookup."""

    def __init__(self, jobs: JobRepository) -> None:
        self._jobs = jobs

    async def visible_job_ids(self, principal: Principal) -> list[ObjectId]:
        """Ids of the jobs whose applications a staff principal may see."""
        if not principal.is_staff:
            raise ForbiddenException("Only HR and admin users can view job applications")
        return await self._jobs.ids(scope_filter(principal, ResourceKind.JOB))

    async def application_scope(self, principal: Principal) -> Query:
        if principal.role == UserRole.APPLICANT:
            return scope_filter(principal, ResourceKind.APPLICATION)
        job_ids = await self.visible_job_ids(principal)
        return scope_filter(principal, ResourceKind.APPLICATION, job_ids)
