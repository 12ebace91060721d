"""
Application lifecycle.

Applications move through a fixed state machine:

    pending -> reviewed -> shortlisted -> interview_scheduled -> selected
    {pending, reviewed, shortlisted, interview_scheduled} -> rejected
    {pending, reviewed, shortlisted} -> withdrawn   (applicant only)

selected, rejected and withdrawn are terminal.

Concurrency: no locks are taken. Duplicate applications are stopped by the
unique ``(job_id, applicant_id)`` index alone, and every status change is a
compare-and-set on the status read beforehand, so a concurrent change makes
the later writer fail instead of overwriting.
"""

from typing import Any, Optional

from pymongo.errors import DuplicateKeyError

from jobportal.core.boundary import operation
from jobportal.core.principal import Principal
from jobportal.core.scoping import (
    ScopingPolicy,
    and_filters,
    application_filter_query,
    scope_filter,
)
from jobportal.data.models.application import (
    Application,
    ApplicationDetail,
    ApplicationFilters,
    ResumeArtifact,
    ResumeDownload,
)
from jobportal.data.models.pagination import Page, PageParams
from jobportal.data.models.reports import ApplicationStats
from jobportal.data.repositories.application_repository import (
    RECENT_SORT,
    ApplicationRepository,
)
from jobportal.data.repositories.job_repository import JobRepository
from jobportal.services.resume_storage import ResumeStorage
from jobportal.utils.constants import ApplicationStatus, JobStatus, ResourceKind
from jobportal.utils.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from jobportal.utils.logger import AuditType, audit_log, get_logger
from jobportal.utils.timeutils import utcnow

logger = get_logger(__name__)

S = ApplicationStatus

# Legal staff-driven successors of each status
TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    S.PENDING: frozenset({S.REVIEWED, S.REJECTED}),
    S.REVIEWED: frozenset({S.SHORTLISTED, S.REJECTED}),
    S.SHORTLISTED: frozenset({S.INTERVIEW_SCHEDULED, S.REJECTED}),
    S.INTERVIEW_SCHEDULED: frozenset({S.SELECTED, S.REJECTED}),
    S.SELECTED: frozenset(),
    S.REJECTED: frozenset(),
    S.WITHDRAWN: frozenset(),
}

WITHDRAWABLE: frozenset[ApplicationStatus] = frozenset({S.PENDING, S.REVIEWED, S.SHORTLISTED})


def can_transition(current: ApplicationStatus, target: ApplicationStatus) -> bool:
    """True if staff may move an application from ``current`` to ``target``."""
    return ApplicationStatus(target) in TRANSITIONS[ApplicationStatus(current)]


def can_withdraw(current: ApplicationStatus) -> bool:
    return ApplicationStatus(current) in WITHDRAWABLE


class ApplicationService:
    """
    Applies to jobs, moves applications through their lifecycle and serves
    application listings within the caller's scope.
    """

    def __init__(
        self,
        applications: ApplicationRepository,
        jobs: JobRepository,
        policy: ScopingPolicy,
        resumes: ResumeStorage,
    ) -> None:
        self._applications = applications
        self._jobs = jobs
        self._policy = policy
        self._resumes = resumes

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _require_staff(principal: Principal, action: str) -> None:
        if not principal.is_staff:
            raise ForbiddenException(f"Only HR and admin users can {action}")

    async def _visible_application(self, principal: Principal, application_id: Any) -> Application:
        """Load an application the principal may see; anything else is NotFound."""
        object_id = self._applications.parse_id(application_id)
        if object_id is None:
            raise NotFoundException("Application", application_id)
        scope = await self._policy.application_scope(principal)
        application = await self._applications.find_one(and_filters(scope, {"_id": object_id}))
        if application is None:
            raise NotFoundException("Application", application_id)
        return application

    async def _page(
        self,
        query: dict[str, Any],
        params: Optional[PageParams],
        sort: Optional[dict[str, int]] = None,
    ) -> Page[ApplicationDetail]:
        params = params or PageParams()
        rows, total = await self._applications.list_detailed(query, params, sort)
        items = [ApplicationDetail.model_validate(row) for row in rows]
        return Page[ApplicationDetail].build(items, total, params)

    # -------------------------------------------------------------------------
    # Applying
    # -------------------------------------------------------------------------

    @operation("apply")
    async def apply(
        self,
        principal: Principal,
        job_id: Any,
        resume: Optional[ResumeArtifact],
        resume_score: float = 0.0,
    ) -> Application:
        """
        Apply to a published job.

        Raises:
            ForbiddenException: the principal is not an applicant
            NotFoundException: the job does not exist or is not published
            ConflictException: the applicant already applied to this job
        """
        if not principal.is_applicant:
            raise ForbiddenException("Only applicants can apply for jobs")

        object_id = self._jobs.parse_id(job_id)
        job = None
        if object_id is not None:
            job = await self._jobs.find_one(
                {"_id": object_id, "status": JobStatus.PUBLISHED.value}
            )
        if job is None:
            raise NotFoundException("Job", job_id)

        application = Application(
            job_id=job.id,
            applicant_id=principal.id,
            resume_score=resume_score,
            resume=resume,
            status=ApplicationStatus.PENDING,
            applied_at=utcnow(),
        )
        try:
            application = await self._applications.create(application)
        except DuplicateKeyError as e:
            raise ConflictException("Application", "You have already applied for this job") from e

        logger.info(f"Applicant {principal.id} applied to job {job.id}")
        return application

    @operation("apply_with_upload")
    async def apply_with_upload(
        self,
        principal: Principal,
        job_id: Any,
        data: bytes,
        filename: str,
        content_type: str,
        resume_score: float = 0.0,
    ) -> Application:
        """Store the resume, then apply; the stored file is removed if applying fails."""
        if not principal.is_applicant:
            raise ForbiddenException("Only applicants can apply for jobs")

        artifact = await self._resumes.save(data, filename, content_type)
        try:
            return await self.apply(principal, job_id, artifact, resume_score)
        except Exception:
            await self._resumes.delete(artifact.file_id)
            raise

    # -------------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------------

    @operation("transition")
    async def transition(
        self, principal: Principal, application_id: Any, target: ApplicationStatus
    ) -> Application:
        """
        Move an application to ``target`` (HR/admin only).

        Raises:
            ForbiddenException: the principal is an applicant
            NotFoundException: the application is absent or outside scope
            InvalidTransitionException: ``target`` is not a legal successor,
                or the status changed concurrently
        """
        self._require_staff(principal, "update application status")
        try:
            target = ApplicationStatus(target)
        except ValueError:
            raise ValidationException.for_field("status", f"Invalid status: {target}") from None

        application = await self._visible_application(principal, application_id)
        current = ApplicationStatus(application.status)
        if not can_transition(current, target):
            raise InvalidTransitionException(current.value, target.value)

        updated = await self._applications.compare_and_set_status(application.id, current, target)
        if updated is None:
            latest = await self._applications.get_by_id(application.id)
            if latest is None:
                raise NotFoundException("Application", application_id)
            raise InvalidTransitionException(str(latest.status), target.value)

        audit_log(
            "application_transitioned",
            AuditType.TRANSITION,
            actor=principal.id,
            application_id=application.id,
            from_status=current,
            to_status=target,
            actor_role=principal.role,
        )
        return updated

    @operation("withdraw")
    async def withdraw(self, principal: Principal, application_id: Any) -> Application:
        """
        Withdraw the caller's own application.

        Raises:
            NotFoundException: no such application
            ForbiddenException: the caller is not the owning applicant
            InvalidTransitionException: the application is past shortlisting
                or already closed
        """
        application = await self._applications.get_by_id(application_id)
        if application is None:
            raise NotFoundException("Application", application_id)
        if not principal.is_applicant or application.applicant_id != principal.id:
            raise ForbiddenException("Only the applicant can withdraw this application")

        current = ApplicationStatus(application.status)
        if not can_withdraw(current):
            raise InvalidTransitionException(current.value, S.WITHDRAWN.value)

        updated = await self._applications.compare_and_set_status(
            application.id, current, S.WITHDRAWN
        )
        if updated is None:
            latest = await self._applications.get_by_id(application.id)
            if latest is None:
                raise NotFoundException("Application", application_id)
            raise InvalidTransitionException(str(latest.status), S.WITHDRAWN.value)

        audit_log(
            "application_withdrawn",
            AuditType.TRANSITION,
            actor=principal.id,
            application_id=application.id,
            from_status=current,
        )
        return updated

    @operation("delete_application")
    async def delete(self, principal: Principal, application_id: Any) -> None:
        """Hard-delete an application (admin only). The resume file is kept."""
        if not principal.is_admin:
            raise ForbiddenException("Only admins can delete applications")
        if not await self._applications.delete(application_id):
            raise NotFoundException("Application", application_id)
        audit_log(
            "application_deleted",
            AuditType.DELETION,
            actor=principal.id,
            application_id=application_id,
        )

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    @operation("list_my_applications")
    async def list_mine(
        self, principal: Principal, params: Optional[PageParams] = None
    ) -> Page[ApplicationDetail]:
        """The applicant's own applications, newest first."""
        if not principal.is_applicant:
            raise ForbiddenException("Only applicants have applications of their own")
        query = scope_filter(principal, ResourceKind.APPLICATION)
        return await self._page(query, params, RECENT_SORT)

    @operation("list_applications")
    async def list_applications(
        self,
        principal: Principal,
        filters: Optional[ApplicationFilters] = None,
        params: Optional[PageParams] = None,
    ) -> Page[ApplicationDetail]:
        """Applications within scope, best score first."""
        self._require_staff(principal, "view applications")
        scope = await self._policy.application_scope(principal)
        return await self._page(and_filters(scope, application_filter_query(filters)), params)

    @operation("list_applications_for_job")
    async def list_for_job(
        self,
        principal: Principal,
        job_id: Any,
        filters: Optional[ApplicationFilters] = None,
        params: Optional[PageParams] = None,
    ) -> Page[ApplicationDetail]:
        """Applications to one job the principal can see."""
        self._require_staff(principal, "view applications")
        object_id = self._jobs.parse_id(job_id)
        job = None
        if object_id is not None:
            job = await self._jobs.find_one(
                and_filters(scope_filter(principal, ResourceKind.JOB), {"_id": object_id})
            )
        if job is None:
            raise NotFoundException("Job", job_id)
        query = and_filters({"job_id": job.id}, application_filter_query(filters))
        return await self._page(query, params)

    @operation("get_application")
    async def get(self, principal: Principal, application_id: Any) -> ApplicationDetail:
        """One application with applicant and job details."""
        application = await self._visible_application(principal, application_id)
        rows, _ = await self._applications.list_detailed(
            {"_id": application.id}, PageParams(page=1, limit=1)
        )
        if not rows:
            raise NotFoundException("Application", application_id)
        return ApplicationDetail.model_validate(rows[0])

    @operation("download_resume")
    async def download_resume(self, principal: Principal, application_id: Any) -> ResumeDownload:
        self._require_staff(principal, "download resumes")
        application = await self._visible_application(principal, application_id)
        if application.resume is None:
            raise NotFoundException("Resume", application_id)
        data = await self._resumes.open(application.resume.file_id)
        audit_log(
            "resume_downloaded",
            AuditType.ACCESS,
            actor=principal.id,
            application_id=application.id,
            file_id=application.resume.file_id,
        )
        return ResumeDownload(
            filename=application.resume.filename,
            content_type=application.resume.content_type,
            data=data,
        )

    @operation("application_stats")
    async def application_stats(self, principal: Principal) -> ApplicationStats:
        """Per-status counts and the average score within scope."""
        self._require_staff(principal, "view application statistics")
        scope = await self._policy.application_scope(principal)
        by_status = await self._applications.count_by_status(scope)
        avg_score = await self._applications.get_average_score(scope)
        return ApplicationStats(
            total=sum(by_status.values()),
            by_status=by_status,
            avg_score=round(avg_score or 0.0, 2),
        )
