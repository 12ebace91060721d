"""
Reporting and aggregation engine.

Two report families:

- ``job_stats``: job and application statistics within an HR or admin
  principal's scope.
- ``admin_dashboard``: platform-wide counts, time-windowed quick stats and
  rankings, for admins only.

Rankings sort by count descending and break ties by ascending group id.
Ranking rows whose subject (a job or user) no longer exists are dropped
before the limit is applied, so a ranking never returns placeholders.
Applications whose job was deleted still count toward the dashboard's raw
application totals but never toward job-scoped figures or rankings.

Dashboard components are computed concurrently and may reflect slightly
different instants.
"""

import asyncio
import math
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from jobportal.core.boundary import operation
from jobportal.core.principal import Principal
from jobportal.core.scoping import PUBLISHED_ONLY, ScopingPolicy, scope_filter
from jobportal.data.models.reports import (
    AdminDashboard,
    DashboardStats,
    JobApplicationCount,
    JobStats,
    QuickStats,
    RecentActivity,
    SkillCount,
    TopHR,
)
from jobportal.data.repositories.application_repository import ApplicationRepository
from jobportal.data.repositories.job_repository import JobRepository
from jobportal.data.repositories.user_repository import UserRepository
from jobportal.utils.constants import (
    APPLICATIONS_WINDOW_DAYS,
    RECENT_ACTIVITIES_LIMIT,
    TOP_HRS_LIMIT,
    TOP_JOBS_LIMIT,
    TOP_SKILLS_LIMIT,
    ApplicationStatus,
    ResourceKind,
)
from jobportal.utils.exceptions import ForbiddenException
from jobportal.utils.logger import get_logger
from jobportal.utils.timeutils import days_ago, first_of_month, start_of_day, utcnow

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def round_half_up(value: Optional[float]) -> int:
    """Round to the nearest integer, halves upwards; None counts as 0."""
    if value is None:
        return 0
    return int(math.floor(value + 0.5))


async def gather_all(*aws: Awaitable[Any]) -> list[Any]:
    """
    Await every component, then raise the first failure in argument order.

    All components run to completion before anything is raised, so no
    failure is left unretrieved.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    failures = [r for r in results if isinstance(r, BaseException)]
    if failures:
        for extra in failures[1:]:
            logger.warning(f"Additional report component failure: {extra!r}")
        raise failures[0]
    return results


class ReportingEngine:
    """Builds role-scoped statistics and the admin dashboard."""

    def __init__(
        self,
        jobs: JobRepository,
        applications: ApplicationRepository,
        users: UserRepository,
        policy: ScopingPolicy,
        clock: Clock = utcnow,
    ) -> None:
        self._jobs = jobs
        self._applications = applications
        self._users = users
        self._policy = policy
        self._clock = clock

    # -------------------------------------------------------------------------
    # Job statistics
    # -------------------------------------------------------------------------

    @operation("job_stats")
    async def job_stats(self, principal: Principal) -> JobStats:
        """
        Job statistics within the principal's scope.

        HR users only ever see figures for their own jobs; admins see all.
        """
        if not principal.is_staff:
            raise ForbiddenException("Only HR and admin users can view job statistics")

        job_scope = scope_filter(principal, ResourceKind.JOB)
        job_ids = await self._policy.visible_job_ids(principal)
        application_scope = scope_filter(principal, ResourceKind.APPLICATION, job_ids)

        jobs_by_status, total_applications, top_skills, top_jobs = await gather_all(
            self._jobs.count_by_status(job_scope),
            self._applications.count(application_scope),
            self._jobs.get_top_skills(job_scope, TOP_SKILLS_LIMIT),
            self._applications.get_top_jobs(application_scope, TOP_JOBS_LIMIT),
        )

        return JobStats(
            total_jobs=sum(jobs_by_status.values()),
            jobs_by_status=jobs_by_status,
            total_applications=total_applications,
            top_skills=[SkillCount.model_validate(row) for row in top_skills],
            top_jobs=[JobApplicationCount.model_validate(row) for row in top_jobs],
        )

    # -------------------------------------------------------------------------
    # Admin dashboard
    # -------------------------------------------------------------------------

    @operation("admin_dashboard")
    async def admin_dashboard(self, principal: Principal) -> AdminDashboard:
        """Platform-wide dashboard (admin only)."""
        if not principal.is_admin:
            raise ForbiddenException("Only admins can view the dashboard")

        now = self._clock()
        month_start = first_of_month(now)
        week_start = days_ago(now, APPLICATIONS_WINDOW_DAYS)
        today_start = start_of_day(now)

        (
            jobs_by_status,
            applications_by_status,
            users_by_role,
            jobs_this_month,
            applications_this_week,
            shortlisted_today,
            avg_score,
            top_jobs,
            top_skills,
            top_hrs,
            recent,
        ) = await gather_all(
            self._jobs.count_by_status(),
            self._applications.count_by_status(),
            self._users.count_by_role(),
            self._jobs.count({"created_at": {"$gte": month_start}}),
            self._applications.count({"applied_at": {"$gte": week_start}}),
            self._applications.count(
                {
                    "status": ApplicationStatus.SHORTLISTED.value,
                    "updated_at": {"$gte": today_start},
                }
            ),
            self._applications.get_average_score(),
            self._applications.get_top_jobs({}, TOP_JOBS_LIMIT),
            self._jobs.get_top_skills(PUBLISHED_ONLY, TOP_SKILLS_LIMIT),
            self._jobs.get_most_active_hrs(TOP_HRS_LIMIT),
            self._applications.get_recent(RECENT_ACTIVITIES_LIMIT),
        )

        stats = DashboardStats(
            total_jobs=sum(jobs_by_status.values()),
            jobs_by_status=jobs_by_status,
            total_applications=sum(applications_by_status.values()),
            applications_by_status=applications_by_status,
            total_users=sum(users_by_role.values()),
            users_by_role=users_by_role,
        )
        quick_stats = QuickStats(
            jobs_this_month=jobs_this_month,
            applications_this_week=applications_this_week,
            shortlisted_today=shortlisted_today,
            interviews_scheduled=applications_by_status[ApplicationStatus.INTERVIEW_SCHEDULED.value],
            avg_resume_score=round_half_up(avg_score),
        )

        logger.debug(
            f"Dashboard built: {stats.total_jobs} jobs, {stats.total_applications} applications"
        )
        return AdminDashboard(
            stats=stats,
            quick_stats=quick_stats,
            top_jobs=[JobApplicationCount.model_validate(row) for row in top_jobs],
            top_skills=[SkillCount.model_validate(row) for row in top_skills],
            top_hrs=[TopHR.model_validate(row) for row in top_hrs],
            recent_activities=[RecentActivity.model_validate(row) for row in recent],
            generated_at=now,
        )
