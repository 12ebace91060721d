"""
Tests for jobportal.core.lifecycle — applying, status transitions,
withdrawal and application listings.
"""

import asyncio
import itertools

import pytest
from bson import ObjectId

from jobportal.core.lifecycle import TRANSITIONS, WITHDRAWABLE, can_transition, can_withdraw
from jobportal.data.models import ApplicationFilters, PageParams
from jobportal.utils.constants import ApplicationStatus, JobStatus, UserRole
from jobportal.utils.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)

S = ApplicationStatus
PDF = "application/pdf"

ALL_PAIRS = list(itertools.product(list(S), list(S)))


# ═══════════════════════════════════════════════════════════════════════════
#  State machine
# ═══════════════════════════════════════════════════════════════════════════


class TestTransitionTable:
    def test_every_status_has_an_entry(self):
        assert set(TRANSITIONS) == set(S)

    def test_terminal_statuses_have_no_successors(self):
        for status in S:
            if status.is_terminal:
                assert TRANSITIONS[status] == frozenset()

    def test_rejection_reachable_from_every_open_status(self):
        for status in S:
            if not status.is_terminal:
                assert can_transition(status, S.REJECTED)

    def test_cannot_skip_stages(self):
        assert not can_transition(S.PENDING, S.SHORTLISTED)
        assert not can_transition(S.REVIEWED, S.SELECTED)

    def test_withdrawable(self):
        assert WITHDRAWABLE == {S.PENDING, S.REVIEWED, S.SHORTLISTED}
        assert not can_withdraw(S.INTERVIEW_SCHEDULED)
        assert can_withdraw("pending")


# ═══════════════════════════════════════════════════════════════════════════
#  Applying
# ═══════════════════════════════════════════════════════════════════════════


class TestApply:
    @pytest.mark.asyncio
    async def test_apply_creates_pending_application(
        self, container, hr, applicant, make_job, sample_resume
    ):
        job = await make_job(hr)
        application = await container.applications.apply(applicant, job.id, sample_resume, 82.5)

        assert application.id is not None
        assert application.status == "pending"
        assert application.resume_score == 82.5
        assert application.job_id == job.id
        assert application.applicant_id == applicant.id

    @pytest.mark.asyncio
    async def test_apply_accepts_string_job_id(self, container, hr, applicant, make_job):
        job = await make_job(hr)
        application = await container.applications.apply(applicant, str(job.id), None)
        assert application.job_id == job.id

    @pytest.mark.asyncio
    async def test_duplicate_apply_conflicts(self, container, hr, applicant, make_job, make_application):
        job = await make_job(hr)
        await make_application(applicant, job)

        with pytest.raises(ConflictException) as exc_info:
            await make_application(applicant, job)
        assert exc_info.value.message == "You have already applied for this job"
        assert await container.applications_repository.count() == 1

    @pytest.mark.asyncio
    async def test_concurrent_apply_yields_one_application(
        self, container, hr, applicant, make_job, make_application
    ):
        job = await make_job(hr)
        results = await asyncio.gather(
            make_application(applicant, job),
            make_application(applicant, job),
            return_exceptions=True,
        )

        conflicts = [r for r in results if isinstance(r, ConflictException)]
        successes = [r for r in results if not isinstance(r, Exception)]
        assert len(successes) == 1
        assert len(conflicts) == 1
        assert await container.applications_repository.count({"job_id": job.id}) == 1

    @pytest.mark.asyncio
    async def test_different_jobs_allowed(self, container, hr, applicant, make_job, make_application):
        await make_application(applicant, await make_job(hr, title="One"))
        await make_application(applicant, await make_job(hr, title="Two"))
        assert await container.applications_repository.count() == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [JobStatus.DRAFT, JobStatus.CLOSED])
    async def test_unpublished_job_not_found(self, container, hr, applicant, make_job, status):
        job = await make_job(hr, status=status)
        with pytest.raises(NotFoundException):
            await container.applications.apply(applicant, job.id, None)

    @pytest.mark.asyncio
    async def test_unknown_job_not_found(self, container, applicant):
        with pytest.raises(NotFoundException):
            await container.applications.apply(applicant, ObjectId(), None)
        with pytest.raises(NotFoundException):
            await container.applications.apply(applicant, "not-an-id", None)

    @pytest.mark.asyncio
    async def test_staff_cannot_apply(self, container, hr, admin, make_job):
        job = await make_job(hr)
        for principal in (hr, admin):
            with pytest.raises(ForbiddenException):
                await container.applications.apply(principal, job.id, None)

    @pytest.mark.asyncio
    async def test_score_out_of_range_is_validation(self, container, hr, applicant, make_job):
        job = await make_job(hr)
        with pytest.raises(ValidationException):
            await container.applications.apply(applicant, job.id, None, 140)


class TestApplyWithUpload:
    @pytest.mark.asyncio
    async def test_stores_resume(self, container, hr, applicant, make_job):
        job = await make_job(hr)
        application = await container.applications.apply_with_upload(
            applicant, job.id, b"%PDF-1.4", "cv.pdf", PDF, 70
        )
        assert application.resume.filename == "cv.pdf"
        assert application.resume.file_id in container.resumes

    @pytest.mark.asyncio
    async def test_invalid_file_rejected(self, container, hr, applicant, make_job):
        job = await make_job(hr)
        with pytest.raises(ValidationException, match="Only PDF"):
            await container.applications.apply_with_upload(
                applicant, job.id, b"hello", "cv.txt", "text/plain"
            )
        assert await container.applications_repository.count() == 0

    @pytest.mark.asyncio
    async def test_failed_apply_removes_stored_resume(self, container, hr, applicant, make_job):
        job = await make_job(hr, status=JobStatus.DRAFT)
        with pytest.raises(NotFoundException):
            await container.applications.apply_with_upload(
                applicant, job.id, b"%PDF-1.4", "cv.pdf", PDF
            )
        assert len(container.resumes) == 0

    @pytest.mark.asyncio
    async def test_duplicate_removes_second_resume(self, container, hr, applicant, make_job):
        job = await make_job(hr)
        await container.applications.apply_with_upload(applicant, job.id, b"%PDF-1", "a.pdf", PDF)
        with pytest.raises(ConflictException):
            await container.applications.apply_with_upload(
                applicant, job.id, b"%PDF-2", "b.pdf", PDF
            )
        assert len(container.resumes) == 1

    @pytest.mark.asyncio
    async def test_staff_rejected_before_storing(self, container, hr, make_job):
        job = await make_job(hr)
        with pytest.raises(ForbiddenException):
            await container.applications.apply_with_upload(hr, job.id, b"%PDF", "cv.pdf", PDF)
        assert len(container.resumes) == 0


# ═══════════════════════════════════════════════════════════════════════════
#  Transitions
# ═══════════════════════════════════════════════════════════════════════════


class TestTransition:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("current,target", ALL_PAIRS)
    async def test_transition_matrix(
        self, container, hr, applicant, make_job, make_application, set_status, current, target
    ):
        job = await make_job(hr)
        application = await make_application(applicant, job)
        await set_status(application.id, current)

        if target in TRANSITIONS[current]:
            updated = await container.applications.transition(hr, application.id, target)
            assert updated.status == target.value
        else:
            with pytest.raises(InvalidTransitionException):
                await container.applications.transition(hr, application.id, target)
            stored = await container.applications_repository.get_by_id(application.id)
            assert stored.status == current.value

    @pytest.mark.asyncio
    async def test_full_happy_path(self, container, hr, applicant, make_job, make_application):
        job = await make_job(hr)
        application = await make_application(applicant, job)
        for target in (S.REVIEWED, S.SHORTLISTED, S.INTERVIEW_SCHEDULED, S.SELECTED):
            application = await container.applications.transition(hr, application.id, target)
        assert application.status == "selected"

    @pytest.mark.asyncio
    async def test_accepts_status_string(self, container, hr, applicant, make_job, make_application):
        application = await make_application(applicant, await make_job(hr))
        updated = await container.applications.transition(hr, str(application.id), "reviewed")
        assert updated.status == "reviewed"

    @pytest.mark.asyncio
    async def test_unknown_status_is_validation(
        self, container, hr, applicant, make_job, make_application
    ):
        application = await make_application(applicant, await make_job(hr))
        with pytest.raises(ValidationException):
            await container.applications.transition(hr, application.id, "hired")

    @pytest.mark.asyncio
    async def test_applicant_cannot_transition(
        self, container, hr, applicant, make_job, make_application
    ):
        application = await make_application(applicant, await make_job(hr))
        with pytest.raises(ForbiddenException):
            await container.applications.transition(applicant, application.id, S.REVIEWED)

    @pytest.mark.asyncio
    async def test_other_hr_sees_not_found(
        self, container, hr, other_hr, applicant, make_job, make_application
    ):
        application = await make_application(applicant, await make_job(hr))
        with pytest.raises(NotFoundException):
            await container.applications.transition(other_hr, application.id, S.REVIEWED)

    @pytest.mark.asyncio
    async def test_admin_can_transition_any(
        self, container, hr, admin, applicant, make_job, make_application
    ):
        application = await make_application(applicant, await make_job(hr))
        updated = await container.applications.transition(admin, application.id, S.REJECTED)
        assert updated.status == "rejected"

    @pytest.mark.asyncio
    async def test_missing_application(self, container, hr):
        with pytest.raises(NotFoundException):
            await container.applications.transition(hr, ObjectId(), S.REVIEWED)

    @pytest.mark.asyncio
    async def test_stale_read_loses_compare_and_set(
        self, container, hr, applicant, make_job, make_application, set_status, monkeypatch
    ):
        application = await make_application(applicant, await make_job(hr))
        stale = application.model_copy()
        await set_status(application.id, S.REVIEWED)
        real_find_one = container.applications_repository.find_one
        reads = []

        async def stale_find_one(query):
            reads.append(query)
            if len(reads) == 1:
                return stale
            return await real_find_one(query)

        monkeypatch.setattr(container.applications_repository, "find_one", stale_find_one)

        with pytest.raises(InvalidTransitionException) as exc_info:
            await container.applications.transition(hr, application.id, S.REVIEWED)
        assert exc_info.value.current == "reviewed"

    @pytest.mark.asyncio
    async def test_compare_and_set_requires_expected_status(
        self, container, hr, applicant, make_job, make_application
    ):
        application = await make_application(applicant, await make_job(hr))
        repo = container.applications_repository

        assert await repo.compare_and_set_status(application.id, S.REVIEWED, S.SHORTLISTED) is None
        first = await repo.compare_and_set_status(application.id, S.PENDING, S.REVIEWED)
        second = await repo.compare_and_set_status(application.id, S.PENDING, S.REJECTED)
        assert first.status == "reviewed"
        assert second is None


# ═══════════════════════════════════════════════════════════════════════════
#  Withdrawal & deletion
# ═══════════════════════════════════════════════════════════════════════════


class TestWithdraw:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [S.PENDING, S.REVIEWED, S.SHORTLISTED])
    async def test_withdraw_open_application(
        self, container, hr, applicant, make_job, make_application, set_status, status
    ):
        application = await make_application(applicant, await make_job(hr))
        await set_status(application.id, status)
        updated = await container.applications.withdraw(applicant, application.id)
        assert updated.status == "withdrawn"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status", [S.INTERVIEW_SCHEDULED, S.SELECTED, S.REJECTED, S.WITHDRAWN]
    )
    async def test_withdraw_too_late(
        self, container, hr, applicant, make_job, make_application, set_status, status
    ):
        application = await make_application(applicant, await make_job(hr))
        await set_status(application.id, status)
        with pytest.raises(InvalidTransitionException):
            await container.applications.withdraw(applicant, application.id)

    @pytest.mark.asyncio
    async def test_other_applicant_forbidden(
        self, container, hr, applicant, make_user, make_job, make_application
    ):
        application = await make_application(applicant, await make_job(hr))
        intruder = await make_user(UserRole.APPLICANT)
        with pytest.raises(ForbiddenException):
            await container.applications.withdraw(intruder, application.id)

    @pytest.mark.asyncio
    async def test_staff_forbidden(self, container, hr, applicant, make_job, make_application):
        application = await make_application(applicant, await make_job(hr))
        with pytest.raises(ForbiddenException):
            await container.applications.withdraw(hr, application.id)

    @pytest.mark.asyncio
    async def test_missing(self, container, applicant):
        with pytest.raises(NotFoundException):
            await container.applications.withdraw(applicant, ObjectId())

    @pytest.mark.asyncio
    async def test_withdrawn_cannot_be_reviewed(
        self, container, hr, applicant, make_job, make_application
    ):
        application = await make_application(applicant, await make_job(hr))
        await container.applications.withdraw(applicant, application.id)
        with pytest.raises(InvalidTransitionException):
            await container.applications.transition(hr, application.id, S.REVIEWED)


class TestDeleteApplication:
    @pytest.mark.asyncio
    async def test_admin_deletes(self, container, admin, hr, applicant, make_job, make_application):
        application = await make_application(applicant, await make_job(hr))
        await container.applications.delete(admin, application.id)
        assert await container.applications_repository.get_by_id(application.id) is None

    @pytest.mark.asyncio
    async def test_hr_forbidden(self, container, hr, applicant, make_job, make_application):
        application = await make_application(applicant, await make_job(hr))
        with pytest.raises(ForbiddenException):
            await container.applications.delete(hr, application.id)

    @pytest.mark.asyncio
    async def test_missing(self, container, admin):
        with pytest.raises(NotFoundException):
            await container.applications.delete(admin, ObjectId())


# ═══════════════════════════════════════════════════════════════════════════
#  Listings
# ═══════════════════════════════════════════════════════════════════════════


class TestListings:
    @pytest.mark.asyncio
    async def test_list_mine(self, container, hr, applicant, make_user, make_job, make_application):
        first = await make_application(applicant, await make_job(hr, title="First"))
        second = await make_application(applicant, await make_job(hr, title="Second"))
        await make_application(await make_user(UserRole.APPLICANT), await make_job(hr))

        page = await container.applications.list_mine(applicant)
        assert page.total == 2
        assert [a.id for a in page.items] == [second.id, first.id]
        assert page.items[0].job.title == "Second"
        assert page.items[0].applicant.email == "amy@example.com"

    @pytest.mark.asyncio
    async def test_list_mine_staff_forbidden(self, container, hr):
        with pytest.raises(ForbiddenException):
            await container.applications.list_mine(hr)

    @pytest.mark.asyncio
    async def test_list_applications_scoped_and_sorted(
        self, container, hr, other_hr, make_user, make_job, make_application
    ):
        mine = await make_job(hr)
        theirs = await make_job(other_hr)
        low = await make_application(await make_user(UserRole.APPLICANT), mine, score=40)
        high = await make_application(await make_user(UserRole.APPLICANT), mine, score=90)
        await make_application(await make_user(UserRole.APPLICANT), theirs, score=99)

        page = await container.applications.list_applications(hr)
        assert page.total == 2
        assert [a.id for a in page.items] == [high.id, low.id]

    @pytest.mark.asyncio
    async def test_list_applications_filters(
        self, container, admin, hr, make_user, make_job, make_application, set_status
    ):
        job = await make_job(hr)
        keep = await make_application(await make_user(UserRole.APPLICANT), job, score=80)
        await make_application(await make_user(UserRole.APPLICANT), job, score=30)
        await set_status(keep.id, S.SHORTLISTED)

        page = await container.applications.list_applications(
            admin, ApplicationFilters(status="shortlisted", min_score=50)
        )
        assert [a.id for a in page.items] == [keep.id]

    @pytest.mark.asyncio
    async def test_list_applications_applicant_forbidden(self, container, applicant):
        with pytest.raises(ForbiddenException):
            await container.applications.list_applications(applicant)

    @pytest.mark.asyncio
    async def test_list_for_job(
        self, container, hr, other_hr, make_user, make_job, make_application
    ):
        job = await make_job(hr)
        await make_job(hr, title="Other")
        for _ in range(3):
            await make_application(await make_user(UserRole.APPLICANT), job)

        page = await container.applications.list_for_job(hr, job.id, params=PageParams(limit=2))
        assert page.total == 3
        assert page.pages == 2
        assert len(page.items) == 2

        with pytest.raises(NotFoundException):
            await container.applications.list_for_job(other_hr, job.id)

    @pytest.mark.asyncio
    async def test_listing_keeps_application_of_deleted_applicant(
        self, container, hr, applicant, make_job, make_application
    ):
        application = await make_application(applicant, await make_job(hr, title="Ops"))
        await container.users_repository.delete(applicant.id)

        page = await container.applications.list_applications(hr)
        assert [a.id for a in page.items] == [application.id]
        assert page.items[0].applicant is None
        assert page.items[0].job.title == "Ops"

    @pytest.mark.asyncio
    async def test_application_of_deleted_job_leaves_staff_scope(
        self, container, admin, hr, applicant, make_job, make_application
    ):
        job = await make_job(hr)
        await make_application(applicant, job)
        await container.jobs_repository.delete(job.id)

        page = await container.applications.list_applications(admin)
        assert page.total == 0
        assert (await container.applications.list_mine(applicant)).total == 1

    @pytest.mark.asyncio
    async def test_listing_hides_password_hash(
        self, container, admin, hr, applicant, make_job, make_application
    ):
        await make_application(applicant, await make_job(hr))
        rows, _ = await container.applications_repository.list_detailed({}, PageParams())
        assert "password_hash" not in rows[0]["applicant"]


class TestGetApplication:
    @pytest.mark.asyncio
    async def test_owner_and_staff_can_read(
        self, container, hr, admin, applicant, make_job, make_application
    ):
        application = await make_application(applicant, await make_job(hr, title="Data Eng"))
        for principal in (applicant, hr, admin):
            detail = await container.applications.get(principal, application.id)
            assert detail.id == application.id
            assert detail.job.title == "Data Eng"

    @pytest.mark.asyncio
    async def test_outsiders_see_not_found(
        self, container, hr, other_hr, applicant, make_user, make_job, make_application
    ):
        application = await make_application(applicant, await make_job(hr))
        stranger = await make_user(UserRole.APPLICANT)
        for principal in (other_hr, stranger):
            with pytest.raises(NotFoundException):
                await container.applications.get(principal, application.id)

    @pytest.mark.asyncio
    async def test_malformed_id(self, container, applicant):
        with pytest.raises(NotFoundException):
            await container.applications.get(applicant, "nope")


class TestDownloadResume:
    @pytest.mark.asyncio
    async def test_staff_download(self, container, hr, applicant, make_job):
        job = await make_job(hr)
        application = await container.applications.apply_with_upload(
            applicant, job.id, b"%PDF-1.7 body", "cv.pdf", PDF
        )
        download = await container.applications.download_resume(hr, application.id)
        assert download.data == b"%PDF-1.7 body"
        assert download.filename == "cv.pdf"
        assert download.content_type == PDF

    @pytest.mark.asyncio
    async def test_applicant_forbidden(self, container, hr, applicant, make_job, make_application):
        application = await make_application(applicant, await make_job(hr))
        with pytest.raises(ForbiddenException):
            await container.applications.download_resume(applicant, application.id)

    @pytest.mark.asyncio
    async def test_no_resume(self, container, hr, applicant, make_job):
        application = await container.applications.apply(applicant, (await make_job(hr)).id, None)
        with pytest.raises(NotFoundException):
            await container.applications.download_resume(hr, application.id)

    @pytest.mark.asyncio
    async def test_other_hr_not_found(
        self, container, hr, other_hr, applicant, make_job, make_application
    ):
        application = await make_application(applicant, await make_job(hr))
        with pytest.raises(NotFoundException):
            await container.applications.download_resume(other_hr, application.id)


class TestApplicationStats:
    @pytest.mark.asyncio
    async def test_stats_within_scope(
        self, container, hr, other_hr, make_user, make_job, make_application, set_status
    ):
        job = await make_job(hr)
        a = await make_application(await make_user(UserRole.APPLICANT), job, score=70)
        await make_application(await make_user(UserRole.APPLICANT), job, score=81)
        await make_application(await make_user(UserRole.APPLICANT), await make_job(other_hr), score=5)
        await set_status(a.id, S.REVIEWED)

        stats = await container.applications.application_stats(hr)
        assert stats.total == 2
        assert stats.by_status["pending"] == 1
        assert stats.by_status["reviewed"] == 1
        assert stats.by_status["withdrawn"] == 0
        assert stats.avg_score == 75.5

    @pytest.mark.asyncio
    async def test_empty_scope(self, container, hr):
        stats = await container.applications.application_stats(hr)
        assert stats.total == 0
        assert stats.avg_score == 0.0
        assert set(stats.by_status) == {s.value for s in S}

    @pytest.mark.asyncio
    async def test_applicant_forbidden(self, container, applicant):
        with pytest.raises(ForbiddenException):
            await container.applications.application_stats(applicant)
