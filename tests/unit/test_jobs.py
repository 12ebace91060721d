"""
Tests for jobportal.core.jobs — job posting operations and listings.
"""

import pytest
from bson import ObjectId

from jobportal.data.models import JobFilters, PageParams
from jobportal.utils.constants import JobStatus, UserRole
from jobportal.utils.exceptions import ForbiddenException, NotFoundException, ValidationException


# ═══════════════════════════════════════════════════════════════════════════
#  Create
# ═══════════════════════════════════════════════════════════════════════════


class TestCreateJob:
    @pytest.mark.asyncio
    async def test_create_from_dict(self, container, hr):
        job = await container.jobs.create_job(
            hr,
            {
                "title": "  Data Engineer ",
                "description": "Pipelines",
                "required_skills": ["Python", " SQL", "python"],
                "experience": {"min": 2, "max": 5},
                "location": " Berlin ",
                "salary": 70000,
            },
        )
        assert job.id is not None
        assert job.title == "Data Engineer"
        assert job.required_skills == ["python", "sql"]
        assert job.location == "Berlin"
        assert job.status == "draft"
        assert job.created_by == hr.id

    @pytest.mark.asyncio
    async def test_applicant_forbidden(self, container, applicant):
        with pytest.raises(ForbiddenException):
            await container.jobs.create_job(
                applicant, {"title": "X", "description": "Y", "required_skills": ["a"]}
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"title": " ", "description": "Y", "required_skills": ["a"]},
            {"title": "X", "description": "Y", "required_skills": []},
            {"title": "X", "description": "Y", "required_skills": [" ", ""]},
            {"title": "X", "description": "Y", "required_skills": ["a"], "salary": -1},
            {
                "title": "X",
                "description": "Y",
                "required_skills": ["a"],
                "experience": {"min": 5, "max": 2},
            },
            {"description": "Y", "required_skills": ["a"]},
        ],
    )
    async def test_invalid_payload(self, container, hr, payload):
        with pytest.raises(ValidationException) as exc_info:
            await container.jobs.create_job(hr, payload)
        assert exc_info.value.details["fields"]


# ═══════════════════════════════════════════════════════════════════════════
#  Visibility
# ═══════════════════════════════════════════════════════════════════════════


class TestJobVisibility:
    @pytest.mark.asyncio
    async def test_draft_visible_to_owner_only_until_published(
        self, container, hr, make_job
    ):
        draft = await make_job(hr, title="Secret", status=JobStatus.DRAFT)

        staff_page = await container.jobs.list_jobs(hr)
        assert [j.id for j in staff_page.items] == [draft.id]

        public_page = await container.jobs.list_published_jobs()
        assert public_page.total == 0
        with pytest.raises(NotFoundException):
            await container.jobs.get_published_job(draft.id)

        await container.jobs.publish_job(hr, draft.id)
        public_page = await container.jobs.list_published_jobs()
        assert [j.id for j in public_page.items] == [draft.id]

    @pytest.mark.asyncio
    async def test_other_hr_sees_not_found(self, container, hr, other_hr, make_job):
        job = await make_job(hr)

        assert (await container.jobs.list_jobs(other_hr)).total == 0
        with pytest.raises(NotFoundException):
            await container.jobs.get_job(other_hr, job.id)
        with pytest.raises(NotFoundException):
            await container.jobs.update_job(other_hr, job.id, {"title": "Hijacked"})
        with pytest.raises(NotFoundException):
            await container.jobs.delete_job(other_hr, job.id)

    @pytest.mark.asyncio
    async def test_admin_sees_all(self, container, admin, hr, other_hr, make_job):
        await make_job(hr, status=JobStatus.DRAFT)
        await make_job(other_hr, status=JobStatus.CLOSED)
        assert (await container.jobs.list_jobs(admin)).total == 2

    @pytest.mark.asyncio
    async def test_applicant_cannot_list_staff_view(self, container, applicant):
        with pytest.raises(ForbiddenException):
            await container.jobs.list_jobs(applicant)

    @pytest.mark.asyncio
    async def test_get_job_with_creator(self, container, hr, make_job):
        job = await make_job(hr)
        detail = await container.jobs.get_job(hr, str(job.id))
        assert detail.creator.name == "Hana HR"
        assert detail.creator.email == "hana@example.com"


# ═══════════════════════════════════════════════════════════════════════════
#  Update, publish, delete
# ═══════════════════════════════════════════════════════════════════════════


class TestUpdateJob:
    @pytest.mark.asyncio
    async def test_partial_update(self, container, hr, make_job):
        job = await make_job(hr, title="Old", salary=50000)
        updated = await container.jobs.update_job(
            hr, job.id, {"title": "New", "required_skills": ["Go"]}
        )
        assert updated.title == "New"
        assert updated.required_skills == ["go"]
        assert updated.salary == 50000
        assert updated.description == job.description

    @pytest.mark.asyncio
    async def test_salary_can_be_cleared(self, container, hr, make_job):
        job = await make_job(hr, salary=50000)
        updated = await container.jobs.update_job(hr, job.id, {"salary": None})
        assert updated.salary is None

    @pytest.mark.asyncio
    async def test_none_does_not_clear_other_fields(self, container, hr, make_job):
        job = await make_job(hr, title="Keep")
        updated = await container.jobs.update_job(hr, job.id, {"title": None, "location": "Oslo"})
        assert updated.title == "Keep"
        assert updated.location == "Oslo"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "patch",
        [{"created_by": str(ObjectId())}, {"_id": str(ObjectId())}, {"created_at": "2024-01-01"}],
    )
    async def test_protected_fields_rejected(self, container, hr, make_job, patch):
        job = await make_job(hr)
        with pytest.raises(ValidationException, match="Invalid input"):
            await container.jobs.update_job(hr, job.id, patch)
        stored = await container.jobs_repository.get_by_id(job.id)
        assert stored.created_by == hr.id

    @pytest.mark.asyncio
    async def test_unknown_fields_rejected(self, container, hr, make_job):
        job = await make_job(hr)
        with pytest.raises(ValidationException):
            await container.jobs.update_job(hr, job.id, {"salary_range": "lots"})

    @pytest.mark.asyncio
    async def test_empty_patch_returns_job(self, container, hr, make_job):
        job = await make_job(hr)
        unchanged = await container.jobs.update_job(hr, job.id, {})
        assert unchanged.id == job.id
        assert unchanged.updated_at == job.updated_at

    @pytest.mark.asyncio
    async def test_admin_can_update_any(self, container, admin, hr, make_job):
        job = await make_job(hr)
        updated = await container.jobs.update_job(admin, job.id, {"location": "Remote"})
        assert updated.location == "Remote"
        assert updated.created_by == hr.id


class TestPublishAndDelete:
    @pytest.mark.asyncio
    async def test_close_job(self, container, hr, make_job):
        job = await make_job(hr)
        closed = await container.jobs.publish_job(hr, job.id, JobStatus.CLOSED)
        assert closed.status == "closed"

    @pytest.mark.asyncio
    async def test_invalid_status(self, container, hr, make_job):
        job = await make_job(hr)
        with pytest.raises(ValidationException):
            await container.jobs.publish_job(hr, job.id, "archived")

    @pytest.mark.asyncio
    async def test_delete_keeps_applications(
        self, container, hr, applicant, make_job, make_application
    ):
        job = await make_job(hr)
        await make_application(applicant, job)
        await container.jobs.delete_job(hr, job.id)

        assert await container.jobs_repository.get_by_id(job.id) is None
        assert await container.applications_repository.count({"job_id": job.id}) == 1

    @pytest.mark.asyncio
    async def test_delete_missing(self, container, admin):
        with pytest.raises(NotFoundException):
            await container.jobs.delete_job(admin, ObjectId())


# ═══════════════════════════════════════════════════════════════════════════
#  Listings
# ═══════════════════════════════════════════════════════════════════════════


class TestPublishedListing:
    @pytest.mark.asyncio
    async def test_public_projection_hides_private_fields(self, container, hr, make_job):
        job = await make_job(hr)

        rows, _ = await container.jobs_repository.list_with_creator(
            {"_id": job.id}, PageParams(), public=True
        )
        creator = rows[0]["creator"]
        assert creator["name"] == "Hana HR"
        assert "email" not in creator
        assert "password_hash" not in creator

        published = await container.jobs.get_published_job(job.id)
        assert published.creator.name == "Hana HR"
        assert not hasattr(published.creator, "email")

    @pytest.mark.asyncio
    async def test_staff_projection_hides_password_hash(self, container, hr, make_job):
        job = await make_job(hr)
        rows, _ = await container.jobs_repository.list_with_creator({"_id": job.id}, PageParams())
        assert rows[0]["creator"]["email"] == "hana@example.com"
        assert "password_hash" not in rows[0]["creator"]

    @pytest.mark.asyncio
    async def test_missing_creator_is_null(self, container, make_user, make_job):
        gone = await make_user(UserRole.HR)
        job = await make_job(gone)
        await container.users_repository.delete(gone.id)

        page = await container.jobs.list_published_jobs()
        assert [j.id for j in page.items] == [job.id]
        assert page.items[0].creator is None

    @pytest.mark.asyncio
    async def test_filters(self, container, hr, make_job):
        await make_job(hr, title="Berlin Go", skills=["go"], location="Berlin", experience={"min": 1, "max": 3})
        await make_job(hr, title="Remote Py", skills=["python"], location="Remote", experience={"min": 5, "max": 8})
        await make_job(hr, title="Berlin Draft", skills=["go"], location="Berlin", status=JobStatus.DRAFT)

        by_location = await container.jobs.list_published_jobs(JobFilters(location="berlin"))
        assert [j.title for j in by_location.items] == ["Berlin Go"]

        by_skill = await container.jobs.list_published_jobs(JobFilters(skills="Python,Rust"))
        assert [j.title for j in by_skill.items] == ["Remote Py"]

        by_experience = await container.jobs.list_published_jobs(JobFilters(experience=2))
        assert [j.title for j in by_experience.items] == ["Berlin Go"]

    @pytest.mark.asyncio
    async def test_status_filter_cannot_expose_drafts(self, container, hr, make_job):
        await make_job(hr, status=JobStatus.DRAFT)
        page = await container.jobs.list_published_jobs(JobFilters(status="draft"))
        assert page.total == 0

    @pytest.mark.asyncio
    async def test_staff_status_filter(self, container, hr, make_job):
        await make_job(hr, title="D", status=JobStatus.DRAFT)
        await make_job(hr, title="P")
        page = await container.jobs.list_jobs(hr, JobFilters(status="draft"))
        assert [j.title for j in page.items] == ["D"]

    @pytest.mark.asyncio
    async def test_newest_first(self, container, hr, make_job):
        first = await make_job(hr, title="First")
        second = await make_job(hr, title="Second")
        page = await container.jobs.list_published_jobs()
        assert [j.id for j in page.items] == [second.id, first.id]


class TestPagination:
    @pytest.mark.asyncio
    async def test_pages(self, container, hr, make_job):
        for i in range(12):
            await make_job(hr, title=f"Job {i}")

        first = await container.jobs.list_published_jobs(params=PageParams(page=1, limit=5))
        last = await container.jobs.list_published_jobs(params=PageParams(page=3, limit=5))

        assert first.total == 12
        assert first.pages == 3
        assert len(first.items) == 5
        assert len(last.items) == 2

    @pytest.mark.asyncio
    async def test_past_the_end(self, container, hr, make_job):
        await make_job(hr)
        page = await container.jobs.list_published_jobs(params=PageParams(page=4, limit=10))
        assert page.items == []
        assert page.total == 1
        assert page.pages == 1

    @pytest.mark.asyncio
    async def test_empty(self, container):
        page = await container.jobs.list_published_jobs()
        assert page.total == 0
        assert page.pages == 0

    @pytest.mark.asyncio
    async def test_large_limit(self, container, hr, make_job):
        for i in range(3):
            await make_job(hr, title=f"Job {i}")

        page = await container.jobs.list_published_jobs(params=PageParams(page=1, limit=200))

        assert page.limit == 200
        assert page.total == 3
        assert page.pages == 1
        assert len(page.items) == 3

    def test_invalid_params(self):
        with pytest.raises(ValueError):
            PageParams(page=0)
        with pytest.raises(ValueError):
            PageParams(limit=0)
