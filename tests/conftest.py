"""
Shared test fixtures for the job portal test suite.

Sets environment variables before any jobportal imports to prevent config
failures, then provides an in-memory container, principals and factories
for users, jobs and applications.
"""

import os

# === Set environment BEFORE any jobportal imports ===
os.environ.setdefault("APP_ENVIRONMENT", "testing")
os.environ.setdefault("DB_NAME", "jobportal_test")
os.environ.setdefault("LOG_FILE_OUTPUT", "false")

from datetime import datetime
from typing import Any, Optional

import pytest
import pytest_asyncio
from bson import ObjectId

from jobportal.core.container import Container
from jobportal.core.principal import Principal
from jobportal.data.models import Application, Job, JobCreate, ResumeArtifact, User
from jobportal.utils.constants import ApplicationStatus, JobStatus, UserRole

FIXED_NOW = datetime(2024, 6, 15, 12, 30, 0)


# ---------------------------------------------------------------------------
# Container
# ---------------------------------------------------------------------------


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest_asyncio.fixture
async def container():
    """In-memory container with indexes in place and a fixed report clock."""
    c = Container.in_memory(clock=lambda: FIXED_NOW)
    await c.startup()
    yield c
    await c.close()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user(container):
    """Insert a user straight through the repository and return its principal."""
    counter = {"n": 0}

    async def _factory(
        role: UserRole = UserRole.APPLICANT,
        name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Principal:
        counter["n"] += 1
        n = counter["n"]
        user = await container.users_repository.create(
            User(
                name=name or f"{role.value.title()} {n}",
                email=email or f"{role.value}{n}@example.com",
                password_hash="salt:hash",
                role=role,
            )
        )
        return Principal.from_user(user)

    return _factory


@pytest_asyncio.fixture
async def admin(make_user) -> Principal:
    return await make_user(UserRole.ADMIN, name="Ada Admin", email="admin@example.com")


@pytest_asyncio.fixture
async def hr(make_user) -> Principal:
    return await make_user(UserRole.HR, name="Hana HR", email="hana@example.com")


@pytest_asyncio.fixture
async def other_hr(make_user) -> Principal:
    return await make_user(UserRole.HR, name="Omar HR", email="omar@example.com")


@pytest_asyncio.fixture
async def applicant(make_user) -> Principal:
    return await make_user(UserRole.APPLICANT, name="Amy Applicant", email="amy@example.com")


@pytest.fixture
def make_job(container):
    """Create a job through the job service."""

    async def _factory(
        owner: Principal,
        title: str = "Backend Engineer",
        skills: Optional[list[str]] = None,
        status: JobStatus = JobStatus.PUBLISHED,
        **extra: Any,
    ) -> Job:
        data = JobCreate(
            title=title,
            description=f"{title} role",
            required_skills=skills or ["python", "mongodb"],
            status=status,
            **extra,
        )
        return await container.jobs.create_job(owner, data)

    return _factory


@pytest.fixture
def sample_resume() -> ResumeArtifact:
    return ResumeArtifact(
        file_id="resume-1",
        filename="cv.pdf",
        content_type="application/pdf",
        size_bytes=1024,
    )


@pytest.fixture
def make_application(container, sample_resume):
    """Apply to a job through the lifecycle service."""

    async def _factory(applicant: Principal, job: Job, score: float = 50.0) -> Application:
        return await container.applications.apply(applicant, job.id, sample_resume, score)

    return _factory


@pytest.fixture
def set_status(container):
    """Force an application's status in the store, bypassing the state machine."""

    async def _setter(application_id: ObjectId, status: ApplicationStatus) -> None:
        await container.store.find_one_and_update(
            "applications", {"_id": application_id}, {"status": status.value}
        )

    return _setter
