"""
Application container.

Constructs the store, repositories and services once and wires them
together. Nothing in the package reaches for a global connection; whatever
needs the store receives it from here.
"""

from typing import Optional

from jobportal.core.jobs import JobService
from jobportal.core.lifecycle import ApplicationService
from jobportal.core.reporting import Clock, ReportingEngine
from jobportal.core.scoping import ScopingPolicy
from jobportal.core.users import UserService
from jobportal.data.database import DatabaseManager
from jobportal.data.indexes import ensure_all_indexes
from jobportal.data.memory import MemoryStore
from jobportal.data.repositories import ApplicationRepository, JobRepository, UserRepository
from jobportal.data.store import DocumentStore
from jobportal.services.resume_storage import (
    GridFSResumeStorage,
    InMemoryResumeStorage,
    ResumeStorage,
)
from jobportal.utils.config import AppSettings, get_settings
from jobportal.utils.logger import get_logger
from jobportal.utils.timeutils import utcnow

logger = get_logger(__name__)


class Container:
    """Owns the store and every service built on it."""

    def __init__(
        self,
        store: DocumentStore,
        resumes: ResumeStorage,
        clock: Clock = utcnow,
        database_manager: Optional[DatabaseManager] = None,
    ) -> None:
        self.store = store
        self.resumes = resumes
        self._database_manager = database_manager

        self.users_repository = UserRepository(store)
        self.jobs_repository = JobRepository(store)
        self.applications_repository = ApplicationRepository(store)
        self.policy = ScopingPolicy(self.jobs_repository)

        self.users = UserService(self.users_repository)
        self.jobs = JobService(self.jobs_repository)
        self.applications = ApplicationService(
            self.applications_repository, self.jobs_repository, self.policy, resumes
        )
        self.reports = ReportingEngine(
            self.jobs_repository,
            self.applications_repository,
            self.users_repository,
            self.policy,
            clock=clock,
        )

    @classmethod
    def from_settings(cls, settings: Optional[AppSettings] = None) -> "Container":
        """Container backed by MongoDB and GridFS."""
        settings = settings or get_settings()
        manager = DatabaseManager(settings.database)
        resumes = GridFSResumeStorage(manager.get_database(), settings.resume)
        return cls(manager.create_store(), resumes, database_manager=manager)

    @classmethod
    def in_memory(cls, clock: Clock = utcnow) -> "Container":
        """Container backed by in-process stores."""
        return cls(MemoryStore(), InMemoryResumeStorage(), clock=clock)

    async def startup(self) -> dict[str, bool]:
        """
        Reconcile indexes before serving.

        A failure other than a tolerated index recreation propagates and
        should abort startup.
        """
        logger.info("Starting job portal")
        return await ensure_all_indexes(self.store)

    async def check_connection(self) -> bool:
        if self._database_manager is None:
            return True
        return await self._database_manager.check_connection()

    async def close(self) -> None:
        if self._database_manager is not None:
            self._database_manager.close()
        else:
            await self.store.close()
        logger.info("Job portal stopped")
