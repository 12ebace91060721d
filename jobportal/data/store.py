"""
Document store abstraction.

``DocumentStore`` is the only way the rest of the package talks to the
database. ``MongoStore`` runs on Motor; ``MemoryStore`` (see ``memory.py``)
executes the same operations in process.

Every ``MongoStore`` call is bounded by a timeout. The timeout comes from
the surrounding request (``request_timeout``) or falls back to the store
default; a timed-out or disconnected call raises ``DependencyException``
and is never retried.
"""

import asyncio
from abc import ABC, abstractmethod
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Awaitable, Iterator, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import ConnectionFailure, ExecutionTimeout

from jobportal.data.pipeline import Pipeline
from jobportal.utils.exceptions import DependencyException
from jobportal.utils.logger import get_logger

logger = get_logger(__name__)

# Key direction is 1 or -1, or an index type such as "text" or "hashed"
IndexKeys = list[tuple[str, int | str]]

_request_timeout: ContextVar[Optional[float]] = ContextVar("request_timeout", default=None)


@contextmanager
def request_timeout(seconds: float) -> Iterator[None]:
    """Bound every store call made inside the block by ``seconds``."""
    token = _request_timeout.set(seconds)
    try:
        yield
    finally:
        _request_timeout.reset(token)


class DocumentStore(ABC):
    """Async document store with CRUD, index management and aggregation."""

    @abstractmethod
    async def insert_one(self, collection: str, document: dict[str, Any]) -> ObjectId:
        """Insert a document. Raises ``DuplicateKeyError`` on unique-index violation."""

    @abstractmethod
    async def find_one(
        self,
        collection: str,
        query: dict[str, Any],
        projection: Optional[dict[str, Any]] = None,
    ) -> Optional[dict[str, Any]]:
        """Return the first matching document or None."""

    @abstractmethod
    async def find(
        self,
        collection: str,
        query: dict[str, Any],
        sort: Optional[dict[str, int]] = None,
        skip: int = 0,
        limit: int = 0,
        projection: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        """Return matching documents; ``limit=0`` means no limit."""

    @abstractmethod
    async def count(self, collection: str, query: Optional[dict[str, Any]] = None) -> int:
        """Count matching documents."""

    @abstractmethod
    async def find_one_and_update(
        self,
        collection: str,
        query: dict[str, Any],
        set_fields: dict[str, Any],
    ) -> Optional[dict[str, Any]]:
        """Apply ``$set`` to the first match and return it after the update, or None."""

    @abstractmethod
    async def delete_one(self, collection: str, query: dict[str, Any]) -> bool:
        """Delete the first match. Returns True if something was deleted."""

    @abstractmethod
    async def aggregate(self, collection: str, pipeline: Pipeline) -> list[dict[str, Any]]:
        """Run an aggregation pipeline."""

    @abstractmethod
    async def create_index(self, collection: str, keys: IndexKeys, **options: Any) -> str:
        """Create an index and return its name."""

    @abstractmethod
    async def drop_index(self, collection: str, name: str) -> None:
        """Drop an index by name."""

    @abstractmethod
    async def index_information(self, collection: str) -> dict[str, dict[str, Any]]:
        """Return ``{name: {"key": [(field, direction), ...], "unique": bool, ...}}``."""

    async def close(self) -> None:
        """Release resources held by the store."""


class MongoStore(DocumentStore):
    """``DocumentStore`` backed by a Motor database."""

    def __init__(self, database: AsyncIOMotorDatabase, timeout_seconds: float = 10.0):
        self._db = database
        self._timeout = timeout_seconds

    @property
    def database(self) -> AsyncIOMotorDatabase:
        return self._db

    async def _bounded(self, operation: str, awaitable: Awaitable[Any]) -> Any:
        timeout = _request_timeout.get() or self._timeout
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Store call timed out after {timeout}s: {operation}")
            raise DependencyException("Database operation timed out") from e
        except (ConnectionFailure, ExecutionTimeout) as e:
            logger.error(f"Store call failed: {operation}: {e}")
            raise DependencyException("Database unavailable") from e

    async def insert_one(self, collection: str, document: dict[str, Any]) -> ObjectId:
        result = await self._bounded(
            f"{collection}.insert_one", self._db[collection].insert_one(document)
        )
        return result.inserted_id

    async def find_one(self, collection, query, projection=None):
        return await self._bounded(
            f"{collection}.find_one", self._db[collection].find_one(query, projection)
        )

    async def find(self, collection, query, sort=None, skip=0, limit=0, projection=None):
        cursor = self._db[collection].find(query, projection)
        if sort:
            cursor = cursor.sort(list(sort.items()))
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return await self._bounded(f"{collection}.find", cursor.to_list(length=None))

    async def count(self, collection, query=None):
        return await self._bounded(
            f"{collection}.count_documents",
            self._db[collection].count_documents(query or {}),
        )

    async def find_one_and_update(self, collection, query, set_fields):
        return await self._bounded(
            f"{collection}.find_one_and_update",
            self._db[collection].find_one_and_update(
                query,
                {"$set": set_fields},
                return_document=ReturnDocument.AFTER,
            ),
        )

    async def delete_one(self, collection, query):
        result = await self._bounded(
            f"{collection}.delete_one", self._db[collection].delete_one(query)
        )
        return result.deleted_count > 0

    async def aggregate(self, collection, pipeline):
        cursor = self._db[collection].aggregate(pipeline.to_mongo())
        return await self._bounded(f"{collection}.aggregate", cursor.to_list(length=None))

    async def create_index(self, collection, keys, **options):
        return await self._bounded(
            f"{collection}.create_index", self._db[collection].create_index(keys, **options)
        )

    async def drop_index(self, collection, name):
        await self._bounded(f"{collection}.drop_index", self._db[collection].drop_index(name))

    async def index_information(self, collection):
        return await self._bounded(
            f"{collection}.index_information", self._db[collection].index_information()
        )

    async def close(self) -> None:
        logger.info("Closing MongoDB client")
        self._db.client.close()
