"""
Base repository class providing common CRUD operations.

All entity-specific repositories inherit from this base class. A repository
is bound to the ``DocumentStore`` it is constructed with; there is no shared
module-level connection.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar

from bson import ObjectId

from jobportal.data.models.base import BaseDocument
from jobportal.data.models.pagination import PageParams
from jobportal.data.pipeline import Pipeline
from jobportal.data.store import DocumentStore
from jobportal.utils.logger import get_logger
from jobportal.utils.timeutils import utcnow

logger = get_logger(__name__)

# Type variable for document models
T = TypeVar("T", bound=BaseDocument)


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base repository providing common database operations.

    Subclasses must define the collection name and model class.
    """

    @property
    @abstractmethod
    def collection_name(self) -> str:
        """Name of the MongoDB collection."""
        pass

    @property
    @abstractmethod
    def model_class(self) -> type[T]:
        """Pydantic model class for this repository."""
        pass

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    @property
    def store(self) -> DocumentStore:
        return self._store

    # -------------------------------------------------------------------------
    # Document Conversion
    # -------------------------------------------------------------------------

    def _to_model(self, document: Optional[dict[str, Any]]) -> Optional[T]:
        """Convert MongoDB document to Pydantic model."""
        if document is None:
            return None
        return self.model_class.model_validate(document)

    def _to_models(self, documents: list[dict[str, Any]]) -> list[T]:
        """Convert list of MongoDB documents to Pydantic models."""
        return [self._to_model(doc) for doc in documents if doc is not None]

    def _to_document(self, model: T) -> dict[str, Any]:
        """Convert Pydantic model to MongoDB document."""
        return model.model_dump_mongo()

    @staticmethod
    def parse_id(id_value: Any) -> Optional[ObjectId]:
        """Convert a string id to ObjectId; None if it is not a valid id."""
        if isinstance(id_value, ObjectId):
            return id_value
        if isinstance(id_value, str) and ObjectId.is_valid(id_value):
            return ObjectId(id_value)
        return None

    # -------------------------------------------------------------------------
    # CRUD Operations
    # -------------------------------------------------------------------------

    async def create(self, model: T) -> T:
        """Insert a new document. Raises ``DuplicateKeyError`` on a unique clash."""
        now = utcnow()
        model.created_at = now
        model.updated_at = now
        document = self._to_document(model)

        model.id = await self._store.insert_one(self.collection_name, document)
        logger.debug(f"Created {self.collection_name} document: {model.id}")
        return model

    async def get_by_id(self, id_value: Any) -> Optional[T]:
        """Get a document by its ID; malformed ids simply do not match."""
        object_id = self.parse_id(id_value)
        if object_id is None:
            return None
        return await self.find_one({"_id": object_id})

    async def find_one(self, query: dict[str, Any]) -> Optional[T]:
        document = await self._store.find_one(self.collection_name, query)
        return self._to_model(document)

    async def find(
        self,
        query: dict[str, Any],
        sort: Optional[dict[str, int]] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[T]:
        """Find documents matching a query, newest first unless told otherwise."""
        documents = await self._store.find(
            self.collection_name,
            query,
            sort=sort or {"created_at": -1, "_id": -1},
            skip=skip,
            limit=limit,
        )
        return self._to_models(documents)

    async def find_page(
        self,
        query: dict[str, Any],
        params: PageParams,
        sort: Optional[dict[str, int]] = None,
    ) -> tuple[list[T], int]:
        """One page of matches plus the total match count."""
        items = await self.find(query, sort=sort, skip=params.skip, limit=params.limit)
        total = await self.count(query)
        return items, total

    async def ids(self, query: dict[str, Any]) -> list[ObjectId]:
        """Ids of all matching documents."""
        documents = await self._store.find(
            self.collection_name, query, sort={"_id": 1}, projection={"_id": 1}
        )
        return [doc["_id"] for doc in documents]

    async def update_where(
        self, query: dict[str, Any], update_data: dict[str, Any]
    ) -> Optional[T]:
        """
        Conditionally update the first match and return it.

        Returns None when nothing matched, which callers use as the losing
        side of a compare-and-set.
        """
        fields = dict(update_data)
        fields["updated_at"] = utcnow()
        document = await self._store.find_one_and_update(self.collection_name, query, fields)
        if document is not None:
            logger.debug(f"Updated {self.collection_name} document: {document['_id']}")
        return self._to_model(document)

    async def update(self, id_value: Any, update_data: dict[str, Any]) -> Optional[T]:
        """Update a document by ID."""
        object_id = self.parse_id(id_value)
        if object_id is None:
            return None
        return await self.update_where({"_id": object_id}, update_data)

    async def delete(self, id_value: Any) -> bool:
        """Delete a document by ID."""
        object_id = self.parse_id(id_value)
        if object_id is None:
            return False
        deleted = await self._store.delete_one(self.collection_name, {"_id": object_id})
        if deleted:
            logger.debug(f"Deleted {self.collection_name} document: {object_id}")
        return deleted

    async def count(self, query: Optional[dict[str, Any]] = None) -> int:
        """Count documents matching a query."""
        return await self._store.count(self.collection_name, query or {})

    # -------------------------------------------------------------------------
    # Aggregation
    # -------------------------------------------------------------------------

    async def aggregate(self, pipeline: Pipeline) -> list[dict[str, Any]]:
        return await self._store.aggregate(self.collection_name, pipeline)

    async def count_by(self, field: str, query: Optional[dict[str, Any]] = None) -> dict[str, int]:
        """Document counts grouped by ``field`` within ``query``."""
        pipeline = (
            Pipeline()
            .match(query or {})
            .group(f"${field}", count={"$sum": 1})
            .sort({"_id": 1})
        )
        results = await self.aggregate(pipeline)
        return {str(r["_id"]): r["count"] for r in results if r["_id"] is not None}
