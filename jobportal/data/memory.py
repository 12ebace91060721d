"""
In-process ``DocumentStore``.

Holds collections as lists of documents and executes queries and
pipelines with the same semantics as MongoDB for the operators this
package uses. Unique indexes are enforced on insert and update and raise
PyMongo's own ``DuplicateKeyError``; index conflicts raise
``OperationFailure`` with MongoDB's error codes.

Each method checks and mutates without awaiting, so concurrent coroutines
on one event loop observe every write atomically.
"""

import copy
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Optional

from bson import ObjectId
from pymongo.errors import DuplicateKeyError, OperationFailure

from jobportal.data.pipeline import MISSING, Pipeline, get_path, matches, set_path
from jobportal.data.store import DocumentStore, IndexKeys

DUPLICATE_KEY = 11000
INDEX_NOT_FOUND = 27
INDEX_OPTIONS_CONFLICT = 85
INDEX_KEY_SPECS_CONFLICT = 86


def default_index_name(keys: IndexKeys) -> str:
    """MongoDB's generated index name, e.g. ``job_id_1_applicant_id_1``."""
    return "_".join(f"{field}_{direction}" for field, direction in keys)


@dataclass
class _Index:
    keys: IndexKeys
    unique: bool = False

    def key_of(self, document: dict[str, Any]) -> tuple:
        values = []
        for field, _ in self.keys:
            value = get_path(document, field)
            values.append(None if value is MISSING else value)
        return tuple(values)


class MemoryStore(DocumentStore):
    """``DocumentStore`` kept entirely in memory."""

    def __init__(self) -> None:
        self._collections: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self._indexes: dict[str, dict[str, _Index]] = defaultdict(dict)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _documents(self, collection: str) -> list[dict[str, Any]]:
        return self._collections[collection]

    def _check_unique(
        self,
        collection: str,
        document: dict[str, Any],
        exclude_id: Optional[ObjectId] = None,
    ) -> None:
        others = [d for d in self._documents(collection) if d["_id"] != exclude_id]
        if any(d["_id"] == document["_id"] for d in others):
            raise DuplicateKeyError(
                f"E11000 duplicate key error collection: {collection} index: _id_",
                DUPLICATE_KEY,
            )
        for name, index in self._indexes[collection].items():
            if not index.unique:
                continue
            key = index.key_of(document)
            if any(index.key_of(other) == key for other in others):
                raise DuplicateKeyError(
                    f"E11000 duplicate key error collection: {collection} "
                    f"index: {name} dup key: {key}",
                    DUPLICATE_KEY,
                )

    def _find_position(self, collection: str, query: dict[str, Any]) -> Optional[int]:
        for position, document in enumerate(self._documents(collection)):
            if matches(document, query):
                return position
        return None

    def _resolve(self, collection: str) -> list[dict[str, Any]]:
        return self._documents(collection)

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    async def insert_one(self, collection: str, document: dict[str, Any]) -> ObjectId:
        stored = copy.deepcopy(document)
        stored.setdefault("_id", ObjectId())
        self._check_unique(collection, stored)
        self._documents(collection).append(stored)
        document["_id"] = stored["_id"]
        return stored["_id"]

    async def find_one(self, collection, query, projection=None):
        rows = await self.find(collection, query, limit=1, projection=projection)
        return rows[0] if rows else None

    async def find(self, collection, query, sort=None, skip=0, limit=0, projection=None):
        pipeline = Pipeline().match(query)
        if sort:
            pipeline.sort(sort)
        if skip:
            pipeline.skip(skip)
        if limit:
            pipeline.limit(limit)
        if projection:
            pipeline.project(projection)
        return pipeline.run(self._documents(collection), self._resolve)

    async def count(self, collection, query=None):
        return sum(1 for d in self._documents(collection) if matches(d, query or {}))

    async def find_one_and_update(self, collection, query, set_fields):
        position = self._find_position(collection, query)
        if position is None:
            return None
        current = self._documents(collection)[position]
        updated = copy.deepcopy(current)
        for path, value in set_fields.items():
            set_path(updated, path, copy.deepcopy(value))
        self._check_unique(collection, updated, exclude_id=current["_id"])
        self._documents(collection)[position] = updated
        return copy.deepcopy(updated)

    async def delete_one(self, collection, query):
        position = self._find_position(collection, query)
        if position is None:
            return False
        del self._documents(collection)[position]
        return True

    async def aggregate(self, collection, pipeline):
        return pipeline.run(self._documents(collection), self._resolve)

    # -------------------------------------------------------------------------
    # Indexes
    # -------------------------------------------------------------------------

    async def create_index(self, collection: str, keys: IndexKeys, **options: Any) -> str:
        keys = [(field, direction) for field, direction in keys]
        name = options.get("name") or default_index_name(keys)
        unique = bool(options.get("unique", False))
        indexes = self._indexes[collection]

        existing = indexes.get(name)
        if existing is not None:
            if existing.keys != keys:
                raise OperationFailure(
                    f"An existing index has the same name as the requested index: {name}",
                    INDEX_KEY_SPECS_CONFLICT,
                )
            if existing.unique != unique:
                raise OperationFailure(
                    f"An existing index has the same name but different options: {name}",
                    INDEX_OPTIONS_CONFLICT,
                )
            return name

        for other_name, other in indexes.items():
            if other.keys == keys:
                raise OperationFailure(
                    f"Index already exists with a different name: {other_name}",
                    INDEX_OPTIONS_CONFLICT,
                )

        index = _Index(keys=keys, unique=unique)
        if unique:
            seen: set = set()
            for document in self._documents(collection):
                key = repr(index.key_of(document))
                if key in seen:
                    raise DuplicateKeyError(
                        f"E11000 duplicate key error collection: {collection} index: {name}",
                        DUPLICATE_KEY,
                    )
                seen.add(key)

        indexes[name] = index
        return name

    async def drop_index(self, collection: str, name: str) -> None:
        if name not in self._indexes[collection]:
            raise OperationFailure(f"index not found with name [{name}]", INDEX_NOT_FOUND)
        del self._indexes[collection][name]

    async def index_information(self, collection: str) -> dict[str, dict[str, Any]]:
        info: dict[str, dict[str, Any]] = {"_id_": {"key": [("_id", 1)]}}
        for name, index in self._indexes[collection].items():
            entry: dict[str, Any] = {"key": list(index.keys)}
            if index.unique:
                entry["unique"] = True
            info[name] = entry
        return info
