"""
Index declarations and startup reconciliation.

The unique composite index on applications is what enforces one
application per (job, applicant); the remaining indexes back the report
pipelines and list filters.
"""

from dataclasses import dataclass, field
from typing import Any

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import OperationFailure

from jobportal.data.store import DocumentStore, IndexKeys
from jobportal.utils.constants import (
    APPLICATIONS_COLLECTION,
    JOBS_COLLECTION,
    USERS_COLLECTION,
)
from jobportal.utils.logger import get_logger

logger = get_logger(__name__)

# MongoDB error codes for an index that clashes with an existing one
INDEX_OPTIONS_CONFLICT = 85
INDEX_KEY_SPECS_CONFLICT = 86
CONFLICT_CODES = frozenset({INDEX_OPTIONS_CONFLICT, INDEX_KEY_SPECS_CONFLICT})

UNIQUE_JOB_APPLICANT = "unique_job_applicant"


@dataclass(frozen=True)
class IndexSpec:
    """A declared index: collection, key pattern and creation options."""

    collection: str
    keys: IndexKeys
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.options.get("name") or "_".join(f"{f}_{d}" for f, d in self.keys)


INDEX_SPECS: tuple[IndexSpec, ...] = (
    # Users
    IndexSpec(USERS_COLLECTION, [("email", ASCENDING)], {"unique": True}),
    # Jobs
    IndexSpec(JOBS_COLLECTION, [("status", ASCENDING)]),
    IndexSpec(JOBS_COLLECTION, [("location", ASCENDING)]),
    IndexSpec(JOBS_COLLECTION, [("required_skills", ASCENDING)]),
    IndexSpec(JOBS_COLLECTION, [("created_at", DESCENDING)]),
    IndexSpec(JOBS_COLLECTION, [("created_by", ASCENDING)]),
    # Applications
    IndexSpec(
        APPLICATIONS_COLLECTION,
        [("job_id", ASCENDING), ("applicant_id", ASCENDING)],
        {"unique": True, "name": UNIQUE_JOB_APPLICANT},
    ),
    IndexSpec(APPLICATIONS_COLLECTION, [("applicant_id", ASCENDING)]),
    IndexSpec(APPLICATIONS_COLLECTION, [("job_id", ASCENDING)]),
    IndexSpec(APPLICATIONS_COLLECTION, [("status", ASCENDING)]),
    IndexSpec(APPLICATIONS_COLLECTION, [("resume_score", DESCENDING)]),
    IndexSpec(APPLICATIONS_COLLECTION, [("applied_at", DESCENDING)]),
)


def _normalize_keys(keys: Any) -> IndexKeys:
    """Key pattern with numeric directions as ints; text, hashed and geo types stay strings."""
    return [(f, d if isinstance(d, str) else int(d)) for f, d in keys]


async def _conflicting_index_names(store: DocumentStore, spec: IndexSpec) -> list[str]:
    """Existing indexes that share the spec's name or its key pattern."""
    info = await store.index_information(spec.collection)
    declared_keys = _normalize_keys(spec.keys)
    names = []
    for name, entry in info.items():
        if name == "_id_":
            continue
        if name == spec.name or _normalize_keys(entry.get("key", [])) == declared_keys:
            names.append(name)
    return names


async def ensure_index(store: DocumentStore, spec: IndexSpec) -> bool:
    """
    Create an index, replacing a conflicting one if necessary.

    Idempotent: an identical existing index is left alone. When MongoDB
    reports an options or key-spec conflict, the clashing index is dropped
    and the declared one is created in its place. A failed recreation is
    logged and reported by returning False; any other error propagates.

    Returns:
        True if the declared index is in place afterwards.
    """
    try:
        await store.create_index(spec.collection, spec.keys, **spec.options)
        return True
    except OperationFailure as e:
        if e.code not in CONFLICT_CODES:
            raise
        logger.warning(
            f"Index conflict on {spec.collection}.{spec.name} (code {e.code}); recreating"
        )

    try:
        for name in await _conflicting_index_names(store, spec):
            await store.drop_index(spec.collection, name)
            logger.info(f"Dropped conflicting index {spec.collection}.{name}")
        await store.create_index(spec.collection, spec.keys, **spec.options)
    except OperationFailure as retry_error:
        logger.error(
            f"Failed to recreate index {spec.collection}.{spec.name}: {retry_error}"
        )
        return False

    logger.info(f"Recreated index {spec.collection}.{spec.name}")
    return True


async def ensure_all_indexes(
    store: DocumentStore, specs: tuple[IndexSpec, ...] = INDEX_SPECS
) -> dict[str, bool]:
    """
    Reconcile every declared index, one at a time.

    Returns a mapping of ``collection.index_name`` to whether the index is
    in place.
    """
    logger.info("Ensuring database indexes")
    results: dict[str, bool] = {}
    for spec in specs:
        results[f"{spec.collection}.{spec.name}"] = await ensure_index(store, spec)

    failed = [name for name, ok in results.items() if not ok]
    if failed:
        logger.warning(f"Indexes not reconciled: {', '.join(failed)}")
    else:
        logger.info("Database indexes created successfully")
    return results
