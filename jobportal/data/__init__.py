"""
Data layer for the job portal.

Provides the document store abstraction, database connections, data models,
index declarations and repository classes.

Submodules:
- store: DocumentStore interface and the Motor-backed MongoStore
- memory: in-process MemoryStore
- pipeline: declarative aggregation pipelines
- database: MongoDB client management
- indexes: index declarations and startup reconciliation
- models: Pydantic data models/schemas
- repositories: Database operations and queries
"""

from .database import DatabaseManager
from .memory import MemoryStore
from .pipeline import Pipeline
from .store import DocumentStore, MongoStore, request_timeout

__all__ = [
    "DatabaseManager",
    "DocumentStore",
    "MemoryStore",
    "MongoStore",
    "Pipeline",
    "request_timeout",
]
