"""
Database connection manager for the job portal.

Builds the Motor client from settings and hands out a ``MongoStore``.
The manager is constructed once at startup and passed to whatever needs
it; there is no module-level connection.
"""

from typing import Optional
from urllib.parse import quote_plus

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure

from jobportal.data.store import MongoStore
from jobportal.utils.config import DatabaseSettings
from jobportal.utils.logger import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    """
    Owns the MongoDB client for the lifetime of the process.

    Created at startup, shared read-only afterwards, closed at shutdown.
    """

    def __init__(self, settings: DatabaseSettings) -> None:
        self._settings = settings
        self._db_name = settings.name
        self._uri = self._build_uri()
        self._client: Optional[AsyncIOMotorClient] = None

    def _build_uri(self) -> str:
        """
        Build MongoDB connection URI from settings.

        Security: URL-encodes credentials to prevent injection attacks.
        """
        host = self._settings.host.strip()
        if not host or any(c in host for c in [";", "&", "|", "$", "`"]):
            raise ValueError(f"Invalid database host: {host}")

        auth = ""
        if self._settings.username and self._settings.password:
            encoded_user = quote_plus(self._settings.username)
            encoded_pass = quote_plus(self._settings.password)
            auth = f"{encoded_user}:{encoded_pass}@"

        return f"mongodb://{auth}{host}:{self._settings.port}"

    # -------------------------------------------------------------------------
    # Client
    # -------------------------------------------------------------------------

    def get_client(self) -> AsyncIOMotorClient:
        """Get or create the asynchronous MongoDB client."""
        if self._client is None:
            logger.info("Creating asynchronous MongoDB client")
            self._client = AsyncIOMotorClient(
                self._uri,
                serverSelectionTimeoutMS=self._settings.server_selection_timeout_ms,
                connectTimeoutMS=self._settings.server_selection_timeout_ms,
                maxPoolSize=50,
                minPoolSize=5,
            )
        return self._client

    def get_database(self) -> AsyncIOMotorDatabase:
        return self.get_client()[self._db_name]

    def create_store(self) -> MongoStore:
        """Wrap the database in a ``MongoStore`` bounded by the configured timeout."""
        return MongoStore(self.get_database(), timeout_seconds=self._settings.timeout_seconds)

    async def check_connection(self) -> bool:
        """Check if the connection is healthy."""
        try:
            await self.get_client().admin.command("ping")
            return True
        except ConnectionFailure as e:
            logger.error(f"Connection check failed: {e}")
            return False

    def close(self) -> None:
        if self._client:
            logger.info("Closing MongoDB client")
            self._client.close()
            self._client = None
