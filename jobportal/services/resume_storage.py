"""
Resume file storage.

Validates uploaded resumes (type and size) and stores their bytes in a
backend. Applications only keep the returned ``ResumeArtifact`` reference.

Backends:
- GridFSResumeStorage: MongoDB GridFS bucket through Motor
- InMemoryResumeStorage: process-local dictionary, used by tests and local runs
"""

import uuid
from abc import ABC, abstractmethod
from typing import Optional

from bson import ObjectId
from gridfs.errors import NoFile
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorGridFSBucket

from jobportal.data.models.application import ResumeArtifact
from jobportal.utils.config import ResumeSettings, get_settings
from jobportal.utils.exceptions import NotFoundException, ValidationException
from jobportal.utils.logger import get_logger

logger = get_logger(__name__)


def validate_upload(
    data: bytes,
    filename: str,
    content_type: str,
    settings: Optional[ResumeSettings] = None,
) -> None:
    """
    Reject resumes that are empty, too large or of a disallowed type.

    Raises:
        ValidationException: naming the offending field.
    """
    settings = settings or get_settings().resume

    if not filename or not filename.strip():
        raise ValidationException.for_field("resume", "Resume filename is required")
    if not data:
        raise ValidationException.for_field("resume", "Resume file is required")
    if content_type not in settings.allowed_content_types:
        raise ValidationException.for_field("resume", "Only PDF and DOC/DOCX allowed")
    if len(data) > settings.max_size_bytes:
        max_mb = settings.max_size_bytes / (1024 * 1024)
        raise ValidationException.for_field("resume", f"Resume exceeds {max_mb:g}MB limit")


class ResumeStorage(ABC):
    """Stores and retrieves resume bytes."""

    def __init__(self, settings: Optional[ResumeSettings] = None) -> None:
        self._settings = settings or get_settings().resume

    async def save(self, data: bytes, filename: str, content_type: str) -> ResumeArtifact:
        """Validate and store a resume, returning its reference."""
        validate_upload(data, filename, content_type, self._settings)
        file_id = await self._put(data, filename, content_type)
        logger.info(f"Stored resume {filename} ({len(data)} bytes) as {file_id}")
        return ResumeArtifact(
            file_id=file_id,
            filename=filename,
            content_type=content_type,
            size_bytes=len(data),
        )

    @abstractmethod
    async def _put(self, data: bytes, filename: str, content_type: str) -> str:
        """Store bytes and return the new file id."""

    @abstractmethod
    async def open(self, file_id: str) -> bytes:
        """Return the stored bytes. Raises ``NotFoundException`` if missing."""

    @abstractmethod
    async def delete(self, file_id: str) -> None:
        """Remove a stored file; missing files are ignored."""


class GridFSResumeStorage(ResumeStorage):
    """Resumes stored in a GridFS bucket."""

    def __init__(
        self, database: AsyncIOMotorDatabase, settings: Optional[ResumeSettings] = None
    ) -> None:
        super().__init__(settings)
        self._bucket = AsyncIOMotorGridFSBucket(database, bucket_name=self._settings.bucket_name)

    @staticmethod
    def _object_id(file_id: str) -> ObjectId:
        if not ObjectId.is_valid(file_id):
            raise NotFoundException("Resume", file_id)
        return ObjectId(file_id)

    async def _put(self, data: bytes, filename: str, content_type: str) -> str:
        file_id = await self._bucket.upload_from_stream(
            filename, data, metadata={"content_type": content_type}
        )
        return str(file_id)

    async def open(self, file_id: str) -> bytes:
        try:
            stream = await self._bucket.open_download_stream(self._object_id(file_id))
        except NoFile as e:
            raise NotFoundException("Resume", file_id) from e
        return await stream.read()

    async def delete(self, file_id: str) -> None:
        try:
            await self._bucket.delete(self._object_id(file_id))
        except (NoFile, NotFoundException):
            logger.warning(f"Resume {file_id} already removed")


class InMemoryResumeStorage(ResumeStorage):
    """Resumes kept in a dictionary for the lifetime of the process."""

    def __init__(self, settings: Optional[ResumeSettings] = None) -> None:
        super().__init__(settings)
        self._files: dict[str, bytes] = {}

    async def _put(self, data: bytes, filename: str, content_type: str) -> str:
        file_id = uuid.uuid4().hex
        self._files[file_id] = bytes(data)
        return file_id

    async def open(self, file_id: str) -> bytes:
        if file_id not in self._files:
            raise NotFoundException("Resume", file_id)
        return self._files[file_id]

    async def delete(self, file_id: str) -> None:
        self._files.pop(file_id, None)

    def __contains__(self, file_id: str) -> bool:
        return file_id in self._files

    def __len__(self) -> int:
        return len(self._files)
