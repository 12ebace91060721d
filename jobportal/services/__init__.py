"""
Services for the job portal.

This module contains services that sit beside the data store, such as
resume file storage.
"""

from jobportal.services.resume_storage import (
    GridFSResumeStorage,
    InMemoryResumeStorage,
    ResumeStorage,
    validate_upload,
)

__all__ = [
    "GridFSResumeStorage",
    "InMemoryResumeStorage",
    "ResumeStorage",
    "validate_upload",
]
