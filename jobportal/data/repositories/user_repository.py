"""
User repository for the job portal.

Provides data access for user accounts. Email uniqueness is enforced by the
unique index on ``users.email``, not by lookups here.
"""

from typing import Any, Optional

from jobportal.data.models.user import User, normalize_email
from jobportal.utils.constants import USERS_COLLECTION, UserRole
from jobportal.utils.logger import get_logger

from .base import BaseRepository

logger = get_logger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for user document operations."""

    @property
    def collection_name(self) -> str:
        return USERS_COLLECTION

    @property
    def model_class(self) -> type[User]:
        return User

    # -------------------------------------------------------------------------
    # Query Operations
    # -------------------------------------------------------------------------

    async def get_by_email(self, email: str) -> Optional[User]:
        return await self.find_one({"email": normalize_email(email)})

    @staticmethod
    def role_query(role: Optional[UserRole] = None) -> dict[str, Any]:
        return {"role": UserRole(role).value} if role else {}

    # -------------------------------------------------------------------------
    # Analytics
    # -------------------------------------------------------------------------

    async def count_by_role(self) -> dict[str, int]:
        """User counts for every role, zero-filled."""
        counts = await self.count_by("role")
        return {role.value: counts.get(role.value, 0) for role in UserRole}
