"""
Authenticated principal.

Credential verification happens before any operation runs; operations only
ever see the resolved ``Principal``.
"""

from dataclasses import dataclass

from bson import ObjectId

from jobportal.data.models.user import User
from jobportal.utils.constants import UserRole


@dataclass(frozen=True)
class Principal:
    """The identity and role making a request."""

    id: ObjectId
    role: UserRole
    name: str = ""
    email: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", UserRole(self.role))

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, role=UserRole(user.role), name=user.name, email=user.email)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_hr(self) -> bool:
        return self.role == UserRole.HR

    @property
    def is_applicant(self) -> bool:
        return self.role == UserRole.APPLICANT

    @property
    def is_staff(self) -> bool:
        return self.role.is_staff
