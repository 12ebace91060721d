"""
User account models.

Applicants register themselves; HR and admin accounts are provisioned by
an existing admin. The stored password hash never leaves the data layer:
every outward-facing model is ``UserPublic``.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from jobportal.utils.constants import UserRole

from .base import BaseDocument, PatchModel, PyObjectId


def normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    if "@" not in normalized or normalized.startswith("@") or normalized.endswith("@"):
        raise ValueError("Invalid email address")
    return normalized


class User(BaseDocument):
    """Stored user document."""

    name: str = Field(..., min_length=1, max_length=120)
    email: str
    phone: Optional[str] = None
    password_hash: str
    role: UserRole = UserRole.APPLICANT
    created_by: Optional[PyObjectId] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)

    def to_public(self) -> "UserPublic":
        return UserPublic.model_validate(self.model_dump(by_alias=True, exclude={"password_hash"}))

    class Settings:
        """MongoDB collection settings."""

        name = "users"
        indexes = ["email"]


class UserPublic(BaseDocument):
    """User as returned by operations; carries no credential."""

    name: str
    email: str
    phone: Optional[str] = None
    role: UserRole
    created_by: Optional[PyObjectId] = None


class UserRegister(BaseModel):
    """Schema for applicant self-registration."""

    name: str = Field(..., min_length=1, max_length=120)
    email: str
    password: str = Field(..., min_length=6)
    phone: Optional[str] = None
    role: Optional[UserRole] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Name must not be blank")
        return stripped

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("phone")
    @classmethod
    def strip_phone(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class StaffUserCreate(BaseModel):
    """Schema for an admin provisioning an HR or admin account."""

    name: str = Field(..., min_length=1, max_length=120)
    email: str
    password: str = Field(..., min_length=6)
    role: UserRole

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Name must not be blank")
        return stripped

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("role")
    @classmethod
    def staff_role_only(cls, v: UserRole) -> UserRole:
        if not UserRole(v).is_staff:
            raise ValueError("Invalid role. Use 'hr' or 'admin'")
        return v


class UserUpdate(PatchModel):
    """Admin update of a user; only name, email and role can change."""

    name: Optional[str] = Field(None, min_length=1, max_length=120)
    email: Optional[str] = None
    role: Optional[UserRole] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v) if v is not None else v
