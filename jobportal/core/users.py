"""
User account operations.

Applicants register themselves. HR and admin accounts are provisioned by an
existing admin, and the very first admin comes from ``seed_admin``.
Duplicate emails are rejected by the unique index on ``users.email``.
"""

from typing import Any, Optional

from pymongo.errors import DuplicateKeyError

from jobportal.core.boundary import operation
from jobportal.core.principal import Principal
from jobportal.data.models.pagination import Page, PageParams
from jobportal.data.models.user import (
    StaffUserCreate,
    User,
    UserPublic,
    UserRegister,
    UserUpdate,
)
from jobportal.data.repositories.user_repository import UserRepository
from jobportal.utils.config import AdminSeedSettings
from jobportal.utils.constants import UserRole
from jobportal.utils.exceptions import (
    ConflictException,
    ForbiddenException,
    MalformedCredentialException,
    NotFoundException,
    UnauthenticatedException,
)
from jobportal.utils.logger import AuditType, audit_log, get_logger
from jobportal.utils.security import hash_password

logger = get_logger(__name__)

DUPLICATE_EMAIL = "User already exists with this email"


class UserService:
    """Registration, provisioning and administration of user accounts."""

    def __init__(self, users: UserRepository) -> None:
        self._users = users

    @staticmethod
    def _require_admin(principal: Optional[Principal]) -> Principal:
        if principal is None or not principal.is_admin:
            raise ForbiddenException("Only admins can manage users")
        return principal

    async def _insert(self, user: User) -> User:
        try:
            return await self._users.create(user)
        except DuplicateKeyError as e:
            raise ConflictException("User", DUPLICATE_EMAIL) from e

    # -------------------------------------------------------------------------
    # Registration & provisioning
    # -------------------------------------------------------------------------

    @operation("register_applicant")
    async def register_applicant(self, data: UserRegister | dict[str, Any]) -> UserPublic:
        """Self-registration; only the applicant role may be requested."""
        if not isinstance(data, UserRegister):
            data = UserRegister.model_validate(data)
        if data.role is not None and UserRole(data.role) != UserRole.APPLICANT:
            raise ForbiddenException("Only applicants can self-register")

        user = await self._insert(
            User(
                name=data.name,
                email=data.email,
                phone=data.phone,
                password_hash=hash_password(data.password),
                role=UserRole.APPLICANT,
            )
        )
        logger.info(f"Applicant registered: {user.id}")
        return user.to_public()

    @operation("create_staff_user")
    async def create_staff_user(
        self, principal: Principal, data: StaffUserCreate | dict[str, Any]
    ) -> UserPublic:
        """Provision an HR or admin account (admin only)."""
        self._require_admin(principal)
        if not isinstance(data, StaffUserCreate):
            data = StaffUserCreate.model_validate(data)

        user = await self._insert(
            User(
                name=data.name,
                email=data.email,
                password_hash=hash_password(data.password),
                role=data.role,
                created_by=principal.id,
            )
        )
        audit_log(
            "user_provisioned",
            AuditType.PROVISIONING,
            actor=principal.id,
            user_id=user.id,
            role=user.role,
        )
        return user.to_public()

    @operation("seed_admin")
    async def seed_admin(self, settings: AdminSeedSettings) -> tuple[UserPublic, bool]:
        """
        Create the initial admin account if it does not exist yet.

        Returns:
            The admin account and whether it was created by this call.
        """
        existing = await self._users.get_by_email(settings.email)
        if existing is not None:
            logger.warning(f"Admin account already exists: {existing.email}")
            return existing.to_public(), False

        admin = User(
            name=settings.name,
            email=settings.email,
            password_hash=hash_password(settings.password),
            role=UserRole.ADMIN,
        )
        try:
            admin = await self._users.create(admin)
        except DuplicateKeyError:
            # Seeded concurrently by another process
            existing = await self._users.get_by_email(settings.email)
            if existing is None:
                raise
            return existing.to_public(), False

        audit_log(
            "admin_seeded",
            AuditType.PROVISIONING,
            user_id=admin.id,
            email=admin.email,
        )
        return admin.to_public(), True

    # -------------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------------

    @operation("list_users")
    async def list_users(
        self,
        principal: Principal,
        role: Optional[UserRole] = None,
        params: Optional[PageParams] = None,
    ) -> Page[UserPublic]:
        self._require_admin(principal)
        params = params or PageParams()
        users, total = await self._users.find_page(self._users.role_query(role), params)
        return Page[UserPublic].build([u.to_public() for u in users], total, params)

    @operation("get_user")
    async def get_user(self, principal: Principal, user_id: Any) -> UserPublic:
        """Admins can read any account, everyone else only their own."""
        user = await self._users.get_by_id(user_id)
        if user is None or not (principal.is_admin or user.id == principal.id):
            raise NotFoundException("User", user_id)
        return user.to_public()

    @operation("update_user")
    async def update_user(
        self, principal: Principal, user_id: Any, patch: UserUpdate | dict[str, Any]
    ) -> UserPublic:
        self._require_admin(principal)
        if not isinstance(patch, UserUpdate):
            patch = UserUpdate.model_validate(patch)

        fields = patch.to_update_fields()
        if not fields:
            user = await self._users.get_by_id(user_id)
        else:
            try:
                user = await self._users.update(user_id, fields)
            except DuplicateKeyError as e:
                raise ConflictException("User", DUPLICATE_EMAIL) from e
        if user is None:
            raise NotFoundException("User", user_id)

        if "role" in fields:
            audit_log(
                "user_role_changed",
                AuditType.PROVISIONING,
                actor=principal.id,
                user_id=user.id,
                role=fields["role"],
            )
        return user.to_public()

    @operation("delete_user")
    async def delete_user(self, principal: Principal, user_id: Any) -> None:
        """Hard delete. Jobs and applications referencing the user are kept."""
        self._require_admin(principal)
        if not await self._users.delete(user_id):
            raise NotFoundException("User", user_id)
        audit_log(
            "user_deleted",
            AuditType.DELETION,
            actor=principal.id,
            user_id=user_id,
        )

    # -------------------------------------------------------------------------
    # Principal resolution
    # -------------------------------------------------------------------------

    @operation("resolve_principal")
    async def resolve_principal(self, email: str) -> Principal:
        """Principal for an existing account, used by trusted local callers."""
        try:
            user = await self._users.get_by_email(email)
        except ValueError:
            raise MalformedCredentialException("Malformed email") from None
        if user is None:
            raise UnauthenticatedException("Unknown user")
        return Principal.from_user(user)
