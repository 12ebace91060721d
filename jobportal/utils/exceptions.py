"""
Error taxonomy for the job portal.

Every failure surfaced by an operation is one of these kinds. The ``kind``
attribute is the stable machine-readable identifier; ``message`` is meant
for humans.
"""

from typing import Any, Optional


class PortalException(Exception):
    """Base exception for all classified operation failures."""

    kind = "error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "details": self.details}


class ValidationException(PortalException):
    """Missing or malformed input. ``details["fields"]`` lists the offending fields."""

    kind = "validation"

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationException":
        return cls(message, {"fields": [{"field": field, "message": message}]})


class UnauthenticatedException(PortalException):
    """No principal, or the credential could not be resolved."""

    kind = "unauthenticated"

    def __init__(self, message: str = "Authentication required", details: Optional[dict[str, Any]] = None):
        super().__init__(message, details)


class MalformedCredentialException(UnauthenticatedException):
    """The credential could not be parsed."""

    def __init__(self, message: str = "Malformed credential", details: Optional[dict[str, Any]] = None):
        super().__init__(message, details)


class ForbiddenException(PortalException):
    """Authenticated, but the role or ownership does not allow the action."""

    kind = "forbidden"

    def __init__(self, message: str = "Access denied", details: Optional[dict[str, Any]] = None):
        super().__init__(message, details)


class NotFoundException(PortalException):
    """
    Referenced record is absent or not visible to the caller.

    The two cases are deliberately indistinguishable.
    """

    kind = "not_found"

    def __init__(self, resource_type: str, identifier: Any, details: Optional[dict[str, Any]] = None):
        super().__init__(f"{resource_type} not found", details)
        self.resource_type = resource_type
        self.identifier = str(identifier)


class ConflictException(PortalException):
    """A uniqueness constraint was violated."""

    kind = "conflict"

    def __init__(self, resource_type: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, details)
        self.resource_type = resource_type


class InvalidTransitionException(PortalException):
    """Illegal application status change."""

    kind = "invalid_transition"

    def __init__(self, current: str, target: str, details: Optional[dict[str, Any]] = None):
        super().__init__(f"Cannot move application from '{current}' to '{target}'", details)
        self.current = current
        self.target = target


class DependencyException(PortalException):
    """The store or the storage backend is unavailable, timed out, or failed unexpectedly."""

    kind = "dependency"

    def __init__(self, message: str = "Service temporarily unavailable", details: Optional[dict[str, Any]] = None):
        super().__init__(message, details)
