"""
Operation boundary.

Every public service method is wrapped with ``@operation(name)`` so callers
only ever see ``PortalException`` subclasses. Classified failures pass
through unchanged; library failures are mapped onto the taxonomy; anything
else is logged with its traceback and surfaced as a generic
``DependencyException`` that carries no internals.
"""

import asyncio
import functools
from typing import Any, Awaitable, Callable, TypeVar

from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError, PyMongoError

from jobportal.utils.exceptions import (
    ConflictException,
    DependencyException,
    PortalException,
    ValidationException,
)
from jobportal.utils.logger import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def validation_from_pydantic(error: ValidationError) -> ValidationException:
    """Field-level ``ValidationException`` from a pydantic error."""
    fields = [
        {
            "field": ".".join(str(part) for part in item["loc"]) or "__root__",
            "message": item["msg"],
        }
        for item in error.errors()
    ]
    return ValidationException("Invalid input", {"fields": fields})


def operation(name: str) -> Callable[[F], F]:
    """Map failures raised by the wrapped coroutine onto the error taxonomy."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except PortalException as e:
                logger.debug(f"{name} failed: {e.kind}: {e.message}")
                raise
            except ValidationError as e:
                raise validation_from_pydantic(e) from e
            except DuplicateKeyError as e:
                logger.warning(f"{name}: duplicate key: {e}")
                raise ConflictException("resource", "Resource already exists") from e
            except asyncio.TimeoutError as e:
                logger.error(f"{name}: timed out")
                raise DependencyException("Operation timed out") from e
            except PyMongoError as e:
                logger.error(f"{name}: store failure: {e}")
                raise DependencyException() from e
            except Exception:
                logger.exception(f"Unexpected failure in {name}")
                raise DependencyException() from None

        wrapper.operation_name = name  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]

    return decorator


def error_payload(exc: BaseException) -> dict[str, Any]:
    """Stable ``{success, kind, message, details}`` rendering of a failure."""
    if not isinstance(exc, PortalException):
        exc = DependencyException()
    return {"success": False, **exc.to_dict()}
