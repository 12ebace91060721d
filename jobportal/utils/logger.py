"""
Logging for the job portal.

Operational messages go through Loguru to stderr and to a rotating log file.
Audit events get their own ``audit.log`` beside the main file, one line per
event naming the kind of event, the acting principal and the affected
records:

    2024-06-15 12:30:00.000 | TRANSITION   | actor=665f... | application_transitioned application_id=... from_status=pending to_status=reviewed

Audited events are application status changes and withdrawals, resume
downloads, staff provisioning and role changes, and hard deletes.
"""

import sys
from enum import Enum
from typing import Any, Optional

from bson import ObjectId
from loguru import logger

from jobportal.utils.config import LoggingSettings, get_settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
AUDIT_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {extra[audit_type]: <12} | "
    "actor={extra[actor]} | {message}"
)

# Stored credential material never reaches an audit line
CREDENTIAL_FIELDS = frozenset({"password", "password_hash"})

SYSTEM_ACTOR = "system"


class AuditType(str, Enum):
    """Kinds of audited event; each maps to a column in ``audit.log``."""

    TRANSITION = "TRANSITION"
    ACCESS = "ACCESS"
    PROVISIONING = "PROVISIONING"
    DELETION = "DELETION"


def _is_audit_record(record: dict[str, Any]) -> bool:
    return "audit_type" in record["extra"]


def _add_file_sinks(log_settings: LoggingSettings, diagnose: bool) -> None:
    log_file = log_settings.file_path
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_file,
        format=log_settings.format,
        level=log_settings.level,
        rotation=log_settings.rotation,
        retention=log_settings.retention,
        compression="zip",
        backtrace=True,
        diagnose=diagnose,
        enqueue=True,
    )
    logger.add(
        log_file.parent / "audit.log",
        format=AUDIT_FORMAT,
        level="INFO",
        filter=_is_audit_record,
        rotation="1 week",
        retention="1 year",
        compression="zip",
        enqueue=True,
    )


def setup_logging() -> None:
    """
    Install the console sink and, unless ``LOG_FILE_OUTPUT`` is off, the
    rotating log file and the audit file.

    Variable values are only shown in tracebacks for debug builds in the
    development environment.
    """
    settings = get_settings()
    log_settings = settings.logging
    diagnose = settings.debug and settings.environment == "development"

    logger.remove()

    if log_settings.console_output:
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=log_settings.level,
            colorize=True,
            backtrace=True,
            diagnose=diagnose,
        )

    if log_settings.file_output:
        _add_file_sinks(log_settings, diagnose)

    logger.info(f"Logging initialized - Level: {log_settings.level}")


def get_logger(name: str) -> Any:
    """Logger bound to a module name (typically ``__name__``)."""
    return logger.bind(name=name)


def _audit_value(value: Any) -> str:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def format_audit_fields(fields: dict[str, Any]) -> str:
    """``key=value`` pairs in key order, with credential fields left out."""
    return " ".join(
        f"{key}={_audit_value(value)}"
        for key, value in sorted(fields.items())
        if key not in CREDENTIAL_FIELDS
    )


def audit_log(
    action: str,
    audit_type: AuditType,
    actor: Optional[Any] = None,
    **fields: Any,
) -> None:
    """
    Record one audit event.

    Args:
        action: What happened, e.g. ``"application_transitioned"``
        audit_type: Kind of event
        actor: Id of the principal who acted; None for system actions such
            as seeding the first admin
        **fields: The affected records and values. ObjectIds and enums are
            written as plain strings.
    """
    actor_text = _audit_value(actor) if actor is not None else SYSTEM_ACTOR
    message = f"{action} {format_audit_fields(fields)}".rstrip()
    logger.bind(audit_type=AuditType(audit_type).value, actor=actor_text).info(message)
