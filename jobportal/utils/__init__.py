"""
Utility modules for the job portal.

This package contains shared utilities used across the application:
- config: Configuration management
- logger: Logging infrastructure
- constants: Application-wide constants and enums
- exceptions: Error taxonomy
"""

from jobportal.utils.config import (
    AppSettings,
    get_settings,
    reload_settings,
    ROOT_DIR,
    PACKAGE_DIR,
    DATA_DIR,
)
from jobportal.utils.constants import (
    APP_NAME,
    APP_DISPLAY_NAME,
    VERSION,
    ApplicationStatus,
    JobStatus,
    ResourceKind,
    UserRole,
)
from jobportal.utils.logger import (
    setup_logging,
    get_logger,
    audit_log,
    AuditType,
)

__all__ = [
    # Config
    "AppSettings",
    "get_settings",
    "reload_settings",
    "ROOT_DIR",
    "PACKAGE_DIR",
    "DATA_DIR",
    # Constants
    "APP_NAME",
    "APP_DISPLAY_NAME",
    "VERSION",
    "ApplicationStatus",
    "JobStatus",
    "ResourceKind",
    "UserRole",
    # Logger
    "setup_logging",
    "get_logger",
    "audit_log",
    "AuditType",
]
