"""
Core business logic for the job portal.

Submodules:
- principal: the authenticated identity an operation runs as
- scoping: visibility rules per role
- lifecycle: application state machine and application operations
- reporting: job statistics and the admin dashboard
- jobs: job posting operations
- users: account registration and administration
- boundary: error mapping for public operations
- container: wiring of store, repositories and services
"""

from jobportal.core.boundary import error_payload, operation
from jobportal.core.container import Container
from jobportal.core.jobs import JobService
from jobportal.core.lifecycle import TRANSITIONS, ApplicationService, can_transition
from jobportal.core.principal import Principal
from jobportal.core.reporting import ReportingEngine
from jobportal.core.scoping import ScopingPolicy, and_filters, scope_filter
from jobportal.core.users import UserService

__all__ = [
    "ApplicationService",
    "Container",
    "JobService",
    "Principal",
    "ReportingEngine",
    "ScopingPolicy",
    "TRANSITIONS",
    "UserService",
    "and_filters",
    "can_transition",
    "error_payload",
    "operation",
    "scope_filter",
]
