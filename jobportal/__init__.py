"""
jobportal - role-scoped recruitment tracking backend.

Jobs are posted by HR and admin users, applicants apply with a resume,
and staff review applications and platform analytics.
"""

__app_name__ = "jobportal"
__version__ = "0.1.0"
