"""
Tests for jobportal.utils.constants — roles, statuses and report limits.
"""

from jobportal.utils.constants import (
    APPLICATIONS_WINDOW_DAYS,
    MAX_RESUME_SCORE,
    MIN_RESUME_SCORE,
    RECENT_ACTIVITIES_LIMIT,
    TOP_HRS_LIMIT,
    TOP_JOBS_LIMIT,
    TOP_SKILLS_LIMIT,
    ApplicationStatus,
    JobStatus,
    ResourceKind,
    UserRole,
)


# ── Enum value correctness ──────────────────────────────────────────────────


class TestUserRole:
    def test_all_values_present(self):
        assert {r.value for r in UserRole} == {"applicant", "hr", "admin"}

    def test_staff_roles(self):
        assert UserRole.HR.is_staff
        assert UserRole.ADMIN.is_staff
        assert not UserRole.APPLICANT.is_staff

    def test_str_comparison(self):
        assert UserRole.HR == "hr"


class TestJobStatus:
    def test_all_values_present(self):
        assert {s.value for s in JobStatus} == {"draft", "published", "closed"}


class TestApplicationStatus:
    def test_all_values_present(self):
        expected = {
            "pending",
            "reviewed",
            "shortlisted",
            "interview_scheduled",
            "selected",
            "rejected",
            "withdrawn",
        }
        assert {s.value for s in ApplicationStatus} == expected

    def test_terminal_statuses(self):
        terminal = {s for s in ApplicationStatus if s.is_terminal}
        assert terminal == {
            ApplicationStatus.SELECTED,
            ApplicationStatus.REJECTED,
            ApplicationStatus.WITHDRAWN,
        }


class TestResourceKind:
    def test_values(self):
        assert ResourceKind("job") == ResourceKind.JOB
        assert ResourceKind("application") == ResourceKind.APPLICATION


# ── Limits ──────────────────────────────────────────────────────────────────


class TestLimits:
    def test_ranking_limits(self):
        assert TOP_SKILLS_LIMIT == 10
        assert TOP_JOBS_LIMIT == 5
        assert TOP_HRS_LIMIT == 5
        assert RECENT_ACTIVITIES_LIMIT == 10

    def test_week_window(self):
        assert APPLICATIONS_WINDOW_DAYS == 7

    def test_score_bounds(self):
        assert MIN_RESUME_SCORE == 0.0
        assert MAX_RESUME_SCORE == 100.0
