"""Tests for membership invariants (last admin, limits)."""

import pytest

from src.ticketing.models import active_admins, is_last_admin, within_limit
from tests.factories import OrganizationMemberFactory, ProjectMemberFactory

pytestmark = pytest.mark.unit


class TestIsLastAdmin:
    """Tests for is_last_admin."""

    def test_sole_admin_is_last(self):
        admin = OrganizationMemberFactory.admin(user_id="u1")
        members = [admin, OrganizationMemberFactory.build(user_id="u2")]

        assert is_last_admin(members, "u1") is True

    def test_non_admin_is_never_last_admin(self):
        members = [
            OrganizationMemberFactory.admin(user_id="u1"),
            OrganizationMemberFactory.build(user_id="u2"),
        ]

        assert is_last_admin(members, "u2") is False

    def test_two_admins(self):
        members = [
            OrganizationMemberFactory.admin(user_id="u1"),
            OrganizationMemberFactory.admin(user_id="u2"),
        ]

        assert is_last_admin(members, "u1") is False
        assert is_last_admin(members, "u2") is False

    def test_inactive_admin_does_not_count(self):
        """A deactivated admin cannot keep the organization administered."""
        members = [
            OrganizationMemberFactory.admin(user_id="u1"),
            OrganizationMemberFactory.inactive(user_id="u2", role="admin"),
        ]

        assert is_last_admin(members, "u1") is True

    def test_project_members_have_no_active_flag(self):
        members = [
            ProjectMemberFactory.admin(user_id="u1"),
            ProjectMemberFactory.build(user_id="u2"),
        ]

        assert is_last_admin(members, "u1") is True
        assert [m.user_id for m in active_admins(members)] == ["u1"]

    def test_empty_snapshot(self):
        assert is_last_admin([], "u1") is False


class TestWithinLimit:
    """Tests for within_limit."""

    @pytest.mark.parametrize(
        ("current", "maximum", "expected"),
        [(0, 1, True), (2, 3, True), (3, 3, False), (4, 3, False), (0, 0, False)],
    )
    def test_within_limit(self, current, maximum, expected):
        assert within_limit(current, maximum) is expected
