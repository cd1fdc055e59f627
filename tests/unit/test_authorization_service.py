"""Unit tests for AuthorizationService."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.ticketing.models import OrganizationRole, ProjectRole
from src.ticketing.services import AuthorizationService

pytestmark = pytest.mark.unit


def _repo(role) -> MagicMock:
    repo = MagicMock()
    repo.get_role = AsyncMock(return_value=role)
    return repo


def _authz(org_role=None, project_role=None) -> AuthorizationService:
    return AuthorizationService(_repo(org_role), _repo(project_role))


class TestOrganizationChecks:
    """Organization-level checks derive from the active organization role."""

    @pytest.mark.parametrize(
        ("role", "access", "manage", "create_project"),
        [
            (None, False, False, False),
            (OrganizationRole.MEMBER, True, False, False),
            (OrganizationRole.MANAGER, True, False, True),
            (OrganizationRole.ADMIN, True, True, True),
        ],
    )
    async def test_role_matrix(self, role, access, manage, create_project):
        authz = _authz(org_role=role)
        org_id = uuid4()

        assert await authz.can_access_organization(org_id, "u1") is access
        assert await authz.can_manage_organization(org_id, "u1") is manage
        assert await authz.can_manage_members(org_id, "u1") is manage
        assert await authz.can_create_project(org_id, "u1") is create_project

    async def test_empty_user_is_denied_without_lookup(self):
        authz = _authz(org_role=OrganizationRole.ADMIN)

        assert await authz.can_access_organization(uuid4(), "") is False
        authz.org_member_repo.get_role.assert_not_called()


class TestProjectChecks:
    """Project checks use project membership only."""

    @pytest.mark.parametrize(
        ("role", "access", "manage"),
        [
            (None, False, False),
            (ProjectRole.VIEWER, True, False),
            (ProjectRole.MEMBER, True, False),
            (ProjectRole.ADMIN, True, True),
        ],
    )
    async def test_role_matrix(self, role, access, manage):
        authz = _authz(project_role=role)
        project_id = uuid4()

        assert await authz.can_access_project(project_id, "u1") is access
        assert await authz.can_manage_project(project_id, "u1") is manage

    async def test_org_admin_does_not_imply_project_access(self):
        authz = _authz(org_role=OrganizationRole.ADMIN, project_role=None)

        assert await authz.can_access_project(uuid4(), "u1") is False
        authz.org_member_repo.get_role.assert_not_called()

    async def test_repository_failure_propagates(self):
        authz = _authz()
        authz.project_member_repo.get_role.side_effect = RuntimeError("db down")

        with pytest.raises(RuntimeError):
            await authz.can_access_project(uuid4(), "u1")
