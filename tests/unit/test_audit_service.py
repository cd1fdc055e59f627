"""Unit tests for AuditService."""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from src.ticketing.core.audit_context import AuditContext, request_scope
from src.ticketing.models import AuditAction, AuditStatus
from src.ticketing.services import AuditService

pytestmark = pytest.mark.unit


@pytest.fixture
def mock_audit_repo() -> MagicMock:
    """Create mock audit repository."""
    repo = MagicMock()
    repo.add = MagicMock()
    return repo


@pytest.fixture
def mock_session() -> AsyncMock:
    """Create mock database session."""
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def audit_service(mock_audit_repo, mock_session) -> AuditService:
    return AuditService(mock_audit_repo, mock_session)


class TestEmit:
    """Tests for emit()."""

    async def test_emit_creates_audit_log(self, audit_service, mock_audit_repo, mock_session):
        org_id = uuid4()
        ticket_id = uuid4()

        result = await audit_service.emit(
            AuditAction.TICKET_STATUS_CHANGE,
            "ticket",
            entity_id=ticket_id,
            user_id="u1",
            changes={"status": {"old": "open", "new": "in_progress"}},
            organization_id=org_id,
        )

        assert result is not None
        mock_audit_repo.add.assert_called_once_with(result)
        mock_session.commit.assert_called_once()
        assert result.action == "ticket.status_change"
        assert result.entity_id == ticket_id
        assert result.organization_id == org_id
        assert result.status == AuditStatus.SUCCESS.value

    async def test_emit_accepts_plain_string_action(self, audit_service):
        result = await audit_service.emit("custom.action", "ticket")

        assert result is not None
        assert result.action == "custom.action"

    async def test_emit_uses_audit_context(self, audit_service):
        ctx = AuditContext(ip_address="10.1.1.1", user_agent="cli/2", request_id="req-1")

        with patch("src.ticketing.services.audit_service.get_audit_context", return_value=ctx):
            result = await audit_service.emit(AuditAction.PROJECT_CREATE, "project")

        assert result.ip_address == "10.1.1.1"
        assert result.user_agent == "cli/2"
        assert result.request_id == "req-1"

    async def test_emit_inside_request_scope(self, audit_service):
        with request_scope(request_id="req-7", ip_address="192.0.2.4", actor_id="u1"):
            result = await audit_service.emit(AuditAction.TICKET_CREATE, "ticket", user_id="u1")

        assert result.request_id == "req-7"
        assert result.ip_address == "192.0.2.4"

    async def test_emit_without_context(self, audit_service):
        with patch("src.ticketing.services.audit_service.get_audit_context", return_value=None):
            result = await audit_service.emit(AuditAction.PROJECT_CREATE, "project")

        assert result.ip_address is None
        assert result.request_id is None

    async def test_error_message_is_truncated(self, audit_service):
        result = await audit_service.emit(
            AuditAction.TICKET_DELETE,
            "ticket",
            status=AuditStatus.FAILURE,
            error_message="e" * 2000,
        )

        assert result.status == "failure"
        assert len(result.error_message) == 1000


class TestEmitFailure:
    """A failed audit write never propagates."""

    async def test_commit_failure_returns_none(self, audit_service, mock_session):
        mock_session.commit.side_effect = Exception("database down")

        result = await audit_service.emit(AuditAction.TICKET_CREATE, "ticket")

        assert result is None
        mock_session.rollback.assert_called_once()

    async def test_rollback_failure_is_suppressed(self, audit_service, mock_session):
        mock_session.commit.side_effect = Exception("database down")
        mock_session.rollback.side_effect = Exception("connection lost")

        assert await audit_service.emit(AuditAction.TICKET_CREATE, "ticket") is None
