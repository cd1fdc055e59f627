"""Tests for structured logging context."""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import structlog
from structlog.testing import CapturingLogger

from src.ticketing.core.logging import (
    bind_actor_context,
    bind_request_context,
    clear_request_context,
    setup_logging,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def capturing_logger():
    """Route structlog output to a CapturingLogger for the test."""
    cap_logger = CapturingLogger()
    old_config = structlog.get_config()

    structlog.configure(
        processors=[structlog.contextvars.merge_contextvars],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=lambda *args, **kwargs: cap_logger,
        cache_logger_on_first_use=False,
    )

    clear_request_context()
    yield cap_logger
    clear_request_context()
    structlog.configure(**old_config)


def test_bind_request_context(capturing_logger):
    bind_request_context("req-123")
    structlog.get_logger().info("test message")

    entries = capturing_logger.calls
    assert len(entries) == 1
    assert entries[0].kwargs["request_id"] == "req-123"


def test_bind_request_context_with_none(capturing_logger):
    bind_request_context(None)
    structlog.get_logger().info("test message")

    assert "request_id" not in capturing_logger.calls[0].kwargs


def test_bind_actor_context(capturing_logger):
    """Email is not logged unless log_user_emails is enabled."""
    organization_id = uuid4()

    bind_actor_context("kc-user-1", organization_id, "someone@example.com")
    structlog.get_logger().info("test message")

    kwargs = capturing_logger.calls[0].kwargs
    assert kwargs["actor_id"] == "kc-user-1"
    assert kwargs["organization_id"] == str(organization_id)
    assert "actor_email" not in kwargs


def test_bind_actor_context_with_email_logging_enabled(capturing_logger, monkeypatch):
    from src.ticketing.core import config

    mock_settings = MagicMock()
    mock_settings.log_user_emails = True
    monkeypatch.setattr(config, "get_settings", lambda: mock_settings)

    bind_actor_context("kc-user-1", email="someone@example.com")
    structlog.get_logger().info("test message")

    kwargs = capturing_logger.calls[0].kwargs
    assert kwargs["actor_email"] == "someone@example.com"
    assert "organization_id" not in kwargs


def test_clear_request_context(capturing_logger):
    bind_request_context("req-123")
    bind_actor_context("kc-user-1")

    clear_request_context()
    structlog.get_logger().info("test message")

    kwargs = capturing_logger.calls[0].kwargs
    assert "request_id" not in kwargs
    assert "actor_id" not in kwargs


@pytest.mark.parametrize("debug", [True, False])
def test_setup_logging_configures_structlog(capturing_logger, debug):
    """setup_logging replaces the configuration; the fixture restores it afterwards."""
    setup_logging(debug=debug)

    config = structlog.get_config()
    renderer = config["processors"][-1]
    expected = structlog.dev.ConsoleRenderer if debug else structlog.processors.JSONRenderer
    assert isinstance(renderer, expected)
    assert structlog.contextvars.merge_contextvars in config["processors"]
