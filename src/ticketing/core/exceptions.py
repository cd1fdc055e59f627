"""Typed failures returned by the orchestration services.

Callers at the transport boundary map these by type (or by ``kind``), never
by message text.
"""

from typing import Any


class TicketingError(Exception):
    """Base class for every failure a service reports to its caller."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(TicketingError):
    """Referenced organization/project/ticket/comment/member does not exist."""

    kind = "not_found"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(f"{resource} '{identifier}' not found")
        self.resource = resource
        self.identifier = identifier


class InvalidInputError(TicketingError):
    """A required field is empty or malformed."""

    kind = "invalid_input"

    def __init__(self, field: str, message: str | None = None):
        super().__init__(message or f"{field} cannot be empty")
        self.field = field


class UnauthorizedError(TicketingError):
    """Actor lacks the permission the operation requires."""

    kind = "unauthorized"


class InvalidOperationError(TicketingError):
    """Business-rule violation that is not a pure permission failure."""

    kind = "invalid_operation"


class InvalidTransitionError(InvalidOperationError):
    """Requested ticket status change is not in the transition table."""

    def __init__(self, current: Any, target: Any):
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(f"Cannot transition from '{current_value}' to '{target_value}'")
        self.current = current
        self.target = target


class InfrastructureError(TicketingError):
    """Repository, cache or identity-provider failure."""

    kind = "infrastructure"
