"""Ticket factories."""

from polyfactory import Use

from src.ticketing.models import Ticket, TicketAssignment, TicketPriority, TicketStatus
from tests.factories.base import BaseFactory, generate_uuid, utc_now


class TicketFactory(BaseFactory):
    """Factory for generating Ticket test data."""

    __model__ = Ticket

    id = Use(generate_uuid)
    project_id = Use(generate_uuid)
    title = Use(lambda: f"Ticket {generate_uuid().hex[-6:]}")
    description = ""
    status = TicketStatus.OPEN.value
    priority = TicketPriority.MEDIUM.value
    category = ""
    tags = Use(list)
    due_date = None
    created_at = Use(utc_now)
    created_by = "u1"
    updated_at = None
    updated_by = None

    @classmethod
    def with_status(cls, status: TicketStatus, **kwargs):
        """Create a ticket already in ``status``."""
        return cls.build(status=status.value, **kwargs)


class TicketAssignmentFactory(BaseFactory):
    """Factory for generating TicketAssignment test data."""

    __model__ = TicketAssignment

    id = Use(generate_uuid)
    ticket_id = Use(generate_uuid)
    assignee_id = Use(lambda: f"user-{generate_uuid().hex[-8:]}")
    assigned_at = Use(utc_now)
    assigned_by = "u1"
