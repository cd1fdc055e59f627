"""Test data factories using polyfactory.

Usage:
    from tests.factories import TicketFactory, ProjectMemberFactory

    ticket = TicketFactory.build()
    admin = ProjectMemberFactory.admin(project_id=ticket.project_id)
"""

from tests.factories.organization import OrganizationFactory, OrganizationMemberFactory
from tests.factories.project import ProjectFactory, ProjectMemberFactory
from tests.factories.ticket import TicketAssignmentFactory, TicketFactory

__all__ = [
    "OrganizationFactory",
    "OrganizationMemberFactory",
    "ProjectFactory",
    "ProjectMemberFactory",
    "TicketAssignmentFactory",
    "TicketFactory",
]
