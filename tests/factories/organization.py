"""Organization and membership factories."""

from polyfactory import Use

from src.ticketing.models import Organization, OrganizationMember, OrganizationRole
from tests.factories.base import BaseFactory, generate_uuid, utc_now


class OrganizationFactory(BaseFactory):
    """Factory for generating Organization test data."""

    __model__ = Organization

    id = Use(generate_uuid)
    name = Use(lambda: f"org-{generate_uuid().hex[-8:]}")
    display_name = None
    description = None
    is_active = True
    max_projects = 100
    max_members = 1000
    created_at = Use(utc_now)
    created_by = "u1"
    updated_at = None
    updated_by = None


class OrganizationMemberFactory(BaseFactory):
    """Factory for generating OrganizationMember test data."""

    __model__ = OrganizationMember

    id = Use(generate_uuid)
    organization_id = Use(generate_uuid)
    user_id = Use(lambda: f"user-{generate_uuid().hex[-8:]}")
    user_name = "Test User"
    user_email = None
    role = OrganizationRole.MEMBER.value
    joined_at = Use(utc_now)
    invited_by = None
    is_active = True
    last_accessed_at = None

    @classmethod
    def admin(cls, **kwargs):
        """Create an active admin membership."""
        return cls.build(role=OrganizationRole.ADMIN.value, **kwargs)

    @classmethod
    def inactive(cls, **kwargs):
        """Create a deactivated membership."""
        return cls.build(is_active=False, **kwargs)
