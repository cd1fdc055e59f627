"""User profile as returned by the identity provider."""

from pydantic import BaseModel


class UserProfile(BaseModel):
    """Display data for an opaque user identifier.

    Only used to enrich display data; never consulted for authorization.
    """

    id: str
    username: str
    display_name: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    active: bool = True
