"""Membership invariants evaluated over a caller-supplied snapshot.

Nothing here fetches data, so the rules are testable without a store. Both
OrganizationMember and ProjectMember rows work as input: each has ``user_id``
and ``role``, and the admin role value is "admin" at both levels.
"""

from collections.abc import Iterable
from typing import Protocol

ADMIN_ROLE = "admin"


class MemberLike(Protocol):
    user_id: str
    role: str


def _is_active(member: MemberLike) -> bool:
    # ProjectMember rows carry no flag; an existing row is an active membership
    return getattr(member, "is_active", True)


def active_admins(members: Iterable[MemberLike]) -> list[MemberLike]:
    """Active members holding the admin role."""
    return [m for m in members if _is_active(m) and m.role == ADMIN_ROLE]


def is_last_admin(members: Iterable[MemberLike], candidate_user_id: str) -> bool:
    """True if ``candidate_user_id`` is the only active admin in ``members``.

    Demoting or removing such a member would leave the organization or
    project without an admin.
    """
    admins = active_admins(members)
    return len(admins) == 1 and admins[0].user_id == candidate_user_id


def within_limit(current_count: int, maximum: int) -> bool:
    """True if one more item can be added without exceeding ``maximum``."""
    return current_count < maximum
