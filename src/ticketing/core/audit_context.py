"""Per-request metadata shared by logging and the audit sink.

A caller (an HTTP handler, a queue consumer, a CLI command) wraps one unit of
work in ``request_scope``. Log lines emitted inside carry the request and
actor ids, and AuditService stamps the same metadata onto audit rows.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from uuid import UUID

from structlog.contextvars import bound_contextvars

MAX_USER_AGENT_LENGTH = 500

_current: ContextVar["AuditContext | None"] = ContextVar("audit_context", default=None)


@dataclass(frozen=True)
class AuditContext:
    """Origin of the current unit of work."""

    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None


def get_audit_context() -> AuditContext | None:
    """Metadata of the enclosing request_scope, or None outside one."""
    return _current.get()


@contextmanager
def request_scope(
    request_id: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    actor_id: str | None = None,
    organization_id: UUID | None = None,
) -> Iterator[AuditContext]:
    """Bind request metadata for logging and auditing until the block exits.

    Nested scopes restore the outer metadata (log context included) on exit.
    """
    ctx = AuditContext(
        ip_address=ip_address,
        user_agent=user_agent[:MAX_USER_AGENT_LENGTH] if user_agent else None,
        request_id=request_id,
    )
    log_fields = {"request_id": request_id, "actor_id": actor_id}
    if organization_id is not None:
        log_fields["organization_id"] = str(organization_id)

    token = _current.set(ctx)
    try:
        with bound_contextvars(**{k: v for k, v in log_fields.items() if v}):
            yield ctx
    finally:
        _current.reset(token)
