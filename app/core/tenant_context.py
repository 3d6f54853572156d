"""Active tenant for the current request or task.

The tenant id comes from authentication (outside this layer). Database
sessions read it to run SET LOCAL app.current_tenant_id on PostgreSQL so
row-level security policies see the same tenant as the application.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

current_tenant_id: ContextVar[str | None] = ContextVar(
    "current_tenant_id", default=None
)


def set_tenant_id(tenant_id: str | None) -> None:
    """Set the current tenant ID for this context (e.g. request)."""
    current_tenant_id.set(tenant_id)


def get_tenant_id() -> str | None:
    """Return the current tenant ID if set."""
    return current_tenant_id.get()


@contextmanager
def tenant_scope(tenant_id: str | None) -> Iterator[None]:
    """Run a block with tenant_id active, restoring the previous value on exit.

    Usage:
        with tenant_scope("t1"):
            async with database.session() as client:
                ...
    """
    token = current_tenant_id.set(tenant_id)
    try:
        yield
    finally:
        current_tenant_id.reset(token)
