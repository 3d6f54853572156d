"""Helpers for building tenant-scoped queries and classifying store errors."""

import re
from typing import Any

from sqlalchemy.exc import IntegrityError

from app.domain.exceptions import ResourceNotFoundException, ValidationException

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 20
DEFAULT_ORDER_FIELD = "created_at"

# PostgreSQL SQLSTATE codes
_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"

# "Key (tenant_id, slug)=(t1, about) already exists." (PostgreSQL)
_PG_KEY_DETAIL_RE = re.compile(r"Key \(([^)]+)\)=")
# "UNIQUE constraint failed: content.tenant_id, content.slug" (SQLite)
_SQLITE_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: (.+)")


def tenant_where(tenant_id: str, **extra: Any) -> dict[str, Any]:
    """Filter for live rows of one tenant: tenant_id plus deleted_at IS NULL.

    Extra fields are merged last, so a caller can override deleted_at
    (e.g. to list archived rows).
    """
    if not tenant_id:
        raise ValidationException("tenant_id is required", field="tenant_id")
    return {"tenant_id": tenant_id, "deleted_at": None, **extra}


def pagination_params(page: int = DEFAULT_PAGE, limit: int = DEFAULT_PAGE_SIZE) -> dict[str, int]:
    """Return {"skip", "take"} for a 1-based page."""
    if page < 1:
        raise ValidationException("page must be >= 1", field="page")
    if limit < 1:
        raise ValidationException("limit must be >= 1", field="limit")
    return {"skip": (page - 1) * limit, "take": limit}


def order_by_params(order_by: str | None = None, direction: str = "desc") -> dict[str, str]:
    direction = direction.lower()
    if direction not in ("asc", "desc"):
        raise ValidationException("direction must be 'asc' or 'desc'", field="direction")
    return {order_by or DEFAULT_ORDER_FIELD: direction}


def _sqlstate(error: BaseException) -> str | None:
    orig = getattr(error, "orig", None)
    for source in (orig, getattr(orig, "__cause__", None)):
        code = getattr(source, "sqlstate", None) or getattr(source, "pgcode", None)
        if code:
            return str(code)
    return None


def is_unique_constraint_error(error: BaseException) -> bool:
    if not isinstance(error, IntegrityError):
        return False
    return _sqlstate(error) == _UNIQUE_VIOLATION or "UNIQUE constraint" in str(error.orig)


def is_foreign_key_constraint_error(error: BaseException) -> bool:
    if not isinstance(error, IntegrityError):
        return False
    return (
        _sqlstate(error) == _FOREIGN_KEY_VIOLATION
        or "FOREIGN KEY constraint" in str(error.orig)
    )


def is_record_not_found_error(error: BaseException) -> bool:
    return isinstance(error, ResourceNotFoundException)


def extract_constraint_field(error: BaseException) -> list[str]:
    """Column names involved in a unique/foreign-key violation, or [] when unknown."""
    if not isinstance(error, IntegrityError):
        return []
    message = str(error.orig)
    match = _PG_KEY_DETAIL_RE.search(message)
    if match:
        return [part.strip() for part in match.group(1).split(",")]
    match = _SQLITE_UNIQUE_RE.search(message)
    if match:
        return [part.strip().split(".")[-1] for part in match.group(1).split(",")]
    return []
