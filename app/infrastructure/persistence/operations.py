"""Data operation descriptors passed through the query interceptor.

An Operation names a model, an action, and the filter/payload. Descriptors
are frozen; interceptor stages derive new ones with dataclasses.replace.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class DataAction(str, Enum):
    """Kind of data operation dispatched to the store."""

    CREATE = "create"
    FIND_ONE = "find_one"
    FIND_MANY = "find_many"
    UPDATE = "update"
    UPDATE_MANY = "update_many"
    DELETE = "delete"
    DELETE_MANY = "delete_many"
    COUNT = "count"

    @property
    def is_read(self) -> bool:
        return self in (DataAction.FIND_ONE, DataAction.FIND_MANY)


@dataclass(frozen=True)
class Operation:
    """One data operation against a model.

    Attributes:
        model: Model name, matched case-insensitively (e.g. "Content").
        action: What to do.
        where: Equality filter by field name; None matches NULL. A dict value
            holds operators (see store.build_conditions).
        data: Field values for create/update/update_many.
        skip: Rows to skip (find_many).
        take: Maximum rows to return (find_many).
        order_by: Field name to "asc"/"desc" (find_many, find_one).
    """

    model: str
    action: DataAction
    where: dict[str, Any] = field(default_factory=dict)
    data: dict[str, Any] | None = None
    skip: int | None = None
    take: int | None = None
    order_by: dict[str, str] | None = None

    @property
    def model_key(self) -> str:
        """Lowercased model name used for registry and policy lookups."""
        return self.model.lower()

    def with_action(self, action: DataAction, data: dict[str, Any] | None) -> "Operation":
        return replace(self, action=action, data=data)
