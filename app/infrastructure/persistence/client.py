"""DataClient: the caller-facing handle for data operations.

A DataClient is bound to one AsyncSession and one handler (the interceptor
pipeline wrapped around the store). Every helper builds an Operation and
sends it through that handler, so soft delete, tenant auditing and timing
apply no matter which helper the caller uses.
"""

from collections.abc import Mapping
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.persistence.interceptor import Handler
from app.infrastructure.persistence.operations import DataAction, Operation

ModelRef = str | type[Any]


def _model_name(model: ModelRef) -> str:
    return model if isinstance(model, str) else model.__name__


class DataClient:
    """Operation helpers bound to a session.

    Models may be given by class or by name (case-insensitive).
    """

    def __init__(self, session: AsyncSession, handler: Handler) -> None:
        self.session = session
        self._handler = handler

    async def execute(self, operation: Operation) -> Any:
        return await self._handler(operation)

    async def _run(
        self,
        model: ModelRef,
        action: DataAction,
        where: Mapping[str, Any] | None = None,
        **fields: Any,
    ) -> Any:
        operation = Operation(
            model=_model_name(model), action=action, where=dict(where or {}), **fields
        )
        return await self.execute(operation)

    async def create(self, model: ModelRef, data: Mapping[str, Any]) -> Any:
        return await self._run(model, DataAction.CREATE, data=dict(data))

    async def find_one(
        self,
        model: ModelRef,
        where: Mapping[str, Any] | None = None,
        *,
        order_by: Mapping[str, str] | None = None,
    ) -> Any | None:
        return await self._run(
            model,
            DataAction.FIND_ONE,
            where,
            order_by=dict(order_by) if order_by else None,
        )

    async def find_many(
        self,
        model: ModelRef,
        where: Mapping[str, Any] | None = None,
        *,
        skip: int | None = None,
        take: int | None = None,
        order_by: Mapping[str, str] | None = None,
    ) -> list[Any]:
        return await self._run(
            model,
            DataAction.FIND_MANY,
            where,
            skip=skip,
            take=take,
            order_by=dict(order_by) if order_by else None,
        )

    async def count(self, model: ModelRef, where: Mapping[str, Any] | None = None) -> int:
        return await self._run(model, DataAction.COUNT, where)

    async def update(
        self, model: ModelRef, where: Mapping[str, Any], data: Mapping[str, Any]
    ) -> Any:
        return await self._run(model, DataAction.UPDATE, where, data=dict(data))

    async def update_many(
        self, model: ModelRef, where: Mapping[str, Any], data: Mapping[str, Any]
    ) -> int:
        return await self._run(model, DataAction.UPDATE_MANY, where, data=dict(data))

    async def delete(self, model: ModelRef, where: Mapping[str, Any]) -> Any:
        """Delete one row. Soft-deletable models get deleted_at set instead."""
        return await self._run(model, DataAction.DELETE, where)

    async def delete_many(
        self,
        model: ModelRef,
        where: Mapping[str, Any] | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> int:
        """Delete matching rows. For soft-deletable models, data is applied too."""
        return await self._run(
            model, DataAction.DELETE_MANY, where, data=dict(data) if data else None
        )
