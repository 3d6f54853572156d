"""Store driver: executes Operation descriptors against SQLAlchemy models.

This is the innermost handler of the query interceptor pipeline. It knows
nothing about soft delete or tenants; by the time an operation reaches it,
deletes of soft-deletable models have already become updates.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import ColumnElement, Select, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase

from app.domain.exceptions import (
    ResourceNotFoundException,
    UnknownModelException,
    ValidationException,
)
from app.infrastructure.persistence.operations import DataAction, Operation

SOFT_DELETE_COLUMN = "deleted_at"
TENANT_COLUMN = "tenant_id"

_ORDER_DIRECTIONS = frozenset({"asc", "desc"})


class ModelRegistry:
    """Lookup of mapped classes by lowercased class name.

    Built from the declarative registry, so every model imported before
    construction is known. Also reports which models carry deleted_at and
    tenant_id, which the interceptor uses as its policy sets.
    """

    def __init__(self, models: Iterable[type[Any]]) -> None:
        self._models = {model.__name__.lower(): model for model in models}

    @classmethod
    def from_base(cls, base: type[DeclarativeBase]) -> "ModelRegistry":
        return cls(mapper.class_ for mapper in base.registry.mappers)

    def resolve(self, name: str) -> type[Any]:
        try:
            return self._models[name.lower()]
        except KeyError:
            raise UnknownModelException(name) from None

    def names(self) -> list[str]:
        return sorted(self._models)

    @property
    def soft_deletable(self) -> frozenset[str]:
        return self._with_column(SOFT_DELETE_COLUMN)

    @property
    def tenant_scoped(self) -> frozenset[str]:
        return self._with_column(TENANT_COLUMN)

    def _with_column(self, column: str) -> frozenset[str]:
        return frozenset(
            name for name, model in self._models.items() if column in model.__table__.c
        )


def _column(model: type[Any], field_name: str) -> Any:
    if field_name not in model.__table__.c:
        raise ValidationException(
            f"Unknown field '{field_name}' for {model.__name__}", field=field_name
        )
    return getattr(model, field_name)


def _operator_condition(column: Any, field_name: str, op: str, value: Any) -> ColumnElement[bool]:
    match op:
        case "in":
            return column.in_(list(value))
        case "not_in":
            return column.not_in(list(value))
        case "not":
            return column.is_not(None) if value is None else column != value
        case "gt":
            return column > value
        case "gte":
            return column >= value
        case "lt":
            return column < value
        case "lte":
            return column <= value
        case "contains":
            return column.contains(value, autoescape=True)
        case _:
            raise ValidationException(f"Unsupported filter operator '{op}'", field=field_name)


def build_conditions(model: type[Any], where: Mapping[str, Any]) -> list[ColumnElement[bool]]:
    """Translate a where mapping into SQLAlchemy conditions (ANDed by the caller).

    Values:
        None           -> IS NULL
        list/tuple/set -> IN
        dict           -> operators: in, not_in, not, gt, gte, lt, lte, contains
        anything else  -> equality
    """
    conditions: list[ColumnElement[bool]] = []
    for field_name, value in where.items():
        column = _column(model, field_name)
        if isinstance(value, dict):
            conditions.extend(
                _operator_condition(column, field_name, op, operand)
                for op, operand in value.items()
            )
        elif value is None:
            conditions.append(column.is_(None))
        elif isinstance(value, list | tuple | set | frozenset):
            conditions.append(column.in_(list(value)))
        else:
            conditions.append(column == value)
    return conditions


def _apply_order(stmt: Select[Any], model: type[Any], order_by: Mapping[str, str] | None) -> Select[Any]:
    for field_name, direction in (order_by or {}).items():
        direction = direction.lower()
        if direction not in _ORDER_DIRECTIONS:
            raise ValidationException(
                f"Order direction must be 'asc' or 'desc', got '{direction}'", field=field_name
            )
        column = _column(model, field_name)
        stmt = stmt.order_by(column.asc() if direction == "asc" else column.desc())
    return stmt


class SqlAlchemyStore:
    """Runs one Operation on an AsyncSession.

    Results by action:
        create       the new instance (flushed and refreshed)
        find_one     instance or None
        find_many    list of instances
        update       the updated instance; ResourceNotFoundException if no row
        update_many  number of rows matched
        delete       the removed instance; ResourceNotFoundException if no row
        delete_many  number of rows removed
        count        number of rows matched

    update_many and delete_many run as bulk statements; instances already
    loaded in the session are not refreshed.
    """

    def __init__(self, registry: ModelRegistry) -> None:
        self.registry = registry

    async def execute(self, session: AsyncSession, operation: Operation) -> Any:
        model = self.registry.resolve(operation.model)
        match operation.action:
            case DataAction.CREATE:
                return await self._create(session, model, operation)
            case DataAction.FIND_ONE:
                return await self._find_one(session, model, operation)
            case DataAction.FIND_MANY:
                return await self._find_many(session, model, operation)
            case DataAction.UPDATE:
                return await self._update(session, model, operation)
            case DataAction.UPDATE_MANY:
                return await self._update_many(session, model, operation)
            case DataAction.DELETE:
                return await self._delete(session, model, operation)
            case DataAction.DELETE_MANY:
                return await self._delete_many(session, model, operation)
            case DataAction.COUNT:
                return await self._count(session, model, operation)
        raise ValueError(f"Unsupported action: {operation.action!r}")

    async def _create(self, session: AsyncSession, model: type[Any], operation: Operation) -> Any:
        data = operation.data or {}
        for field_name in data:
            _column(model, field_name)
        obj = model(**data)
        session.add(obj)
        await session.flush()
        await session.refresh(obj)
        return obj

    async def _find_one(self, session: AsyncSession, model: type[Any], operation: Operation) -> Any:
        stmt = select(model).where(*build_conditions(model, operation.where))
        stmt = _apply_order(stmt, model, operation.order_by).limit(1)
        result = await session.execute(stmt)
        return result.scalars().first()

    async def _find_many(self, session: AsyncSession, model: type[Any], operation: Operation) -> list[Any]:
        stmt = select(model).where(*build_conditions(model, operation.where))
        stmt = _apply_order(stmt, model, operation.order_by)
        if operation.skip:
            stmt = stmt.offset(operation.skip)
        if operation.take is not None:
            stmt = stmt.limit(operation.take)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def _get_required(self, session: AsyncSession, model: type[Any], operation: Operation) -> Any:
        stmt = select(model).where(*build_conditions(model, operation.where))
        result = await session.execute(stmt)
        obj = result.scalar_one_or_none()
        if obj is None:
            raise ResourceNotFoundException(model.__name__, repr(operation.where))
        return obj

    async def _update(self, session: AsyncSession, model: type[Any], operation: Operation) -> Any:
        obj = await self._get_required(session, model, operation)
        for field_name, value in (operation.data or {}).items():
            _column(model, field_name)
            setattr(obj, field_name, value)
        await session.flush()
        await session.refresh(obj)
        return obj

    async def _update_many(self, session: AsyncSession, model: type[Any], operation: Operation) -> int:
        data = operation.data or {}
        if not data:
            return await self._count(session, model, operation)
        values = {_column(model, name).key: value for name, value in data.items()}
        stmt = (
            update(model)
            .where(*build_conditions(model, operation.where))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount

    async def _delete(self, session: AsyncSession, model: type[Any], operation: Operation) -> Any:
        obj = await self._get_required(session, model, operation)
        await session.delete(obj)
        await session.flush()
        return obj

    async def _delete_many(self, session: AsyncSession, model: type[Any], operation: Operation) -> int:
        stmt = (
            delete(model)
            .where(*build_conditions(model, operation.where))
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount

    async def _count(self, session: AsyncSession, model: type[Any], operation: Operation) -> int:
        stmt = select(func.count()).select_from(model).where(
            *build_conditions(model, operation.where)
        )
        result = await session.execute(stmt)
        return int(result.scalar_one())
