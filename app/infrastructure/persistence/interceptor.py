"""Query interceptor: an ordered pipeline of stages around the store driver.

Every Operation passes, in order, through:

    soft_delete   delete -> update(deleted_at=now); delete_many -> update_many
                  with deleted_at merged into the caller's data
    tenant_audit  warn (never block) on reads of tenant-scoped models whose
                  filter has no tenant_id
    timing        record duration; warn when slower than the threshold

Stages share the signature (operation, call_next) -> result and keep no
per-call state, so one interceptor serves all concurrent sessions. Errors
raised by the store pass through untouched.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Sequence
from datetime import datetime
from functools import partial
from typing import Any, Protocol

from app.domain.enums import TenantScopedModel
from app.infrastructure.persistence.operations import DataAction, Operation
from app.shared.telemetry.tracing import add_span_attributes
from app.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)

Handler = Callable[[Operation], Awaitable[Any]]

SOFT_DELETE_FIELD = "deleted_at"
TENANT_FIELD = "tenant_id"
DEFAULT_SLOW_QUERY_THRESHOLD_MS = 1000


class Stage(Protocol):
    name: str

    async def __call__(self, operation: Operation, call_next: Handler) -> Any: ...


class SoftDeleteStage:
    """Turn deletes of soft-deletable models into deleted_at updates."""

    name = "soft_delete"

    def __init__(
        self,
        soft_delete_models: Iterable[str] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the stage.

        Args:
            soft_delete_models: Model names carrying deleted_at (any case).
                None rewrites deletes for every model.
            clock: Source of the deleted_at timestamp.
        """
        self._models = (
            None
            if soft_delete_models is None
            else frozenset(m.lower() for m in soft_delete_models)
        )
        self._clock = clock

    def applies_to(self, operation: Operation) -> bool:
        return self._models is None or operation.model_key in self._models

    def rewrite(self, operation: Operation) -> Operation:
        """Return the soft-delete form of a delete, or the operation unchanged."""
        if not self.applies_to(operation):
            return operation
        if operation.action is DataAction.DELETE:
            # Caller data is dropped: a single delete only ever stamps deleted_at.
            return operation.with_action(
                DataAction.UPDATE, {SOFT_DELETE_FIELD: self._clock()}
            )
        if operation.action is DataAction.DELETE_MANY:
            data = dict(operation.data or {})
            data[SOFT_DELETE_FIELD] = self._clock()
            return operation.with_action(DataAction.UPDATE_MANY, data)
        return operation

    async def __call__(self, operation: Operation, call_next: Handler) -> Any:
        return await call_next(self.rewrite(operation))


class TenantAuditStage:
    """Log reads of tenant-scoped models that do not filter on tenant_id.

    Observability only: cross-tenant reads stay possible when intended.
    """

    name = "tenant_audit"

    def __init__(
        self,
        tenant_scoped_models: Iterable[str] = TenantScopedModel.values(),
        *,
        enabled: bool = True,
    ) -> None:
        self._models = frozenset(m.lower() for m in tenant_scoped_models)
        self.enabled = enabled

    def is_unscoped_read(self, operation: Operation) -> bool:
        return (
            operation.action.is_read
            and operation.model_key in self._models
            and TENANT_FIELD not in operation.where
        )

    async def __call__(self, operation: Operation, call_next: Handler) -> Any:
        if self.enabled and self.is_unscoped_read(operation):
            logger.warning(
                "Query without tenant isolation detected: model=%s action=%s",
                operation.model,
                operation.action.value,
                extra={"model": operation.model, "action": operation.action.value},
            )
        return await call_next(operation)


class TimingStage:
    """Measure each round trip to the store and flag slow ones."""

    name = "timing"

    def __init__(
        self,
        slow_threshold_ms: float = DEFAULT_SLOW_QUERY_THRESHOLD_MS,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.slow_threshold_ms = slow_threshold_ms
        self._clock = clock

    async def __call__(self, operation: Operation, call_next: Handler) -> Any:
        start = self._clock()
        try:
            return await call_next(operation)
        finally:
            duration_ms = (self._clock() - start) * 1000
            add_span_attributes(
                **{
                    "db.model": operation.model,
                    "db.action": operation.action.value,
                    "db.duration_ms": duration_ms,
                }
            )
            logger.debug(
                "Query %s.%s took %.1fms",
                operation.model,
                operation.action.value,
                duration_ms,
            )
            if duration_ms > self.slow_threshold_ms:
                logger.warning(
                    "Slow query detected: model=%s action=%s duration=%dms",
                    operation.model,
                    operation.action.value,
                    duration_ms,
                    extra={
                        "model": operation.model,
                        "action": operation.action.value,
                        "duration_ms": round(duration_ms),
                    },
                )


class QueryInterceptor:
    """Compose stages (outermost first) around a store handler."""

    def __init__(self, stages: Sequence[Stage]) -> None:
        self.stages = tuple(stages)

    @classmethod
    def default(
        cls,
        *,
        soft_delete_models: Iterable[str] | None = None,
        tenant_scoped_models: Iterable[str] = TenantScopedModel.values(),
        audit_enabled: bool = True,
        slow_threshold_ms: float = DEFAULT_SLOW_QUERY_THRESHOLD_MS,
    ) -> "QueryInterceptor":
        """Build the standard soft_delete -> tenant_audit -> timing pipeline."""
        return cls(
            [
                SoftDeleteStage(soft_delete_models),
                TenantAuditStage(tenant_scoped_models, enabled=audit_enabled),
                TimingStage(slow_threshold_ms),
            ]
        )

    @property
    def stage_names(self) -> list[str]:
        return [stage.name for stage in self.stages]

    def wrap(self, handler: Handler) -> Handler:
        """Return a handler that runs operations through every stage, then handler."""
        wrapped = handler
        for stage in reversed(self.stages):
            wrapped = partial(stage.__call__, call_next=wrapped)
        return wrapped
