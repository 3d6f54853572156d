"""Tests for the query interceptor stages and pipeline order."""

import logging
from datetime import UTC, datetime

import pytest

from app.infrastructure.persistence.interceptor import (
    QueryInterceptor,
    SoftDeleteStage,
    TenantAuditStage,
    TimingStage,
)
from app.infrastructure.persistence.operations import DataAction, Operation

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
INTERCEPTOR_LOGGER = "app.infrastructure.persistence.interceptor"


class RecordingHandler:
    """Innermost handler: records what reached the store."""

    def __init__(self, result: object = None, error: Exception | None = None) -> None:
        self.received: list[Operation] = []
        self.result = result
        self.error = error

    async def __call__(self, operation: Operation) -> object:
        self.received.append(operation)
        if self.error is not None:
            raise self.error
        return self.result


def _soft_delete_stage() -> SoftDeleteStage:
    return SoftDeleteStage({"Content", "Tenant"}, clock=lambda: FIXED_NOW)


async def test_delete_becomes_update_of_deleted_at() -> None:
    """delete on a soft-deletable model reaches the store as update(deleted_at=now)."""
    handler = RecordingHandler(result="row")
    pipeline = QueryInterceptor([_soft_delete_stage()]).wrap(handler)

    result = await pipeline(
        Operation("Content", DataAction.DELETE, where={"id": "c1"}, data={"title": "x"})
    )

    assert result == "row"
    (sent,) = handler.received
    assert sent.action is DataAction.UPDATE
    assert sent.where == {"id": "c1"}
    assert sent.data == {"deleted_at": FIXED_NOW}


async def test_delete_many_merges_deleted_at_into_existing_data() -> None:
    """delete_many keeps caller data fields and adds deleted_at."""
    handler = RecordingHandler(result=2)
    pipeline = QueryInterceptor([_soft_delete_stage()]).wrap(handler)
    original = Operation(
        "content", DataAction.DELETE_MANY, where={"tenant_id": "t1"}, data={"status": "ARCHIVED"}
    )

    assert await pipeline(original) == 2
    (sent,) = handler.received
    assert sent.action is DataAction.UPDATE_MANY
    assert sent.data == {"status": "ARCHIVED", "deleted_at": FIXED_NOW}
    assert original.data == {"status": "ARCHIVED"}


async def test_delete_many_without_data_creates_data() -> None:
    """delete_many with no data still sets deleted_at."""
    handler = RecordingHandler(result=0)
    pipeline = QueryInterceptor([_soft_delete_stage()]).wrap(handler)

    await pipeline(Operation("Content", DataAction.DELETE_MANY, where={"tenant_id": "none"}))

    assert handler.received[0].data == {"deleted_at": FIXED_NOW}


async def test_delete_of_model_without_deleted_at_is_untouched() -> None:
    """Models outside the soft-delete set are hard-deleted."""
    handler = RecordingHandler()
    pipeline = QueryInterceptor([_soft_delete_stage()]).wrap(handler)

    await pipeline(Operation("AuditLog", DataAction.DELETE, where={"id": "a1"}))

    assert handler.received[0].action is DataAction.DELETE


async def test_reads_and_writes_pass_through_soft_delete() -> None:
    """Only delete actions are rewritten."""
    handler = RecordingHandler()
    pipeline = QueryInterceptor([_soft_delete_stage()]).wrap(handler)
    operation = Operation("Content", DataAction.UPDATE, where={"id": "c1"}, data={"title": "t"})

    await pipeline(operation)

    assert handler.received[0] is operation


async def test_unscoped_read_logs_one_warning_and_still_runs(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """A find without tenant_id on a tenant-scoped model warns once and is not blocked."""
    handler = RecordingHandler(result=["row"])
    pipeline = QueryInterceptor([TenantAuditStage(["Content"])]).wrap(handler)

    with caplog.at_level(logging.WARNING, logger=INTERCEPTOR_LOGGER):
        result = await pipeline(Operation("Content", DataAction.FIND_MANY, where={"status": "DRAFT"}))

    assert result == ["row"]
    warnings = [r for r in caplog.records if "without tenant isolation" in r.getMessage()]
    assert len(warnings) == 1
    assert warnings[0].model == "Content"
    assert warnings[0].action == "find_many"


@pytest.mark.parametrize(
    "operation",
    [
        Operation("Content", DataAction.FIND_ONE, where={"tenant_id": "t1", "id": "c1"}),
        Operation("Tenant", DataAction.FIND_MANY),
        Operation("Content", DataAction.UPDATE_MANY, where={"status": "DRAFT"}, data={}),
    ],
)
async def test_audit_silent_for_scoped_reads_other_models_and_writes(
    operation: Operation, caplog: pytest.LogCaptureFixture
) -> None:
    """No warning when tenant_id is present, the model is global, or it is a write."""
    pipeline = QueryInterceptor([TenantAuditStage(["content"])]).wrap(RecordingHandler())

    with caplog.at_level(logging.WARNING, logger=INTERCEPTOR_LOGGER):
        await pipeline(operation)

    assert not caplog.records


async def test_audit_disabled_logs_nothing(caplog: pytest.LogCaptureFixture) -> None:
    """The relaxed isolation level turns the audit off."""
    pipeline = QueryInterceptor([TenantAuditStage(["content"], enabled=False)]).wrap(
        RecordingHandler()
    )

    with caplog.at_level(logging.WARNING, logger=INTERCEPTOR_LOGGER):
        await pipeline(Operation("Content", DataAction.FIND_MANY))

    assert not caplog.records


async def test_slow_query_warning(caplog: pytest.LogCaptureFixture) -> None:
    """Round trips slower than the threshold log a slow query warning."""
    ticks = iter([10.0, 11.5])
    stage = TimingStage(slow_threshold_ms=1000, clock=lambda: next(ticks))
    pipeline = QueryInterceptor([stage]).wrap(RecordingHandler())

    with caplog.at_level(logging.WARNING, logger=INTERCEPTOR_LOGGER):
        await pipeline(Operation("News", DataAction.FIND_MANY, where={"tenant_id": "t1"}))

    (record,) = caplog.records
    assert "Slow query detected" in record.getMessage()
    assert record.duration_ms == 1500
    assert record.model == "News"


async def test_fast_query_does_not_warn(caplog: pytest.LogCaptureFixture) -> None:
    """Queries within the threshold only log at debug level."""
    ticks = iter([10.0, 10.2])
    stage = TimingStage(slow_threshold_ms=1000, clock=lambda: next(ticks))
    pipeline = QueryInterceptor([stage]).wrap(RecordingHandler())

    with caplog.at_level(logging.WARNING, logger=INTERCEPTOR_LOGGER):
        await pipeline(Operation("Content", DataAction.FIND_ONE, where={"tenant_id": "t1"}))

    assert not caplog.records


async def test_store_errors_propagate_unchanged() -> None:
    """The interceptor never wraps or swallows store errors."""
    error = RuntimeError("constraint violated")
    pipeline = QueryInterceptor.default(soft_delete_models={"content"}).wrap(
        RecordingHandler(error=error)
    )

    with pytest.raises(RuntimeError) as exc_info:
        await pipeline(Operation("Content", DataAction.DELETE, where={"id": "c1"}))

    assert exc_info.value is error


async def test_default_pipeline_order() -> None:
    """Stages run soft_delete, then tenant_audit, then timing."""
    interceptor = QueryInterceptor.default()

    assert interceptor.stage_names == ["soft_delete", "tenant_audit", "timing"]


async def test_audit_sees_rewritten_operation() -> None:
    """Later stages receive the descriptor produced by earlier ones."""
    seen: list[DataAction] = []

    class Spy:
        name = "spy"

        async def __call__(self, operation: Operation, call_next):  # type: ignore[no-untyped-def]
            seen.append(operation.action)
            return await call_next(operation)

    pipeline = QueryInterceptor([_soft_delete_stage(), Spy()]).wrap(RecordingHandler())

    await pipeline(Operation("Content", DataAction.DELETE, where={"id": "c1"}))

    assert seen == [DataAction.UPDATE]
