"""Tests for TransactionRunner retries, backoff, timeout and rollback."""

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.domain.exceptions import TransactionTimeoutException, ValidationException
from app.infrastructure.persistence.models import Tenant
from app.infrastructure.persistence.transaction import (
    TransactionRunner,
    backoff_seconds,
    build_session_factory,
)


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # SQLite has no READ COMMITTED, so the engine default is kept here.
    return build_session_factory(engine, isolation_level=None)


@pytest.fixture
def runner(session_factory, recording_sleep) -> TransactionRunner:
    return TransactionRunner(
        session_factory, lambda session: session, timeout_seconds=5, sleep=recording_sleep
    )


class FlakyWork:
    """Fails the first `failures` calls, then returns "done"."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0
        self.errors: list[Exception] = []

    async def __call__(self, session: AsyncSession) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            error = RuntimeError(f"serialization failure #{self.calls}")
            self.errors.append(error)
            raise error
        return "done"


def test_backoff_doubles_from_200ms() -> None:
    assert backoff_seconds(1) == 0.2
    assert backoff_seconds(2) == 0.4
    assert backoff_seconds(3) == 0.8


async def test_first_attempt_success_does_not_sleep(runner, recording_sleep) -> None:
    work = FlakyWork(failures=0)

    assert await runner.run(work) == "done"

    assert work.calls == 1
    assert recording_sleep.calls == []


async def test_two_failures_then_success_waits_200_then_400ms(runner, recording_sleep) -> None:
    """Failures on attempts 1 and 2 wait 200ms and 400ms; attempt 3's value is returned."""
    work = FlakyWork(failures=2)

    assert await runner.run(work, max_retries=3) == "done"

    assert work.calls == 3
    assert recording_sleep.calls == [0.2, 0.4]


async def test_exhaustion_reraises_last_error_after_exactly_three_attempts(
    runner, recording_sleep
) -> None:
    """With the default of 3 retries the third error is raised as-is."""
    work = FlakyWork(failures=10)

    with pytest.raises(RuntimeError) as exc_info:
        await runner.run(work)

    assert work.calls == 3
    assert exc_info.value is work.errors[-1]
    assert recording_sleep.calls == [0.2, 0.4]


async def test_single_attempt_does_not_sleep(runner, recording_sleep) -> None:
    work = FlakyWork(failures=1)

    with pytest.raises(RuntimeError):
        await runner.run(work, max_retries=1)

    assert recording_sleep.calls == []


@pytest.mark.parametrize("max_retries", [0, -1])
async def test_max_retries_below_one_is_rejected(runner, max_retries: int) -> None:
    with pytest.raises(ValueError):
        await runner.run(FlakyWork(failures=0), max_retries=max_retries)


async def test_non_retryable_error_stops_immediately(session_factory, recording_sleep) -> None:
    """is_retryable returning False re-raises on the first failure."""
    runner = TransactionRunner(
        session_factory,
        lambda session: session,
        sleep=recording_sleep,
        is_retryable=lambda exc: not isinstance(exc, ValidationException),
    )
    calls = 0

    async def work(session: AsyncSession) -> None:
        nonlocal calls
        calls += 1
        raise ValidationException("bad input", field="slug")

    with pytest.raises(ValidationException):
        await runner.run(work)

    assert calls == 1
    assert recording_sleep.calls == []


async def test_per_call_classifier_overrides_runner_default(runner, recording_sleep) -> None:
    work = FlakyWork(failures=5)

    with pytest.raises(RuntimeError):
        await runner.run(work, is_retryable=lambda exc: False)

    assert work.calls == 1


async def test_attempt_timeout_raises_transaction_timeout(
    session_factory, recording_sleep
) -> None:
    runner = TransactionRunner(
        session_factory, lambda session: session, timeout_seconds=0.01, sleep=recording_sleep
    )

    async def slow(session: AsyncSession) -> None:
        await asyncio.sleep(1)

    with pytest.raises(TransactionTimeoutException) as exc_info:
        await runner.run(slow, max_retries=2)

    assert exc_info.value.details["attempt"] == 2
    assert recording_sleep.calls == [0.2]


async def test_timeout_error_raised_by_work_is_not_relabelled(runner) -> None:
    """A TimeoutError from inside the work keeps its type."""

    async def work(session: AsyncSession) -> None:
        raise TimeoutError("upstream timed out")

    with pytest.raises(TimeoutError) as exc_info:
        await runner.run(work, max_retries=1)

    assert not isinstance(exc_info.value, TransactionTimeoutException)


async def test_failed_attempt_is_rolled_back(runner, session_factory) -> None:
    """Rows written by a failed attempt are not visible after the retry succeeds."""
    attempts = 0

    async def work(session: AsyncSession) -> str:
        nonlocal attempts
        attempts += 1
        session.add(Tenant(id=f"t{attempts}", slug=f"tenant-{attempts}", name="T"))
        await session.flush()
        if attempts == 1:
            raise RuntimeError("deadlock detected")
        return "ok"

    assert await runner.run(work) == "ok"

    async with session_factory() as session:
        ids = (await session.execute(select(Tenant.id))).scalars().all()
        total = (await session.execute(select(func.count()).select_from(Tenant))).scalar_one()
    assert ids == ["t2"]
    assert total == 1
