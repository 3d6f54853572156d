"""Transaction runner: retrying units of work under READ COMMITTED.

Each attempt opens a fresh session and transaction, so a failed attempt is
rolled back in full before the next one starts. Waits between attempts grow
as 2**attempt * 100ms (200ms, 400ms, ...); there is no jitter. When attempts
run out, the last error is re-raised as-is.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.core.constants import TRANSACTION_BACKOFF_BASE_MS, TRANSACTION_DEFAULT_MAX_RETRIES
from app.domain.exceptions import TransactionTimeoutException
from app.shared.telemetry.tracing import add_span_event, traced

logger = logging.getLogger(__name__)

TRANSACTION_ISOLATION_LEVEL = "READ COMMITTED"

Work = Callable[[Any], Awaitable[Any]]


def backoff_seconds(attempt: int) -> float:
    """Seconds to wait after failed attempt number `attempt` (1-based)."""
    return (2**attempt * TRANSACTION_BACKOFF_BASE_MS) / 1000


def retry_all(exc: BaseException) -> bool:
    return True


def build_session_factory(
    engine: AsyncEngine, isolation_level: str | None = TRANSACTION_ISOLATION_LEVEL
) -> async_sessionmaker[AsyncSession]:
    """Session factory whose connections run at isolation_level (None: engine default)."""
    bind = engine.execution_options(isolation_level=isolation_level) if isolation_level else engine
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


class TransactionRunner:
    """Run a unit of work in a transaction, retrying failed attempts."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        bind: Callable[[AsyncSession], Any],
        *,
        timeout_seconds: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        is_retryable: Callable[[BaseException], bool] = retry_all,
    ) -> None:
        """Initialize the runner.

        Args:
            session_factory: Produces sessions for each attempt.
            bind: Turns the attempt's session into what work receives
                (normally a DataClient).
            timeout_seconds: Limit per attempt; None means no limit.
            sleep: Awaitable used for backoff waits.
            is_retryable: Errors for which it returns False are re-raised
                without further attempts.
        """
        self._session_factory = session_factory
        self._bind = bind
        self.timeout_seconds = timeout_seconds
        self._sleep = sleep
        self.is_retryable = is_retryable

    async def _attempt(self, work: Work, attempt: int) -> Any:
        timeout = asyncio.timeout(self.timeout_seconds)
        try:
            async with timeout:
                async with self._session_factory() as session, session.begin():
                    return await work(self._bind(session))
        except TimeoutError as exc:
            if not timeout.expired():
                raise
            raise TransactionTimeoutException(self.timeout_seconds or 0, attempt) from exc

    @traced("transaction.run")
    async def run(
        self,
        work: Work,
        max_retries: int = TRANSACTION_DEFAULT_MAX_RETRIES,
        *,
        is_retryable: Callable[[BaseException], bool] | None = None,
    ) -> Any:
        """Run work(client) in a transaction, up to max_retries attempts.

        is_retryable overrides the runner-wide classifier for this call.

        Returns:
            Whatever work returns on the first successful attempt.

        Raises:
            ValueError: max_retries is less than 1.
            Exception: The error of the last attempt, unchanged.
        """
        if max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {max_retries}")
        retryable = is_retryable or self.is_retryable
        attempt = 1
        while True:
            try:
                return await self._attempt(work, attempt)
            except Exception as exc:
                if attempt >= max_retries or not retryable(exc):
                    logger.error(
                        "Transaction failed after %d attempt(s): %s",
                        attempt,
                        exc,
                        extra={"attempt": attempt, "max_retries": max_retries},
                    )
                    raise
                delay = backoff_seconds(attempt)
                logger.warning(
                    "Transaction attempt %d/%d failed: %s; retrying in %dms",
                    attempt,
                    max_retries,
                    exc,
                    round(delay * 1000),
                    extra={"attempt": attempt, "max_retries": max_retries},
                )
                add_span_event(
                    "transaction.retry", {"attempt": attempt, "error": type(exc).__name__}
                )
                await self._sleep(delay)
                attempt += 1
