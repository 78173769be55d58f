from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

RETRY_JITTER_RATIO = 0.25
RETRY_BASE_DELAY_MS = 100


class StoreUnavailableError(Exception):
    """Raised when a store operation keeps failing with transient errors."""

    def __init__(self, operation: str, attempts: int) -> None:
        super().__init__(f"{operation} failed after {attempts} attempts")
        self.operation = operation
        self.attempts = attempts


def is_transient_store_error(exc: BaseException) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError, TimeoutError, ConnectionError)):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


def retry_backoff_ms(*, next_retry_attempt: int, backoff_max_ms: int) -> int:
    safe_retry_attempt = max(1, int(next_retry_attempt))
    safe_backoff_max_ms = max(1, int(backoff_max_ms))

    base_delay = min(safe_backoff_max_ms, RETRY_BASE_DELAY_MS * 2 ** (safe_retry_attempt - 1))
    max_jitter = max(0, int(base_delay * RETRY_JITTER_RATIO))
    jitter = random.randint(0, max_jitter) if max_jitter > 0 else 0
    return min(safe_backoff_max_ms, base_delay + jitter)


async def run_with_store_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    operation_name: str,
    attempts: int,
    backoff_max_ms: int,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Runs ``operation`` and retries it on transient store errors only.

    Every call of ``operation`` must open its own transaction: a PostgreSQL
    transaction that saw an error cannot be reused.
    """
    resolved_attempts = max(1, int(attempts))
    for attempt in range(1, resolved_attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            if not is_transient_store_error(exc):
                raise
            if attempt >= resolved_attempts:
                logger.error(
                    "store_operation_retries_exhausted",
                    operation=operation_name,
                    attempts=resolved_attempts,
                    error=str(exc),
                )
                raise StoreUnavailableError(operation_name, resolved_attempts) from exc

            delay_ms = retry_backoff_ms(next_retry_attempt=attempt, backoff_max_ms=backoff_max_ms)
            logger.warning(
                "store_operation_retry_scheduled",
                operation=operation_name,
                retry_attempt=attempt,
                retry_in_ms=delay_ms,
                max_attempts=resolved_attempts,
            )
            await sleep(delay_ms / 1000)

    raise StoreUnavailableError(operation_name, resolved_attempts)
