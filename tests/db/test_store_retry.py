from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from codecircle.db.retry import (
    StoreUnavailableError,
    is_transient_store_error,
    retry_backoff_ms,
    run_with_store_retry,
)


class _Sleeper:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def _operational_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, ConnectionError("server closed the connection"))


def test_transient_errors_are_classified() -> None:
    assert is_transient_store_error(_operational_error()) is True
    assert is_transient_store_error(TimeoutError()) is True
    assert is_transient_store_error(IntegrityError("INSERT", {}, ValueError("duplicate"))) is False
    assert is_transient_store_error(ValueError("bad input")) is False


def test_backoff_grows_and_respects_cap() -> None:
    assert 100 <= retry_backoff_ms(next_retry_attempt=1, backoff_max_ms=5000) <= 125
    assert 200 <= retry_backoff_ms(next_retry_attempt=2, backoff_max_ms=5000) <= 250
    assert retry_backoff_ms(next_retry_attempt=10, backoff_max_ms=300) == 300


@pytest.mark.asyncio
async def test_transient_failure_is_retried_until_success() -> None:
    sleeper = _Sleeper()
    calls = {"total": 0}

    async def _operation() -> str:
        calls["total"] += 1
        if calls["total"] < 3:
            raise _operational_error()
        return "ok"

    result = await run_with_store_retry(
        _operation,
        operation_name="load",
        attempts=3,
        backoff_max_ms=1000,
        sleep=sleeper,
    )

    assert result == "ok"
    assert calls["total"] == 3
    assert len(sleeper.delays) == 2


@pytest.mark.asyncio
async def test_exhausted_retries_raise_store_unavailable() -> None:
    sleeper = _Sleeper()

    async def _operation() -> None:
        raise _operational_error()

    with pytest.raises(StoreUnavailableError) as exc_info:
        await run_with_store_retry(
            _operation,
            operation_name="insert_assignment",
            attempts=2,
            backoff_max_ms=1000,
            sleep=sleeper,
        )

    assert exc_info.value.operation == "insert_assignment"
    assert exc_info.value.attempts == 2
    assert len(sleeper.delays) == 1


@pytest.mark.asyncio
async def test_permanent_error_is_not_retried() -> None:
    sleeper = _Sleeper()

    async def _operation() -> None:
        raise ValueError("constraint logic bug")

    with pytest.raises(ValueError):
        await run_with_store_retry(
            _operation,
            operation_name="finish_run",
            attempts=5,
            backoff_max_ms=1000,
            sleep=sleeper,
        )

    assert sleeper.delays == []
