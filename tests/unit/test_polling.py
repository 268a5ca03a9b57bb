"""Tests for the polling primitive."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from resinos.autotest.errors import FleetServiceError, SetupError, WaitTimeoutError
from resinos.autotest.polling import wait_until


def polls_until_true(after: int) -> AsyncMock:
    """Predicate that becomes true on the given evaluation."""
    return AsyncMock(side_effect=[n >= after for n in range(1, 100)])


async def test_wait_until_immediate() -> None:
    """wait_until returns after one evaluation when already true."""
    predicate = AsyncMock(return_value=True)

    await wait_until(predicate, interval=0.01, timeout=1)

    predicate.assert_awaited_once()


async def test_wait_until_after_polling() -> None:
    """wait_until polls until the predicate becomes true."""
    predicate = polls_until_true(3)

    await wait_until(predicate, interval=0.01, timeout=1)

    assert predicate.await_count == 3


async def test_wait_until_timeout() -> None:
    """wait_until raises when the predicate needs more polls than the budget."""
    predicate = polls_until_true(50)

    with pytest.raises(WaitTimeoutError, match="not reached within 0.05 seconds"):
        await wait_until(predicate, interval=0.02, timeout=0.05)

    assert predicate.await_count < 50


async def test_wait_until_true_only_after_deadline() -> None:
    """A predicate turning true after the timeout still times out."""
    predicate = polls_until_true(3)

    with pytest.raises(WaitTimeoutError, match="not reached within 0.3 seconds"):
        await wait_until(predicate, interval=0.2, timeout=0.3)

    assert predicate.await_count == 2


async def test_wait_until_last_sleep_stops_at_deadline() -> None:
    """The final sleep is cut short at the deadline."""
    predicate = AsyncMock(return_value=False)
    loop = asyncio.get_running_loop()
    start = loop.time()

    with pytest.raises(WaitTimeoutError):
        await wait_until(predicate, interval=5, timeout=0.1)

    assert loop.time() - start < 1
    predicate.assert_awaited_once()


async def test_wait_until_timeout_is_setup_error() -> None:
    """Polling timeouts are setup errors and builtin timeouts."""
    predicate = AsyncMock(return_value=False)

    with pytest.raises(WaitTimeoutError) as exc_info:
        await wait_until(predicate, interval=0.01, timeout=0.02)

    assert isinstance(exc_info.value, SetupError)
    assert isinstance(exc_info.value, TimeoutError)


async def test_wait_until_zero_timeout_still_evaluates() -> None:
    """wait_until evaluates the predicate once even with no time budget."""
    predicate = AsyncMock(return_value=True)

    await wait_until(predicate, interval=1, timeout=0)

    predicate.assert_awaited_once()


async def test_wait_until_propagates_predicate_errors() -> None:
    """Predicate errors are not retried."""
    predicate = AsyncMock(side_effect=FleetServiceError("API Error"))

    with pytest.raises(FleetServiceError, match="API Error"):
        await wait_until(predicate, interval=0.01, timeout=1)

    predicate.assert_awaited_once()


async def test_wait_until_sync_predicate() -> None:
    """wait_until accepts plain callables."""
    calls = []

    def predicate() -> bool:
        calls.append(1)
        return len(calls) == 2

    await wait_until(predicate, interval=0.01, timeout=1)

    assert len(calls) == 2


async def test_wait_until_sleeps_between_polls() -> None:
    """wait_until sleeps the interval between evaluations."""
    predicate = polls_until_true(3)

    with patch(
        "resinos.autotest.polling.asyncio.sleep", new_callable=AsyncMock
    ) as mock_sleep:
        await wait_until(predicate, interval=5, timeout=60)

    assert [call.args[0] for call in mock_sleep.await_args_list] == [5, 5]


async def test_wait_until_backoff() -> None:
    """wait_until grows the interval up to max_interval."""
    predicate = polls_until_true(5)

    with patch(
        "resinos.autotest.polling.asyncio.sleep", new_callable=AsyncMock
    ) as mock_sleep:
        await wait_until(predicate, interval=1, timeout=60, backoff=2, max_interval=3)

    assert [call.args[0] for call in mock_sleep.await_args_list] == [1, 2, 3, 3]
