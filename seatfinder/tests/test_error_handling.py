"""Tests for the retry policy and error types."""

import pytest

from seatfinder.engine.error_handling import (
    FetchError,
    InvalidConfiguration,
    RetryPolicy,
    SeatFinderError,
)


def test_error_hierarchy():
    assert issubclass(InvalidConfiguration, SeatFinderError)
    assert issubclass(InvalidConfiguration, ValueError)

    cause = OSError("disk")
    error = FetchError("cannot read", source="csv", cause=cause)
    assert error.source == "csv"
    assert error.cause is cause


def test_delay_backoff_and_cap():
    policy = RetryPolicy(base_delay=0.5, max_delay=3.0, jitter=False)

    assert policy.calculate_delay(0) == 0.5
    assert policy.calculate_delay(1) == 1.0
    assert policy.calculate_delay(2) == 2.0
    assert policy.calculate_delay(5) == 3.0


def test_jitter_stays_in_range():
    policy = RetryPolicy(base_delay=1.0, jitter=True)
    for _ in range(20):
        assert 0.5 <= policy.calculate_delay(0) <= 1.5


def test_negative_retries_rejected():
    with pytest.raises(InvalidConfiguration):
        RetryPolicy(max_retries=-1)


@pytest.mark.asyncio
async def test_execute_retries_until_success():
    policy = RetryPolicy(max_retries=3, base_delay=0, jitter=False)
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise ConnectionError("try again")
        return "ok"

    assert await policy.execute(flaky, retry_on=(ConnectionError,)) == "ok"
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_execute_raises_last_error():
    policy = RetryPolicy(max_retries=1, base_delay=0, jitter=False)
    attempts = []

    def always_fails():
        attempts.append(1)
        raise ConnectionError(f"attempt {len(attempts)}")

    with pytest.raises(ConnectionError, match="attempt 2"):
        await policy.execute(always_fails, retry_on=(ConnectionError,))


@pytest.mark.asyncio
async def test_unlisted_errors_are_not_retried():
    policy = RetryPolicy(max_retries=3, base_delay=0, jitter=False)
    attempts = []

    async def broken():
        attempts.append(1)
        raise KeyError("bad")

    with pytest.raises(KeyError):
        await policy.execute(broken, retry_on=(ConnectionError,))

    assert len(attempts) == 1
