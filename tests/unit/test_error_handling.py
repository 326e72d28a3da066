"""Tests for the error hierarchy and retry decorator."""

import pytest

from trip_planner.utils.error_handling import (
    APIError,
    ConcurrentModificationError,
    InvalidStateError,
    SpecialistError,
    TripPlannerError,
    ValidationError,
    with_retry,
)


def test_error_codes_and_retryability():
    assert ValidationError("x").code == "validation_error"
    assert not ValidationError("x").retryable
    assert InvalidStateError("x").code == "invalid_state"
    assert ConcurrentModificationError("plan-1", 1).retryable
    assert APIError("x", "svc").retryable


def test_original_error_is_kept():
    cause = KeyError("price")
    error = SpecialistError("bad catalog entry", original_error=cause)
    assert error.original_error is cause
    assert error.message == "bad catalog entry"
    assert "price" in str(error)


def test_concurrent_modification_message():
    error = ConcurrentModificationError("plan-1", 2, 3)
    assert error.expected_turn == 2
    assert "store is at turn 3" in str(error)


def test_api_error_includes_status():
    error = APIError("throttled", "travel_data", status_code=429)
    assert str(error) == "Error in travel_data API (status: 429): throttled"


async def test_with_retry_recovers():
    calls = []

    @with_retry(max_attempts=3, min_wait_seconds=0, max_wait_seconds=0)
    async def flaky():
        calls.append(1)
        if len(calls) < 2:
            raise APIError("busy", "svc")
        return "done"

    assert await flaky() == "done"
    assert len(calls) == 2


async def test_with_retry_wraps_exhaustion():
    @with_retry(max_attempts=2, min_wait_seconds=0, max_wait_seconds=0)
    async def always_down():
        raise APIError("down", "svc")

    with pytest.raises(TripPlannerError) as exc_info:
        await always_down()
    assert isinstance(exc_info.value.original_error, APIError)


async def test_with_retry_ignores_other_errors():
    calls = []

    @with_retry(max_attempts=3, min_wait_seconds=0, max_wait_seconds=0)
    async def broken():
        calls.append(1)
        raise ValueError("bug")

    with pytest.raises(ValueError):
        await broken()
    assert len(calls) == 1
