"""
Error handling utilities for the Trip Planner system.

This module defines the error taxonomy shared by the orchestrator, the plan
store and the specialists, plus the retry decorator used for model calls.
"""

import functools
from collections.abc import Callable
from typing import Any, TypeVar, cast

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

# Type variables for function decorator typing
F = TypeVar("F", bound=Callable[..., Any])


class TripPlannerError(Exception):
    """Base exception class for all Trip Planner errors."""

    code = "internal_error"
    retryable = False

    def __init__(self, message: str, original_error: Exception | None = None):
        """
        Initialize a TripPlannerError.

        Args:
            message: Error message
            original_error: The original exception that caused this error (optional)
        """
        self.message = message
        self.original_error = original_error
        if original_error:
            message = f"{message} - Original error: {original_error!s}"
        super().__init__(message)


class ValidationError(TripPlannerError):
    """Malformed or missing required input. Never retried."""

    code = "validation_error"


class NotFoundError(TripPlannerError):
    """Raised when a plan id is unknown to the store."""

    code = "not_found"

    def __init__(self, plan_id: str):
        self.plan_id = plan_id
        super().__init__(f"Plan '{plan_id}' not found")


class InvalidStateError(TripPlannerError):
    """Operation is not legal for the plan's current status."""

    code = "invalid_state"


class ConflictError(TripPlannerError):
    """Raised when creating a plan whose id already exists."""

    code = "conflict"

    def __init__(self, plan_id: str):
        self.plan_id = plan_id
        super().__init__(f"Plan '{plan_id}' already exists")


class ConcurrentModificationError(TripPlannerError):
    """Conditional write lost against a concurrent update."""

    code = "concurrent_modification"
    retryable = True

    def __init__(self, plan_id: str, expected_turn: int, actual_turn: int | None = None):
        self.plan_id = plan_id
        self.expected_turn = expected_turn
        self.actual_turn = actual_turn
        detail = f" (store is at turn {actual_turn})" if actual_turn is not None else ""
        super().__init__(
            f"Plan '{plan_id}' was modified concurrently; "
            f"expected turn {expected_turn}{detail}"
        )


class StaleContributionError(TripPlannerError):
    """A contribution was produced for an older turn than the plan holds."""

    code = "stale_contribution"


class APIError(TripPlannerError):
    """Error raised when an external API request fails."""

    retryable = True

    def __init__(
        self,
        message: str,
        service_name: str,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ):
        """
        Initialize an APIError.

        Args:
            message: Error message
            service_name: Name of the API service
            status_code: HTTP status code (optional)
            original_error: The original exception that caused this error (optional)
        """
        self.service_name = service_name
        self.status_code = status_code
        status_str = f" (status: {status_code})" if status_code else ""
        full_message = f"Error in {service_name} API{status_str}: {message}"
        super().__init__(full_message, original_error)


class SpecialistError(TripPlannerError):
    """A specialist could not produce its contribution."""

    def __init__(
        self,
        message: str,
        retryable: bool = False,
        original_error: Exception | None = None,
    ):
        super().__init__(message, original_error)
        self.retryable = retryable


class PlanIntegrityError(TripPlannerError):
    """A store mutation tried to break a plan invariant."""


def with_retry(
    max_attempts: int = 3,
    min_wait_seconds: float = 1.0,
    max_wait_seconds: float = 10.0,
    retry_exceptions: tuple = (APIError,),
) -> Callable[[F], F]:
    """
    Decorator to retry a coroutine with exponential backoff when specific
    exceptions occur.

    Args:
        max_attempts: Maximum number of attempts
        min_wait_seconds: Minimum wait time between retries
        max_wait_seconds: Maximum wait time between retries
        retry_exceptions: Tuple of exception types to retry on

    Returns:
        Decorated coroutine function
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                async for attempt in AsyncRetrying(
                    retry=retry_if_exception_type(retry_exceptions),
                    stop=stop_after_attempt(max_attempts),
                    wait=wait_exponential(
                        multiplier=1, min=min_wait_seconds, max=max_wait_seconds
                    ),
                ):
                    with attempt:
                        return await func(*args, **kwargs)
            except RetryError as e:
                original_error = e.last_attempt.exception()
                logger.error(
                    f"All retry attempts failed for {func.__name__}: {original_error!s}"
                )
                raise TripPlannerError(
                    f"Function {func.__name__} failed after {max_attempts} attempts",
                    original_error=original_error,
                ) from e

        return cast(F, wrapper)

    return decorator
