"""
Rate limiting and request management for external services.

Specialists reach the travel-data and knowledge-retrieval services through
APIClient, which throttles requests per service with aiolimiter and retries
transient failures with tenacity.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from aiolimiter import AsyncLimiter
from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from trip_planner.utils.error_handling import APIError

# HTTP Status Codes
HTTP_STATUS_OK = 200
HTTP_STATUS_REDIRECT = 300
HTTP_STATUS_TOO_MANY_REQUESTS = 429


@dataclass
class RateLimitConfig:
    """Configuration for a service's rate limits."""

    service_name: str
    requests_per_minute: int
    max_retries: int = 3
    min_wait_seconds: float = 1.0
    max_wait_seconds: float = 30.0
    retry_status_codes: list[int] = field(
        default_factory=lambda: [429, 500, 502, 503, 504]
    )


class ServiceRateLimiter:
    """Throttles requests to a single service."""

    def __init__(self, config: RateLimitConfig):
        self.config = config
        self.limiter = AsyncLimiter(max(1, config.requests_per_minute), 60)
        logger.info(
            f"Initialized rate limiter for {config.service_name} "
            f"({config.requests_per_minute}/min)"
        )

    def should_retry_exception(self, exception: BaseException) -> bool:
        """
        Determine if an exception should trigger a retry.

        Args:
            exception: The exception to check

        Returns:
            True if should retry, False otherwise
        """
        if isinstance(
            exception,
            aiohttp.ClientConnectionError | aiohttp.ServerTimeoutError | TimeoutError,
        ):
            return True

        return (
            isinstance(exception, APIError)
            and exception.status_code in self.config.retry_status_codes
        )


class RateLimitManager:
    """Registry of rate limiters keyed by service name."""

    def __init__(self):
        self.limiters: dict[str, ServiceRateLimiter] = {}

    def register_service(self, config: RateLimitConfig) -> ServiceRateLimiter:
        limiter = ServiceRateLimiter(config)
        self.limiters[config.service_name] = limiter
        return limiter

    def get_limiter(self, service_name: str) -> ServiceRateLimiter:
        """Get the limiter for a service, registering defaults if unknown."""
        if service_name not in self.limiters:
            logger.warning(
                f"No rate limiter configured for {service_name}, "
                f"using default configuration."
            )
            self.register_service(
                RateLimitConfig(service_name=service_name, requests_per_minute=60)
            )
        return self.limiters[service_name]


rate_limit_manager = RateLimitManager()


def before_sleep_callback(retry_state: RetryCallState) -> None:
    """Log a failed attempt before tenacity sleeps."""
    exception = retry_state.outcome.exception()
    if exception:
        logger.warning(
            f"Request failed (attempt {retry_state.attempt_number}), "
            f"retrying in {retry_state.next_action.sleep:.2f} seconds: {exception!s}"
        )


async def with_rate_limit(
    service_name: str, func: Callable[[], Awaitable[Any]]
) -> Any:
    """
    Execute a request coroutine factory under the service's rate limit,
    retrying transient failures.

    Args:
        service_name: Name of the service being called
        func: Zero-argument coroutine factory performing the request

    Returns:
        Result of the request
    """
    limiter = rate_limit_manager.get_limiter(service_name)

    async for attempt in AsyncRetrying(
        retry=retry_if_exception(limiter.should_retry_exception),
        stop=stop_after_attempt(limiter.config.max_retries),
        wait=wait_exponential(
            multiplier=1,
            min=limiter.config.min_wait_seconds,
            max=limiter.config.max_wait_seconds,
        ),
        reraise=True,
        before_sleep=before_sleep_callback,
    ):
        with attempt:
            async with limiter.limiter:
                return await func()


class APIClient:
    """
    Base client for JSON API requests with rate limiting and retries.
    """

    def __init__(
        self,
        service_name: str,
        base_url: str,
        api_key: str | None = None,
        timeout_seconds: float = 20.0,
    ):
        """
        Initialize the API client.

        Args:
            service_name: Name of the service
            base_url: Base URL for API requests
            api_key: API key for authentication (optional)
            timeout_seconds: Total timeout for a single HTTP request
        """
        self.service_name = service_name
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make an API request with rate limiting and retries.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            params: Query parameters (optional)
            json_data: JSON data for request body (optional)

        Returns:
            Parsed JSON response

        Raises:
            APIError: If the request fails after retries
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async def do_request() -> Any:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(
                    method, url, params=params, json=json_data, headers=headers
                ) as response:
                    status_code = response.status
                    if status_code == HTTP_STATUS_TOO_MANY_REQUESTS:
                        raise APIError(
                            "Rate limit exceeded",
                            self.service_name,
                            status_code=status_code,
                        )
                    if not (HTTP_STATUS_OK <= status_code < HTTP_STATUS_REDIRECT):
                        raise APIError(
                            f"API request failed: {await response.text()}",
                            self.service_name,
                            status_code=status_code,
                        )
                    return await response.json()

        try:
            return await with_rate_limit(self.service_name, do_request)
        except aiohttp.ClientError as e:
            raise APIError(
                "Request could not be completed", self.service_name, original_error=e
            ) from e


DEFAULT_RATE_LIMITS = [
    RateLimitConfig(service_name="travel_data", requests_per_minute=120),
    RateLimitConfig(service_name="knowledge_base", requests_per_minute=60),
    RateLimitConfig(
        service_name="gemini",
        requests_per_minute=15,
        max_retries=5,
        max_wait_seconds=60.0,
    ),
]


def initialize_rate_limiting() -> None:
    """Register rate limiters for the collaborators the specialists use."""
    for config in DEFAULT_RATE_LIMITS:
        rate_limit_manager.register_service(config)
    logger.info(f"Initialized rate limiting for {len(DEFAULT_RATE_LIMITS)} services")
