"""Retry decisions and the retry driver for AEM HTTP calls.

The decision functions are stateless; ``with_retry`` is the only place
that waits between attempts.
"""

import random
import time
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field


T = TypeVar("T")

RetryObserver = Callable[[int, Exception, int], None]
Sleeper = Callable[[float], None]

JITTER_RATIO = 0.25

DEFAULT_RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})
DEFAULT_RETRYABLE_ERROR_CODES = frozenset(
    {
        "ECONNRESET",
        "ECONNREFUSED",
        "ETIMEDOUT",
        "ENOTFOUND",
        "EAI_AGAIN",
        "EPIPE",
        "EHOSTUNREACH",
        "ENETUNREACH",
    }
)


class RetryConfig(BaseModel):
    """Configuration for retry behavior.

    Uses exponential backoff:
    delay = initial_delay_ms * (backoff_multiplier ^ attempt), capped at
    max_delay_ms, with an optional +/-25% jitter.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: Annotated[int, Field(ge=0, le=10)] = 3
    initial_delay_ms: Annotated[int, Field(ge=0, le=60000)] = 1000
    max_delay_ms: Annotated[int, Field(ge=0, le=300000)] = 30000
    backoff_multiplier: Annotated[float, Field(ge=1.0, le=10.0)] = 2.0
    jitter: bool = True
    retryable_status_codes: frozenset[int] = DEFAULT_RETRYABLE_STATUS_CODES
    retryable_error_codes: frozenset[str] = DEFAULT_RETRYABLE_ERROR_CODES


class RetryDecision(BaseModel):
    """Outcome of a retry check."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    should_retry: bool
    delay_ms: int = Field(default=0, ge=0)
    reason: str


def calculate_backoff_delay(attempt: int, config: RetryConfig) -> int:
    """Calculate the delay before the next attempt.

    Args:
        attempt: Current attempt number (0-indexed).
        config: Retry configuration.

    Returns:
        Delay in milliseconds, never negative.
    """
    delay = config.initial_delay_ms * (config.backoff_multiplier**attempt)
    delay = min(delay, config.max_delay_ms)

    if config.jitter:
        jitter = (random.random() * 2 - 1) * delay * JITTER_RATIO  # noqa: S311
        return max(0, int(delay + jitter))

    return int(delay)


def parse_retry_after_header(value: str | None) -> int | None:
    """Parse a Retry-After header value.

    Args:
        value: Header value (integer seconds or HTTP date).

    Returns:
        Milliseconds to wait, or None if not parseable.
    """
    if not value:
        return None

    stripped = value.strip()
    if stripped.isdigit():
        return int(stripped) * 1000

    try:
        dt = parsedate_to_datetime(stripped)
    except (ValueError, TypeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    delta = dt - datetime.now(UTC)
    return max(0, int(delta.total_seconds() * 1000))


def is_retryable_status_code(status_code: int, config: RetryConfig) -> bool:
    """Check if an HTTP status code is retryable."""
    return status_code in config.retryable_status_codes


def is_retryable_error_code(error_code: str, config: RetryConfig) -> bool:
    """Check if a low-level error code (e.g. ECONNRESET) is retryable."""
    return error_code in config.retryable_error_codes


def _retry_after(headers: Mapping[str, str] | None) -> str | None:
    if not headers:
        return None
    for key, value in headers.items():
        if key.lower() == "retry-after":
            return value
    return None


def should_retry(
    error: Exception,
    attempt: int,
    config: RetryConfig,
    response_headers: Mapping[str, str] | None = None,
) -> RetryDecision:
    """Decide whether a failed call should be retried.

    Args:
        error: The failure. ``status_code`` and ``error_code`` attributes
            are consulted when present.
        attempt: Current attempt number (0-indexed).
        config: Retry configuration.
        response_headers: Response headers, for Retry-After.

    Returns:
        Retry decision with the delay to wait.
    """
    if attempt >= config.max_retries:
        return RetryDecision(
            should_retry=False,
            reason=f"Maximum retries ({config.max_retries}) exceeded",
        )

    status_code = getattr(error, "status_code", None)
    if status_code and is_retryable_status_code(status_code, config):
        retry_after_ms = parse_retry_after_header(_retry_after(response_headers))
        delay_ms = (
            retry_after_ms
            if retry_after_ms is not None
            else calculate_backoff_delay(attempt, config)
        )
        return RetryDecision(
            should_retry=True,
            delay_ms=delay_ms,
            reason=f"Retryable status code: {status_code}",
        )

    error_code = getattr(error, "error_code", None)
    if error_code and is_retryable_error_code(error_code, config):
        return RetryDecision(
            should_retry=True,
            delay_ms=calculate_backoff_delay(attempt, config),
            reason=f"Retryable error code: {error_code}",
        )

    return RetryDecision(should_retry=False, reason="Error is not retryable")


def with_retry(
    operation: Callable[[], T],
    config: RetryConfig | None = None,
    on_retry: RetryObserver | None = None,
    sleep: Sleeper = time.sleep,
) -> T:
    """Run an operation with retries.

    Args:
        operation: Zero-argument callable to execute.
        config: Retry configuration (defaults apply when omitted).
        on_retry: Called with (next attempt number, error, delay_ms) before
            each wait.
        sleep: Blocking wait in seconds.

    Returns:
        Result of the first successful attempt.

    Raises:
        Exception: The last error, unchanged, when it is not retryable or
            retries are exhausted.
    """
    policy = config or RetryConfig()
    attempt = 0
    while True:
        try:
            return operation()
        except Exception as exc:
            decision = should_retry(
                exc, attempt, policy, getattr(exc, "headers", None)
            )
            if not decision.should_retry:
                raise
            attempt += 1
            if on_retry is not None:
                on_retry(attempt, exc, decision.delay_ms)
            sleep(decision.delay_ms / 1000.0)


def create_retry_wrapper(
    config: RetryConfig | None = None,
    sleep: Sleeper = time.sleep,
) -> Callable[..., Any]:
    """Create a ``with_retry`` preset bound to one configuration.

    Args:
        config: Retry configuration to bind.
        sleep: Blocking wait in seconds.

    Returns:
        Function ``retry(operation, on_retry=None)``.
    """
    policy = config or RetryConfig()

    def retry(operation: Callable[[], T], on_retry: RetryObserver | None = None) -> T:
        return with_retry(operation, policy, on_retry=on_retry, sleep=sleep)

    return retry
