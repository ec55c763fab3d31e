"""Retry configuration and the retry loop used by storage transports.

A :class:`RetryConfig` travels inside the resolved call settings; the transport
runs each remote call through :func:`run_with_retry`, which decides whether a
failure is retried from three things:

| Policy | Idempotent call | Non-idempotent call |
|--------|-----------------|---------------------|
| `RETRY_IDEMPOTENT` (default) | retried if the error is retryable | never retried |
| `RETRY_ALWAYS` | retried if the error is retryable | retried if the error is retryable |
| `RETRY_NEVER` | never retried | never retried |

An error is retryable when ``RetryConfig.should_retry`` says so. The default,
:func:`is_retryable`, accepts 408, 429 and 5xx responses plus network failures.

## Example

```python
from storage_client_core.options import with_retry_config
from storage_client_core.transport.retry import Backoff, RetryConfig, RetryPolicy

aggressive = RetryConfig(
    backoff=Backoff(initial=0.5, maximum=10.0, multiplier=3.0),
    policy=RetryPolicy.RETRY_ALWAYS,
    max_attempts=8,
)
await client.delete_object("bucket", "object", with_retry_config(aggressive))
```
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import TypeVar

import httpx

from storage_client_core.errors import APIError, NetworkError, RateLimitError, wrap_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset([408, 429, 500, 502, 503, 504])


class RetryPolicy(Enum):
    """When a failed call may be retried."""

    RETRY_IDEMPOTENT = "idempotent"
    RETRY_ALWAYS = "always"
    RETRY_NEVER = "never"


@dataclass(frozen=True)
class Backoff:
    """Exponential backoff parameters, in seconds.

    Delay for retry ``n`` (1-indexed): ``min(initial * multiplier ** (n - 1), maximum)``.
    Default sequence: 1, 2, 4, 8, 16, 30, 30, ...
    """

    initial: float = 1.0
    maximum: float = 30.0
    multiplier: float = 2.0

    def delay(self, retry_number: int) -> float:
        return min(self.initial * (self.multiplier ** (retry_number - 1)), self.maximum)


def is_retryable(exc: Exception) -> bool:
    """Default classifier for transient failures."""
    if isinstance(exc, NetworkError):
        return True
    if isinstance(exc, APIError) and exc.status_code is not None:
        return exc.status_code in RETRYABLE_STATUS_CODES
    return False


@dataclass(frozen=True)
class RetryConfig:
    """Complete retry configuration for a call.

    Args:
        backoff: Delay schedule between attempts
        policy: Which calls may be retried at all
        should_retry: Classifier deciding whether an error is transient
        max_attempts: Maximum number of attempts including the first one.
            ``None`` retries until the call deadline elapses.
    """

    backoff: Backoff = field(default_factory=Backoff)
    policy: RetryPolicy = RetryPolicy.RETRY_IDEMPOTENT
    should_retry: Callable[[Exception], bool] = is_retryable
    max_attempts: int | None = None

    def allows_retry(self, exc: Exception, idempotent: bool) -> bool:
        if self.policy is RetryPolicy.RETRY_NEVER:
            return False
        if self.policy is RetryPolicy.RETRY_IDEMPOTENT and not idempotent:
            return False
        return self.should_retry(exc)


DEFAULT_RETRY_CONFIG = RetryConfig()


def parse_retry_after(response: httpx.Response, max_backoff: float) -> float | None:
    """Parse the Retry-After header from a response.

    Supports both formats:
    - Delay-seconds: "120" (integer seconds)
    - HTTP-date: "Wed, 21 Oct 2015 07:28:00 GMT"

    Args:
        response: HTTP response with optional Retry-After header
        max_backoff: Upper bound for the returned delay

    Returns:
        Delay in seconds, or None if header is missing or invalid
    """
    retry_after = response.headers.get("Retry-After")
    if not retry_after:
        return None

    try:
        delay = int(retry_after)
        if delay < 0:
            return None
        return float(min(delay, max_backoff))
    except ValueError:
        pass

    try:
        retry_date = parsedate_to_datetime(retry_after)
        delay = (retry_date - datetime.now(UTC)).total_seconds()

        # Clock skew
        if delay < 0:
            return None

        return float(min(delay, max_backoff))
    except (ValueError, TypeError):
        pass

    return None


def _retry_delay(config: RetryConfig, exc: Exception, retry_number: int) -> float:
    if isinstance(exc, RateLimitError) and exc.response is not None:
        delay = parse_retry_after(exc.response, config.backoff.maximum)
        if delay is not None:
            return delay
    return config.backoff.delay(retry_number)


async def run_with_retry(
    call: Callable[[], Awaitable[T]],
    *,
    retry: RetryConfig | None,
    idempotent: bool,
    description: str = "call",
) -> T:
    """Run ``call`` until it succeeds or the retry configuration gives up.

    Every failure is normalized with :func:`~storage_client_core.errors.wrap_error`
    before the retry decision, and the normalized error is what gets raised.

    Args:
        call: Zero-argument coroutine factory performing one attempt
        retry: Retry configuration, or None for the default
        idempotent: Whether repeating the call is safe
        description: Label used in log messages

    Returns:
        The result of the first successful attempt
    """
    config = retry or DEFAULT_RETRY_CONFIG
    attempt = 0

    while True:
        attempt += 1
        try:
            return await call()
        except Exception as e:
            err = wrap_error(e)
            exhausted = config.max_attempts is not None and attempt >= config.max_attempts
            if exhausted or not config.allows_retry(err, idempotent):
                if err is e:
                    raise
                raise err from e

            delay = _retry_delay(config, err, attempt)
            limit = config.max_attempts if config.max_attempts is not None else "unbounded"
            logger.warning(f"{description} failed with {err!r}, retrying in {delay}s (attempt {attempt}/{limit})")
            await asyncio.sleep(delay)
