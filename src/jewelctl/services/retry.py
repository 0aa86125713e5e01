"""Retry with exponential backoff for network-bound collaborators.

Delay before attempt ``n + 1`` is ``min(base * factor ** (n - 1), max)``
plus up to 10% random jitter. The executor never retries after the last
attempt and stops at once when the retry condition rejects an error.
Once started, a retry loop runs to completion; there is no cancellation.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from jewelctl.config.models import RetryConfig

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

JITTER_RATIO = 0.1


class ServerError(Exception):
    """A collaborator answered with an error status."""

    def __init__(self, message: str, status: int) -> None:
        super().__init__(message)
        self.status = status


RetryCondition = Callable[[BaseException], bool]


def is_connectivity_error(error: BaseException) -> bool:
    """The request never got an answer (refused, reset, DNS, ...)."""
    return isinstance(error, ConnectionError)


def is_timeout_error(error: BaseException) -> bool:
    return isinstance(error, TimeoutError) or "timeout" in str(error).lower()


def is_server_error(error: BaseException) -> bool:
    status = getattr(error, "status", None)
    return isinstance(status, int) and 500 <= status < 600


def default_retry_condition(error: BaseException) -> bool:
    """Retry connectivity failures, 5xx answers and timeouts; nothing else."""
    return is_connectivity_error(error) or is_server_error(error) or is_timeout_error(error)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt count, delay bounds (seconds) and retry condition."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    backoff_factor: float = 2.0
    retry_condition: RetryCondition = field(default=default_retry_condition)

    def delay_for(self, attempt: int) -> float:
        """Backoff before the attempt following *attempt* (1-based), without jitter."""
        return min(self.base_delay * self.backoff_factor ** (attempt - 1), self.max_delay)


RETRY_PROFILES: dict[str, RetryPolicy] = {
    "templates": RetryPolicy(max_attempts=4, base_delay=0.5, max_delay=5.0, backoff_factor=1.5),
    "components": RetryPolicy(max_attempts=3, base_delay=1.0, max_delay=8.0, backoff_factor=2.0),
    # Orders retry only when the request never arrived: a 5xx may already
    # have created the order.
    "orders": RetryPolicy(
        max_attempts=2,
        base_delay=2.0,
        max_delay=10.0,
        backoff_factor=2.0,
        retry_condition=is_connectivity_error,
    ),
    "uploads": RetryPolicy(max_attempts=2, base_delay=1.5, max_delay=5.0, backoff_factor=2.0),
}


def profiles_from_config(config: RetryConfig) -> dict[str, RetryPolicy]:
    """Profiles with the configured numbers; each keeps its own retry condition."""
    return {
        name: replace(policy, **getattr(config, name).model_dump())
        for name, policy in RETRY_PROFILES.items()
    }


@dataclass(frozen=True)
class RetryOutcome(Generic[_T]):
    """Success flag, payload or last error, and the number of attempts made."""

    success: bool
    attempts: int
    data: _T | None = None
    error: BaseException | None = None


Sleep = Callable[[float], Awaitable[Any]]


async def with_retry(
    fn: Callable[[], Awaitable[_T]],
    policy: RetryPolicy | None = None,
    *,
    sleep: Sleep = asyncio.sleep,
    rng: random.Random | None = None,
) -> RetryOutcome[_T]:
    """Run *fn* until it succeeds, the policy gives up, or attempts run out."""
    policy = policy or RetryPolicy()
    rng = rng or random.Random()
    last_error: BaseException | None = None
    attempt = 0

    for attempt in range(1, policy.max_attempts + 1):
        try:
            data = await fn()
        except Exception as exc:
            last_error = exc
            if attempt == policy.max_attempts or not policy.retry_condition(exc):
                break
            delay = policy.delay_for(attempt)
            delay += rng.random() * JITTER_RATIO * delay
            logger.warning(
                "Attempt %d failed, retrying in %dms: %s", attempt, round(delay * 1000), exc
            )
            await sleep(delay)
        else:
            return RetryOutcome(success=True, attempts=attempt, data=data)

    return RetryOutcome(success=False, attempts=attempt, error=last_error)


def retry_wrapper(
    fn: Callable[..., Awaitable[_T]],
    policy: RetryPolicy | None = None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> Callable[..., Awaitable[_T]]:
    """Wrap *fn* so calls are retried; the last error is raised when all attempts fail."""

    async def wrapper(*args: Any, **kwargs: Any) -> _T:
        outcome = await with_retry(lambda: fn(*args, **kwargs), policy, sleep=sleep)
        if outcome.success:
            return outcome.data  # type: ignore[return-value]
        assert outcome.error is not None
        raise outcome.error

    return wrapper
