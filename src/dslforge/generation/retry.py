"""Retry logic: backoff configuration and retry policy for backend calls."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from dslforge.generation.errors import CapabilityError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class BackoffConfig:
    """Configuration for exponential backoff between retries."""

    initial_delay_ms: int = 200
    backoff_factor: float = 2.0
    max_delay_ms: int = 60000
    jitter: bool = True


@dataclass
class RetryPolicy:
    """Retry policy: max_attempts=1 means no retries (single attempt)."""

    max_attempts: int  # 1 = no retries
    backoff: BackoffConfig

    def delay_for_attempt(self, attempt: int) -> float:
        """Return delay in seconds for the given attempt (1-indexed).

        Attempt 1 uses initial_delay_ms, attempt 2 uses initial * factor, etc.
        The delay is capped at max_delay_ms and optionally jittered.
        """
        delay = self.backoff.initial_delay_ms * (self.backoff.backoff_factor ** (attempt - 1))
        delay = min(delay, self.backoff.max_delay_ms)
        if self.backoff.jitter:
            delay *= random.uniform(0.5, 1.5)
        return delay / 1000.0


def build_retry_policy(max_attempts: int) -> RetryPolicy:
    """Standard backoff with *max_attempts* total tries (at least one)."""
    return RetryPolicy(max_attempts=max(1, max_attempts), backoff=BackoffConfig())


def call_with_retry(
    func: Callable[[], T],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Callable[[int, float, CapabilityError], None] | None = None,
) -> T:
    """Call *func*, retrying retryable :class:`CapabilityError` failures.

    Non-retryable errors, and the last retryable one, propagate unchanged.
    *on_retry* is invoked before each sleep with the failed attempt number,
    the delay and the error.
    """
    attempts = max(1, policy.max_attempts)
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except CapabilityError as exc:
            if not exc.retryable or attempt >= attempts:
                raise
            delay = policy.delay_for_attempt(attempt)
            logger.warning(
                "Backend call failed (attempt %d/%d), retrying in %.2fs: %s",
                attempt,
                attempts,
                delay,
                exc,
            )
            if on_retry is not None:
                on_retry(attempt, delay, exc)
            sleep(delay)
    raise AssertionError("unreachable")
