"""Bounded retry for remote calls.

Reads are idempotent and are retried on any :class:`RemoteUnavailable`.
Writes are retried only when the request never reached the server
(:class:`RemoteConnectionError`), so a commit is never applied twice.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from .exceptions import RemoteConnectionError, RemoteUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry a call a fixed number of times with bounded exponential delay.

    Attributes:
        attempts: Total number of attempts (1 disables retrying).
        delay: Delay before the first retry, in seconds.
        backoff: Multiplier applied to the delay after each retry.
        max_delay: Upper bound on any single delay.
        retry_on: Exception types that trigger a retry.
    """
    attempts: int = 2
    delay: float = 0.5
    backoff: float = 2.0
    max_delay: float = 5.0
    retry_on: tuple[type[BaseException], ...] = (RemoteUnavailable,)
    sleep: Callable[[float], None] = time.sleep

    def delay_for(self, attempt: int) -> float:
        """Delay after failed attempt number *attempt* (0-based)."""
        return min(self.delay * (self.backoff ** attempt), self.max_delay)

    def call(self, fn: Callable[..., T], *args, **kwargs) -> T:
        """Call *fn*, retrying on ``retry_on``; re-raise the last failure."""
        for attempt in range(self.attempts):
            try:
                return fn(*args, **kwargs)
            except self.retry_on as exc:
                if attempt == self.attempts - 1:
                    raise
                wait = self.delay_for(attempt)
                logger.warning(
                    "%s failed (%s); retrying in %.2fs (attempt %d/%d)",
                    getattr(fn, "__name__", "call"), exc, wait, attempt + 2, self.attempts,
                )
                self.sleep(wait)
        raise AssertionError("unreachable")  # pragma: no cover

    def without_delay(self) -> RetryPolicy:
        """Return a copy that does not sleep between attempts."""
        return RetryPolicy(
            attempts=self.attempts, delay=0.0, backoff=self.backoff,
            max_delay=0.0, retry_on=self.retry_on, sleep=self.sleep,
        )


READS = RetryPolicy(attempts=2, delay=0.5, retry_on=(RemoteUnavailable,))
WRITES = RetryPolicy(attempts=2, delay=0.5, retry_on=(RemoteConnectionError,))
NO_RETRY = RetryPolicy(attempts=1)
