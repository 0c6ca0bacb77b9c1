"""Retry helpers with exponential backoff.

``RetryContext`` drives loops that need to inspect each failure (HTTP status
codes, Retry-After headers) before deciding to retry.
"""

import random
import time
from typing import Callable, Optional

from diffreview.utils.logging import get_logger

logger = get_logger("utils.retry")


class RetryExhausted(Exception):
    """Raised when a RetryContext runs out of attempts without a recorded error."""
    pass


class DeadlineExceeded(RetryExhausted):
    """The next backoff would cross the caller's deadline."""
    pass


def compute_delay(
    attempt: int,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> float:
    """Backoff before retry number ``attempt`` (0-based).

    ``base_delay * exponential_base ** attempt`` capped at ``max_delay``.
    With jitter the delay is drawn uniformly from [0, capped delay].
    """
    delay = min(max_delay, base_delay * (exponential_base ** attempt))
    if jitter:
        delay = random.uniform(0, delay)
    return delay


class RetryContext:
    """Explicit retry loop.

    Usage::

        with RetryContext(max_retries=3) as retry:
            for attempt in retry:
                try:
                    result = call()
                    break
                except TransientError as e:
                    retry.record_failure(e)

    When every attempt recorded a failure, iteration re-raises the last one.
    With a ``deadline`` (a ``clock()`` value), a backoff that would end after
    it raises ``DeadlineExceeded`` instead of sleeping.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 10.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        deadline: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        on_retry: Optional[Callable[[BaseException, int, float], None]] = None,
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.deadline = deadline
        self._sleep = sleep
        self._clock = clock
        self._on_retry = on_retry

        self.attempt = 0
        self.last_exception: Optional[BaseException] = None
        self._failed_current = False
        self._delay_override: Optional[float] = None

    def __enter__(self) -> "RetryContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return False

    @property
    def is_last_attempt(self) -> bool:
        return self.attempt >= self.max_retries

    def record_failure(self, exception: BaseException, delay: Optional[float] = None) -> None:
        """Record a failed attempt.

        Args:
            exception: The failure; re-raised if no attempts remain.
            delay: Server-suggested backoff (e.g. Retry-After), capped at
                ``max_delay``. Replaces the computed backoff.
        """
        self.last_exception = exception
        self._failed_current = True
        self._delay_override = None if delay is None else min(max(delay, 0.0), self.max_delay)

    def __iter__(self):
        for attempt in range(self.max_retries + 1):
            self.attempt = attempt
            if attempt > 0:
                if not self._failed_current:
                    # Caller moved on without recording a failure
                    return
                self._backoff(attempt - 1)
            self._failed_current = False
            yield attempt

        if self._failed_current:
            if self.last_exception is not None:
                raise self.last_exception
            raise RetryExhausted(f"gave up after {self.max_retries + 1} attempts")

    def _backoff(self, retry_index: int) -> None:
        if self._delay_override is not None:
            delay = self._delay_override
        else:
            delay = compute_delay(
                retry_index,
                self.base_delay,
                self.max_delay,
                self.exponential_base,
                self.jitter,
            )

        if self.deadline is not None and self._clock() + delay >= self.deadline:
            raise DeadlineExceeded(
                f"retry {retry_index + 1} would wait {delay:.1f}s past the deadline"
            )

        if self._on_retry and self.last_exception is not None:
            self._on_retry(self.last_exception, retry_index, delay)
        logger.debug(f"Retry {retry_index + 1}/{self.max_retries} in {delay:.2f}s")
        self._sleep(delay)
