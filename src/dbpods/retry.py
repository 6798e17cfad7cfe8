from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

LOGGER = logging.getLogger("dbpods.retry")

T = TypeVar("T")


@dataclass(frozen=True)
class RetryOutcome(Generic[T]):
    succeeded: bool
    attempts: int
    last_value: T | None


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with a fixed (or geometrically growing) pause between attempts."""

    max_attempts: int
    delay_seconds: float
    backoff: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative.")
        if self.backoff < 1.0:
            raise ValueError("backoff must be >= 1.0.")

    def delay_for(self, attempt: int) -> float:
        """Pause after the given 1-based failed attempt."""
        return self.delay_seconds * (self.backoff ** (attempt - 1))

    def run(
        self,
        probe: Callable[[], T],
        *,
        is_success: Callable[[T], bool] = bool,
        on_retry: Callable[[int, float], None] | None = None,
    ) -> RetryOutcome[T]:
        """Call `probe` until `is_success` accepts its value or attempts run out.

        `on_retry(attempt, delay)` is invoked after each failed attempt that
        will be retried. No pause follows the final attempt.
        """
        value: T | None = None
        for attempt in range(1, self.max_attempts + 1):
            value = probe()
            if is_success(value):
                return RetryOutcome(succeeded=True, attempts=attempt, last_value=value)
            if attempt < self.max_attempts:
                delay = self.delay_for(attempt)
                LOGGER.debug(
                    "retry attempt=%s/%s failed delay=%s",
                    attempt,
                    self.max_attempts,
                    delay,
                )
                if on_retry is not None:
                    on_retry(attempt, delay)
                time.sleep(delay)
        return RetryOutcome(succeeded=False, attempts=self.max_attempts, last_value=value)
