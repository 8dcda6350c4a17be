"""
Retry Engine — bounded retries with linear, capped backoff.

The delay before attempt ``n + 1`` is ``min(base_delay * n, max_delay)``:
10s, 20s, 30s, ... up to the cap, never geometric.  Errors the caller
classifies as not retryable stop the loop on the spot.

The engine assumes ``operation`` is safe to repeat for the same logical
request; that is the caller's obligation.

Usage::

    from readycore.retry import RetrySpec, retry

    outcome = retry(RetrySpec(
        operation=lambda: kubectl.apply(path, namespace),
        is_retryable=is_transient,
        base_delay=10,
        max_delay=60,
        max_attempts=5,
        label=f"apply {path}",
    ))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from readycore.clock import Clock, Deadline, MonotonicClock, format_duration
from readycore.errors import (
    DeadlineExceededError,
    FatalOperationError,
    RetryExhaustedError,
)
from readycore.progress import ProgressReporter
from readycore.telemetry import add_span_event

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetrySpec(Generic[T]):
    """One retried call.  No memory carries over between calls."""

    operation: Callable[[], T]
    is_retryable: Callable[[Exception], bool]
    base_delay: float
    max_delay: float
    max_attempts: int
    label: str = "operation"

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay must not be negative, got {self.base_delay}")
        if self.base_delay > self.max_delay:
            raise ValueError(
                f"base_delay ({self.base_delay}s) must not exceed max_delay ({self.max_delay}s)"
            )


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay after failed attempt ``attempt`` (1-based)."""
    return min(base_delay * attempt, max_delay)


def delay_schedule(spec: RetrySpec) -> list[float]:
    """Delays slept before attempts 2..max_attempts if every attempt fails."""
    return [
        backoff_delay(attempt, spec.base_delay, spec.max_delay)
        for attempt in range(1, spec.max_attempts)
    ]


class RetryEngine:
    """Runs a ``RetrySpec`` to success or a classified failure."""

    def __init__(
        self,
        clock: Optional[Clock] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> None:
        self._clock = clock or MonotonicClock()
        self._reporter = reporter or ProgressReporter()

    def run(self, spec: RetrySpec[T], deadline: Optional[Deadline] = None) -> T:
        """Invoke ``spec.operation`` until it succeeds.

        Returns:
            Whatever the operation returned on its successful attempt.

        Raises:
            FatalOperationError: The error was classified as not retryable.
            RetryExhaustedError: ``max_attempts`` retryable failures.
            DeadlineExceededError: The outer deadline left no room for
                the next attempt.
        """
        attempt = 1
        while True:
            try:
                result = spec.operation()
            except Exception as e:
                self._on_failure(spec, attempt, e, deadline)
                attempt += 1
                continue

            if attempt > 1:
                logger.info("%s succeeded on attempt %d/%d", spec.label, attempt, spec.max_attempts)
            add_span_event(
                "readiness.retry.succeeded",
                {"retry.label": spec.label, "retry.attempts": attempt},
            )
            return result

    def _on_failure(
        self,
        spec: RetrySpec,
        attempt: int,
        error: Exception,
        deadline: Optional[Deadline],
    ) -> None:
        """Raise if the loop must stop, otherwise sleep the backoff delay."""
        retryable = spec.is_retryable(error)
        add_span_event(
            "readiness.retry.attempt_failed",
            {
                "retry.label": spec.label,
                "retry.attempt": attempt,
                "retry.retryable": retryable,
                "retry.error": str(error),
            },
        )

        if not retryable:
            self._reporter.failure(f"Non-retryable error in {spec.label}: {error}")
            raise FatalOperationError(spec.label, attempt, error) from error

        if attempt >= spec.max_attempts:
            self._reporter.failure(
                f"{spec.label} failed after {attempt} attempt(s): {error}"
            )
            raise RetryExhaustedError(spec.label, attempt, error) from error

        delay = backoff_delay(attempt, spec.base_delay, spec.max_delay)
        if deadline is not None and deadline.remaining() < delay:
            self._reporter.failure(
                f"{spec.label}: outer deadline leaves no time for attempt {attempt + 1}"
            )
            raise DeadlineExceededError(spec.label, attempt, error) from error

        self._reporter.warning(f"[{attempt}/{spec.max_attempts}] Retryable error: {error}")
        self._reporter.echo(
            f"[{attempt}/{spec.max_attempts}] ⏳ Waiting {format_duration(delay)} before retry..."
        )
        logger.info(
            "%s failed (attempt %d/%d): %s, retrying in %s",
            spec.label,
            attempt,
            spec.max_attempts,
            error,
            format_duration(delay),
        )

        if deadline is not None:
            deadline.sleep(delay)
            if deadline.cancelled:
                raise DeadlineExceededError(spec.label, attempt, error) from error
        else:
            self._clock.sleep(delay)


def retry(
    spec: RetrySpec[T],
    *,
    deadline: Optional[Deadline] = None,
    clock: Optional[Clock] = None,
    reporter: Optional[ProgressReporter] = None,
) -> T:
    """Convenience wrapper around ``RetryEngine(...).run(spec)``."""
    return RetryEngine(clock=clock, reporter=reporter).run(spec, deadline=deadline)
