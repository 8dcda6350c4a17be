"""
Condition Poller — wait until a predicate holds or a timeout elapses.

The predicate is re-evaluated on every tick and only its latest read
counts.  Iterations are spaced ``interval`` after the previous check
completes, so a slow predicate stretches the cadence rather than
overlapping checks.

Predicate exceptions are forwarded to the caller unless
``PollSpec.is_not_ready`` accepts them (by default only
``NotReadyError``), in which case the tick counts as a false read.

Usage::

    from readycore.poller import PollSpec, wait

    result = wait(PollSpec(
        predicate=lambda: kubectl.get_field("cluster", name, "{.status.phase}") == "Provisioned",
        interval=30,
        timeout=3600,
        label="cluster ready",
        remediation=["kubectl get cluster -A"],
    ))
    logger.info("ready after %d checks", result.iterations)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from readycore.clock import Clock, Deadline, MonotonicClock, format_duration
from readycore.errors import NotReadyError, PollTimeoutError
from readycore.progress import ProgressReporter, sample
from readycore.telemetry import add_span_event

logger = logging.getLogger(__name__)


def _only_not_ready_error(error: Exception) -> bool:
    return isinstance(error, NotReadyError)


@dataclass(frozen=True)
class PollSpec:
    """One wait operation.  Built fresh per call and discarded afterwards."""

    predicate: Callable[[], bool]
    interval: float
    timeout: float
    label: str
    remediation: Sequence[str] = field(default_factory=tuple)
    is_not_ready: Callable[[Exception], bool] = _only_not_ready_error

    def __post_init__(self) -> None:
        if self.interval <= 0:
            raise ValueError(f"interval must be positive, got {self.interval}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.interval >= self.timeout:
            raise ValueError(
                f"interval ({self.interval}s) must be shorter than timeout ({self.timeout}s)"
            )


@dataclass(frozen=True)
class PollResult:
    """Successful completion of a wait."""

    label: str
    iterations: int
    elapsed: float


class ConditionPoller:
    """Evaluates a ``PollSpec`` until success, timeout or outer deadline.

    Args:
        clock: Time source; tests pass a fake one.
        reporter: Where progress lines go; defaults to the TTY reporter.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> None:
        self._clock = clock or MonotonicClock()
        self._reporter = reporter or ProgressReporter()

    def wait(self, spec: PollSpec, deadline: Optional[Deadline] = None) -> PollResult:
        """Block until ``spec.predicate()`` returns true.

        Returns:
            ``PollResult`` with the number of checks and elapsed seconds.

        Raises:
            PollTimeoutError: Timeout or outer deadline reached first.
            Exception: Any predicate error not classified as "not ready".
        """
        start = self._clock.now()
        iteration = 0
        logger.info(
            "Waiting for %s (timeout: %s, interval: %s)",
            spec.label,
            format_duration(spec.timeout),
            format_duration(spec.interval),
        )

        while True:
            elapsed = self._clock.now() - start
            if elapsed >= spec.timeout:
                raise self._timeout(spec, elapsed, iteration, deadline_exceeded=False)
            if deadline is not None and deadline.expired():
                raise self._timeout(spec, elapsed, iteration, deadline_exceeded=True)

            iteration += 1
            try:
                ready = bool(spec.predicate())
            except Exception as e:
                if not spec.is_not_ready(e):
                    logger.error("Check for %s failed: %s", spec.label, e)
                    raise
                logger.info("%s not ready (iteration %d): %s", spec.label, iteration, e)
                ready = False

            elapsed = self._clock.now() - start
            if ready:
                logger.info(
                    "%s satisfied after %d check(s) (took %s)",
                    spec.label,
                    iteration,
                    format_duration(elapsed),
                )
                add_span_event(
                    "readiness.poll.succeeded",
                    {
                        "poll.label": spec.label,
                        "poll.iterations": iteration,
                        "poll.elapsed_s": elapsed,
                    },
                )
                return PollResult(label=spec.label, iterations=iteration, elapsed=elapsed)

            progress = sample(iteration, elapsed, spec.timeout)
            self._reporter.progress(spec.label, progress)
            add_span_event(
                "readiness.poll.tick",
                {
                    "poll.label": spec.label,
                    "poll.iteration": iteration,
                    "poll.elapsed_s": progress.elapsed,
                    "poll.percent": progress.percent,
                },
            )

            if deadline is not None:
                deadline.sleep(spec.interval)
            else:
                self._clock.sleep(spec.interval)

    def _timeout(
        self,
        spec: PollSpec,
        elapsed: float,
        iterations: int,
        deadline_exceeded: bool,
    ) -> PollTimeoutError:
        error = PollTimeoutError(
            label=spec.label,
            elapsed=elapsed,
            iterations=iterations,
            timeout=spec.timeout,
            remediation=spec.remediation,
            deadline_exceeded=deadline_exceeded,
        )
        self._reporter.failure(
            f"Timeout waiting for {spec.label} after {format_duration(elapsed)}"
        )
        add_span_event(
            "readiness.poll.timeout",
            {
                "poll.label": spec.label,
                "poll.iterations": iterations,
                "poll.elapsed_s": elapsed,
                "poll.deadline_exceeded": deadline_exceeded,
            },
        )
        return error


def wait(
    spec: PollSpec,
    *,
    deadline: Optional[Deadline] = None,
    clock: Optional[Clock] = None,
    reporter: Optional[ProgressReporter] = None,
) -> PollResult:
    """Convenience wrapper around ``ConditionPoller(...).wait(spec)``."""
    return ConditionPoller(clock=clock, reporter=reporter).wait(spec, deadline=deadline)
