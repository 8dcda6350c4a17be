"""
Ordered workflow phases with stop-on-first-failure semantics.

Each phase is a callable that either returns or raises a
``ReadinessError``.  The first failure ends the run; later phases are
reported as not run.  Every phase runs inside its own OTel span so a
trace shows where a deployment stalled.

Usage::

    from readycore.pipeline import Phase, Pipeline

    summary = Pipeline([
        Phase("tools", check_tools),
        Phase("validate", validate_config),
        Phase("guard", guard_namespace),
    ]).run()
    sys.exit(summary.exit_code)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from opentelemetry.trace import Status, StatusCode

from readycore.clock import Clock, Deadline, MonotonicClock, format_duration
from readycore.errors import ReadinessError
from readycore.progress import ProgressReporter
from readycore.telemetry import get_tracer
from readycore.types import PhaseStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Phase:
    name: str
    run: Callable[[], object]
    description: str = ""


@dataclass
class PhaseResult:
    name: str
    status: PhaseStatus
    duration: float = 0.0
    error: Optional[ReadinessError] = None


@dataclass
class PipelineSummary:
    results: list[PhaseResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(r.status is PhaseStatus.SUCCEEDED for r in self.results)

    @property
    def failed_phase(self) -> Optional[PhaseResult]:
        for result in self.results:
            if result.status is PhaseStatus.FAILED:
                return result
        return None

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    def format(self) -> str:
        icons = {
            PhaseStatus.SUCCEEDED: "✅",
            PhaseStatus.FAILED: "❌",
            PhaseStatus.NOT_RUN: "⏭️",
        }
        lines = ["", "=== PHASE SUMMARY ==="]
        for result in self.results:
            line = f"{icons[result.status]} {result.name}: {result.status.value}"
            if result.status is not PhaseStatus.NOT_RUN:
                line += f" ({format_duration(result.duration)})"
            lines.append(line)
        return "\n".join(lines)


class Pipeline:
    """Runs phases in order until one fails.

    Args:
        phases: Phases in execution order.
        clock: Time source for phase durations.
        reporter: Receives phase headers and outcomes.
    """

    def __init__(
        self,
        phases: Sequence[Phase],
        clock: Optional[Clock] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> None:
        self.phases = list(phases)
        self._clock = clock or MonotonicClock()
        self._reporter = reporter or ProgressReporter()

    def run(self, deadline: Optional[Deadline] = None) -> PipelineSummary:
        summary = PipelineSummary()
        tracer = get_tracer()
        failed = False

        for index, phase in enumerate(self.phases, start=1):
            if failed:
                summary.results.append(PhaseResult(phase.name, PhaseStatus.NOT_RUN))
                continue

            if deadline is not None and deadline.expired():
                logger.error("Outer deadline reached before phase %s", phase.name)
                failed = True
                summary.results.append(PhaseResult(phase.name, PhaseStatus.NOT_RUN))
                continue

            self._reporter.header(f"[{index}/{len(self.phases)}] {phase.name}", phase.description)
            start = self._clock.now()
            with tracer.start_as_current_span(f"readiness.phase.{phase.name}") as span:
                span.set_attribute("phase.name", phase.name)
                span.set_attribute("phase.index", index)
                try:
                    phase.run()
                except ReadinessError as e:
                    duration = self._clock.now() - start
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    self._reporter.failure(f"Phase {phase.name} failed: {e}")
                    summary.results.append(
                        PhaseResult(phase.name, PhaseStatus.FAILED, duration, e)
                    )
                    failed = True
                    continue
                span.set_status(Status(StatusCode.OK))

            duration = self._clock.now() - start
            self._reporter.success(f"Phase {phase.name} completed in {format_duration(duration)}")
            summary.results.append(PhaseResult(phase.name, PhaseStatus.SUCCEEDED, duration))

        return summary
