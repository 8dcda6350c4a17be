"""
Exceptions raised by the readiness engine.

Every failure path surfaces as a ``ReadinessError`` subclass carrying the
structured context callers need (elapsed time, attempts, last error,
conflicting names).  Underlying errors are chained with ``raise ... from``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

from readycore.clock import format_duration

if TYPE_CHECKING:
    from readycore.validation.engine import ValidationReport


def _format_hints(hints: Sequence[str]) -> str:
    if not hints:
        return ""
    lines = "\n".join(f"  {i}. {hint}" for i, hint in enumerate(hints, start=1))
    return f"\n\nTroubleshooting steps:\n{lines}"


class ReadinessError(Exception):
    """Base class for all readycore failures."""


class NotReadyError(ReadinessError):
    """Raised by a predicate to signal "not ready yet" rather than a fault.

    The poller treats it as a false read and keeps waiting.
    """


class PollTimeoutError(ReadinessError):
    """A watched condition did not hold before the timeout or outer deadline."""

    def __init__(
        self,
        label: str,
        elapsed: float,
        iterations: int,
        timeout: float,
        remediation: Optional[Sequence[str]] = None,
        deadline_exceeded: bool = False,
    ) -> None:
        self.label = label
        self.elapsed = elapsed
        self.iterations = iterations
        self.timeout = timeout
        self.remediation = list(remediation or [])
        self.deadline_exceeded = deadline_exceeded
        cause = "outer deadline reached" if deadline_exceeded else "timed out"
        super().__init__(
            f"{label}: {cause} after {format_duration(elapsed)} "
            f"({iterations} check(s), timeout {format_duration(timeout)})"
            f"{_format_hints(self.remediation)}"
        )


class OperationError(ReadinessError):
    """Base for Retry Engine failures; ``last_error`` is the underlying error."""

    def __init__(self, label: str, attempts: int, last_error: BaseException, message: str) -> None:
        self.label = label
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(message)


class FatalOperationError(OperationError):
    """The operation failed with an error classified as not retryable."""

    def __init__(self, label: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(
            label,
            attempts,
            last_error,
            f"{label}: non-retryable error on attempt {attempts}: {last_error}",
        )


class RetryExhaustedError(OperationError):
    """Every allowed attempt failed with a retryable error."""

    def __init__(self, label: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(
            label,
            attempts,
            last_error,
            f"{label}: failed after {attempts} attempt(s): {last_error}",
        )


class DeadlineExceededError(OperationError):
    """The outer deadline would expire before the next retry could start."""

    def __init__(self, label: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(
            label,
            attempts,
            last_error,
            f"{label}: outer deadline reached after {attempts} attempt(s): {last_error}",
        )


class CommandFailedError(ReadinessError):
    """An external command completed unsuccessfully.

    ``transient`` records the adapter's classification so that retry
    callers can decide without inspecting text.
    """

    def __init__(self, command: str, detail: str, transient: bool = False) -> None:
        self.command = command
        self.detail = detail
        self.transient = transient
        super().__init__(f"{command} failed: {detail}")


class ResourceFailedError(ReadinessError):
    """A watched resource reached a terminal failure state."""

    def __init__(self, kind: str, name: str, phase: str) -> None:
        self.kind = kind
        self.name = name
        self.phase = phase
        super().__init__(f"{kind} {name} reached phase {phase}")


class ValidationFailedError(ReadinessError):
    """Critical validation failures block the workflow."""

    def __init__(self, report: "ValidationReport") -> None:
        self.report = report
        names = ", ".join(r.name for r in report.critical_failures)
        super().__init__(
            f"{report.critical_failure_count} critical validation failure(s): {names}"
        )


class ConflictDetectedError(ReadinessError):
    """Existing resources do not match the expected naming scheme."""

    def __init__(self, conflicts: Sequence[str], expected_prefix: str, message: str) -> None:
        self.conflicts = list(conflicts)
        self.expected_prefix = expected_prefix
        super().__init__(message)
