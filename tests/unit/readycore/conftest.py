"""
Shared fixtures for readycore unit tests.
"""

from __future__ import annotations

import io
import logging
from typing import Callable, Optional, Sequence, Union
from unittest.mock import MagicMock, patch

import pytest

from readycore.executor import ExecutionResult
from readycore.progress import ProgressReporter


# ============================================================================
# Time
# ============================================================================


class FakeClock:
    """Deterministic clock: ``sleep`` advances ``now`` and is recorded."""

    def __init__(self, start: float = 1000.0) -> None:
        self.current = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.current

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += seconds

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# Output
# ============================================================================


@pytest.fixture
def progress_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def reporter(progress_stream: io.StringIO) -> ProgressReporter:
    """Reporter writing to an in-memory stream instead of the TTY."""
    return ProgressReporter(stream=progress_stream)


# ============================================================================
# Command execution
# ============================================================================


def _make_result(
    stdout: str = "",
    stderr: str = "",
    succeeded: bool = True,
    command: Sequence[str] = ("kubectl",),
    exit_code: Optional[int] = None,
    timed_out: bool = False,
) -> ExecutionResult:
    if exit_code is None:
        exit_code = 0 if succeeded else 1
    return ExecutionResult(
        command=tuple(command),
        stdout=stdout,
        stderr=stderr,
        succeeded=succeeded,
        exit_code=None if timed_out else exit_code,
        error=None if succeeded else ("timed out after 10s" if timed_out else f"exit status {exit_code}"),
        timed_out=timed_out,
    )


Response = Union[ExecutionResult, Callable[[tuple[str, ...]], ExecutionResult]]


class FakeExecutor:
    """Executor returning scripted results in order.

    The last response repeats once the script is exhausted.  Every
    invocation is recorded as ``(program, *args)``.
    """

    def __init__(self, *responses: Response) -> None:
        self.responses = list(responses)
        self.calls: list[tuple[str, ...]] = []

    def execute(self, program: str, args: Sequence[str] = (), timeout: Optional[float] = None):
        command = (program, *args)
        self.calls.append(command)
        if len(self.responses) > 1:
            response = self.responses.pop(0)
        else:
            response = self.responses[0]
        if callable(response):
            return response(command)
        return response


@pytest.fixture
def make_result() -> Callable[..., ExecutionResult]:
    """Build an ``ExecutionResult`` with sensible defaults."""
    return _make_result


@pytest.fixture
def make_executor() -> Callable[..., FakeExecutor]:
    """Build a ``FakeExecutor`` from scripted responses."""
    return FakeExecutor


# ============================================================================
# OpenTelemetry
# ============================================================================


@pytest.fixture
def mock_span():
    """Create a mock OTel span that is recording."""
    span = MagicMock()
    span.is_recording.return_value = True
    return span


@pytest.fixture
def mock_otel(mock_span):
    """Patch OTel to return our mock span."""
    with patch("readycore.telemetry.otel_trace") as mock_trace:
        mock_trace.get_current_span.return_value = mock_span
        yield mock_span


# ============================================================================
# Logging
# ============================================================================


@pytest.fixture(autouse=True)
def reset_readycore_logger():
    """Undo ``configure_logging`` so caplog sees records in every test."""
    yield
    logger = logging.getLogger("readycore")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
