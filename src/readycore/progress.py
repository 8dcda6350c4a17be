"""
Progress reporting for long waits.

``sample()`` is the pure part: it maps (iteration, elapsed, timeout) to a
``ProgressSample``.  ``ProgressReporter`` renders samples and status lines
to the interactive stream so a long poll stays visibly alive, and mirrors
each line to the module logger for the structured log.

The interactive stream is ``/dev/tty`` when it can be opened, otherwise
stderr (CI, Windows, non-interactive shells).
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, TextIO

import click

from readycore.clock import format_duration

logger = logging.getLogger(__name__)

__all__ = ["ProgressSample", "ProgressReporter", "sample", "format_progress"]


@dataclass(frozen=True)
class ProgressSample:
    """Progress of a wait at one poll tick."""

    iteration: int
    elapsed: float
    remaining: float
    percent: float


def sample(iteration: int, elapsed: float, timeout: float) -> ProgressSample:
    """Compute the progress of a wait.

    ``remaining`` never goes negative and ``percent`` is capped at 100.
    A non-positive timeout is reported as complete.
    """
    remaining = max(timeout - elapsed, 0.0)
    if timeout <= 0:
        percent = 100.0
    else:
        percent = min(elapsed / timeout, 1.0) * 100
    return ProgressSample(
        iteration=iteration,
        elapsed=elapsed,
        remaining=remaining,
        percent=percent,
    )


def format_progress(progress: ProgressSample) -> str:
    """Render a sample as a single progress line."""
    return (
        f"[{progress.iteration}] ⏳ Waiting... | "
        f"Elapsed: {format_duration(progress.elapsed)} | "
        f"Remaining: {format_duration(progress.remaining)} | "
        f"Progress: {int(progress.percent)}%"
    )


@contextmanager
def _interactive_stream() -> Iterator[TextIO]:
    try:
        tty = open("/dev/tty", "w", encoding="utf-8")
    except OSError:
        yield sys.stderr
        return
    try:
        yield tty
    finally:
        tty.close()


class ProgressReporter:
    """Writes progress and status lines to the interactive stream.

    Args:
        stream: Explicit destination (tests, ``--no-tty``); when ``None``
            every write goes to ``/dev/tty`` or falls back to stderr.
        quiet: Suppress interactive output; log lines are still emitted.
    """

    def __init__(self, stream: Optional[TextIO] = None, quiet: bool = False) -> None:
        self._stream = stream
        self._quiet = quiet

    def echo(self, message: str) -> None:
        if self._quiet:
            return
        if self._stream is not None:
            click.echo(message, file=self._stream)
            return
        with _interactive_stream() as stream:
            click.echo(message, file=stream)

    def progress(self, label: str, progress: ProgressSample) -> None:
        """Report one poll tick."""
        logger.info(
            "Waiting for %s: iteration %d (elapsed: %s, remaining: %s, %d%%)",
            label,
            progress.iteration,
            format_duration(progress.elapsed),
            format_duration(progress.remaining),
            int(progress.percent),
        )
        self.echo(format_progress(progress))

    def header(self, title: str, detail: str = "") -> None:
        self.echo(f"\n=== {title} ===")
        if detail:
            self.echo(detail)

    def success(self, message: str) -> None:
        logger.info(message)
        self.echo(f"✅ {message}")

    def warning(self, message: str) -> None:
        logger.warning(message)
        self.echo(f"⚠️  {message}")

    def failure(self, message: str) -> None:
        logger.error(message)
        self.echo(f"❌ {message}")
