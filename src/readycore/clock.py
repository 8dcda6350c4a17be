"""
Monotonic time source, outer deadlines and duration helpers.

The poller and retry engine never call ``time`` directly; they take a
``Clock`` so tests can substitute a deterministic one.  A ``Deadline`` is
the enclosing run's hard ceiling: sleeps are clipped to it and it can be
cancelled cooperatively from outside the loop.

Usage::

    from readycore.clock import Deadline, MonotonicClock

    clock = MonotonicClock()
    deadline = Deadline.after(600, clock=clock)
    deadline.sleep(30)          # returns early if cancelled or expired
    deadline.remaining()        # seconds left, never negative
"""

from __future__ import annotations

import re
import threading
import time
from typing import Optional, Protocol, Union


class Clock(Protocol):
    """Minimal time source used by the engine."""

    def now(self) -> float:
        """Monotonic seconds."""
        ...

    def sleep(self, seconds: float) -> None:
        ...


class MonotonicClock:
    """Wall-clock monotonic time backed by :mod:`time`."""

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


class Deadline:
    """Hard ceiling imposed by the caller on top of an operation's own timeout.

    ``sleep()`` waits on an internal event, so ``cancel()`` from another
    thread (for example a signal handler) wakes a sleeping loop at once.
    Without cancellation the sleep is clipped to the time remaining.
    """

    def __init__(self, expires_at: Optional[float], clock: Optional[Clock] = None) -> None:
        self._clock = clock or MonotonicClock()
        self._expires_at = expires_at
        self._cancelled = threading.Event()

    @classmethod
    def after(cls, seconds: float, clock: Optional[Clock] = None) -> "Deadline":
        """Create a deadline ``seconds`` from now."""
        clock = clock or MonotonicClock()
        return cls(clock.now() + seconds, clock=clock)

    @classmethod
    def never(cls, clock: Optional[Clock] = None) -> "Deadline":
        """A deadline that only ends through ``cancel()``."""
        return cls(None, clock=clock)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def remaining(self) -> float:
        """Seconds left before the deadline, ``inf`` for an open deadline."""
        if self._cancelled.is_set():
            return 0.0
        if self._expires_at is None:
            return float("inf")
        return max(self._expires_at - self._clock.now(), 0.0)

    def expired(self) -> bool:
        return self.remaining() <= 0

    def sleep(self, seconds: float) -> None:
        """Sleep up to ``seconds``, ending early on expiry or cancellation."""
        seconds = min(seconds, self.remaining())
        if seconds <= 0:
            return
        if isinstance(self._clock, MonotonicClock):
            self._cancelled.wait(seconds)
        else:
            self._clock.sleep(seconds)


# ---------------------------------------------------------------------------
# Duration parsing / formatting
# ---------------------------------------------------------------------------

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")

_UNIT_SECONDS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: Union[str, int, float]) -> float:
    """Parse a Go-style duration (``"1h30m"``, ``"90s"``, ``"1.5h"``) into seconds.

    Bare numbers are taken as seconds.

    Raises:
        ValueError: If the string is not a valid duration.
    """
    if isinstance(value, (int, float)):
        return float(value)

    text = value.strip()
    if not text:
        raise ValueError("empty duration")
    try:
        return float(text)
    except ValueError:
        pass

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            raise ValueError(f"invalid duration {value!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"invalid duration {value!r}")
    return total


def format_duration(seconds: float) -> str:
    """Render seconds rounded to the second, Go style (``1h2m3s``, ``0s``)."""
    total = int(round(max(seconds, 0.0)))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"
