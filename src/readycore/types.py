"""
Core type enums shared across readycore.

Using these enums keeps command classification, phase gating and report
rendering consistent between the engine, the kubectl adapter and the CLI.
"""

from __future__ import annotations

from enum import Enum


class ApplyOutcome(str, Enum):
    """Typed result of a single ``kubectl apply`` invocation."""

    APPLIED = "applied"
    UNCHANGED = "unchanged"
    TRANSIENT_FAILURE = "transient_failure"
    FATAL_FAILURE = "fatal_failure"

    @property
    def succeeded(self) -> bool:
        return self in (ApplyOutcome.APPLIED, ApplyOutcome.UNCHANGED)


class PhaseStatus(str, Enum):
    """Status of one workflow phase."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    NOT_RUN = "not_run"


class ResultIcon(str, Enum):
    """Icons used when rendering validation results."""

    PASSED = "✅"
    CRITICAL = "❌"
    ADVISORY = "⚠️"
    SKIPPED = "⏭️"
