"""
Validation Engine — run independent checks and aggregate a verdict.

Every validator runs, even after earlier failures, so one pass shows the
whole picture.  The report keeps execution order so output diffs cleanly
between runs.  Only results that are both invalid and critical fail the
batch; invalid advisory results are reported but never block.

Usage::

    from readycore.validation import validate_all, format_report

    report = validate_all([check_region, check_timeout])
    click.echo(format_report(report))
    if not report.passed:
        raise ValidationFailedError(report)
"""

from __future__ import annotations

import functools
import logging
from typing import Callable, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from readycore.errors import ValidationFailedError
from readycore.telemetry import add_span_event
from readycore.types import ResultIcon

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------


class ValidationResult(BaseModel):
    """Outcome of a single check.

    ``is_critical`` only matters when ``is_valid`` is false.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    is_valid: bool
    is_critical: bool = True
    message: str = ""
    value: str = ""
    skip_reason: Optional[str] = None

    @property
    def is_critical_failure(self) -> bool:
        return not self.is_valid and self.is_critical

    @property
    def is_advisory_failure(self) -> bool:
        return not self.is_valid and not self.is_critical

    @classmethod
    def ok(cls, name: str, value: str = "", message: str = "") -> "ValidationResult":
        return cls(name=name, is_valid=True, value=value, message=message)

    @classmethod
    def fail(
        cls,
        name: str,
        message: str,
        critical: bool = True,
        value: str = "",
    ) -> "ValidationResult":
        return cls(
            name=name,
            is_valid=False,
            is_critical=critical,
            message=message,
            value=value,
        )

    @classmethod
    def skipped(cls, name: str, reason: str, value: str = "") -> "ValidationResult":
        return cls(name=name, is_valid=True, value=value, skip_reason=reason)


class ValidationReport(BaseModel):
    """Ordered results of one validation pass."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    results: list[ValidationResult] = Field(default_factory=list)

    @property
    def critical_failures(self) -> list[ValidationResult]:
        return [r for r in self.results if r.is_critical_failure]

    @property
    def advisory_failures(self) -> list[ValidationResult]:
        return [r for r in self.results if r.is_advisory_failure]

    @property
    def critical_failure_count(self) -> int:
        return len(self.critical_failures)

    @property
    def advisory_failure_count(self) -> int:
        return len(self.advisory_failures)

    @property
    def passed(self) -> bool:
        return self.critical_failure_count == 0

    def raise_for_failures(self) -> None:
        """Raise ``ValidationFailedError`` if any critical check failed."""
        if not self.passed:
            raise ValidationFailedError(self)


Validator = Callable[[], ValidationResult]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _validator_name(validator: Validator) -> str:
    if isinstance(validator, functools.partial):
        return _validator_name(validator.func)
    return getattr(validator, "__name__", None) or type(validator).__name__


def _run_one(validator: Validator) -> ValidationResult:
    try:
        result = validator()
    except Exception as e:
        name = _validator_name(validator)
        logger.error("Validator %s could not run: %s", name, e)
        return ValidationResult.fail(
            name=name,
            message=f"check could not run: {type(e).__name__}: {e}",
        )
    if not isinstance(result, ValidationResult):
        name = _validator_name(validator)
        return ValidationResult.fail(
            name=name,
            message=f"check returned {type(result).__name__}, expected ValidationResult",
        )
    return result


def validate_all(validators: Iterable[Validator]) -> ValidationReport:
    """Run every validator in order and aggregate the results."""
    results = [_run_one(v) for v in validators]
    report = ValidationReport(results=results)

    for r in results:
        if r.is_critical_failure:
            logger.warning("Validation FAILED (critical): %s - %s", r.name, r.message)
        elif r.is_advisory_failure:
            logger.info("Validation warning: %s - %s", r.name, r.message)

    add_span_event(
        "readiness.validation.report",
        {
            "validation.passed": report.passed,
            "validation.total": len(results),
            "validation.critical_count": report.critical_failure_count,
            "validation.advisory_count": report.advisory_failure_count,
        },
    )
    return report


def _icon(result: ValidationResult) -> ResultIcon:
    if result.is_critical_failure:
        return ResultIcon.CRITICAL
    if result.is_advisory_failure:
        return ResultIcon.ADVISORY
    if result.skip_reason:
        return ResultIcon.SKIPPED
    return ResultIcon.PASSED


def format_report(report: ValidationReport, title: str = "CONFIGURATION VALIDATION RESULTS") -> str:
    """Render a report as deterministic, human-readable text."""
    lines = [f"=== {title} ===", ""]

    for r in report.results:
        heading = f"{_icon(r).value} {r.name}"
        if r.value:
            heading += f": {r.value}"
        lines.append(heading)
        if r.skip_reason:
            lines.append(f"   Skipped: {r.skip_reason}")
        if r.message and not r.is_valid:
            lines.extend(f"   {line}" for line in r.message.splitlines())

    lines.append("")
    lines.append("─" * 41)
    critical = report.critical_failure_count
    advisory = report.advisory_failure_count
    if critical:
        lines.append(f"❌ {critical} critical error(s) found - deployment will fail!")
    if advisory:
        lines.append(f"⚠️  {advisory} warning(s) found - review recommended")
    if not critical and not advisory:
        lines.append("✅ All validations passed")
    return "\n".join(lines)
