"""
Thin kubectl adapter over the Command Executor.

Turns raw ``ExecutionResult`` data into typed outcomes so that retry and
poll callers classify on enums and exception attributes, not on text:

- ``kubectl apply`` output is parsed per resource line
  (``<resource> created|configured|unchanged``) into an ``ApplyOutcome``.
- API errors are classified by the reason kubectl reports in
  ``Error from server (<Reason>)``.
- Transport failures that carry no reason (connection refused, TLS
  handshake timeout, ...) are recognised from a fixed marker list kept in
  this module only.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Sequence

from readycore.errors import CommandFailedError
from readycore.executor import CommandExecutor, ExecutionResult
from readycore.timeouts import KUBECTL_REQUEST_TIMEOUT_S
from readycore.types import ApplyOutcome

logger = logging.getLogger(__name__)

_APPLY_LINE = re.compile(
    r"^(?P<resource>\S+)\s+(?P<action>created|configured|unchanged|serverside-applied)"
    r"(?:\s+\(.*\))?$"
)
_SERVER_ERROR = re.compile(r"Error from server \((?P<reason>[A-Za-z]+)\)")

# API reasons that resolve on their own.
TRANSIENT_REASONS = frozenset({
    "ServiceUnavailable",
    "InternalError",
    "Timeout",
    "ServerTimeout",
    "TooManyRequests",
    "Conflict",
})

# Resource already present: the desired state is already there.
NOOP_REASONS = frozenset({"AlreadyExists"})

# Transport-level failures, reported by client-go without an API reason.
TRANSPORT_MARKERS = (
    "connection refused",
    "was refused",
    "connection reset",
    "connection lost",
    "tls handshake timeout",
    "i/o timeout",
    "context deadline exceeded",
    "server unavailable",
    "service unavailable",
    "gateway timeout",
    "too many requests",
    "http2",
    "dial tcp",
    "no such host",
    "temporary failure",
    "connection timed out",
)

_MISSING_TYPE_MARKERS = (
    "the server doesn't have a resource type",
    "no matches for kind",
)


@dataclass(frozen=True)
class ApplyReport:
    """Structured view of one ``kubectl apply`` result."""

    outcome: ApplyOutcome
    actions: dict[str, str] = field(default_factory=dict)
    reasons: tuple[str, ...] = ()


def parse_apply_actions(stdout: str) -> dict[str, str]:
    """Map each applied resource to its action (created, configured, ...)."""
    actions: dict[str, str] = {}
    for line in stdout.splitlines():
        match = _APPLY_LINE.match(line.strip())
        if match:
            actions[match.group("resource")] = match.group("action")
    return actions


def server_error_reasons(stderr: str) -> tuple[str, ...]:
    """API error reasons reported by kubectl, in order of appearance."""
    return tuple(m.group("reason") for m in _SERVER_ERROR.finditer(stderr))


def is_transport_failure(result: ExecutionResult) -> bool:
    """Whether a failed command looks like a network or API availability blip."""
    if result.timed_out:
        return True
    combined = f"{result.stderr}\n{result.error or ''}".lower()
    return any(marker in combined for marker in TRANSPORT_MARKERS)


def classify_apply(result: ExecutionResult) -> ApplyReport:
    """Classify a ``kubectl apply`` result."""
    actions = parse_apply_actions(result.stdout)
    reasons = server_error_reasons(result.stderr)

    if result.succeeded or (actions and not result.stderr):
        if actions and all(a == "unchanged" for a in actions.values()):
            return ApplyReport(ApplyOutcome.UNCHANGED, actions, reasons)
        return ApplyReport(ApplyOutcome.APPLIED, actions, reasons)

    if reasons:
        if all(r in NOOP_REASONS for r in reasons):
            return ApplyReport(ApplyOutcome.UNCHANGED, actions, reasons)
        if all(r in TRANSIENT_REASONS | NOOP_REASONS for r in reasons):
            return ApplyReport(ApplyOutcome.TRANSIENT_FAILURE, actions, reasons)
        return ApplyReport(ApplyOutcome.FATAL_FAILURE, actions, reasons)

    if is_transport_failure(result):
        return ApplyReport(ApplyOutcome.TRANSIENT_FAILURE, actions, reasons)
    return ApplyReport(ApplyOutcome.FATAL_FAILURE, actions, reasons)


def is_transient(error: Exception) -> bool:
    """Retry classifier for errors raised by ``KubectlClient``."""
    return isinstance(error, CommandFailedError) and error.transient


def _failure(result: ExecutionResult, transient: bool) -> CommandFailedError:
    detail = result.error or "failed"
    if result.output:
        detail = f"{detail}\nOutput: {result.output}"
    return CommandFailedError(result.command_line, detail, transient=transient)


class KubectlClient:
    """kubectl bound to one context.

    Args:
        executor: Command Executor used for every call.
        context: kubectl context name.
        kubeconfig: Optional explicit kubeconfig path.
        request_timeout: Seconds passed as ``--request-timeout``.
    """

    def __init__(
        self,
        executor: CommandExecutor,
        context: str,
        kubeconfig: Optional[str] = None,
        request_timeout: int = KUBECTL_REQUEST_TIMEOUT_S,
    ) -> None:
        self.executor = executor
        self.context = context
        self.kubeconfig = kubeconfig
        self.request_timeout = request_timeout

    def run(self, args: Sequence[str], timeout: Optional[float] = None) -> ExecutionResult:
        base = ["--context", self.context]
        if self.kubeconfig:
            base += ["--kubeconfig", self.kubeconfig]
        return self.executor.execute("kubectl", [*base, *args], timeout=timeout)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def apply(self, manifest_path: str, namespace: Optional[str] = None) -> ApplyOutcome:
        """Apply a manifest once.

        Returns:
            ``APPLIED`` or ``UNCHANGED``.

        Raises:
            CommandFailedError: With ``transient`` set from the outcome.
        """
        args = ["-n", namespace] if namespace else []
        result = self.run([*args, "apply", "-f", manifest_path])
        report = classify_apply(result)
        logger.debug("kubectl apply %s: %s %s", manifest_path, report.outcome.value, report.actions)

        if report.outcome.succeeded:
            return report.outcome
        raise _failure(result, transient=report.outcome is ApplyOutcome.TRANSIENT_FAILURE)

    def delete(self, kind: str, name: str, namespace: str, wait: bool = False) -> None:
        """Start deleting a resource; already-absent resources are fine."""
        result = self.run(["-n", namespace, "delete", kind, name, f"--wait={str(wait).lower()}"])
        if result.succeeded:
            return
        if "NotFound" in server_error_reasons(result.stderr):
            logger.info("%s/%s already deleted", kind, name)
            return
        raise _failure(result, transient=is_transport_failure(result))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_names(self, kind: str, namespace: str) -> list[str]:
        """Names of every ``kind`` resource in ``namespace``.

        A kind the server does not know yet (CRD not installed) yields an
        empty list.
        """
        result = self.run(
            ["-n", namespace, "get", kind, "-o", "jsonpath={.items[*].metadata.name}"]
        )
        if not result.succeeded:
            lowered = result.stderr.lower()
            if any(marker in lowered for marker in _MISSING_TYPE_MARKERS):
                return []
            raise _failure(result, transient=is_transport_failure(result))
        return result.stdout.split()

    def get_field(self, kind: str, name: str, namespace: str, jsonpath: str) -> str:
        """Read one jsonpath field of a resource."""
        result = self.run(["-n", namespace, "get", kind, name, "-o", f"jsonpath={jsonpath}"])
        if not result.succeeded:
            raise _failure(result, transient=is_transport_failure(result))
        return result.stdout.strip()

    def exists(self, kind: str, name: str, namespace: str) -> bool:
        """Whether a resource exists; transport errors raise."""
        result = self.run(["-n", namespace, "get", kind, name, "--ignore-not-found", "-o", "name"])
        if not result.succeeded:
            if "NotFound" in server_error_reasons(result.stderr):
                return False
            raise _failure(result, transient=is_transport_failure(result))
        return bool(result.stdout.strip())

    def api_responsive(self) -> bool:
        """Probe the API server with a cheap ``get nodes``."""
        result = self.run(["get", "nodes", f"--request-timeout={self.request_timeout}s"])
        if not result.succeeded:
            logger.info("API server not responding: %s", result.error)
        return result.succeeded


def current_context(executor: CommandExecutor, kubeconfig: str) -> str:
    """current-context of a kubeconfig, or ``""`` when it cannot be read."""
    result = executor.execute(
        "kubectl", ["config", "current-context", "--kubeconfig", kubeconfig]
    )
    return result.stdout.strip() if result.succeeded else ""
