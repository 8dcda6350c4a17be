"""
Cluster operations composed from the Retry Engine and Condition Poller.

Each function binds a kubectl call to a ``RetrySpec`` or ``PollSpec``
built from the run configuration; none of them loop on their own.

- ``apply_with_retry``: apply a manifest, retrying transient API failures
- ``wait_for_cluster_healthy``: poll until the API server answers
- ``wait_for_cluster_phase``: poll a resource's ``status.phase``
- ``wait_for_deletion``: poll until a resource is gone
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from readycore.clock import Clock, Deadline, format_duration
from readycore.config import ReadyCoreConfig
from readycore.errors import CommandFailedError, NotReadyError, ResourceFailedError
from readycore.kubectl import KubectlClient, is_transient
from readycore.poller import PollResult, PollSpec, wait
from readycore.progress import ProgressReporter
from readycore.retry import RetrySpec, retry
from readycore.timeouts import (
    DEFAULT_HEALTH_CHECK_POLL_INTERVAL_S,
    DEFAULT_HEALTH_CHECK_TIMEOUT_S,
)
from readycore.types import ApplyOutcome

logger = logging.getLogger(__name__)

READY_PHASE = "Provisioned"
FAILED_PHASE = "Failed"


def apply_with_retry(
    kubectl: KubectlClient,
    manifest_path: str,
    config: ReadyCoreConfig,
    namespace: Optional[str] = None,
    *,
    deadline: Optional[Deadline] = None,
    clock: Optional[Clock] = None,
    reporter: Optional[ProgressReporter] = None,
) -> ApplyOutcome:
    """Apply ``manifest_path``, retrying transient failures with linear backoff."""
    spec = RetrySpec(
        operation=lambda: kubectl.apply(manifest_path, namespace),
        is_retryable=is_transient,
        base_delay=config.apply_retry_delay,
        max_delay=config.apply_max_retry_delay,
        max_attempts=config.apply_max_retries,
        label=f"kubectl apply {manifest_path}",
    )
    outcome = retry(spec, deadline=deadline, clock=clock, reporter=reporter)
    logger.info("Applied %s: %s", manifest_path, outcome.value)
    return outcome


def wait_for_cluster_healthy(
    kubectl: KubectlClient,
    timeout: float = DEFAULT_HEALTH_CHECK_TIMEOUT_S,
    interval: float = DEFAULT_HEALTH_CHECK_POLL_INTERVAL_S,
    *,
    deadline: Optional[Deadline] = None,
    clock: Optional[Clock] = None,
    reporter: Optional[ProgressReporter] = None,
) -> PollResult:
    """Wait until the API server of ``kubectl.context`` responds."""
    spec = PollSpec(
        predicate=kubectl.api_responsive,
        interval=interval,
        timeout=timeout,
        label=f"API server of {kubectl.context}",
        remediation=[
            f"Check the cluster is running: kubectl --context {kubectl.context} cluster-info",
            "For Kind clusters: docker ps --filter name=control-plane",
            "Recreate the management cluster if the container is gone",
        ],
    )
    return wait(spec, deadline=deadline, clock=clock, reporter=reporter)


def phase_predicate(
    kubectl: KubectlClient,
    kind: str,
    name: str,
    namespace: str,
    ready_phase: str = READY_PHASE,
) -> Callable[[], bool]:
    """Predicate over ``status.phase``.

    Query failures are "not ready yet"; the ``Failed`` phase raises
    ``ResourceFailedError`` and ends the wait.
    """

    def check() -> bool:
        try:
            phase = kubectl.get_field(kind, name, namespace, "{.status.phase}")
        except CommandFailedError as e:
            raise NotReadyError(str(e)) from e
        if phase == FAILED_PHASE:
            raise ResourceFailedError(kind, name, phase)
        logger.debug("%s %s phase: %s", kind, name, phase or "<none>")
        return phase == ready_phase

    return check


def wait_for_cluster_phase(
    kubectl: KubectlClient,
    name: str,
    config: ReadyCoreConfig,
    kind: str = "cluster",
    *,
    deadline: Optional[Deadline] = None,
    clock: Optional[Clock] = None,
    reporter: Optional[ProgressReporter] = None,
) -> PollResult:
    """Wait until the cluster resource reports ``Provisioned``."""
    namespace = config.workload_cluster_namespace
    spec = PollSpec(
        predicate=phase_predicate(kubectl, kind, name, namespace),
        interval=config.cluster_ready_poll_interval,
        timeout=config.deployment_timeout,
        label=f"{kind} {name} to reach {READY_PHASE}",
        remediation=[
            f"Inspect the resource: kubectl get {kind} {name} -n {namespace} -o yaml",
            f"Check controller conditions: clusterctl describe cluster {name} -n {namespace}",
            "Check controller logs: kubectl logs -n capz-system deploy/capz-controller-manager",
            f"Increase DEPLOYMENT_TIMEOUT (current: {format_duration(config.deployment_timeout)})",
        ],
    )
    return wait(spec, deadline=deadline, clock=clock, reporter=reporter)


def wait_for_deletion(
    kubectl: KubectlClient,
    kind: str,
    name: str,
    namespace: str,
    timeout: float,
    interval: float,
    *,
    deadline: Optional[Deadline] = None,
    clock: Optional[Clock] = None,
    reporter: Optional[ProgressReporter] = None,
) -> PollResult:
    """Wait until ``kind/name`` no longer exists.

    Lookup failures that look transient are treated as "not gone yet".
    """

    def gone() -> bool:
        try:
            return not kubectl.exists(kind, name, namespace)
        except CommandFailedError as e:
            if e.transient:
                raise NotReadyError(str(e)) from e
            raise

    spec = PollSpec(
        predicate=gone,
        interval=interval,
        timeout=timeout,
        label=f"deletion of {kind} {name}",
        remediation=[
            f"Check finalizers: kubectl get {kind} {name} -n {namespace} "
            "-o jsonpath='{.metadata.finalizers}'",
            "Check the infrastructure provider controller logs for stuck cleanup",
            f"Check the resource group in Azure: az group list --query \"[?contains(name, '{name}')]\"",
        ],
    )
    return wait(spec, deadline=deadline, clock=clock, reporter=reporter)
