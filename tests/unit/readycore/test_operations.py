"""Tests for cluster operations built on the poller and retry engine."""

from __future__ import annotations

import pytest

from readycore.config import load_config
from readycore.errors import (
    CommandFailedError,
    FatalOperationError,
    PollTimeoutError,
    ResourceFailedError,
    RetryExhaustedError,
)
from readycore.kubectl import KubectlClient
from readycore.operations import (
    apply_with_retry,
    wait_for_cluster_healthy,
    wait_for_cluster_phase,
    wait_for_deletion,
)
from readycore.types import ApplyOutcome


@pytest.fixture
def config():
    return load_config(
        apply_retry_delay=10,
        apply_max_retry_delay=30,
        apply_max_retries=4,
        cluster_ready_poll_interval=30,
        deployment_timeout=300,
        workload_cluster_namespace="capz-test",
    )


class TestApplyWithRetry:
    def test_retries_transient_then_succeeds(self, config, clock, reporter, make_executor, make_result):
        executor = make_executor(
            make_result(succeeded=False, stderr="Error from server (InternalError): etcd leader changed"),
            make_result(succeeded=False, stderr="dial tcp 10.0.0.1:443: connection refused"),
            make_result(stdout="cluster.cluster.x-k8s.io/rcapx-stage created"),
        )

        outcome = apply_with_retry(
            KubectlClient(executor, "ctx"), "cluster.yaml", config, clock=clock, reporter=reporter
        )

        assert outcome is ApplyOutcome.APPLIED
        assert len(executor.calls) == 3
        assert clock.sleeps == [10, 20]

    def test_fatal_error_not_retried(self, config, clock, reporter, make_executor, make_result):
        executor = make_executor(
            make_result(succeeded=False, stderr="Error from server (Invalid): spec.foo is required"),
        )

        with pytest.raises(FatalOperationError):
            apply_with_retry(
                KubectlClient(executor, "ctx"), "cluster.yaml", config, clock=clock, reporter=reporter
            )
        assert len(executor.calls) == 1

    def test_exhaustion_uses_configured_cap(self, config, clock, reporter, make_executor, make_result):
        executor = make_executor(make_result(succeeded=False, stderr="i/o timeout"))

        with pytest.raises(RetryExhaustedError) as exc_info:
            apply_with_retry(
                KubectlClient(executor, "ctx"), "cluster.yaml", config, clock=clock, reporter=reporter
            )

        assert exc_info.value.attempts == 4
        assert clock.sleeps == [10, 20, 30]


class TestWaitForClusterHealthy:
    def test_waits_until_api_answers(self, clock, reporter, make_executor, make_result):
        executor = make_executor(
            make_result(succeeded=False, stderr="connection refused"),
            make_result(stdout="node/a Ready"),
        )

        result = wait_for_cluster_healthy(
            KubectlClient(executor, "kind-mgmt"), timeout=60, interval=5, clock=clock, reporter=reporter
        )

        assert result.iterations == 2
        assert clock.sleeps == [5]

    def test_timeout_includes_remediation(self, clock, reporter, make_executor, make_result):
        executor = make_executor(make_result(succeeded=False))

        with pytest.raises(PollTimeoutError) as exc_info:
            wait_for_cluster_healthy(
                KubectlClient(executor, "kind-mgmt"), timeout=10, interval=5, clock=clock, reporter=reporter
            )

        assert "kubectl --context kind-mgmt cluster-info" in str(exc_info.value)


class TestWaitForClusterPhase:
    def test_provisioned_after_progress(self, config, clock, reporter, make_executor, make_result):
        executor = make_executor(
            make_result(succeeded=False, stderr='Error from server (NotFound): clusters "a" not found'),
            make_result(stdout="Provisioning"),
            make_result(stdout="Provisioned"),
        )

        result = wait_for_cluster_phase(
            KubectlClient(executor, "ctx"), "a", config, clock=clock, reporter=reporter
        )

        assert result.iterations == 3
        assert clock.sleeps == [30, 30]

    def test_failed_phase_stops_wait(self, config, clock, reporter, make_executor, make_result):
        executor = make_executor(make_result(stdout="Failed"))

        with pytest.raises(ResourceFailedError) as exc_info:
            wait_for_cluster_phase(KubectlClient(executor, "ctx"), "a", config, clock=clock, reporter=reporter)

        assert exc_info.value.phase == "Failed"
        assert len(executor.calls) == 1

    def test_times_out_with_deployment_timeout(self, config, clock, reporter, make_executor, make_result):
        executor = make_executor(make_result(stdout="Provisioning"))

        with pytest.raises(PollTimeoutError) as exc_info:
            wait_for_cluster_phase(KubectlClient(executor, "ctx"), "a", config, clock=clock, reporter=reporter)

        assert exc_info.value.iterations == 10
        assert "Increase DEPLOYMENT_TIMEOUT (current: 5m0s)" in str(exc_info.value)


class TestWaitForDeletion:
    def test_gone_after_two_checks(self, clock, reporter, make_executor, make_result):
        executor = make_executor(
            make_result(stdout="cluster.x/a"),
            make_result(stdout=""),
        )

        result = wait_for_deletion(
            KubectlClient(executor, "ctx"), "cluster", "a", "ns", timeout=60, interval=10,
            clock=clock, reporter=reporter,
        )

        assert result.iterations == 2

    def test_transient_lookup_errors_keep_waiting(self, clock, reporter, make_executor, make_result):
        executor = make_executor(
            make_result(succeeded=False, stderr="connection refused"),
            make_result(stdout=""),
        )

        result = wait_for_deletion(
            KubectlClient(executor, "ctx"), "cluster", "a", "ns", timeout=60, interval=10,
            clock=clock, reporter=reporter,
        )

        assert result.iterations == 2

    def test_fatal_lookup_error_propagates(self, clock, reporter, make_executor, make_result):
        executor = make_executor(make_result(succeeded=False, stderr="Error from server (Forbidden): no"))

        with pytest.raises(CommandFailedError):
            wait_for_deletion(
                KubectlClient(executor, "ctx"), "cluster", "a", "ns", timeout=60, interval=10,
                clock=clock, reporter=reporter,
            )
