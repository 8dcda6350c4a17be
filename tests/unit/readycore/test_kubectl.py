"""Tests for the kubectl adapter."""

from __future__ import annotations

import pytest

from readycore.errors import CommandFailedError
from readycore.kubectl import (
    KubectlClient,
    classify_apply,
    current_context,
    is_transient,
    parse_apply_actions,
    server_error_reasons,
)
from readycore.types import ApplyOutcome


class TestClassifyApply:
    def test_created_and_configured(self, make_result):
        result = make_result(stdout=(
            "namespace/capz-test unchanged\n"
            "cluster.cluster.x-k8s.io/rcapx-stage created\n"
            "machinepool.cluster.x-k8s.io/rcapx-stage-mp-0 configured"
        ))

        report = classify_apply(result)

        assert report.outcome is ApplyOutcome.APPLIED
        assert report.actions["cluster.cluster.x-k8s.io/rcapx-stage"] == "created"

    def test_all_unchanged_is_noop(self, make_result):
        result = make_result(stdout="namespace/a unchanged\nsecret/b unchanged")
        assert classify_apply(result).outcome is ApplyOutcome.UNCHANGED

    def test_dry_run_suffix(self, make_result):
        assert parse_apply_actions("secret/x created (server dry run)") == {"secret/x": "created"}

    def test_already_exists_counts_as_unchanged(self, make_result):
        result = make_result(
            succeeded=False,
            stderr='Error from server (AlreadyExists): secrets "x" already exists',
        )
        assert classify_apply(result).outcome is ApplyOutcome.UNCHANGED

    @pytest.mark.parametrize("reason", ["ServiceUnavailable", "InternalError", "Conflict", "TooManyRequests"])
    def test_transient_api_reasons(self, make_result, reason):
        result = make_result(succeeded=False, stderr=f"Error from server ({reason}): try again")
        assert classify_apply(result).outcome is ApplyOutcome.TRANSIENT_FAILURE

    @pytest.mark.parametrize("reason", ["Forbidden", "Invalid", "BadRequest", "NotFound"])
    def test_fatal_api_reasons(self, make_result, reason):
        result = make_result(succeeded=False, stderr=f"Error from server ({reason}): nope")
        assert classify_apply(result).outcome is ApplyOutcome.FATAL_FAILURE

    def test_mixed_transient_and_fatal_is_fatal(self, make_result):
        result = make_result(
            succeeded=False,
            stderr="Error from server (InternalError): x\nError from server (Forbidden): y",
        )
        assert classify_apply(result).outcome is ApplyOutcome.FATAL_FAILURE

    @pytest.mark.parametrize("stderr", [
        "The connection to the server localhost:8080 was refused",
        "Unable to connect to the server: net/http: TLS handshake timeout",
        "dial tcp 10.0.0.1:6443: i/o timeout",
    ])
    def test_transport_failures_are_transient(self, make_result, stderr):
        result = make_result(succeeded=False, stderr=stderr)
        assert classify_apply(result).outcome is ApplyOutcome.TRANSIENT_FAILURE

    def test_timeout_is_transient(self, make_result):
        result = make_result(succeeded=False, timed_out=True)
        assert classify_apply(result).outcome is ApplyOutcome.TRANSIENT_FAILURE

    def test_unknown_failure_is_fatal(self, make_result):
        result = make_result(succeeded=False, stderr="error: the path \"x.yaml\" does not exist")
        assert classify_apply(result).outcome is ApplyOutcome.FATAL_FAILURE

    def test_server_error_reasons(self):
        stderr = "Error from server (Conflict): a\nError from server (NotFound): b"
        assert server_error_reasons(stderr) == ("Conflict", "NotFound")


class TestKubectlClient:
    def test_context_and_kubeconfig_prefix_every_call(self, make_executor, make_result):
        executor = make_executor(make_result(stdout="node/a"))
        client = KubectlClient(executor, "kind-mgmt", kubeconfig="/tmp/kc")

        client.api_responsive()

        assert executor.calls[0] == (
            "kubectl", "--context", "kind-mgmt", "--kubeconfig", "/tmp/kc",
            "get", "nodes", "--request-timeout=10s",
        )

    def test_apply_returns_outcome(self, make_executor, make_result):
        executor = make_executor(make_result(stdout="cluster.x/a created"))
        client = KubectlClient(executor, "ctx")

        assert client.apply("cluster.yaml", "capz-test") is ApplyOutcome.APPLIED
        assert executor.calls[0][3:] == ("-n", "capz-test", "apply", "-f", "cluster.yaml")

    def test_apply_raises_classified_error(self, make_executor, make_result):
        executor = make_executor(make_result(succeeded=False, stderr="connection refused"))
        client = KubectlClient(executor, "ctx")

        with pytest.raises(CommandFailedError) as exc_info:
            client.apply("cluster.yaml")

        assert exc_info.value.transient is True
        assert is_transient(exc_info.value)

    def test_fatal_apply_is_not_transient(self, make_executor, make_result):
        executor = make_executor(make_result(succeeded=False, stderr="Error from server (Invalid): bad spec"))

        with pytest.raises(CommandFailedError) as exc_info:
            KubectlClient(executor, "ctx").apply("cluster.yaml")

        assert is_transient(exc_info.value) is False

    def test_is_transient_rejects_other_errors(self):
        assert is_transient(RuntimeError("connection refused")) is False

    def test_list_names(self, make_executor, make_result):
        executor = make_executor(make_result(stdout="a-stage b-stage"))
        assert KubectlClient(executor, "ctx").list_names("cluster", "ns") == ["a-stage", "b-stage"]

    def test_list_names_missing_crd(self, make_executor, make_result):
        executor = make_executor(make_result(
            succeeded=False,
            stderr='error: the server doesn\'t have a resource type "cluster"',
        ))
        assert KubectlClient(executor, "ctx").list_names("cluster", "ns") == []

    def test_list_names_other_failure_raises(self, make_executor, make_result):
        executor = make_executor(make_result(succeeded=False, stderr="Error from server (Forbidden): no"))
        with pytest.raises(CommandFailedError):
            KubectlClient(executor, "ctx").list_names("cluster", "ns")

    def test_get_field(self, make_executor, make_result):
        executor = make_executor(make_result(stdout="Provisioned"))
        client = KubectlClient(executor, "ctx")

        assert client.get_field("cluster", "a", "ns", "{.status.phase}") == "Provisioned"
        assert executor.calls[0][-2:] == ("-o", "jsonpath={.status.phase}")

    def test_exists(self, make_executor, make_result):
        client = KubectlClient(make_executor(make_result(stdout="cluster.x/a")), "ctx")
        assert client.exists("cluster", "a", "ns") is True

    def test_exists_empty_output_means_absent(self, make_executor, make_result):
        client = KubectlClient(make_executor(make_result(stdout="")), "ctx")
        assert client.exists("cluster", "a", "ns") is False

    def test_exists_transport_failure_raises_transient(self, make_executor, make_result):
        client = KubectlClient(make_executor(make_result(succeeded=False, stderr="i/o timeout")), "ctx")

        with pytest.raises(CommandFailedError) as exc_info:
            client.exists("cluster", "a", "ns")
        assert exc_info.value.transient is True

    def test_delete_ignores_not_found(self, make_executor, make_result):
        executor = make_executor(make_result(succeeded=False, stderr="Error from server (NotFound): gone"))
        KubectlClient(executor, "ctx").delete("cluster", "a", "ns")
        assert executor.calls[0][-1] == "--wait=false"

    def test_api_responsive_false_on_failure(self, make_executor, make_result):
        client = KubectlClient(make_executor(make_result(succeeded=False)), "ctx")
        assert client.api_responsive() is False


class TestCurrentContext:
    def test_reads_context(self, make_executor, make_result):
        executor = make_executor(make_result(stdout="aks-admin\n"))
        assert current_context(executor, "/tmp/kc") == "aks-admin"

    def test_unreadable_kubeconfig(self, make_executor, make_result):
        assert current_context(make_executor(make_result(succeeded=False)), "/tmp/kc") == ""
