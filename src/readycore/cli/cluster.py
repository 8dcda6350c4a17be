"""readycore CLI - cluster mutations and waits."""

from __future__ import annotations

import click

from readycore.cli._common import DURATION, CliState, pass_state
from readycore.clock import format_duration
from readycore.errors import ReadinessError
from readycore.operations import (
    apply_with_retry,
    wait_for_cluster_healthy,
    wait_for_cluster_phase,
    wait_for_deletion,
)
from readycore.timeouts import (
    DEFAULT_HEALTH_CHECK_POLL_INTERVAL_S,
    DEFAULT_HEALTH_CHECK_TIMEOUT_S,
)


@click.command()
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False))
@click.option("--namespace", "-n", default=None, help="Namespace passed to kubectl apply")
@pass_state
def apply(state: CliState, manifest, namespace):
    """Apply MANIFEST, retrying transient API errors."""
    try:
        outcome = apply_with_retry(
            state.kubectl(),
            manifest,
            state.config,
            namespace,
            deadline=state.deadline,
            reporter=state.reporter,
        )
    except ReadinessError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"{manifest}: {outcome.value}")


@click.command()
@click.option("--timeout", type=DURATION, default=DEFAULT_HEALTH_CHECK_TIMEOUT_S, show_default=True)
@click.option("--interval", type=DURATION, default=DEFAULT_HEALTH_CHECK_POLL_INTERVAL_S, show_default=True)
@pass_state
def health(state: CliState, timeout, interval):
    """Wait until the management cluster API server responds."""
    try:
        result = wait_for_cluster_healthy(
            state.kubectl(),
            timeout,
            interval,
            deadline=state.deadline,
            reporter=state.reporter,
        )
    except (ReadinessError, ValueError) as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"API server healthy after {result.iterations} check(s)")


@click.command()
@click.argument("name", required=False)
@click.option("--kind", default="cluster", show_default=True, help="Resource kind to watch")
@pass_state
def wait_ready(state: CliState, name, kind):
    """Wait for cluster NAME (default: CS_CLUSTER_NAME) to be provisioned."""
    name = name or state.config.cluster_name_prefix
    try:
        result = wait_for_cluster_phase(
            state.kubectl(),
            name,
            state.config,
            kind,
            deadline=state.deadline,
            reporter=state.reporter,
        )
    except (ReadinessError, ValueError) as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"{kind} {name} provisioned after {format_duration(result.elapsed)}")


@click.command()
@click.argument("kind")
@click.argument("name")
@click.option("--namespace", "-n", default=None, help="Default: WORKLOAD_CLUSTER_NAMESPACE")
@click.option("--timeout", type=DURATION, default=None, help="Default: DEPLOYMENT_TIMEOUT")
@click.option("--interval", type=DURATION, default=None, help="Default: CLUSTER_READY_POLL_INTERVAL")
@pass_state
def wait_deleted(state: CliState, kind, name, namespace, timeout, interval):
    """Wait until KIND/NAME no longer exists."""
    config = state.config
    try:
        result = wait_for_deletion(
            state.kubectl(),
            kind,
            name,
            namespace or config.workload_cluster_namespace,
            timeout if timeout is not None else config.deployment_timeout,
            interval if interval is not None else config.cluster_ready_poll_interval,
            deadline=state.deadline,
            reporter=state.reporter,
        )
    except (ReadinessError, ValueError) as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"{kind} {name} deleted after {format_duration(result.elapsed)}")
