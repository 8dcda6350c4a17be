"""readycore CLI - checks that run before anything touches a cluster."""

from __future__ import annotations

import sys
from typing import Optional, Sequence

import click

from readycore.cli._common import CliState, pass_state
from readycore.config import ReadyCoreConfig
from readycore.errors import ConflictDetectedError, ValidationFailedError
from readycore.guard import ensure_no_conflicts, manifest_matches_prefix
from readycore.pipeline import Phase, Pipeline
from readycore.validation import (
    ValidationReport,
    Validator,
    configuration_validators,
    format_report,
    tool_validators,
    validate_all,
)


def _report(
    validators: Sequence[Validator],
    title: str,
    output_format: str = "text",
) -> ValidationReport:
    report = validate_all(validators)
    if output_format == "json":
        click.echo(report.model_dump_json(indent=2))
    else:
        click.echo(format_report(report, title=title))
    return report


def _run_tools(output_format: str = "text") -> None:
    _report(tool_validators(), "DEPENDENCY CHECK RESULTS", output_format).raise_for_failures()


def _config_summary(config: ReadyCoreConfig) -> str:
    lines = ["=== CONFIGURATION ===", ""]
    lines += [f"  {name}: {value or '(unset)'}" for name, value in config.as_mapping().items()]
    lines.append(f"  Resource group: {config.resource_group}")
    return "\n".join(lines)


def _run_validate(state: CliState, output_format: str = "text") -> None:
    if output_format == "text":
        click.echo(_config_summary(state.config) + "\n")
    _report(
        configuration_validators(state.config, state.executor),
        "CONFIGURATION VALIDATION RESULTS",
        output_format,
    ).raise_for_failures()


def _run_guard(state: CliState, manifest: Optional[str] = None, kind: str = "cluster") -> None:
    config = state.config
    namespace = config.workload_cluster_namespace
    prefix = config.cluster_name_prefix

    ensure_no_conflicts(
        prefix,
        lambda: state.kubectl().list_names(kind, namespace),
        namespace=namespace,
        kind=kind,
    )
    state.reporter.success(f"No conflicting {kind} resources in namespace {namespace}")

    if manifest:
        matches, existing = manifest_matches_prefix(manifest, prefix)
        if matches:
            state.reporter.success(f"Manifest {manifest} matches cluster name {prefix}")
        elif existing:
            state.reporter.warning(
                f"Manifest {manifest} defines cluster {existing}, expected {prefix}: "
                "regenerate it before applying"
            )
        else:
            state.reporter.warning(f"Manifest {manifest} has no readable Cluster resource")


_format_option = click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)


@click.command()
@_format_option
def check_tools(output_format):
    """Check that required CLI tools are installed."""
    try:
        _run_tools(output_format)
    except ValidationFailedError:
        sys.exit(1)


@click.command()
@_format_option
@pass_state
def validate(state: CliState, output_format):
    """Validate the run configuration from the environment."""
    try:
        _run_validate(state, output_format)
    except ValidationFailedError:
        sys.exit(1)


@click.command()
@click.option("--kind", default="cluster", help="Resource kind to inspect")
@click.option(
    "--manifest",
    type=click.Path(),
    default=None,
    help="Generated manifest to compare with the expected cluster name",
)
@pass_state
def guard(state: CliState, kind, manifest):
    """Fail if the namespace holds clusters from another configuration."""
    try:
        _run_guard(state, manifest=manifest, kind=kind)
    except ConflictDetectedError as e:
        click.echo(str(e), err=True)
        sys.exit(1)


@click.command()
@click.option("--skip-tools", is_flag=True, help="Skip the tool check phase")
@pass_state
def preflight(state: CliState, skip_tools):
    """Run tool checks, configuration validation and the guard in order."""
    phases = []
    if not skip_tools:
        phases.append(Phase("check-tools", _run_tools, "Checking required tools"))
    phases += [
        Phase("validate", lambda: _run_validate(state), "Validating configuration"),
        Phase("guard", lambda: _run_guard(state), "Checking for stale cluster resources"),
    ]

    summary = Pipeline(phases, reporter=state.reporter).run(deadline=state.deadline)
    click.echo(summary.format())

    failed = summary.failed_phase
    if failed is not None and isinstance(failed.error, ConflictDetectedError):
        click.echo(str(failed.error), err=True)
    sys.exit(summary.exit_code)
