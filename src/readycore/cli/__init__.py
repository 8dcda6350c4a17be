"""
readycore CLI - deployment readiness checks and waits.

Commands:
    readycore check-tools    Check required and optional CLI tools
    readycore validate       Validate the run configuration
    readycore guard          Refuse to proceed when stale clusters exist
    readycore preflight      check-tools, validate and guard as one pipeline
    readycore apply          Apply a manifest with retry
    readycore health         Wait for the management API server
    readycore wait-ready     Wait for a cluster to be provisioned
    readycore wait-deleted   Wait for a resource to be deleted
"""

import signal
import sys

import click
from pydantic import ValidationError

from readycore.cli._common import DURATION, CliState
from readycore.cli.checks import check_tools, guard, preflight, validate
from readycore.cli.cluster import apply, health, wait_deleted, wait_ready
from readycore.clock import Deadline
from readycore.config import load_config
from readycore.executor import CommandExecutor
from readycore.log import configure_logging
from readycore.progress import ProgressReporter


@click.group()
@click.version_option(package_name="readycore")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Log level (default: READYCORE_LOG_LEVEL or info)",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"]),
    default=None,
    help="Log format (default: READYCORE_LOG_FORMAT or text)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress interactive progress lines")
@click.option(
    "--no-tty",
    is_flag=True,
    envvar="READYCORE_NO_TTY",
    help="Write progress lines to stderr instead of /dev/tty",
)
@click.option(
    "--deadline",
    type=DURATION,
    default=None,
    help="Outer time limit for the whole command (e.g. 90m)",
)
@click.pass_context
def main(ctx, log_level, log_format, quiet, no_tty, deadline):
    """readycore - Deployment readiness orchestration."""
    overrides = {}
    if log_level:
        overrides["log_level"] = log_level.lower()
    if log_format:
        overrides["log_format"] = log_format
    try:
        config = load_config(**overrides)
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration:\n{e}") from e

    configure_logging(config.log_level, config.log_format)

    outer = Deadline.after(deadline) if deadline is not None else Deadline.never()
    signal.signal(signal.SIGTERM, lambda signum, frame: outer.cancel())

    ctx.obj = CliState(
        config=config,
        executor=CommandExecutor(),
        reporter=ProgressReporter(stream=sys.stderr if no_tty else None, quiet=quiet),
        deadline=outer,
    )


main.add_command(check_tools, name="check-tools")
main.add_command(validate)
main.add_command(guard)
main.add_command(preflight)
main.add_command(apply)
main.add_command(health)
main.add_command(wait_ready, name="wait-ready")
main.add_command(wait_deleted, name="wait-deleted")


if __name__ == "__main__":
    main()
