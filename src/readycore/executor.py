"""
Command Executor — the leaf every readiness check is built on.

Runs an external program with arguments and an optional timeout and
returns an immutable ``ExecutionResult``.  A non-zero exit status, an
expired timeout and a missing binary are all data on the result, never
exceptions, so callers classify outcomes explicitly.

Usage::

    from readycore.executor import CommandExecutor

    executor = CommandExecutor()
    result = executor.execute("kubectl", ["get", "nodes"], timeout=30)
    if not result.succeeded:
        logger.warning("kubectl failed: %s", result.error)
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from readycore.timeouts import SUBPROCESS_DEFAULT_TIMEOUT_S

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    """Captured outcome of one command invocation."""

    command: tuple[str, ...]
    stdout: str
    stderr: str
    succeeded: bool
    exit_code: Optional[int] = None
    error: Optional[str] = None
    duration: float = 0.0
    timed_out: bool = False

    @property
    def command_line(self) -> str:
        return shlex.join(self.command)

    @property
    def output(self) -> str:
        """stdout and stderr joined, for messages shown to humans."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


def command_exists(program: str) -> bool:
    """Check whether ``program`` is on PATH."""
    return shutil.which(program) is not None


class CommandExecutor:
    """Runs external programs and captures both output streams.

    Args:
        default_timeout: Timeout used when ``execute()`` gets none;
            ``None`` disables it.
        env: Extra environment variables for every command.
    """

    def __init__(
        self,
        default_timeout: Optional[float] = SUBPROCESS_DEFAULT_TIMEOUT_S,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.default_timeout = default_timeout
        self._env = dict(env) if env else None

    def execute(
        self,
        program: str,
        args: Sequence[str] = (),
        timeout: Optional[float] = None,
    ) -> ExecutionResult:
        """Run ``program`` with ``args`` and return the captured result."""
        command = (program, *args)
        effective_timeout = timeout if timeout is not None else self.default_timeout
        logger.debug("Executing command: %s", shlex.join(command))

        env = {**os.environ, **self._env} if self._env else None

        start = time.monotonic()
        try:
            completed = subprocess.run(
                list(command),
                capture_output=True,
                timeout=effective_timeout,
                env=env,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            return ExecutionResult(
                command=command,
                stdout=_decode(e.stdout),
                stderr=_decode(e.stderr),
                succeeded=False,
                error=f"timed out after {effective_timeout}s",
                duration=time.monotonic() - start,
                timed_out=True,
            )
        except OSError as e:
            # Missing binary, permission denied on exec, ...
            return ExecutionResult(
                command=command,
                stdout="",
                stderr="",
                succeeded=False,
                error=str(e),
                duration=time.monotonic() - start,
            )

        duration = time.monotonic() - start
        succeeded = completed.returncode == 0
        return ExecutionResult(
            command=command,
            stdout=_decode(completed.stdout),
            stderr=_decode(completed.stderr),
            succeeded=succeeded,
            exit_code=completed.returncode,
            error=None if succeeded else f"exit status {completed.returncode}",
            duration=duration,
        )


def _decode(data: Optional[bytes | str]) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace").strip()
    return data.strip()
