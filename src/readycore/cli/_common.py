"""Shared state and helpers for readycore CLI commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import click

from readycore.clock import Deadline, parse_duration
from readycore.config import ReadyCoreConfig
from readycore.executor import CommandExecutor
from readycore.kubectl import KubectlClient, current_context
from readycore.progress import ProgressReporter


@dataclass
class CliState:
    """Per-invocation objects built once by the ``main`` group."""

    config: ReadyCoreConfig
    executor: CommandExecutor
    reporter: ProgressReporter
    deadline: Deadline
    _kubectl: Optional[KubectlClient] = None

    def kubectl(self) -> KubectlClient:
        """kubectl bound to the management cluster context."""
        if self._kubectl is None:
            context = None
            if self.config.is_external_cluster:
                context = current_context(self.executor, self.config.use_kubeconfig)
            self._kubectl = KubectlClient(
                self.executor,
                self.config.kube_context(context),
                kubeconfig=self.config.use_kubeconfig,
            )
        return self._kubectl


pass_state = click.make_pass_decorator(CliState)


class DurationParamType(click.ParamType):
    """Click parameter accepting ``90m``-style durations, converted to seconds."""

    name = "duration"

    def convert(self, value, param, ctx):
        if isinstance(value, (int, float)):
            return float(value)
        try:
            return parse_duration(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


DURATION = DurationParamType()
