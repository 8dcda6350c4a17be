"""Tool availability checks run before any phase touches a cluster."""

from __future__ import annotations

import functools
from typing import Callable, Mapping, Sequence

from readycore.executor import command_exists
from readycore.validation.engine import ValidationResult, Validator

REQUIRED_TOOLS: tuple[str, ...] = ("docker", "kind", "helm", "git", "kubectl", "az")

# name -> what it is needed for
OPTIONAL_TOOLS: Mapping[str, str] = {
    "jq": "JSON processing for MCE component patching",
    "oc": "OpenShift CLI for workload cluster access",
}

# docker can be replaced by podman
ALTERNATIVES: Mapping[str, str] = {"docker": "podman"}

INSTALL_HINTS: Mapping[str, str] = {
    "docker": "Install Docker: https://docs.docker.com/get-docker/ (or Podman)",
    "kind": "Install Kind: go install sigs.k8s.io/kind@latest",
    "helm": "Install Helm: https://helm.sh/docs/intro/install/",
    "git": "Install Git with your system package manager",
    "kubectl": "Install kubectl: https://kubernetes.io/docs/tasks/tools/",
    "az": "Install Azure CLI: https://learn.microsoft.com/cli/azure/install-azure-cli",
    "jq": "Install jq: https://jqlang.github.io/jq/download/",
    "oc": "Install oc: https://mirror.openshift.com/pub/openshift-v4/clients/ocp/",
}


def check_tool(
    tool: str,
    required: bool = True,
    purpose: str = "",
    exists: Callable[[str], bool] = command_exists,
) -> ValidationResult:
    """Check one tool is on PATH; optional tools fail as advisory."""
    name = f"tool: {tool}"
    if exists(tool):
        return ValidationResult.ok(name, value="found")

    alternative = ALTERNATIVES.get(tool)
    if alternative and exists(alternative):
        return ValidationResult.ok(name, value=f"{alternative} (alternative)")

    hint = INSTALL_HINTS.get(tool, f"Install {tool} and make sure it is on PATH")
    if required:
        message = f"Required tool '{tool}' is not installed or not in PATH.\n  {hint}"
    else:
        message = f"Optional tool '{tool}' not found"
        if purpose:
            message += f" (needed for: {purpose})"
        message += f"\n  {hint}"
    return ValidationResult.fail(name, message, critical=required, value="missing")


def tool_validators(
    required: Sequence[str] = REQUIRED_TOOLS,
    optional: Mapping[str, str] = OPTIONAL_TOOLS,
    exists: Callable[[str], bool] = command_exists,
) -> list[Validator]:
    """Validators for required tools followed by optional ones."""
    validators: list[Validator] = [
        functools.partial(check_tool, tool, True, "", exists) for tool in required
    ]
    validators += [
        functools.partial(check_tool, tool, False, purpose, exists)
        for tool, purpose in optional.items()
    ]
    return validators
