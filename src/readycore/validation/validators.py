"""
Configuration validators.

Each function checks one fact about the run configuration and returns a
``ValidationResult``; none of them raise for an expected-invalid value.
Messages carry a concrete fix (``export NAME=value``) wherever one can
be computed.

``configuration_validators(config)`` returns the standard ordered batch
run at the start of every workflow.
"""

from __future__ import annotations

import functools
import os
import re
from typing import Optional

from readycore.clock import format_duration
from readycore.config import ReadyCoreConfig
from readycore.executor import CommandExecutor, command_exists
from readycore.timeouts import (
    EXTERNAL_AUTH_ID_SUFFIX,
    MAX_ASO_CONTROLLER_TIMEOUT_S,
    MAX_CLUSTER_NAME_PREFIX_LENGTH,
    MAX_DEPLOYMENT_TIMEOUT_S,
    MAX_DOMAIN_PREFIX_LENGTH,
    MAX_EXTERNAL_AUTH_ID_LENGTH,
    MIN_ASO_CONTROLLER_TIMEOUT_S,
    MIN_DEPLOYMENT_TIMEOUT_S,
)
from readycore.validation.engine import ValidationResult, Validator

RFC1123_NAME = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
_INVALID_CHARS = re.compile(r"[^a-z0-9-]")

_COMMON_REGIONS = "eastus, westus2, uksouth, westeurope, eastasia"

# Subset of commonly used Azure regions; anything else is checked with az.
KNOWN_AZURE_REGIONS = frozenset({
    # Americas
    "eastus", "eastus2", "westus", "westus2", "westus3",
    "centralus", "northcentralus", "southcentralus", "westcentralus",
    "canadacentral", "canadaeast", "brazilsouth", "brazilsoutheast",
    # Europe
    "northeurope", "westeurope", "uksouth", "ukwest",
    "francecentral", "francesouth", "germanywestcentral", "germanynorth",
    "switzerlandnorth", "switzerlandwest", "norwayeast", "norwaywest",
    "swedencentral", "swedensouth", "polandcentral",
    # Asia Pacific
    "eastasia", "southeastasia",
    "australiaeast", "australiasoutheast", "australiacentral",
    "japaneast", "japanwest", "koreacentral", "koreasouth",
    "centralindia", "southindia", "westindia",
    # Middle East & Africa
    "uaenorth", "uaecentral", "southafricanorth", "southafricawest",
    "qatarcentral", "israelcentral",
})


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------


def suggest_rfc1123_name(name: str) -> str:
    """Lowercase ``name`` and replace invalid characters with '-'."""
    suggested = _INVALID_CHARS.sub("-", name.lower()).strip("-")
    return suggested or "valid-name"


def validate_rfc1123_name(name: str, var_name: str) -> ValidationResult:
    """Check that ``name`` is a valid RFC 1123 label."""
    if not name:
        return ValidationResult.fail(
            var_name,
            f"{var_name} is empty: must be a non-empty RFC 1123 compliant name",
            value=name,
        )
    if RFC1123_NAME.match(name):
        return ValidationResult.ok(var_name, value=name)

    lowered = name.lower()
    issues = []
    if lowered != name:
        issues.append("contains uppercase letters")
    if _INVALID_CHARS.search(lowered):
        issues.append("contains invalid characters (only lowercase a-z, 0-9, and '-' are allowed)")
    if not re.match(r"^[a-z0-9]", lowered):
        issues.append("must start with a lowercase alphanumeric character")
    if not re.search(r"[a-z0-9]$", lowered):
        issues.append("must end with a lowercase alphanumeric character")

    return ValidationResult.fail(
        var_name,
        f"{var_name} '{name}' is not RFC 1123 compliant:\n"
        f"  Issues: {'; '.join(issues)}\n"
        "  RFC 1123 requires: lowercase alphanumeric characters or '-', "
        "must start and end with alphanumeric\n"
        f"  Suggested fix: export {var_name}={suggest_rfc1123_name(name)}",
        value=name,
    )


def validate_domain_prefix(
    user: str,
    environment: str,
    prefix: Optional[str] = None,
) -> ValidationResult:
    """``<CAPZ_USER>-<DEPLOYMENT_ENV>`` must fit the ARO domain prefix limit.

    ``prefix`` is the already derived value when the caller has one.
    """
    prefix = prefix or f"{user}-{environment}"
    name = "Domain Prefix (CAPZ_USER-DEPLOYMENT_ENV)"
    if len(prefix) <= MAX_DOMAIN_PREFIX_LENGTH:
        return ValidationResult.ok(name, value=prefix)
    return ValidationResult.fail(
        name,
        f"domain prefix '{prefix}' ({len(prefix)} chars) exceeds maximum length "
        f"of {MAX_DOMAIN_PREFIX_LENGTH} characters\n"
        f"  CAPZ_USER='{user}' ({len(user)} chars) + '-' + "
        f"DEPLOYMENT_ENV='{environment}' ({len(environment)} chars) = {len(prefix)} chars\n"
        "  Suggestion: Use shorter values for CAPZ_USER or DEPLOYMENT_ENV",
        value=prefix,
    )


def validate_external_auth_id(
    cluster_name_prefix: str,
    external_auth_id: Optional[str] = None,
) -> ValidationResult:
    """``<CS_CLUSTER_NAME>-ea`` must fit the ExternalAuth name limit."""
    external_auth_id = external_auth_id or cluster_name_prefix + EXTERNAL_AUTH_ID_SUFFIX
    name = "ExternalAuth ID (CS_CLUSTER_NAME-ea)"
    if len(external_auth_id) <= MAX_EXTERNAL_AUTH_ID_LENGTH:
        return ValidationResult.ok(name, value=external_auth_id)
    suggested = cluster_name_prefix[:MAX_CLUSTER_NAME_PREFIX_LENGTH]
    return ValidationResult.fail(
        name,
        f"ExternalAuth ID '{external_auth_id}' ({len(external_auth_id)} chars) exceeds "
        f"maximum length of {MAX_EXTERNAL_AUTH_ID_LENGTH} characters\n"
        f"  CS_CLUSTER_NAME='{cluster_name_prefix}' ({len(cluster_name_prefix)} chars) "
        f"+ '{EXTERNAL_AUTH_ID_SUFFIX}' ({len(EXTERNAL_AUTH_ID_SUFFIX)} chars) "
        f"= {len(external_auth_id)} chars\n"
        f"  CS_CLUSTER_NAME must be <={MAX_CLUSTER_NAME_PREFIX_LENGTH} characters\n"
        f"  Suggestion: export CS_CLUSTER_NAME={suggested}",
        value=external_auth_id,
    )


# ---------------------------------------------------------------------------
# External kubeconfig
# ---------------------------------------------------------------------------


def validate_external_kubeconfig(kubeconfig: Optional[str]) -> ValidationResult:
    """USE_KUBECONFIG, when set, must point at an existing file."""
    name = "USE_KUBECONFIG"
    if not kubeconfig:
        return ValidationResult.skipped(
            name, "USE_KUBECONFIG not set, using the local Kind management cluster"
        )
    if not os.path.isfile(kubeconfig):
        return ValidationResult.fail(
            name,
            f"Kubeconfig file not found: {kubeconfig}\n"
            "  Set USE_KUBECONFIG to a valid kubeconfig file path, or unset it\n"
            "  to use the local Kind management cluster.",
            value=kubeconfig,
        )
    return ValidationResult.ok(name, value=kubeconfig)


# ---------------------------------------------------------------------------
# Region
# ---------------------------------------------------------------------------


def find_similar_regions(region: str, regions: list[str], limit: int = 3) -> list[str]:
    """Regions sharing a substring with ``region``, for "did you mean" hints."""
    similar = [r for r in regions if r and (r in region or region in r)]
    return similar[:limit]


def validate_region(
    region: str,
    executor: Optional[CommandExecutor] = None,
) -> ValidationResult:
    """Check the Azure region against the known list, then the az CLI."""
    name = "REGION"
    if not region:
        return ValidationResult.fail(
            name,
            "REGION is empty\n"
            "  An Azure region is required for resource deployment.\n\n"
            "  To fix this:\n"
            "    export REGION=<azure-region>\n\n"
            f"  Common regions: {_COMMON_REGIONS}",
        )

    normalized = region.lower()
    if normalized in KNOWN_AZURE_REGIONS:
        return ValidationResult.ok(name, value=region)

    if executor is not None and command_exists("az"):
        result = executor.execute(
            "az",
            ["account", "list-locations", "--query", f"[?name=='{normalized}'].name", "-o", "tsv"],
        )
        if result.succeeded and result.stdout.strip() == normalized:
            return ValidationResult.ok(name, value=region)

        listing = executor.execute(
            "az", ["account", "list-locations", "--query", "[].name", "-o", "tsv"]
        )
        available = listing.stdout.split() if listing.succeeded else []
        suggestions = find_similar_regions(normalized, available)
        hint = f"\n  Did you mean: {', '.join(suggestions)}?" if suggestions else ""
        return ValidationResult.fail(
            name,
            f"REGION '{region}' is not a valid Azure region\n"
            f"  The specified region was not found in available Azure locations.{hint}\n\n"
            "  To fix this:\n"
            "    1. List available regions: az account list-locations --query '[].name' -o tsv\n"
            "    2. Set a valid region: export REGION=<valid-region>",
            value=region,
        )

    return ValidationResult.fail(
        name,
        f"REGION '{region}' is not a recognized Azure region\n"
        "  The region was not found in the list of known Azure regions.\n\n"
        "  To fix this:\n"
        "    1. Verify the region name (no spaces)\n"
        "    2. List available regions: az account list-locations --query '[].name' -o tsv\n"
        "    3. Set a valid region: export REGION=<valid-region>\n\n"
        f"  Common regions: {_COMMON_REGIONS}",
        value=region,
    )


# ---------------------------------------------------------------------------
# Timeouts
# ---------------------------------------------------------------------------


def validate_timeout(
    var_name: str,
    timeout: float,
    minimum: float,
    maximum: float,
    critical: bool = False,
) -> ValidationResult:
    """Check a timeout lies within plausible bounds.

    Out-of-range timeouts are advisory by default: the run can proceed,
    it may just fail late or wait too long.
    """
    value = format_duration(timeout)
    if timeout < minimum:
        return ValidationResult.fail(
            var_name,
            f"{var_name} '{value}' is too short (minimum: {format_duration(minimum)})\n"
            "  Timeout values that are too short may cause premature failures\n\n"
            "  To fix this:\n"
            f"    export {var_name}={format_duration(minimum)}",
            critical=critical,
            value=value,
        )
    if timeout > maximum:
        return ValidationResult.fail(
            var_name,
            f"{var_name} '{value}' is too long (maximum: {format_duration(maximum)})\n"
            "  Extremely long timeouts may indicate a configuration error\n\n"
            "  To fix this:\n"
            f"    export {var_name}={format_duration(maximum)}",
            critical=critical,
            value=value,
        )
    return ValidationResult.ok(var_name, value=value)


def validate_deployment_timeout(timeout: float) -> ValidationResult:
    return validate_timeout(
        "DEPLOYMENT_TIMEOUT", timeout, MIN_DEPLOYMENT_TIMEOUT_S, MAX_DEPLOYMENT_TIMEOUT_S
    )


def validate_aso_controller_timeout(timeout: float) -> ValidationResult:
    return validate_timeout(
        "ASO_CONTROLLER_TIMEOUT",
        timeout,
        MIN_ASO_CONTROLLER_TIMEOUT_S,
        MAX_ASO_CONTROLLER_TIMEOUT_S,
    )


# ---------------------------------------------------------------------------
# Standard batch
# ---------------------------------------------------------------------------


def configuration_validators(
    config: ReadyCoreConfig,
    executor: Optional[CommandExecutor] = None,
) -> list[Validator]:
    """The ordered validator batch for a run configuration."""
    validators: list[Validator] = [
        functools.partial(validate_rfc1123_name, value, var)
        for var, value in (
            ("CAPZ_USER", config.capz_user),
            ("DEPLOYMENT_ENV", config.deployment_env),
            ("CS_CLUSTER_NAME", config.cluster_name_prefix),
            ("WORKLOAD_CLUSTER_NAMESPACE", config.workload_cluster_namespace),
        )
    ]
    validators += [
        functools.partial(
            validate_domain_prefix, config.capz_user, config.deployment_env, config.domain_prefix
        ),
        functools.partial(
            validate_external_auth_id, config.cluster_name_prefix, config.external_auth_id
        ),
        functools.partial(validate_external_kubeconfig, config.use_kubeconfig),
        functools.partial(validate_region, config.region, executor),
        functools.partial(validate_deployment_timeout, config.deployment_timeout),
        functools.partial(validate_aso_controller_timeout, config.aso_controller_timeout),
    ]
    return validators
