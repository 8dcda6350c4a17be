"""
Validation — aggregate independent checks into a pass/fail verdict.

Public API::

    from readycore.validation import (
        # Engine
        validate_all,
        format_report,
        # Result models
        ValidationResult,
        ValidationReport,
        # Standard batches
        configuration_validators,
        tool_validators,
    )
"""

from readycore.validation.engine import (
    ValidationReport,
    ValidationResult,
    Validator,
    format_report,
    validate_all,
)
from readycore.validation.tools import check_tool, tool_validators
from readycore.validation.validators import (
    configuration_validators,
    validate_aso_controller_timeout,
    validate_deployment_timeout,
    validate_domain_prefix,
    validate_external_auth_id,
    validate_external_kubeconfig,
    validate_region,
    validate_rfc1123_name,
    validate_timeout,
)

__all__ = [
    # Engine
    "validate_all",
    "format_report",
    # Result models
    "ValidationResult",
    "ValidationReport",
    "Validator",
    # Validators
    "check_tool",
    "tool_validators",
    "configuration_validators",
    "validate_rfc1123_name",
    "validate_domain_prefix",
    "validate_external_auth_id",
    "validate_external_kubeconfig",
    "validate_region",
    "validate_timeout",
    "validate_deployment_timeout",
    "validate_aso_controller_timeout",
]
