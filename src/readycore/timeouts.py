"""
Timeout, retry and naming constants for readycore.

Centralizes default durations and limits so the config layer, validators
and operations agree on the same numbers.  All durations are in seconds.
"""

from __future__ import annotations

# =============================================================================
# Workflow Timeouts
# =============================================================================

# Default timeout for control plane deployment and deletion
DEFAULT_DEPLOYMENT_TIMEOUT_S = 60 * 60

# Default timeout for the ASO controller manager to become ready
DEFAULT_ASO_CONTROLLER_TIMEOUT_S = 10 * 60

# Default timeout for the management cluster API server to respond
DEFAULT_HEALTH_CHECK_TIMEOUT_S = 2 * 60

# Interval between cluster phase checks
DEFAULT_CLUSTER_READY_POLL_INTERVAL_S = 30.0

# Interval between API server health probes
DEFAULT_HEALTH_CHECK_POLL_INTERVAL_S = 5.0

# Per-request timeout passed to kubectl (--request-timeout)
KUBECTL_REQUEST_TIMEOUT_S = 10

# Default timeout for a single external command
SUBPROCESS_DEFAULT_TIMEOUT_S = 120

# =============================================================================
# Retry Configuration
# =============================================================================

# Attempts for kubectl apply before giving up
DEFAULT_APPLY_MAX_RETRIES = 5

# Base delay; attempt n waits min(base * n, max)
DEFAULT_APPLY_RETRY_DELAY_S = 10.0

# Cap for the linear backoff
DEFAULT_APPLY_MAX_RETRY_DELAY_S = 60.0

# =============================================================================
# Timeout Validation Bounds
# =============================================================================

MIN_DEPLOYMENT_TIMEOUT_S = 15 * 60
MAX_DEPLOYMENT_TIMEOUT_S = 3 * 60 * 60

MIN_ASO_CONTROLLER_TIMEOUT_S = 2 * 60
MAX_ASO_CONTROLLER_TIMEOUT_S = 30 * 60

# =============================================================================
# Naming Limits
# =============================================================================

# ARO limit on AROControlPlane spec.domainPrefix
MAX_DOMAIN_PREFIX_LENGTH = 15

# Azure limit on the ExternalAuth resource name
MAX_EXTERNAL_AUTH_ID_LENGTH = 15

# ExternalAuth ID is ${CS_CLUSTER_NAME}-ea
EXTERNAL_AUTH_ID_SUFFIX = "-ea"

MAX_CLUSTER_NAME_PREFIX_LENGTH = MAX_EXTERNAL_AUTH_ID_LENGTH - len(EXTERNAL_AUTH_ID_SUFFIX)
