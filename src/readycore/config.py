"""
Run configuration for readycore.

Uses Pydantic BaseSettings for environment variable integration and
validation.  The settings object is frozen: it is built once when a run
starts and passed explicitly to every validator and predicate, so nothing
in the engine re-reads ``os.environ`` mid-run.

Configuration sources (in order of precedence):
1. Explicit constructor arguments
2. Environment variables (CAPZ_USER, DEPLOYMENT_ENV, REGION, ...)
3. .env file
4. Default values

Example:
    from readycore.config import load_config

    config = load_config()
    print(config.domain_prefix)     # "rcapx-stage"

    # Override at runtime
    config = load_config(region="westeurope")
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from readycore.clock import format_duration, parse_duration
from readycore.timeouts import (
    DEFAULT_APPLY_MAX_RETRIES,
    DEFAULT_APPLY_MAX_RETRY_DELAY_S,
    DEFAULT_APPLY_RETRY_DELAY_S,
    DEFAULT_ASO_CONTROLLER_TIMEOUT_S,
    DEFAULT_CLUSTER_READY_POLL_INTERVAL_S,
    DEFAULT_DEPLOYMENT_TIMEOUT_S,
    EXTERNAL_AUTH_ID_SUFFIX,
)

logger = logging.getLogger(__name__)

DEFAULT_CAPZ_USER = "rcapx"
DEFAULT_DEPLOYMENT_ENV = "stage"

_DURATION_DEFAULTS = {
    "deployment_timeout": float(DEFAULT_DEPLOYMENT_TIMEOUT_S),
    "aso_controller_timeout": float(DEFAULT_ASO_CONTROLLER_TIMEOUT_S),
    "cluster_ready_poll_interval": DEFAULT_CLUSTER_READY_POLL_INTERVAL_S,
    "apply_retry_delay": DEFAULT_APPLY_RETRY_DELAY_S,
    "apply_max_retry_delay": DEFAULT_APPLY_MAX_RETRY_DELAY_S,
}


class ReadyCoreConfig(BaseSettings):
    """
    Immutable configuration for a single readiness run.

    Field names map onto the deployment environment variable names
    (matching is case-insensitive), e.g. ``CAPZ_USER`` -> ``capz_user``.

    Example:
        export CAPZ_USER=jdoe
        export DEPLOYMENT_TIMEOUT=90m
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # Naming
    capz_user: str = Field(
        default=DEFAULT_CAPZ_USER,
        description="User identifier embedded in cluster and domain names",
    )
    deployment_env: str = Field(
        default=DEFAULT_DEPLOYMENT_ENV,
        description="Deployment environment identifier (stage, prod, ...)",
    )
    cs_cluster_name: str = Field(
        default="",
        description="Cluster name prefix; defaults to ${CAPZ_USER}-${DEPLOYMENT_ENV}",
    )

    # Clusters
    management_cluster_name: str = Field(default="capz-tests-stage")
    workload_cluster_name: str = Field(default="capz-tests-cluster")
    workload_cluster_namespace: str = Field(
        default="capz-test",
        description="Namespace holding workload cluster resources",
    )
    region: str = Field(default="uksouth", description="Azure region")
    use_kubeconfig: Optional[str] = Field(
        default=None,
        description="External kubeconfig; when set no Kind cluster is used",
    )

    # Timeouts (seconds; Go-style duration strings accepted)
    deployment_timeout: float = Field(default=float(DEFAULT_DEPLOYMENT_TIMEOUT_S))
    aso_controller_timeout: float = Field(default=float(DEFAULT_ASO_CONTROLLER_TIMEOUT_S))
    cluster_ready_poll_interval: float = Field(
        default=DEFAULT_CLUSTER_READY_POLL_INTERVAL_S, gt=0
    )

    # Retry
    apply_max_retries: int = Field(default=DEFAULT_APPLY_MAX_RETRIES, ge=1)
    apply_retry_delay: float = Field(default=DEFAULT_APPLY_RETRY_DELAY_S, gt=0)
    apply_max_retry_delay: float = Field(default=DEFAULT_APPLY_MAX_RETRY_DELAY_S, gt=0)

    # Logging
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        validation_alias="READYCORE_LOG_LEVEL",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        validation_alias="READYCORE_LOG_FORMAT",
    )

    @field_validator(
        "deployment_timeout",
        "aso_controller_timeout",
        "cluster_ready_poll_interval",
        "apply_retry_delay",
        "apply_max_retry_delay",
        mode="before",
    )
    @classmethod
    def parse_durations(cls, v: Any, info) -> Any:
        """Accept "90m"-style strings; fall back to the default on garbage."""
        if isinstance(v, str):
            try:
                return parse_duration(v)
            except ValueError:
                default = _DURATION_DEFAULTS[info.field_name]
                logger.warning(
                    "Invalid %s %r, using default %s",
                    info.field_name.upper(),
                    v,
                    format_duration(default),
                )
                return default
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def lower_log_level(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v

    @model_validator(mode="after")
    def check_retry_bounds(self) -> "ReadyCoreConfig":
        if self.apply_retry_delay > self.apply_max_retry_delay:
            raise ValueError(
                "APPLY_RETRY_DELAY must not exceed APPLY_MAX_RETRY_DELAY"
            )
        return self

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def cluster_name_prefix(self) -> str:
        """CS_CLUSTER_NAME, or ``<user>-<env>`` when unset."""
        return self.cs_cluster_name or f"{self.capz_user}-{self.deployment_env}"

    @property
    def domain_prefix(self) -> str:
        return f"{self.capz_user}-{self.deployment_env}"

    @property
    def external_auth_id(self) -> str:
        return self.cluster_name_prefix + EXTERNAL_AUTH_ID_SUFFIX

    @property
    def resource_group(self) -> str:
        return f"{self.cluster_name_prefix}-resgroup"

    @property
    def is_external_cluster(self) -> bool:
        return bool(self.use_kubeconfig)

    def kube_context(self, current_context: Optional[str] = None) -> str:
        """kubectl context for the management cluster.

        For external clusters the caller supplies the kubeconfig's
        current-context (read through the executor); otherwise the Kind
        naming convention applies.
        """
        if self.is_external_cluster and current_context:
            return current_context
        return f"kind-{self.management_cluster_name}"

    def as_mapping(self) -> dict[str, str]:
        """Flat name -> value view of the settings, as ``readycore validate`` prints it."""
        return {
            "CAPZ_USER": self.capz_user,
            "DEPLOYMENT_ENV": self.deployment_env,
            "CS_CLUSTER_NAME": self.cluster_name_prefix,
            "MANAGEMENT_CLUSTER_NAME": self.management_cluster_name,
            "WORKLOAD_CLUSTER_NAME": self.workload_cluster_name,
            "WORKLOAD_CLUSTER_NAMESPACE": self.workload_cluster_namespace,
            "REGION": self.region,
            "USE_KUBECONFIG": self.use_kubeconfig or "",
            "DEPLOYMENT_TIMEOUT": format_duration(self.deployment_timeout),
            "ASO_CONTROLLER_TIMEOUT": format_duration(self.aso_controller_timeout),
        }


def load_config(**overrides: Any) -> ReadyCoreConfig:
    """Build the configuration for one run.

    Args:
        **overrides: Override any config values

    Returns:
        A new, frozen ReadyCoreConfig instance
    """
    return ReadyCoreConfig(**overrides)
