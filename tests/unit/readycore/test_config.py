"""Tests for run configuration loading."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from readycore.config import ReadyCoreConfig, load_config

_ENV_VARS = (
    "CAPZ_USER",
    "DEPLOYMENT_ENV",
    "CS_CLUSTER_NAME",
    "REGION",
    "USE_KUBECONFIG",
    "DEPLOYMENT_TIMEOUT",
    "ASO_CONTROLLER_TIMEOUT",
    "MANAGEMENT_CLUSTER_NAME",
    "READYCORE_LOG_LEVEL",
    "READYCORE_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


class TestDefaults:
    def test_defaults(self):
        config = load_config()

        assert config.capz_user == "rcapx"
        assert config.deployment_env == "stage"
        assert config.cluster_name_prefix == "rcapx-stage"
        assert config.domain_prefix == "rcapx-stage"
        assert config.external_auth_id == "rcapx-stage-ea"
        assert config.resource_group == "rcapx-stage-resgroup"
        assert config.deployment_timeout == 3600
        assert config.log_format == "text"

    def test_frozen(self):
        config = load_config()
        with pytest.raises(ValidationError):
            config.capz_user = "other"


class TestEnvironment:
    def test_names_from_environment(self, monkeypatch):
        monkeypatch.setenv("CAPZ_USER", "jdoe")
        monkeypatch.setenv("DEPLOYMENT_ENV", "dev")

        config = load_config()

        assert config.cluster_name_prefix == "jdoe-dev"

    def test_explicit_cluster_name_wins(self, monkeypatch):
        monkeypatch.setenv("CS_CLUSTER_NAME", "custom")
        assert load_config().cluster_name_prefix == "custom"

    def test_go_style_durations(self, monkeypatch):
        monkeypatch.setenv("DEPLOYMENT_TIMEOUT", "90m")
        monkeypatch.setenv("ASO_CONTROLLER_TIMEOUT", "5m")

        config = load_config()

        assert config.deployment_timeout == 5400
        assert config.aso_controller_timeout == 300

    def test_invalid_duration_falls_back_to_default(self, monkeypatch, caplog):
        monkeypatch.setenv("DEPLOYMENT_TIMEOUT", "forever")

        with caplog.at_level(logging.WARNING, logger="readycore.config"):
            config = load_config()

        assert config.deployment_timeout == 3600
        assert "Invalid DEPLOYMENT_TIMEOUT 'forever', using default 1h0m0s" in caplog.text

    def test_log_settings(self, monkeypatch):
        monkeypatch.setenv("READYCORE_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("READYCORE_LOG_FORMAT", "json")

        config = load_config()

        assert config.log_level == "debug"
        assert config.log_format == "json"

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("CAPZ_USER=fromfile\n")
        assert load_config().capz_user == "fromfile"

    def test_overrides_beat_environment(self, monkeypatch):
        monkeypatch.setenv("REGION", "westeurope")
        assert load_config(region="eastus").region == "eastus"


class TestValidation:
    def test_retry_delay_above_cap_rejected(self):
        with pytest.raises(ValidationError, match="APPLY_RETRY_DELAY"):
            load_config(apply_retry_delay=120, apply_max_retry_delay=60)

    def test_poll_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            load_config(cluster_ready_poll_interval=0)


class TestKubeContext:
    def test_kind_context(self):
        config = load_config(management_cluster_name="capz-tests-stage")

        assert config.is_external_cluster is False
        assert config.kube_context() == "kind-capz-tests-stage"

    def test_external_kubeconfig_uses_current_context(self):
        config = ReadyCoreConfig(use_kubeconfig="/tmp/kubeconfig")

        assert config.is_external_cluster
        assert config.kube_context("aks-admin") == "aks-admin"

    def test_as_mapping(self):
        mapping = load_config().as_mapping()

        assert mapping["CS_CLUSTER_NAME"] == "rcapx-stage"
        assert mapping["DEPLOYMENT_TIMEOUT"] == "1h0m0s"
        assert mapping["USE_KUBECONFIG"] == ""
