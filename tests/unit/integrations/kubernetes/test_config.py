"""Unit tests for Kubernetes configuration model."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from openebs_ops.integrations.kubernetes.config import KubernetesConfig


@pytest.mark.unit
@pytest.mark.kubernetes
class TestKubernetesConfig:
    """Test KubernetesConfig Pydantic model."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        config = KubernetesConfig()
        assert config.kubeconfig is None
        assert config.context is None
        assert config.namespace is None
        assert config.timeout == 300
        assert config.retry_attempts == 3

    def test_kubeconfig_path_expansion(self) -> None:
        """Test that tilde in kubeconfig path is expanded."""
        config = KubernetesConfig(kubeconfig="~/custom/config")
        assert config.kubeconfig == str(Path("~/custom/config").expanduser())

    def test_timeout_validation_zero(self) -> None:
        """Test that zero timeout raises ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            KubernetesConfig(timeout=0)
        assert "timeout must be positive" in str(exc_info.value)

    def test_retry_attempts_validation(self) -> None:
        """Test that retry_attempts must be at least one."""
        with pytest.raises(ValidationError):
            KubernetesConfig(retry_attempts=0)

    def test_extra_fields_forbidden(self) -> None:
        """Test that unknown fields are rejected."""
        with pytest.raises(ValidationError):
            KubernetesConfig(cluster="prod")  # type: ignore[call-arg]


@pytest.mark.unit
@pytest.mark.kubernetes
class TestKubernetesConfigFromEnv:
    """Test loading configuration from the environment."""

    def test_from_env_reads_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that OPENEBS_ variables are picked up."""
        monkeypatch.setenv("OPENEBS_KUBECONFIG", "/etc/kube/config")
        monkeypatch.setenv("OPENEBS_CONTEXT", "staging")
        monkeypatch.setenv("OPENEBS_NAMESPACE", "storage")
        monkeypatch.setenv("OPENEBS_K8S_TIMEOUT", "60")

        config = KubernetesConfig.from_env()

        assert config.kubeconfig == "/etc/kube/config"
        assert config.context == "staging"
        assert config.namespace == "storage"
        assert config.timeout == 60

    def test_overrides_take_precedence(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that explicit overrides win over environment variables."""
        monkeypatch.setenv("OPENEBS_CONTEXT", "staging")

        config = KubernetesConfig.from_env({"context": "prod", "kubeconfig": None})

        assert config.context == "prod"
        assert config.kubeconfig is None

    def test_empty_environment(self) -> None:
        """Test defaults when nothing is set."""
        assert KubernetesConfig.from_env() == KubernetesConfig()
