"""Kubernetes connection configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class KubernetesConfig(BaseModel):
    """Where and how to reach the cluster that runs OpenEBS."""

    model_config = ConfigDict(extra="forbid")

    kubeconfig: str | None = None
    context: str | None = None
    namespace: str | None = None
    timeout: int = 300
    retry_attempts: int = 3

    @field_validator("kubeconfig")
    @classmethod
    def validate_kubeconfig(cls, v: str | None) -> str | None:
        """Expand ~ in kubeconfig path."""
        if v is None:
            return None
        return str(Path(v).expanduser())

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        """Validate retry_attempts is at least one."""
        if v < 1:
            raise ValueError("retry_attempts must be at least 1")
        return v

    @classmethod
    def from_env(cls, overrides: dict[str, Any] | None = None) -> KubernetesConfig:
        """Create configuration from environment variables and explicit overrides.

        Explicit, non-None overrides (usually CLI flags) take precedence over
        environment variables.

        Supported environment variables:
            OPENEBS_KUBECONFIG: Path to kubeconfig file
            OPENEBS_CONTEXT: Kubeconfig context name
            OPENEBS_NAMESPACE: Namespace where OpenEBS is installed
            OPENEBS_K8S_TIMEOUT: Default timeout in seconds
        """
        config_dict: dict[str, Any] = {}

        if kubeconfig := os.environ.get("OPENEBS_KUBECONFIG"):
            config_dict["kubeconfig"] = kubeconfig
        if context := os.environ.get("OPENEBS_CONTEXT"):
            config_dict["context"] = context
        if namespace := os.environ.get("OPENEBS_NAMESPACE"):
            config_dict["namespace"] = namespace
        if timeout := os.environ.get("OPENEBS_K8S_TIMEOUT"):
            config_dict["timeout"] = int(timeout)

        for key, value in (overrides or {}).items():
            if value is not None:
                config_dict[key] = value

        return cls.model_validate(config_dict)
