"""Platform REST API connection configuration."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class PlatformConfig(BaseModel):
    """Connection settings for the OpenEBS replicated-engine REST API."""

    model_config = ConfigDict(extra="forbid")

    base_url: str
    timeout: int = 30
    verify_ssl: bool | str = True
    retries: int = 3
    headers: dict[str, str] = {}
    cert: tuple[str, str] | None = None

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate base URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        """Validate retries is at least one attempt."""
        if v < 1:
            raise ValueError("retries must be at least 1")
        return v

    @classmethod
    def from_client_options(cls, base_url: str, options: dict[str, Any]) -> PlatformConfig:
        """Build from httpx options produced by ``KubernetesClient.http_client_options``."""
        return cls(
            base_url=base_url,
            headers=options.get("headers", {}),
            verify_ssl=options.get("verify", True),
            cert=options.get("cert"),
        )
