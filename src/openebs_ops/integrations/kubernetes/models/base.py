"""Pydantic views of kubernetes SDK objects.

SDK objects leave any nested attribute ``None`` when the API server omits it,
so the readers here walk attribute paths and stop at the first gap.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ObjectSummary(BaseModel):
    """Identity of an API object, copied from its metadata."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(description="Object name")
    namespace: str | None = Field(default=None, description="Namespace, unset for cluster scope")
    uid: str | None = Field(default=None, description="Server assigned UID")
    labels: dict[str, str] = Field(default_factory=dict, description="Object labels")


def dig(obj: Any, path: str, default: Any = None) -> Any:
    """Follow a dotted attribute path such as ``"metadata.name"``."""
    current = obj
    for attr in path.split("."):
        if current is None:
            return default
        current = getattr(current, attr, None)
    return default if current is None else current


def as_datetime(value: Any) -> datetime | None:
    """Timestamp as a datetime; raw payloads carry RFC 3339 strings."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def metadata_fields(obj: Any) -> dict[str, Any]:
    """ObjectSummary fields of an SDK object, as keyword arguments."""
    return {
        "name": dig(obj, "metadata.name", ""),
        "namespace": dig(obj, "metadata.namespace"),
        "uid": dig(obj, "metadata.uid"),
        "labels": dict(dig(obj, "metadata.labels", {})),
    }
