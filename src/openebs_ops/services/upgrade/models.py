"""Data models for the upgrade workflow."""

from __future__ import annotations

import json
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from openebs_ops.constants import upgrade_obj_suffix
from openebs_ops.integrations.kubernetes.models.events import EventSummary
from openebs_ops.services.upgrade.exceptions import (
    UnsupportedStorageDriverError,
    UpgradeEventError,
)
from openebs_ops.services.upgrade.versions import SemVer


class StorageDriver(StrEnum):
    """Helm release storage backend."""

    SECRET = "secret"
    CONFIGMAP = "configmap"

    @classmethod
    def parse(cls, value: str | None) -> StorageDriver:
        """Parse a Helm driver name as Helm's ``HELM_DRIVER`` accepts it.

        Raises:
            UnsupportedStorageDriverError: For any other driver (e.g. ``sql``).
        """
        normalized = (value or "").strip().lower()
        if normalized in ("", "secret", "secrets"):
            return cls.SECRET
        if normalized in ("configmap", "configmaps"):
            return cls.CONFIGMAP
        raise UnsupportedStorageDriverError(value or "")


class Release(BaseModel):
    """A deployed release of the platform chart."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    release_name: str
    namespace: str
    storage_driver: StorageDriver = StorageDriver.SECRET
    chart_name: str
    chart_version: SemVer
    replicated_engine_enabled: bool = False


def split_helm_values(value: str) -> list[str]:
    """Split a ``--set`` style argument into its comma separated entries.

    As in Helm, a comma escaped with a backslash or inside a ``{a,b}`` list
    belongs to the value. Escapes are kept so the job receives them unchanged.
    """
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    escaped = False
    for char in value:
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth = max(depth - 1, 0)
        elif char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def _validate_key_value(entries: list[str], flag: str, *, require_value: bool) -> list[str]:
    for entry in entries:
        for part in split_helm_values(entry):
            key, sep, value = part.partition("=")
            if not sep or not key.strip() or (require_value and not value.strip()):
                raise ValueError(f"{flag} entry '{part}' must be key=value")
    return entries


class UpgradeRequest(BaseModel):
    """Parameters of one upgrade invocation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    namespace: str
    release_name: str | None = None
    storage_driver: str = ""
    target_version_tag: str | None = None
    registry: str | None = None
    rest_endpoint: str | None = None
    allow_unstable: bool = False
    dry_run: bool = False
    skip_data_plane_restart: bool = False
    skip_single_replica_volume_validation: bool = False
    skip_replica_rebuild: bool = False
    skip_cordoned_node_validation: bool = False
    skip_upgrade_path_validation_for_unsupported_version: bool = False
    set: list[str] = Field(default_factory=list)
    set_file: list[str] = Field(default_factory=list)

    @field_validator("set")
    @classmethod
    def validate_set(cls, v: list[str]) -> list[str]:
        """Each --set entry must be key=value."""
        return _validate_key_value(v, "--set", require_value=False)

    @field_validator("set_file")
    @classmethod
    def validate_set_file(cls, v: list[str]) -> list[str]:
        """Each --set-file entry must be key=path."""
        return _validate_key_value(v, "--set-file", require_value=True)


class UpgradeResourceNames(BaseModel):
    """Deterministic names of the resources created for one upgrade."""

    model_config = ConfigDict(frozen=True)

    release_name: str
    suffix: str

    @classmethod
    def for_release(cls, release_name: str, version_tag: str | None) -> UpgradeResourceNames:
        return cls(release_name=release_name, suffix=upgrade_obj_suffix(version_tag))

    def _name(self, component: str) -> str:
        return f"{self.release_name}-{component}-{self.suffix}"

    @property
    def job(self) -> str:
        return self._name("upgrade")

    @property
    def service_account(self) -> str:
        return self._name("upgrade-service-account")

    @property
    def cluster_role(self) -> str:
        return self._name("upgrade-cluster-role")

    @property
    def cluster_role_binding(self) -> str:
        return self._name("upgrade-role-binding")

    @property
    def config_map(self) -> str:
        return self._name("upgrade-config-map")

    @property
    def events_field_selector(self) -> str:
        """Field selector matching events about the upgrade Job."""
        return f"regarding.kind=Job,regarding.name={self.job}"


class ImageProperties(BaseModel):
    """Registry and pull settings for the upgrade-job container."""

    model_config = ConfigDict(frozen=True)

    registry: str
    pull_secrets: list[dict[str, str]] | None = None
    pull_policy: str | None = None


class ResourceAction(BaseModel):
    """What happened to one resource during create or delete."""

    model_config = ConfigDict(frozen=True)

    kind: str
    name: str
    namespace: str | None = None
    outcome: Literal["created", "already_exists", "deleted", "not_found"]

    def describe(self) -> str:
        """Human readable one-liner, e.g. "Created Job 'x' in the 'y' namespace"."""
        where = f" in the '{self.namespace}' namespace" if self.namespace else ""
        verb = {
            "created": "Created",
            "already_exists": "Found existing",
            "deleted": "Deleted",
            "not_found": "Already absent:",
        }[self.outcome]
        return f"{verb} {self.kind} '{self.name}'{where}"


class UpgradeStatusEvent(BaseModel):
    """Status reported by the upgrade job through a Kubernetes event."""

    model_config = ConfigDict(frozen=True)

    from_version: str
    to_version: str
    message: str
    action: str | None = None
    reason: str | None = None
    event_time: datetime | None = None

    @classmethod
    def from_event(cls, event: EventSummary) -> UpgradeStatusEvent:
        """Decode the JSON note of an upgrade event.

        Raises:
            UpgradeEventError: If the note is missing or not the expected JSON.
        """
        if not event.note:
            raise UpgradeEventError(event.name, "note not present in upgrade event")
        try:
            payload: Any = json.loads(event.note)
            return cls(
                from_version=payload["fromVersion"],
                to_version=payload["toVersion"],
                message=payload["message"],
                action=event.action,
                reason=event.reason,
                event_time=event.event_time,
            )
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            raise UpgradeEventError(event.name, f"failed to deserialize note: {e}") from e


class UpgradeOutcome(BaseModel):
    """Result of one upgrade run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    state: Literal["in_progress", "rolled_back", "timed_out", "dry_run"]
    release: Release
    event: UpgradeStatusEvent | None = None
    actions: list[ResourceAction] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)
