"""Volume and node models for the replicated-engine REST API (v0)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _PlatformModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class NexusChild(_PlatformModel):
    """A replica or device attached to a volume target."""

    uri: str = ""
    state: str | None = None
    rebuild_progress: int | None = Field(
        default=None,
        alias="rebuildProgress",
        description="Percentage rebuilt; set only while rebuilding",
    )


class VolumeTarget(_PlatformModel):
    """The nexus exposing a volume to its consumer."""

    uuid: str | None = None
    node: str | None = None
    children: list[NexusChild] = []


class VolumeSpec(_PlatformModel):
    uuid: str
    num_replicas: int
    size: int | None = None


class VolumeState(_PlatformModel):
    uuid: str | None = None
    status: str | None = None
    target: VolumeTarget | None = None


class Volume(_PlatformModel):
    """A replicated-engine volume."""

    spec: VolumeSpec
    state: VolumeState | None = None

    @property
    def uuid(self) -> str:
        return self.spec.uuid

    @property
    def rebuild_in_progress(self) -> bool:
        """True if any child of the volume's active target is being rebuilt."""
        target = self.state.target if self.state else None
        if target is None:
            return False
        return any(child.rebuild_progress is not None for child in target.children)


class NodeSpec(_PlatformModel):
    id: str
    grpc_endpoint: str | None = Field(default=None, alias="grpcEndpoint")
    cordondrainstate: dict[str, Any] | None = None


class Node(_PlatformModel):
    """A node managed by the replicated engine."""

    id: str
    spec: NodeSpec | None = None
    state: dict[str, Any] | None = None

    @property
    def is_cordoned(self) -> bool:
        """True if the node is cordoned, draining or drained."""
        return bool(self.spec and self.spec.cordondrainstate)
