"""events.k8s.io/v1 Event model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from openebs_ops.integrations.kubernetes.models.base import (
    ObjectSummary,
    as_datetime,
    dig,
    metadata_fields,
)


class EventSummary(ObjectSummary):
    """An events.k8s.io/v1 Event, reduced to what upgrade status needs."""

    reason: str | None = Field(default=None, description="Event reason")
    action: str | None = Field(default=None, description="Action taken or failed")
    note: str | None = Field(default=None, description="Human readable (or JSON) payload")
    type: str | None = Field(default=None, description="Event type (Normal/Warning)")
    regarding_kind: str | None = Field(default=None, description="Kind of the regarding object")
    regarding_name: str | None = Field(default=None, description="Name of the regarding object")
    event_time: datetime | None = Field(default=None, description="Time the event was observed")

    @classmethod
    def from_k8s_object(cls, obj: Any) -> EventSummary:
        """Create from a kubernetes EventsV1Event object.

        ``event_time`` falls back to the deprecated last timestamp and then to
        the creation timestamp, so every event can be ordered.
        """
        event_time = (
            as_datetime(getattr(obj, "event_time", None))
            or as_datetime(getattr(obj, "deprecated_last_timestamp", None))
            or as_datetime(dig(obj, "metadata.creation_timestamp"))
        )
        return cls(
            **metadata_fields(obj),
            reason=getattr(obj, "reason", None),
            action=getattr(obj, "action", None),
            note=getattr(obj, "note", None),
            type=getattr(obj, "type", None),
            regarding_kind=dig(obj, "regarding.kind"),
            regarding_name=dig(obj, "regarding.name"),
            event_time=event_time,
        )
