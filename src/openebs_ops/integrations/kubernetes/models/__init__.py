"""Kubernetes object models."""

from openebs_ops.integrations.kubernetes.models.base import ObjectSummary
from openebs_ops.integrations.kubernetes.models.events import EventSummary

__all__ = [
    "EventSummary",
    "ObjectSummary",
]
