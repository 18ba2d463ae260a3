"""Shared fixtures and builders for upgrade service tests."""

from __future__ import annotations

import base64
import gzip
import json
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest

from openebs_ops.services.upgrade.models import Release, StorageDriver, UpgradeRequest
from openebs_ops.services.upgrade.versions import SemVer

EVENT_BASE_TIME = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)


def helm_payload(
    chart_version: str = "3.10.0",
    chart_name: str = "openebs",
    *,
    user_values: dict[str, Any] | None = None,
    chart_values: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """A Helm release record as stored by Helm."""
    return {
        "name": "openebs",
        "chart": {
            "metadata": {"name": chart_name, "version": chart_version},
            "values": chart_values if chart_values is not None else {},
        },
        "config": user_values if user_values is not None else {},
    }


def encode_release(payload: dict[str, Any], *, secret: bool = True) -> str:
    """Encode a release record the way the API returns it."""
    encoded = base64.b64encode(gzip.compress(json.dumps(payload).encode()))
    if secret:
        encoded = base64.b64encode(encoded)
    return encoded.decode()


def release_object(
    object_name: str,
    payload: dict[str, Any],
    *,
    release_name: str = "openebs",
    secret: bool = True,
) -> SimpleNamespace:
    """A Secret or ConfigMap holding a Helm release record."""
    return SimpleNamespace(
        metadata=SimpleNamespace(
            name=object_name,
            labels={"name": release_name, "owner": "helm", "status": "deployed"},
        ),
        data={"release": encode_release(payload, secret=secret)},
    )


def k8s_event(
    name: str,
    *,
    action: str = "Upgrading",
    note: dict[str, Any] | str | None = None,
    reason: str = "OpenebsUpgrade",
    offset: int = 0,
) -> SimpleNamespace:
    """An events.k8s.io/v1 event as the client returns it."""
    if isinstance(note, dict):
        note = json.dumps(note)
    return SimpleNamespace(
        metadata=SimpleNamespace(
            name=name, namespace="openebs", uid=None, labels=None, creation_timestamp=None
        ),
        reason=reason,
        action=action,
        note=note,
        type="Normal",
        regarding=SimpleNamespace(kind="Job", name="openebs-upgrade-v4-2-0"),
        event_time=EVENT_BASE_TIME + timedelta(seconds=offset),
        deprecated_last_timestamp=None,
    )


def status_note(message: str = "Upgrade in progress") -> dict[str, str]:
    return {"fromVersion": "3.10.0", "toVersion": "4.2.0", "message": message}


@pytest.fixture
def mock_k8s_client() -> MagicMock:
    """Mock Kubernetes client; list_all returns nothing unless configured."""
    client = MagicMock()
    client.default_namespace = "default"
    client.list_all.return_value = []
    return client


@pytest.fixture
def release() -> Release:
    """A resolved 3.10.0 release with the replicated engine enabled."""
    return Release(
        release_name="openebs",
        namespace="openebs",
        storage_driver=StorageDriver.SECRET,
        chart_name="openebs",
        chart_version=SemVer(3, 10, 0),
        replicated_engine_enabled=True,
    )


@pytest.fixture
def upgrade_request() -> UpgradeRequest:
    """Upgrade request targeting v4.2.0 with a fixed registry."""
    return UpgradeRequest(
        namespace="openebs",
        target_version_tag="v4.2.0",
        registry="registry.example.com",
    )
