"""Unit tests for Kubernetes object models."""

from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace

import pytest

from openebs_ops.integrations.kubernetes.models import EventSummary
from openebs_ops.integrations.kubernetes.models.base import as_datetime, dig, metadata_fields


@pytest.mark.unit
class TestReaders:
    """Test attribute readers for SDK objects."""

    def test_dig_follows_path(self) -> None:
        obj = SimpleNamespace(metadata=SimpleNamespace(name="job"))
        assert dig(obj, "metadata.name") == "job"

    def test_dig_stops_at_missing_step(self) -> None:
        """Test a None anywhere on the path yields the default."""
        obj = SimpleNamespace(metadata=None)
        assert dig(obj, "metadata.name", "") == ""
        assert dig(None, "metadata.name") is None

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("2026-10-01T12:00:00Z", datetime(2026, 10, 1, 12, 0, tzinfo=UTC)),
            (datetime(2026, 10, 1, tzinfo=UTC), datetime(2026, 10, 1, tzinfo=UTC)),
            ("yesterday", None),
            (None, None),
        ],
    )
    def test_as_datetime(self, value: object, expected: datetime | None) -> None:
        assert as_datetime(value) == expected

    def test_metadata_fields_without_labels(self) -> None:
        obj = SimpleNamespace(
            metadata=SimpleNamespace(name="cm", namespace="openebs", uid="u1", labels=None)
        )
        assert metadata_fields(obj) == {
            "name": "cm",
            "namespace": "openebs",
            "uid": "u1",
            "labels": {},
        }


@pytest.mark.unit
class TestEventSummary:
    """Test conversion of events.k8s.io/v1 events."""

    def _event(self, **times: object) -> SimpleNamespace:
        return SimpleNamespace(
            metadata=SimpleNamespace(
                name="openebs-upgrade-v4-2-0.1",
                namespace="openebs",
                uid="e1",
                labels={"app": "upgrade"},
                creation_timestamp=times.get("created"),
            ),
            reason="OpenebsUpgrade",
            action="Upgrading",
            note="{}",
            type="Normal",
            regarding=SimpleNamespace(kind="Job", name="openebs-upgrade-v4-2-0"),
            event_time=times.get("event_time"),
            deprecated_last_timestamp=times.get("last"),
        )

    def test_fields_copied(self) -> None:
        summary = EventSummary.from_k8s_object(self._event())

        assert summary.name == "openebs-upgrade-v4-2-0.1"
        assert summary.labels == {"app": "upgrade"}
        assert summary.regarding_kind == "Job"
        assert summary.regarding_name == "openebs-upgrade-v4-2-0"
        assert summary.event_time is None

    def test_event_time_falls_back_to_last_timestamp_then_creation(self) -> None:
        """Test older events without eventTime can still be ordered."""
        created = datetime(2026, 10, 1, 11, 0, tzinfo=UTC)
        last = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)

        with_last = EventSummary.from_k8s_object(self._event(created=created, last=last))
        assert with_last.event_time == last
        assert EventSummary.from_k8s_object(self._event(created=created)).event_time == created
