"""Tests for cli/output/table.py."""

from __future__ import annotations

import pytest
from rich.console import Console

from openebs_ops.cli.output import Table, resource_actions_table
from openebs_ops.services.upgrade.models import ResourceAction


def _render(table: Table) -> str:
    console = Console(width=120, record=True)
    console.print(table)
    return console.export_text()


@pytest.mark.unit
class TestTable:
    """Tests for the Table defaults."""

    def test_add_column_uses_fold_overflow_by_default(self) -> None:
        table = Table()
        table.add_column("Name")
        assert table.columns[0].overflow == "fold"

    def test_add_column_respects_explicit_overflow(self) -> None:
        table = Table()
        table.add_column("ID", overflow="ellipsis")
        assert table.columns[0].overflow == "ellipsis"

    def test_add_column_passes_style_through(self) -> None:
        table = Table()
        table.add_column("Kind", style="cyan", no_wrap=True)
        assert table.columns[0].style == "cyan"
        assert table.columns[0].no_wrap is True


@pytest.mark.unit
class TestResourceActionsTable:
    """Tests for resource_actions_table."""

    def test_one_row_per_action(self) -> None:
        actions = [
            ResourceAction(kind="ServiceAccount", name="sa", namespace="ns", outcome="created"),
            ResourceAction(kind="ClusterRole", name="role", outcome="already_exists"),
        ]

        table = resource_actions_table(actions, "Upgrade resources")

        assert table.title == "Upgrade resources"
        assert [c.header for c in table.columns] == ["Kind", "Name", "Namespace", "Result"]
        assert table.row_count == 2

    def test_rendered_outcomes(self) -> None:
        actions = [
            ResourceAction(kind="Job", name="openebs-upgrade", namespace="ns", outcome="created"),
            ResourceAction(kind="ClusterRole", name="role", outcome="already_exists"),
            ResourceAction(kind="ConfigMap", name="cm", namespace="openebs", outcome="not_found"),
        ]

        output = _render(resource_actions_table(actions, "Upgrade resources"))

        assert "openebs-upgrade" in output
        assert "already exists" in output
        assert "not found" in output
        assert "already_exists" not in output
