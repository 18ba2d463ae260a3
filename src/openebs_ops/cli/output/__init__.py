"""Centralized CLI output utilities.

All table rendering should use these helpers to ensure uniform behavior.

Usage:
    from openebs_ops.cli.output import resource_actions_table

    console.print(resource_actions_table(outcome.actions, "Upgrade resources"))
"""

from openebs_ops.cli.output.table import Table, resource_actions_table

__all__ = ["Table", "resource_actions_table"]
