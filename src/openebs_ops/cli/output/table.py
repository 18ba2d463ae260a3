"""Table output for CLI commands.

Wraps Rich's Table so long names (release-derived resource names can run
past 60 characters) wrap instead of being truncated.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Literal

from rich.table import Table as RichTable

if TYPE_CHECKING:
    from rich.console import ConsoleRenderable, RichCast

    from openebs_ops.services.upgrade.models import ResourceAction

OverflowMethod = Literal["fold", "crop", "ellipsis", "ignore"]

OUTCOME_STYLES = {
    "created": "green",
    "already_exists": "yellow",
    "deleted": "red",
    "not_found": "dim",
}


class Table(RichTable):
    """Rich Table whose columns fold long text by default.

    Usage:
        from openebs_ops.cli.output import Table

        table = Table(title="Upgrade resources")
        table.add_column("Name")  # Will wrap long text by default
        table.add_column("Kind", no_wrap=True)  # Override to disable wrapping
    """

    def add_column(
        self,
        header: ConsoleRenderable | RichCast | str = "",
        footer: ConsoleRenderable | RichCast | str = "",
        *,
        overflow: OverflowMethod = "fold",
        **kwargs: Any,
    ) -> None:
        """Add a column with overflow="fold" by default.

        Args:
            header: Column header text or renderable.
            footer: Column footer text or renderable.
            overflow: How to handle text overflow. Defaults to "fold" (wrap text).
            **kwargs: Any other ``rich.table.Table.add_column`` option.
        """
        super().add_column(header, footer, overflow=overflow, **kwargs)


def resource_actions_table(actions: Iterable[ResourceAction], title: str) -> Table:
    """One row per resource touched, colored by what happened to it."""
    table = Table(title=title)
    table.add_column("Kind", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Namespace")
    table.add_column("Result")
    for action in actions:
        style = OUTCOME_STYLES.get(action.outcome, "")
        table.add_row(
            action.kind,
            action.name,
            action.namespace or "-",
            f"[{style}]{action.outcome.replace('_', ' ')}[/{style}]",
        )
    return table
