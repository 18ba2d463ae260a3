"""Main CLI entry point using Typer."""

from __future__ import annotations

import typer
from rich.console import Console

from openebs_ops import __version__
from openebs_ops.cli.commands.upgrade import register_upgrade_commands
from openebs_ops.integrations.kubernetes import KubernetesClient, KubernetesConfig
from openebs_ops.logging.config import configure_logging

app = typer.Typer(
    name="kubectl-openebs",
    help="Manage OpenEBS installations on Kubernetes.",
    add_completion=True,
    no_args_is_help=True,
)

console = Console()

# Connection overrides collected by the global callback
_connection: dict[str, str | None] = {}
_client: KubernetesClient | None = None


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"kubectl-openebs version {__version__}")
        raise typer.Exit()


def get_kubernetes_client() -> KubernetesClient:
    """Build the Kubernetes client on first use."""
    global _client
    if _client is None:
        _client = KubernetesClient(KubernetesConfig.from_env(dict(_connection)))
    return _client


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode.",
    ),
    kubeconfig: str | None = typer.Option(
        None,
        "--kubeconfig",
        "-k",
        help="Path to the kubeconfig file.",
    ),
    context: str | None = typer.Option(
        None,
        "--context",
        help="Kubeconfig context to use.",
    ),
) -> None:
    """kubectl-openebs - Operate OpenEBS on Kubernetes."""
    global _client
    configure_logging(verbose=verbose, debug=debug)
    _client = None
    _connection.clear()
    _connection.update(kubeconfig=kubeconfig, context=context)


register_upgrade_commands(app, get_kubernetes_client)


if __name__ == "__main__":
    app()
