"""Shared options and error handling for CLI commands."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console

from openebs_ops.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesValidationError,
)
from openebs_ops.integrations.platform.exceptions import (
    PlatformAPIError,
    PlatformConnectionError,
)
from openebs_ops.services.upgrade.exceptions import (
    ExitCode,
    PreflightError,
    UpgradeError,
)

# Shared console instance
console = Console()


# =============================================================================
# Common Typer Option Annotations
# =============================================================================

NamespaceOption = Annotated[
    str,
    typer.Option(
        "--namespace",
        "-n",
        envvar="OPENEBS_NAMESPACE",
        help="Namespace where OpenEBS is installed",
    ),
]

ReleaseNameOption = Annotated[
    str | None,
    typer.Option(
        "--release-name",
        "-r",
        help="Helm release name of the openebs chart (discovered when omitted)",
    ),
]

HelmStorageDriverOption = Annotated[
    str,
    typer.Option(
        "--helm-storage-driver",
        envvar="HELM_DRIVER",
        help="Helm storage driver holding release data: secret or configmap",
    ),
]


# =============================================================================
# Error Handling
# =============================================================================


def handle_k8s_error(error: KubernetesError) -> None:
    """Handle Kubernetes errors with user-friendly output.

    Raises:
        typer.Exit: Always exits with code 1.
    """
    if isinstance(error, KubernetesConnectionError):
        console.print("[red]Error:[/red] Cannot connect to Kubernetes cluster")
        console.print(f"  {error.message}")
        if error.original_error:
            console.print(f"  Cause: {error.original_error}")
        console.print(
            "\n[dim]Hint: Check that your kubeconfig is valid and the cluster is reachable.[/dim]"
        )

    elif isinstance(error, KubernetesAuthError):
        console.print("[red]Error:[/red] Authentication/authorization failed")
        console.print(f"  {error.message}")
        console.print("\n[dim]Hint: Check your credentials, token, or RBAC permissions.[/dim]")

    elif isinstance(error, KubernetesNotFoundError):
        console.print("[red]Error:[/red] Resource not found")
        console.print(f"  {error.message}")

    elif isinstance(error, KubernetesValidationError):
        console.print("[red]Error:[/red] Validation failed")
        console.print(f"  {error.message}")

    elif isinstance(error, KubernetesConflictError):
        console.print("[red]Error:[/red] Resource conflict")
        console.print(f"  {error.message}")

    else:
        console.print(f"[red]Error:[/red] {error.message}")
        if error.status_code:
            console.print(f"  HTTP Status: {error.status_code}")

    raise typer.Exit(ExitCode.ERROR)


def handle_platform_error(error: PlatformAPIError) -> None:
    """Handle REST API errors.

    Raises:
        typer.Exit: Always exits with code 1.
    """
    if isinstance(error, PlatformConnectionError):
        console.print("[red]Error:[/red] Cannot reach the OpenEBS REST API")
        console.print(f"  {error.message}")
        console.print("\n[dim]Hint: Check the api-rest Service, or pass --rest-endpoint.[/dim]")
    else:
        console.print(f"[red]Error:[/red] {error.message}")
        if error.status_code:
            console.print(f"  HTTP Status: {error.status_code}")
    raise typer.Exit(ExitCode.ERROR)


def handle_upgrade_error(error: UpgradeError) -> None:
    """Print an upgrade error with its remediation hint.

    Raises:
        typer.Exit: With the error's exit code.
    """
    title = "Preflight check failed" if isinstance(error, PreflightError) else "Upgrade failed"
    console.print(f"[red]Error:[/red] {title}")
    console.print(f"  {error.message}")
    if error.hint:
        console.print(f"\n[dim]Hint: {error.hint}[/dim]")
    raise typer.Exit(error.exit_code)
