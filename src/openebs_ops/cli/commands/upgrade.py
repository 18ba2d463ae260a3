"""CLI commands for upgrading OpenEBS in place.

Provides ``upgrade`` (start an upgrade), ``upgrade status`` (latest status
reported by the upgrade job) and ``upgrade values-file`` (chart values
override for a manual Helm upgrade).
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

from openebs_ops import constants
from openebs_ops.cli.commands.base import (
    HelmStorageDriverOption,
    NamespaceOption,
    ReleaseNameOption,
    console,
    handle_k8s_error,
    handle_platform_error,
    handle_upgrade_error,
)
from openebs_ops.cli.output import resource_actions_table
from openebs_ops.cli.runner import OperationInterrupted, run_cancellable
from openebs_ops.integrations.kubernetes.exceptions import KubernetesError
from openebs_ops.integrations.platform.exceptions import PlatformAPIError
from openebs_ops.services.upgrade.exceptions import ExitCode, UpgradeError
from openebs_ops.services.upgrade.models import UpgradeRequest
from openebs_ops.services.upgrade.orchestrator import UpgradeOrchestrator, UpgradeStatusReporter
from openebs_ops.services.upgrade.preflight import platform_client_factory

if TYPE_CHECKING:
    from openebs_ops.integrations.kubernetes.client import KubernetesClient
    from openebs_ops.services.upgrade.models import ResourceAction, UpgradeOutcome

DEFAULT_NAMESPACE = "openebs"

STATUS_HINT = "You can see the recent upgrade status using 'kubectl-openebs upgrade status'"


# =============================================================================
# Output
# =============================================================================


def _print_actions(actions: list[ResourceAction], title: str) -> None:
    if actions:
        console.print(resource_actions_table(actions, title))


def _report_outcome(outcome: UpgradeOutcome) -> None:
    """Print the outcome; exits non-zero when the upgrade job rolled back."""
    release = outcome.release
    for note in outcome.notes:
        console.print(f"[yellow]Note:[/yellow] {note}")

    if outcome.state == "dry_run":
        console.print(
            f"[green]Dry run:[/green] release '{release.release_name}' "
            f"(version {release.chart_version}) passed all preflight checks"
        )
        return

    if outcome.state == "rolled_back":
        creates = [a for a in outcome.actions if a.outcome in ("created", "already_exists")]
        deletes = [a for a in outcome.actions if a.outcome in ("deleted", "not_found")]
        _print_actions(creates, "Upgrade resources")
        console.print(
            "[red]Error:[/red] The validation for upgrade has failed, hence deleting the "
            "upgrade resources. Please re-run upgrade with valid values."
        )
        if outcome.event:
            console.print(f"  {outcome.event.message}")
        _print_actions(deletes, "Rolled back")
        raise typer.Exit(ExitCode.VALIDATION_FAILED)

    _print_actions(outcome.actions, "Upgrade resources")
    if outcome.state == "in_progress":
        console.print("[green]The upgrade has started[/green]")
    else:
        console.print(
            "[yellow]The upgrade job has not reported any status yet.[/yellow] "
            "Its resources were left in place."
        )
    console.print(f"[dim]{STATUS_HINT}[/dim]")


# =============================================================================
# Command Registration
# =============================================================================


def register_upgrade_commands(
    app: typer.Typer,
    get_client: Callable[[], KubernetesClient],
) -> None:
    """Register upgrade CLI commands."""

    upgrade_app = typer.Typer(
        name="upgrade",
        help="Upgrade OpenEBS in place",
        invoke_without_command=True,
    )
    app.add_typer(upgrade_app, name="upgrade")

    @upgrade_app.callback(invoke_without_command=True)
    def upgrade(
        ctx: typer.Context,
        namespace: NamespaceOption = DEFAULT_NAMESPACE,
        release_name: ReleaseNameOption = None,
        helm_storage_driver: HelmStorageDriverOption = "",
        registry: Annotated[
            str | None,
            typer.Option("--registry", help="Container registry of the upgrade-job image"),
        ] = None,
        allow_unstable: Annotated[
            bool,
            typer.Option(
                "--allow-unstable",
                hidden=True,
                help="Allow upgrading from a stable version to an unstable one",
            ),
        ] = False,
        dry_run: Annotated[
            bool,
            typer.Option(
                "--dry-run",
                "-d",
                help="Run the preflight checks only, don't create anything",
            ),
        ] = False,
        skip_data_plane_restart: Annotated[
            bool,
            typer.Option(
                "--skip-data-plane-restart",
                help="Don't restart the data plane pods as part of the upgrade",
            ),
        ] = False,
        skip_single_replica_volume_validation: Annotated[
            bool,
            typer.Option(
                "--skip-single-replica-volume-validation",
                help="Don't fail when single replica volumes exist",
            ),
        ] = False,
        skip_replica_rebuild: Annotated[
            bool,
            typer.Option(
                "--skip-replica-rebuild",
                help="Don't fail when replica rebuilds are in progress",
            ),
        ] = False,
        skip_cordoned_node_validation: Annotated[
            bool,
            typer.Option(
                "--skip-cordoned-node-validation",
                help="Don't fail when storage nodes are cordoned",
            ),
        ] = False,
        skip_upgrade_path_validation_for_unsupported_version: Annotated[
            bool,
            typer.Option(
                "--skip-upgrade-path-validation-for-unsupported-version",
                hidden=True,
                help="Upgrade even from versions this release does not support upgrading from",
            ),
        ] = False,
        set_values: Annotated[
            list[str] | None,
            typer.Option("--set", help="Helm value to set, key=value (repeatable)"),
        ] = None,
        set_files: Annotated[
            list[str] | None,
            typer.Option("--set-file", help="Helm value to set from a file, key=path (repeatable)"),
        ] = None,
        rest_endpoint: Annotated[
            str | None,
            typer.Option(
                "--rest-endpoint",
                help="OpenEBS REST API URL (defaults to the API server's service proxy)",
            ),
        ] = None,
    ) -> None:
        """Upgrade OpenEBS to the version of this tool.

        Examples:
            kubectl-openebs upgrade -n openebs
            kubectl-openebs upgrade --dry-run
            kubectl-openebs upgrade --set-file jaeger-operator.tolerations=tolerations.yaml
        """
        if ctx.invoked_subcommand is not None:
            return

        try:
            request = UpgradeRequest(
                namespace=namespace,
                release_name=release_name,
                storage_driver=helm_storage_driver,
                target_version_tag=constants.RELEASE_TAG,
                registry=registry,
                rest_endpoint=rest_endpoint,
                allow_unstable=allow_unstable
                or skip_upgrade_path_validation_for_unsupported_version,
                dry_run=dry_run,
                skip_data_plane_restart=skip_data_plane_restart,
                skip_single_replica_volume_validation=skip_single_replica_volume_validation,
                skip_replica_rebuild=skip_replica_rebuild,
                skip_cordoned_node_validation=skip_cordoned_node_validation,
                skip_upgrade_path_validation_for_unsupported_version=(
                    skip_upgrade_path_validation_for_unsupported_version
                ),
                set=set_values or [],
                set_file=set_files or [],
            )
        except ValueError as e:
            console.print(f"[red]Error:[/red] Invalid arguments\n  {e}")
            raise typer.Exit(ExitCode.ERROR) from e

        try:
            client = get_client()
            orchestrator = UpgradeOrchestrator(
                client, platform_client_factory(client, request.rest_endpoint)
            )
            outcome = run_cancellable(orchestrator.apply(request))
        except OperationInterrupted as e:
            console.print("[yellow]Interrupted.[/yellow] Upgrade resources were left as they are.")
            console.print(f"[dim]{STATUS_HINT}[/dim]")
            raise typer.Exit(ExitCode.INTERRUPTED) from e
        except UpgradeError as e:
            handle_upgrade_error(e)
        except KubernetesError as e:
            handle_k8s_error(e)
        except PlatformAPIError as e:
            handle_platform_error(e)
        else:
            _report_outcome(outcome)

    @upgrade_app.command("status")
    def status(
        namespace: NamespaceOption = DEFAULT_NAMESPACE,
        release_name: ReleaseNameOption = None,
        helm_storage_driver: HelmStorageDriverOption = "",
    ) -> None:
        """Show the most recent status reported by the upgrade job.

        Examples:
            kubectl-openebs upgrade status -n openebs
        """
        try:
            reporter = UpgradeStatusReporter(get_client(), constants.RELEASE_TAG)
            event = reporter.status(namespace, release_name, helm_storage_driver)
        except UpgradeError as e:
            handle_upgrade_error(e)
        except KubernetesError as e:
            handle_k8s_error(e)
        else:
            console.print(f"Upgrade From: {event.from_version}")
            console.print(f"Upgrade To: {event.to_version}")
            console.print(f"Upgrade Status: {event.message}")

    @upgrade_app.command("values-file")
    def values_file(
        namespace: NamespaceOption = DEFAULT_NAMESPACE,
        release_name: ReleaseNameOption = None,
        helm_storage_driver: HelmStorageDriverOption = "",
        output_dir: Annotated[
            Path,
            typer.Option(
                "--output-dir",
                file_okay=False,
                dir_okay=True,
                exists=True,
                help="Directory to write the values file to",
            ),
        ] = Path("."),
    ) -> None:
        """Write the Helm values override needed to upgrade the release.

        Examples:
            kubectl-openebs upgrade values-file --output-dir /tmp
        """
        try:
            client = get_client()
            orchestrator = UpgradeOrchestrator(client, platform_client_factory(client))
            path = orchestrator.write_values_file(
                namespace,
                output_dir,
                release_name=release_name,
                storage_driver=helm_storage_driver,
                target_version_tag=constants.RELEASE_TAG,
            )
        except UpgradeError as e:
            handle_upgrade_error(e)
        except KubernetesError as e:
            handle_k8s_error(e)
        else:
            console.print(f"Values file written to {path}")
