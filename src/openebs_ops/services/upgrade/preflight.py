"""Preflight validation run before any upgrade resource is created.

Checks run in a fixed order and stop at the first failure:

1. upgrade path (installed version to this build)
2. replica rebuilds in progress
3. cordoned storage nodes
4. single-replica volumes
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from openebs_ops.constants import API_REST_PORT
from openebs_ops.integrations.platform import PlatformClient, PlatformConfig
from openebs_ops.services.kubernetes.base import K8sBaseManager
from openebs_ops.services.upgrade.exceptions import (
    CordonedNodesError,
    RebuildInProgressError,
    SingleReplicaVolumeError,
)
from openebs_ops.services.upgrade.versions import (
    SemVer,
    path_is_sane,
    requires_partial_rebuild_disable,
)

if TYPE_CHECKING:
    from openebs_ops.integrations.kubernetes.client import KubernetesClient
    from openebs_ops.integrations.platform.models import Volume
    from openebs_ops.services.upgrade.models import Release, UpgradeRequest

PlatformClientFactory = Callable[["Release"], PlatformClient]

PARTIAL_REBUILD_NOTE = (
    "Partial rebuild will be disabled while the upgrade is in progress, "
    "replicas that go offline will be rebuilt in full"
)


def api_rest_service(release_name: str) -> str:
    """Name of the chart's REST API Service."""
    return f"{release_name}-api-rest"


def platform_client_factory(
    client: KubernetesClient, rest_endpoint: str | None = None
) -> PlatformClientFactory:
    """Build REST clients for a release.

    Without an explicit endpoint the REST Service is reached through the API
    server's service proxy, using the kubeconfig credentials.
    """

    def factory(release: Release) -> PlatformClient:
        if rest_endpoint:
            return PlatformClient(PlatformConfig(base_url=rest_endpoint))
        base_url = client.service_proxy_url(
            release.namespace, api_rest_service(release.release_name), API_REST_PORT
        )
        return PlatformClient(
            PlatformConfig.from_client_options(base_url, client.http_client_options())
        )

    return factory


class PreflightPipeline(K8sBaseManager):
    """Gates the upgrade on the state of the replicated engine."""

    _entity_name = "preflight"

    def __init__(
        self,
        client: KubernetesClient,
        platform_factory: PlatformClientFactory,
        own_version: SemVer | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            client: Kubernetes API client.
            platform_factory: Creates the REST client for a release.
            own_version: Version of this tool, defaults to the upgrade target.
        """
        super().__init__(client)
        self._platform_factory = platform_factory
        self._own_version = own_version

    def run(self, request: UpgradeRequest, release: Release) -> list[str]:
        """Run every enabled check against the release.

        Returns:
            Informational notes for the user.

        Raises:
            UpgradePathError: If the version transition is not allowed.
            PreflightError: If the cluster state makes the upgrade unsafe.
        """
        if not release.replicated_engine_enabled:
            self._log.info("preflight_skipped", reason="replicated engine disabled")
            return []

        notes: list[str] = []
        source = release.chart_version

        if request.skip_upgrade_path_validation_for_unsupported_version:
            self._log.warning("upgrade_path_validation_skipped", source=str(source))
        else:
            path_is_sane(
                source,
                request.target_version_tag,
                allow_unstable=request.allow_unstable,
                own_version=self._own_version,
            )
            self._log.debug("upgrade_path_valid", target=request.target_version_tag)

        if requires_partial_rebuild_disable(source):
            notes.append(PARTIAL_REBUILD_NOTE)

        needs_rest = not (
            request.skip_replica_rebuild
            and request.skip_cordoned_node_validation
            and request.skip_single_replica_volume_validation
        )
        if not needs_rest:
            return notes

        with self._platform_factory(release) as platform:
            volumes: list[Volume] | None = None

            if not request.skip_replica_rebuild:
                volumes = platform.list_volumes()
                self.check_rebuild_in_progress(volumes)

            if not request.skip_cordoned_node_validation:
                self.check_cordoned_nodes(platform)

            if not request.skip_single_replica_volume_validation:
                if volumes is None:
                    volumes = platform.list_volumes()
                self.check_single_replica_volumes(volumes)

        self._log.info("preflight_passed", release=release.release_name)
        return notes

    def check_rebuild_in_progress(self, volumes: list[Volume]) -> None:
        """Fail if any volume has a replica being rebuilt."""
        rebuilding = [v.uuid for v in volumes if v.rebuild_in_progress]
        if rebuilding:
            self._log.warning("rebuild_in_progress", volumes=rebuilding)
            raise RebuildInProgressError(rebuilding)

    def check_cordoned_nodes(self, platform: PlatformClient) -> None:
        """Fail if any storage node is cordoned or draining."""
        cordoned = [n.id for n in platform.list_nodes() if n.is_cordoned]
        if cordoned:
            self._log.warning("cordoned_nodes", nodes=cordoned)
            raise CordonedNodesError(cordoned)

    def check_single_replica_volumes(self, volumes: list[Volume]) -> None:
        """Fail if any volume has exactly one replica, naming its claim."""
        single = [v.uuid for v in volumes if v.spec.num_replicas == 1]
        if not single:
            return

        claims = self._client.list_all(
            self._client.core_v1.list_persistent_volume_claim_for_all_namespaces,
            resource_type="PersistentVolumeClaim",
        )
        by_uid = {
            c.metadata.uid: f"{c.metadata.namespace}/{c.metadata.name}"
            for c in claims
            if c.metadata and c.metadata.uid
        }
        offenders = [by_uid.get(uuid, uuid) for uuid in single]
        self._log.warning("single_replica_volumes", claims=offenders)
        raise SingleReplicaVolumeError(offenders)
