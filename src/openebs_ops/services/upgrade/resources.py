"""Upgrade resource bundle: builders and lifecycle.

The bundle is a ServiceAccount, ClusterRole, ClusterRoleBinding, ConfigMap and
the upgrade Job. Names are derived from the release name and target version,
so creating twice is harmless and deleting removes exactly one attempt.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from kubernetes.client import (
    RbacV1Subject,
    V1ClusterRole,
    V1ClusterRoleBinding,
    V1ConfigMap,
    V1ConfigMapVolumeSource,
    V1Container,
    V1DeleteOptions,
    V1EnvVar,
    V1EnvVarSource,
    V1ExecAction,
    V1Job,
    V1JobSpec,
    V1LocalObjectReference,
    V1ObjectFieldSelector,
    V1ObjectMeta,
    V1PodSpec,
    V1PodTemplateSpec,
    V1PolicyRule,
    V1Probe,
    V1RoleRef,
    V1ServiceAccount,
    V1Volume,
    V1VolumeMount,
)

from openebs_ops.constants import (
    API_REST_PORT,
    DEFAULT_IMAGE_REGISTRY,
    HELM_STORAGE_DRIVER_ENV,
    UPGRADE_CONFIG_MAP_MOUNT_PATH,
    UPGRADE_CONFIG_MAP_VOLUME_NAME,
    UPGRADE_JOB_BACKOFF_LIMIT,
    UPGRADE_JOB_CONTAINER_NAME,
    UPGRADE_JOB_IMAGE_NAME,
    UPGRADE_JOB_IMAGE_REPO,
    UPGRADE_JOB_IMAGE_TAG,
    upgrade_labels,
)
from openebs_ops.integrations.kubernetes.exceptions import KubernetesError
from openebs_ops.services.kubernetes.base import K8sBaseManager
from openebs_ops.services.upgrade.exceptions import (
    ImageDiscoveryError,
    InvalidSetFileError,
    ProvisioningError,
)
from openebs_ops.services.upgrade.models import (
    ImageProperties,
    ResourceAction,
    UpgradeResourceNames,
    split_helm_values,
)

if TYPE_CHECKING:
    from openebs_ops.services.upgrade.models import UpgradeRequest

PLATFORM_POD_SELECTOR = (
    "app in (api-rest,localpv-provisioner,openebs-zfs-controller,openebs-lvm-controller)"
)

_CRUD = ["create", "list", "delete", "get", "patch"]

# Permissions the upgrade job needs to upgrade the chart and restart the data plane.
UPGRADE_JOB_RBAC_RULES: list[tuple[list[str], list[str], list[str]]] = [
    (["apiextensions.k8s.io"], ["customresourcedefinitions"], _CRUD),
    (
        ["apps"],
        ["controllerrevisions", "daemonsets", "replicasets", "statefulsets", "deployments"],
        _CRUD,
    ),
    ([""], ["serviceaccounts"], _CRUD),
    ([""], ["pods"], [*_CRUD, "deletecollection"]),
    ([""], ["nodes"], ["get", "list"]),
    ([""], ["namespaces"], ["get"]),
    (["events.k8s.io"], ["events"], ["create"]),
    (
        [""],
        ["secrets", "persistentvolumes", "persistentvolumeclaims", "services", "configmaps"],
        ["get", "list", "watch", "create", "delete", "deletecollection", "patch", "update"],
    ),
    (["rbac.authorization.k8s.io"], ["roles"], [*_CRUD, "escalate", "bind"]),
    (["monitoring.coreos.com"], ["prometheusrules", "podmonitors"], _CRUD),
    (["networking.k8s.io"], ["networkpolicies"], _CRUD),
    (["batch"], ["cronjobs", "jobs"], _CRUD),
    (["jaegertracing.io"], ["jaegers"], _CRUD),
    (["rbac.authorization.k8s.io"], ["rolebindings"], _CRUD),
    (["rbac.authorization.k8s.io"], ["clusterroles"], [*_CRUD, "escalate", "bind"]),
    (["rbac.authorization.k8s.io"], ["clusterrolebindings"], _CRUD),
    (["storage.k8s.io"], ["storageclasses", "csidrivers"], _CRUD),
    (["scheduling.k8s.io"], ["priorityclasses"], _CRUD),
    (["policy"], ["poddisruptionbudgets"], _CRUD),
]


# =============================================================================
# --set-file handling
# =============================================================================


def _split_set_file(set_file: list[str]) -> list[tuple[str, str, str]]:
    """Split entries into (entry, key, path), allowing comma-separated entries."""
    parsed = []
    for arg in set_file:
        for entry in split_helm_values(arg):
            key, sep, path = entry.partition("=")
            if not sep or not key or not path:
                raise InvalidSetFileError(entry, "expected key=path")
            parsed.append((entry, key, path))
    return parsed


def config_map_data(set_file: list[str]) -> tuple[dict[str, str], dict[str, str]]:
    """Read --set-file files into ConfigMap data.

    Each distinct file is stored under its own index key (``"1"``, ``"2"``, ...).

    Returns:
        ConfigMap data (index to file content) and the path to index mapping.

    Raises:
        InvalidSetFileError: For a malformed entry or an unreadable file.
    """
    data: dict[str, str] = {}
    index_by_path: dict[str, str] = {}
    for entry, _key, path in _split_set_file(set_file):
        if path in index_by_path:
            continue
        try:
            content = Path(path).expanduser().read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise InvalidSetFileError(entry, str(e)) from e
        index = str(len(index_by_path) + 1)
        index_by_path[path] = index
        data[index] = content
    return data, index_by_path


def job_set_file_args(set_file: list[str], index_by_path: dict[str, str]) -> str:
    """Rewrite --set-file entries to point at the mounted ConfigMap.

    Example:
        ``jaeger-operator.tolerations=/root/tolerations.yaml`` becomes
        ``jaeger-operator.tolerations=/upgrade-config-map/1``.
    """
    args = []
    for entry, key, path in _split_set_file(set_file):
        index = index_by_path.get(path)
        if index is None:
            raise InvalidSetFileError(entry, "file was not added to the upgrade ConfigMap")
        args.append(f"{key}={UPGRADE_CONFIG_MAP_MOUNT_PATH}/{index}")
    return ",".join(args)


# =============================================================================
# Builders
# =============================================================================


def _metadata(name: str, namespace: str | None = None) -> V1ObjectMeta:
    return V1ObjectMeta(name=name, namespace=namespace, labels=upgrade_labels())


def build_service_account(names: UpgradeResourceNames, namespace: str) -> V1ServiceAccount:
    return V1ServiceAccount(metadata=_metadata(names.service_account, namespace))


def build_cluster_role(names: UpgradeResourceNames) -> V1ClusterRole:
    rules = [
        V1PolicyRule(api_groups=groups, resources=resources, verbs=verbs)
        for groups, resources, verbs in UPGRADE_JOB_RBAC_RULES
    ]
    return V1ClusterRole(metadata=_metadata(names.cluster_role), rules=rules)


def build_cluster_role_binding(names: UpgradeResourceNames, namespace: str) -> V1ClusterRoleBinding:
    return V1ClusterRoleBinding(
        metadata=_metadata(names.cluster_role_binding),
        role_ref=V1RoleRef(
            api_group="rbac.authorization.k8s.io",
            kind="ClusterRole",
            name=names.cluster_role,
        ),
        subjects=[
            RbacV1Subject(kind="ServiceAccount", name=names.service_account, namespace=namespace)
        ],
    )


def build_config_map(
    names: UpgradeResourceNames, namespace: str, data: dict[str, str]
) -> V1ConfigMap:
    return V1ConfigMap(metadata=_metadata(names.config_map, namespace), data=data, immutable=True)


def upgrade_job_image(registry: str, version_tag: str | None) -> str:
    """Fully qualified upgrade-job image reference."""
    tag = version_tag or UPGRADE_JOB_IMAGE_TAG
    return f"{registry}/{UPGRADE_JOB_IMAGE_REPO}/{UPGRADE_JOB_IMAGE_NAME}:{tag}"


def upgrade_job_args(request: UpgradeRequest, release_name: str, set_file_arg: str) -> list[str]:
    """Command line of the upgrade-job container."""
    args = [
        f"--rest-endpoint=http://{release_name}-api-rest:{API_REST_PORT}",
        f"--namespace={request.namespace}",
        f"--release-name={release_name}",
        f"--helm-args-set={','.join(request.set)}",
        f"--helm-args-set-file={set_file_arg}",
    ]
    if request.skip_data_plane_restart:
        args.append("--skip-data-plane-restart")
    if request.skip_upgrade_path_validation_for_unsupported_version:
        args.append("--skip-upgrade-path-validation")
    return args


def build_job(
    names: UpgradeResourceNames,
    request: UpgradeRequest,
    release_name: str,
    image: ImageProperties,
    set_file_arg: str,
) -> V1Job:
    """Build the upgrade Job.

    Unrecoverable failures back off up to six times; recoverable ones are
    retried inside the job process and reported through events.
    """
    env = [
        V1EnvVar(name="RUST_LOG", value=os.environ.get("RUST_LOG", "info")),
        V1EnvVar(
            name="POD_NAME",
            value_from=V1EnvVarSource(
                field_ref=V1ObjectFieldSelector(field_path="metadata.name")
            ),
        ),
        V1EnvVar(
            name=HELM_STORAGE_DRIVER_ENV,
            value=request.storage_driver or os.environ.get(HELM_STORAGE_DRIVER_ENV),
        ),
    ]
    container = V1Container(
        name=UPGRADE_JOB_CONTAINER_NAME,
        image=upgrade_job_image(image.registry, request.target_version_tag),
        image_pull_policy=image.pull_policy,
        args=upgrade_job_args(request, release_name, set_file_arg),
        env=env,
        liveness_probe=V1Probe(
            _exec=V1ExecAction(command=["pgrep", "upgrade-job"]),
            initial_delay_seconds=10,
            period_seconds=60,
        ),
        volume_mounts=[
            V1VolumeMount(
                name=UPGRADE_CONFIG_MAP_VOLUME_NAME,
                mount_path=UPGRADE_CONFIG_MAP_MOUNT_PATH,
                read_only=True,
            )
        ],
    )
    pull_secrets = (
        [V1LocalObjectReference(name=s["name"]) for s in image.pull_secrets if s.get("name")]
        if image.pull_secrets
        else None
    )
    return V1Job(
        metadata=_metadata(names.job, request.namespace),
        spec=V1JobSpec(
            backoff_limit=UPGRADE_JOB_BACKOFF_LIMIT,
            template=V1PodTemplateSpec(
                metadata=V1ObjectMeta(labels=upgrade_labels()),
                spec=V1PodSpec(
                    containers=[container],
                    restart_policy="OnFailure",
                    service_account_name=names.service_account,
                    image_pull_secrets=pull_secrets,
                    volumes=[
                        V1Volume(
                            name=UPGRADE_CONFIG_MAP_VOLUME_NAME,
                            config_map=V1ConfigMapVolumeSource(name=names.config_map),
                        )
                    ],
                ),
            ),
        ),
    )


def registry_from_image(image: str | None) -> str | None:
    """Registry of an image reference with exactly three ``/``-separated parts."""
    if not image:
        return None
    parts = image.split("/")
    return parts[0] if len(parts) == 3 else None


# =============================================================================
# Manager
# =============================================================================


class UpgradeResourceManager(K8sBaseManager):
    """Creates and deletes the upgrade resource bundle."""

    _entity_name = "upgrade_resources"

    def discover_image_properties(
        self, namespace: str, release_name: str, registry: str | None = None
    ) -> ImageProperties:
        """Derive registry and pull settings from a running platform pod.

        The first pod with a known platform container decides. Its image
        registry is used unless ``registry`` is given; pull secrets and pull
        policy are copied as is.

        Raises:
            ImageDiscoveryError: If no platform pod is found.
        """
        known = {
            "api-rest",
            "openebs-zfs-plugin",
            "openebs-lvm-plugin",
            f"{release_name}-localpv-provisioner",
        }
        pods = self._client.list_all(
            self._client.core_v1.list_namespaced_pod,
            resource_type="Pod",
            namespace=namespace,
            label_selector=PLATFORM_POD_SELECTOR,
        )
        for pod in pods:
            spec = pod.spec
            if spec is None:
                continue
            container = next((c for c in spec.containers or [] if c.name in known), None)
            if container is None:
                continue
            properties = ImageProperties(
                registry=registry or registry_from_image(container.image) or DEFAULT_IMAGE_REGISTRY,
                pull_secrets=[{"name": s.name} for s in spec.image_pull_secrets or []] or None,
                pull_policy=container.image_pull_policy,
            )
            self._log.debug(
                "discovered_image_properties",
                pod=pod.metadata.name,
                container=container.name,
                registry=properties.registry,
            )
            return properties
        raise ImageDiscoveryError(namespace)

    def build_bundle(self, request: UpgradeRequest, release_name: str) -> dict[str, Any]:
        """Build the five bundle objects keyed by kind.

        Raises:
            InvalidSetFileError: For a bad --set-file entry.
            ImageDiscoveryError: If the image registry cannot be derived.
        """
        ns = request.namespace
        names = UpgradeResourceNames.for_release(release_name, request.target_version_tag)
        data, index_by_path = config_map_data(request.set_file)
        set_file_arg = job_set_file_args(request.set_file, index_by_path)
        image = self.discover_image_properties(ns, release_name, request.registry)
        return {
            "ServiceAccount": build_service_account(names, ns),
            "ClusterRole": build_cluster_role(names),
            "ClusterRoleBinding": build_cluster_role_binding(names, ns),
            "ConfigMap": build_config_map(names, ns, data),
            "Job": build_job(names, request, release_name, image, set_file_arg),
        }

    async def create_bundle(
        self, request: UpgradeRequest, release_name: str
    ) -> list[ResourceAction]:
        """Create the bundle, all five creates in flight at once.

        Objects that already exist count as success.

        Raises:
            ProvisioningError: If any create fails, after all have finished.
        """
        ns = request.namespace
        bundle = self.build_bundle(request, release_name)
        core, rbac, batch = self._client.core_v1, self._client.rbac_v1, self._client.batch_v1

        calls: list[tuple[str, str, str | None, Callable[[], Any]]] = [
            (
                "ServiceAccount",
                bundle["ServiceAccount"].metadata.name,
                ns,
                lambda: core.create_namespaced_service_account(ns, bundle["ServiceAccount"]),
            ),
            (
                "ClusterRoleBinding",
                bundle["ClusterRoleBinding"].metadata.name,
                None,
                lambda: rbac.create_cluster_role_binding(bundle["ClusterRoleBinding"]),
            ),
            (
                "ClusterRole",
                bundle["ClusterRole"].metadata.name,
                None,
                lambda: rbac.create_cluster_role(bundle["ClusterRole"]),
            ),
            (
                "ConfigMap",
                bundle["ConfigMap"].metadata.name,
                ns,
                lambda: core.create_namespaced_config_map(ns, bundle["ConfigMap"]),
            ),
            (
                "Job",
                bundle["Job"].metadata.name,
                ns,
                lambda: batch.create_namespaced_job(ns, bundle["Job"]),
            ),
        ]

        async def create(
            kind: str, name: str, namespace: str | None, call: Callable[[], Any]
        ) -> ResourceAction:
            created = await asyncio.to_thread(self._create_if_absent, call, kind, name, namespace)
            outcome = "created" if created else "already_exists"
            return ResourceAction(kind=kind, name=name, namespace=namespace, outcome=outcome)

        return await self._fan_in([create(*c) for c in calls], "Failed to create upgrade resources")

    async def delete_bundle(
        self, release_name: str, namespace: str, version_tag: str | None
    ) -> list[ResourceAction]:
        """Delete the bundle of one release and target version.

        Deletion uses foreground propagation, so the Job's pods go first.
        Objects that do not exist count as success.

        Raises:
            ProvisioningError: If any delete fails, after all have finished.
        """
        names = UpgradeResourceNames.for_release(release_name, version_tag)
        core, rbac, batch = self._client.core_v1, self._client.rbac_v1, self._client.batch_v1
        options = V1DeleteOptions(propagation_policy="Foreground")

        calls: list[tuple[str, str, str | None, Callable[[], Any]]] = [
            (
                "Job",
                names.job,
                namespace,
                lambda: batch.delete_namespaced_job(names.job, namespace, body=options),
            ),
            (
                "ConfigMap",
                names.config_map,
                namespace,
                lambda: core.delete_namespaced_config_map(
                    names.config_map, namespace, body=options
                ),
            ),
            (
                "ClusterRole",
                names.cluster_role,
                None,
                lambda: rbac.delete_cluster_role(names.cluster_role, body=options),
            ),
            (
                "ClusterRoleBinding",
                names.cluster_role_binding,
                None,
                lambda: rbac.delete_cluster_role_binding(names.cluster_role_binding, body=options),
            ),
            (
                "ServiceAccount",
                names.service_account,
                namespace,
                lambda: core.delete_namespaced_service_account(
                    names.service_account, namespace, body=options
                ),
            ),
        ]

        async def delete(
            kind: str, name: str, ns: str | None, call: Callable[[], Any]
        ) -> ResourceAction:
            deleted = await asyncio.to_thread(self._delete_if_present, call, kind, name, ns)
            outcome = "deleted" if deleted else "not_found"
            return ResourceAction(kind=kind, name=name, namespace=ns, outcome=outcome)

        return await self._fan_in([delete(*c) for c in calls], "Failed to delete upgrade resources")

    async def _fan_in(self, coros: list[Any], message: str) -> list[ResourceAction]:
        """Run all operations to completion, then raise the first failure."""
        results = await asyncio.gather(*coros, return_exceptions=True)
        actions = [r for r in results if isinstance(r, ResourceAction)]
        errors = [r for r in results if isinstance(r, BaseException)]
        if not errors:
            return actions

        self._log.error(
            "bundle_operation_failed",
            failed=len(errors),
            succeeded=len(actions),
            errors=[str(e) for e in errors],
        )
        first = errors[0]
        if isinstance(first, KubernetesError):
            raise ProvisioningError(message, cause=first) from first
        raise first
