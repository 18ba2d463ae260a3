"""Helm release resolution.

Reads the release records Helm stores in Secrets or ConfigMaps, decodes
them and derives the installed chart version and engine flags.
"""

from __future__ import annotations

import base64
import binascii
import gzip
import json
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from openebs_ops.constants import (
    HELM_RELEASE_DATA_KEY,
    HELM_RELEASE_SECRET_TYPE,
    UMBRELLA_CHART_NAME,
)
from openebs_ops.services.kubernetes.base import K8sBaseManager
from openebs_ops.services.upgrade.exceptions import (
    AmbiguousReleaseError,
    ReleaseDecodeError,
    ReleaseNotFoundError,
    ReleaseResolutionError,
)
from openebs_ops.services.upgrade.models import Release, StorageDriver
from openebs_ops.services.upgrade.versions import parse_version

# =============================================================================
# Release payload models
# =============================================================================


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class EngineEnabled(_Payload):
    enabled: bool | None = None


class ReplicatedEngines(_Payload):
    mayastor: EngineEnabled | None = None


class Engines(_Payload):
    replicated: ReplicatedEngines | None = None


class EngineValues(_Payload):
    """Values tree as shipped with the chart or set by the user.

    ``engines`` is absent in 3.x charts, which use a top level ``mayastor`` key.
    """

    mayastor: EngineEnabled | None = None
    engines: Engines | None = None


class ChartMetadata(_Payload):
    name: str
    version: str


class ChartRecord(_Payload):
    metadata: ChartMetadata
    values: EngineValues | None = None


class HelmRelease(_Payload):
    """The subset of a Helm release record the upgrade needs."""

    name: str | None = None
    chart: ChartRecord
    config: EngineValues | None = None


def _user_replicated(r: HelmRelease) -> bool | None:
    if r.config and r.config.engines and r.config.engines.replicated:
        mayastor = r.config.engines.replicated.mayastor
        return mayastor.enabled if mayastor else None
    return None


def _user_legacy(r: HelmRelease) -> bool | None:
    if r.config and r.config.mayastor:
        return r.config.mayastor.enabled
    return None


def _chart_replicated(r: HelmRelease) -> bool | None:
    values = r.chart.values
    if values and values.engines and values.engines.replicated:
        mayastor = values.engines.replicated.mayastor
        return mayastor.enabled if mayastor else None
    return None


def _chart_legacy(r: HelmRelease) -> bool | None:
    values = r.chart.values
    if values and values.mayastor:
        return values.mayastor.enabled
    return None


# User-set values win over chart defaults; 4.x layout wins over 3.x layout.
REPLICATED_ENGINE_FLAG_SOURCES: tuple[Callable[[HelmRelease], bool | None], ...] = (
    _user_replicated,
    _user_legacy,
    _chart_replicated,
    _chart_legacy,
)


def replicated_engine_enabled(release: HelmRelease) -> bool:
    """Whether the replicated engine is enabled, per the first source that says so."""
    for source in REPLICATED_ENGINE_FLAG_SOURCES:
        enabled = source(release)
        if enabled is not None:
            return enabled
    return False


# =============================================================================
# Decoding
# =============================================================================


def decode_release_payload(data: str | bytes, object_name: str, *, secret: bool) -> HelmRelease:
    """Decode a Helm release record.

    Helm stores the record as base64(gzip(json)). Secret data returned by the
    API carries one more base64 layer, removed first when ``secret`` is set.

    Raises:
        ReleaseDecodeError: Naming the stage that failed.
    """
    raw = data.encode() if isinstance(data, str) else data
    try:
        if secret:
            raw = base64.b64decode(raw, validate=True)
        compressed = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ReleaseDecodeError("base64", object_name, str(e)) from e

    try:
        document = gzip.decompress(compressed)
    except (OSError, EOFError) as e:
        raise ReleaseDecodeError("gzip", object_name, str(e)) from e

    try:
        payload = json.loads(document)
    except ValueError as e:
        raise ReleaseDecodeError("json", object_name, str(e)) from e

    try:
        return HelmRelease.model_validate(payload)
    except ValidationError as e:
        raise ReleaseDecodeError("payload", object_name, str(e)) from e


# =============================================================================
# Resolver
# =============================================================================


class ReleaseResolver(K8sBaseManager):
    """Finds the deployed platform release and reads its version and flags."""

    _entity_name = "release"

    def resolve(
        self,
        namespace: str | None = None,
        release_name: str | None = None,
        storage_driver: str = "",
    ) -> Release:
        """Resolve the deployed release.

        Args:
            namespace: Namespace the chart is installed in.
            release_name: Helm release name; when absent, the single release of
                the ``openebs`` chart in the namespace is used.
            storage_driver: Helm storage driver, as in ``HELM_DRIVER``.

        Returns:
            The resolved release.

        Raises:
            ReleaseNotFoundError: If no deployed release matches.
            AmbiguousReleaseError: If more than one deployed release matches.
            UnsupportedStorageDriverError: For an unsupported driver.
            ReleaseDecodeError: If a release record cannot be decoded.
        """
        ns = self._resolve_namespace(namespace)
        driver = StorageDriver.parse(storage_driver)
        self._log.debug("resolving_release", namespace=ns, release_name=release_name, driver=driver)

        records = self._list_records(ns, driver, release_name)

        if release_name:
            if not records:
                raise ReleaseNotFoundError(ns, release_name)
            if len(records) > 1:
                raise AmbiguousReleaseError(ns, [name for name, _ in records])
            name, helm_release = records[0]
        else:
            matches = [(n, r) for n, r in records if r.chart.metadata.name == UMBRELLA_CHART_NAME]
            if not matches:
                raise ReleaseNotFoundError(ns)
            if len(matches) > 1:
                raise AmbiguousReleaseError(ns, [name for name, _ in matches])
            name, helm_release = matches[0]

        try:
            version = parse_version(helm_release.chart.metadata.version)
        except ValueError as e:
            raise ReleaseDecodeError("payload", name, str(e)) from e

        release = Release(
            release_name=name,
            namespace=ns,
            storage_driver=driver,
            chart_name=helm_release.chart.metadata.name,
            chart_version=version,
            replicated_engine_enabled=replicated_engine_enabled(helm_release),
        )
        self._log.info(
            "resolved_release",
            release_name=release.release_name,
            chart=release.chart_name,
            version=str(release.chart_version),
            replicated_engine=release.replicated_engine_enabled,
        )
        return release

    def _list_records(
        self, namespace: str, driver: StorageDriver, release_name: str | None
    ) -> list[tuple[str, HelmRelease]]:
        """List and decode deployed release records as (release name, record) pairs."""
        if driver is StorageDriver.SECRET:
            label_selector = "status=deployed"
            if release_name:
                label_selector += f",name={release_name}"
            objects = self._client.list_all(
                self._client.core_v1.list_namespaced_secret,
                resource_type="Secret",
                namespace=namespace,
                label_selector=label_selector,
                field_selector=f"type={HELM_RELEASE_SECRET_TYPE}",
            )
            kind = "Secret"
        else:
            label_selector = "owner=helm,status=deployed"
            if release_name:
                label_selector += f",name={release_name}"
            objects = self._client.list_all(
                self._client.core_v1.list_namespaced_config_map,
                resource_type="ConfigMap",
                namespace=namespace,
                label_selector=label_selector,
            )
            kind = "ConfigMap"

        self._log.debug("listed_release_records", kind=kind, count=len(objects))
        return [self._decode_record(obj, kind, namespace) for obj in objects]

    def _decode_record(self, obj: Any, kind: str, namespace: str) -> tuple[str, HelmRelease]:
        object_name = obj.metadata.name
        labels = obj.metadata.labels
        if not labels:
            raise ReleaseResolutionError(
                f"{kind} '{object_name}' in namespace '{namespace}' doesn't have labels"
            )
        release_name = labels.get("name")
        if not release_name:
            raise ReleaseResolutionError(
                f"Failed to get the value for the label key 'name' on {kind} "
                f"'{object_name}' in namespace '{namespace}'"
            )

        data = obj.data or {}
        if HELM_RELEASE_DATA_KEY not in data:
            raise ReleaseDecodeError(
                "payload", object_name, f"no value mapped to the '{HELM_RELEASE_DATA_KEY}' key"
            )
        helm_release = decode_release_payload(
            data[HELM_RELEASE_DATA_KEY], object_name, secret=kind == "Secret"
        )
        return release_name, helm_release
