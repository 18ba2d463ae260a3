"""Upgrade orchestration.

Drives one upgrade attempt end to end:

    resolve -> preflight -> (dry run stop) -> purge stale events
            -> provision -> poll events -> in progress | rolled back | timed out

and answers status queries for an attempt started earlier.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from openebs_ops.constants import (
    UPGRADE_EVENT_POLL_ATTEMPTS,
    UPGRADE_EVENT_POLL_INTERVAL_SECONDS,
    UPGRADE_EVENT_REASON,
    VALIDATION_FAILED_ACTION,
)
from openebs_ops.integrations.kubernetes.exceptions import KubernetesError
from openebs_ops.integrations.kubernetes.models.events import EventSummary
from openebs_ops.services.kubernetes.base import K8sBaseManager
from openebs_ops.services.upgrade.exceptions import (
    NoUpgradeEventError,
    UnreleasedTargetError,
    UpgradeError,
    UpgradeEventError,
)
from openebs_ops.services.upgrade.helm_values import generate_values_file
from openebs_ops.services.upgrade.models import (
    UpgradeOutcome,
    UpgradeResourceNames,
    UpgradeStatusEvent,
)
from openebs_ops.services.upgrade.preflight import PreflightPipeline
from openebs_ops.services.upgrade.release import ReleaseResolver
from openebs_ops.services.upgrade.resources import UpgradeResourceManager
from openebs_ops.services.upgrade.versions import parse_version_tag

if TYPE_CHECKING:
    from openebs_ops.integrations.kubernetes.client import KubernetesClient
    from openebs_ops.services.upgrade.models import Release, UpgradeRequest
    from openebs_ops.services.upgrade.preflight import PlatformClientFactory
    from openebs_ops.services.upgrade.versions import SemVer

_EPOCH = datetime.min.replace(tzinfo=UTC)


class UpgradeEventReader(K8sBaseManager):
    """Reads the events the upgrade job publishes about itself."""

    _entity_name = "upgrade_events"

    def list_upgrade_events(self, namespace: str, field_selector: str) -> list[EventSummary]:
        """Events matching the selector whose reason marks them as upgrade events."""
        events = self._client.list_all(
            self._client.events_v1.list_namespaced_event,
            resource_type="Event",
            namespace=namespace,
            field_selector=field_selector,
        )
        summaries = [EventSummary.from_k8s_object(e) for e in events]
        return [e for e in summaries if e.reason == UPGRADE_EVENT_REASON]

    def latest_event(self, namespace: str, field_selector: str) -> EventSummary | None:
        """Most recent upgrade event; on equal times the one listed last wins."""
        latest: EventSummary | None = None
        for event in self.list_upgrade_events(namespace, field_selector):
            if latest is None or _event_time(event) >= _event_time(latest):
                latest = event
        return latest

    def purge(self, namespace: str, field_selector: str) -> int:
        """Delete events left by an earlier attempt with the same job name.

        Returns:
            Number of events found before deletion.
        """
        stale = self._client.list_all(
            self._client.events_v1.list_namespaced_event,
            resource_type="Event",
            namespace=namespace,
            field_selector=field_selector,
        )
        self._log.debug("purging_events", namespace=namespace, count=len(stale))
        try:
            self._client.events_v1.delete_collection_namespaced_event(
                namespace=namespace, field_selector=field_selector
            )
        except Exception as e:
            self._handle_api_error(e, "Event", None, namespace)
        return len(stale)


def _event_time(event: EventSummary) -> datetime:
    if event.event_time is None:
        return _EPOCH
    if event.event_time.tzinfo is None:
        return event.event_time.replace(tzinfo=UTC)
    return event.event_time


class UpgradeOrchestrator(K8sBaseManager):
    """Runs an upgrade attempt and reports how it went."""

    _entity_name = "upgrade"

    def __init__(
        self,
        client: KubernetesClient,
        platform_factory: PlatformClientFactory,
        *,
        poll_attempts: int = UPGRADE_EVENT_POLL_ATTEMPTS,
        poll_interval: float = UPGRADE_EVENT_POLL_INTERVAL_SECONDS,
        own_version: SemVer | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: Kubernetes API client.
            platform_factory: Creates the REST client for a release.
            poll_attempts: Times to look for the upgrade job's first event.
            poll_interval: Seconds to wait before each look.
            own_version: Version of this tool, defaults to the upgrade target.
        """
        super().__init__(client)
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval
        self.resolver = ReleaseResolver(client)
        self.preflight = PreflightPipeline(client, platform_factory, own_version)
        self.resources = UpgradeResourceManager(client)
        self.events = UpgradeEventReader(client)

    async def apply(self, request: UpgradeRequest) -> UpgradeOutcome:
        """Run one upgrade attempt.

        Returns:
            The outcome. ``rolled_back`` and ``timed_out`` are outcomes, not errors.

        Raises:
            ReleaseResolutionError: If the release cannot be resolved.
            UpgradePathError: If the version transition is not allowed.
            PreflightError: If a preflight check fails; nothing is created.
            ProvisioningError: If the resources cannot be created; they are removed.
            UpgradeEventError: If a failure event cannot be decoded.
        """
        ns = request.namespace
        release = await asyncio.to_thread(
            self.resolver.resolve, ns, request.release_name, request.storage_driver
        )
        log = self._log.bind(release=release.release_name, namespace=ns)

        notes = await asyncio.to_thread(self.preflight.run, request, release)
        if request.dry_run:
            log.info("dry_run_complete")
            return UpgradeOutcome(state="dry_run", release=release, notes=notes)

        names = UpgradeResourceNames.for_release(release.release_name, request.target_version_tag)
        selector = names.events_field_selector
        await asyncio.to_thread(self.events.purge, ns, selector)

        try:
            actions = await self.resources.create_bundle(request, release.release_name)
        except (UpgradeError, KubernetesError) as e:
            log.error("provisioning_failed", error=str(e))
            await self._rollback_after_failure(release, request)
            raise

        log.info("upgrade_job_created", job=names.job)

        for attempt in range(1, self.poll_attempts + 1):
            await asyncio.sleep(self.poll_interval)
            try:
                event = await asyncio.to_thread(self.events.latest_event, ns, selector)
            except KubernetesError as e:
                log.warning("event_poll_failed", attempt=attempt, error=str(e))
                continue
            if event is None:
                log.debug("no_upgrade_event_yet", attempt=attempt)
                continue

            if event.action == VALIDATION_FAILED_ACTION:
                status = UpgradeStatusEvent.from_event(event)
                log.warning("upgrade_validation_failed", message=status.message)
                rollback = await self.resources.delete_bundle(
                    release.release_name, ns, request.target_version_tag
                )
                return UpgradeOutcome(
                    state="rolled_back",
                    release=release,
                    event=status,
                    actions=actions + rollback,
                    notes=notes,
                )

            log.info("upgrade_started", action=event.action)
            return UpgradeOutcome(
                state="in_progress",
                release=release,
                event=self._decode_informational(event),
                actions=actions,
                notes=notes,
            )

        log.warning("upgrade_event_timeout", attempts=self.poll_attempts)
        return UpgradeOutcome(state="timed_out", release=release, actions=actions, notes=notes)

    async def _rollback_after_failure(self, release: Release, request: UpgradeRequest) -> None:
        try:
            await self.resources.delete_bundle(
                release.release_name, request.namespace, request.target_version_tag
            )
        except (UpgradeError, KubernetesError) as e:
            self._log.error("rollback_failed", release=release.release_name, error=str(e))

    def _decode_informational(self, event: EventSummary) -> UpgradeStatusEvent | None:
        try:
            return UpgradeStatusEvent.from_event(event)
        except UpgradeEventError as e:
            self._log.debug("upgrade_event_not_decoded", event=event.name, error=str(e))
            return None

    def write_values_file(
        self,
        namespace: str,
        output_dir: str | Path,
        *,
        release_name: str | None = None,
        storage_driver: str = "",
        target_version_tag: str | None = None,
    ) -> Path:
        """Generate the chart values override file for upgrading the release.

        Raises:
            UnreleasedTargetError: If there is no target release tag.
        """
        target = parse_version_tag(target_version_tag)
        if target is None:
            raise UnreleasedTargetError()
        release = self.resolver.resolve(namespace, release_name, storage_driver)
        crds = self._client.list_all(
            self._client.apiextensions_v1.list_custom_resource_definition,
            resource_type="CustomResourceDefinition",
        )
        crd_names = [crd.metadata.name for crd in crds if crd.metadata and crd.metadata.name]
        return generate_values_file(output_dir, release.chart_version, target, crd_names)


class UpgradeStatusReporter(K8sBaseManager):
    """Answers "how is the upgrade going" without any local state."""

    _entity_name = "upgrade_status"

    def __init__(self, client: KubernetesClient, target_version_tag: str | None) -> None:
        super().__init__(client)
        self._target_version_tag = target_version_tag
        self._resolver = ReleaseResolver(client)
        self._events = UpgradeEventReader(client)

    def status(
        self,
        namespace: str,
        release_name: str | None = None,
        storage_driver: str = "",
    ) -> UpgradeStatusEvent:
        """Most recent status reported by the upgrade job.

        Raises:
            NoUpgradeEventError: If the job has not reported anything.
            UpgradeEventError: If the event cannot be decoded.
        """
        if not release_name:
            release_name = self._resolver.resolve(namespace, None, storage_driver).release_name
        names = UpgradeResourceNames.for_release(release_name, self._target_version_tag)

        event = self._events.latest_event(namespace, names.events_field_selector)
        if event is None:
            raise NoUpgradeEventError(names.job, namespace)
        return UpgradeStatusEvent.from_event(event)
