"""Upgrade workflow for an OpenEBS installation.

Resolves the deployed release, validates that upgrading is safe, launches the
upgrade job and follows its progress through Kubernetes events.
"""

from openebs_ops.services.upgrade.exceptions import ExitCode, UpgradeError
from openebs_ops.services.upgrade.models import (
    Release,
    ResourceAction,
    StorageDriver,
    UpgradeOutcome,
    UpgradeRequest,
    UpgradeResourceNames,
    UpgradeStatusEvent,
)
from openebs_ops.services.upgrade.orchestrator import UpgradeOrchestrator, UpgradeStatusReporter
from openebs_ops.services.upgrade.preflight import PreflightPipeline, platform_client_factory
from openebs_ops.services.upgrade.release import ReleaseResolver
from openebs_ops.services.upgrade.resources import UpgradeResourceManager
from openebs_ops.services.upgrade.versions import SemVer

__all__ = [
    "ExitCode",
    "PreflightPipeline",
    "Release",
    "ReleaseResolver",
    "ResourceAction",
    "SemVer",
    "StorageDriver",
    "UpgradeError",
    "UpgradeOrchestrator",
    "UpgradeOutcome",
    "UpgradeRequest",
    "UpgradeResourceManager",
    "UpgradeResourceNames",
    "UpgradeStatusEvent",
    "UpgradeStatusReporter",
    "platform_client_factory",
]
