"""Upgrade workflow exceptions.

Every error carries a user-facing ``message``, an optional remediation
``hint`` and the process ``exit_code`` the CLI terminates with.
"""

from __future__ import annotations

from enum import IntEnum

from openebs_ops.integrations.kubernetes.exceptions import KubernetesError


class ExitCode(IntEnum):
    """Process exit codes for the upgrade commands."""

    SUCCESS = 0
    ERROR = 1
    RELEASE_RESOLUTION = 2
    UPGRADE_PATH = 3
    PREFLIGHT = 4
    PROVISIONING = 5
    VALIDATION_FAILED = 6
    EVENT = 7
    INTERRUPTED = 130


class UpgradeError(Exception):
    """Base exception for the upgrade workflow.

    Attributes:
        message: Human-readable error message.
        hint: Suggested remediation, if any.
        exit_code: Exit code the CLI uses for this error.
    """

    exit_code: ExitCode = ExitCode.ERROR

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


# =============================================================================
# Release resolution
# =============================================================================


class ReleaseResolutionError(UpgradeError):
    """Raised when the installed release cannot be determined."""

    exit_code = ExitCode.RELEASE_RESOLUTION


class ReleaseNotFoundError(ReleaseResolutionError):
    """Raised when no deployed release matches."""

    def __init__(self, namespace: str, release_name: str | None = None) -> None:
        if release_name:
            message = f"No deployed release '{release_name}' found in namespace '{namespace}'"
        else:
            message = f"No deployed openebs release found in namespace '{namespace}'"
        super().__init__(message, hint="Check the namespace with --namespace")
        self.namespace = namespace
        self.release_name = release_name


class AmbiguousReleaseError(ReleaseResolutionError):
    """Raised when more than one deployed release matches."""

    def __init__(self, namespace: str, candidates: list[str]) -> None:
        super().__init__(
            f"Found {len(candidates)} deployed releases in namespace '{namespace}': "
            f"{', '.join(candidates)}",
            hint="Specify the release with --release-name",
        )
        self.namespace = namespace
        self.candidates = candidates


class UnsupportedStorageDriverError(ReleaseResolutionError):
    """Raised for a Helm storage driver other than secret or configmap."""

    def __init__(self, driver: str) -> None:
        super().__init__(
            f"Unsupported Helm storage driver '{driver}'",
            hint="Supported drivers are 'secret' and 'configmap'",
        )
        self.driver = driver


class ReleaseDecodeError(ReleaseResolutionError):
    """Raised when release storage data cannot be decoded.

    Attributes:
        stage: Decoding stage that failed: base64, gzip, json or payload.
        object_name: Name of the Secret or ConfigMap holding the data.
    """

    def __init__(self, stage: str, object_name: str, detail: str) -> None:
        super().__init__(f"Failed to decode release data in '{object_name}' ({stage}): {detail}")
        self.stage = stage
        self.object_name = object_name


# =============================================================================
# Upgrade path policy
# =============================================================================

SKIP_UPGRADE_PATH_FLAG = "--skip-upgrade-path-validation-for-unsupported-version"


class UpgradePathError(UpgradeError):
    """Raised when the source to target version transition is not allowed."""

    exit_code = ExitCode.UPGRADE_PATH


class UnreleasedTargetError(UpgradePathError):
    """Raised when this build carries no release tag."""

    def __init__(self) -> None:
        super().__init__(
            "Upgrade to an unreleased (development) version is not supported",
            hint=f"Use {SKIP_UPGRADE_PATH_FLAG} to upgrade anyway",
        )


class StableToUnstableError(UpgradePathError):
    """Raised when a stable install would move to a pre-release."""

    def __init__(self, source: str, target: str) -> None:
        super().__init__(
            f"Upgrade from stable version {source} to unstable version {target} is not supported",
            hint="Use --allow-unstable to upgrade anyway",
        )
        self.source = source
        self.target = target


class UnsupportedSourceVersionError(UpgradePathError):
    """Raised when the installed version predates the oldest upgradable release."""

    def __init__(self, source: str, lower_bound: str) -> None:
        super().__init__(
            f"Upgrade from version {source} is not supported, the oldest supported "
            f"version is {lower_bound}",
            hint=f"Use {SKIP_UPGRADE_PATH_FLAG} to upgrade anyway",
        )
        self.source = source
        self.lower_bound = lower_bound


class DowngradeError(UpgradePathError):
    """Raised when the installed version is newer than this build."""

    def __init__(self, source: str, target: str) -> None:
        super().__init__(
            f"Installed version {source} is newer than the upgrade target {target}",
            hint=f"Use {SKIP_UPGRADE_PATH_FLAG} to upgrade anyway",
        )
        self.source = source
        self.target = target


# =============================================================================
# Preflight
# =============================================================================


class PreflightError(UpgradeError):
    """Raised when cluster state makes the upgrade unsafe.

    Attributes:
        offenders: Names of the volumes, nodes or claims that failed the check.
        skip_flag: CLI flag that bypasses the check.
    """

    exit_code = ExitCode.PREFLIGHT

    def __init__(self, message: str, offenders: list[str], skip_flag: str) -> None:
        listing = "\n".join(f"  {name}" for name in offenders)
        super().__init__(f"{message}:\n{listing}", hint=f"Use {skip_flag} to skip this check")
        self.offenders = offenders
        self.skip_flag = skip_flag


class RebuildInProgressError(PreflightError):
    """Raised when volume replicas are being rebuilt."""

    def __init__(self, volumes: list[str]) -> None:
        super().__init__(
            "Replica rebuild is in progress for volumes",
            volumes,
            "--skip-replica-rebuild",
        )


class CordonedNodesError(PreflightError):
    """Raised when storage nodes are cordoned or draining."""

    def __init__(self, nodes: list[str]) -> None:
        super().__init__(
            "Cordoned nodes would block replica rebuild after restart",
            nodes,
            "--skip-cordoned-node-validation",
        )


class SingleReplicaVolumeError(PreflightError):
    """Raised when volumes with one replica would become unavailable."""

    def __init__(self, claims: list[str]) -> None:
        super().__init__(
            "Single replica volumes would be unavailable during the upgrade",
            claims,
            "--skip-single-replica-volume-validation",
        )


# =============================================================================
# Provisioning
# =============================================================================


class ProvisioningError(UpgradeError):
    """Raised when the upgrade resources cannot be created or deleted."""

    exit_code = ExitCode.PROVISIONING

    def __init__(self, message: str, cause: KubernetesError | None = None) -> None:
        super().__init__(message if cause is None else f"{message}: {cause}")
        self.cause = cause


class InvalidSetFileError(ProvisioningError):
    """Raised for a malformed or unreadable --set-file entry."""

    def __init__(self, entry: str, detail: str) -> None:
        UpgradeError.__init__(
            self,
            f"Invalid --set-file entry '{entry}': {detail}",
            hint="Use key=path, e.g. --set-file foo.bar=values.txt",
        )
        self.cause = None
        self.entry = entry


class ImageDiscoveryError(ProvisioningError):
    """Raised when no platform pod reveals the image registry to use."""

    def __init__(self, namespace: str) -> None:
        UpgradeError.__init__(
            self,
            f"No platform pod found in namespace '{namespace}' to derive image properties from",
            hint="Check the namespace or pass --registry",
        )
        self.cause = None
        self.namespace = namespace


# =============================================================================
# Upgrade events
# =============================================================================


class UpgradeEventError(UpgradeError):
    """Raised when an upgrade event cannot be decoded."""

    exit_code = ExitCode.EVENT

    def __init__(self, event_name: str, detail: str) -> None:
        super().__init__(f"Malformed upgrade event '{event_name}': {detail}")
        self.event_name = event_name


class NoUpgradeEventError(UpgradeError):
    """Raised when no upgrade event exists for the release."""

    exit_code = ExitCode.EVENT

    def __init__(self, job_name: str, namespace: str) -> None:
        super().__init__(
            f"No upgrade event found for job '{job_name}' in namespace '{namespace}'",
            hint="Start an upgrade with 'kubectl-openebs upgrade'",
        )
        self.job_name = job_name
        self.namespace = namespace
