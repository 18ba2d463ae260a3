"""Version compatibility policy for upgrades.

Pure functions deciding whether a source to target transition is allowed,
whether the transition needs special handling, and which chart CRD toggles
must be turned off because the CRDs already exist in the cluster.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from semver import Version

from openebs_ops.services.upgrade.exceptions import (
    DowngradeError,
    StableToUnstableError,
    UnreleasedTargetError,
    UnsupportedSourceVersionError,
)

# Semantic Versioning 2.0.0 version; build metadata does not affect ordering
SemVer = Version


def parse_version(value: str) -> SemVer:
    """Parse ``[v]major.minor.patch[-prerelease][+build]``.

    Raises:
        ValueError: If the string is not a valid semantic version.
    """
    return Version.parse(value.strip().removeprefix("v"))


def is_stable(version: SemVer) -> bool:
    """True if the version carries no pre-release tag."""
    return not version.prerelease


# Oldest chart version the upgrade job knows how to migrate from
UMBRELLA_CHART_VERSION_LOWERBOUND = SemVer(3, 0, 0)

# Partial rebuild must be disabled while upgrading from these versions.
PARTIAL_REBUILD_DISABLE_EXTENTS = (SemVer(3, 7, 0), SemVer(3, 10, 0))

FOUR_DOT_O = SemVer(4, 0, 0)

SNAPSHOT_CRDS = (
    "volumesnapshotclasses.snapshot.storage.k8s.io",
    "volumesnapshotcontents.snapshot.storage.k8s.io",
    "volumesnapshots.snapshot.storage.k8s.io",
)
JAEGER_CRDS = ("jaegers.jaegertracing.io",)
ZFS_LOCALPV_CRDS = (
    "zfsvolumes.zfs.openebs.io",
    "zfsnodes.zfs.openebs.io",
    "zfsbackups.zfs.openebs.io",
    "zfsrestores.zfs.openebs.io",
    "zfssnapshots.zfs.openebs.io",
)
LVM_LOCALPV_CRDS = (
    "lvmvolumes.local.openebs.io",
    "lvmnodes.local.openebs.io",
    "lvmsnapshots.local.openebs.io",
)

# CRD group -> chart value that installs it
CRD_HELM_TOGGLES: dict[tuple[str, ...], str] = {
    SNAPSHOT_CRDS: "openebs-crds.csi.volumeSnapshots.enabled",
    JAEGER_CRDS: "mayastor.crds.jaeger.enabled",
    ZFS_LOCALPV_CRDS: "zfs-localpv.crds.zfsLocalPv.enabled",
    LVM_LOCALPV_CRDS: "lvm-localpv.crds.lvmLocalPv.enabled",
}


def parse_version_tag(tag: str | None) -> SemVer | None:
    """Parse a release tag such as ``v4.2.0``; None stays None."""
    return parse_version(tag) if tag else None


def path_is_sane(
    source: SemVer,
    target_tag: str | None,
    *,
    allow_unstable: bool,
    own_version: SemVer | None = None,
) -> SemVer:
    """Validate the upgrade path from the installed version to this build.

    Args:
        source: Installed chart version.
        target_tag: Release tag of this build, None for development builds.
        allow_unstable: Permit a stable install to move to a pre-release.
        own_version: Version of the running tool; defaults to the target.

    Returns:
        The parsed target version.

    Raises:
        UnreleasedTargetError: If this is a development build.
        StableToUnstableError: If a stable release would move to a pre-release.
        UnsupportedSourceVersionError: If the installed version is too old to upgrade.
        DowngradeError: If the installed version is newer than this build.
    """
    target = parse_version_tag(target_tag)
    if target is None:
        raise UnreleasedTargetError()

    if source < UMBRELLA_CHART_VERSION_LOWERBOUND:
        raise UnsupportedSourceVersionError(str(source), str(UMBRELLA_CHART_VERSION_LOWERBOUND))

    if is_stable(source) and not is_stable(target) and not allow_unstable:
        raise StableToUnstableError(str(source), str(target))

    own = own_version or target
    if own < source:
        raise DowngradeError(str(source), str(own))

    return target


def requires_partial_rebuild_disable(source: SemVer) -> bool:
    """True if upgrading from ``source`` needs partial rebuild turned off."""
    low, high = PARTIAL_REBUILD_DISABLE_EXTENTS
    return low <= source < high


def crosses_major_boundary(source: SemVer, target: SemVer) -> bool:
    """True if the upgrade moves from a 3.x install to 4.0.0 or later."""
    return source < FOUR_DOT_O <= target


def safe_crd_toggle(
    existing_crd_names: Iterable[str],
    toggle_map: Mapping[tuple[str, ...], str] = CRD_HELM_TOGGLES,
) -> set[str]:
    """Chart values to disable because some CRD of their group already exists.

    Args:
        existing_crd_names: Names of the CRDs present in the cluster.
        toggle_map: CRD group to chart value path.

    Returns:
        Dotted value paths whose CRD group is at least partly installed.
    """
    existing = set(existing_crd_names)
    return {path for group, path in toggle_map.items() if existing.intersection(group)}
