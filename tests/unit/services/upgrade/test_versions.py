"""Unit tests for the upgrade version policy."""

from __future__ import annotations

import pytest

from openebs_ops.services.upgrade.exceptions import (
    DowngradeError,
    StableToUnstableError,
    UnreleasedTargetError,
    UnsupportedSourceVersionError,
)
from openebs_ops.services.upgrade.versions import (
    CRD_HELM_TOGGLES,
    UMBRELLA_CHART_VERSION_LOWERBOUND,
    SemVer,
    crosses_major_boundary,
    is_stable,
    parse_version,
    parse_version_tag,
    path_is_sane,
    requires_partial_rebuild_disable,
    safe_crd_toggle,
)


@pytest.mark.unit
class TestSemVer:
    """Test semantic version parsing and precedence."""

    def test_parse_with_prefix(self) -> None:
        """Test the leading v of a release tag is accepted."""
        version = parse_version("v4.2.0")
        assert (version.major, version.minor, version.patch) == (4, 2, 0)
        assert is_stable(version)
        assert str(version) == "4.2.0"

    def test_parse_prerelease_and_build(self) -> None:
        """Test pre-release and build parts are kept."""
        version = parse_version("4.3.0-rc.1+sha.abc")
        assert version.prerelease == "rc.1"
        assert version.build == "sha.abc"
        assert not is_stable(version)
        assert str(version) == "4.3.0-rc.1+sha.abc"

    @pytest.mark.parametrize("value", ["", "4.2", "4.2.0.1", "04.2.0", "latest"])
    def test_parse_invalid(self, value: str) -> None:
        """Test invalid versions are rejected."""
        with pytest.raises(ValueError, match="not valid SemVer"):
            parse_version(value)

    def test_precedence_order(self) -> None:
        """Test ordering follows SemVer 2.0.0 precedence."""
        ordered = [
            "1.0.0-alpha",
            "1.0.0-alpha.1",
            "1.0.0-alpha.beta",
            "1.0.0-beta",
            "1.0.0-beta.2",
            "1.0.0-beta.11",
            "1.0.0-rc.1",
            "1.0.0",
            "1.0.1",
            "1.10.0",
        ]
        versions = [parse_version(v) for v in ordered]
        assert sorted(reversed(versions)) == versions

    def test_build_metadata_ignored(self) -> None:
        """Test build metadata does not affect equality or hashing."""
        assert parse_version("4.2.0+a") == parse_version("4.2.0+b")
        assert len({parse_version("4.2.0+a"), parse_version("4.2.0")}) == 1

    def test_parse_version_tag_none(self) -> None:
        """Test a missing tag stays None."""
        assert parse_version_tag(None) is None
        assert parse_version_tag("v4.0.1") == SemVer(4, 0, 1)


@pytest.mark.unit
class TestPathIsSane:
    """Test upgrade path validation."""

    def test_allowed_upgrade(self) -> None:
        """Test a plain stable upgrade passes and returns the target."""
        assert path_is_sane(SemVer(3, 10, 0), "v4.2.0", allow_unstable=False) == SemVer(4, 2, 0)

    def test_same_version_allowed(self) -> None:
        """Test re-running the same version is allowed."""
        path_is_sane(SemVer(4, 2, 0), "v4.2.0", allow_unstable=False)

    def test_unreleased_target(self) -> None:
        """Test development builds cannot be upgrade targets."""
        with pytest.raises(UnreleasedTargetError):
            path_is_sane(SemVer(4, 1, 0), None, allow_unstable=True)

    def test_stable_to_unstable_rejected(self) -> None:
        """Test a stable install cannot move to a pre-release by default."""
        with pytest.raises(StableToUnstableError) as exc:
            path_is_sane(SemVer(4, 1, 0), "v4.2.0-rc.1", allow_unstable=False)
        assert exc.value.hint == "Use --allow-unstable to upgrade anyway"

    def test_stable_to_unstable_allowed(self) -> None:
        """Test --allow-unstable permits the move."""
        target = path_is_sane(SemVer(4, 1, 0), "v4.2.0-rc.1", allow_unstable=True)
        assert not is_stable(target)

    def test_unstable_to_unstable_allowed(self) -> None:
        """Test pre-release installs may move to another pre-release."""
        path_is_sane(parse_version("4.2.0-rc.1"), "v4.2.0-rc.2", allow_unstable=False)

    def test_source_below_lower_bound_rejected(self) -> None:
        """Test installs older than the oldest upgradable release are rejected."""
        with pytest.raises(UnsupportedSourceVersionError) as exc:
            path_is_sane(SemVer(2, 12, 2), "v4.2.0", allow_unstable=True)
        assert "2.12.2" in exc.value.message
        assert "--skip-upgrade-path-validation-for-unsupported-version" in (exc.value.hint or "")

    def test_lower_bound_itself_allowed(self) -> None:
        path_is_sane(UMBRELLA_CHART_VERSION_LOWERBOUND, "v4.2.0", allow_unstable=False)

    def test_downgrade_rejected(self) -> None:
        """Test an install newer than this build is rejected."""
        with pytest.raises(DowngradeError):
            path_is_sane(SemVer(4, 3, 0), "v4.2.0", allow_unstable=False)

    def test_own_version_overrides_target(self) -> None:
        """Test the running tool's own version is what a downgrade is judged against."""
        with pytest.raises(DowngradeError):
            path_is_sane(
                SemVer(4, 2, 1), "v4.3.0", allow_unstable=False, own_version=SemVer(4, 2, 0)
            )


@pytest.mark.unit
class TestVersionHelpers:
    """Test the transition predicates."""

    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            ("3.6.9", False),
            ("3.7.0", True),
            ("3.9.5", True),
            ("3.10.0", False),
            ("4.0.0", False),
        ],
    )
    def test_requires_partial_rebuild_disable(self, source: str, expected: bool) -> None:
        """Test the half-open [3.7.0, 3.10.0) window."""
        assert requires_partial_rebuild_disable(parse_version(source)) is expected

    @pytest.mark.parametrize(
        ("source", "target", "expected"),
        [
            ("3.10.0", "4.0.0", True),
            ("3.10.0", "4.2.0", True),
            ("4.0.0", "4.2.0", False),
            ("3.9.0", "3.10.0", False),
        ],
    )
    def test_crosses_major_boundary(self, source: str, target: str, expected: bool) -> None:
        """Test the 3.x to 4.x boundary."""
        assert crosses_major_boundary(parse_version(source), parse_version(target)) is expected


@pytest.mark.unit
class TestSafeCrdToggle:
    """Test CRD toggle selection."""

    def test_no_crds(self) -> None:
        """Test nothing is disabled on a clean cluster."""
        assert safe_crd_toggle([]) == set()

    def test_partial_group_disables_toggle(self) -> None:
        """Test one CRD of a group is enough to disable its toggle."""
        toggles = safe_crd_toggle(
            [
                "volumesnapshots.snapshot.storage.k8s.io",
                "jaegers.jaegertracing.io",
                "unrelated.example.com",
            ]
        )
        assert toggles == {
            "openebs-crds.csi.volumeSnapshots.enabled",
            "mayastor.crds.jaeger.enabled",
        }

    def test_lvm_group(self) -> None:
        """Test LVM CRDs map to the lvm-localpv toggle."""
        assert safe_crd_toggle(["lvmnodes.local.openebs.io"]) == {
            "lvm-localpv.crds.lvmLocalPv.enabled"
        }

    def test_all_groups(self) -> None:
        """Test every group present disables every toggle."""
        everything = [name for group in CRD_HELM_TOGGLES for name in group]
        assert safe_crd_toggle(everything) == set(CRD_HELM_TOGGLES.values())

    def test_custom_map(self) -> None:
        """Test an explicit toggle map is honoured."""
        assert safe_crd_toggle(["a.x"], {("a.x", "b.x"): "x.enabled"}) == {"x.enabled"}
