"""Build and platform constants shared across the upgrade workflow."""

from __future__ import annotations

from openebs_ops import __version__

# Release tag of this build. Development builds set this to None, which marks
# the upgrade target as unreleased.
RELEASE_TAG: str | None = f"v{__version__}"

PRODUCT_NAME = "openebs"
UMBRELLA_CHART_NAME = "openebs"

# Upgrade-job image coordinates
DEFAULT_IMAGE_REGISTRY = "docker.io"
UPGRADE_JOB_IMAGE_REPO = "openebs"
UPGRADE_JOB_IMAGE_NAME = "openebs-upgrade-job"
UPGRADE_JOB_IMAGE_TAG = "develop"
UPGRADE_JOB_CONTAINER_NAME = "openebs-upgrade-job"
UPGRADE_JOB_BACKOFF_LIMIT = 6

UPGRADE_CONFIG_MAP_MOUNT_PATH = "/upgrade-config-map"
UPGRADE_CONFIG_MAP_VOLUME_NAME = "upgrade-config-map"

# Helm release storage
HELM_STORAGE_DRIVER_ENV = "HELM_DRIVER"
HELM_RELEASE_SECRET_TYPE = "helm.sh/release.v1"
HELM_RELEASE_DATA_KEY = "release"

# Upgrade-job events
UPGRADE_EVENT_REASON = "OpenebsUpgrade"
VALIDATION_FAILED_ACTION = "Validation Failed"
UPGRADE_EVENT_POLL_ATTEMPTS = 6
UPGRADE_EVENT_POLL_INTERVAL_SECONDS = 10.0

# Page size for paginated list calls, Kubernetes and platform REST alike
HTTP_DATA_PAGE_SIZE = 500

# Platform REST API service exposed by the chart
API_REST_PORT = 8081
LOGGING_LABEL_KEY = "openebs.io/logging"


def upgrade_obj_suffix(version_tag: str | None) -> str:
    """Name suffix for the upgrade-job and its supporting resources.

    Args:
        version_tag: Release tag of the upgrade target, None for development builds.

    Returns:
        The tag with dots replaced, e.g. ``v4.2.0`` -> ``v4-2-0``.
    """
    return (version_tag or UPGRADE_JOB_IMAGE_TAG).replace(".", "-")


def upgrade_labels() -> dict[str, str]:
    """Labels shared by every upgrade resource."""
    return {"app": "upgrade", LOGGING_LABEL_KEY: "true"}
