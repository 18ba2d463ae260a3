"""OpenEBS replicated-engine REST API integration."""

from openebs_ops.integrations.platform.client import PlatformClient
from openebs_ops.integrations.platform.config import PlatformConfig
from openebs_ops.integrations.platform.exceptions import (
    PlatformAPIError,
    PlatformConnectionError,
)
from openebs_ops.integrations.platform.models import Node, Volume

__all__ = [
    "Node",
    "PlatformAPIError",
    "PlatformClient",
    "PlatformConfig",
    "PlatformConnectionError",
    "Volume",
]
