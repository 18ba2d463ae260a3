"""Helm values overrides for the chart upgrade."""

from __future__ import annotations

import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import yaml

from openebs_ops.services.upgrade.versions import SemVer, crosses_major_boundary, safe_crd_toggle

logger = structlog.get_logger()


def set_literal_value(document: dict[str, Any], dotted_key: str, value: Any) -> dict[str, Any]:
    """Set ``value`` at a dotted key path, creating nested mappings as needed.

    Existing content under the path is kept; a non-mapping in the way is
    replaced by a mapping.

    Example:
        >>> set_literal_value({}, "mayastor.crds.jaeger.enabled", False)
        {'mayastor': {'crds': {'jaeger': {'enabled': False}}}}
    """
    *parents, leaf = dotted_key.lstrip(".").split(".")
    node = document
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[leaf] = value
    return document


def generate_values_file(
    directory: str | Path,
    source: SemVer,
    target: SemVer,
    existing_crd_names: Iterable[str],
) -> Path:
    """Write a values file that keeps the chart from reinstalling existing CRDs.

    A new file is always created in ``directory``. It only has content when
    the upgrade crosses into 4.x, where the chart would otherwise try to
    install CRDs that 3.x installations already own.

    Args:
        directory: Directory to create the file in.
        source: Installed chart version.
        target: Chart version being upgraded to.
        existing_crd_names: Names of CRDs present in the cluster.

    Returns:
        Path of the generated file.
    """
    with tempfile.NamedTemporaryFile(
        "w",
        dir=directory,
        prefix="upgrade-values-",
        suffix=".yaml",
        delete=False,
        encoding="utf-8",
    ) as handle:
        path = Path(handle.name)

        if not crosses_major_boundary(source, target):
            logger.debug("values_file_empty", path=str(path), source=str(source))
            return path

        document: dict[str, Any] = {}
        toggles = sorted(safe_crd_toggle(existing_crd_names))
        for key in toggles:
            set_literal_value(document, key, False)
        if document:
            yaml.safe_dump(document, handle, default_flow_style=False, sort_keys=True)

    logger.info("values_file_generated", path=str(path), disabled=toggles)
    return path
