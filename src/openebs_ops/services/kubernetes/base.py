"""Base class for services that talk to the Kubernetes API.

Provides shared infrastructure for the upgrade services: client access,
namespace resolution, error translation and idempotent create/delete.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, NoReturn

import structlog

from openebs_ops.integrations.kubernetes.exceptions import (
    KubernetesConflictError,
    KubernetesNotFoundError,
)

if TYPE_CHECKING:
    from openebs_ops.integrations.kubernetes.client import KubernetesClient

logger = structlog.get_logger()


class K8sBaseManager:
    """Base class for Kubernetes-backed services.

    Subclasses set ``_entity_name`` for structured log context.

    Example:
        >>> class UpgradeResourceManager(K8sBaseManager):
        ...     _entity_name = "upgrade_resources"
    """

    _entity_name: str = ""

    def __init__(self, client: KubernetesClient) -> None:
        """Initialize the manager.

        Args:
            client: Kubernetes API client instance.
        """
        self._client = client
        self._log = logger.bind(entity=self._entity_name)

    def _resolve_namespace(self, namespace: str | None) -> str:
        """Resolve namespace, falling back to the client default."""
        return namespace or self._client.default_namespace

    def _handle_api_error(
        self,
        e: Exception,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> NoReturn:
        """Translate a Kubernetes API exception and re-raise.

        Raises:
            KubernetesError: Always raises an appropriate subclass.
        """
        raise self._client.translate_api_exception(
            e,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        ) from e

    def _create_if_absent(
        self,
        create: Callable[[], Any],
        resource_type: str,
        name: str,
        namespace: str | None = None,
    ) -> bool:
        """Run a create call, treating "already exists" as success.

        Returns:
            True if the object was created, False if it already existed.
        """
        try:
            create()
        except Exception as e:
            error = self._client.translate_api_exception(e, resource_type, name, namespace)
            if isinstance(error, KubernetesConflictError):
                self._log.info("resource_exists", kind=resource_type, name=name, ns=namespace)
                return False
            raise error from e
        self._log.info("created_resource", kind=resource_type, name=name, namespace=namespace)
        return True

    def _delete_if_present(
        self,
        delete: Callable[[], Any],
        resource_type: str,
        name: str,
        namespace: str | None = None,
    ) -> bool:
        """Run a delete call, treating "not found" as success.

        Returns:
            True if the object was deleted, False if it did not exist.
        """
        try:
            delete()
        except Exception as e:
            error = self._client.translate_api_exception(e, resource_type, name, namespace)
            if isinstance(error, KubernetesNotFoundError):
                self._log.debug("resource_absent", kind=resource_type, name=name, ns=namespace)
                return False
            raise error from e
        self._log.info("deleted_resource", kind=resource_type, name=name, namespace=namespace)
        return True
