"""Kubernetes API client wrapper.

Wraps the official kubernetes Python client with kubeconfig/in-cluster
loading, lazy API group initialization, retry logic, consistent error
translation and paginated listing.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from openebs_ops.constants import HTTP_DATA_PAGE_SIZE
from openebs_ops.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesValidationError,
)
from openebs_ops.integrations.pagination import list_kubernetes_objects

if TYPE_CHECKING:
    from kubernetes.client import (
        ApiextensionsV1Api,
        BatchV1Api,
        Configuration,
        CoreV1Api,
        EventsV1Api,
        RbacAuthorizationV1Api,
    )

    from openebs_ops.integrations.kubernetes.config import KubernetesConfig

logger = structlog.get_logger()

DEFAULT_NAMESPACE = "default"


def _status_message(e: Any) -> str | None:
    """The ``message`` of the Status object the API server sends with an error."""
    try:
        status = json.loads(e.body or "")
    except (TypeError, ValueError):
        return None
    return status.get("message") if isinstance(status, dict) else None


class KubernetesClient:
    """Kubernetes API client for the cluster running OpenEBS.

    Example:
        ```python
        from openebs_ops.integrations.kubernetes import KubernetesClient, KubernetesConfig

        with KubernetesClient(KubernetesConfig.from_env()) as client:
            pods = client.list_all(client.core_v1.list_namespaced_pod, namespace="openebs")
        ```
    """

    def __init__(self, config: KubernetesConfig) -> None:
        """Initialize the client and load kubeconfig.

        Args:
            config: Connection configuration.
        """
        self._config = config
        self._retries = config.retry_attempts
        self._current_context: str | None = None
        self._context_namespace: str | None = None

        self._core_v1: CoreV1Api | None = None
        self._batch_v1: BatchV1Api | None = None
        self._rbac_v1: RbacAuthorizationV1Api | None = None
        self._events_v1: EventsV1Api | None = None
        self._apiextensions_v1: ApiextensionsV1Api | None = None

        self._load_config()

        logger.info(
            "Kubernetes client initialized",
            context=self._current_context,
            default_namespace=self.default_namespace,
        )

    def _load_config(self) -> None:
        """Load Kubernetes configuration from kubeconfig or in-cluster."""
        from kubernetes import config
        from kubernetes.config import ConfigException

        try:
            config.load_kube_config(
                config_file=self._config.kubeconfig,
                context=self._config.context,
            )
            self._current_context = self._config.context
            self._context_namespace = self._read_context_namespace()
            logger.debug(
                "loaded_kubeconfig",
                context=self._config.context,
                kubeconfig=self._config.kubeconfig,
            )
        except ConfigException:
            try:
                config.load_incluster_config()
                self._current_context = "in-cluster"
                logger.debug("loaded_incluster_config")
            except ConfigException as e:
                raise KubernetesConnectionError(
                    message="Cannot load Kubernetes configuration. "
                    "Ensure kubeconfig exists or running inside a cluster.",
                    original_error=e,
                ) from e

        self._invalidate_api_cache()

    def _read_context_namespace(self) -> str | None:
        """Namespace configured on the selected kubeconfig context, if any."""
        from kubernetes import config

        try:
            contexts, active = config.list_kube_config_contexts(
                config_file=self._config.kubeconfig
            )
        except Exception:
            return None

        selected = active
        if self._config.context:
            selected = next((c for c in contexts if c.get("name") == self._config.context), active)
        if not selected:
            return None
        return selected.get("context", {}).get("namespace")

    def _invalidate_api_cache(self) -> None:
        """Clear cached API group instances."""
        self._core_v1 = None
        self._batch_v1 = None
        self._rbac_v1 = None
        self._events_v1 = None
        self._apiextensions_v1 = None

    # =========================================================================
    # Lazy API Group Accessors
    # =========================================================================

    @property
    def core_v1(self) -> CoreV1Api:
        """CoreV1Api (pods, secrets, configmaps, service accounts, PVCs)."""
        if self._core_v1 is None:
            from kubernetes.client import CoreV1Api

            self._core_v1 = CoreV1Api()
        return self._core_v1

    @property
    def batch_v1(self) -> BatchV1Api:
        """BatchV1Api (jobs)."""
        if self._batch_v1 is None:
            from kubernetes.client import BatchV1Api

            self._batch_v1 = BatchV1Api()
        return self._batch_v1

    @property
    def rbac_v1(self) -> RbacAuthorizationV1Api:
        """RbacAuthorizationV1Api (cluster roles and bindings)."""
        if self._rbac_v1 is None:
            from kubernetes.client import RbacAuthorizationV1Api

            self._rbac_v1 = RbacAuthorizationV1Api()
        return self._rbac_v1

    @property
    def events_v1(self) -> EventsV1Api:
        """EventsV1Api (events.k8s.io/v1 events)."""
        if self._events_v1 is None:
            from kubernetes.client import EventsV1Api

            self._events_v1 = EventsV1Api()
        return self._events_v1

    @property
    def apiextensions_v1(self) -> ApiextensionsV1Api:
        """ApiextensionsV1Api (custom resource definitions)."""
        if self._apiextensions_v1 is None:
            from kubernetes.client import ApiextensionsV1Api

            self._apiextensions_v1 = ApiextensionsV1Api()
        return self._apiextensions_v1

    # =========================================================================
    # Error Translation
    # =========================================================================

    @staticmethod
    def translate_api_exception(
        e: Exception,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> KubernetesError:
        """Translate a kubernetes ApiException to a custom exception.

        Args:
            e: The original exception.
            resource_type: Kind of resource being operated on.
            resource_name: Name of the resource.
            namespace: Namespace of the resource.

        Returns:
            An appropriate KubernetesError subclass.
        """
        from kubernetes.client import ApiException
        from urllib3.exceptions import HTTPError

        if isinstance(e, KubernetesError):
            return e

        if isinstance(e, HTTPError):
            return KubernetesConnectionError(
                message=f"Kubernetes API request failed: {e}",
                original_error=e,
            )

        if not isinstance(e, ApiException):
            return KubernetesError(
                message=str(e),
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        status = e.status

        if status in (401, 403):
            return KubernetesAuthError(
                message=e.reason or "Authentication/authorization failed",
                status_code=status,
            )

        if status == 404:
            return KubernetesNotFoundError(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        if status == 409:
            return KubernetesConflictError(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        if status in (400, 422):
            return KubernetesValidationError(
                message=_status_message(e) or e.reason or "Validation failed",
                status_code=status,
            )

        return KubernetesError(
            message=e.reason or f"Kubernetes API error: {status}",
            status_code=status,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )

    # =========================================================================
    # Retry & Pagination
    # =========================================================================

    def make_retry_decorator(self) -> Any:
        """Create a retry decorator for transient connection errors.

        Returns:
            A tenacity retry decorator configured with exponential backoff.
        """
        return retry(
            retry=retry_if_exception_type(KubernetesConnectionError),
            stop=stop_after_attempt(self._retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )

    def list_all(
        self,
        list_fn: Callable[..., Any],
        *,
        resource_type: str | None = None,
        label_selector: str | None = None,
        field_selector: str | None = None,
        page_size: int = HTTP_DATA_PAGE_SIZE,
        **kwargs: Any,
    ) -> list[Any]:
        """List every object a list call returns, following continue tokens.

        Each page request is retried on connection errors; API errors are
        translated to KubernetesError subclasses.

        Args:
            list_fn: A kubernetes client list method, e.g. ``core_v1.list_namespaced_pod``.
            resource_type: Kind used in translated error messages.
            label_selector: Optional label selector.
            field_selector: Optional field selector.
            page_size: Number of objects requested per page.
            **kwargs: Extra arguments for ``list_fn`` (e.g. ``namespace``).

        Returns:
            All objects, in server order.
        """

        def call(**params: Any) -> Any:
            try:
                return list_fn(**params)
            except Exception as e:
                raise self.translate_api_exception(
                    e, resource_type=resource_type, namespace=kwargs.get("namespace")
                ) from e

        return list_kubernetes_objects(
            self.make_retry_decorator()(call),
            page_size=page_size,
            label_selector=label_selector,
            field_selector=field_selector,
            **kwargs,
        )

    # =========================================================================
    # Service proxy access
    # =========================================================================

    def _api_configuration(self) -> Configuration:
        from kubernetes.client import Configuration

        return Configuration.get_default_copy()

    def service_proxy_url(self, namespace: str, service: str, port: int) -> str:
        """URL of a Service reached through the API server's proxy subresource."""
        host = self._api_configuration().host.rstrip("/")
        return f"{host}/api/v1/namespaces/{namespace}/services/{service}:{port}/proxy"

    def http_client_options(self) -> dict[str, Any]:
        """httpx client options carrying the loaded kubeconfig credentials.

        Returns:
            Dict with ``headers``, ``verify`` and, for client-cert auth, ``cert``.
        """
        cfg = self._api_configuration()
        options: dict[str, Any] = {"headers": {}}

        token = cfg.get_api_key_with_prefix("authorization")
        if token:
            options["headers"]["Authorization"] = token

        if not cfg.verify_ssl:
            options["verify"] = False
        elif cfg.ssl_ca_cert:
            options["verify"] = cfg.ssl_ca_cert
        else:
            options["verify"] = True

        if cfg.cert_file and cfg.key_file:
            options["cert"] = (cfg.cert_file, cfg.key_file)

        return options

    # =========================================================================
    # Properties
    # =========================================================================

    def get_current_context(self) -> str:
        """Current context name, or 'in-cluster' when running inside a pod."""
        return self._current_context or "unknown"

    @property
    def default_namespace(self) -> str:
        """Namespace from config, then kubeconfig context, then 'default'."""
        return self._config.namespace or self._context_namespace or DEFAULT_NAMESPACE

    @property
    def timeout(self) -> int:
        """Get the configured timeout."""
        return self._config.timeout

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Close the client and release resources."""
        self._invalidate_api_cache()
        logger.debug("Kubernetes client closed")

    def __enter__(self) -> KubernetesClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
