"""HTTP client for the OpenEBS replicated-engine REST API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from openebs_ops.constants import HTTP_DATA_PAGE_SIZE
from openebs_ops.integrations.pagination import paginate
from openebs_ops.integrations.platform.exceptions import (
    PlatformAPIError,
    PlatformConnectionError,
)
from openebs_ops.integrations.platform.models import Node, Volume

if TYPE_CHECKING:
    from openebs_ops.integrations.platform.config import PlatformConfig

logger = structlog.get_logger()


class PlatformClient:
    """Read-only client for the replicated-engine REST API.

    Example:
        ```python
        from openebs_ops.integrations.platform import PlatformClient, PlatformConfig

        config = PlatformConfig(base_url="http://openebs-api-rest:8081")
        with PlatformClient(config) as client:
            volumes = client.list_volumes()
        ```
    """

    def __init__(self, config: PlatformConfig) -> None:
        """Initialize the REST client.

        Args:
            config: Connection settings (URL, timeout, TLS, retries).
        """
        self.config = config
        self._retries = config.retries

        client_kwargs: dict[str, Any] = {
            "base_url": config.base_url,
            "timeout": httpx.Timeout(config.timeout),
            "verify": config.verify_ssl,
        }
        if config.headers:
            client_kwargs["headers"] = config.headers
        if config.cert:
            client_kwargs["cert"] = config.cert

        self._client = httpx.Client(**client_kwargs)

        logger.info("Platform REST client initialized", base_url=config.base_url)

    def _make_retry_decorator(self) -> Any:
        """Create a retry decorator for connection errors."""
        return retry(
            retry=retry_if_exception_type(PlatformConnectionError),
            stop=stop_after_attempt(self._retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )

    def _handle_response(self, response: httpx.Response, endpoint: str) -> Any:
        """Return the parsed JSON body, or raise PlatformAPIError on error status."""
        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {"raw": response.text}

        if response.is_success:
            return body

        details = body.get("details") if isinstance(body, dict) else None
        raise PlatformAPIError(
            message=details or f"REST API error: {response.status_code}",
            status_code=response.status_code,
            response_body=body if isinstance(body, dict) else None,
            endpoint=endpoint,
        )

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        url = f"/{endpoint.lstrip('/')}"
        log = logger.bind(method=method, endpoint=url)

        try:
            log.debug("REST API request")
            response = self._client.request(method, url, **kwargs)
            log.debug("REST API response", status=response.status_code)
            return self._handle_response(response, url)
        except httpx.ConnectError as e:
            log.error("REST API connection error", error=str(e))
            raise PlatformConnectionError(
                message=f"Failed to connect to the REST API: {e}",
                endpoint=url,
                original_error=e,
            ) from e
        except httpx.TimeoutException as e:
            log.error("REST API request timeout", error=str(e))
            raise PlatformConnectionError(
                message=f"REST API request timed out: {e}",
                endpoint=url,
                original_error=e,
            ) from e

    def get(self, endpoint: str, **kwargs: Any) -> Any:
        """GET request with retry on connection errors."""
        return self._make_retry_decorator()(self._request)("GET", endpoint, **kwargs)

    def list_volumes(self, page_size: int = HTTP_DATA_PAGE_SIZE) -> list[Volume]:
        """List every volume, following ``next_token`` until exhausted.

        Args:
            page_size: ``max_entries`` requested per page.

        Returns:
            All volumes, in server order.
        """

        def fetch(token: int | None) -> tuple[list[Volume], int | None]:
            params = {"max_entries": page_size, "starting_token": token or 0}
            body = self.get("v0/volumes", params=params)
            entries = [Volume.model_validate(v) for v in body.get("entries", [])]
            return entries, body.get("next_token")

        return paginate(fetch)

    def list_nodes(self) -> list[Node]:
        """List all nodes managed by the replicated engine."""
        body = self.get("v0/nodes")
        return [Node.model_validate(n) for n in body or []]

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        self._client.close()
        logger.debug("Platform REST client closed")

    def __enter__(self) -> PlatformClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
