"""Continuation-token pagination shared by the Kubernetes and platform REST clients."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

import structlog

from openebs_ops.constants import HTTP_DATA_PAGE_SIZE

logger = structlog.get_logger()

T = TypeVar("T")

PageFetcher = Callable[[Any], tuple[Sequence[T], Any]]


def paginate(fetch_page: PageFetcher[T]) -> list[T]:
    """Fetch pages until the continuation token runs out.

    Args:
        fetch_page: Called with the previous page's token (None for the first
            page); returns the page's items and the next token. A None or empty
            token ends the listing.

    Returns:
        Items from all pages, in the order they were returned.
    """
    items: list[T] = []
    token: Any = None
    pages = 0
    while True:
        page, token = fetch_page(token)
        items.extend(page)
        pages += 1
        if token is None or token == "":
            break
    logger.debug("paginated_list_complete", pages=pages, count=len(items))
    return items


def list_kubernetes_objects(
    list_fn: Callable[..., Any],
    *,
    page_size: int = HTTP_DATA_PAGE_SIZE,
    label_selector: str | None = None,
    field_selector: str | None = None,
    **kwargs: Any,
) -> list[Any]:
    """List all objects from a kubernetes client list method using ``limit``/``_continue``.

    Args:
        list_fn: Bound list method, e.g. ``CoreV1Api.list_namespaced_secret``.
        page_size: ``limit`` per request.
        label_selector: Optional label selector.
        field_selector: Optional field selector.
        **kwargs: Passed through to every call (e.g. ``namespace``).

    Returns:
        The ``items`` of every page, concatenated.
    """

    def fetch(token: str | None) -> tuple[list[Any], str | None]:
        params: dict[str, Any] = {**kwargs, "limit": page_size}
        if label_selector:
            params["label_selector"] = label_selector
        if field_selector:
            params["field_selector"] = field_selector
        if token:
            params["_continue"] = token
        result = list_fn(**params)
        metadata = getattr(result, "metadata", None)
        return list(result.items or []), getattr(metadata, "_continue", None)

    return paginate(fetch)
