"""Route reconciliation: replace-or-insert into an API's route collection.

Routes are identified by (method, path). Editing a route is keyed by its
*original* identity, so changing the method or path while editing removes
the old route and appends the new one.
"""

import logging
from collections.abc import Sequence

from gateway_route_binding.core.models import Method, Route, RouteKey
from gateway_route_binding.exceptions import DuplicateRouteError

logger = logging.getLogger(__name__)


def route_key(path: str, method: Method | str | None) -> RouteKey:
    """Build a RouteKey, accepting method names as text.

    Raises:
        ValueError: If `method` is text that names no HTTP method.
    """
    parsed = Method.parse(method)
    if method is not None and parsed is None:
        raise ValueError(f"Unknown HTTP method '{method}'")
    return RouteKey(parsed, path)


def find_route(
    collection: Sequence[Route],
    path: str,
    method: Method | str | None,
) -> Route | None:
    """Find the route with the given path and method, if any.

    An unknown method name matches nothing.
    """
    try:
        key = route_key(path, method)
    except ValueError:
        return None
    for existing in collection:
        if existing.key == key:
            return existing
    return None


def ensure_unique(
    collection: Sequence[Route],
    candidate: Route,
    original_key: RouteKey | None,
) -> None:
    """Check that merging `candidate` keeps (method, path) unique.

    The route being replaced (matched by `original_key`) does not count as
    a conflict.

    Raises:
        DuplicateRouteError: If another route already has the candidate's
            method and path.
    """
    for existing in collection:
        if existing.key == original_key:
            continue
        if existing.key == candidate.key:
            raise DuplicateRouteError(
                f"Duplicate route: {candidate.key} already exists in the collection"
            )


def merge_route(
    collection: Sequence[Route],
    candidate: Route,
    original_key: RouteKey | None,
) -> list[Route]:
    """Merge an edited or new route into a route collection.

    Does not mutate `collection` or `candidate`.

    Args:
        collection: Current routes of the API.
        candidate: Finalized route to store.
        original_key: Identity of the route being edited, or None when
            creating a new route.

    Returns:
        A new list: every route except the one matching `original_key`, in
        their original order, followed by `candidate`.

    Raises:
        DuplicateRouteError: If the candidate collides with a route other
            than the one being replaced.

    Example:
        [GET /a, POST /b] + GET /a2 keyed by (GET, /a) -> [POST /b, GET /a2]
    """
    ensure_unique(collection, candidate, original_key)

    merged = [
        existing.model_copy(deep=True)
        for existing in collection
        if original_key is None or existing.key != original_key
    ]
    merged.append(candidate.model_copy(deep=True))

    logger.debug(
        "Merged route into collection",
        extra={
            "route": str(candidate.key),
            "replaced": str(original_key) if original_key else None,
            "route_count": len(merged),
        },
    )
    return merged
