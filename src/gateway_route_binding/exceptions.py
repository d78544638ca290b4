"""Exception hierarchy for route binding configuration errors."""


class RouteBindingError(Exception):
    """Root of the route editor's error types.

    Parsing, merging, validation, load and submit failures all derive from
    it, so a host that only needs to tell editor failures apart from its own
    bugs can handle this single type.

    Example:
        try:
            routes = merge_route(api.routes, candidate, original_key)
        except RouteBindingError as e:
            logger.error(f"Failed to merge route: {e}")
    """


class PathTemplateError(RouteBindingError):
    """Raised when a path template is rejected by a strict caller.

    Template parsing itself is total and never raises; this exception is
    for callers that turn an unusable template into a hard error.

    Example:
        PathTemplateError("Path template must start with '/': 'users/{id}'")
    """


class DuplicateRouteError(RouteBindingError):
    """Raised when a merge would leave two routes with the same method+path.

    Example:
        DuplicateRouteError(
            "Duplicate route: Get /users/{id} already exists in the collection"
        )
    """


class CorsPreflightDecodeError(RouteBindingError):
    """Raised when response text cannot be decoded into a CORS preflight value.

    Examples of invalid text:
        - Not JSON at all: allowOrigin=*
        - JSON missing required keys: {"allowOrigin": "*"}
    """


class DraftValidationError(RouteBindingError):
    """Raised when a route draft fails field validation.

    Attributes:
        errors: Mapping of field path (e.g. "binding.workerName") to message.

    Example:
        DraftValidationError({"path": "Path must start with '/'"})
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors)) or "(none)"
        super().__init__(f"Route draft is invalid: {fields}")


class LoadError(RouteBindingError):
    """Raised when the API details or component catalog cannot be loaded.

    Load failures are terminal for an editing session; the host is expected
    to offer a full reload.
    """


class SubmitError(RouteBindingError):
    """Raised when an immediate-mode submit cannot be completed.

    The draft is left untouched so the user can retry.
    """


class ApiNotFoundError(SubmitError):
    """Raised when the API version being edited is gone at submit time.

    Example:
        ApiNotFoundError("API 'shop' version '0.1.0' not found")
    """


class ConcurrentModificationError(SubmitError):
    """Raised when conflict detection is enabled and the route collection
    changed between load and submit.

    Example:
        ConcurrentModificationError(
            "Routes of API 'shop' version '0.1.0' changed since they were loaded"
        )
    """


class BackendError(RouteBindingError):
    """Raised by collaborator backends when a fetch or save is rejected.

    Example:
        BackendError("Response error. Status: 500, content: internal error")
    """
