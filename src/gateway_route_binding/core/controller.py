"""Route form controller.

Owns the editable route draft and re-derives everything the form shows
from it after every field change:

    path          -> path/query parameters for expression autocomplete
    binding type  -> allowed methods (method coerced) and field visibility
    component     -> version list, version reset, response suggestions
    version       -> response suggestions

Derivations are pure functions of the draft and the catalog and are
recomputed wholesale by `derive_form_state`. Only `load` and `submit`
suspend; both convert every failure into controller state instead of
raising.
"""

import asyncio
import copy
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from typing import Any, Protocol
from urllib.parse import quote, urlencode

from pydantic import Field, field_validator

from gateway_route_binding.core.cors import decode_cors_preflight, encode_cors_preflight
from gateway_route_binding.core.models import (
    Api,
    Binding,
    BindingType,
    ComponentCatalog,
    ComponentRef,
    GatewayModel,
    Method,
    Route,
    RouteKey,
    parse_apis,
    parse_catalog,
)
from gateway_route_binding.core.parser import ParsedPathParams, parse_path_template
from gateway_route_binding.core.policy import (
    FieldVisibility,
    allowed_methods,
    coerce_method,
    field_visibility,
)
from gateway_route_binding.core.reconciler import find_route, merge_route, route_key
from gateway_route_binding.core.suggestions import (
    component_names,
    component_versions,
    normalize_version,
    resolve_suggestions,
)
from gateway_route_binding.core.validation import validate_draft
from gateway_route_binding.exceptions import (
    ApiNotFoundError,
    ConcurrentModificationError,
    DraftValidationError,
    DuplicateRouteError,
    LoadError,
    RouteBindingError,
    SubmitError,
)

logger = logging.getLogger(__name__)


class GatewayBackend(Protocol):
    """Collaborator services the controller reads from and writes to."""

    async def fetch_api(self, name: str) -> list[Api]: ...

    async def fetch_component_catalog(self) -> ComponentCatalog: ...

    async def save_api(self, api_id: str, version: str, api: Api) -> None: ...


@dataclass(frozen=True)
class InterpolationHint:
    """A reference interpolation expression shown next to the editors."""

    label: str
    expression: str


@dataclass(frozen=True)
class EditorSettings:
    """Defaults and behaviour switches for the route editor.

    Attributes:
        default_path: Path of a fresh draft.
        default_method: Method of a fresh draft.
        default_binding_type: Binding type of a fresh draft.
        default_component_version: Version selected after a component change.
        detect_conflicts: Fail an immediate submit if the API's routes changed
            since they were loaded. Off by default: last write wins.
        interpolations: Reference table of interpolation expressions.
    """

    default_path: str = "/"
    default_method: Method = Method.GET
    default_binding_type: BindingType = BindingType.DEFAULT
    default_component_version: int = 0
    detect_conflicts: bool = False
    interpolations: tuple[InterpolationHint, ...] = ()


class FormComponent(GatewayModel):
    name: str = ""
    version: int | None = None

    @field_validator("version", mode="before")
    @classmethod
    def validate_version(cls, value: Any) -> int | None:
        if value is None:
            return None
        normalized = normalize_version(value)
        if normalized is None:
            raise ValueError(f"Invalid component version '{value}'")
        return normalized


class FormBinding(GatewayModel):
    binding_type: str | None = None
    component: FormComponent | None = None
    worker_name: str | None = None
    response: str | None = None
    idempotency_key: str | None = None


class RouteFormValues(GatewayModel):
    """Form values as posted by clients, shaped like `RouteDraft.as_form_values`.

    Text fields must be strings; a wrong type fails validation instead of
    reaching the derivations.
    """

    path: str = "/"
    method: Method | None = None
    binding: FormBinding = Field(default_factory=FormBinding)
    cors: Any = None
    security: Any = None

    @field_validator("method", mode="before")
    @classmethod
    def validate_method(cls, value: Any) -> Method | None:
        """Accept method names in any letter case."""
        if value is None:
            return None
        parsed = Method.parse(value)
        if parsed is None:
            raise ValueError(f"Unknown HTTP method '{value}'")
        return parsed


def _require_text(label: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{label} must be text, got {type(value).__name__}")
    return value


@dataclass
class RouteDraft:
    """Mutable form values of the route being edited."""

    path: str = "/"
    method: Method | None = Method.GET
    binding_type: BindingType | str = BindingType.DEFAULT
    component_name: str = ""
    component_version: int = 0
    worker_name: str = ""
    response: str = ""
    idempotency_key: str = ""
    cors: Any = None
    security: Any = None

    @classmethod
    def from_settings(cls, settings: EditorSettings) -> "RouteDraft":
        return cls(
            path=settings.default_path,
            method=settings.default_method,
            binding_type=settings.default_binding_type,
            component_version=settings.default_component_version,
        )

    @classmethod
    def from_route(cls, route: Route, settings: EditorSettings) -> "RouteDraft":
        """Hydrate a draft from a stored route.

        A cors-preflight binding's structured response is shown as JSON text
        in the response editor.
        """
        binding = route.binding
        component = binding.component
        response = binding.response or ""
        if binding.binding_type is BindingType.CORS_PREFLIGHT and binding.cors_preflight:
            response = encode_cors_preflight(binding.cors_preflight)

        return cls(
            path=route.path,
            method=route.method,
            binding_type=binding.binding_type or settings.default_binding_type,
            component_name=component.name if component else "",
            component_version=(
                component.version if component else settings.default_component_version
            ),
            worker_name=binding.worker_name or "",
            response=response,
            idempotency_key=binding.idempotency_key or "",
            cors=copy.deepcopy(route.cors),
            security=copy.deepcopy(route.security),
        )

    @classmethod
    def from_form_values(cls, values: "RouteFormValues | dict[str, Any]") -> "RouteDraft":
        """Build a draft from camelCase form values (see `as_form_values`).

        Raises:
            pydantic.ValidationError: If a value has the wrong type. It is a
                ValueError subclass.
        """
        form = (
            values
            if isinstance(values, RouteFormValues)
            else RouteFormValues.model_validate(values)
        )
        binding = form.binding
        component = binding.component or FormComponent()
        raw_type = binding.binding_type or BindingType.DEFAULT.value
        try:
            binding_type: BindingType | str = BindingType(raw_type)
        except ValueError:
            binding_type = raw_type
        return cls(
            path=form.path,
            method=form.method,
            binding_type=binding_type,
            component_name=component.name,
            component_version=component.version or 0,
            worker_name=binding.worker_name or "",
            response=binding.response or "",
            idempotency_key=binding.idempotency_key or "",
            cors=form.cors,
            security=form.security,
        )

    def as_form_values(self) -> dict[str, Any]:
        binding_type = (
            self.binding_type.value
            if isinstance(self.binding_type, BindingType)
            else self.binding_type
        )
        return {
            "path": self.path,
            "method": self.method.value if self.method is not None else None,
            "binding": {
                "bindingType": binding_type,
                "component": {
                    "name": self.component_name,
                    "version": self.component_version,
                },
                "workerName": self.worker_name,
                "response": self.response,
                "idempotencyKey": self.idempotency_key,
            },
            "cors": self.cors,
            "security": self.security,
        }

    def snapshot(self) -> "RouteDraft":
        return replace(
            self,
            cors=copy.deepcopy(self.cors),
            security=copy.deepcopy(self.security),
        )

    def to_route(self) -> Route:
        """Finalize the draft into a route record.

        Raises:
            CorsPreflightDecodeError: If a cors-preflight response text does
                not decode. Validate first to get a field-scoped message.
            ValueError: If the binding type is unknown.
        """
        binding_type = BindingType(self.binding_type)
        methods = allowed_methods(binding_type)

        component = (
            ComponentRef(name=self.component_name, version=self.component_version)
            if self.component_name
            else None
        )

        response: str | None = self.response or None
        cors_preflight = None
        worker_name: str | None = self.worker_name or None
        if binding_type is BindingType.CORS_PREFLIGHT:
            worker_name = None
            response = None
            if self.response.strip():
                cors_preflight = decode_cors_preflight(self.response)

        return Route(
            path=self.path,
            method=self.method if methods else None,
            binding=Binding(
                binding_type=binding_type,
                component=component,
                worker_name=worker_name,
                response=response,
                idempotency_key=self.idempotency_key or None,
                cors_preflight=cors_preflight,
            ),
            cors=copy.deepcopy(self.cors),
            security=copy.deepcopy(self.security),
        )


@dataclass(frozen=True)
class FormState:
    """Everything the form renders, derived from one draft snapshot."""

    draft: RouteDraft
    path_params: ParsedPathParams
    allowed_methods: tuple[Method, ...]
    visibility: FieldVisibility
    component_names: tuple[str, ...]
    versions: tuple[int, ...]
    suggestions: tuple[str, ...]
    interpolations: tuple[InterpolationHint, ...] = ()


def derive_form_state(
    draft: RouteDraft,
    catalog: ComponentCatalog,
    settings: EditorSettings,
) -> FormState:
    """Derive the complete form state from a draft and the catalog."""
    return FormState(
        draft=draft.snapshot(),
        path_params=parse_path_template(draft.path),
        allowed_methods=allowed_methods(draft.binding_type),
        visibility=field_visibility(draft.binding_type),
        component_names=tuple(component_names(catalog)),
        versions=tuple(component_versions(catalog, draft.component_name)),
        suggestions=tuple(
            resolve_suggestions(catalog, draft.component_name, draft.component_version)
        ),
        interpolations=settings.interpolations,
    )


@dataclass(frozen=True)
class NavigationSignal:
    """Where the host should go after a successful immediate submit.

    `reload_token` flips on every submit so the host refreshes its route
    listing even when path and method are unchanged.
    """

    api_name: str
    version: str
    path: str
    method: Method | None
    reload_token: bool

    @property
    def location(self) -> str:
        query = urlencode(
            {
                "path": self.path,
                "method": self.method.value if self.method is not None else "",
                "reload": str(self.reload_token).lower(),
            }
        )
        return (
            f"/apis/{quote(self.api_name, safe='')}/version/"
            f"{quote(self.version, safe='')}/routes?{query}"
        )


@dataclass(frozen=True)
class SubmitResult:
    """Outcome of a submit attempt.

    Attributes:
        ok: Whether the route was handed off or saved.
        route: The finalized route, on success.
        navigation: Navigation signal, on immediate-mode success.
        error: The failure, when not ok.
    """

    ok: bool
    route: Route | None = None
    navigation: NavigationSignal | None = None
    error: RouteBindingError | None = None


FIELD_PATHS: tuple[str, ...] = (
    "path",
    "method",
    "binding.bindingType",
    "binding.component.name",
    "binding.component.version",
    "binding.workerName",
    "binding.response",
    "binding.idempotencyKey",
    "cors",
    "security",
)


class RouteFormController:
    """Single source of truth for a route draft while it is being edited.

    Deferred mode (an `on_add_route` callback is given): submit hands the
    finalized route to the callback and clears the draft. Immediate mode:
    submit merges the route into the API's collection and saves it.

    Example:
        controller = RouteFormController(backend, api_name="shop", version="0.1.0")
        await controller.load()
        controller.set_path("/carts/{id}")
        result = await controller.submit()
    """

    def __init__(
        self,
        backend: GatewayBackend | None = None,
        *,
        api_name: str | None = None,
        version: str | None = None,
        path: str | None = None,
        method: Method | str | None = None,
        reload: bool = False,
        on_add_route: Callable[[Route], None] | None = None,
        settings: EditorSettings | None = None,
        catalog: ComponentCatalog | None = None,
    ) -> None:
        self.backend = backend
        self.api_name = api_name
        self.version = version
        self.reload = reload
        self.on_add_route = on_add_route
        self.settings = settings or EditorSettings()
        self.catalog: ComponentCatalog = dict(catalog or {})

        self.draft = RouteDraft.from_settings(self.settings)
        self.api: Api | None = None
        self.is_edit = False
        self.original_key: RouteKey | None = None
        self._edit_target = (path, method) if path and method else None
        self._loaded_routes: list[dict[str, Any]] | None = None

        self.is_loading = False
        self.is_submitting = False
        self.load_error: LoadError | None = None
        self.form_error: str | None = None
        self.field_errors: dict[str, str] = {}

        self.state = derive_form_state(self.draft, self.catalog, self.settings)

    @property
    def is_deferred(self) -> bool:
        return self.on_add_route is not None

    def _rederive(self) -> FormState:
        self.state = derive_form_state(self.draft, self.catalog, self.settings)
        return self.state

    # --- loading -----------------------------------------------------------

    async def load(self) -> FormState:
        """Fetch API details and the component catalog, then hydrate.

        Both fetches run concurrently. On failure `load_error` is set and no
        partial form state is kept.
        """
        if self.backend is None:
            self.load_error = LoadError("No backend configured for loading")
            return self.state

        self.is_loading = True
        self.load_error = None
        try:
            apis, catalog = await self._fetch_initial(self.backend)
            api = self._select_api(apis)
        except LoadError as exc:
            logger.warning(
                "Route form load failed",
                extra={"api": self.api_name, "version": self.version, "error": str(exc)},
            )
            self.load_error = exc
            return self.state
        finally:
            self.is_loading = False

        self.catalog = catalog
        self.api = api
        if api is not None:
            self._loaded_routes = _dump_routes(api.routes)

        logger.info(
            "Route form data loaded",
            extra={
                "api": self.api_name,
                "version": self.version,
                "component_count": len(catalog),
                "route_count": len(api.routes) if api else 0,
            },
        )

        if self._edit_target is not None:
            path, method = self._edit_target
            self.hydrate(api.routes if api else [], path, method)
        return self._rederive()

    async def _fetch_initial(self, backend: GatewayBackend) -> tuple[list[Api], ComponentCatalog]:
        async def fetch_apis() -> list[Any]:
            if not self.api_name:
                return []
            return await backend.fetch_api(self.api_name)

        try:
            raw_apis, raw_catalog = await asyncio.gather(
                fetch_apis(),
                backend.fetch_component_catalog(),
            )
            return parse_apis(raw_apis), parse_catalog(raw_catalog)
        except Exception as exc:
            raise LoadError(f"Failed to load required data: {exc}") from exc

    def _select_api(self, apis: Sequence[Api]) -> Api | None:
        selected = next((api for api in apis if api.version == self.version), None)
        if selected is None and self.api_name and not self.is_deferred:
            raise LoadError(f"API '{self.api_name}' version '{self.version}' not found")
        return selected

    def hydrate(
        self,
        routes: Sequence[Route],
        path: str,
        method: Method | str,
    ) -> bool:
        """Load the route identified by (path, method) into the draft.

        The draft stays at its defaults when no such route exists.

        Returns:
            True if a route was found and loaded.
        """
        self.is_edit = True
        try:
            self.original_key = route_key(path, method)
        except ValueError:
            self.original_key = None

        route = find_route(routes, path, method)
        if route is None:
            logger.warning(
                "Route to edit not found, starting from defaults",
                extra={"path": path, "method": str(method)},
            )
            self._rederive()
            return False

        self.draft = RouteDraft.from_route(route, self.settings)
        self._rederive()
        logger.debug(
            "Hydrated route draft",
            extra={
                "route": str(route.key),
                "suggestion_count": len(self.state.suggestions),
            },
        )
        return True

    def restore(self, draft: RouteDraft) -> FormState:
        """Replace the draft wholesale, e.g. with values posted by a client."""
        self.draft = draft.snapshot()
        return self._rederive()

    # --- field changes -----------------------------------------------------

    def set_path(self, path: str) -> FormState:
        """Change the path template.

        Raises:
            ValueError: If `path` is not text.
        """
        self.draft.path = _require_text("Path", path)
        return self._rederive()

    def set_method(self, method: Method | str | None) -> FormState:
        """Select a method by member or name, or clear it with None.

        Raises:
            ValueError: If `method` names no HTTP method.
        """
        parsed = Method.parse(method)
        if method is not None and parsed is None:
            raise ValueError(f"Unknown HTTP method '{method}'")
        self.draft.method = parsed
        return self._rederive()

    def set_binding_type(self, binding_type: BindingType | str) -> FormState:
        """Change the binding type and keep the method within the allowed set.

        Unknown binding type names are kept so validation can report them.

        Raises:
            ValueError: If `binding_type` is not text.
        """
        _require_text("Binding type", binding_type)
        try:
            self.draft.binding_type = BindingType(binding_type)
        except ValueError:
            self.draft.binding_type = binding_type

        coerced = coerce_method(self.draft.binding_type, self.draft.method)
        if coerced != self.draft.method:
            logger.debug(
                "Method reset for binding type",
                extra={
                    "binding_type": str(binding_type),
                    "previous": self.draft.method.value if self.draft.method else None,
                    "method": coerced.value if coerced else None,
                },
            )
        self.draft.method = coerced
        return self._rederive()

    def set_component_name(self, name: str) -> FormState:
        """Select a component; the version goes back to the default."""
        self.draft.component_name = _require_text("Component name", name)
        self.draft.component_version = self.settings.default_component_version
        return self._rederive()

    def set_component_version(self, version: int | str) -> FormState:
        """Select a component version.

        Raises:
            ValueError: If `version` is not a whole number.
        """
        normalized = normalize_version(version)
        if normalized is None:
            raise ValueError(f"Invalid component version '{version}'")
        self.draft.component_version = normalized
        return self._rederive()

    def set_worker_name(self, expression: str) -> FormState:
        self.draft.worker_name = _require_text("Worker name", expression)
        return self._rederive()

    def set_response(self, expression: str) -> FormState:
        self.draft.response = _require_text("Response", expression)
        return self._rederive()

    def set_idempotency_key(self, expression: str) -> FormState:
        self.draft.idempotency_key = _require_text("Idempotency key", expression)
        return self._rederive()

    def set_cors(self, cors: Any) -> FormState:
        self.draft.cors = cors
        return self._rederive()

    def set_security(self, security: Any) -> FormState:
        self.draft.security = security
        return self._rederive()

    def apply_change(self, field_path: str, value: Any) -> FormState:
        """Apply a change addressed by its form field path.

        Raises:
            ValueError: If the field path is unknown or the value invalid.
        """
        setters: dict[str, Callable[[Any], FormState]] = {
            "path": self.set_path,
            "method": self.set_method,
            "binding.bindingType": self.set_binding_type,
            "binding.component.name": self.set_component_name,
            "binding.component.version": self.set_component_version,
            "binding.workerName": self.set_worker_name,
            "binding.response": self.set_response,
            "binding.idempotencyKey": self.set_idempotency_key,
            "cors": self.set_cors,
            "security": self.set_security,
        }
        setter = setters.get(field_path)
        if setter is None:
            raise ValueError(
                f"Unknown form field '{field_path}'. Use one of: {', '.join(FIELD_PATHS)}"
            )
        return setter(value)

    def reset(self) -> FormState:
        """Clear the draft back to the configured defaults."""
        self.draft = RouteDraft.from_settings(self.settings)
        self.field_errors = {}
        self.form_error = None
        return self._rederive()

    # --- submission --------------------------------------------------------

    def validate(self) -> dict[str, str]:
        self.field_errors = validate_draft(self.draft, self.catalog)
        return self.field_errors

    def finalize(self) -> Route:
        """Validate the draft and build the route record.

        Raises:
            DraftValidationError: If any field is invalid.
        """
        errors = self.validate()
        if errors:
            raise DraftValidationError(errors)
        return self.draft.to_route()

    async def submit(self) -> SubmitResult:
        """Submit the draft in deferred or immediate mode.

        Never raises. On failure the draft is left exactly as it was and the
        reason is recorded in `field_errors` or `form_error`.
        """
        if self.is_submitting:
            return SubmitResult(ok=False, error=SubmitError("A submit is already in progress"))

        self.form_error = None
        try:
            route = self.finalize()
        except DraftValidationError as exc:
            logger.debug("Route draft rejected", extra={"fields": sorted(exc.errors)})
            return SubmitResult(ok=False, error=exc)

        if self.on_add_route is not None:
            return self._submit_deferred(self.on_add_route, route)

        self.is_submitting = True
        try:
            navigation = await self._commit(route)
        except (SubmitError, DuplicateRouteError) as exc:
            logger.warning(
                "Route submit failed",
                extra={"api": self.api_name, "route": str(route.key), "error": str(exc)},
            )
            self.form_error = str(exc)
            return SubmitResult(ok=False, error=exc)
        finally:
            self.is_submitting = False

        self.reload = navigation.reload_token
        self.is_edit = False
        self.original_key = None
        self.reset()
        return SubmitResult(ok=True, route=route, navigation=navigation)

    def _submit_deferred(self, callback: Callable[[Route], None], route: Route) -> SubmitResult:
        try:
            self._hand_off(callback, route)
        except SubmitError as exc:
            logger.warning(
                "Route callback failed",
                extra={"route": str(route.key), "error": str(exc)},
            )
            self.form_error = str(exc)
            return SubmitResult(ok=False, error=exc)

        logger.debug("Route handed to callback", extra={"route": str(route.key)})
        self.reset()
        return SubmitResult(ok=True, route=route)

    def _hand_off(self, callback: Callable[[Route], None], route: Route) -> None:
        try:
            callback(route)
        except Exception as exc:
            raise SubmitError(f"Failed to add route: {exc}") from exc

    async def _commit(self, route: Route) -> NavigationSignal:
        """Re-fetch the API, merge the route and write the API back.

        The read-modify-write is not atomic: without `detect_conflicts` a
        concurrent writer's changes are overwritten.
        """
        if self.backend is None or not self.api_name:
            raise SubmitError("No API selected to save the route to")

        try:
            apis = parse_apis(await self.backend.fetch_api(self.api_name))
        except Exception as exc:
            raise SubmitError(f"Failed to create route: {exc}") from exc

        selected = next((api for api in apis if api.version == self.version), None)
        if selected is None:
            raise ApiNotFoundError(f"API '{self.api_name}' version '{self.version}' not found")

        if (
            self.settings.detect_conflicts
            and self._loaded_routes is not None
            and _dump_routes(selected.routes) != self._loaded_routes
        ):
            raise ConcurrentModificationError(
                f"Routes of API '{self.api_name}' version '{self.version}' "
                "changed since they were loaded"
            )

        routes = merge_route(selected.routes, route, self.original_key)
        updated = selected.model_copy(update={"routes": routes})

        try:
            await self.backend.save_api(selected.id, selected.version, updated)
        except Exception as exc:
            raise SubmitError(f"Failed to create route: {exc}") from exc

        self.api = updated
        self._loaded_routes = _dump_routes(routes)
        logger.info(
            "Route committed",
            extra={
                "api": self.api_name,
                "version": self.version,
                "route": str(route.key),
                "replaced": str(self.original_key) if self.original_key else None,
            },
        )
        return NavigationSignal(
            api_name=self.api_name,
            version=selected.version,
            path=route.path,
            method=route.method,
            reload_token=not self.reload,
        )


def _dump_routes(routes: Sequence[Route]) -> list[dict[str, Any]]:
    return [route.model_dump(mode="json", by_alias=True) for route in routes]
