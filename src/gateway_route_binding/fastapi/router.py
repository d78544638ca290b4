"""Router factory exposing the route editor over HTTP.

Each request builds a fresh RouteFormController around the given backend,
so the HTTP surface is stateless: clients post the current form values
and receive the re-derived form state.
"""

import logging
from typing import Any

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from gateway_route_binding.core.controller import (
    EditorSettings,
    GatewayBackend,
    NavigationSignal,
    RouteDraft,
    RouteFormController,
    RouteFormValues,
    SubmitResult,
)
from gateway_route_binding.core.models import Route
from gateway_route_binding.exceptions import (
    ApiNotFoundError,
    ConcurrentModificationError,
    DraftValidationError,
    DuplicateRouteError,
    RouteBindingError,
)

logger = logging.getLogger(__name__)

# Submit failures by exception type; anything else is a backend failure
ERROR_STATUS_CODES: dict[type[RouteBindingError], int] = {
    DraftValidationError: 422,
    ApiNotFoundError: 404,
    DuplicateRouteError: 409,
    ConcurrentModificationError: 409,
}

BACKEND_FAILURE_STATUS_CODE = 502


class FieldChange(BaseModel):
    field: str
    value: Any = None


class DeriveRequest(BaseModel):
    draft: RouteFormValues = Field(default_factory=RouteFormValues)
    changes: list[FieldChange] = Field(default_factory=list)


def create_route_editor_router(
    backend: GatewayBackend,
    *,
    prefix: str = "",
    settings: EditorSettings | None = None,
) -> APIRouter:
    """Create a FastAPI APIRouter serving the route editor.

    Args:
        backend: Collaborator services for API documents and the catalog.
        prefix: Optional URL prefix for all editor endpoints.
        settings: Editor defaults and behaviour switches.

    Returns:
        A FastAPI APIRouter with the editor endpoints registered.

    Example:
        from fastapi import FastAPI
        from gateway_route_binding import create_route_editor_router

        app = FastAPI()
        app.include_router(create_route_editor_router(backend, prefix="/editor"))
    """
    editor_settings = settings or EditorSettings()
    router = APIRouter(prefix=prefix, tags=["route-editor"])

    @router.get("/apis/{api_name}/versions/{version}/route-form")
    async def get_route_form(
        api_name: str,
        version: str,
        path: str | None = Query(None),
        method: str | None = Query(None),
    ) -> JSONResponse:
        """Load an API and the component catalog, hydrating an existing route."""
        controller = RouteFormController(
            backend,
            api_name=api_name,
            version=version,
            path=path,
            method=method,
            settings=editor_settings,
        )
        await controller.load()
        if controller.load_error is not None:
            return _load_failure(controller)
        return JSONResponse(form_state_payload(controller))

    @router.post("/route-form/derive")
    async def derive_route_form(request: DeriveRequest) -> JSONResponse:
        """Apply field changes in order and return the re-derived form state."""
        controller = RouteFormController(backend, settings=editor_settings)
        await controller.load()
        if controller.load_error is not None:
            return _load_failure(controller)

        controller.restore(RouteDraft.from_form_values(request.draft))
        for change in request.changes:
            try:
                controller.apply_change(change.field, change.value)
            except ValueError as exc:
                return JSONResponse(
                    {"fieldErrors": {change.field: str(exc)}},
                    status_code=422,
                )
        return JSONResponse(form_state_payload(controller))

    @router.post("/route-form/preview")
    async def preview_route(values: RouteFormValues) -> JSONResponse:
        """Validate and finalize a route without saving it."""
        added: list[Route] = []
        controller = RouteFormController(
            backend,
            on_add_route=added.append,
            settings=editor_settings,
        )
        await controller.load()
        if controller.load_error is not None:
            return _load_failure(controller)

        controller.restore(RouteDraft.from_form_values(values))
        result = await controller.submit()
        if not result.ok:
            return _submit_failure(controller, result)
        return JSONResponse({"route": _route_payload(added[0])})

    @router.post("/apis/{api_name}/versions/{version}/routes")
    async def submit_route(
        api_name: str,
        version: str,
        values: RouteFormValues,
        path: str | None = Query(None),
        method: str | None = Query(None),
        reload: bool = Query(False),
    ) -> JSONResponse:
        """Create a route, or replace the one identified by path and method."""
        controller = RouteFormController(
            backend,
            api_name=api_name,
            version=version,
            path=path,
            method=method,
            reload=reload,
            settings=editor_settings,
        )
        await controller.load()
        if controller.load_error is not None:
            return _load_failure(controller)

        controller.restore(RouteDraft.from_form_values(values))
        result = await controller.submit()
        if not result.ok:
            return _submit_failure(controller, result)

        return JSONResponse(
            {
                "route": _route_payload(result.route),
                "navigation": _navigation_payload(result.navigation),
            }
        )

    logger.info(
        "Route editor router created",
        extra={
            "prefix": prefix or "(none)",
            "detect_conflicts": editor_settings.detect_conflicts,
        },
    )

    return router


def form_state_payload(controller: RouteFormController) -> dict[str, Any]:
    """Serialize the controller's derived state for JSON clients."""
    state = controller.state
    return {
        "draft": state.draft.as_form_values(),
        "isEdit": controller.is_edit,
        "allowedMethods": [method.value for method in state.allowed_methods],
        "visibility": {
            "showMethodAndPath": state.visibility.show_method_and_path,
            "showWorkerName": state.visibility.show_worker_name,
        },
        "variableSuggestions": state.path_params.as_variable_suggestions(),
        "componentNames": list(state.component_names),
        "versions": list(state.versions),
        "suggestions": list(state.suggestions),
        "interpolations": [
            {"label": hint.label, "expression": hint.expression}
            for hint in state.interpolations
        ],
        "fieldErrors": dict(controller.field_errors),
        "formError": controller.form_error,
    }


def _route_payload(route: Route | None) -> dict[str, Any] | None:
    if route is None:
        return None
    return route.model_dump(mode="json", by_alias=True, exclude_none=True)


def _navigation_payload(navigation: NavigationSignal | None) -> dict[str, Any] | None:
    if navigation is None:
        return None
    return {
        "apiName": navigation.api_name,
        "version": navigation.version,
        "path": navigation.path,
        "method": navigation.method.value if navigation.method else None,
        "reload": navigation.reload_token,
        "location": navigation.location,
    }


def _load_failure(controller: RouteFormController) -> JSONResponse:
    return JSONResponse(
        {"loadError": str(controller.load_error)},
        status_code=BACKEND_FAILURE_STATUS_CODE,
    )


def _submit_failure(controller: RouteFormController, result: SubmitResult) -> JSONResponse:
    status_code = BACKEND_FAILURE_STATUS_CODE
    for error_type, code in ERROR_STATUS_CODES.items():
        if isinstance(result.error, error_type):
            status_code = code
            break

    if isinstance(result.error, DraftValidationError):
        return JSONResponse({"fieldErrors": result.error.errors}, status_code=status_code)
    return JSONResponse({"formError": controller.form_error}, status_code=status_code)
