"""Route binding configuration engine for API gateway route editors."""

# Primary API: the form controller and its HTTP adapter
from gateway_route_binding.core.controller import (
    EditorSettings,
    FormState,
    GatewayBackend,
    InterpolationHint,
    NavigationSignal,
    RouteDraft,
    RouteFormController,
    RouteFormValues,
    SubmitResult,
    derive_form_state,
)

# Core derivations, usable without a controller
from gateway_route_binding.core.cors import decode_cors_preflight, encode_cors_preflight
from gateway_route_binding.core.models import (
    Api,
    Binding,
    BindingType,
    ComponentCatalog,
    ComponentEntry,
    ComponentRef,
    CorsPreflight,
    Method,
    Route,
    RouteKey,
    parse_catalog,
)
from gateway_route_binding.core.parser import ParsedPathParams, parse_path_template
from gateway_route_binding.core.policy import FieldVisibility, allowed_methods, field_visibility
from gateway_route_binding.core.reconciler import find_route, merge_route
from gateway_route_binding.core.suggestions import resolve_suggestions, shorten_type
from gateway_route_binding.core.validation import validate_draft

# Exceptions for error handling
from gateway_route_binding.exceptions import (
    ApiNotFoundError,
    BackendError,
    ConcurrentModificationError,
    CorsPreflightDecodeError,
    DraftValidationError,
    DuplicateRouteError,
    LoadError,
    PathTemplateError,
    RouteBindingError,
    SubmitError,
)
from gateway_route_binding.fastapi.router import create_route_editor_router

__all__ = [
    # Primary API
    "RouteFormController",
    "create_route_editor_router",
    "EditorSettings",
    "FormState",
    "GatewayBackend",
    "InterpolationHint",
    "NavigationSignal",
    "RouteDraft",
    "RouteFormValues",
    "SubmitResult",
    "derive_form_state",
    # Core derivations
    "allowed_methods",
    "decode_cors_preflight",
    "encode_cors_preflight",
    "field_visibility",
    "find_route",
    "merge_route",
    "parse_catalog",
    "parse_path_template",
    "resolve_suggestions",
    "shorten_type",
    "validate_draft",
    # Core types
    "Api",
    "Binding",
    "BindingType",
    "ComponentCatalog",
    "ComponentEntry",
    "ComponentRef",
    "CorsPreflight",
    "FieldVisibility",
    "Method",
    "ParsedPathParams",
    "Route",
    "RouteKey",
    # Exceptions
    "ApiNotFoundError",
    "BackendError",
    "ConcurrentModificationError",
    "CorsPreflightDecodeError",
    "DraftValidationError",
    "DuplicateRouteError",
    "LoadError",
    "PathTemplateError",
    "RouteBindingError",
    "SubmitError",
]

__version__ = "0.1.0"
