"""Binding type policy: which HTTP methods and form fields a binding allows."""

from dataclasses import dataclass

from gateway_route_binding.core.models import BindingType, Method

# Binding types without an entry fix the endpoint shape elsewhere
ALLOWED_METHODS: dict[str, tuple[Method, ...]] = {
    BindingType.DEFAULT.value: (
        Method.GET,
        Method.POST,
        Method.PUT,
        Method.DELETE,
        Method.PATCH,
    ),
    BindingType.CORS_PREFLIGHT.value: (
        Method.OPTIONS,
        Method.HEAD,
        Method.TRACE,
        Method.CONNECT,
    ),
}


@dataclass(frozen=True)
class FieldVisibility:
    """Which optional parts of the route form are shown.

    Attributes:
        show_method_and_path: Method selector and path input are shown.
        show_worker_name: Worker name expression editor is shown.
    """

    show_method_and_path: bool
    show_worker_name: bool


def _binding_value(binding_type: BindingType | str | None) -> str:
    if isinstance(binding_type, BindingType):
        return binding_type.value
    return binding_type or ""


def allowed_methods(binding_type: BindingType | str | None) -> tuple[Method, ...]:
    """Return the HTTP methods selectable for a binding type, in display order.

    Examples:
        "default" -> (Get, Post, Put, Delete, Patch)
        "cors-preflight" -> (Options, Head, Trace, Connect)
        "file-server" -> ()
    """
    return ALLOWED_METHODS.get(_binding_value(binding_type), ())


def field_visibility(binding_type: BindingType | str | None) -> FieldVisibility:
    """Derive form field visibility from the binding type."""
    value = _binding_value(binding_type)
    return FieldVisibility(
        show_method_and_path=bool(allowed_methods(value)),
        show_worker_name=value != BindingType.CORS_PREFLIGHT.value,
    )


def coerce_method(
    binding_type: BindingType | str | None,
    method: Method | None,
) -> Method | None:
    """Keep `method` if the binding type allows it, else fall back.

    Returns:
        `method` when allowed, otherwise the first allowed method, or None
        when the binding type allows no methods at all.
    """
    methods = allowed_methods(binding_type)
    if method in methods:
        return method
    return methods[0] if methods else None
