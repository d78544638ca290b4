"""Field validation for route drafts.

Produces field-scoped messages keyed by the wire field path
("binding.workerName", ...). Validation only blocks submission; it never
changes the draft.
"""

from typing import TYPE_CHECKING

from gateway_route_binding.core.cors import decode_cors_preflight
from gateway_route_binding.core.models import BindingType, ComponentCatalog
from gateway_route_binding.core.parser import validate_path_template
from gateway_route_binding.core.policy import allowed_methods
from gateway_route_binding.core.suggestions import find_component, normalize_version
from gateway_route_binding.exceptions import CorsPreflightDecodeError, PathTemplateError

if TYPE_CHECKING:
    from gateway_route_binding.core.controller import RouteDraft

_OPENERS = {"{": "}", "[": "]", "(": ")"}
_CLOSERS = {"}": "{", "]": "[", ")": "("}

# Binding types that dispatch to a component worker
_COMPONENT_BINDINGS = frozenset(
    {BindingType.DEFAULT, BindingType.FILE_SERVER, BindingType.HTTP_HANDLER}
)


def check_expression_syntax(expression: str) -> str | None:
    """Check that brackets in an interpolation expression are balanced.

    `${`, `{`, `[` and `(` must be closed in order; anything inside a
    double-quoted string literal is ignored.

    Returns:
        None when balanced, otherwise a message naming the first problem.

    Examples:
        "${request.path.id}" -> None
        "${request.path.id" -> "Unclosed '{' at position 1"
        "foo)" -> "Unexpected ')' at position 3"
    """
    stack: list[tuple[str, int]] = []
    in_string = False
    escaped = False

    for position, char in enumerate(expression):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in _OPENERS:
            stack.append((char, position))
        elif char in _CLOSERS:
            if not stack or stack[-1][0] != _CLOSERS[char]:
                return f"Unexpected '{char}' at position {position}"
            stack.pop()

    if in_string:
        return "Unterminated string literal"
    if stack:
        char, position = stack[-1]
        return f"Unclosed '{char}' at position {position}"
    return None


def validate_draft(draft: "RouteDraft", catalog: ComponentCatalog) -> dict[str, str]:
    """Validate a route draft against the binding rules and the catalog.

    Args:
        draft: The draft being edited.
        catalog: Component catalog used to check component and version.

    Returns:
        Mapping of field path to error message; empty when the draft is valid.
    """
    errors: dict[str, str] = {}

    try:
        validate_path_template(draft.path)
    except PathTemplateError as exc:
        errors["path"] = str(exc)

    try:
        binding_type = BindingType(draft.binding_type)
    except ValueError:
        errors["binding.bindingType"] = (
            f"Unknown binding type '{draft.binding_type}'. "
            f"Use one of: {', '.join(b.value for b in BindingType)}"
        )
        return errors

    methods = allowed_methods(binding_type)
    if methods:
        if draft.method is None:
            errors["method"] = "Method is required"
        elif draft.method not in methods:
            errors["method"] = (
                f"Method '{draft.method.value}' is not allowed for "
                f"'{binding_type.value}' bindings"
            )

    if binding_type in _COMPONENT_BINDINGS:
        entry = find_component(catalog, draft.component_name)
        if not draft.component_name:
            errors["binding.component.name"] = "Component is required"
        elif entry is None:
            errors["binding.component.name"] = f"Unknown component '{draft.component_name}'"
        elif normalize_version(draft.component_version) not in entry.version_list:
            errors["binding.component.version"] = (
                f"Version {draft.component_version} is not published for "
                f"'{draft.component_name}'"
            )

    if binding_type is BindingType.DEFAULT:
        if not draft.worker_name.strip():
            errors["binding.workerName"] = "Worker name is required"
        if not draft.response.strip():
            errors["binding.response"] = "Response is required"

    expressions = {
        "binding.idempotencyKey": draft.idempotency_key,
    }
    if binding_type is BindingType.CORS_PREFLIGHT:
        if draft.response.strip():
            try:
                decode_cors_preflight(draft.response)
            except CorsPreflightDecodeError as exc:
                errors["binding.response"] = str(exc)
    else:
        expressions["binding.workerName"] = draft.worker_name
        expressions["binding.response"] = draft.response

    for field_path, expression in expressions.items():
        if field_path in errors or not expression:
            continue
        problem = check_expression_syntax(expression)
        if problem is not None:
            errors[field_path] = f"Invalid expression: {problem}"

    return errors
