"""Path template parser for gateway routes.

Extracts the named placeholders from a route path template:
- {name} -> path parameter "name"
- ?key={name} / &key={name} -> query parameter "key" bound to "name"

Parsing is total: malformed templates yield fewer matches, never errors.
"""

import re
from dataclasses import dataclass, field
from typing import Any

from gateway_route_binding.exceptions import PathTemplateError

_PATH_PARAM_PATTERN = re.compile(r"\{([^}]+)\}")
_QUERY_PARAM_PATTERN = re.compile(r"[?&]([^=]+)=\{([^}]+)\}")


@dataclass(frozen=True)
class ParsedPathParams:
    """Placeholders found in a path template.

    Attributes:
        path_params: Path parameter names, mapped to themselves.
        query_params: Query keys mapped to the placeholder they bind.
    """

    path_params: dict[str, str] = field(default_factory=dict)
    query_params: dict[str, str] = field(default_factory=dict)

    def as_variable_suggestions(self) -> dict[str, Any]:
        """Shape the parameters as the expression editors' autocomplete context.

        Examples:
            "/users/{id}" -> {"request": {"path": {"id": "id"}, "query": {}}}
        """
        return {
            "request": {
                "path": dict(self.path_params),
                "query": dict(self.query_params),
            }
        }


def parse_path_template(path: str) -> ParsedPathParams:
    """Collect path and query placeholders from a path template.

    Both scans run over the whole string independently, so a query
    placeholder is also reported as a path parameter.

    Args:
        path: Route path template.

    Returns:
        ParsedPathParams with path parameters (name -> name) and
        query parameters (key -> placeholder name).

    Examples:
        "/users/{id}" -> path_params={"id": "id"}, query_params={}
        "/search?sort={field}" -> path_params={"field": "field"},
                                  query_params={"sort": "field"}
    """
    path_params = {name: name for name in _PATH_PARAM_PATTERN.findall(path)}
    query_params = dict(_QUERY_PARAM_PATTERN.findall(path))
    return ParsedPathParams(path_params=path_params, query_params=query_params)


def validate_path_template(path: str) -> str:
    """Check a path template strictly, for callers that must reject it.

    Args:
        path: Route path template.

    Returns:
        The template, unchanged.

    Raises:
        PathTemplateError: If the template is empty, does not start with '/',
            has an empty placeholder, or has unbalanced braces.

    Examples:
        "/users/{id}" -> "/users/{id}"
        "users/{id}" -> PathTemplateError
        "/users/{id" -> PathTemplateError
    """
    if not path:
        raise PathTemplateError("Path is required")
    if not path.startswith("/"):
        raise PathTemplateError(f"Path must start with '/': '{path}'")

    depth = 0
    for position, char in enumerate(path):
        if char == "{":
            if depth:
                raise PathTemplateError(f"Nested '{{' at position {position} in '{path}'")
            depth = 1
        elif char == "}":
            if not depth:
                raise PathTemplateError(f"Unexpected '}}' at position {position} in '{path}'")
            if path[position - 1] == "{":
                raise PathTemplateError(f"Empty placeholder at position {position - 1} in '{path}'")
            depth = 0
    if depth:
        raise PathTemplateError(f"Unclosed '{{' in '{path}'")

    return path
