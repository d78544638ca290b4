"""Response expression suggestions from component export metadata.

Given the component catalog, renders every function exported by a selected
component version as a call signature for the response editor's
autocomplete popover:

    api.{checkout}(items: list<string>, note: option<string>)

Suggestions are advisory. Lookup misses (unknown component, unknown
version, no metadata) produce an empty list, never an error.
"""

import logging
import math
from collections.abc import Mapping
from typing import Any

from gateway_route_binding.core.models import (
    ComponentCatalog,
    ComponentEntry,
    ComponentVersion,
)

logger = logging.getLogger(__name__)

# Analysed primitive type tags -> WIT spelling
PRIMITIVE_TYPE_NAMES: dict[str, str] = {
    "bool": "bool",
    "s8": "s8",
    "s16": "s16",
    "s32": "s32",
    "s64": "s64",
    "u8": "u8",
    "u16": "u16",
    "u32": "u32",
    "u64": "u64",
    "f32": "f32",
    "f64": "f64",
    "chr": "char",
    "char": "char",
    "str": "string",
    "string": "string",
}

# Compound types shown by kind only, their members do not fit a one-liner
_OPAQUE_KINDS = frozenset({"record", "variant", "enum", "flags", "handle", "resource"})


def normalize_version(value: Any) -> int | None:
    """Normalize a component version to an int.

    Catalog versions are numbers while the selected version is often text,
    so both sides go through here before comparison.

    Examples:
        2 -> 2
        "2" -> 2
        " 02 " -> 2
        "2.0" -> 2
        "2.5" -> None
        "latest" -> None
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) and value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return int(number) if math.isfinite(number) and number.is_integer() else None
    return None


def shorten_type(typ: Any) -> str:
    """Render a parameter type as a short, human-readable type name.

    Accepts plain type names (returned unchanged) or analysed type
    descriptors such as {"type": "List", "inner": {"type": "Str"}}.

    Examples:
        {"type": "Str"} -> "string"
        {"type": "List", "inner": {"type": "Str"}} -> "list<string>"
        {"type": "Result", "ok": {"type": "U32"}} -> "result<u32, _>"
        {"type": "Record", "fields": [...]} -> "record"
        "list<string>" -> "list<string>"
    """
    if isinstance(typ, str):
        return typ
    if not isinstance(typ, Mapping):
        return "unknown"

    kind = str(typ.get("type", "")).lower()

    if kind in PRIMITIVE_TYPE_NAMES:
        return PRIMITIVE_TYPE_NAMES[kind]
    if kind == "list":
        return f"list<{shorten_type(typ.get('inner'))}>"
    if kind == "option":
        return f"option<{shorten_type(typ.get('inner'))}>"
    if kind == "result":
        ok = typ.get("ok")
        err = typ.get("err")
        ok_name = shorten_type(ok) if ok is not None else "_"
        err_name = shorten_type(err) if err is not None else "_"
        return f"result<{ok_name}, {err_name}>"
    if kind == "tuple":
        items = typ.get("items") or []
        return f"tuple<{', '.join(shorten_type(item) for item in items)}>"
    if kind in _OPAQUE_KINDS:
        return kind
    return "unknown"


def component_names(catalog: ComponentCatalog) -> list[str]:
    """Display names of all catalog components, in catalog order."""
    return [entry.component_name for entry in catalog.values() if entry.component_name]


def find_component_id(catalog: ComponentCatalog, component_name: str) -> str | None:
    """Find the catalog key of the component with the given display name."""
    if not component_name:
        return None
    for component_id, entry in catalog.items():
        if entry.component_name == component_name:
            return component_id
    return None


def find_component(catalog: ComponentCatalog, component_name: str) -> ComponentEntry | None:
    component_id = find_component_id(catalog, component_name)
    return catalog[component_id] if component_id is not None else None


def component_versions(catalog: ComponentCatalog, component_name: str) -> list[int]:
    """Published versions of a component, empty if the name is unknown."""
    entry = find_component(catalog, component_name)
    return list(entry.version_list) if entry is not None else []


def _find_version(entry: ComponentEntry, version: Any) -> ComponentVersion | None:
    wanted = normalize_version(version)
    if wanted is None:
        return None
    for candidate in entry.versions:
        vid = candidate.versioned_component_id
        if vid is not None and normalize_version(vid.version) == wanted:
            return candidate
    return None


def resolve_suggestions(
    catalog: ComponentCatalog,
    component_name: str,
    version: Any,
) -> list[str]:
    """Render the functions exported by a component version as call signatures.

    Order follows the catalog: interfaces, then functions, then parameters
    in declaration order.

    Args:
        catalog: Component catalog keyed by component id.
        component_name: Display name of the selected component.
        version: Selected version, as a number or text.

    Returns:
        Signatures like "api.{checkout}(items: list<string>)"; empty when
        the component, the version or its metadata cannot be found.
    """
    entry = find_component(catalog, component_name)
    if entry is None:
        if component_name:
            logger.debug(
                "Component not in catalog, no suggestions",
                extra={"component": component_name},
            )
        return []

    component_version = _find_version(entry, version)
    if component_version is None:
        logger.debug(
            "Component version not in catalog, no suggestions",
            extra={"component": component_name, "version": version},
        )
        return []

    exports = component_version.metadata.exports if component_version.metadata else []

    suggestions: list[str] = []
    for interface in exports:
        for function in interface.functions:
            params = ", ".join(
                f"{param.name}: {shorten_type(param.typ)}" for param in function.parameters
            )
            suggestions.append(f"{interface.name}.{{{function.name}}}({params})")

    logger.debug(
        "Resolved response suggestions",
        extra={
            "component": component_name,
            "version": version,
            "count": len(suggestions),
        },
    )
    return suggestions
