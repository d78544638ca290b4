"""Gateway documents exchanged with the collaborator services.

Routes, bindings and API definitions, plus the read-only component catalog
whose export metadata feeds response suggestions. All models accept both the
camelCase keys used on the wire and snake_case attribute names, and dump by
alias so a document written back keeps its original shape.
"""

from enum import Enum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Method(str, Enum):
    """HTTP verbs a gateway route can be bound to."""

    GET = "Get"
    POST = "Post"
    PUT = "Put"
    DELETE = "Delete"
    PATCH = "Patch"
    HEAD = "Head"
    OPTIONS = "Options"
    TRACE = "Trace"
    CONNECT = "Connect"

    @classmethod
    def parse(cls, value: "Method | str | None") -> "Method | None":
        """Parse a method name case-insensitively, None if unknown.

        Examples:
            "Get" -> Method.GET
            "DELETE" -> Method.DELETE
            "fetch" -> None
        """
        if value is None or isinstance(value, cls):
            return value
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        return None


class BindingType(str, Enum):
    """How a route dispatches a request."""

    DEFAULT = "default"
    CORS_PREFLIGHT = "cors-preflight"
    FILE_SERVER = "file-server"
    HTTP_HANDLER = "http-handler"


class GatewayModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RouteKey(NamedTuple):
    """Identity of a route inside one API's collection."""

    method: Method | None
    path: str

    def __str__(self) -> str:
        method = self.method.value if self.method is not None else "*"
        return f"{method} {self.path}"


class ComponentRef(GatewayModel):
    name: str = ""
    version: int = 0


class CorsPreflight(GatewayModel):
    """Structured response of a cors-preflight binding."""

    allow_origin: str
    allow_methods: str
    allow_headers: str
    expose_headers: str | None = None
    allow_credentials: bool | None = None
    max_age: int | None = None


class Binding(GatewayModel):
    binding_type: BindingType = BindingType.DEFAULT
    component: ComponentRef | None = None
    worker_name: str | None = None
    response: str | None = None
    idempotency_key: str | None = None
    cors_preflight: CorsPreflight | None = None


class Route(GatewayModel):
    """One gateway route: method + path template bound to a worker."""

    path: str
    method: Method | None = None
    binding: Binding = Field(default_factory=Binding)
    cors: Any = None
    security: Any = None

    @property
    def key(self) -> RouteKey:
        return RouteKey(self.method, self.path)


class Api(GatewayModel):
    """An API definition version owning a route collection.

    Unknown keys are kept so a whole-document write never drops them.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    id: str
    version: str
    routes: list[Route] = Field(default_factory=list)
    draft: bool = True


class FunctionParameter(GatewayModel):
    name: str
    # Either a plain type name or an analysed type descriptor
    typ: str | dict[str, Any] | None = None


class ExportFunction(GatewayModel):
    name: str
    parameters: list[FunctionParameter] = Field(default_factory=list)


class ExportInterface(GatewayModel):
    name: str
    functions: list[ExportFunction] = Field(default_factory=list)


class ComponentMetadata(GatewayModel):
    exports: list[ExportInterface] = Field(default_factory=list)


class VersionedComponentId(GatewayModel):
    component_id: str = ""
    # Numbers on the wire, occasionally strings; normalised at comparison time
    version: int | str | None = None


class ComponentVersion(GatewayModel):
    versioned_component_id: VersionedComponentId | None = None
    metadata: ComponentMetadata | None = None


class ComponentEntry(GatewayModel):
    """Catalog entry for one component: display name, versions, exports."""

    component_name: str = ""
    version_list: list[int] = Field(default_factory=list)
    versions: list[ComponentVersion] = Field(default_factory=list)


# Keyed by component id
ComponentCatalog = dict[str, ComponentEntry]


def parse_catalog(raw: dict[str, Any]) -> ComponentCatalog:
    """Validate a raw component-id keyed mapping into a ComponentCatalog.

    Entries that are already ComponentEntry instances are kept as-is.
    """
    return {
        component_id: (
            entry
            if isinstance(entry, ComponentEntry)
            else ComponentEntry.model_validate(entry)
        )
        for component_id, entry in raw.items()
    }


def parse_apis(raw: list[Any]) -> list[Api]:
    """Validate a list of raw API documents."""
    return [api if isinstance(api, Api) else Api.model_validate(api) for api in raw]
