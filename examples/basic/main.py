"""Basic example hosting the route editor over HTTP.

An in-memory backend stands in for the gateway registry and the component
service. Edits are kept for the lifetime of the process.

Run with:
    uvicorn main:app --reload

Available endpoints:
    GET  /editor/apis/{api_name}/versions/{version}/route-form  - Load the form
    POST /editor/route-form/derive                               - Apply field changes
    POST /editor/route-form/preview                              - Finalize without saving
    POST /editor/apis/{api_name}/versions/{version}/routes       - Create or replace a route
"""

import copy
import logging
from typing import Any

from fastapi import FastAPI

from gateway_route_binding import (
    Api,
    BackendError,
    ComponentCatalog,
    EditorSettings,
    InterpolationHint,
    create_route_editor_router,
    parse_catalog,
)

logging.basicConfig(level=logging.INFO)

CATALOG: dict[str, Any] = {
    "7c1e-todo": {
        "componentName": "todo",
        "versionList": [0, 1],
        "versions": [
            {"versionedComponentId": {"componentId": "7c1e-todo", "version": 0}},
            {
                "versionedComponentId": {"componentId": "7c1e-todo", "version": 1},
                "metadata": {
                    "exports": [
                        {
                            "name": "todo:app/api",
                            "functions": [
                                {
                                    "name": "add",
                                    "parameters": [
                                        {"name": "title", "typ": {"type": "Str"}},
                                        {
                                            "name": "due",
                                            "typ": {"type": "Option", "inner": {"type": "U64"}},
                                        },
                                    ],
                                },
                                {"name": "list", "parameters": []},
                            ],
                        }
                    ]
                },
            },
        ],
    }
}


class InMemoryBackend:
    """Gateway backend keeping API documents in a dictionary."""

    def __init__(self, apis: list[Api], catalog: dict[str, Any]) -> None:
        self._apis = {(api.id, api.version): api for api in apis}
        self._catalog = parse_catalog(catalog)

    async def fetch_api(self, name: str) -> list[Api]:
        found = [copy.deepcopy(api) for (api_id, _), api in self._apis.items() if api_id == name]
        if not found:
            raise BackendError(f"Response error. Status: 404, content: API '{name}' not found")
        return found

    async def fetch_component_catalog(self) -> ComponentCatalog:
        return self._catalog

    async def save_api(self, api_id: str, version: str, api: Api) -> None:
        self._apis[(api_id, version)] = copy.deepcopy(api)


backend = InMemoryBackend([Api(id="todo-api", version="0.1.0")], CATALOG)

settings = EditorSettings(
    interpolations=(
        InterpolationHint("Path Parameters", "${request.path.<param_name>}"),
        InterpolationHint("Query Parameters", "${request.query.<param_name>}"),
        InterpolationHint("Request Body", "${request.body}"),
        InterpolationHint("Request Headers", "${request.header.<header_name>}"),
    ),
)

app = FastAPI(title="Route Editor Example")
app.include_router(create_route_editor_router(backend, prefix="/editor", settings=settings))
