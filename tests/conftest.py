"""Shared pytest fixtures for gateway-route-binding tests."""

import copy
from typing import Any

import pytest

from gateway_route_binding.core.models import Api, ComponentCatalog, parse_apis, parse_catalog
from gateway_route_binding.exceptions import BackendError

CART_EXPORTS_V2: list[dict[str, Any]] = [
    {
        "name": "api",
        "functions": [
            {
                "name": "checkout",
                "parameters": [
                    {"name": "items", "typ": {"type": "List", "inner": {"type": "Str"}}},
                ],
            },
        ],
    },
]

CART_EXPORTS_V1: list[dict[str, Any]] = [
    {
        "name": "api",
        "functions": [
            {
                "name": "add-item",
                "parameters": [
                    {"name": "sku", "typ": {"type": "Str"}},
                    {"name": "quantity", "typ": {"type": "U32"}},
                ],
            },
            {"name": "clear", "parameters": []},
        ],
    },
    {
        "name": "admin",
        "functions": [
            {
                "name": "audit",
                "parameters": [
                    {"name": "since", "typ": {"type": "Option", "inner": {"type": "U64"}}},
                ],
            },
        ],
    },
]


@pytest.fixture
def raw_catalog() -> dict[str, Any]:
    """Return a component catalog as the collaborator sends it.

    Two components keyed by id: "cart" with versions 0-2 (v0 without
    metadata) and "auth" with a single version.
    """
    return {
        "c0a1-cart": {
            "componentName": "cart",
            "versionList": [0, 1, 2],
            "versions": [
                {"versionedComponentId": {"componentId": "c0a1-cart", "version": 0}},
                {
                    "versionedComponentId": {"componentId": "c0a1-cart", "version": 1},
                    "metadata": {"exports": CART_EXPORTS_V1},
                },
                {
                    "versionedComponentId": {"componentId": "c0a1-cart", "version": 2},
                    "metadata": {"exports": CART_EXPORTS_V2},
                },
            ],
        },
        "f00d-auth": {
            "componentName": "auth",
            "versionList": [0],
            "versions": [
                {
                    "versionedComponentId": {"componentId": "f00d-auth", "version": 0},
                    "metadata": {
                        "exports": [
                            {
                                "name": "auth:service/api",
                                "functions": [
                                    {
                                        "name": "login",
                                        "parameters": [
                                            {"name": "user", "typ": {"type": "Str"}},
                                            {"name": "password", "typ": {"type": "Str"}},
                                        ],
                                    }
                                ],
                            }
                        ]
                    },
                }
            ],
        },
    }


@pytest.fixture
def catalog(raw_catalog: dict[str, Any]) -> ComponentCatalog:
    return parse_catalog(raw_catalog)


@pytest.fixture
def raw_apis() -> list[dict[str, Any]]:
    """Return two versions of the "shop" API definition."""
    return [
        {
            "id": "shop",
            "version": "0.1.0",
            "draft": True,
            "createdAt": "2026-01-05T10:00:00Z",
            "routes": [
                {
                    "path": "/carts/{cart-id}",
                    "method": "Get",
                    "binding": {
                        "bindingType": "default",
                        "component": {"name": "cart", "version": 1},
                        "workerName": 'let id: string = request.path.cart-id; "cart-${id}"',
                        "response": "${ { status: 200, body: api.{clear}() } }",
                    },
                },
                {
                    "path": "/carts/{cart-id}",
                    "method": "Options",
                    "binding": {
                        "bindingType": "cors-preflight",
                        "corsPreflight": {
                            "allowOrigin": "*",
                            "allowMethods": "GET, POST",
                            "allowHeaders": "Content-Type",
                            "maxAge": 600,
                        },
                    },
                },
                {
                    "path": "/carts",
                    "method": "Post",
                    "binding": {
                        "bindingType": "default",
                        "component": {"name": "cart", "version": 2},
                        "workerName": '"cart-${request.body.user}"',
                        "response": "${ api.{checkout}(request.body.items) }",
                        "idempotencyKey": "${request.header.x-request-id}",
                    },
                    "security": "bearer",
                },
            ],
        },
        {"id": "shop", "version": "0.2.0", "draft": True, "routes": []},
    ]


class FakeBackend:
    """In-memory collaborator backend.

    Stores API documents by (id, version) and records every save. Set
    `fail_fetch`, `fail_catalog` or `fail_save` to make the next calls raise
    BackendError.
    """

    def __init__(self, apis: list[dict[str, Any]], catalog: dict[str, Any]) -> None:
        self._apis = {(api["id"], api["version"]): copy.deepcopy(api) for api in apis}
        self._catalog = copy.deepcopy(catalog)
        self.saves: list[tuple[str, str, Api]] = []
        self.fetch_count = 0
        self.fail_fetch = False
        self.fail_catalog = False
        self.fail_save = False

    async def fetch_api(self, name: str) -> list[Api]:
        self.fetch_count += 1
        if self.fail_fetch:
            raise BackendError("Response error. Status: 500, content: fetch failed")
        return parse_apis(
            [copy.deepcopy(api) for (api_id, _), api in self._apis.items() if api_id == name]
        )

    async def fetch_component_catalog(self) -> ComponentCatalog:
        if self.fail_catalog:
            raise BackendError("Response error. Status: 503, content: catalog unavailable")
        return parse_catalog(copy.deepcopy(self._catalog))

    async def save_api(self, api_id: str, version: str, api: Api) -> None:
        if self.fail_save:
            raise BackendError("Response error. Status: 400, content: invalid API definition")
        self._apis[(api_id, version)] = api.model_dump(mode="json", by_alias=True)
        self.saves.append((api_id, version, api))

    def stored(self, api_id: str, version: str) -> Api:
        return Api.model_validate(self._apis[(api_id, version)])

    def replace_routes(self, api_id: str, version: str, routes: list[dict[str, Any]]) -> None:
        """Simulate another editor writing the route collection."""
        self._apis[(api_id, version)]["routes"] = copy.deepcopy(routes)


@pytest.fixture
def backend(raw_apis: list[dict[str, Any]], raw_catalog: dict[str, Any]) -> FakeBackend:
    return FakeBackend(raw_apis, raw_catalog)
