"""Tests for the FastAPI route editor adapter."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from gateway_route_binding.core.controller import EditorSettings, InterpolationHint
from gateway_route_binding.exceptions import (
    ApiNotFoundError,
    ConcurrentModificationError,
    DraftValidationError,
    DuplicateRouteError,
)
from gateway_route_binding.fastapi.router import (
    BACKEND_FAILURE_STATUS_CODE,
    ERROR_STATUS_CODES,
    create_route_editor_router,
)

NEW_ROUTE = {
    "path": "/carts/{cart-id}/items",
    "method": "Post",
    "binding": {
        "bindingType": "default",
        "component": {"name": "cart", "version": 2},
        "workerName": '"cart-${request.path.cart-id}"',
        "response": "${ api.{checkout}(request.body.items) }",
    },
}


@pytest.fixture
def client(backend) -> TestClient:
    app = FastAPI()
    app.include_router(create_route_editor_router(backend))
    return TestClient(app)


class TestErrorStatusCodes:
    """Test the ERROR_STATUS_CODES configuration."""

    def test_validation_is_422(self):
        assert ERROR_STATUS_CODES[DraftValidationError] == 422

    def test_missing_api_is_404(self):
        assert ERROR_STATUS_CODES[ApiNotFoundError] == 404

    def test_conflicts_are_409(self):
        assert ERROR_STATUS_CODES[DuplicateRouteError] == 409
        assert ERROR_STATUS_CODES[ConcurrentModificationError] == 409

    def test_backend_failure_is_502(self):
        assert BACKEND_FAILURE_STATUS_CODE == 502


class TestRouteForm:
    """Test loading the form for an API version."""

    def test_edit_form_is_hydrated(self, client):
        response = client.get(
            "/apis/shop/versions/0.1.0/route-form",
            params={"path": "/carts/{cart-id}", "method": "Get"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["isEdit"] is True
        assert body["draft"]["binding"]["component"] == {"name": "cart", "version": 1}
        assert body["allowedMethods"] == ["Get", "Post", "Put", "Delete", "Patch"]
        assert body["variableSuggestions"] == {
            "request": {"path": {"cart-id": "cart-id"}, "query": {}}
        }
        assert body["versions"] == [0, 1, 2]
        assert len(body["suggestions"]) == 3
        assert body["fieldErrors"] == {}
        assert body["formError"] is None

    def test_create_form(self, client):
        body = client.get("/apis/shop/versions/0.2.0/route-form").json()
        assert body["isEdit"] is False
        assert body["draft"]["path"] == "/"
        assert body["componentNames"] == ["cart", "auth"]

    def test_unknown_version_is_load_error(self, client):
        response = client.get("/apis/shop/versions/4.0.0/route-form")
        assert response.status_code == 502
        assert "not found" in response.json()["loadError"]

    def test_catalog_failure(self, client, backend):
        backend.fail_catalog = True
        response = client.get("/apis/shop/versions/0.1.0/route-form")
        assert response.status_code == 502
        assert response.json()["loadError"].startswith("Failed to load required data")

    def test_interpolations_from_settings(self, backend):
        settings = EditorSettings(
            interpolations=(InterpolationHint("Path Parameters", "${request.path.<param>}"),)
        )
        app = FastAPI()
        app.include_router(create_route_editor_router(backend, settings=settings))

        body = TestClient(app).get("/apis/shop/versions/0.2.0/route-form").json()

        assert body["interpolations"] == [
            {"label": "Path Parameters", "expression": "${request.path.<param>}"}
        ]


class TestDerive:
    """Test applying field changes over HTTP."""

    def test_binding_change_coerces_method(self, client):
        response = client.post(
            "/route-form/derive",
            json={
                "draft": {"path": "/carts", "method": "Post"},
                "changes": [{"field": "binding.bindingType", "value": "cors-preflight"}],
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["draft"]["method"] == "Options"
        assert body["visibility"] == {"showMethodAndPath": True, "showWorkerName": False}

    def test_changes_apply_in_order(self, client):
        body = client.post(
            "/route-form/derive",
            json={
                "draft": {"binding": {"component": {"name": "cart", "version": 2}}},
                "changes": [
                    {"field": "binding.component.name", "value": "auth"},
                    {"field": "path", "value": "/login?next={target}"},
                ],
            },
        ).json()

        assert body["draft"]["binding"]["component"] == {"name": "auth", "version": 0}
        assert body["suggestions"] == [
            "auth:service/api.{login}(user: string, password: string)"
        ]
        assert body["variableSuggestions"]["request"]["query"] == {"next": "target"}

    def test_unknown_field(self, client):
        response = client.post(
            "/route-form/derive",
            json={"changes": [{"field": "binding.timeout", "value": 5}]},
        )
        assert response.status_code == 422
        assert "Unknown form field" in response.json()["fieldErrors"]["binding.timeout"]

    def test_invalid_version(self, client):
        response = client.post(
            "/route-form/derive",
            json={"changes": [{"field": "binding.component.version", "value": "next"}]},
        )
        assert response.status_code == 422
        assert "binding.component.version" in response.json()["fieldErrors"]


class TestPreview:
    """Test finalizing a route without saving."""

    def test_preview_returns_route(self, client, backend):
        response = client.post("/route-form/preview", json=NEW_ROUTE)

        assert response.status_code == 200
        assert response.json()["route"] == NEW_ROUTE
        assert backend.saves == []

    def test_preview_validation_errors(self, client):
        response = client.post("/route-form/preview", json={"path": "carts"})
        assert response.status_code == 422
        errors = response.json()["fieldErrors"]
        assert "path" in errors
        assert "binding.component.name" in errors


class TestSubmitRoute:
    """Test immediate-mode submission over HTTP."""

    def test_create(self, client, backend):
        response = client.post("/apis/shop/versions/0.2.0/routes", json=NEW_ROUTE)

        assert response.status_code == 200
        body = response.json()
        assert body["route"] == NEW_ROUTE
        assert body["navigation"] == {
            "apiName": "shop",
            "version": "0.2.0",
            "path": "/carts/{cart-id}/items",
            "method": "Post",
            "reload": True,
            "location": (
                "/apis/shop/version/0.2.0/routes"
                "?path=%2Fcarts%2F%7Bcart-id%7D%2Fitems&method=Post&reload=true"
            ),
        }
        assert len(backend.stored("shop", "0.2.0").routes) == 1

    def test_edit_replaces_route(self, client, backend):
        response = client.post(
            "/apis/shop/versions/0.1.0/routes",
            params={"path": "/carts", "method": "Post", "reload": "true"},
            json={**NEW_ROUTE, "path": "/carts/new"},
        )

        assert response.status_code == 200
        assert response.json()["navigation"]["reload"] is False
        paths = [route.path for route in backend.stored("shop", "0.1.0").routes]
        assert paths == ["/carts/{cart-id}", "/carts/{cart-id}", "/carts/new"]

    def test_validation_failure(self, client, backend):
        response = client.post(
            "/apis/shop/versions/0.2.0/routes",
            json={**NEW_ROUTE, "method": "Options"},
        )
        assert response.status_code == 422
        assert "method" in response.json()["fieldErrors"]
        assert backend.saves == []

    def test_duplicate(self, client):
        response = client.post(
            "/apis/shop/versions/0.1.0/routes",
            json={**NEW_ROUTE, "path": "/carts"},
        )
        assert response.status_code == 409
        assert "Duplicate route" in response.json()["formError"]

    def test_save_failure(self, client, backend):
        backend.fail_save = True
        response = client.post("/apis/shop/versions/0.2.0/routes", json=NEW_ROUTE)
        assert response.status_code == 502
        assert response.json()["formError"].startswith("Failed to create route")

    def test_missing_api_is_load_failure(self, client):
        response = client.post("/apis/shop/versions/7.0.0/routes", json=NEW_ROUTE)
        assert response.status_code == 502
        assert "loadError" in response.json()

    def test_prefix(self, backend):
        app = FastAPI()
        app.include_router(create_route_editor_router(backend, prefix="/editor"))
        client = TestClient(app)

        response = client.post("/editor/apis/shop/versions/0.2.0/routes", json=NEW_ROUTE)

        assert response.status_code == 200


class TestMalformedFormValues:
    """Test that wrongly typed form values are rejected, never crash."""

    def test_derive_null_path(self, client):
        response = client.post(
            "/route-form/derive",
            json={"changes": [{"field": "path", "value": None}]},
        )
        assert response.status_code == 422
        assert response.json()["fieldErrors"] == {"path": "Path must be text, got NoneType"}

    def test_derive_unknown_method(self, client):
        response = client.post(
            "/route-form/derive",
            json={"changes": [{"field": "method", "value": "fetch"}]},
        )
        assert response.status_code == 422
        assert response.json()["fieldErrors"] == {"method": "Unknown HTTP method 'fetch'"}

    def test_derive_numeric_binding_type(self, client):
        response = client.post(
            "/route-form/derive",
            json={"changes": [{"field": "binding.bindingType", "value": 5}]},
        )
        assert response.status_code == 422

    def test_derive_malformed_draft(self, client):
        response = client.post("/route-form/derive", json={"draft": {"path": None}})
        assert response.status_code == 422

    def test_preview_numeric_worker_name(self, client):
        body = {**NEW_ROUTE, "binding": {**NEW_ROUTE["binding"], "workerName": 5}}
        response = client.post("/route-form/preview", json=body)
        assert response.status_code == 422
        assert "workerName" in str(response.json()["detail"])

    def test_preview_null_path(self, client):
        response = client.post("/route-form/preview", json={**NEW_ROUTE, "path": None})
        assert response.status_code == 422

    def test_submit_unknown_method(self, client, backend):
        response = client.post(
            "/apis/shop/versions/0.2.0/routes",
            json={**NEW_ROUTE, "method": "fetch"},
        )
        assert response.status_code == 422
        assert backend.saves == []

    def test_submit_method_name_in_any_case(self, client):
        response = client.post(
            "/apis/shop/versions/0.2.0/routes",
            json={**NEW_ROUTE, "method": "POST"},
        )
        assert response.status_code == 200
        assert response.json()["route"]["method"] == "Post"
