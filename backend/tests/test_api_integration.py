"""Integration tests for the FastAPI binding."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from crudforge.api.app import create_app, mount_resources, to_json_schema
from crudforge.auth import JWTService
from crudforge.config import Settings
from crudforge.core.errors import ConfigurationError

from sample_app import SECRET, Dimensions, make_app, make_authentications, make_products

READER_KEY = {"X-API-Key": "reader-key"}


def token_headers(role):
    token = JWTService(SECRET).generate_access_token(role, roles=[role])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client():
    """Client over a fresh app with seeded in-memory products."""
    with TestClient(make_app()) as client:
        yield client


@pytest.fixture
def clerk():
    return token_headers("clerk")


@pytest.fixture
def manager():
    return token_headers("manager")


class TestAuthentication:
    def test_missing_credentials(self, client):
        response = client.get("/api/products")
        assert response.status_code == 401
        assert response.json() == {"message": "Unauthorized"}
        assert response.headers["www-authenticate"] == "Bearer"

    def test_api_key(self, client):
        assert client.get("/api/products", headers=READER_KEY).status_code == 200

    def test_bad_bearer_token(self, client):
        response = client.get("/api/products", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401


class TestRead:
    def test_list_with_total_header(self, client):
        response = client.get("/api/products?sort=-price&limit=2", headers=READER_KEY)
        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["Desk", "Chair"]
        assert response.headers["x-total-products"] == "3"

    def test_list_filter(self, client):
        response = client.get("/api/products?filter=status:RETIRED", headers=READER_KEY)
        assert [p["id"] for p in response.json()] == [3]

    def test_get_applies_view_flags(self, client, clerk):
        body = client.get("/api/products/1", headers=clerk).json()
        assert body["name"] == "Desk"
        assert body["sku"] == "DSK-1"
        assert "cost" not in body

    def test_get_missing(self, client, clerk):
        response = client.get("/api/products/99", headers=clerk)
        assert response.status_code == 404
        assert response.json() == {"message": "Resource products with id 99 not found"}


class TestWrite:
    def test_create(self, client, clerk):
        response = client.post(
            "/api/products", json={"name": "Shelf", "price": 30, "password": "x"}, headers=clerk
        )
        assert response.status_code == 201
        body = response.json()
        assert body["id"] == 4
        assert "password" not in body

        listed = client.get("/api/products", headers=READER_KEY)
        assert listed.headers["x-total-products"] == "4"

    def test_create_validation_error(self, client, clerk):
        response = client.post("/api/products", json={"price": 30}, headers=clerk)
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Invalid input"
        assert body["errors"]["name"]["code"] == "required"

    def test_empty_body(self, client, clerk):
        response = client.post("/api/products", headers=clerk)
        assert response.status_code == 400
        assert response.json()["errors"] == {
            "body": {"message": "Request body is required.", "code": "required"}
        }

    def test_invalid_json(self, client, clerk):
        response = client.post(
            "/api/products",
            content="{not json",
            headers={**clerk, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid JSON body"}

    def test_update_field_permission(self, client, clerk, manager):
        response = client.patch("/api/products/2", json={"price": 1}, headers=clerk)
        assert response.status_code == 403
        assert list(response.json()["errors"]) == ["price"]

        response = client.patch("/api/products/2", json={"price": 1}, headers=manager)
        assert response.status_code == 200
        assert response.json()["price"] == 1.0

    def test_update_refreshes_cached_item(self, client, manager):
        assert client.get("/api/products/2", headers=manager).json()["name"] == "Chair"
        client.patch("/api/products/2", json={"name": "Stool"}, headers=manager)
        assert client.get("/api/products/2", headers=manager).json()["name"] == "Stool"

    def test_replace(self, client, manager):
        response = client.put(
            "/api/products/1", json={"name": "Table", "price": 200}, headers=manager
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Table"

    def test_delete(self, client, manager):
        response = client.delete("/api/products/1", headers=manager)
        assert response.json() == {"id": 1}
        assert client.get("/api/products/1", headers=manager).status_code == 404

    def test_delete_permission_denied(self, client):
        response = client.delete("/api/products/1", headers=READER_KEY)
        assert response.status_code == 403
        assert response.json() == {
            "message": "Permission denied",
            "action": "delete",
            "permissionName": "products",
        }


class TestApp:
    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "ok", "resources": ["products"]}

    def test_openapi_document(self, client):
        document = client.get("/openapi.json").json()
        assert set(document["paths"]) == {"/api/products", "/api/products/{id}"}
        assert set(document["components"]["securitySchemes"]) == {"jwt", "key"}

        create = document["paths"]["/api/products"]["post"]
        assert create["operationId"] == "create_products"
        assert "id" not in create["requestBody"]["content"]["application/json"]["schema"][
            "properties"
        ]
        assert create["security"] == [{"jwt": []}, {"key": []}]

        get = document["paths"]["/api/products/{id}"]["get"]
        assert get["parameters"][0]["name"] == "id"

    def test_unknown_auth_method(self):
        resource = make_products().set_authentication(["oauth"])
        with pytest.raises(ConfigurationError, match="oauth"):
            mount_resources(FastAPI(), [resource], make_authentications())

    def test_anonymous_resource(self):
        app = create_app([make_products()], settings=Settings())
        with TestClient(app) as client:
            assert client.get("/api/products").status_code == 403

    def test_custom_prefix(self):
        app = create_app([make_products()], make_authentications(), Settings(), prefix="/v1")
        with TestClient(app) as client:
            assert client.get("/v1/products", headers=READER_KEY).status_code == 200

    def test_cors_exposes_total_header(self):
        app = create_app(
            [make_products().set_authentication(["key"])],
            make_authentications(),
            Settings(cors_origins=["http://shop.test"]),
        )
        with TestClient(app) as client:
            response = client.get(
                "/api/products", headers={**READER_KEY, "Origin": "http://shop.test"}
            )
        assert response.headers["access-control-allow-origin"] == "http://shop.test"
        assert "X-total-products" in response.headers["access-control-expose-headers"]


def test_json_schema_inlines_nested_models():
    schema = to_json_schema(list[Dimensions])
    assert "$defs" not in schema
    assert schema["items"]["properties"]["width"]["type"] == "number"
