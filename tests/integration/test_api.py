"""
HTTP tests for the orders and storage routers.

The identity provider is replaced through ``dependency_overrides``; everything
below the router runs for real against a temporary SQLite file.
"""
import pytest
from fastapi.testclient import TestClient

from auth import get_current_user_id
from main import app


@pytest.fixture
def client(seed):
    seed((1, 20, 1, 10))
    app.dependency_overrides[get_current_user_id] = lambda: "user-1"
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _pressing(quantity, **extra):
    return {"type": "PRESSING", "customer_id": "customer-1", "items": {"quantity": quantity}, **extra}


class TestOrdersApi:
    def test_create_returns_enriched_order(self, client):
        response = client.post("/api/orders", json=_pressing(13))

        assert response.status_code == 201
        body = response.json()
        assert body["total"] == 154
        assert body["order_number"] == 1
        assert body["ticket_number"] == 31001
        assert body["items"]["quantity"] == 13
        assert body["storage"]["rack_number"] == 1
        assert body["order_history"] == []
        assert body["created_by"] == "user-1"

    def test_create_cleaning_order(self, client):
        payload = {
            "type": "CLEANING",
            "customer_id": "customer-1",
            "items": [
                {"name": "Shirt", "price": 5, "quantity": 3},
                {"name": "Suit", "price": 20, "quantity": 1},
            ],
        }

        response = client.post("/api/orders", json=payload)

        assert response.status_code == 201
        assert response.json()["total"] == 35
        assert [item["name"] for item in response.json()["items"]] == ["Shirt", "Suit"]

    def test_schema_violations_are_rejected(self, client):
        response = client.post("/api/orders", json=_pressing(0))

        assert response.status_code == 422

    def test_mismatched_items_are_a_validation_error(self, client):
        response = client.post(
            "/api/orders",
            json={"type": "CLEANING", "customer_id": "c", "items": {"quantity": 2}},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_capacity_exhausted_is_a_conflict(self, client):
        response = client.post("/api/orders", json=_pressing(21))

        assert response.status_code == 409
        assert response.json()["code"] == "NO_CAPACITY_AVAILABLE"

    def test_list_and_lookup(self, client):
        created = client.post("/api/orders", json=_pressing(2)).json()

        listing = client.get("/api/orders").json()
        by_number = client.get("/api/orders", params={"order_number": 1}).json()
        by_ticket = client.get("/api/orders", params={"ticket_number": 31001}).json()
        by_customer = client.get("/api/orders", params={"customer_id": "customer-1"}).json()

        assert listing["total"] == 1
        assert listing["orders"][0]["id"] == created["id"]
        assert by_number["id"] == created["id"]
        assert by_ticket["id"] == created["id"]
        assert [order["id"] for order in by_customer] == [created["id"]]

    def test_patch_creates_new_version(self, client):
        created = client.post("/api/orders", json=_pressing(2)).json()

        response = client.patch(f"/api/orders/{created['id']}", json={"status": "IN_PROGRESS"})

        assert response.status_code == 200
        body = response.json()
        assert body["version"] == 2
        assert body["main_order_id"] == created["id"]
        assert body["order_history"][0]["id"] == created["id"]

    def test_patch_type_change_rejected(self, client):
        created = client.post("/api/orders", json=_pressing(2)).json()

        response = client.patch(f"/api/orders/{created['id']}", json={"type": "CLEANING"})

        assert response.status_code == 400
        assert response.json() == {
            "error": "Cannot change order type. Please create a new order instead.",
            "code": "VALIDATION_ERROR",
        }

    def test_unknown_order_is_404(self, client):
        response = client.get("/api/orders/missing")

        assert response.status_code == 404
        assert response.json()["code"] == "ORDER_NOT_FOUND"

    def test_delete(self, client):
        created = client.post("/api/orders", json=_pressing(2)).json()

        response = client.delete(f"/api/orders/{created['id']}")

        assert response.status_code == 204
        assert client.get(f"/api/orders/{created['id']}").status_code == 404
        assert client.get("/api/storage").json()["used_capacity"] == 0


class TestStorageApi:
    def test_summary(self, client):
        client.post("/api/orders", json=_pressing(5))

        body = client.get("/api/storage").json()

        assert body["total_capacity"] == 20
        assert body["used_capacity"] == 5
        assert body["usage_percentage"] == 25.0
        assert body["racks"][0]["free_capacity"] == 15


class TestAuthentication:
    def test_missing_token_is_401(self, seed):
        with TestClient(app) as test_client:
            response = test_client.get("/api/storage")

        assert response.status_code == 401
        assert response.json()["code"] == "AUTHENTICATION_REQUIRED"


class TestSurface:
    def test_only_documented_routes_are_served(self, client):
        paths = {route.path for route in app.routes}

        assert {"/api/orders", "/api/orders/{order_id}", "/api/storage"} <= paths
        assert client.get("/api/diag/cors").status_code == 404
