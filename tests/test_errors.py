from fastapi.testclient import TestClient
from storefront.main import app
import pytest

client = TestClient(app)

def test_404_not_found():
    response = client.get("/non-existent-route")
    assert response.status_code == 404
    data = response.json()
    assert "error" in data
    assert "code" in data
    assert data["code"] == "HTTP_ERROR"

def test_405_method_not_allowed():
    response = client.delete("/api/cart/clear")
    assert response.status_code == 405
    assert response.json()["code"] == "HTTP_ERROR"

def test_validation_error_structure():
    response = client.get("/api/products", params={"limit": "many"})
    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert "details" in data
    assert len(data["details"]) > 0

def test_custom_exception():
    from storefront.core.exceptions import ResourceNotFoundError

    @app.get("/test-custom-error")
    def trigger_custom_error():
        raise ResourceNotFoundError(message="Item not found")

    response = client.get("/test-custom-error")
    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "NOT_FOUND"
    assert data["error"] == "Item not found"

def test_conflict_exception():
    from storefront.core.exceptions import ConflictError

    @app.get("/test-conflict-error")
    def trigger_conflict():
        raise ConflictError()

    response = client.get("/test-conflict-error")
    assert response.status_code == 409
    assert response.json()["code"] == "CONFLICT"

def test_missing_bearer_token_is_401():
    response = client.post("/api/update-profile", json={"name": "Jane"})
    assert response.status_code == 401
    assert response.json() == {
        "error": "Unauthorized",
        "code": "AUTHENTICATION_FAILED",
        "details": None,
    }

def test_health_probes():
    assert client.get("/live").json() == {"status": "alive"}
    response = client.get("/")
    assert response.json()["status"] == "running"
    assert "X-Request-ID" in response.headers
