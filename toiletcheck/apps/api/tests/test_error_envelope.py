"""Request id propagation, error envelope shape and the health check."""

from unittest.mock import patch

import pytest


def test_request_id_is_echoed(test_client):
    response = test_client.get("/", headers={"X-Request-ID": "req-abc-123"})

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "req-abc-123"
    assert response.json()["name"] == "ToiletCheck API"


def test_request_id_is_generated(test_client):
    response = test_client.get("/")

    assert len(response.headers["X-Request-ID"]) == 36


def test_error_instance_carries_request_id(test_client):
    response = test_client.get("/api/auth/me", headers={"X-Request-ID": "req-xyz"})

    body = response.json()
    assert set(body) == {"success", "error", "timestamp", "instance"}
    assert body["instance"] == "urn:toiletcheck:trace:req-xyz"


def test_validation_error_names_field(test_client, make_user, auth_headers):
    response = test_client.post(
        "/api/inspections",
        json={"location_id": "loc-1", "inspection_date": "yesterday", "responses": {}},
        headers=auth_headers(make_user()),
    )

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid field 'inspection_date'")


def test_unknown_route_uses_envelope(test_client):
    response = test_client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json()["success"] is False


@pytest.mark.parametrize("redis_state,status_code,overall", [("up", 200, "healthy"), ("down: refused", 503, "degraded")])
def test_health(test_client, redis_state, status_code, overall):
    with patch("toiletcheck_api.routers.health.check_redis", return_value=redis_state):
        response = test_client.get("/health")

    assert response.status_code == status_code
    body = response.json()
    assert body["status"] == overall
    assert body["services"]["database"] == "up"
    assert body["services"]["redis"] == redis_state
