"""HTTP surface of the try-on API."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from prendas.main import app
from prendas.routers.tryon.dependencies import provide_services


@pytest.fixture
def client(services):
    app.dependency_overrides[provide_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


HEADERS = {"X-User-Id": "user-1"}


def test_health(client) -> None:
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_submit_returns_pending_session(client, services) -> None:
    response = client.post(
        "/api/v1/tryon",
        json={"garmentKeys": ["garments/a.png"], "personType": "male", "hashes": ["h1"]},
        headers=HEADERS,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["status"] == "pending"
    assert body["sessionId"] in services.sessions.rows
    assert body["uploadedGarments"][0]["originalUrl"] == "https://storage.test/images/garments/a.png"
    assert len(services.tryon_queue.jobs) == 1


def test_submit_without_garments_is_bad_request(client, services) -> None:
    response = client.post("/api/v1/tryon", json={"garmentIds": ["missing"]}, headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["detail"] == "No garments provided for try-on"
    assert services.sessions.rows == {}


def test_saturated_queue_returns_429(client, services) -> None:
    services.tryon_queue.waiting = 100

    response = client.post("/api/v1/tryon", json={"garmentKeys": ["garments/a.png"]}, headers=HEADERS)

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "30"
    assert services.garments.rows == {}


def test_missing_user_header_is_unauthorized(client) -> None:
    response = client.post("/api/v1/tryon", json={"garmentKeys": ["garments/a.png"]})

    assert response.status_code == 401


def test_get_session_status(client, services) -> None:
    created = client.post(
        "/api/v1/tryon", json={"garmentKeys": ["garments/a.png"]}, headers=HEADERS
    ).json()

    response = client.get(f"/api/v1/tryon/{created['sessionId']}", headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "pending"
    assert body["stance"] == "female"
    assert body["resultUrl"] is None
    assert len(body["garmentIds"]) == 1


def test_other_owner_cannot_see_session(client) -> None:
    created = client.post(
        "/api/v1/tryon", json={"garmentKeys": ["garments/a.png"]}, headers=HEADERS
    ).json()

    response = client.get(f"/api/v1/tryon/{created['sessionId']}", headers={"X-User-Id": "user-2"})

    assert response.status_code == 404


def test_list_and_soft_delete_garment(client, services) -> None:
    client.post("/api/v1/tryon", json={"garmentKeys": ["garments/a.png", "garments/b.png"]}, headers=HEADERS)
    garments = client.get("/api/v1/tryon/garments", headers=HEADERS).json()

    response = client.delete(f"/api/v1/tryon/garments/{garments[0]['id']}", headers=HEADERS)

    assert response.json() == {"success": True}
    remaining = client.get("/api/v1/tryon/garments", headers=HEADERS).json()
    assert [g["id"] for g in remaining] == [garments[1]["id"]]
    assert services.garments.rows[garments[0]["id"]].is_deleted


def test_deleted_session_disappears_from_reads(client) -> None:
    created = client.post(
        "/api/v1/tryon", json={"garmentKeys": ["garments/a.png"]}, headers=HEADERS
    ).json()

    client.delete(f"/api/v1/tryon/sessions/{created['sessionId']}", headers=HEADERS)

    assert client.get("/api/v1/tryon/sessions", headers=HEADERS).json() == []
    assert client.get(f"/api/v1/tryon/{created['sessionId']}", headers=HEADERS).status_code == 404
