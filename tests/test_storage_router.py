"""Signed upload parameters for direct garment uploads."""

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


def test_upload_params_return_key_for_submission(client) -> None:
    response = client.get(
        "/api/v1/storage/upload-params",
        params={"filename": "shirt.png", "mimeType": "image/png"},
        headers=HEADERS,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["key"] == "uploads/shirt.png"
    assert body["uploadUrl"].startswith("https://storage.test/upload/sign/")
    assert body["downloadUrl"] == "https://storage.test/images/uploads/shirt.png"


@pytest.mark.parametrize(
    "params", [{"filename": "shirt.png"}, {"mimeType": "image/png"}, {}]
)
def test_upload_params_require_filename_and_mime_type(client, params) -> None:
    response = client.get("/api/v1/storage/upload-params", params=params, headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["detail"] == "filename and mimeType are required"


def test_uploaded_key_is_accepted_by_submission(client, services) -> None:
    key = client.get(
        "/api/v1/storage/upload-params",
        params={"filename": "jeans.jpg", "mimeType": "image/jpeg"},
        headers=HEADERS,
    ).json()["key"]

    response = client.post("/api/v1/tryon", json={"garmentKeys": [key]}, headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["uploadedGarments"][0]["originalUrl"].endswith(key)
