from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from src.assetvault.config import AssetSettings, load_config
from src.assetvault.main import create_app


def build_client(tmp_path, **overrides) -> TestClient:
    settings = AssetSettings(
        database_url="sqlite://",
        public_root=tmp_path / "public",
        protected_root=tmp_path / "protected",
        pending_root=tmp_path / "pending",
        **overrides,
    )
    return TestClient(create_app(load_config(settings)))


def upload(client: TestClient, **data):
    return client.post(
        "/api/pending",
        files={"file": ("photo.jpg", b"\xff\xd8jpeg-bytes", "image/jpeg")},
        data=data,
    )


def test_cookie_backend_round_trip(tmp_path):
    client = build_client(tmp_path, token_backend="cookie")

    response = upload(client, name="Holiday", order="2")

    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Holiday"
    assert body["file_name"] == "photo.jpg"
    assert body["mime_type"] == "image/jpeg"
    assert body["size"] == 12
    assert body["order"] == 2
    assert body["ttl"] == 86400
    assert "security_token" not in body
    assert "__asset_pending_security_token_" in response.cookies

    fetched = client.get(f"/api/pending/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["id"] == body["id"]


def test_cookie_backend_hides_asset_from_other_clients(tmp_path):
    owner = build_client(tmp_path, token_backend="cookie")
    body = upload(owner).json()

    stranger = TestClient(owner.app)
    response = stranger.get(f"/api/pending/{body['id']}")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"
    assert stranger.delete(f"/api/pending/{body['id']}").status_code == 404


def test_request_backend_returns_token(tmp_path):
    client = build_client(tmp_path, token_backend="request")

    body = upload(client, ttl_seconds="120").json()

    token = body["security_token"]
    assert len(token) == 32
    assert body["ttl"] == 120
    assert client.get(f"/api/pending/{body['id']}").status_code == 404
    response = client.get(f"/api/pending/{body['id']}", headers={"X-Pending-Token": token})
    assert response.status_code == 200


def test_delete_removes_entry(tmp_path):
    client = build_client(tmp_path, token_backend="none")
    body = upload(client).json()

    assert client.delete(f"/api/pending/{body['id']}").status_code == 204
    assert client.get(f"/api/pending/{body['id']}").status_code == 404
    assert not (tmp_path / "pending" / body["id"]).exists()


def test_corrupt_metadata_is_reported(tmp_path):
    client = build_client(tmp_path, token_backend="none")
    body = upload(client).json()
    (tmp_path / "pending" / body["id"] / "metadata.json").write_text("{")

    response = client.get(f"/api/pending/{body['id']}")

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "corrupt_pending_metadata"


@pytest.mark.parametrize("ttl", ["0", "-5"])
def test_invalid_ttl_is_rejected(tmp_path, ttl):
    client = build_client(tmp_path, token_backend="none")

    assert upload(client, ttl_seconds=ttl).status_code == 422


def test_request_backend_ignores_token_sent_on_create(tmp_path):
    client = build_client(tmp_path, token_backend="request")

    response = client.post(
        "/api/pending",
        files={"file": ("photo.jpg", b"\xff\xd8jpeg-bytes", "image/jpeg")},
        headers={"X-Pending-Token": "x"},
    )

    token = response.json()["security_token"]
    assert token != "x"
    assert len(token) == 32
    pending_id = response.json()["id"]
    assert client.get(f"/api/pending/{pending_id}", headers={"X-Pending-Token": "x"}).status_code == 404


def test_delete_unknown_entry_is_not_found(tmp_path):
    client = build_client(tmp_path, token_backend="none")

    response = client.delete(f"/api/pending/{'0' * 32}")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"
