"""Tests for admin service middleware.

Tests cover:
- Route family classification
- Sync token checks (missing, wrong scheme, wrong token, dev mode)
- Admin bearer and HTTP Basic credentials, refusal when unconfigured
- Request size limit (413)
"""

import base64
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from codewith.config.settings import ServerSettings
from codewith.constants import (
    AUTH_ERROR_INVALID_SCHEME,
    AUTH_ERROR_INVALID_TOKEN,
    AUTH_ERROR_MISSING,
    AUTH_ERROR_NOT_CONFIGURED,
    AUTH_ERROR_PAYLOAD_TOO_LARGE,
)
from codewith.server.app import create_app
from codewith.server.middleware import RouteFamily, route_family

UPLOAD = {"deviceId": "d1", "snapshot": {}}


def _client(tmp_path: Path, **settings) -> TestClient:
    return TestClient(create_app(ServerSettings(database_path=tmp_path / "admin.db", **settings)))


def _basic(user: str, password: str) -> dict[str, str]:
    token = base64.b64encode(f"{user}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.mark.parametrize(
    ("path", "family"),
    [
        ("/sync/snapshot", RouteFamily.SYNC),
        ("/sync/override", RouteFamily.SYNC),
        ("/api/v1/devices/sync", RouteFamily.SYNC),
        ("/api/v1/admin/devices", RouteFamily.ADMIN),
        ("/api/v1/admin", RouteFamily.ADMIN),
        ("/api/v1/administrator", RouteFamily.PUBLIC),
        ("/healthz", RouteFamily.PUBLIC),
        ("/docs", RouteFamily.PUBLIC),
    ],
)
def test_route_family(path: str, family: RouteFamily):
    assert route_family(path) is family


class TestSyncAuth:
    """Tests for the sync token."""

    @pytest.fixture
    def client(self, tmp_path: Path) -> TestClient:
        return _client(tmp_path, sync_token="sync-secret", admin_token="admin-secret")

    @pytest.mark.parametrize(
        ("headers", "detail"),
        [
            ({}, AUTH_ERROR_MISSING),
            ({"Authorization": "Token sync-secret"}, AUTH_ERROR_INVALID_SCHEME),
            ({"Authorization": "Bearer"}, AUTH_ERROR_INVALID_SCHEME),
            ({"Authorization": "Bearer nope"}, AUTH_ERROR_INVALID_TOKEN),
            ({"Authorization": "Bearer admin-secret"}, AUTH_ERROR_INVALID_TOKEN),
        ],
    )
    def test_rejected(self, client: TestClient, headers: dict, detail: str):
        response = client.post("/sync/snapshot", json=UPLOAD, headers=headers)
        assert response.status_code == 401
        assert response.json() == {"detail": detail}
        assert response.headers["www-authenticate"] == "Bearer"

    def test_accepted(self, client: TestClient):
        response = client.post(
            "/sync/snapshot", json=UPLOAD, headers={"Authorization": "Bearer sync-secret"}
        )
        assert response.status_code == 200

    def test_healthz_needs_no_token(self, client: TestClient):
        assert client.get("/healthz").status_code == 200

    def test_dev_mode_without_sync_token(self, tmp_path: Path):
        client = _client(tmp_path, admin_token="admin-secret")
        assert client.post("/sync/snapshot", json=UPLOAD).status_code == 200


class TestAdminAuth:
    """Tests for admin credentials."""

    def test_unconfigured_admin_refuses_everything(self, tmp_path: Path):
        client = _client(tmp_path, sync_token="sync-secret")
        response = client.get(
            "/api/v1/admin/devices", headers={"Authorization": "Bearer sync-secret"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == AUTH_ERROR_NOT_CONFIGURED

    def test_sync_token_is_not_an_admin_token(self, tmp_path: Path):
        client = _client(tmp_path, sync_token="sync-secret", admin_token="admin-secret")
        response = client.get(
            "/api/v1/admin/devices", headers={"Authorization": "Bearer sync-secret"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == AUTH_ERROR_INVALID_TOKEN

    def test_bearer_admin_token(self, tmp_path: Path):
        client = _client(tmp_path, admin_token="admin-secret")
        response = client.get(
            "/api/v1/admin/devices", headers={"Authorization": "Bearer admin-secret"}
        )
        assert response.status_code == 200
        assert response.json() == {"devices": []}

    def test_basic_auth(self, tmp_path: Path):
        client = _client(tmp_path, admin_basic_user="ops", admin_basic_password="pa:ss")
        assert client.get("/api/v1/admin/devices", headers=_basic("ops", "pa:ss")).status_code == 200

    @pytest.mark.parametrize(
        "headers",
        [
            _basic("ops", "wrong"),
            _basic("other", "pa:ss"),
            {"Authorization": "Basic !!!not-base64!!!"},
        ],
    )
    def test_basic_auth_rejected(self, tmp_path: Path, headers: dict):
        client = _client(tmp_path, admin_basic_user="ops", admin_basic_password="pa:ss")
        response = client.get("/api/v1/admin/devices", headers=headers)
        assert response.status_code == 401
        assert response.json()["detail"] == AUTH_ERROR_INVALID_TOKEN

    def test_bearer_when_only_basic_configured(self, tmp_path: Path):
        client = _client(tmp_path, admin_basic_user="ops", admin_basic_password="pass")
        response = client.get("/api/v1/admin/devices", headers={"Authorization": "Bearer x"})
        assert response.status_code == 401
        assert response.json()["detail"] == AUTH_ERROR_INVALID_SCHEME


class TestRequestSizeLimit:
    """Tests for the Content-Length limit."""

    def test_oversized_body_rejected(self, tmp_path: Path):
        client = _client(tmp_path, max_request_bytes=64)
        body = {"deviceId": "d1", "snapshot": {"claude": {"pad": "x" * 200}}}

        response = client.post("/sync/snapshot", json=body)

        assert response.status_code == 413
        assert response.json() == {"detail": AUTH_ERROR_PAYLOAD_TOO_LARGE}

    def test_small_body_passes(self, tmp_path: Path):
        client = _client(tmp_path, max_request_bytes=1024)
        assert client.post("/sync/snapshot", json=UPLOAD).status_code == 200
