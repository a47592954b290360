"""Application-level tests: error envelopes, middleware and real session auth."""

from unittest.mock import patch

import pytest

from main import create_app
from otaportal.config import get_config
from otaportal.exceptions import StorageError
from otaportal.middleware.auth.jwt import create_jwt_token


@pytest.mark.unit
class TestAppFactory:
  def test_routes_registered(self):
    paths = {route.path for route in create_app().routes}
    assert {
      "/health",
      "/api/spaces",
      "/api/spaces/{slug}",
      "/api/spaces/{slug}/files",
      "/api/spaces/{slug}/files/{file_id}",
      "/api/spaces/{slug}/files/{file_id}/download",
      "/api/spaces/{slug}/upload/presign",
      "/api/spaces/{slug}/upload/complete",
      "/api/spaces/{slug}/members",
      "/api/spaces/{slug}/members/{user_id}",
    } <= paths


@pytest.mark.integration
class TestHealthAndHeaders:
  def test_health(self, client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "environment": "test"}

  def test_security_headers(self, client):
    response = client.get("/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "X-Request-ID" in response.headers

  def test_api_responses_not_cached(self, client, member_user):
    client.act_as(member_user)
    assert client.get("/api/spaces").headers["Cache-Control"] == "no-store"


@pytest.mark.integration
class TestErrorEnvelope:
  def test_domain_error_shape(self, client, space, outsider):
    client.act_as(outsider)

    response = client.get("/api/spaces/acme", headers={"X-Request-ID": "req-7"})

    assert response.status_code == 403
    body = response.json()
    assert body["detail"] == "You don't have access to this space"
    assert body["code"] == "FORBIDDEN"
    assert body["details"]["space"] == "acme"
    assert body["request_id"] == "req-7"
    assert "timestamp" in body

  def test_validation_error_shape(self, client, space, member_user):
    client.act_as(member_user)

    response = client.post(
      "/api/spaces/acme/upload/presign",
      json={"filename": "fw.zip", "contentType": "application/zip"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["detail"].startswith("fileSize:")
    assert body["details"]["errors"][0]["type"] == "missing"

  def test_upstream_failure_hides_internals(self, client, space, member_user):
    client.act_as(member_user)

    with patch.object(
      client.storage,
      "presign_upload",
      side_effect=StorageError("presign_upload", "secret bucket detail"),
    ):
      response = client.post(
        "/api/spaces/acme/upload/presign",
        json={"filename": "fw.zip", "contentType": "application/zip", "fileSize": 1},
      )

    assert response.status_code == 500
    body = response.json()
    assert body["detail"] == "Internal server error"
    assert body["code"] == "STORAGE_ERROR"
    assert "secret" not in response.text

  def test_unexpected_failure_in_route(self, client, space, member_user):
    client.act_as(member_user)

    with patch(
      "otaportal.operations.spaces.orchestrator.UploadRegistry.list",
      side_effect=RuntimeError("boom"),
    ):
      response = client.get("/api/spaces/acme/files")

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to list files"}


@pytest.mark.integration
class TestSessionAuthentication:
  def test_bearer_token(self, token_client, space, member_user):
    token = create_jwt_token(member_user.id)
    response = token_client.get(
      "/api/spaces", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 200
    assert [s["slug"] for s in response.json()["spaces"]] == ["acme"]

  def test_session_cookie(self, token_client, space, member_user):
    cookie = f"{get_config().SESSION_COOKIE_NAME}={create_jwt_token(member_user.id)}"
    response = token_client.get("/api/spaces/acme/files", headers={"Cookie": cookie})
    assert response.status_code == 200

  def test_missing_session(self, token_client, space):
    response = token_client.get("/api/spaces")
    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication required"

  def test_tampered_token(self, token_client, space, member_user):
    token = create_jwt_token(member_user.id)[:-2] + "xx"
    response = token_client.get(
      "/api/spaces", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 401
