"""
HTTP-level tests.

Settings and R2 bindings are injected through FastAPI's dependency
overrides, so no environment variables or real storage are involved.
"""

import json

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from upload_gateway.api.dependencies import get_r2_bindings
from upload_gateway.config.settings import Settings, get_settings
from upload_gateway.infrastructure.storage import InMemoryR2Binding
from upload_gateway.main import app

TOKEN = "test-secret"
AUTH = {"Authorization": f"Bearer {TOKEN}", "X-User-Id": "u1"}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def r2_binding() -> InMemoryR2Binding:
    return InMemoryR2Binding("R2_MAIN_BUCKET")


@pytest.fixture
def settings(bucket_configs_json) -> Settings:
    return Settings(
        auth_secret_key=f"other-secret,{TOKEN}",
        bucket_configs=bucket_configs_json,
        r2_mock_mode=True,
        max_upload_size_mb=1,
    )


@pytest.fixture
def client(settings, r2_binding):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_r2_bindings] = lambda: {"R2_MAIN_BUCKET": r2_binding}
    yield TestClient(app)
    app.dependency_overrides.clear()


def upload(client, headers=AUTH, filename="cat.png", content=b"png-bytes", **form):
    data = {"path": "images", "bucket": "main_r2"}
    data.update(form)
    return client.post(
        "/upload",
        data=data,
        files={"file": (filename, content, "image/png")},
        headers=headers,
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class TestHealth:
    """Tests for root and health endpoints."""

    def test_root_returns_ok(self, client):
        response = client.get("/")

        assert response.status_code == status.HTTP_200_OK
        assert response.text == "OK"

    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["details"]["mock_mode"]["r2"] is True

    def test_readiness_passes_for_complete_configuration(self, client):
        """Complete buckets, configured tokens and mock bindings mean ready."""
        response = client.get("/health/ready")
        checks = {c["name"]: c for c in response.json()["checks"]}

        assert checks["authentication"]["status"] == "ok"
        assert checks["buckets"]["status"] == "ok"
        assert checks["bindings"]["status"] == "ok"
        assert response.status_code == status.HTTP_200_OK

    def test_readiness_fails_without_auth(self, client, settings):
        settings.auth_secret_key = ""

        response = client.get("/health/ready")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["status"] == "not_ready"


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class TestBearerAuth:
    """Tests for the shared-secret token check."""

    def test_missing_header_is_401(self, client):
        response = client.post("/upload")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_invalid_token_is_401(self, client):
        response = client.get("/buckets", headers={"Authorization": "Bearer nope"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_non_bearer_scheme_is_401(self, client):
        response = client.get("/buckets", headers={"Authorization": f"Basic {TOKEN}"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_any_configured_token_accepted(self, client):
        response = client.get("/buckets", headers={"Authorization": "Bearer other-secret"})
        assert response.status_code == status.HTTP_200_OK

    def test_unconfigured_secret_is_503(self, client, settings):
        settings.auth_secret_key = ""

        response = client.get("/buckets", headers=AUTH)

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["detail"] == "Service unavailable: Authentication is not configured."


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------

class TestListBuckets:
    """Tests for GET /buckets."""

    def test_returns_only_whitelisted_buckets(self, client):
        response = client.get("/buckets", headers={**AUTH, "X-User-Id": "admin"})

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        assert [b["id"] for b in body["buckets"]] == ["main_r2"]

    def test_response_uses_camel_case_and_hides_credentials(self, client):
        response = client.get("/buckets", headers=AUTH)
        buckets = {b["id"]: b for b in response.json()["buckets"]}

        s3 = buckets["docs_s3"]
        assert s3["bucketName"] == "company-docs"
        assert s3["allowedPaths"] == ["images", "documents"]
        assert "accessKeyId" not in s3
        assert "secretAccessKey" not in s3
        assert "idWhitelist" not in s3
        assert "super-secret" not in response.text
        assert buckets["main_r2"]["customDomain"] == "https://files.example.com"

    def test_no_user_id_returns_empty_list(self, client):
        response = client.get("/buckets", headers={"Authorization": f"Bearer {TOKEN}"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["buckets"] == []

    def test_invalid_configuration_is_503(self, client, settings):
        settings.bucket_configs = "[not json"

        response = client.get("/buckets", headers=AUTH)

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------

class TestUpload:
    """Tests for POST /upload."""

    def test_upload_with_generated_name(self, client, r2_binding):
        response = upload(client)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["fileName"].endswith(".png")
        assert body["url"] == f"https://files.example.com/images/{body['fileName']}"
        assert r2_binding.keys == [f"images/{body['fileName']}"]

    def test_upload_with_file_name(self, client):
        response = upload(client, fileName="kitty.png")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "url": "https://files.example.com/images/kitty.png",
            "fileName": "kitty.png",
        }

    def test_existing_file_is_409_unless_overwrite(self, client):
        assert upload(client, fileName="kitty.png").status_code == status.HTTP_200_OK

        conflict = upload(client, fileName="kitty.png")
        assert conflict.status_code == status.HTTP_409_CONFLICT
        assert "already exists" in conflict.json()["detail"]

        replaced = upload(client, fileName="kitty.png", overwrite="true")
        assert replaced.status_code == status.HTTP_200_OK
        assert replaced.json()["fileName"] == "kitty.png"

    def test_overwrite_only_when_true(self, client):
        """Any value other than 'true' leaves overwrite off."""
        upload(client, fileName="kitty.png")

        response = upload(client, fileName="kitty.png", overwrite="yes")

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_user_not_in_whitelist_is_403(self, client, r2_binding):
        response = upload(client, headers={**AUTH, "X-User-Id": "u2"})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert r2_binding.keys == []

    def test_missing_user_id_is_401(self, client):
        response = upload(client, headers={"Authorization": f"Bearer {TOKEN}"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_bucket_without_whitelist_is_503(self, client):
        response = upload(client, bucket="private_r2")
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    def test_unknown_bucket_is_503(self, client):
        response = upload(client, bucket="nope")
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    def test_path_not_allowed_is_403(self, client, settings):
        records = json.loads(settings.bucket_configs)
        records[0]["allowedPaths"] = ["images"]
        settings.bucket_configs = json.dumps(records)

        response = upload(client, path="images2")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert "not allowed" in response.json()["detail"]

    def test_string_whitelist_is_503_not_character_match(self, client, settings, r2_binding):
        records = json.loads(settings.bucket_configs)
        records[0]["idWhitelist"] = "admin"
        settings.bucket_configs = json.dumps(records)

        response = upload(client, headers={**AUTH, "X-User-Id": "a"})

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert r2_binding.keys == []

    def test_missing_binding_is_503(self, client):
        app.dependency_overrides[get_r2_bindings] = lambda: {}

        response = upload(client)

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert "R2_MAIN_BUCKET" in response.json()["detail"]

    def test_missing_path_is_422(self, client):
        response = client.post(
            "/upload",
            data={"bucket": "main_r2"},
            files={"file": ("cat.png", b"x", "image/png")},
            headers=AUTH,
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_file_too_large_is_413(self, client, r2_binding):
        response = upload(client, content=b"x" * (1024 * 1024 + 1))

        assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        assert r2_binding.keys == []
