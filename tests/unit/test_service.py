"""
Unit tests for the upload service.

Uploads run against in-memory R2 bindings and a fake S3 client, so the
whole flow (authorize, path policy, naming, existence check, write, URL)
is exercised without network access.
"""

from functools import partial

import pytest

from upload_gateway.core.uploads import (
    AccessError,
    ConfigError,
    ErrorKind,
    PathNotAllowedError,
    Provider,
    UploadError,
    UploadedFile,
    UploadRequest,
    UploadService,
)
from upload_gateway.infrastructure.storage import (
    InMemoryR2Binding,
    S3CompatibleStore,
    StorageError,
    create_object_store,
)

CAT_PNG = UploadedFile(name="cat.png", data=b"\x89PNG fake", content_type="image/png")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def r2_binding() -> InMemoryR2Binding:
    return InMemoryR2Binding("R2_MAIN_BUCKET")


@pytest.fixture
def store_calls() -> list[str]:
    return []


@pytest.fixture
def service(registry, r2_binding, fake_s3_client, store_calls) -> UploadService:
    """
    Service whose store factory records which buckets it builds stores for.

    S3 buckets get the fake client; R2 buckets resolve the in-memory binding.
    """
    bindings = {"R2_MAIN_BUCKET": r2_binding}

    def store_factory(config):
        store_calls.append(config.id)
        if config.provider == Provider.AWS_S3:
            return S3CompatibleStore(config, client=fake_s3_client)
        return create_object_store(config, bindings)

    return UploadService(registry, store_factory)


def make_request(**overrides) -> UploadRequest:
    values = {
        "bucket": "main_r2",
        "path": "images",
        "user_id": "u1",
        "file": CAT_PNG,
    }
    values.update(overrides)
    return UploadRequest(**values)


# ---------------------------------------------------------------------------
# Happy Path
# ---------------------------------------------------------------------------

class TestSuccessfulUploads:
    """Uploads that should go through."""

    @pytest.mark.asyncio
    async def test_generated_name_on_r2(self, service, r2_binding):
        """Without fileName, a random name with the original extension is used."""
        result = await service.upload(make_request())

        assert result.file_name.endswith(".png")
        assert result.file_name != "cat.png"
        assert result.url == f"https://files.example.com/images/{result.file_name}"
        assert r2_binding.get(f"images/{result.file_name}") == CAT_PNG.data

    @pytest.mark.asyncio
    async def test_content_type_stored(self, service, r2_binding):
        result = await service.upload(make_request())

        info = await r2_binding.head(result.key)
        assert info.content_type == "image/png"

    @pytest.mark.asyncio
    async def test_supplied_name_used(self, service):
        result = await service.upload(make_request(file_name="kitty.png"))

        assert result.file_name == "kitty.png"
        assert result.key == "images/kitty.png"

    @pytest.mark.asyncio
    async def test_path_is_sanitized_into_key(self, service):
        """Traversal in the path can't escape the bucket root."""
        result = await service.upload(
            make_request(path="/../images//cats/./", file_name="a.png")
        )

        assert result.key == "images/cats/a.png"

    @pytest.mark.asyncio
    async def test_root_path_with_wildcard(self, service):
        result = await service.upload(make_request(path="/", file_name="a.png"))

        assert result.key == "a.png"
        assert result.url == "https://files.example.com/a.png"

    @pytest.mark.asyncio
    async def test_s3_upload_url_and_content_type(self, service, fake_s3_client):
        result = await service.upload(
            make_request(bucket="docs_s3", path="documents/2024", file_name="q1.pdf")
        )

        assert result.url == "https://s3.example.com/company-docs/documents/2024/q1.pdf"
        stored = fake_s3_client.objects[("company-docs", "documents/2024/q1.pdf")]
        assert stored["ContentType"] == "image/png"
        assert fake_s3_client.calls == ["head_object", "put_object"]


# ---------------------------------------------------------------------------
# Overwrite Semantics
# ---------------------------------------------------------------------------

class TestOverwrite:
    """Tests for the existence check."""

    @pytest.mark.asyncio
    async def test_existing_key_is_conflict(self, service):
        await service.upload(make_request(file_name="cat.png"))

        with pytest.raises(UploadError, match="already exists") as exc_info:
            await service.upload(make_request(file_name="cat.png"))

        assert exc_info.value.kind == ErrorKind.CONFLICT

    @pytest.mark.asyncio
    async def test_overwrite_replaces(self, service, r2_binding):
        await service.upload(make_request(file_name="cat.png"))

        new_file = UploadedFile(name="other.png", data=b"new", content_type="image/png")
        result = await service.upload(
            make_request(file_name="cat.png", overwrite=True, file=new_file)
        )

        assert result.file_name == "cat.png"
        assert r2_binding.get("images/cat.png") == b"new"

    @pytest.mark.asyncio
    async def test_overwrite_skips_existence_check(self, service, fake_s3_client):
        await service.upload(
            make_request(bucket="docs_s3", file_name="a.png", overwrite=True)
        )

        assert fake_s3_client.calls == ["put_object"]

    @pytest.mark.asyncio
    async def test_failed_existence_check_is_not_treated_as_absent(
        self, service, fake_s3_client, client_error
    ):
        """A 403 on head must fail the upload, not let it through."""
        fake_s3_client.head_error = client_error("AccessDenied", 403)

        with pytest.raises(UploadError) as exc_info:
            await service.upload(make_request(bucket="docs_s3", file_name="a.png"))

        assert exc_info.value.kind == ErrorKind.BACKEND
        assert isinstance(exc_info.value.__cause__, StorageError)
        assert "put_object" not in fake_s3_client.calls


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------

class TestRejections:
    """Uploads that must fail, and how."""

    @pytest.mark.asyncio
    async def test_non_whitelisted_user_makes_no_backend_call(self, service, store_calls):
        with pytest.raises(AccessError) as exc_info:
            await service.upload(make_request(user_id="u2"))

        assert exc_info.value.kind == ErrorKind.FORBIDDEN
        assert store_calls == []

    @pytest.mark.asyncio
    async def test_missing_user_is_unauthorized(self, service):
        with pytest.raises(AccessError) as exc_info:
            await service.upload(make_request(user_id=None))

        assert exc_info.value.kind == ErrorKind.UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_path_outside_allow_list(self, service, store_calls):
        with pytest.raises(PathNotAllowedError, match="not allowed") as exc_info:
            await service.upload(make_request(bucket="docs_s3", path="images2"))

        assert exc_info.value.kind == ErrorKind.FORBIDDEN
        assert store_calls == []

    @pytest.mark.asyncio
    async def test_missing_binding_is_config_error(self, registry):
        """A bucket whose binding isn't provided fails as configuration."""
        service = UploadService(registry, partial(create_object_store, bindings={}))

        with pytest.raises(ConfigError, match="binding 'R2_MAIN_BUCKET' not found"):
            await service.upload(make_request())

    @pytest.mark.asyncio
    async def test_backend_write_failure_wrapped(self, service, fake_s3_client, client_error):
        fake_s3_client.put_error = client_error("InternalError", 500, "PutObject")

        with pytest.raises(UploadError, match="^backend write failed") as exc_info:
            await service.upload(make_request(bucket="docs_s3", file_name="a.png"))

        assert exc_info.value.kind == ErrorKind.BACKEND
        assert "InternalError" in exc_info.value.message
