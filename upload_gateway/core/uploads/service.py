"""
Upload orchestration.

UploadService ties the core together: authorize the user for the bucket,
check the destination against the bucket's allow-list, work out the object
key, and write through whichever object store the bucket's provider maps
to. It doesn't know about HTTP, boto3 or R2 bindings; stores are created by
an injected factory.

The "already exists" guard is a separate existence check followed by a
write. Two concurrent uploads to the same key without overwrite can both
pass the check, and the later write wins. This is an accepted best-effort
guard; callers that need strict uniqueness should let the service generate
the file name.
"""

import logging
from typing import Callable, Protocol

from .access import authorize
from .errors import ConfigError, ErrorKind, PathNotAllowedError, UploadError
from .models import BucketConfig, UploadRequest, UploadResult
from .naming import name_for
from .paths import is_path_allowed, join_key, sanitize_path
from .registry import BucketRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class ObjectStore(Protocol):
    """
    Capability interface shared by every storage backend.

    Implementations raise StorageError (or another exception carrying a
    safe message) when the backend call fails. "Not found" is not a
    failure for exists().
    """

    async def exists(self, key: str) -> bool:
        """Whether an object is stored under key."""
        ...

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        """Write the object in a single shot."""
        ...

    def public_url(self, key: str) -> str:
        """Publicly reachable address of the object."""
        ...


ObjectStoreFactory = Callable[[BucketConfig], ObjectStore]


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class UploadService:
    """
    Authorizes and performs uploads against the configured buckets.

    Stateless apart from the read-only registry, so one instance can serve
    concurrent requests.
    """

    def __init__(
        self,
        registry: BucketRegistry,
        store_factory: ObjectStoreFactory,
    ) -> None:
        self._registry = registry
        self._store_factory = store_factory

    async def upload(self, request: UploadRequest) -> UploadResult:
        """
        Store one file and return where it went.

        Raises AccessError from authorization unchanged, ConfigError when
        the backend for the bucket cannot be set up, PathNotAllowedError
        for paths outside the allow-list, and UploadError for conflicts
        and backend failures.
        """
        config = authorize(self._registry, request.bucket, request.user_id)

        if not is_path_allowed(request.path, config.allowed_paths):
            logger.warning(
                "Upload path not allowed",
                extra={"bucket": config.id, "path": request.path}
            )
            raise PathNotAllowedError(
                f"Path '{request.path}' is not allowed for this bucket."
            )

        path = sanitize_path(request.path)
        file_name = name_for(request.file.name, request.file_name)
        key = join_key(path, file_name)

        store = self._create_store(config)

        if not request.overwrite:
            await self._ensure_absent(store, config, key)

        try:
            await store.put(key, request.file.data, request.file.content_type)
        except Exception as e:
            logger.error(
                "Backend write failed",
                extra={"bucket": config.id, "key": key, "error": str(e)}
            )
            raise UploadError(
                f"backend write failed: {e}",
                kind=ErrorKind.BACKEND,
            ) from e

        url = store.public_url(key)

        logger.info(
            "Uploaded file",
            extra={
                "bucket": config.id,
                "key": key,
                "size_bytes": request.file.size_bytes,
                "overwrite": request.overwrite,
            }
        )

        return UploadResult(url=url, file_name=file_name, key=key)

    def _create_store(self, config: BucketConfig) -> ObjectStore:
        try:
            return self._store_factory(config)
        except ConfigError as e:
            logger.error(
                "Object store unavailable",
                extra={"bucket": config.id, "error": e.message}
            )
            raise

    async def _ensure_absent(
        self,
        store: ObjectStore,
        config: BucketConfig,
        key: str,
    ) -> None:
        try:
            exists = await store.exists(key)
        except Exception as e:
            logger.error(
                "Existence check failed",
                extra={"bucket": config.id, "key": key, "error": str(e)}
            )
            raise UploadError(
                f"Existence check on {config.provider.value} failed: {e}",
                kind=ErrorKind.BACKEND,
            ) from e

        if exists:
            logger.warning(
                "Upload rejected, object exists",
                extra={"bucket": config.id, "key": key}
            )
            raise UploadError(
                f"File '{key}' already exists. Use overwrite option to replace it.",
                kind=ErrorKind.CONFLICT,
            )
