"""
Object stores for bucket providers.

Each bucket provider maps to one ObjectStore implementation:

- CLOUDFLARE_R2: R2BindingStore, which writes through a named runtime
  binding resolved from the injected binding map.
- AWS_S3: S3CompatibleStore, which builds a boto3 client from the bucket's
  own credentials. A custom endpoint makes it work with any S3-compatible
  service (MinIO, R2's S3 API, etc).

Provider selection is a table lookup in create_object_store. New providers
register a factory with register_object_store.
"""

import asyncio
import logging
from functools import lru_cache
from typing import Any, Callable, Mapping, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ...core.uploads.errors import ConfigError
from ...core.uploads.models import BucketConfig, Provider
from ...core.uploads.service import ObjectStore
from .bindings import R2Binding
from .errors import StorageError, is_not_found

logger = logging.getLogger(__name__)


@lru_cache(maxsize=32)
def build_s3_client(config: BucketConfig) -> Any:
    """
    Create the boto3 client for an S3 bucket.

    Cached per configuration for the life of the process. Construction
    loads service models from disk, so callers on the event loop should
    run it in a worker thread.
    """
    boto_config = Config(
        signature_version="s3v4",
        s3={"addressing_style": "path"},
    )
    client = boto3.client(
        "s3",
        region_name=config.region,
        endpoint_url=config.endpoint or None,
        aws_access_key_id=config.access_key_id,
        aws_secret_access_key=config.secret_access_key,
        config=boto_config,
    )

    logger.debug(
        "Initialized S3 client",
        extra={
            "bucket": config.bucket_name,
            "endpoint": config.endpoint,
            "region": config.region,
        }
    )
    return client


def build_public_url(base: Optional[str], key: str) -> str:
    """Join a base URL and an object key with exactly one slash."""
    if not base:
        return key
    return f"{base.rstrip('/')}/{key}"


class R2BindingStore:
    """
    Object store on top of an R2 binding.

    The binding is resolved once, when the store is created for a request.
    A missing binding means the deployment is misconfigured, which is a
    ConfigError rather than an upload failure.
    """

    def __init__(
        self,
        config: BucketConfig,
        bindings: Mapping[str, R2Binding],
    ) -> None:
        if not config.binding_name:
            raise ConfigError(
                f"R2 configuration error for bucket '{config.id}': missing bindingName"
            )

        binding = bindings.get(config.binding_name)
        if binding is None:
            raise ConfigError(
                f"R2 bucket binding '{config.binding_name}' not found. "
                "Check the R2_BINDINGS configuration."
            )

        self._config = config
        self._binding = binding

    async def exists(self, key: str) -> bool:
        return await self._binding.head(key) is not None

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        await self._binding.put(key, data, content_type)

    def public_url(self, key: str) -> str:
        """customDomain/key if configured, else endpoint/key."""
        return build_public_url(
            self._config.custom_domain or self._config.endpoint, key
        )


class S3CompatibleStore:
    """
    Object store for AWS S3 and S3-compatible services.

    Uses boto3 with path-style addressing so public URLs of the form
    endpoint/bucket/key line up with how objects are addressed. Calls run
    in a worker thread because boto3 is synchronous. The client itself is
    shared between stores for the same configuration and built on first use.
    """

    def __init__(self, config: BucketConfig, client: Any = None) -> None:
        self._config = config
        self._s3_client = client

    async def _client(self) -> Any:
        if self._s3_client is None:
            self._s3_client = await asyncio.to_thread(build_s3_client, self._config)
        return self._s3_client

    async def exists(self, key: str) -> bool:
        """
        Head the object.

        Only a not-found answer means False. Anything else (permissions,
        network, throttling) raises StorageError so that a failed check is
        never mistaken for a free key.
        """
        client = await self._client()
        try:
            await asyncio.to_thread(
                client.head_object,
                Bucket=self._config.bucket_name,
                Key=key,
            )
        except ClientError as e:
            if is_not_found(e):
                return False
            logger.error(
                "Failed to head object",
                extra={"bucket": self._config.bucket_name, "key": key, "error": str(e)}
            )
            raise StorageError(f"Head failed: {e}") from e
        except BotoCoreError as e:
            logger.error(
                "Failed to head object",
                extra={"bucket": self._config.bucket_name, "key": key, "error": str(e)}
            )
            raise StorageError(f"Head failed: {e}") from e

        return True

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        client = await self._client()
        try:
            await asyncio.to_thread(
                client.put_object,
                Bucket=self._config.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Failed to put object",
                extra={"bucket": self._config.bucket_name, "key": key, "error": str(e)}
            )
            raise StorageError(f"Put failed: {e}") from e

        logger.debug(
            "Put object",
            extra={
                "bucket": self._config.bucket_name,
                "key": key,
                "size_bytes": len(data),
            }
        )

    def public_url(self, key: str) -> str:
        """customDomain/key if configured, else endpoint/bucketName/key."""
        if self._config.custom_domain:
            return build_public_url(self._config.custom_domain, key)
        return build_public_url(
            self._config.endpoint, f"{self._config.bucket_name}/{key}"
        )


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

StoreFactory = Callable[[BucketConfig, Mapping[str, R2Binding]], ObjectStore]

_STORE_FACTORIES: dict[Provider, StoreFactory] = {
    Provider.CLOUDFLARE_R2: lambda config, bindings: R2BindingStore(config, bindings),
    Provider.AWS_S3: lambda config, bindings: S3CompatibleStore(config),
}


def register_object_store(provider: Provider, factory: StoreFactory) -> None:
    """Register (or replace) the store factory for a provider."""
    _STORE_FACTORIES[provider] = factory


def create_object_store(
    config: BucketConfig,
    bindings: Optional[Mapping[str, R2Binding]] = None,
) -> ObjectStore:
    """
    Create the object store for a bucket based on its provider.

    Args:
        config: Validated bucket configuration
        bindings: Runtime binding map (only used by R2 buckets)

    Returns:
        ObjectStore implementation for the bucket's provider
    """
    factory = _STORE_FACTORIES.get(config.provider)
    if factory is None:
        raise ConfigError(f"Unsupported provider: {config.provider.value}")

    return factory(config, bindings or {})
