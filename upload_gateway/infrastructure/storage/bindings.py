"""
R2 bucket bindings.

On Cloudflare Workers an R2 bucket arrives as a named binding supplied by
the runtime. A Python process has no such runtime, so the gateway builds
the binding map itself at startup:

- From the R2_BINDINGS setting, where each binding name maps to R2 API
  credentials. Those handles talk to R2 over its S3-compatible API.
- In mock mode, as in-memory handles for every binding name the bucket
  configuration references. This enables local development and tests
  without provisioning R2.

Either way the map is passed explicitly to the object stores; nothing here
reads process environment.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ...core.uploads.errors import ConfigError
from .errors import StorageError, is_not_found

logger = logging.getLogger(__name__)


@dataclass
class StorageConfig:
    """
    Credentials and location of one R2 bucket reached via the S3 API.

    Using a dataclass instead of raw parameters means:
    - Configuration is explicit and documented
    - Easy to validate at construction time
    - Simple to create test configurations
    """
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    endpoint_url: str
    region: str = "auto"  # R2 uses 'auto' for region


@dataclass(frozen=True)
class ObjectInfo:
    """Metadata about a stored object, as returned by head/put."""
    key: str
    size: int
    content_type: str
    etag: str = ""
    uploaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class R2Binding(Protocol):
    """
    Handle to one R2 bucket.

    Mirrors the two calls the gateway needs from a Workers R2 binding:
    head() returns None for a missing object, put() writes with the
    content type stored as HTTP metadata.
    """

    async def head(self, key: str) -> Optional[ObjectInfo]:
        ...

    async def put(self, key: str, data: bytes, content_type: str) -> ObjectInfo:
        ...


class BotoR2Binding:
    """
    R2 binding backed by boto3 against R2's S3-compatible endpoint.

    boto3 is synchronous, so calls run in a worker thread to keep the
    event loop free while the request waits on R2.
    """

    def __init__(self, config: StorageConfig, client: Any = None) -> None:
        self._config = config

        if client is None:
            # R2 requires v4 signatures and has specific endpoint patterns
            boto_config = Config(
                signature_version="s3v4",
                s3={"addressing_style": "path"},
            )
            client = boto3.client(
                "s3",
                endpoint_url=config.endpoint_url,
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=config.secret_access_key,
                region_name=config.region,
                config=boto_config,
            )

        self._s3_client = client

        logger.info(
            "Initialized R2 binding",
            extra={
                "bucket": config.bucket_name,
                "endpoint": config.endpoint_url,
            }
        )

    async def head(self, key: str) -> Optional[ObjectInfo]:
        try:
            response = await asyncio.to_thread(
                self._s3_client.head_object,
                Bucket=self._config.bucket_name,
                Key=key,
            )
        except ClientError as e:
            if is_not_found(e):
                return None
            logger.error(
                "Failed to head object in R2",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Head failed: {e}") from e
        except BotoCoreError as e:
            logger.error(
                "Failed to head object in R2",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Head failed: {e}") from e

        return ObjectInfo(
            key=key,
            size=response.get("ContentLength", 0),
            content_type=response.get("ContentType", ""),
            etag=response.get("ETag", ""),
        )

    async def put(self, key: str, data: bytes, content_type: str) -> ObjectInfo:
        try:
            response = await asyncio.to_thread(
                self._s3_client.put_object,
                Bucket=self._config.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Failed to put object in R2",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Put failed: {e}") from e

        logger.debug(
            "Put object in R2",
            extra={"key": key, "size_bytes": len(data)}
        )

        return ObjectInfo(
            key=key,
            size=len(data),
            content_type=content_type,
            etag=response.get("ETag", ""),
        )


# ---------------------------------------------------------------------------
# In-memory binding for local development
# ---------------------------------------------------------------------------

class InMemoryR2Binding:
    """
    In-memory R2 bucket.

    Objects are kept in a dictionary keyed by object key. Not suitable for
    production, but enables the full upload flow without real storage.
    """

    def __init__(self, name: str = "memory") -> None:
        self.name = name
        self._objects: dict[str, tuple[bytes, ObjectInfo]] = {}
        logger.info("Initialized in-memory R2 binding", extra={"binding": name})

    async def head(self, key: str) -> Optional[ObjectInfo]:
        stored = self._objects.get(key)
        return stored[1] if stored else None

    async def put(self, key: str, data: bytes, content_type: str) -> ObjectInfo:
        info = ObjectInfo(key=key, size=len(data), content_type=content_type)
        self._objects[key] = (data, info)

        logger.debug(
            "Stored object in memory",
            extra={"binding": self.name, "key": key, "size_bytes": len(data)}
        )

        return info

    def get(self, key: str) -> bytes:
        """Stored bytes for key; raises StorageError if absent."""
        if key not in self._objects:
            raise StorageError(f"Object not found: {key}")
        return self._objects[key][0]

    @property
    def keys(self) -> list[str]:
        return list(self._objects)


# ---------------------------------------------------------------------------
# Binding map construction
# ---------------------------------------------------------------------------

def r2_endpoint(account_id: str) -> str:
    """
    R2 endpoints follow the pattern: https://{account_id}.r2.cloudflarestorage.com
    """
    return f"https://{account_id}.r2.cloudflarestorage.com"


def parse_binding_configs(blob: Optional[str]) -> dict[str, StorageConfig]:
    """
    Parse the R2_BINDINGS setting.

    Format: a JSON object mapping binding name to
    {"accountId" | "endpointUrl", "accessKeyId", "secretAccessKey", "bucketName"}.
    Raises ConfigError for malformed or incomplete entries.
    """
    if not blob or not blob.strip():
        return {}

    try:
        raw = json.loads(blob)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid R2 binding configuration: {e.msg}") from e

    if not isinstance(raw, dict):
        raise ConfigError("invalid R2 binding configuration: expected an object")

    configs: dict[str, StorageConfig] = {}
    for name, entry in raw.items():
        if not isinstance(entry, dict):
            raise ConfigError(f"invalid R2 binding configuration for '{name}'")

        endpoint_url = entry.get("endpointUrl")
        if not endpoint_url and entry.get("accountId"):
            endpoint_url = r2_endpoint(entry["accountId"])

        missing = [
            field_name for field_name, value in (
                ("accountId or endpointUrl", endpoint_url),
                ("accessKeyId", entry.get("accessKeyId")),
                ("secretAccessKey", entry.get("secretAccessKey")),
                ("bucketName", entry.get("bucketName")),
            )
            if not value
        ]
        if missing:
            raise ConfigError(
                f"incomplete R2 binding configuration for '{name}': "
                f"missing {', '.join(missing)}"
            )

        configs[name] = StorageConfig(
            access_key_id=entry["accessKeyId"],
            secret_access_key=entry["secretAccessKey"],
            bucket_name=entry["bucketName"],
            endpoint_url=endpoint_url,
            region=entry.get("region", "auto"),
        )

    return configs


def create_bindings(
    blob: Optional[str] = None,
    mock_mode: bool = False,
    names: Iterable[str] = (),
) -> Mapping[str, R2Binding]:
    """
    Build the binding map handed to R2 object stores.

    Args:
        blob: R2_BINDINGS setting (ignored in mock mode)
        mock_mode: If True, create in-memory bindings instead
        names: Binding names to create in mock mode

    Returns:
        Mapping of binding name to handle
    """
    if mock_mode:
        return {name: InMemoryR2Binding(name) for name in names}

    return {
        name: BotoR2Binding(config)
        for name, config in parse_binding_configs(blob).items()
    }
