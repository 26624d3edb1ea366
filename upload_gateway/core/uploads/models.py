"""
Domain models for bucket configuration and uploads.

These models have no dependencies on FastAPI, boto3 or pydantic. The
persisted bucket configuration uses camelCase keys (it is shared with
clients and operators), so the mapping from records to models lives here
too.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Provider(Enum):
    """Storage providers a bucket can point at."""
    CLOUDFLARE_R2 = "CLOUDFLARE_R2"
    AWS_S3 = "AWS_S3"


DEFAULT_ALLOWED_PATHS: tuple[str, ...] = ("*",)
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _strip_trailing_slashes(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.rstrip("/")


@dataclass(frozen=True)
class BucketConfig:
    """
    One storage destination and its access policy.

    Frozen because the registry hands the same configuration to every
    request for the lifetime of the process.
    """
    id: str
    provider: Provider
    name: Optional[str] = None
    bucket_name: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    region: Optional[str] = None
    endpoint: Optional[str] = None
    custom_domain: Optional[str] = None
    binding_name: Optional[str] = None
    allowed_paths: tuple[str, ...] = DEFAULT_ALLOWED_PATHS
    id_whitelist: Optional[tuple[str, ...]] = None  # None and () both deny everyone

    @property
    def display_name(self) -> str:
        return self.name or self.bucket_name or self.id

    @property
    def has_whitelist(self) -> bool:
        return bool(self.id_whitelist)


@dataclass(frozen=True)
class PublicBucketConfig:
    """
    Redacted bucket configuration for discovery.

    Carries no credentials and no whitelist. Whitelist checks go through
    the registry.
    """
    id: str
    name: str
    provider: str
    bucket_name: Optional[str] = None
    region: Optional[str] = None
    endpoint: Optional[str] = None
    custom_domain: Optional[str] = None
    binding_name: Optional[str] = None
    allowed_paths: tuple[str, ...] = DEFAULT_ALLOWED_PATHS

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "PublicBucketConfig":
        """Build the public view straight from a raw configuration record."""
        bucket_id = record["id"]
        allowed_paths = record.get("allowedPaths")
        return cls(
            id=bucket_id,
            name=record.get("name") or record.get("bucketName") or bucket_id,
            provider=str(record.get("provider", "")),
            bucket_name=record.get("bucketName"),
            region=record.get("region"),
            endpoint=_strip_trailing_slashes(record.get("endpoint")),
            custom_domain=_strip_trailing_slashes(record.get("customDomain")),
            binding_name=record.get("bindingName"),
            allowed_paths=(
                tuple(allowed_paths) if allowed_paths is not None
                else DEFAULT_ALLOWED_PATHS
            ),
        )


@dataclass(frozen=True)
class UploadedFile:
    """The file part of an upload as declared by the client."""
    name: str
    data: bytes
    content_type: str = DEFAULT_CONTENT_TYPE

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass
class UploadRequest:
    """A single upload, already parsed and authenticated by the HTTP layer."""
    bucket: str
    path: str
    file: UploadedFile
    user_id: Optional[str] = None
    file_name: Optional[str] = None
    overwrite: bool = False


@dataclass(frozen=True)
class UploadResult:
    """Where the object ended up and under which name."""
    url: str
    file_name: str
    key: str = field(default="", compare=False)
