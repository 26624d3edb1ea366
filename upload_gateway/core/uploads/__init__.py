"""
Bucket resolution, access control and upload dispatch.

Contains the bucket registry, path policy, access checks, object naming
and the upload service.
"""

from .access import authorize, visible_buckets
from .errors import (
    AccessError,
    ConfigError,
    ErrorKind,
    GatewayError,
    PathNotAllowedError,
    UploadError,
)
from .models import (
    BucketConfig,
    Provider,
    PublicBucketConfig,
    UploadedFile,
    UploadRequest,
    UploadResult,
)
from .naming import file_extension, generate_file_name, name_for
from .paths import is_path_allowed, sanitize_path
from .registry import BucketRegistry
from .service import ObjectStore, ObjectStoreFactory, UploadService

__all__ = [
    "AccessError",
    "BucketConfig",
    "BucketRegistry",
    "ConfigError",
    "ErrorKind",
    "GatewayError",
    "ObjectStore",
    "ObjectStoreFactory",
    "PathNotAllowedError",
    "Provider",
    "PublicBucketConfig",
    "UploadError",
    "UploadRequest",
    "UploadResult",
    "UploadService",
    "UploadedFile",
    "authorize",
    "file_extension",
    "generate_file_name",
    "is_path_allowed",
    "name_for",
    "sanitize_path",
    "visible_buckets",
]
