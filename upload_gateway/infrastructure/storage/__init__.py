"""
Object storage backends for bucket uploads.

Supports R2 (Cloudflare) through bindings and S3 (AWS) or any
S3-compatible service through boto3. Includes in-memory bindings for local
development without credentials.
"""

from .bindings import (
    BotoR2Binding,
    InMemoryR2Binding,
    ObjectInfo,
    R2Binding,
    StorageConfig,
    create_bindings,
    parse_binding_configs,
)
from .client import (
    R2BindingStore,
    S3CompatibleStore,
    create_object_store,
    register_object_store,
)
from .errors import StorageError

__all__ = [
    "BotoR2Binding",
    "InMemoryR2Binding",
    "ObjectInfo",
    "R2Binding",
    "R2BindingStore",
    "S3CompatibleStore",
    "StorageConfig",
    "StorageError",
    "create_bindings",
    "create_object_store",
    "parse_binding_configs",
    "register_object_store",
]
