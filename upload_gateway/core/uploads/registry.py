"""
Bucket registry.

The registry is built from a single JSON blob (the BUCKET_CONFIGS setting):
an ordered list of bucket records with camelCase keys. Parsing only checks
structure; per-provider completeness is validated on every lookup so that a
single broken bucket does not take the others down with it.

Example record:

    {
        "id": "main_r2",
        "name": "Main R2 Storage",
        "provider": "CLOUDFLARE_R2",
        "bindingName": "R2_MAIN_BUCKET",
        "customDomain": "https://files.example.com",
        "allowedPaths": ["*"],
        "idWhitelist": ["admin"]
    }
"""

import json
import logging
from typing import Any, Optional

from .errors import ConfigError
from .models import (
    DEFAULT_ALLOWED_PATHS,
    BucketConfig,
    Provider,
    PublicBucketConfig,
)

logger = logging.getLogger(__name__)


# Required camelCase fields per provider, in the order they are reported.
REQUIRED_FIELDS: dict[Provider, tuple[str, ...]] = {
    Provider.AWS_S3: (
        "bucketName",
        "accessKeyId",
        "secretAccessKey",
        "region",
        "endpoint",
    ),
    Provider.CLOUDFLARE_R2: ("bindingName",),
}

# Optional fields that must be lists of strings when present.
STRING_LIST_FIELDS: tuple[str, ...] = ("allowedPaths", "idWhitelist")


class BucketRegistry:
    """
    Read-only lookup of bucket configurations by id.

    Instances are immutable after construction and safe to share between
    concurrent requests.
    """

    def __init__(self, records: list[dict[str, Any]]) -> None:
        self._records: dict[str, dict[str, Any]] = {}

        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise ConfigError(
                    f"invalid configuration: bucket entry {index} is not an object"
                )
            bucket_id = record.get("id")
            if not isinstance(bucket_id, str) or not bucket_id:
                raise ConfigError(
                    f"invalid configuration: bucket entry {index} has no id"
                )
            if bucket_id in self._records:
                raise ConfigError(
                    f"invalid configuration: duplicate bucket id '{bucket_id}'"
                )
            _check_string_lists(bucket_id, record)
            self._records[bucket_id] = record

    @classmethod
    def from_json(cls, blob: Optional[str]) -> "BucketRegistry":
        """Parse the configuration blob. An absent blob yields an empty registry."""
        if not blob or not blob.strip():
            logger.warning("No bucket configuration provided; registry is empty")
            return cls([])

        try:
            records = json.loads(blob)
        except json.JSONDecodeError as e:
            raise ConfigError(f"invalid configuration: {e.msg}") from e

        if not isinstance(records, list):
            raise ConfigError("invalid configuration: expected a list of buckets")

        registry = cls(records)
        logger.info(
            "Loaded bucket configuration",
            extra={"bucket_count": len(registry)}
        )
        return registry

    def __len__(self) -> int:
        return len(self._records)

    @property
    def bucket_ids(self) -> list[str]:
        return list(self._records)

    def get_bucket_config(self, bucket_id: str) -> BucketConfig:
        """
        Look up and validate one bucket.

        Raises ConfigError when the id is unknown, the provider is not
        supported, or a field the provider needs is missing.
        """
        record = self._records.get(bucket_id)
        if record is None:
            raise ConfigError(f"bucket not found: '{bucket_id}'")

        try:
            provider = Provider(record.get("provider"))
        except ValueError:
            raise ConfigError(
                f"unsupported provider for bucket '{bucket_id}': "
                f"{record.get('provider')!r}"
            )

        missing = [
            name for name in REQUIRED_FIELDS[provider]
            if not record.get(name)
        ]
        if missing:
            raise ConfigError(
                f"incomplete configuration for bucket '{bucket_id}': "
                f"missing {', '.join(missing)}"
            )

        allowed_paths = record.get("allowedPaths")
        id_whitelist = record.get("idWhitelist")

        return BucketConfig(
            id=bucket_id,
            provider=provider,
            name=record.get("name"),
            bucket_name=record.get("bucketName"),
            access_key_id=record.get("accessKeyId"),
            secret_access_key=record.get("secretAccessKey"),
            region=record.get("region"),
            endpoint=record.get("endpoint"),
            custom_domain=record.get("customDomain"),
            binding_name=record.get("bindingName"),
            allowed_paths=(
                tuple(allowed_paths) if allowed_paths is not None
                else DEFAULT_ALLOWED_PATHS
            ),
            id_whitelist=(
                tuple(id_whitelist) if id_whitelist is not None else None
            ),
        )

    def list_public_configs(self) -> dict[str, PublicBucketConfig]:
        """All configured buckets, keyed by id, with credentials removed."""
        return {
            bucket_id: PublicBucketConfig.from_record(record)
            for bucket_id, record in self._records.items()
        }

    def is_whitelisted(self, bucket_id: str, user_id: Optional[str]) -> bool:
        """Whether user_id appears in the bucket's idWhitelist. Unknown buckets are not."""
        record = self._records.get(bucket_id)
        if record is None or not user_id:
            return False
        return user_id in (record.get("idWhitelist") or ())

    def binding_names(self) -> list[str]:
        """Runtime binding names referenced by R2 buckets, without duplicates."""
        names: list[str] = []
        for record in self._records.values():
            name = record.get("bindingName")
            if record.get("provider") == Provider.CLOUDFLARE_R2.value and name:
                if name not in names:
                    names.append(name)
        return names


def _check_string_lists(bucket_id: str, record: dict[str, Any]) -> None:
    for name in STRING_LIST_FIELDS:
        value = record.get(name)
        if value is None:
            continue
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ConfigError(
                f"invalid configuration: bucket '{bucket_id}' field {name} "
                "must be a list of strings"
            )
