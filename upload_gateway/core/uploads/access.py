"""
Bucket access control.

A bucket is usable only by the user ids listed in its whitelist. A bucket
without a whitelist (absent or empty) is closed to everyone; that is a
configuration problem for the operator, so it is reported as such rather
than as a client error.

Path policy is checked later by the upload service, because it depends on
the specific destination rather than just the bucket.
"""

import logging
from typing import Optional

from .errors import AccessError, ConfigError, ErrorKind
from .models import BucketConfig, PublicBucketConfig
from .registry import BucketRegistry

logger = logging.getLogger(__name__)


def authorize(
    registry: BucketRegistry,
    bucket_id: str,
    user_id: Optional[str],
) -> BucketConfig:
    """
    Resolve a bucket and check that the user may upload to it.

    Returns the validated BucketConfig. Raises AccessError whose kind is
    CONFIGURATION (bucket unusable), UNAUTHORIZED (no user id) or
    FORBIDDEN (user not whitelisted).
    """
    try:
        config = registry.get_bucket_config(bucket_id)
    except ConfigError as e:
        logger.error(
            "Bucket configuration error",
            extra={"bucket": bucket_id, "error": e.message}
        )
        raise AccessError(
            f"Configuration error for bucket '{bucket_id}': {e.message}",
            kind=ErrorKind.CONFIGURATION,
        ) from e

    if not config.has_whitelist:
        logger.error(
            "ID whitelist missing for bucket",
            extra={"bucket": bucket_id}
        )
        raise AccessError(
            "Service unavailable: ID whitelist not configured for this bucket.",
            kind=ErrorKind.CONFIGURATION,
        )

    if not user_id:
        raise AccessError(
            "Unauthorized: User ID required for whitelist validation.",
            kind=ErrorKind.UNAUTHORIZED,
        )

    if user_id not in config.id_whitelist:
        logger.warning(
            "User not in bucket whitelist",
            extra={"bucket": bucket_id, "user_id": user_id}
        )
        raise AccessError(
            "Unauthorized: User ID not in whitelist for this bucket.",
            kind=ErrorKind.FORBIDDEN,
        )

    return config


def visible_buckets(
    registry: BucketRegistry,
    user_id: Optional[str],
) -> dict[str, PublicBucketConfig]:
    """Public configs of the buckets this user is whitelisted for."""
    if not user_id:
        return {}

    return {
        bucket_id: config
        for bucket_id, config in registry.list_public_configs().items()
        if registry.is_whitelisted(bucket_id, user_id)
    }
