"""
FastAPI dependency injection.

Dependencies provide the bucket registry, R2 bindings, upload service and
configuration to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests
- Configuration is read in one place and handed to the core explicitly

Each dependency is a function that FastAPI calls when needed.
"""

import logging
from functools import lru_cache, partial
from typing import Annotated, Mapping, Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config.settings import Settings, get_settings
from ..core.uploads import BucketRegistry, ConfigError, UploadService
from ..infrastructure.storage import (
    InMemoryR2Binding,
    R2Binding,
    create_bindings,
    create_object_store,
)

logger = logging.getLogger(__name__)

# Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)

# Shared in-memory bindings (persist across requests in mock mode)
_mock_bindings: dict[str, InMemoryR2Binding] = {}


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_bearer_token(
    settings: Annotated[Settings, Depends(get_settings)],
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> str:
    """
    Validate the shared-secret bearer token.

    The service is disabled (503) until AUTH_SECRET_KEY is configured.
    Raises 401 if the header is missing or the token isn't one of the
    configured secrets.
    """
    valid_tokens = settings.auth_tokens_list
    if not valid_tokens:
        logger.error("AUTH_SECRET_KEY not set. Service is disabled.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unavailable: Authentication is not configured.",
        )

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Missing or invalid Authorization header.",
        )

    if credentials.credentials not in valid_tokens:
        logger.warning(
            "Invalid token attempt",
            extra={"token_prefix": credentials.credentials[:4]}
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Invalid token.",
        )

    return credentials.credentials


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

@lru_cache(maxsize=8)
def load_bucket_registry(blob: str) -> BucketRegistry:
    """Parse a configuration blob once per process."""
    return BucketRegistry.from_json(blob)


@lru_cache(maxsize=8)
def load_r2_bindings(blob: str) -> Mapping[str, R2Binding]:
    """Build boto3-backed bindings once per process."""
    return create_bindings(blob)


def get_bucket_registry(
    settings: Annotated[Settings, Depends(get_settings)],
) -> BucketRegistry:
    """
    Provide the bucket registry.

    A configuration blob that doesn't parse makes every bucket unusable,
    so it is reported as 503 rather than as a client error.
    """
    try:
        return load_bucket_registry(settings.bucket_configs)
    except ConfigError as e:
        logger.error("Invalid bucket configuration", extra={"error": e.message})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Service unavailable: {e.message}",
        )


def get_r2_bindings(
    settings: Annotated[Settings, Depends(get_settings)],
    registry: Annotated[BucketRegistry, Depends(get_bucket_registry)],
) -> Mapping[str, R2Binding]:
    """
    Provide the R2 binding map.

    In mock mode, we reuse the same in-memory bindings across requests
    so that uploaded objects persist during the session.
    """
    if settings.r2_mock_mode:
        for name in registry.binding_names():
            if name not in _mock_bindings:
                _mock_bindings[name] = InMemoryR2Binding(name)
                logger.info("Created shared in-memory binding", extra={"binding": name})
        return _mock_bindings

    try:
        return load_r2_bindings(settings.r2_bindings)
    except ConfigError as e:
        logger.error("Invalid R2 binding configuration", extra={"error": e.message})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Service unavailable: {e.message}",
        )


def get_upload_service(
    registry: Annotated[BucketRegistry, Depends(get_bucket_registry)],
    bindings: Annotated[Mapping[str, R2Binding], Depends(get_r2_bindings)],
) -> UploadService:
    """
    Provide UploadService wired to the registry and bindings.

    The service is stateless, so we create a new instance per request.
    """
    return UploadService(
        registry=registry,
        store_factory=partial(create_object_store, bindings=bindings),
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
AuthenticatedToken = Annotated[str, Depends(verify_bearer_token)]
BucketRegistryDep = Annotated[BucketRegistry, Depends(get_bucket_registry)]
UploadServiceDep = Annotated[UploadService, Depends(get_upload_service)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
