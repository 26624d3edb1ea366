"""
Bucket discovery endpoint.

Lets a client find out which buckets it may upload to. Only buckets whose
whitelist contains the caller's X-User-Id are listed, and credentials are
never part of the response.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Header, status
from pydantic import BaseModel, ConfigDict, Field

from ...core.uploads import PublicBucketConfig, visible_buckets
from ..dependencies import AuthenticatedToken, BucketRegistryDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class BucketInfo(BaseModel):
    """Public information about one bucket."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    provider: str
    bucket_name: Optional[str] = Field(None, alias="bucketName")
    region: Optional[str] = None
    endpoint: Optional[str] = None
    custom_domain: Optional[str] = Field(None, alias="customDomain")
    binding_name: Optional[str] = Field(None, alias="bindingName")
    allowed_paths: list[str] = Field(default_factory=lambda: ["*"], alias="allowedPaths")

    @classmethod
    def from_public_config(cls, config: PublicBucketConfig) -> "BucketInfo":
        return cls(
            id=config.id,
            name=config.name,
            provider=config.provider,
            bucket_name=config.bucket_name,
            region=config.region,
            endpoint=config.endpoint,
            custom_domain=config.custom_domain,
            binding_name=config.binding_name,
            allowed_paths=list(config.allowed_paths),
        )


class BucketListResponse(BaseModel):
    """Buckets available to the caller."""
    success: bool = True
    buckets: list[BucketInfo] = Field(description="Buckets the user is whitelisted for")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/buckets",
    response_model=BucketListResponse,
    status_code=status.HTTP_200_OK,
    summary="List my buckets",
    description="List the buckets the X-User-Id user may upload to",
)
async def list_buckets(
    token: AuthenticatedToken,
    registry: BucketRegistryDep,
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> BucketListResponse:
    """
    List accessible buckets.

    Without X-User-Id the list is empty: every bucket requires a
    whitelisted user.
    """
    buckets = visible_buckets(registry, x_user_id)

    logger.info(
        "Listing buckets",
        extra={"user_id": x_user_id or "anonymous", "count": len(buckets)}
    )

    return BucketListResponse(
        buckets=[BucketInfo.from_public_config(config) for config in buckets.values()]
    )
