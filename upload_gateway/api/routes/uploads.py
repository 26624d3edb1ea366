"""
Upload API endpoint.

Flow:
1. Bearer token checked by dependency
2. Multipart form parsed and size-checked here
3. UploadService authorizes the user, applies path policy and writes
4. Core errors are mapped to HTTP statuses by kind
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, File, Form, Header, HTTPException, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field

from ...core.uploads import GatewayError, UploadedFile, UploadRequest
from ...core.uploads.models import DEFAULT_CONTENT_TYPE
from ..dependencies import AuthenticatedToken, SettingsDep, UploadServiceDep
from ..errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class UploadResponse(BaseModel):
    """Where the uploaded file can be reached."""
    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(description="Public URL of the stored object")
    file_name: str = Field(alias="fileName", description="File name actually used")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload a file to a bucket",
    description="Store a file under a path in one of the configured buckets",
    responses={
        401: {"description": "Missing token or user id"},
        403: {"description": "User or path not allowed for this bucket"},
        409: {"description": "File exists and overwrite was not requested"},
        413: {"description": "File too large"},
        503: {"description": "Bucket or service misconfigured"},
    },
)
async def upload_file(
    file: Annotated[UploadFile, File(description="File to upload")],
    path: Annotated[str, Form(min_length=1, description="Destination directory")],
    bucket: Annotated[str, Form(min_length=1, description="Bucket id")],
    file_name: Annotated[Optional[str], Form(alias="fileName")] = None,
    overwrite: Annotated[Optional[str], Form()] = None,
    x_user_id: Annotated[Optional[str], Header()] = None,
    token: AuthenticatedToken = None,
    service: UploadServiceDep = None,
    settings: SettingsDep = None,
) -> UploadResponse:
    """
    Upload a file.

    Without a fileName a random name keeping the original extension is
    generated. Existing objects are only replaced when overwrite is "true".
    """
    data = await file.read()

    if len(data) > settings.max_upload_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size: {settings.max_upload_size_mb}MB"
        )

    request = UploadRequest(
        bucket=bucket,
        path=path,
        user_id=x_user_id,
        file_name=file_name,
        overwrite=overwrite == "true",
        file=UploadedFile(
            name=file.filename or "",
            data=data,
            content_type=file.content_type or DEFAULT_CONTENT_TYPE,
        ),
    )

    logger.info(
        "Upload started",
        extra={
            "bucket": bucket,
            "path": path,
            "user_id": x_user_id or "anonymous",
            "size_bytes": len(data),
        }
    )

    try:
        result = await service.upload(request)
    except GatewayError as e:
        logger.warning(
            "Upload failed",
            extra={"bucket": bucket, "kind": e.kind.value, "error": e.message}
        )
        raise to_http_exception(e)

    return UploadResponse(url=result.url, file_name=result.file_name)
