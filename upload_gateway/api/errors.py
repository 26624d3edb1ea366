"""Translation of core errors into HTTP responses."""

from fastapi import HTTPException, status

from ..core.uploads import ErrorKind, GatewayError

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.CONFIGURATION: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.BAD_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorKind.BACKEND: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def to_http_exception(error: GatewayError) -> HTTPException:
    return HTTPException(
        status_code=STATUS_BY_KIND.get(error.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
