"""
Typed failures for the upload core.

Every error carries an ErrorKind so the HTTP layer can pick a status code
without parsing messages. Messages are safe to show to clients: they may
name a bucket id or a field, never a credential.
"""

from enum import Enum


class ErrorKind(Enum):
    """Failure classes, roughly one per HTTP status family."""
    CONFIGURATION = "configuration"  # operator fault, 503
    UNAUTHORIZED = "unauthorized"    # 401
    FORBIDDEN = "forbidden"          # 403
    CONFLICT = "conflict"            # 409
    BAD_REQUEST = "bad_request"      # 400
    BACKEND = "backend"              # 500


class GatewayError(Exception):
    """Base class for all failures raised by the upload core."""

    default_kind = ErrorKind.BAD_REQUEST

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind or self.default_kind


class ConfigError(GatewayError):
    """A bucket definition is missing, malformed or incomplete."""

    default_kind = ErrorKind.CONFIGURATION


class AccessError(GatewayError):
    """The requesting identity may not use the bucket."""

    default_kind = ErrorKind.FORBIDDEN


class UploadError(GatewayError):
    """The upload itself was rejected or the backend failed."""

    default_kind = ErrorKind.BACKEND


class PathNotAllowedError(UploadError):
    """The destination path is outside the bucket's allow-list."""

    default_kind = ErrorKind.FORBIDDEN
