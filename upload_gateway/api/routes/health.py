"""
Health check endpoints.

We provide two endpoints:
- /health: Basic liveness check (is the process running?)
- /health/ready: Readiness check (can we serve uploads?)

The distinction matters in orchestration systems like Kubernetes
where liveness and readiness have different behaviors.
"""

import logging
from typing import Any

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ... import __version__
from ...config.settings import Settings
from ...core.uploads import BucketRegistry, ConfigError
from ...infrastructure.storage import parse_binding_configs
from ..dependencies import SettingsDep, load_bucket_registry

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """
    Health check response.

    Standardized format makes it easy for monitoring tools to parse.
    """
    status: str
    version: str
    details: dict[str, Any] = {}


class ReadinessCheck(BaseModel):
    """Individual readiness check result."""
    name: str
    status: str  # "ok" or "error"
    error: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response with details."""
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ReadinessCheck]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns 200 if the service is running. Does not check dependencies.",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    """Liveness check - is the process alive?"""
    return HealthResponse(
        status="ok",
        version=__version__,
        details={
            "mock_mode": {
                "r2": settings.r2_mock_mode,
            }
        }
    )


def _check_buckets(registry: BucketRegistry) -> ReadinessCheck:
    """Every configured bucket must pass its completeness validation."""
    if len(registry) == 0:
        return ReadinessCheck(name="buckets", status="error", error="No buckets configured")

    problems = []
    for bucket_id in registry.bucket_ids:
        try:
            registry.get_bucket_config(bucket_id)
        except ConfigError as e:
            problems.append(e.message)

    if problems:
        return ReadinessCheck(name="buckets", status="error", error="; ".join(problems))
    return ReadinessCheck(name="buckets", status="ok")


def _check_bindings(registry: BucketRegistry, settings: Settings) -> ReadinessCheck:
    """Every binding an R2 bucket references must be resolvable."""
    if settings.r2_mock_mode:
        return ReadinessCheck(name="bindings", status="ok", error="mock mode")

    configured = parse_binding_configs(settings.r2_bindings)
    missing = [name for name in registry.binding_names() if name not in configured]
    if missing:
        return ReadinessCheck(
            name="bindings",
            status="error",
            error=f"Missing R2 bindings: {', '.join(missing)}"
        )
    return ReadinessCheck(name="bindings", status="ok")


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Returns 200 if the service can handle uploads. Checks configuration.",
    responses={
        503: {
            "description": "Service not ready",
            "model": ReadinessResponse,
        }
    },
)
async def readiness_check(settings: SettingsDep, response: Response) -> ReadinessResponse:
    """
    Readiness check - can we serve uploads?

    Checks that authentication is configured, that the bucket
    configuration parses and every bucket is complete, and that every
    R2 binding the buckets reference exists. Returns 503 if any check
    fails, which tells load balancers not to route traffic here.
    """
    checks: list[ReadinessCheck] = []

    # Check authentication
    if settings.auth_tokens_list:
        checks.append(ReadinessCheck(name="authentication", status="ok"))
    else:
        checks.append(ReadinessCheck(
            name="authentication",
            status="error",
            error="AUTH_SECRET_KEY not configured"
        ))

    # Check buckets and bindings
    try:
        registry = load_bucket_registry(settings.bucket_configs)
    except ConfigError as e:
        checks.append(ReadinessCheck(name="buckets", status="error", error=e.message))
    else:
        checks.append(_check_buckets(registry))
        try:
            checks.append(_check_bindings(registry, settings))
        except ConfigError as e:
            checks.append(ReadinessCheck(name="bindings", status="error", error=e.message))

    all_ok = all(check.status == "ok" for check in checks)

    if not all_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Readiness check failed",
            extra={
                "checks": [
                    {"name": c.name, "status": c.status, "error": c.error}
                    for c in checks
                ]
            }
        )

    return ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        version=__version__,
        checks=checks,
    )
