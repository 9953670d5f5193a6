"""Health check endpoints."""

from collections.abc import Awaitable, Callable

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from outlier_scout.config import settings
from outlier_scout.logging import get_logger

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    video_source: str
    youtube_api_key_configured: bool


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    components: dict[str, bool]


async def _database() -> bool:
    from outlier_scout.db.session import ping_database

    ping_database()
    return True


async def _redis() -> bool:
    import redis

    client = redis.from_url(settings.redis_url, socket_connect_timeout=2)
    try:
        return bool(client.ping())
    finally:
        client.close()


async def _video_source() -> bool:
    from outlier_scout.services.builders import get_video_source

    source = get_video_source()
    try:
        return await source.health_check()
    finally:
        await source.close()


_PROBES: dict[str, Callable[[], Awaitable[bool]]] = {
    "database": _database,
    "redis": _redis,
    "video_source": _video_source,
}


async def _probe(name: str, check: Callable[[], Awaitable[bool]]) -> bool:
    try:
        return await check()
    except Exception as e:
        logger.error("health_probe_failed", component=name, error=str(e))
        return False


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Is the API up, and which video source is it configured for?",
)
async def health_check() -> HealthResponse:
    """Basic health check."""
    from outlier_scout import __version__

    return HealthResponse(
        status="healthy",
        version=__version__,
        video_source=settings.video_source_provider,
        youtube_api_key_configured=bool(settings.youtube_api_key),
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Probe the database, Redis and the video source. 503 if any probe fails.",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Readiness check including dependencies."""
    components = {name: await _probe(name, check) for name, check in _PROBES.items()}
    ready = all(components.values())
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(ready=ready, components=components)


@router.get(
    "/health/live",
    summary="Liveness probe",
    description="Simple liveness probe for Kubernetes.",
)
async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe - is the process alive?"""
    return {"status": "alive"}
