"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from outlier_scout import __version__
from outlier_scout.adapters.store.base import StoreError, UnknownChannelError
from outlier_scout.api.routes import channels, health, outliers, scheduler
from outlier_scout.config import settings
from outlier_scout.logging import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Check the database on startup and release its pool on shutdown."""
    from outlier_scout.db.session import dispose_engine, ping_database

    logger.info(
        "application_starting",
        version=__version__,
        video_source=settings.video_source_provider,
        daily_quota=settings.youtube_quota_limit,
        batch_size=settings.scheduler_batch_size,
    )

    try:
        ping_database()
        logger.info("database_connected")
    except Exception as e:
        # Readiness reports it; the API still serves health and docs
        logger.error("database_connection_failed", error=str(e))

    yield

    logger.info("application_shutting_down")
    dispose_engine()


app = FastAPI(
    title="Outlier Scout",
    description="Competitor YouTube channel surveillance and outlier detection",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.api_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    """Map store errors that escape a route to 404 (unknown channel) or 409."""
    code = (
        status.HTTP_404_NOT_FOUND
        if isinstance(exc, UnknownChannelError)
        else status.HTTP_409_CONFLICT
    )
    logger.warning("store_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=code, content={"detail": str(exc)})


app.include_router(health.router)
for router in (channels.router, outliers.router, scheduler.router):
    app.include_router(router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Service banner with links to docs and health."""
    return {
        "name": "Outlier Scout",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "outlier_scout.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
