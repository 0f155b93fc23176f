"""
Media job service - main application
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from prometheus_client import make_asgi_app
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import settings
from api.routers import audio, health, pages, video
from api.services.job_service import MediaJobService
from api.services.metrics import MediaJobMetrics
from api.services.storage import StorageService
from api.utils.error_handlers import (
    MediaJobError, media_job_exception_handler, validation_exception_handler,
    http_exception_handler, general_exception_handler
)
from api.utils.logger import get_logger, setup_logging
from worker.utils.ffmpeg import FFmpegCommandBuilder, FFmpegExecutor

# Setup structured logging
setup_logging()
logger = get_logger(__name__)


def create_app(
    storage_service: Optional[StorageService] = None,
    executor: Optional[FFmpegExecutor] = None,
    metrics: Optional[MediaJobMetrics] = None,
) -> FastAPI:
    """Wire services, routes and static mounts into a FastAPI app."""
    storage_service = storage_service or StorageService.from_settings()
    metrics = metrics or MediaJobMetrics(enabled=settings.ENABLE_METRICS)
    executor = executor or FFmpegExecutor(
        max_concurrent=settings.MAX_CONCURRENT_JOBS,
        timeout=settings.JOB_TIMEOUT_SECONDS,
        ffprobe_path=settings.FFPROBE_PATH,
        metrics=metrics,
    )
    job_service = MediaJobService(
        storage_service,
        executor=executor,
        builder=FFmpegCommandBuilder(ffmpeg_path=settings.FFMPEG_PATH),
        metrics=metrics,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handle application startup and shutdown."""
        logger.info("Starting media job service", version=settings.VERSION)

        await storage_service.initialize()

        logger.info(
            "Configuration loaded",
            api_host=settings.API_HOST,
            api_port=settings.API_PORT,
            storage_areas=list(storage_service.backends.keys()),
            max_concurrent_jobs=executor.max_concurrent,
            job_timeout=executor.timeout,
        )

        yield

        logger.info("Shutting down media job service")

    app = FastAPI(
        title="Media Job Service",
        description="Trim audio, turn images into video, replace audio tracks and loop audio with FFmpeg",
        version=settings.VERSION,
        lifespan=lifespan,
    )
    app.state.storage_service = storage_service
    app.state.job_service = job_service
    app.state.metrics = metrics

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    app.add_exception_handler(MediaJobError, media_job_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Include routers
    app.include_router(pages.router, tags=["pages"])
    app.include_router(audio.router, tags=["audio"])
    app.include_router(video.router, tags=["video"])
    app.include_router(health.router, tags=["health"])

    # Produced files are served read-only, one mount per storage area
    for area, backend in storage_service.backends.items():
        base_path = getattr(backend, "base_path", None)
        if base_path is not None:
            app.mount(f"/{area}", StaticFiles(directory=base_path, check_dir=False), name=area)

    if settings.ENABLE_METRICS:
        app.mount("/metrics", make_asgi_app(registry=metrics.registry))

    return app


app = create_app()


def main():
    """Main entry point for API server."""
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        workers=settings.API_WORKERS,
        reload=settings.API_RELOAD,
        log_config=None,  # Use structlog
    )


if __name__ == "__main__":
    main()
