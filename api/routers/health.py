"""
Health check endpoints
"""
import subprocess
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
import structlog

from api.config import settings
from api.dependencies import get_job_service, get_storage_service
from api.services.job_service import MediaJobService
from api.services.storage import StorageService

logger = structlog.get_logger()
router = APIRouter()


def check_ffmpeg() -> Dict[str, Any]:
    """Run ``ffmpeg -version`` and report the first line."""
    try:
        result = subprocess.run(
            [settings.FFMPEG_PATH, "-version"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        return {"status": "unhealthy", "error": str(e)}

    if result.returncode != 0:
        return {"status": "unhealthy", "error": f"ffmpeg exited with code {result.returncode}"}
    return {"status": "healthy", "version": result.stdout.split("\n")[0]}


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.VERSION,
    }


@router.get("/health/detailed")
async def detailed_health_check(
    storage: StorageService = Depends(get_storage_service),
    jobs: MediaJobService = Depends(get_job_service),
) -> Dict[str, Any]:
    """
    Detailed health check with storage areas, engine and concurrency limits.
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.VERSION,
        "components": {},
    }

    storage_health = await storage.health_check()
    health_status["components"]["storage"] = storage_health
    if storage_health["status"] != "healthy":
        health_status["status"] = "degraded"

    ffmpeg_health = check_ffmpeg()
    health_status["components"]["ffmpeg"] = ffmpeg_health
    if ffmpeg_health["status"] != "healthy":
        health_status["status"] = "degraded"

    health_status["components"]["executor"] = {
        "status": "healthy",
        "max_concurrent_jobs": jobs.executor.max_concurrent,
        "timeout_seconds": jobs.executor.timeout,
    }

    return health_status
