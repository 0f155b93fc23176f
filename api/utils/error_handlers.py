"""
Error taxonomy and FastAPI exception handlers
"""
import traceback
from typing import Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
import structlog

logger = structlog.get_logger()


class MediaJobError(Exception):
    """Base exception for media job errors."""

    def __init__(self, message: str, code: str = "MEDIA_JOB_ERROR", status_code: int = 500):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


class ValidationError(MediaJobError):
    """Missing or malformed request parameters. Raised before any subprocess starts."""

    def __init__(self, message: str, field: Optional[str] = None, code: str = "VALIDATION_ERROR"):
        self.field = field
        super().__init__(message, code, 400)


class InvalidTimecode(ValidationError):
    """Timecode is not HH:MM:SS.s."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, field, "INVALID_TIMECODE")


class InvalidDuration(ValidationError):
    """Duration is negative or empty."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, field, "INVALID_DURATION")


class InvalidParameter(ValidationError):
    """Numeric job parameter is non-numeric or out of range."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, field, "INVALID_PARAMETER")


class StorageFailure(MediaJobError):
    """A file could not be written or read."""

    def __init__(self, message: str, backend: Optional[str] = None):
        self.backend = backend
        super().__init__(message, "STORAGE_ERROR", 500)


class EngineFailure(MediaJobError):
    """The transcoding engine failed, crashed or timed out.

    ``diagnostic`` carries the raw engine output. It is logged, never sent to
    the client.
    """

    def __init__(self, message: str, stage: str = "engine", diagnostic: str = ""):
        self.stage = stage
        self.diagnostic = diagnostic
        super().__init__(message, "ENGINE_ERROR", 500)


async def media_job_exception_handler(request: Request, exc: MediaJobError):
    """Handle media job exceptions."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Request failed",
        error_code=exc.code,
        error_message=exc.message,
        field=getattr(exc, "field", None),
        stage=getattr(exc, "stage", None),
        diagnostic=getattr(exc, "diagnostic", None) or None,
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message,
                "type": type(exc).__name__,
                "path": str(request.url.path),
            }
        },
    )


async def validation_exception_handler(request: Request, exc: Exception):
    """Malformed bodies are client errors, reported as 400."""
    logger.warning(
        "Validation error",
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
    )

    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Input validation failed",
                "type": type(exc).__name__,
                "path": str(request.url.path),
            }
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """HTTP exception handler with the common error envelope."""
    logger.warning(
        "HTTP error",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        method=request.method,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": f"HTTP_{exc.status_code}",
                "message": exc.detail,
                "type": type(exc).__name__,
                "path": str(request.url.path),
            }
        },
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    logger.error(
        "Unhandled exception",
        exc_type=type(exc).__name__,
        exc_message=str(exc),
        traceback=tb,
        path=request.url.path,
        method=request.method,
    )

    # Internal details only leave the process in debug mode
    from api.config import settings

    message = str(exc) if settings.DEBUG else "An internal error occurred"

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": message,
                "type": type(exc).__name__,
                "path": str(request.url.path),
            }
        },
    )
