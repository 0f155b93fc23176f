"""
FastAPI dependencies for the shared services
"""
from fastapi import Request

from api.services.job_service import MediaJobService
from api.services.metrics import MediaJobMetrics
from api.services.storage import StorageService


def get_storage_service(request: Request) -> StorageService:
    """Storage service created at application startup."""
    return request.app.state.storage_service


def get_job_service(request: Request) -> MediaJobService:
    """Job service created at application startup."""
    return request.app.state.job_service


def get_metrics(request: Request) -> MediaJobMetrics:
    return request.app.state.metrics
