"""
API services
"""
from .job_service import MediaJobService
from .metrics import MediaJobMetrics
from .storage import StorageService

__all__ = [
    "MediaJobService",
    "MediaJobMetrics",
    "StorageService",
]
