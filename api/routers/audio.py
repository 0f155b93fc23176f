"""
Audio endpoints: upload + normalize, trim, repeat
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
import structlog

from api.dependencies import get_job_service, get_metrics, get_storage_service
from api.models.job import RepeatResponse, TrimRequest, TrimResponse, UploadResponse
from api.services.job_service import MediaJobService
from api.services.metrics import MediaJobMetrics
from api.services.storage import StorageService
from api.utils.error_handlers import ValidationError
from api.utils.validators import require, validate_repeat_count
from worker.utils.timecode import duration_between

logger = structlog.get_logger()
router = APIRouter()


def require_file(upload: Optional[UploadFile], field: str) -> UploadFile:
    if upload is None or not upload.filename:
        raise ValidationError(f"Missing required file: {field}", field=field)
    return upload


@router.post("/upload", response_model=UploadResponse)
async def upload_media(
    file: Optional[UploadFile] = File(None),
    storage: StorageService = Depends(get_storage_service),
    jobs: MediaJobService = Depends(get_job_service),
    metrics: MediaJobMetrics = Depends(get_metrics),
) -> UploadResponse:
    """
    Store an uploaded audio/video file and normalize it to MP3.

    The returned ``path`` is what ``/trim`` expects as ``filePath``.
    """
    file = require_file(file, "file")
    asset = await storage.store(file)
    metrics.record_upload(asset.size_bytes)

    artifact, duration = await jobs.normalize_upload(asset)
    return UploadResponse(path=artifact.url, duration=duration)


@router.post("/trim", response_model=TrimResponse)
async def trim_media(
    request: TrimRequest,
    storage: StorageService = Depends(get_storage_service),
    jobs: MediaJobService = Depends(get_job_service),
) -> TrimResponse:
    """Cut ``start``..``end`` out of a previously uploaded file."""
    start = require(request.start, "start")
    end = require(request.end, "end")
    file_path = require(request.file_path, "filePath")

    duration_between(start, end)
    source = await storage.resolve_public_path(file_path)

    artifact = await jobs.trim(source, start, end)
    return TrimResponse(trimmed=artifact.url)


@router.post("/process", response_model=RepeatResponse)
async def repeat_audio(
    audio: Optional[UploadFile] = File(None),
    repeat_count: Optional[str] = Form(None, alias="repeatCount"),
    storage: StorageService = Depends(get_storage_service),
    jobs: MediaJobService = Depends(get_job_service),
    metrics: MediaJobMetrics = Depends(get_metrics),
) -> RepeatResponse:
    """Loop an audio file ``repeatCount`` times without re-encoding."""
    count = validate_repeat_count(repeat_count)
    audio = require_file(audio, "audio")

    asset = await storage.store(audio)
    metrics.record_upload(asset.size_bytes)

    artifact = await jobs.repeat(asset, count)
    return RepeatResponse(audio_url=artifact.url)
