"""
Video endpoints: still image to video, audio track replacement
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import HTMLResponse

from api.dependencies import get_job_service, get_metrics, get_storage_service
from api.routers.audio import require_file
from api.routers.pages import render_image_form, render_merge_form, render_video_result
from api.services.job_service import MediaJobService
from api.services.metrics import MediaJobMetrics
from api.services.storage import StorageService
from api.utils.error_handlers import ValidationError
from api.utils.validators import validate_video_duration

router = APIRouter()


@router.post("/create", response_class=HTMLResponse)
async def create_video(
    image: Optional[UploadFile] = File(None),
    duration: Optional[str] = Form(None),
    storage: StorageService = Depends(get_storage_service),
    jobs: MediaJobService = Depends(get_job_service),
    metrics: MediaJobMetrics = Depends(get_metrics),
) -> str:
    """Loop a still image into an MP4 of ``duration`` seconds."""
    seconds = validate_video_duration(duration)
    image = require_file(image, "image")

    asset = await storage.store(image)
    metrics.record_upload(asset.size_bytes)

    artifact = await jobs.image_to_video(asset, seconds)
    return render_image_form(render_video_result("Video Created!", artifact.url, width=360))


@router.post("/", response_class=HTMLResponse)
async def replace_audio(
    video: Optional[UploadFile] = File(None),
    audio: Optional[UploadFile] = File(None),
    storage: StorageService = Depends(get_storage_service),
    jobs: MediaJobService = Depends(get_job_service),
    metrics: MediaJobMetrics = Depends(get_metrics),
) -> str:
    """Replace a video's audio track; output stops at the shorter input."""
    if video is None or audio is None or not video.filename or not audio.filename:
        raise ValidationError("Both video and audio files are required.")

    video_asset = await storage.store(video)
    audio_asset = await storage.store(audio)
    metrics.record_upload(video_asset.size_bytes)
    metrics.record_upload(audio_asset.size_bytes)

    artifact = await jobs.merge(video_asset, audio_asset)
    return render_merge_form(render_video_result("Video Created with New Audio!", artifact.url))
