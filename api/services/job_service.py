"""
Media job service - runs one job end to end

Within a request every step is sequential: allocate output, build the
command, run the engine, apply the cleanup policy, report.
"""
import time
from typing import Optional, Tuple

import structlog

from api.models.job import (
    Artifact,
    Failure,
    ImageToVideoJob,
    JobKind,
    JobResult,
    JobSpec,
    MergeJob,
    NormalizeJob,
    RepeatJob,
    TrimJob,
    UploadedAsset,
    job_inputs,
)
from api.services.metrics import MediaJobMetrics
from api.services.storage import RESULTS, TRIMMED, UPLOADS, StorageService
from api.utils.error_handlers import EngineFailure, StorageFailure
from api.utils.validators import audio_suffix, validate_repeat_count, validate_video_duration
from worker.utils.ffmpeg import FFmpegCommandBuilder, FFmpegExecutor
from worker.utils.lifecycle import ArtifactLifecycleManager
from worker.utils.timecode import duration_between, format_timecode

logger = structlog.get_logger()

# Generic client-facing messages; engine diagnostics stay in the logs
FAILURE_MESSAGES = {
    JobKind.NORMALIZE: "Conversion failed",
    JobKind.TRIM: "Trimming failed",
    JobKind.IMAGE_TO_VIDEO: "Error creating video",
    JobKind.MERGE: "Error processing video",
    JobKind.REPEAT: "Failed to process audio",
}


class MediaJobService:
    """Store → build → execute → clean up, for every job kind."""

    def __init__(
        self,
        storage: StorageService,
        executor: Optional[FFmpegExecutor] = None,
        builder: Optional[FFmpegCommandBuilder] = None,
        lifecycle: Optional[ArtifactLifecycleManager] = None,
        metrics: Optional[MediaJobMetrics] = None,
    ):
        self.storage = storage
        self.metrics = metrics
        self.executor = executor or FFmpegExecutor(metrics=metrics)
        self.builder = builder or FFmpegCommandBuilder()
        self.lifecycle = lifecycle or ArtifactLifecycleManager(storage)

    def output_layout(self, spec: JobSpec) -> Tuple[str, str, str]:
        """(area, prefix, suffix) of the file a job produces."""
        if isinstance(spec, TrimJob):
            return TRIMMED, "trimmed-", ".mp3"
        if isinstance(spec, NormalizeJob):
            return UPLOADS, "converted-", ".mp3"
        if isinstance(spec, ImageToVideoJob):
            return RESULTS, "video-", ".mp4"
        if isinstance(spec, MergeJob):
            return RESULTS, "replaced-", ".mp4"
        if isinstance(spec, RepeatJob):
            return RESULTS, "output-", audio_suffix(spec.audio.original_name or spec.audio.handle)
        raise TypeError(f"Unsupported job spec: {type(spec).__name__}")

    async def run(self, spec: JobSpec) -> JobResult:
        """Run a job and apply the cleanup policy. Returns Artifact or Failure."""
        area, prefix, suffix = self.output_layout(spec)
        handle, output_path = await self.storage.allocate(area, suffix=suffix, prefix=prefix)

        manifest_path = None
        if isinstance(spec, RepeatJob):
            _, manifest_path = await self.storage.allocate(UPLOADS, suffix=".txt", prefix="concat-list-")

        invocation = self.builder.build(
            spec,
            output_path,
            output_url=self.storage.url_for(area, handle),
            manifest_path=manifest_path,
        )

        started = time.monotonic()
        try:
            async with self.lifecycle.ephemeral_manifest(invocation.manifest):
                result = await self.executor.run(invocation)
        except OSError as e:
            raise StorageFailure(f"Failed to write concat manifest: {e}", backend=UPLOADS)
        elapsed = time.monotonic() - started

        outcome = "success" if isinstance(result, Artifact) else result.stage
        if self.metrics:
            self.metrics.record_job(spec.kind.value, outcome, elapsed)
        logger.info("Job finished", kind=spec.kind.value, outcome=outcome, elapsed=round(elapsed, 3))

        await self.lifecycle.finalize(result, job_inputs(spec), output_path=invocation.output_path)
        return result

    def raise_for_failure(self, spec: JobSpec, result: JobResult) -> Artifact:
        if isinstance(result, Failure):
            raise EngineFailure(
                FAILURE_MESSAGES.get(spec.kind, "Processing failed"),
                stage=result.stage,
                diagnostic=result.diagnostic,
            )
        return result

    async def run_or_raise(self, spec: JobSpec) -> Artifact:
        return self.raise_for_failure(spec, await self.run(spec))

    async def normalize_upload(self, asset: UploadedAsset) -> Tuple[Artifact, str]:
        """Convert an upload to the fixed audio profile; returns (artifact, HH:MM:SS.s)."""
        artifact = await self.run_or_raise(NormalizeJob(source=asset))
        duration = await self.executor.probe_duration(artifact.path)
        return artifact, format_timecode(duration)

    async def trim(self, source: UploadedAsset, start: str, end: str) -> Artifact:
        # Reject empty or inverted windows before touching the engine
        duration_between(start, end)
        return await self.run_or_raise(TrimJob(source=source, start=start, end=end))

    async def image_to_video(self, image: UploadedAsset, duration: int) -> Artifact:
        duration = validate_video_duration(duration)
        return await self.run_or_raise(ImageToVideoJob(image=image, duration=duration))

    async def merge(self, video: UploadedAsset, audio: UploadedAsset) -> Artifact:
        return await self.run_or_raise(MergeJob(video=video, audio=audio))

    async def repeat(self, audio: UploadedAsset, count: int) -> Artifact:
        count = validate_repeat_count(count, field="count")
        return await self.run_or_raise(RepeatJob(audio=audio, count=count))
