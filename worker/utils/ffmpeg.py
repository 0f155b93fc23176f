"""
FFmpeg command construction and execution for media jobs.

``FFmpegCommandBuilder`` turns a job spec into an argv list and is a pure
function of its inputs. ``FFmpegExecutor`` runs that argv as a child process
and maps the outcome to ``Artifact`` or ``Failure``.
"""
import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

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
)
from api.utils.error_handlers import EngineFailure, InvalidParameter
from api.utils.validators import validate_repeat_count, validate_video_duration
from worker.utils.timecode import duration_between, parse_timecode

logger = structlog.get_logger()

# Fixed output profile for every audio job so results are interchangeable
AUDIO_PROFILE = ['-vn', '-c:a', 'libmp3lame', '-b:a', '320k', '-ac', '2', '-ar', '44100']

STILL_IMAGE_PROFILE = [
    '-c:v', 'libx264',
    '-preset', 'veryfast',
    '-tune', 'stillimage',
    '-pix_fmt', 'yuv420p',
    '-movflags', '+faststart',
]

STDERR_TAIL_LINES = 10


@dataclass(frozen=True)
class ConcatManifest:
    """File list for ffmpeg's concat demuxer."""
    path: Path
    entries: List[Path]

    def render(self) -> str:
        lines = []
        for entry in self.entries:
            quoted = str(entry).replace("'", "'\\''")
            lines.append(f"file '{quoted}'")
        return "\n".join(lines) + "\n"


@dataclass(frozen=True)
class FFmpegInvocation:
    """Fully specified engine call."""
    kind: JobKind
    command: List[str]
    output_path: Path
    output_url: str = ""
    manifest: Optional[ConcatManifest] = field(default=None)


def _seconds(value: float) -> str:
    return f"{value:.3f}"


class FFmpegCommandBuilder:
    """Build FFmpeg commands from job specs."""

    def __init__(self, ffmpeg_path: str = "ffmpeg"):
        self.ffmpeg_path = ffmpeg_path

    def build(self, spec: JobSpec, output_path: Path, output_url: str = "",
              manifest_path: Optional[Path] = None) -> FFmpegInvocation:
        """Build the invocation for ``spec`` writing to ``output_path``.

        ``manifest_path`` is required for repeat jobs and ignored otherwise.
        """
        manifest = None

        if isinstance(spec, TrimJob):
            args = self._handle_trim(spec)
        elif isinstance(spec, NormalizeJob):
            args = self._handle_normalize(spec)
        elif isinstance(spec, ImageToVideoJob):
            args = self._handle_image_to_video(spec)
        elif isinstance(spec, MergeJob):
            args = self._handle_merge(spec)
        elif isinstance(spec, RepeatJob):
            if manifest_path is None:
                raise ValueError("Repeat jobs need a manifest path")
            manifest = self.build_manifest(spec, manifest_path)
            args = self._handle_repeat(manifest)
        else:
            raise TypeError(f"Unsupported job spec: {type(spec).__name__}")

        cmd = [self.ffmpeg_path, '-hide_banner', '-y', *args, str(output_path)]

        logger.debug("Built FFmpeg command", kind=spec.kind.value, command=' '.join(cmd))
        return FFmpegInvocation(
            kind=spec.kind,
            command=cmd,
            output_path=output_path,
            output_url=output_url,
            manifest=manifest,
        )

    def build_manifest(self, spec: RepeatJob, manifest_path: Path) -> ConcatManifest:
        count = validate_repeat_count(spec.count, field="count")
        source = Path(spec.audio.stored_path).resolve()
        return ConcatManifest(path=manifest_path, entries=[source] * count)

    def _handle_trim(self, spec: TrimJob) -> List[str]:
        # Seek on the input, then limit the output length
        start = parse_timecode(spec.start, field="start")
        duration = duration_between(spec.start, spec.end)
        return [
            '-ss', _seconds(start),
            '-i', str(spec.source.stored_path),
            '-t', _seconds(duration),
            *AUDIO_PROFILE,
        ]

    def _handle_normalize(self, spec: NormalizeJob) -> List[str]:
        return ['-i', str(spec.source.stored_path), *AUDIO_PROFILE]

    def _handle_image_to_video(self, spec: ImageToVideoJob) -> List[str]:
        duration = validate_video_duration(spec.duration)
        return [
            '-loop', '1',
            '-i', str(spec.image.stored_path),
            '-t', str(duration),
            *STILL_IMAGE_PROFILE,
        ]

    def _handle_merge(self, spec: MergeJob) -> List[str]:
        return [
            '-i', str(spec.video.stored_path),
            '-i', str(spec.audio.stored_path),
            '-map', '0:v:0',
            '-map', '1:a:0',
            '-c:v', 'copy',
            '-shortest',
        ]

    def _handle_repeat(self, manifest: ConcatManifest) -> List[str]:
        if not manifest.entries:
            raise InvalidParameter("Concat manifest is empty", field="count")
        return ['-f', 'concat', '-safe', '0', '-i', str(manifest.path), '-c', 'copy']


class FFmpegExecutor:
    """Run FFmpeg invocations as child processes.

    At most ``max_concurrent`` engine processes run at once; callers beyond
    that wait on the semaphore. Each run gets ``timeout`` seconds (0 or None
    disables the deadline) before it is terminated, then killed.
    """

    def __init__(self, max_concurrent: int = 4, timeout: Optional[float] = 600.0,
                 kill_grace: float = 5.0, ffprobe_path: str = "ffprobe", metrics=None):
        self.max_concurrent = max_concurrent
        self.timeout = timeout or None
        self.kill_grace = kill_grace
        self.ffprobe_path = ffprobe_path
        self.metrics = metrics
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def run(self, invocation: FFmpegInvocation) -> JobResult:
        """Run one invocation. Never raises for engine problems; never retries."""
        async with self._semaphore:
            if self.metrics:
                self.metrics.engine_started()
            try:
                return await self._execute(invocation)
            finally:
                if self.metrics:
                    self.metrics.engine_finished()

    async def _execute(self, invocation: FFmpegInvocation) -> JobResult:
        cmd = invocation.command
        log = logger.bind(kind=invocation.kind.value, output=str(invocation.output_path))
        log.info("Starting FFmpeg", command=' '.join(cmd))

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            log.error("Failed to start FFmpeg", error=str(e))
            return Failure(stage="spawn", diagnostic=f"Could not start {cmd[0]}: {e}")

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            await self._terminate(process)
            log.error("FFmpeg timed out", timeout=self.timeout, pid=process.pid)
            return Failure(
                stage="timeout",
                diagnostic=f"FFmpeg did not finish within {self.timeout} seconds",
            )

        if process.returncode != 0:
            tail = (stderr or b"").decode("utf-8", errors="ignore").strip().splitlines()
            error_msg = "\n".join(tail[-STDERR_TAIL_LINES:])
            log.error("FFmpeg failed", returncode=process.returncode, stderr=error_msg)
            return Failure(
                stage="engine",
                diagnostic=f"FFmpeg failed with code {process.returncode}: {error_msg}",
            )

        if not Path(invocation.output_path).exists():
            log.error("FFmpeg reported success without output")
            return Failure(stage="engine", diagnostic="FFmpeg produced no output file")

        log.info("FFmpeg finished")
        return Artifact(path=invocation.output_path, url=invocation.output_url)

    async def _terminate(self, process) -> None:
        """SIGTERM, then SIGKILL after the grace period."""
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=self.kill_grace)
        except asyncio.TimeoutError:
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()

    async def probe_duration(self, file_path: Path) -> float:
        """Media duration in seconds, read from ffprobe's JSON output.

        Probes share the engine semaphore with transcoding runs.
        """
        async with self._semaphore:
            return await self._probe(file_path)

    async def _probe(self, file_path: Path) -> float:
        cmd = [self.ffprobe_path, '-v', 'quiet', '-print_format', 'json', '-show_format', str(file_path)]

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except OSError as e:
            raise EngineFailure("Failed to read media duration", stage="probe", diagnostic=str(e))
        except asyncio.TimeoutError:
            await self._terminate(process)
            raise EngineFailure("Failed to read media duration", stage="probe",
                                diagnostic="FFprobe timed out")

        if process.returncode != 0:
            raise EngineFailure(
                "Failed to read media duration",
                stage="probe",
                diagnostic=(stderr or b"").decode("utf-8", errors="ignore"),
            )

        try:
            info = json.loads(stdout.decode())
            return float(info['format']['duration'])
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise EngineFailure(
                "Failed to read media duration",
                stage="probe",
                diagnostic=f"Unexpected FFprobe output: {e}",
            )
