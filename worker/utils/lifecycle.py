"""
Input, intermediate and output file lifecycle for media jobs.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, Iterable, Optional

import aiofiles
import aiofiles.os
import structlog

from api.models.job import Artifact, JobResult, UploadedAsset
from api.services.storage import StorageService
from worker.utils.ffmpeg import ConcatManifest

logger = structlog.get_logger()


class ArtifactLifecycleManager:
    """Decides which files survive a job.

    - Concat manifests live only for the duration of one engine run.
    - Inputs are deleted after a successful job and kept after a failed one,
      so the caller can retry with the same source.
    - Whatever the engine wrote for a failed job is discarded; outputs of
      successful jobs are never deleted here.
    """

    def __init__(self, storage: StorageService):
        self.storage = storage

    @asynccontextmanager
    async def ephemeral_manifest(self, manifest: Optional[ConcatManifest]) -> AsyncIterator[Optional[Path]]:
        """Write the manifest, yield its path, and always delete it afterwards."""
        if manifest is None:
            yield None
            return

        try:
            async with aiofiles.open(manifest.path, "w", encoding="utf-8") as f:
                await f.write(manifest.render())
            logger.debug("Wrote concat manifest", path=str(manifest.path), entries=len(manifest.entries))

            yield manifest.path
        finally:
            await self._discard_path(manifest.path)

    async def finalize(self, result: JobResult, inputs: Iterable[UploadedAsset],
                       output_path: Optional[Path] = None) -> Dict[str, int]:
        """Apply the cleanup policy for a finished job.

        ``output_path`` is where the engine was told to write; it is removed
        when the job failed.
        """
        inputs = list(inputs)
        summary = {"removed": 0, "retained": 0, "errors": 0}

        if not isinstance(result, Artifact):
            if output_path is not None:
                await self._discard_path(Path(output_path))
            summary["retained"] = len(inputs)
            logger.info(
                "Job failed, keeping inputs",
                inputs=[asset.handle for asset in inputs],
                stage=result.stage,
            )
            return summary

        for asset in inputs:
            try:
                if await self.storage.remove(asset):
                    summary["removed"] += 1
            except (OSError, ValueError) as e:
                # The output already exists; a leftover input only costs disk space
                summary["errors"] += 1
                logger.warning("Failed to delete input", handle=asset.handle, error=str(e))

        logger.debug("Cleaned up job inputs", output=str(result.path), **summary)
        return summary

    async def _discard_path(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to delete intermediate file", path=str(path), error=str(e))
