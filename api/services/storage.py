"""
Storage service: upload landing and the working/result directories
"""
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional, Tuple

import structlog

from api.config import settings
from api.models.job import UploadedAsset
from api.utils.error_handlers import StorageFailure, ValidationError
from api.utils.validators import safe_suffix
from storage.base import StorageBackend
from storage.factory import create_storage_backend

logger = structlog.get_logger()

UPLOADS = "uploads"
TRIMMED = "trimmed"
RESULTS = "results"

CHUNK_SIZE = 1024 * 1024


class StorageService:
    """Owns one storage backend per area (uploads, trimmed, results).

    Each area is a flat directory served read-only under ``/<area>/``.
    """

    def __init__(self, backends: Optional[Dict[str, StorageBackend]] = None,
                 max_upload_size: Optional[int] = None):
        self.backends: Dict[str, StorageBackend] = dict(backends or {})
        self.max_upload_size = settings.MAX_UPLOAD_SIZE if max_upload_size is None else max_upload_size

    @classmethod
    def from_settings(cls, root: Optional[Path] = None) -> "StorageService":
        """Local backends for every area under ``root`` (default STORAGE_PATH)."""
        root = Path(root if root is not None else settings.STORAGE_PATH)
        backends = {}
        for area, directory in (
            (UPLOADS, settings.UPLOAD_DIR),
            (TRIMMED, settings.TRIMMED_DIR),
            (RESULTS, settings.RESULTS_DIR),
        ):
            backends[area] = create_storage_backend({
                "type": "filesystem",
                "name": area,
                "base_path": str(root / directory),
            })
        return cls(backends)

    async def initialize(self) -> None:
        """Create the area directories; idempotent."""
        for name, backend in self.backends.items():
            try:
                await backend.ensure_dir()
            except OSError as e:
                raise StorageFailure(f"Cannot create storage area '{name}': {e}", backend=name)
            logger.info("Initialized storage area", area=name, backend=type(backend).__name__)

    def get_backend(self, area: str) -> StorageBackend:
        backend = self.backends.get(area)
        if backend is None:
            raise ValueError(f"Unknown storage area: {area}")
        return backend

    def url_for(self, area: str, handle: str) -> str:
        return f"/{area}/{handle}"

    async def store(self, upload: Any, original_name: Optional[str] = None,
                    area: str = UPLOADS, mime_hint: Optional[str] = None) -> UploadedAsset:
        """Persist an incoming upload under a fresh, unique name.

        ``upload`` is anything with an async ``read(size)`` (FastAPI's
        ``UploadFile``) or raw bytes. Only the extension of ``original_name``
        reaches the file system.
        """
        backend = self.get_backend(area)
        original_name = original_name or getattr(upload, "filename", None)
        mime_hint = mime_hint or getattr(upload, "content_type", None)
        suffix = safe_suffix(original_name)

        content = upload if isinstance(upload, (bytes, bytearray)) else self._read_chunks(upload)
        if isinstance(content, (bytes, bytearray)):
            self._check_size(len(content))

        try:
            handle = await backend.put(content, suffix=suffix)
            size = await backend.size(handle)
        except OSError as e:
            logger.error("Failed to store upload", area=area, original_name=original_name, error=str(e))
            raise StorageFailure(f"Failed to store upload: {e}", backend=area)

        asset = UploadedAsset(
            handle=handle,
            backend=area,
            stored_path=backend.resolve(handle),
            original_name=original_name,
            size_bytes=size,
            mime_hint=mime_hint,
        )
        logger.info("Stored upload", handle=handle, area=area, original_name=original_name, size=size)
        return asset

    async def _read_chunks(self, upload: Any) -> AsyncIterator[bytes]:
        total = 0
        while True:
            chunk = await upload.read(CHUNK_SIZE)
            if not chunk:
                break
            total += len(chunk)
            self._check_size(total)
            yield chunk

    def _check_size(self, size: int) -> None:
        if self.max_upload_size and size > self.max_upload_size:
            raise ValidationError(
                f"Upload exceeds maximum size of {self.max_upload_size} bytes",
                field="file",
            )

    async def allocate(self, area: str, suffix: str = "", prefix: str = "") -> Tuple[str, Path]:
        """Reserve a unique name in ``area`` for a file the engine will write."""
        backend = self.get_backend(area)
        try:
            await backend.ensure_dir()
        except OSError as e:
            raise StorageFailure(f"Cannot create storage area '{area}': {e}", backend=area)
        handle = backend.new_handle(suffix=suffix, prefix=prefix)
        return handle, backend.resolve(handle)

    async def remove(self, asset: UploadedAsset) -> bool:
        return await self.get_backend(asset.backend).remove(asset.handle)

    async def resolve_public_path(self, url_path: str, area: str = UPLOADS) -> UploadedAsset:
        """Map a URL returned earlier (``/uploads/<name>``) back to its asset."""
        prefix = f"/{area}/"
        normalized = "/" + url_path.replace("\\", "/").lstrip("/")
        if not normalized.startswith(prefix):
            raise ValidationError(f"File path must start with {prefix}", field="filePath")

        handle = normalized[len(prefix):]
        if not handle or "/" in handle or handle in (".", ".."):
            raise ValidationError("Invalid file path", field="filePath")

        backend = self.get_backend(area)
        try:
            stored_path = backend.resolve(handle)
        except ValueError:
            raise ValidationError("Invalid file path", field="filePath")

        if not await backend.exists(handle):
            raise ValidationError(f"File not found: {url_path}", field="filePath")

        return UploadedAsset(
            handle=handle,
            backend=area,
            stored_path=stored_path,
            original_name=handle,
            size_bytes=await backend.size(handle),
        )

    async def health_check(self) -> Dict[str, Any]:
        """Check every storage area can be listed."""
        health_status = {"status": "healthy", "backends": {}}

        for name, backend in self.backends.items():
            try:
                files = await backend.list()
                health_status["backends"][name] = {
                    "status": "healthy",
                    "type": backend.__class__.__name__,
                    "files": len(files),
                }
            except OSError as e:
                health_status["status"] = "degraded"
                health_status["backends"][name] = {"status": "unhealthy", "error": str(e)}

        return health_status
