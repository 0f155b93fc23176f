"""
Base storage backend interface
"""
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Union
from uuid import uuid4

import aiofiles
import aiofiles.os

Content = Union[bytes, AsyncIterator[bytes]]


def unique_token() -> str:
    """Millisecond timestamp plus a random suffix, unique per call."""
    return f"{int(time.time() * 1000)}-{uuid4().hex[:8]}"


class StorageBackend(ABC):
    """Abstract base class for storage backends.

    Files are addressed by a *handle*: a flat, backend-relative name that the
    backend generated itself. ``resolve`` turns a handle into the path the
    transcoding engine reads from or writes to.
    """

    def __init__(self, config: Dict[str, Any]):
        """Initialize storage backend with configuration."""
        self.config = config
        self.name = config.get("name", "unknown")

    def new_handle(self, suffix: str = "", prefix: str = "") -> str:
        """Generate a handle that no other call will ever return."""
        return f"{prefix}{unique_token()}{suffix}"

    @abstractmethod
    async def put(self, content: Content, suffix: str = "", prefix: str = "") -> str:
        """Store content under a fresh handle and return the handle."""
        pass

    @abstractmethod
    async def remove(self, handle: str) -> bool:
        """Delete a file. Returns True if something was removed."""
        pass

    @abstractmethod
    def resolve(self, handle: str) -> Path:
        """Absolute path for a handle."""
        pass

    @abstractmethod
    async def exists(self, handle: str) -> bool:
        """Check if a file exists."""
        pass

    @abstractmethod
    async def size(self, handle: str) -> int:
        """Size of a stored file in bytes."""
        pass

    @abstractmethod
    async def list(self) -> List[str]:
        """List stored handles."""
        pass

    async def ensure_dir(self) -> None:
        """Ensure the backing location exists (for backends that have one)."""
        pass


async def iter_content(content: Content) -> AsyncIterator[bytes]:
    if isinstance(content, (bytes, bytearray)):
        yield bytes(content)
        return
    async for chunk in content:
        yield chunk


class LocalStorageBackend(StorageBackend):
    """Local filesystem storage backend rooted at one flat directory."""

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.base_path = Path(config.get("base_path", "/storage")).resolve()

    def resolve(self, handle: str) -> Path:
        """Get full filesystem path, refusing anything outside base_path."""
        handle = handle.lstrip("/")
        full_path = (self.base_path / handle).resolve()

        try:
            full_path.relative_to(self.base_path)
        except ValueError:
            raise ValueError(f"Path '{handle}' is outside storage boundary")

        return full_path

    async def ensure_dir(self) -> None:
        """Create the directory on first use; no-op when it already exists."""
        self.base_path.mkdir(parents=True, exist_ok=True)

    async def put(self, content: Content, suffix: str = "", prefix: str = "") -> str:
        """Write content to a new file. Partial files are removed on error."""
        await self.ensure_dir()
        handle = self.new_handle(suffix=suffix, prefix=prefix)
        full_path = self.resolve(handle)

        # "x" mode: fail instead of overwriting
        async with aiofiles.open(full_path, "xb") as f:
            try:
                async for chunk in iter_content(content):
                    await f.write(chunk)
            except BaseException:
                await f.close()
                full_path.unlink(missing_ok=True)
                raise

        return handle

    async def remove(self, handle: str) -> bool:
        """Delete file."""
        full_path = self.resolve(handle)
        if not full_path.exists():
            return False
        await aiofiles.os.remove(full_path)
        return True

    async def exists(self, handle: str) -> bool:
        """Check if file exists."""
        return self.resolve(handle).is_file()

    async def size(self, handle: str) -> int:
        full_path = self.resolve(handle)
        if not full_path.exists():
            raise FileNotFoundError(f"File not found: {handle}")
        return full_path.stat().st_size

    async def list(self) -> List[str]:
        """List files, oldest token first."""
        if not self.base_path.exists():
            return []
        return sorted(item.name for item in self.base_path.iterdir() if item.is_file())
