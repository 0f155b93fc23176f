"""
Test helper functions
"""
import io
from typing import Any, Dict, Optional, Tuple


def assert_error_response(response_data: Dict[str, Any], expected_code: Optional[str] = None) -> None:
    """Assert that a response contains valid error structure.

    Args:
        response_data: Response data to validate
        expected_code: Expected error code (optional)
    """
    assert "error" in response_data, "Response should contain error field"

    error = response_data["error"]
    for field in ("code", "message", "type"):
        assert field in error, f"Missing required error field: {field}"

    if expected_code:
        assert error["code"] == expected_code


def upload_part(name: str, content: bytes = b"fake media", content_type: str = "application/octet-stream") -> Tuple[str, io.BytesIO, str]:
    """A (filename, fileobj, content type) tuple for TestClient ``files=``."""
    return name, io.BytesIO(content), content_type


class ChunkedUpload:
    """Async-readable upload, like FastAPI's UploadFile.

    ``chunk_size`` caps every read so size limits are hit mid-stream.
    """

    def __init__(self, content: bytes, filename: str = "clip.wav", content_type: str = "audio/wav",
                 chunk_size: Optional[int] = None):
        self._buffer = io.BytesIO(content)
        self.filename = filename
        self.content_type = content_type
        self.chunk_size = chunk_size
        self.reads = 0

    async def read(self, size: int = -1) -> bytes:
        self.reads += 1
        if self.chunk_size and (size < 0 or size > self.chunk_size):
            size = self.chunk_size
        return self._buffer.read(size)
