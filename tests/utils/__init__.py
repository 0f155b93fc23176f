"""
Test utilities for the media job service
"""
from .helpers import (
    ChunkedUpload,
    assert_error_response,
    upload_part,
)

__all__ = [
    "ChunkedUpload",
    "assert_error_response",
    "upload_part",
]
