"""
API routers
"""
from . import audio, health, pages, video

__all__ = [
    "audio",
    "health",
    "pages",
    "video",
]
