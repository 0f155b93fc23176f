"""
Input validation utilities
"""
import re
from pathlib import PurePosixPath
from typing import Any, Optional

from api.utils.error_handlers import InvalidParameter, ValidationError

MIN_REPEAT_COUNT = 1
MAX_REPEAT_COUNT = 100

ALLOWED_AUDIO_EXTENSIONS = {
    ".mp3", ".wav", ".flac", ".aac", ".ogg", ".m4a", ".opus", ".aiff", ".ac3",
}

EXTENSION_REGEX = re.compile(r"^\.[a-z0-9]{1,10}$")
INTEGER_REGEX = re.compile(r"^[+-]?\d+$")


def require(value: Any, field: str) -> Any:
    """Reject missing or blank parameters."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Missing required parameter: {field}", field=field)
    return value


def parse_int(value: Any, field: str) -> int:
    """Parse an integer from a form value or JSON number.

    Booleans, fractional numbers and non-numeric strings are rejected.
    """
    if isinstance(value, bool):
        raise InvalidParameter(f"{field} must be an integer", field=field)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise InvalidParameter(f"{field} must be a whole number, got {value}", field=field)
    if isinstance(value, str) and INTEGER_REGEX.match(value.strip()):
        return int(value.strip())
    raise InvalidParameter(f"{field} must be an integer, got {value!r}", field=field)


def validate_repeat_count(value: Any, field: str = "repeatCount") -> int:
    """Repeat count is an integer in [1, 100]."""
    require(value, field)
    count = parse_int(value, field)
    if not MIN_REPEAT_COUNT <= count <= MAX_REPEAT_COUNT:
        raise InvalidParameter(
            f"Invalid repeat count ({MIN_REPEAT_COUNT}-{MAX_REPEAT_COUNT} allowed): {count}",
            field=field,
        )
    return count


def validate_video_duration(value: Any, field: str = "duration") -> int:
    """Image-to-video duration is a positive whole number of seconds."""
    require(value, field)
    duration = parse_int(value, field)
    if duration <= 0:
        raise InvalidParameter(f"{field} must be greater than zero, got {duration}", field=field)
    return duration


def safe_suffix(filename: Optional[str], default: str = "") -> str:
    """Extension of a caller supplied filename, if it is a plain one."""
    if not filename:
        return default
    suffix = PurePosixPath(filename.replace("\\", "/")).suffix.lower()
    if EXTENSION_REGEX.match(suffix):
        return suffix
    return default


def audio_suffix(filename: Optional[str], default: str = ".mp3") -> str:
    """Output extension for stream-copied audio: the source's, when it is audio."""
    suffix = safe_suffix(filename)
    return suffix if suffix in ALLOWED_AUDIO_EXTENSIONS else default
