"""
Conversion between HH:MM:SS.s timecodes and seconds.
"""
import math
import re
from typing import Union

from api.utils.error_handlers import InvalidDuration, InvalidTimecode

TimeValue = Union[str, int, float]

# Plain non-negative decimal: no sign, exponent, underscores, nan or inf
FIELD_REGEX = re.compile(r"^\d+(\.\d+)?$")


def parse_timecode(text: str, field: str = "timecode") -> float:
    """Parse ``HH:MM:SS.s`` into seconds.

    Exactly three colon separated fields are required, each a plain decimal
    number. Hours and minutes may be fractional, as ffmpeg accepts; signs,
    exponents and digit separators are not.
    """
    if not isinstance(text, str):
        raise InvalidTimecode(f"Timecode must be a string, got {type(text).__name__}", field=field)

    parts = text.strip().split(":")
    if len(parts) != 3:
        raise InvalidTimecode(f"Invalid timecode '{text}': expected HH:MM:SS.s", field=field)

    values = []
    for part in parts:
        part = part.strip()
        if not FIELD_REGEX.match(part):
            raise InvalidTimecode(f"Invalid timecode '{text}': '{part}' is not a number", field=field)
        values.append(float(part))

    hours, minutes, seconds = values
    return hours * 3600 + minutes * 60 + seconds


def format_timecode(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS.s``.

    The value is rounded to tenths once, up front, so 59.96 renders as
    ``00:01:00.0`` rather than ``00:00:60.0``.
    """
    if seconds is None or not math.isfinite(seconds):
        raise InvalidDuration(f"Cannot format non-finite duration: {seconds}")
    if seconds < 0:
        raise InvalidDuration(f"Cannot format negative duration: {seconds}")

    tenths = int(round(seconds * 10))
    hours, rest = divmod(tenths, 36000)
    minutes, rest = divmod(rest, 600)
    whole, fraction = divmod(rest, 10)
    return f"{hours:02d}:{minutes:02d}:{whole:02d}.{fraction}"


def to_seconds(value: TimeValue, field: str = "timecode") -> float:
    """Accept either a timecode string or a number of seconds."""
    if isinstance(value, bool):
        raise InvalidTimecode(f"Invalid time value: {value!r}", field=field)
    if isinstance(value, (int, float)):
        if not math.isfinite(value) or value < 0:
            raise InvalidTimecode(f"Invalid time value: {value!r}", field=field)
        return float(value)
    return parse_timecode(value, field=field)


def duration_between(start: TimeValue, end: TimeValue) -> float:
    """Length of the ``start``..``end`` window in seconds; must be positive."""
    start_seconds = to_seconds(start, field="start")
    end_seconds = to_seconds(end, field="end")

    duration = end_seconds - start_seconds
    if duration <= 0:
        raise InvalidDuration(
            f"End time {end} must be after start time {start}",
            field="end",
        )
    return duration
