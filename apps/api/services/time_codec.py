"""
Time Codec

Converts between the time strings athletes type ("MM:SS" or "HH:MM:SS")
and integer seconds, which is what we store and sort on.

Parsing never raises: anything malformed is treated as 0 seconds so a bad
split can't block a workout from being logged.
"""
from typing import Any, Dict, Optional


def parse_time(value: Optional[str]) -> int:
    """
    Convert "MM:SS" or "HH:MM:SS" to total seconds.

    Examples:
        >>> parse_time("04:30")
        270
        >>> parse_time("1:02:03")
        3723
        >>> parse_time("")
        0
    """
    if not value or not isinstance(value, str):
        return 0

    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        return 0

    numbers = []
    for part in parts:
        part = part.strip()
        if not part.isdigit():
            return 0
        numbers.append(int(part))

    if len(numbers) == 2:
        minutes, seconds = numbers
        return minutes * 60 + seconds

    hours, minutes, seconds = numbers
    return hours * 3600 + minutes * 60 + seconds


def format_seconds(total_seconds: Optional[int]) -> str:
    """
    Render seconds as "MM:SS" below an hour, "H:MM:SS" otherwise.

    Examples:
        >>> format_seconds(270)
        '04:30'
        >>> format_seconds(3723)
        '1:02:03'
        >>> format_seconds(0)
        '00:00'
    """
    if not total_seconds or total_seconds < 0:
        return "00:00"

    total_seconds = int(total_seconds)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def sum_segment_times(performance_data: Optional[Dict[str, Any]]) -> int:
    """Total of every station and run split in a performance payload."""
    if not performance_data:
        return 0

    total = 0
    for key in ("stations", "runs"):
        for segment in performance_data.get(key) or []:
            total += parse_time(segment.get("time"))
    return total
