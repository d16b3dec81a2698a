"""Subtitle timestamp formatting and parsing.

Times are rounded to whole milliseconds (centiseconds for ASS) with integer
arithmetic, so formatting a parsed timestamp reproduces it exactly.
"""

import re
from typing import Optional

TIMESTAMP = re.compile(r"(?:(\d+):)?(\d{1,2}):(\d{2})[,.](\d{1,3})")
TIME_RANGE = re.compile(
    r"^\s*((?:\d+:)?\d{1,2}:\d{2}[,.]\d{1,3})\s*-->\s*((?:\d+:)?\d{1,2}:\d{2}[,.]\d{1,3})(.*)$"
)


def to_milliseconds(seconds: float) -> int:
    return max(0, int(round(seconds * 1000)))


def _split(total_ms: int):
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, ms = divmod(rest, 1000)
    return hours, minutes, secs, ms


def format_srt_time(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS,mmm`` (negative times clamp to zero)."""
    h, m, s, ms = _split(to_milliseconds(seconds))
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"


def format_vtt_time(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS.mmm``."""
    h, m, s, ms = _split(to_milliseconds(seconds))
    return f"{h:02d}:{m:02d}:{s:02d}.{ms:03d}"


def format_ass_time(seconds: float) -> str:
    """Format seconds as ``H:MM:SS.cc``."""
    total_cs = max(0, int(round(seconds * 100)))
    h, rest = divmod(total_cs, 360_000)
    m, rest = divmod(rest, 6000)
    s, cs = divmod(rest, 100)
    return f"{h:d}:{m:02d}:{s:02d}.{cs:02d}"


def parse_timestamp(text: str) -> Optional[float]:
    """
    Parse an SRT, WebVTT or ASS timestamp into seconds.

    The fractional part is read as a decimal fraction, so ``.5``, ``.50`` and
    ``.500`` all mean half a second.

    Returns:
        Seconds, or None when the text is not a timestamp
    """
    match = TIMESTAMP.fullmatch(text.strip())
    if not match:
        return None
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2))
    secs = int(match.group(3))
    fraction = match.group(4)
    ms = int(fraction.ljust(3, "0"))
    total_ms = ((hours * 60 + minutes) * 60 + secs) * 1000 + ms
    return total_ms / 1000
