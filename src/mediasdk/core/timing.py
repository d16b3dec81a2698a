"""Shared timing helpers: number formatting and reading-speed heuristics."""

import math
from typing import Optional


def format_number(value: float) -> str:
    """
    Format a number for embedding in an FFmpeg command.

    Integral values print without a fractional part so that ``5.0`` and ``5``
    render the same way.

    Args:
        value: Number to format

    Returns:
        Shortest stable text form of the number
    """
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if math.isfinite(value) and value == int(value):
        return str(int(value))
    return repr(float(value))


def check_finite(name: str, value: Optional[float]) -> None:
    """Raise ValueError when a timing value is NaN or infinite."""
    if value is not None and not math.isfinite(value):
        raise ValueError(f"{name} must be a finite number, got {value!r}")


def word_count(text: str) -> int:
    return len(text.split())


def reading_duration(
    text: str,
    words_per_minute: float = 200,
    min_duration: float = 1.0,
    max_duration: float = 10.0,
    padding: float = 0.5,
) -> float:
    """
    Estimate how long a caption should stay on screen.

    Args:
        text: Caption text
        words_per_minute: Reading speed
        min_duration: Lower clamp in seconds
        max_duration: Upper clamp in seconds
        padding: Extra seconds added to the raw reading time

    Returns:
        Duration in seconds, clamped to [min_duration, max_duration]
    """
    if words_per_minute <= 0:
        raise ValueError("words_per_minute must be positive")
    raw = word_count(text) / words_per_minute * 60 + padding
    return max(min_duration, min(max_duration, raw))