"""Structural validation of caption entries."""

from typing import Iterable

from .models import CaptionEntry, ValidationResult, ValidationStats

MIN_DISPLAY_TIME = 0.1
MAX_DISPLAY_TIME = 10.0
MAX_TEXT_LENGTH = 100


def validate_entries(
    entries: Iterable[CaptionEntry], gap_threshold: float = 5.0
) -> ValidationResult:
    """
    Validate caption timing and text.

    Negative start times and non-positive durations are errors. Very short or
    long display times, empty or oversized text, overlaps with the previous
    entry and gaps longer than ``gap_threshold`` are warnings.

    Args:
        entries: Entries in any order; they are checked in start-time order
        gap_threshold: Silence (seconds) between entries that counts as a gap

    Returns:
        ValidationResult with ``valid`` false only when errors were found
    """
    ordered = sorted(entries, key=lambda entry: entry.start_time)
    errors = []
    warnings = []
    stats = ValidationStats(entry_count=len(ordered))

    for i, entry in enumerate(ordered):
        label = f"Entry {i + 1}"
        if entry.start_time < 0:
            errors.append(f"{label}: negative start time ({entry.start_time})")

        if entry.end_time <= entry.start_time:
            errors.append(
                f"{label}: end time ({entry.end_time}) must be after start time ({entry.start_time})"
            )
        else:
            duration = entry.end_time - entry.start_time
            stats.total_duration += duration
            if duration < MIN_DISPLAY_TIME:
                warnings.append(f"{label}: very short display time ({duration:.3f}s)")
            elif duration > MAX_DISPLAY_TIME:
                warnings.append(f"{label}: very long display time ({duration:.3f}s)")

        if not entry.text.strip():
            warnings.append(f"{label}: empty text")
        elif len(entry.text) > MAX_TEXT_LENGTH:
            warnings.append(f"{label}: text longer than {MAX_TEXT_LENGTH} characters")

        if i > 0:
            previous = ordered[i - 1]
            if entry.start_time < previous.end_time:
                stats.overlapping_count += 1
                warnings.append(f"{label}: overlaps previous entry")
            elif entry.start_time - previous.end_time > gap_threshold:
                stats.gap_count += 1
                warnings.append(
                    f"{label}: gap of {entry.start_time - previous.end_time:.1f}s after previous entry"
                )

    if ordered:
        stats.average_display_time = stats.total_duration / len(ordered)

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings, stats=stats)
