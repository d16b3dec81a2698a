"""Caption tracks and SRT, WebVTT and ASS subtitle handling."""

from .models import (
    CaptionEntry,
    CaptionTrack,
    ParseOptions,
    GenerateOptions,
    ValidationResult,
    ValidationStats,
)
from .srt import SRTHandler, parse_srt, generate_srt
from .vtt import parse_vtt, generate_vtt
from .ass import parse_ass, generate_ass
from .formats import detect_format, parse_subtitles, generate_subtitles, convert_subtitles
from .validation import validate_entries
from .multitrack import MultiCaptionEngine, SyncOptions, AudioCue

__all__ = [
    "CaptionEntry",
    "CaptionTrack",
    "ParseOptions",
    "GenerateOptions",
    "ValidationResult",
    "ValidationStats",
    "SRTHandler",
    "parse_srt",
    "generate_srt",
    "parse_vtt",
    "generate_vtt",
    "parse_ass",
    "generate_ass",
    "detect_format",
    "parse_subtitles",
    "generate_subtitles",
    "convert_subtitles",
    "validate_entries",
    "MultiCaptionEngine",
    "SyncOptions",
    "AudioCue",
]
