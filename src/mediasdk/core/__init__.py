"""Core types, errors and timing helpers."""

from .types import Anchor, AnimationType, Quality, FitMode, SubtitleFormat
from .errors import (
    MediaSDKError,
    ConstructionError,
    SubtitleParseError,
    TrackNotFoundError,
    UnsupportedFormatError,
)

__all__ = [
    "Anchor",
    "AnimationType",
    "Quality",
    "FitMode",
    "SubtitleFormat",
    "MediaSDKError",
    "ConstructionError",
    "SubtitleParseError",
    "TrackNotFoundError",
    "UnsupportedFormatError",
]
