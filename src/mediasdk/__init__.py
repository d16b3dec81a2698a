"""mediasdk - Compose videos as immutable timelines, compile them to FFmpeg commands and manage captions."""

from .__version__ import __version__
from .media import (
    Timeline,
    GlobalOptions,
    Position,
    Style,
    Animation,
    EncoderProfile,
    MediaContext,
    default_context,
    set_default_context,
    compile_many,
    effects,
)
from .captions import (
    CaptionEntry,
    CaptionTrack,
    SRTHandler,
    MultiCaptionEngine,
    SyncOptions,
    parse_subtitles,
    generate_subtitles,
    convert_subtitles,
    validate_entries,
)
from .core import (
    Anchor,
    AnimationType,
    Quality,
    FitMode,
    SubtitleFormat,
    MediaSDKError,
    ConstructionError,
    SubtitleParseError,
    TrackNotFoundError,
    UnsupportedFormatError,
)


__all__ = [
    "__version__",
    "Timeline",
    "GlobalOptions",
    "Position",
    "Style",
    "Animation",
    "EncoderProfile",
    "MediaContext",
    "default_context",
    "set_default_context",
    "compile_many",
    "effects",
    "CaptionEntry",
    "CaptionTrack",
    "SRTHandler",
    "MultiCaptionEngine",
    "SyncOptions",
    "parse_subtitles",
    "generate_subtitles",
    "convert_subtitles",
    "validate_entries",
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
