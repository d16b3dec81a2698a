"""Core types and enums for the media SDK."""

from enum import Enum


class Anchor(str, Enum):
    """Anchor positions used to align content against a resolved coordinate."""

    CENTER = "center"
    TOP_LEFT = "top-left"
    TOP_CENTER = "top-center"
    TOP_RIGHT = "top-right"
    CENTER_LEFT = "center-left"
    CENTER_RIGHT = "center-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_CENTER = "bottom-center"
    BOTTOM_RIGHT = "bottom-right"

    @property
    def fractions(self):
        """Return the (horizontal, vertical) share of the content extent to subtract."""
        vertical, _, horizontal = self.value.partition("-")
        if self is Anchor.CENTER:
            return 0.5, 0.5
        return _FRACTION[horizontal], _FRACTION[vertical]


_FRACTION = {
    "left": 0.0,
    "top": 0.0,
    "center": 0.5,
    "right": 1.0,
    "bottom": 1.0,
}


class AnimationType(str, Enum):
    """Time-based animations compiled into per-frame expressions."""

    FADE = "fade"
    FADE_IN = "fade_in"
    FADE_OUT = "fade_out"
    SLIDE_IN = "slide_in"
    SCALE = "scale"
    ZOOM_IN = "zoom_in"
    BOUNCE = "bounce"
    PULSE = "pulse"
    SHAKE = "shake"
    GLOW = "glow"
    NONE = "none"


class Quality(str, Enum):
    """Output quality presets."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    ULTRA = "ultra"


class FitMode(str, Enum):
    """How a visual source is fitted onto the canvas."""

    CONTAIN = "contain"  # Fit within canvas, keep aspect ratio
    COVER = "cover"  # Fill canvas, keep aspect ratio, crop overflow
    STRETCH = "stretch"  # Exact canvas size
    NONE = "none"  # Source size


class SubtitleFormat(str, Enum):
    """Subtitle file formats."""

    SRT = "srt"
    VTT = "vtt"
    ASS = "ass"
    JSON = "json"
