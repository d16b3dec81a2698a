"""Media module for timeline composition and FFmpeg command generation."""

from .timeline import Timeline, GlobalOptions
from .layers import (
    Layer,
    VideoLayer,
    AudioLayer,
    ImageLayer,
    TextLayer,
    CaptionLayer,
    FilterLayer,
    PanZoom,
)
from .position import Position, resolve_position
from .styles import Style
from .animations import Animation
from .encoders import EncoderProfile
from .context import MediaContext, default_context, set_default_context
from .compiler import FilterGraphCompiler, compile_timeline, compile_many
from .escaping import escape_drawtext_text, unescape_drawtext_text
from . import effects

__all__ = [
    "Timeline",
    "GlobalOptions",
    "Layer",
    "VideoLayer",
    "AudioLayer",
    "ImageLayer",
    "TextLayer",
    "CaptionLayer",
    "FilterLayer",
    "PanZoom",
    "Position",
    "resolve_position",
    "Style",
    "Animation",
    "EncoderProfile",
    "MediaContext",
    "default_context",
    "set_default_context",
    "FilterGraphCompiler",
    "compile_timeline",
    "compile_many",
    "escape_drawtext_text",
    "unescape_drawtext_text",
    "effects",
]
