"""Immutable timeline: the public composition API."""

import json
import logging
import math
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import Field, ValidationError, field_validator

from ..core.base import FrozenModel
from ..core.errors import ConstructionError
from ..core.timing import reading_duration
from ..core.types import FitMode, Quality
from .animations import Animation, coerce_animation
from .context import MediaContext
from .encoders import EncoderProfile
from .layers import (
    AudioLayer,
    CaptionLayer,
    FilterLayer,
    ImageLayer,
    Layer,
    LayerAdapter,
    PanZoom,
    TextLayer,
    VideoLayer,
)
from .position import Position
from .presets import (
    ASPECT_RATIO_SIZES,
    CAPTION_PRESETS,
    PLATFORM_ASPECT_RATIOS,
    WORD_HIGHLIGHT_ACTIVE,
    WORD_HIGHLIGHT_BASE,
    WORD_HIGHLIGHT_PRESETS,
)
from .styles import Style

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_DURATION = 30.0
DEFAULT_STILL_DURATION = 5.0
DEFAULT_WIDTH, DEFAULT_HEIGHT = 1920, 1080
WORD_SPACING = 120  # px between word centers
LINE_HEIGHT = 40  # px per line before line_spacing

_RATIO = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*:\s*(\d+(?:\.\d+)?)\s*$")

PositionLike = Union[Position, Dict[str, Any], str, None]
StyleLike = Union[Style, Dict[str, Any], None]
AnimationLike = Union[Animation, Dict[str, Any], str, None]


class TrimRange(FrozenModel):
    start: float = Field(default=0.0, ge=0)
    end: Optional[float] = Field(default=None, ge=0)


class CropBox(FrozenModel):
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    x: int = Field(default=0, ge=0)
    y: int = Field(default=0, ge=0)


class ScaleSize(FrozenModel):
    """Output size; -1 or -2 on one side keeps the aspect ratio."""

    width: int
    height: int


class GlobalOptions(FrozenModel):
    """Render settings shared by every layer of a timeline."""

    aspect_ratio: Optional[str] = None
    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)
    fps: float = Field(default=30, gt=0)
    quality: Quality = Quality.MEDIUM
    codec: Optional[str] = None
    duration: Optional[float] = Field(default=None, ge=0)
    trim: Optional[TrimRange] = None
    crop: Optional[CropBox] = None
    scale: Optional[ScaleSize] = None
    background_color: str = "black"
    default_style: Optional[Style] = None

    @field_validator("aspect_ratio")
    @classmethod
    def _valid_ratio(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not _RATIO.match(v):
            raise ValueError(f"aspect ratio must look like '16:9', got {v!r}")
        return v

    @field_validator("duration", "fps")
    @classmethod
    def _finite(cls, v):
        if v is not None and not math.isfinite(v):
            raise ValueError(f"must be finite, got {v}")
        return v

    @field_validator("codec")
    @classmethod
    def _known_codec(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ("h264", "h265", "vp9"):
            raise ValueError(f"unsupported codec: {v}")
        return v


def _style(value: StyleLike) -> Optional[Style]:
    if value is None or isinstance(value, Style):
        return value
    try:
        return Style.model_validate(value)
    except ValidationError as e:
        raise ConstructionError(f"Invalid style: {e}") from e


class Timeline:
    """
    An ordered, immutable list of layers plus global render options.

    Every builder method returns a new Timeline and leaves the receiver
    untouched. Layer order is paint order: later layers draw over earlier ones.

    Example:
        >>> timeline = (
        ...     Timeline()
        ...     .add_video("intro.mp4")
        ...     .add_text("Hello", position="top", start_time=1, duration=3)
        ...     .set_aspect_ratio("9:16")
        ... )
        >>> cmd = timeline.get_command("out.mp4")
    """

    def __init__(
        self,
        layers: Iterable[Layer] = (),
        global_options: Union[GlobalOptions, Dict[str, Any], None] = None,
    ):
        self._layers: Tuple[Layer, ...] = tuple(layers)
        if global_options is None:
            global_options = GlobalOptions()
        elif isinstance(global_options, dict):
            global_options = GlobalOptions.model_validate(global_options)
        self._options: GlobalOptions = global_options

    @property
    def layers(self) -> Tuple[Layer, ...]:
        return self._layers

    @property
    def global_options(self) -> GlobalOptions:
        return self._options

    def __len__(self) -> int:
        return len(self._layers)

    def __repr__(self) -> str:
        return f"Timeline(layers={len(self._layers)}, duration={self.get_duration()})"

    # Internal construction helpers

    def _append(self, *layers: Layer) -> "Timeline":
        return Timeline(self._layers + layers, self._options)

    def _with_options(self, **changes: Any) -> "Timeline":
        data = {name: getattr(self._options, name) for name in GlobalOptions.model_fields}
        data.update(changes)
        try:
            options = GlobalOptions(**data)
        except ValidationError as e:
            raise ConstructionError(f"Invalid global options: {e}") from e
        return Timeline(self._layers, options)

    @staticmethod
    def _make(layer_cls, **fields: Any) -> Layer:
        try:
            if fields.get("position") is not None:
                fields["position"] = Position.coerce(fields["position"])
            if "style" in fields:
                fields["style"] = _style(fields["style"])
            return layer_cls(**fields)
        except (ValidationError, ValueError, TypeError) as e:
            raise ConstructionError(f"Invalid {layer_cls.__name__}: {e}") from e

    @staticmethod
    def _animation(value: AnimationLike, duration: float = 0.5) -> Optional[Animation]:
        try:
            return coerce_animation(value, duration)
        except (ValidationError, ValueError) as e:
            raise ConstructionError(f"Invalid animation {value!r}: {e}") from e

    # Layer builders

    def add_video(
        self,
        source: str,
        start_time: float = 0.0,
        duration: Optional[float] = None,
        position: PositionLike = None,
        volume: float = 1.0,
        audio: bool = True,
        trim_start: Optional[float] = None,
        trim_end: Optional[float] = None,
        fit: Union[FitMode, str] = FitMode.CONTAIN,
        transition: AnimationLike = None,
        style: StyleLike = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        scale: Optional[float] = None,
        border_width: int = 0,
        border_color: str = "white",
    ) -> "Timeline":
        """
        Add a video layer.

        Args:
            source: Video file path or URL
            start_time: When the video appears on the timeline (seconds)
            duration: How long it stays visible (None = to the end)
            position: Placement on the canvas (defaults to centered)
            volume: Audio volume multiplier
            audio: Whether the video's audio joins the mix
            trim_start: Start offset inside the source (seconds)
            trim_end: End offset inside the source (seconds)
            fit: contain, cover, stretch or none
            transition: Fade transition for the layer
            style: Opacity and rotation for the layer
            width: Inset width in pixels
            height: Inset height in pixels
            scale: Inset size as a fraction of the canvas (overrides width/height)
            border_width: Border drawn around the clip (pixels)
            border_color: Border color

        Returns:
            New Timeline with the video appended
        """
        layer = self._make(
            VideoLayer,
            source=source,
            start_time=start_time,
            duration=duration,
            position=position,
            volume=volume,
            audio=audio,
            trim_start=trim_start,
            trim_end=trim_end,
            fit=fit,
            transition=self._animation(transition),
            style=style,
            width=width,
            height=height,
            scale=scale,
            border_width=border_width,
            border_color=border_color,
        )
        return self._append(layer)

    def add_audio(
        self,
        source: str,
        start_time: float = 0.0,
        duration: Optional[float] = None,
        volume: float = 1.0,
        fade_in: Optional[float] = None,
        fade_out: Optional[float] = None,
        trim_start: Optional[float] = None,
        trim_end: Optional[float] = None,
        tempo: Optional[float] = None,
        lowpass: Optional[float] = None,
        highpass: Optional[float] = None,
        echo_delay: Optional[float] = None,
        echo_decay: Optional[float] = None,
        loop: bool = False,
    ) -> "Timeline":
        """
        Add an audio track to the mix.

        Args:
            source: Audio file path or URL
            start_time: When the audio starts on the timeline (seconds)
            duration: How long it plays (None = to the end of the source)
            volume: Volume multiplier
            fade_in: Fade-in length (seconds)
            fade_out: Fade-out length (seconds)
            trim_start: Start offset inside the source (seconds)
            trim_end: End offset inside the source (seconds)
            tempo: Playback speed without pitch change
            lowpass: Low-pass cutoff (Hz)
            highpass: High-pass cutoff (Hz)
            echo_delay: Echo delay (seconds)
            echo_decay: Echo decay (0-1)
            loop: Loop the source indefinitely

        Returns:
            New Timeline with the audio appended
        """
        layer = self._make(
            AudioLayer,
            source=source,
            start_time=start_time,
            duration=duration,
            volume=volume,
            fade_in=fade_in,
            fade_out=fade_out,
            trim_start=trim_start,
            trim_end=trim_end,
            tempo=tempo,
            lowpass=lowpass,
            highpass=highpass,
            echo_delay=echo_delay,
            echo_decay=echo_decay,
            loop=loop,
        )
        return self._append(layer)

    def add_image(
        self,
        source: str,
        start_time: float = 0.0,
        duration: Optional[float] = None,
        position: PositionLike = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        pan_zoom: Union[PanZoom, Dict[str, Any], None] = None,
        transition: AnimationLike = None,
        style: StyleLike = None,
    ) -> "Timeline":
        """Add an image overlay, optionally with a Ken Burns pan/zoom."""
        layer = self._make(
            ImageLayer,
            source=source,
            start_time=start_time,
            duration=duration,
            position=position,
            width=width,
            height=height,
            pan_zoom=pan_zoom,
            transition=self._animation(transition),
            style=style,
        )
        return self._append(layer)

    def add_watermark(
        self,
        source: str,
        position: str = "bottom-right",
        opacity: float = 0.7,
        width: Optional[int] = None,
        height: Optional[int] = None,
        margin: float = 20,
        start_time: float = 0.0,
        duration: Optional[float] = None,
    ) -> "Timeline":
        """Add a semi-transparent image pinned to a corner with a margin."""
        try:
            placement = Position.preset(position, margin)
        except ValueError as e:
            raise ConstructionError(str(e)) from e
        return self.add_image(
            source,
            start_time=start_time,
            duration=duration,
            position=placement,
            width=width,
            height=height,
            style=Style(opacity=opacity),
        )

    def add_picture_in_picture(
        self,
        source: str,
        position: str = "bottom-right",
        scale: Optional[float] = 0.25,
        width: Optional[int] = None,
        height: Optional[int] = None,
        margin: float = 20,
        opacity: float = 1.0,
        rotation: Optional[float] = None,
        border_width: int = 0,
        border_color: str = "white",
        transition: AnimationLike = None,
        transition_duration: float = 0.5,
        start_time: float = 0.0,
        duration: Optional[float] = None,
        volume: float = 0.3,
        audio: bool = True,
    ) -> "Timeline":
        """
        Add a scaled video inset pinned to a corner, e.g. a reaction cam.

        Args:
            source: Video file path or URL
            position: center, top-left, top-right, bottom-left or bottom-right
                (any Position preset name)
            scale: Inset size as a fraction of the canvas
            width: Inset width in pixels; with ``height``, replaces ``scale``
            height: Inset height in pixels
            margin: Distance from the canvas edges (pixels)
            opacity: Inset opacity (0-1)
            rotation: Rotation in degrees
            border_width: Border drawn around the inset (pixels)
            border_color: Border color
            transition: Fade transition, e.g. "fade_in"
            transition_duration: Transition length (seconds)
            start_time: When the inset appears (seconds)
            duration: How long it stays (None = to the end)
            volume: Volume of the inset's audio under the main mix
            audio: Whether the inset's audio joins the mix

        Returns:
            New Timeline with the inset appended

        Raises:
            ConstructionError: Unknown position or invalid size
        """
        try:
            placement = Position.preset(position, margin)
            style = Style(opacity=opacity, rotation=rotation)
        except ValueError as e:
            raise ConstructionError(str(e)) from e
        if width is not None or height is not None:
            scale = None
        return self.add_video(
            source,
            start_time=start_time,
            duration=duration,
            position=placement,
            volume=volume,
            audio=audio,
            transition=self._animation(transition, transition_duration),
            style=style,
            width=width,
            height=height,
            scale=scale,
            border_width=border_width,
            border_color=border_color,
        )

    def add_text(
        self,
        text: str,
        start_time: float = 0.0,
        duration: Optional[float] = DEFAULT_STILL_DURATION,
        position: PositionLike = "center",
        style: StyleLike = None,
        transition: AnimationLike = None,
    ) -> "Timeline":
        """
        Add a text overlay.

        Empty text is accepted and compiles to an empty drawtext.

        Args:
            text: Literal text to display
            start_time: When the text appears (seconds)
            duration: How long it stays (None = to the end)
            position: Placement (preset name, dict or Position)
            style: Text style
            transition: Animation name or Animation

        Returns:
            New Timeline with the text appended
        """
        layer = self._make(
            TextLayer,
            text=text,
            start_time=start_time,
            duration=duration,
            position=position,
            style=style,
            transition=self._animation(transition),
        )
        return self._append(layer)

    def add_filter(
        self,
        name: str,
        params: Optional[Dict[str, Any]] = None,
        start_time: float = 0.0,
        duration: Optional[float] = None,
    ) -> "Timeline":
        """Add a named filter applied to everything painted before it."""
        layer = self._make(
            FilterLayer,
            name=name,
            params=dict(params or {}),
            start_time=start_time,
            duration=duration,
        )
        return self._append(layer)

    def add_captions(
        self,
        captions: Sequence[Union[str, Dict[str, Any]]],
        style: StyleLike = None,
        preset: Optional[str] = None,
        transition: AnimationLike = "fade",
        transition_duration: float = 0.5,
        start_delay: float = 0.0,
        overlap: float = 0.1,
        words_per_minute: float = 200,
        position: PositionLike = "bottom",
    ) -> "Timeline":
        """
        Add a batch of captions, auto-timing entries without explicit times.

        Each caption may be a string or a mapping with ``text`` and optional
        ``start_time``, ``duration``/``end_time``, ``style``, ``position`` and
        ``transition``. Untimed captions start where the previous one ends,
        minus ``overlap`` times its duration, and last for their reading time.

        Args:
            captions: Captions in display order
            style: Style applied to every caption (over the preset)
            preset: instagram, tiktok, youtube, pinterest or linkedin
            transition: Animation for each caption
            transition_duration: Animation length (seconds)
            start_delay: Start of the first untimed caption
            overlap: Fraction of the previous duration to overlap
            words_per_minute: Reading speed for auto-timing
            position: Default placement

        Returns:
            New Timeline with one caption layer per entry

        Raises:
            ConstructionError: A caption has no text or the preset is unknown
        """
        if preset is not None and preset not in CAPTION_PRESETS:
            raise ConstructionError(f"Unknown caption preset: {preset}")
        base = CAPTION_PRESETS[preset].merged(_style(style)) if preset else _style(style)

        layers = []
        cursor = start_delay
        for i, item in enumerate(captions):
            if isinstance(item, str):
                item = {"text": item}
            text = item.get("text")
            if text is None:
                raise ConstructionError(f"Caption {i} has no text")
            start = item.get("start_time", item.get("startTime"))
            if start is None:
                start = cursor
            duration = item.get("duration")
            end = item.get("end_time", item.get("endTime"))
            if duration is None:
                if end is not None:
                    duration = end - start
                else:
                    duration = reading_duration(text, words_per_minute)

            item_style = _style(item.get("style"))
            layers.append(
                self._make(
                    CaptionLayer,
                    text=text,
                    start_time=start,
                    duration=duration,
                    position=item.get("position", position),
                    style=base.merged(item_style) if base is not None else item_style,
                    animation=self._animation(item.get("transition", transition), transition_duration),
                )
            )
            cursor = start + duration * (1 - overlap)
        return self._append(*layers)

    def add_word_highlighting(
        self,
        text: Optional[str] = None,
        words: Optional[Sequence[Any]] = None,
        start_time: float = 0.0,
        duration: float = 5.0,
        words_per_second: float = 2.5,
        position: PositionLike = "center",
        base_style: StyleLike = None,
        highlight_style: StyleLike = None,
        highlight_transition: Optional[str] = None,
        transition_duration: float = 0.2,
        preset: Optional[str] = None,
        max_words_per_line: int = 5,
        line_spacing: float = 1.5,
    ) -> "Timeline":
        """
        Add karaoke-style word highlighting.

        Every word gets a base layer visible for its whole line and a
        highlight layer visible while the word is spoken.

        Args:
            text: Text to split into evenly timed words
            words: Pre-timed words as ``{"word", "start", "end"}`` mappings
                or ``(word, start, end)`` tuples
            start_time: Start of the first word when timing from ``text``
            duration: Time span available when timing from ``text``
            words_per_second: Speaking rate when timing from ``text``
            position: Center of the text block
            base_style: Style of unspoken words
            highlight_style: Style of the active word
            highlight_transition: instant, fade, scale, bounce, pulse or glow
            transition_duration: Highlight animation length (seconds)
            preset: tiktok, instagram, youtube, karaoke or typewriter
            max_words_per_line: Words per line before wrapping
            line_spacing: Line height multiplier

        Returns:
            New Timeline with two layers per word

        Raises:
            ConstructionError: Neither ``text`` nor ``words`` was given
        """
        if text is None and words is None:
            raise ConstructionError("add_word_highlighting requires text or words")
        if preset is not None and preset not in WORD_HIGHLIGHT_PRESETS:
            raise ConstructionError(f"Unknown word highlight preset: {preset}")
        if max_words_per_line < 1 or words_per_second <= 0:
            raise ConstructionError("max_words_per_line and words_per_second must be positive")

        base = WORD_HIGHLIGHT_BASE
        active = WORD_HIGHLIGHT_ACTIVE
        glow = False
        if preset:
            chosen = WORD_HIGHLIGHT_PRESETS[preset]
            base = base.merged(chosen.base)
            active = active.merged(chosen.highlight)
            glow = chosen.glow
        base = base.merged(_style(base_style))
        active = base.merged(active, _style(highlight_style))

        if highlight_transition is None:
            highlight_transition = "glow" if glow else "scale"
        animation = (
            None
            if highlight_transition == "instant"
            else self._animation(highlight_transition, transition_duration)
        )

        if words is not None:
            timed = [_timed_word(w) for w in words]
        else:
            timed = _word_timings(text, start_time, duration, words_per_second)

        try:
            anchor = Position.coerce(position)
        except (ValidationError, ValueError, TypeError) as e:
            raise ConstructionError(f"Invalid position: {e}") from e

        lines = [timed[i : i + max_words_per_line] for i in range(0, len(timed), max_words_per_line)]
        layers = []
        for line_index, line in enumerate(lines):
            line_start = line[0][1]
            line_end = max(end for _, _, end in line)
            dy = (line_index - (len(lines) - 1) / 2) * line_spacing * LINE_HEIGHT
            for word_index, (word, start, end) in enumerate(line):
                dx = (word_index - (len(line) - 1) / 2) * WORD_SPACING
                placement = anchor.model_copy(update={"dx": anchor.dx + dx, "dy": anchor.dy + dy})
                layers.append(
                    self._make(
                        TextLayer,
                        text=word,
                        start_time=line_start,
                        duration=max(0.0, line_end - line_start),
                        position=placement,
                        style=base,
                    )
                )
                layers.append(
                    self._make(
                        TextLayer,
                        text=word,
                        start_time=start,
                        duration=max(0.0, end - start),
                        position=placement,
                        style=active,
                        transition=animation,
                    )
                )
        return self._append(*layers)

    # Composition helpers

    def trim(self, start: float, end: Optional[float] = None) -> "Timeline":
        """Render only ``start``..``end`` of the composed output."""
        if end is not None and end <= start:
            raise ConstructionError(f"trim end ({end}) must be after start ({start})")
        return self._with_options(trim={"start": start, "end": end})

    def scale(self, width: int, height: int) -> "Timeline":
        """Scale the composed output; use -1 on one side to keep the aspect ratio."""
        return self._with_options(scale={"width": width, "height": height})

    def crop(self, width: int, height: int, x: int = 0, y: int = 0) -> "Timeline":
        """Crop the composed output to a rectangle."""
        return self._with_options(crop={"width": width, "height": height, "x": x, "y": y})

    def concat(self, other: "Timeline") -> "Timeline":
        """
        Append another timeline's layers after this one ends.

        Args:
            other: Timeline whose layers are shifted by this timeline's duration

        Returns:
            New Timeline keeping this timeline's global options
        """
        offset = self.get_duration()
        shifted = tuple(layer.shifted(offset) for layer in other.layers)
        result = Timeline(self._layers + shifted, self._options)
        if self._options.duration is not None:
            result = result._with_options(duration=offset + other.get_duration())
        return result

    def pipe(self, fn: Callable[["Timeline"], "Timeline"]) -> "Timeline":
        """Apply an effect function, as in ``timeline.pipe(effects.sepia())``."""
        result = fn(self)
        if not isinstance(result, Timeline):
            raise TypeError(f"pipe function must return a Timeline, got {type(result).__name__}")
        return result

    # Global options

    def set_aspect_ratio(self, ratio: str) -> "Timeline":
        return self._with_options(aspect_ratio=ratio, width=None, height=None)

    def set_resolution(self, width: int, height: int) -> "Timeline":
        return self._with_options(width=width, height=height)

    def set_frame_rate(self, fps: float) -> "Timeline":
        return self._with_options(fps=fps)

    def set_duration(self, seconds: Optional[float]) -> "Timeline":
        """Force the output duration (None restores the computed duration)."""
        return self._with_options(duration=seconds)

    def set_quality(self, quality: Union[Quality, str]) -> "Timeline":
        return self._with_options(quality=quality)

    def set_codec(self, codec: str) -> "Timeline":
        return self._with_options(codec=codec)

    def set_background(self, color: str) -> "Timeline":
        return self._with_options(background_color=color)

    def set_default_style(self, style: StyleLike) -> "Timeline":
        """Style applied under every text and caption layer's own style."""
        return self._with_options(default_style=_style(style))

    # Queries

    @property
    def canvas_size(self) -> Tuple[int, int]:
        """Output canvas (width, height) from explicit size or aspect ratio."""
        options = self._options
        if options.width and options.height:
            return options.width, options.height
        if options.aspect_ratio:
            if options.aspect_ratio in ASPECT_RATIO_SIZES:
                return ASPECT_RATIO_SIZES[options.aspect_ratio]
            a, b = (float(n) for n in _RATIO.match(options.aspect_ratio).groups())
            width = int(round(DEFAULT_HEIGHT * a / b / 2)) * 2
            return max(2, width), DEFAULT_HEIGHT
        return DEFAULT_WIDTH, DEFAULT_HEIGHT

    def get_duration(self) -> float:
        """
        Total timeline duration in seconds.

        An explicit duration wins. Otherwise the latest layer end counts, with
        open-ended video/audio assumed to run 30 seconds (or their trimmed
        length) and open-ended stills 5 seconds. Filters never extend it.
        """
        if self._options.duration is not None:
            return self._options.duration
        ends = []
        for layer in self._layers:
            if layer.duration is not None:
                ends.append(layer.start_time + layer.duration)
            elif isinstance(layer, (VideoLayer, AudioLayer)):
                length = DEFAULT_MEDIA_DURATION
                if layer.trim_end is not None:
                    length = max(0.0, layer.trim_end - (layer.trim_start or 0.0))
                ends.append(layer.start_time + length)
            elif not isinstance(layer, FilterLayer):
                ends.append(layer.start_time + DEFAULT_STILL_DURATION)
        return max(ends) if ends else DEFAULT_STILL_DURATION

    def validate_for_platform(self, platform: str) -> Dict[str, Any]:
        """
        Check the canvas shape against a social platform's expected aspect ratio.

        Returns:
            Dict with is_valid, warnings, errors and suggestions
        """
        if platform not in PLATFORM_ASPECT_RATIOS:
            raise ValueError(f"Invalid platform: {platform}")
        expected = PLATFORM_ASPECT_RATIOS[platform]
        ew, eh = ASPECT_RATIO_SIZES[expected]
        width, height = self.canvas_size
        matches = width * eh == height * ew
        return {
            "is_valid": matches,
            "warnings": [] if matches else [f"{platform} videos should use {expected} aspect ratio"],
            "errors": [],
            "suggestions": [] if matches else [f'Use timeline.set_aspect_ratio("{expected}")'],
        }

    # Compilation

    def build_argv(
        self,
        output_path: str,
        ctx: Optional[MediaContext] = None,
        encoder: Optional[EncoderProfile] = None,
    ) -> List[str]:
        """FFmpeg argument list for rendering this timeline."""
        from .compiler import build_argv

        return build_argv(self, output_path, ctx, encoder)

    def get_command(
        self,
        output_path: str,
        ctx: Optional[MediaContext] = None,
        encoder: Optional[EncoderProfile] = None,
    ) -> str:
        """
        Compile the timeline into a shell-ready FFmpeg command.

        The result depends only on the layers and global options, so repeated
        calls return identical strings.

        Args:
            output_path: Output file path
            ctx: Media context (defaults to the global context)
            encoder: Encoder profile overriding quality/codec

        Returns:
            FFmpeg command string
        """
        from .compiler import compile_timeline

        return compile_timeline(self, output_path, ctx, encoder)

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        return {
            "layers": [layer.to_dict() for layer in self._layers],
            "globalOptions": self._options.to_dict(),
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Timeline":
        """
        Rebuild a timeline from ``to_dict`` output.

        Unknown keys are ignored and layers of unknown kind are skipped, so
        documents written by newer versions still load.
        """
        layers = []
        try:
            for raw in data.get("layers") or []:
                if raw.get("kind") not in ("video", "audio", "image", "text", "filter", "caption"):
                    logger.warning(f"Skipping layer of unknown kind: {raw.get('kind')!r}")
                    continue
                layers.append(LayerAdapter.validate_python(raw))
            options = GlobalOptions.model_validate(data.get("globalOptions") or {})
        except ValidationError as e:
            raise ConstructionError(f"Invalid timeline document: {e}") from e
        return cls(layers, options)

    @classmethod
    def from_json(cls, text: str) -> "Timeline":
        return cls.from_dict(json.loads(text))


def _timed_word(value: Any) -> Tuple[str, float, float]:
    if isinstance(value, dict):
        try:
            return str(value["word"]), float(value["start"]), float(value["end"])
        except KeyError as e:
            raise ConstructionError(f"Timed word is missing {e}") from e
        except (TypeError, ValueError) as e:
            raise ConstructionError(f"Invalid timed word {value!r}: {e}") from e
    try:
        word, start, end = value
        return str(word), float(start), float(end)
    except (TypeError, ValueError) as e:
        raise ConstructionError(f"Timed word must be (word, start, end), got {value!r}") from e


_PUNCTUATION = re.compile(r"[^\w\s!?.,]")


def _word_timings(
    text: str, start_time: float, duration: float, words_per_second: float
) -> List[Tuple[str, float, float]]:
    step = 1 / words_per_second
    limit = start_time + duration
    timed = []
    for i, word in enumerate(text.split()):
        start = start_time + i * step
        timed.append((_PUNCTUATION.sub("", word), start, max(start, min(start + step, limit))))
    return timed
