"""Effect functions for ``Timeline.pipe`` and the filter-layer registry.

Each public effect returns a function that takes a Timeline and returns a new
Timeline with filter layers appended, so effects compose in application order::

    timeline.pipe(effects.compose(effects.brightness(0.1), effects.contrast(1.2)))
"""

import math
from typing import Any, Callable, Dict, List, Optional

from .expr import Var
from .graph import Filter

Effect = Callable[[Any], Any]

# Filters applied to the mixed audio stream instead of the canvas.
AUDIO_FILTERS = frozenset(
    {"volume", "afade", "atempo", "aecho", "lowpass", "highpass", "equalizer", "loudnorm"}
)

# Filters that do not accept a timeline ``enable`` option.
NO_TIMELINE = frozenset({"setpts", "reverse", "zoompan", "fade", "scale", "crop", "speed"})

_GRAYSCALE = dict(
    rr=0.299, rg=0.587, rb=0.114, gr=0.299, gg=0.587, gb=0.114, br=0.299, bg=0.587, bb=0.114
)
_SEPIA = dict(
    rr=0.393, rg=0.769, rb=0.189, gr=0.349, gg=0.686, gb=0.168, br=0.272, bg=0.534, bb=0.131
)


def build_filters(name: str, params: Dict[str, Any]) -> List[Filter]:
    """
    Translate a filter layer into FFmpeg filters.

    Known effect names (brightness, blur, speed, ...) map to their FFmpeg
    equivalent; any other name passes through as a filter with the params as
    keyword options.

    Args:
        name: Effect or FFmpeg filter name
        params: Effect parameters

    Returns:
        Filters to apply, in order
    """
    if name in ("brightness", "contrast", "saturation", "gamma"):
        default = 0 if name == "brightness" else 1
        return [Filter("eq", **{name: params.get("value", default)})]
    if name == "hue":
        return [Filter("hue", h=params.get("degrees", 0), s=params.get("saturation"))]
    if name == "blur":
        return [Filter("boxblur", params.get("radius", 5))]
    if name == "gaussian_blur":
        return [Filter("gblur", sigma=params.get("sigma", 2))]
    if name == "motion_blur":
        return [Filter("tmix", frames=params.get("frames", 3))]
    if name == "grayscale":
        return [Filter("colorchannelmixer", **_GRAYSCALE)]
    if name == "sepia":
        return [Filter("colorchannelmixer", **_SEPIA)]
    if name == "invert":
        return [Filter("negate")]
    if name == "vignette":
        if "angle" in params:
            return [Filter("vignette", angle=params["angle"])]
        radius = params.get("radius", 0.8)
        return [Filter("vignette", angle=round(radius * math.pi / 4, 4))]
    if name == "film_grain":
        intensity = params.get("intensity", 0.2)
        flags = "t+u" if params.get("animated", True) else "u"
        return [Filter("noise", alls=int(round(intensity * 100)), allf=flags)]
    if name == "rotate":
        radians = round(params.get("degrees", 0) * math.pi / 180, 6)
        return [Filter("rotate", radians, c=params.get("fill", "black"))]
    if name == "flip":
        direction = params.get("direction", "horizontal")
        flips = {"horizontal": ["hflip"], "vertical": ["vflip"], "both": ["hflip", "vflip"]}
        return [Filter(f) for f in flips[direction]]
    if name == "speed":
        return [Filter("setpts", Var("PTS") / params.get("factor", 1))]
    if name == "chromakey":
        return [
            Filter(
                "chromakey",
                params.get("color", "green"),
                params.get("similarity", 0.1),
                params.get("blend", 0.0),
            )
        ]
    if name == "stabilize":
        return [Filter("deshake")]
    if name == "denoise":
        return [Filter("hqdn3d", params.get("strength", 4))]
    if name == "fade":
        return [
            Filter(
                "fade",
                t=params.get("type", "in"),
                st=params.get("start", 0),
                d=params.get("duration", 1),
            )
        ]
    return [Filter(name, **params)]


def supports_timeline(name: str) -> bool:
    return name not in NO_TIMELINE


def compose(*effects: Effect) -> Effect:
    """Chain effects left to right."""

    def apply(timeline):
        for effect in effects:
            timeline = effect(timeline)
        return timeline

    return apply


def _effect(name: str, **params) -> Effect:
    params = {k: v for k, v in params.items() if v is not None}
    return lambda timeline: timeline.add_filter(name, params)


def fade_in(duration: float = 1.0) -> Effect:
    return _effect("fade", type="in", start=0, duration=duration)


def fade_out(duration: float = 1.0) -> Effect:
    """Fade to black over the last ``duration`` seconds of the timeline."""

    def apply(timeline):
        start = max(0.0, timeline.get_duration() - duration)
        return timeline.add_filter(
            "fade", {"type": "out", "start": start, "duration": duration}
        )

    return apply


def brightness(value: float) -> Effect:
    """Adjust brightness (-1.0 to 1.0)."""
    return _effect("brightness", value=value)


def contrast(value: float) -> Effect:
    """Adjust contrast (1.0 leaves the image unchanged)."""
    return _effect("contrast", value=value)


def saturation(value: float) -> Effect:
    """Adjust saturation (0 = grayscale, 1 = unchanged)."""
    return _effect("saturation", value=value)


def hue(degrees: float, saturation: Optional[float] = None) -> Effect:
    return _effect("hue", degrees=degrees, saturation=saturation)


def gamma(value: float) -> Effect:
    return _effect("gamma", value=value)


def blur(radius: float = 5) -> Effect:
    return _effect("blur", radius=radius)


def gaussian_blur(sigma: float = 2) -> Effect:
    return _effect("gaussian_blur", sigma=sigma)


def motion_blur(frames: int = 3) -> Effect:
    return _effect("motion_blur", frames=frames)


def grayscale() -> Effect:
    return _effect("grayscale")


def sepia() -> Effect:
    return _effect("sepia")


def invert() -> Effect:
    return _effect("invert")


def vignette(radius: float = 0.8) -> Effect:
    return _effect("vignette", radius=radius)


def film_grain(intensity: float = 0.2, animated: bool = True) -> Effect:
    return _effect("film_grain", intensity=intensity, animated=animated)


def vintage() -> Effect:
    return compose(sepia(), contrast(1.2), brightness(0.1), vignette(0.6), film_grain(0.1))


def cinematic() -> Effect:
    return compose(contrast(1.3), saturation(0.8), brightness(-0.1), vignette(0.7))


def rotate(degrees: float, fill: str = "black") -> Effect:
    return _effect("rotate", degrees=degrees, fill=fill)


def flip(direction: str = "horizontal") -> Effect:
    """Mirror the canvas: horizontal, vertical or both."""
    if direction not in ("horizontal", "vertical", "both"):
        raise ValueError(f"Unknown flip direction: {direction}")
    return _effect("flip", direction=direction)


def speed(factor: float) -> Effect:
    """Change playback speed of the canvas (2.0 = twice as fast)."""
    if factor <= 0:
        raise ValueError("speed factor must be positive")
    return _effect("speed", factor=factor)


def chromakey(color: str = "green", similarity: float = 0.1, blend: float = 0.0) -> Effect:
    return _effect("chromakey", color=color, similarity=similarity, blend=blend)


def stabilize() -> Effect:
    return _effect("stabilize")


def denoise(strength: float = 4) -> Effect:
    return _effect("denoise", strength=strength)


def scale(width: int, height: int) -> Effect:
    return lambda timeline: timeline.scale(width, height)


def crop(width: int, height: int, x: int = 0, y: int = 0) -> Effect:
    return lambda timeline: timeline.crop(width, height, x, y)


def volume(level: float) -> Effect:
    """Scale the mixed audio volume."""
    return _effect("volume", volume=level)


def audio_fade_in(duration: float = 1.0) -> Effect:
    return _effect("afade", t="in", st=0, d=duration)


def audio_fade_out(duration: float = 1.0) -> Effect:
    def apply(timeline):
        start = max(0.0, timeline.get_duration() - duration)
        return timeline.add_filter("afade", {"t": "out", "st": start, "d": duration})

    return apply
