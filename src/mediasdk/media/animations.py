"""Animation model and synthesis of per-frame FFmpeg expressions."""

from typing import Dict, List, Literal, Optional, Union

from pydantic import Field

from ..core.base import FrozenModel
from ..core.types import AnimationType
from .expr import T, PI, Expr, Num, abs_, clip, lt, max_, min_, sin
from .graph import Filter

Direction = Literal["left", "right", "up", "down"]

_DEFAULT_INTENSITY = {
    AnimationType.SLIDE_IN: 200.0,  # pixels travelled
    AnimationType.BOUNCE: 20.0,  # pixels of lift
    AnimationType.PULSE: 0.1,  # relative size change
    AnimationType.SHAKE: 5.0,  # pixels of jitter
    AnimationType.GLOW: 4.0,  # border width
}


class Animation(FrozenModel):
    """A time-based animation applied to a layer's visibility window."""

    type: AnimationType
    duration: float = Field(default=0.5, gt=0)
    delay: float = Field(default=0.0, ge=0)
    direction: Optional[Direction] = None
    intensity: Optional[float] = None
    color: Optional[str] = None

    @property
    def amount(self) -> float:
        if self.intensity is not None:
            return self.intensity
        return _DEFAULT_INTENSITY.get(self.type, 0.0)


def coerce_animation(value: Union[None, str, dict, Animation], duration: float = 0.5):
    """Accept an Animation, a mapping or a bare animation type name."""
    if value is None or isinstance(value, Animation):
        return value
    if isinstance(value, str):
        if value == AnimationType.NONE.value:
            return None
        # Captions use "slide" and "fade" as shorthand transition names
        aliases = {"slide": AnimationType.SLIDE_IN, "typewriter": AnimationType.FADE_IN}
        return Animation(type=aliases.get(value, value), duration=duration)
    return Animation.model_validate(value)


def _progress(begin: float, duration: float) -> Expr:
    return clip((T - begin) / duration, 0, 1)


def drawtext_params(
    animation: Optional[Animation],
    start: float,
    end: Optional[float],
    x: Expr,
    y: Expr,
    font_size: float,
) -> Dict[str, Union[Expr, str]]:
    """
    Build drawtext option overrides that animate a text layer.

    Args:
        animation: Animation to compile (None yields no overrides)
        start: Layer start on the timeline in seconds
        end: Layer end on the timeline, or None when open-ended
        x: Resolved x expression
        y: Resolved y expression
        font_size: Resolved font size

    Returns:
        Mapping of drawtext option names (alpha, x, y, fontsize, borderw,
        bordercolor) to values
    """
    if animation is None or animation.type == AnimationType.NONE:
        return {}

    kind = animation.type
    begin = start + animation.delay
    d = animation.duration
    p = _progress(begin, d)
    fade_out = clip((end - T) / d, 0, 1) if end is not None else None
    amount = animation.amount
    params: Dict[str, Union[Expr, str]] = {}

    if kind == AnimationType.FADE_IN:
        params["alpha"] = p
    elif kind == AnimationType.FADE_OUT:
        if fade_out is not None:
            params["alpha"] = fade_out
    elif kind == AnimationType.FADE:
        params["alpha"] = min_(p, fade_out) if fade_out is not None else p
    elif kind == AnimationType.SLIDE_IN:
        remaining = amount * (1 - p)
        direction = animation.direction or "left"
        if direction == "left":
            params["x"] = x - remaining
        elif direction == "right":
            params["x"] = x + remaining
        elif direction == "up":
            params["y"] = y + remaining
        else:
            params["y"] = y - remaining
        params["alpha"] = p
    elif kind in (AnimationType.SCALE, AnimationType.ZOOM_IN):
        params["fontsize"] = max_(1, font_size * p)
    elif kind == AnimationType.BOUNCE:
        lift = amount * abs_(sin(2 * PI * (T - begin) / d)) * lt(T, begin + d)
        params["y"] = y - lift
    elif kind == AnimationType.PULSE:
        params["fontsize"] = font_size * (1 + amount * sin(2 * PI * (T - begin)))
    elif kind == AnimationType.SHAKE:
        params["x"] = x + amount * sin(50 * (T - begin)) * lt(T, begin + d)
    elif kind == AnimationType.GLOW:
        params["borderw"] = Num(amount)
        params["bordercolor"] = animation.color or "white@0.6"
    return params


def fade_filters(
    animation: Optional[Animation], start: float, end: Optional[float]
) -> List[Filter]:
    """
    Build alpha fade filters for an overlaid image or video.

    Only fade-type animations apply to overlays; other types are ignored.

    Args:
        animation: Transition to compile
        start: Layer start on the timeline in seconds
        end: Layer end on the timeline, or None when open-ended

    Returns:
        List of ``fade`` filters operating on the alpha channel
    """
    if animation is None:
        return []
    begin = start + animation.delay
    d = animation.duration
    filters = []
    if animation.type in (AnimationType.FADE, AnimationType.FADE_IN):
        filters.append(Filter("fade", t="in", st=begin, d=d, alpha=1))
    if animation.type in (AnimationType.FADE, AnimationType.FADE_OUT) and end is not None:
        filters.append(Filter("fade", t="out", st=max(begin, end - d), d=d, alpha=1))
    return filters
