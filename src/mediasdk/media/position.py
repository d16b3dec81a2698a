"""Position model and resolution of mixed units into FFmpeg coordinate expressions."""

import re
from collections import namedtuple
from typing import Optional, Tuple, Union

from pydantic import field_validator

from ..core.base import FrozenModel
from ..core.types import Anchor
from .expr import Expr, Num, Raw, Operand, to_expr

_PERCENT = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*%\s*$")
_PIXELS = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*(?:px)?\s*$")

# Canvas and content-extent variable names for each filter that positions content.
Frame = namedtuple("Frame", ["width", "height", "extent_w", "extent_h"])
TEXT_FRAME = Frame("w", "h", "text_w", "text_h")
OVERLAY_FRAME = Frame("main_w", "main_h", "overlay_w", "overlay_h")

DEFAULT_MARGIN = 20


class Position(FrozenModel):
    """
    Where a layer is placed on the canvas.

    ``x`` and ``y`` take absolute pixels (``120``, ``"120px"``), a percentage
    of the canvas (``"50%"``) or a raw FFmpeg expression (``"main_w-200"``).
    The anchor shifts the content by its own extent after percentages are
    resolved; ``dx``/``dy`` add pixel offsets.
    """

    x: Union[float, str] = 0
    y: Union[float, str] = 0
    anchor: Optional[Anchor] = None
    dx: float = 0
    dy: float = 0

    @field_validator("x", "y")
    @classmethod
    def _not_blank(cls, v):
        if isinstance(v, str) and not v.strip():
            raise ValueError("coordinate must not be blank")
        return v

    @classmethod
    def preset(cls, name: str, margin: float = DEFAULT_MARGIN) -> "Position":
        """
        Build a position from a named placement.

        Args:
            name: One of center, top, bottom, left, right, top-left, top-right,
                bottom-left, bottom-right
            margin: Distance from the canvas edge in pixels

        Returns:
            Position for the placement
        """
        presets = {
            "center": dict(x="50%", y="50%", anchor=Anchor.CENTER),
            "top": dict(x="50%", y=margin, anchor=Anchor.TOP_CENTER),
            "bottom": dict(x="50%", y="100%", anchor=Anchor.BOTTOM_CENTER, dy=-margin),
            "left": dict(x=margin, y="50%", anchor=Anchor.CENTER_LEFT),
            "right": dict(x="100%", y="50%", anchor=Anchor.CENTER_RIGHT, dx=-margin),
            "top-left": dict(x=margin, y=margin, anchor=Anchor.TOP_LEFT),
            "top-right": dict(x="100%", y=margin, anchor=Anchor.TOP_RIGHT, dx=-margin),
            "bottom-left": dict(
                x=margin, y="100%", anchor=Anchor.BOTTOM_LEFT, dy=-margin
            ),
            "bottom-right": dict(
                x="100%", y="100%", anchor=Anchor.BOTTOM_RIGHT, dx=-margin, dy=-margin
            ),
        }
        if name not in presets:
            raise ValueError(f"Unknown position preset: {name}")
        return cls(**presets[name])

    @classmethod
    def coerce(cls, value) -> "Position":
        """Accept a Position, a mapping, a preset name or None (top-left origin)."""
        if value is None:
            return cls()
        if isinstance(value, Position):
            return value
        if isinstance(value, str):
            return cls.preset(value)
        if isinstance(value, dict):
            return cls.model_validate(value)
        raise TypeError(f"Cannot build a Position from {type(value).__name__}")


def parse_coordinate(value: Union[float, str]) -> Tuple[str, Union[float, str]]:
    """
    Classify a coordinate.

    Returns:
        ("percent", number), ("px", number) or ("expr", text)
    """
    if isinstance(value, (int, float)):
        return "px", value
    match = _PERCENT.match(value)
    if match:
        return "percent", float(match.group(1))
    match = _PIXELS.match(value)
    if match:
        return "px", float(match.group(1))
    return "expr", value.strip()


def resolve_axis(
    value: Union[float, str],
    canvas: Operand,
    extent: Operand,
    fraction: float = 0.0,
    offset: float = 0.0,
) -> Expr:
    """
    Resolve one axis into an expression.

    Args:
        value: Coordinate in px, percent or raw expression form
        canvas: Canvas dimension (variable name or number)
        extent: Content extent along this axis (variable name or number)
        fraction: Share of the extent to subtract (0, 0.5 or 1)
        offset: Extra pixels to add

    Returns:
        Coordinate expression
    """
    kind, number = parse_coordinate(value)
    if kind == "percent":
        base = to_expr(canvas) * (number / 100)
    elif kind == "px":
        base = Num(number)
    else:
        base = Raw(number)

    base = base + offset

    if fraction == 0.5:
        base = base - to_expr(extent) / 2
    elif fraction:
        base = base - to_expr(extent) * fraction
    return base


def resolve_position(position: Optional[Position], frame: Frame = TEXT_FRAME) -> Tuple[Expr, Expr]:
    """
    Resolve a position into (x, y) expressions for a drawtext or overlay filter.

    Args:
        position: Position to resolve (None means the top-left origin)
        frame: Variable names for canvas and content extent

    Returns:
        Tuple of x and y expressions
    """
    position = position or Position()
    fx, fy = position.anchor.fractions if position.anchor else (0.0, 0.0)
    x = resolve_axis(position.x, frame.width, frame.extent_w, fx, position.dx)
    y = resolve_axis(position.y, frame.height, frame.extent_h, fy, position.dy)
    return x, y


def resolve_point(
    position: Optional[Position], width: int, height: int
) -> Optional[Tuple[float, float]]:
    """
    Resolve a position to numeric canvas coordinates, ignoring the anchor.

    Returns:
        (x, y) in pixels, or None when either axis is a raw expression
    """
    position = position or Position()
    result = []
    for value, canvas, offset in (
        (position.x, width, position.dx),
        (position.y, height, position.dy),
    ):
        kind, number = parse_coordinate(value)
        if kind == "expr":
            return None
        if kind == "percent":
            number = canvas * number / 100
        result.append(number + offset)
    return result[0], result[1]
