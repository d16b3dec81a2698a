"""Text style model, default resolution and color conversion."""

import re
from typing import Optional, Tuple

from pydantic import Field

from ..core.base import FrozenModel
from ..core.timing import format_number


class Style(FrozenModel):
    """
    Visual style for text and captions.

    Every field is optional. Unset fields are filled in at compile time from the
    caption track, then the timeline default style, then the built-in defaults.
    """

    font_size: Optional[float] = Field(default=None, gt=0)
    font_family: Optional[str] = None
    font_file: Optional[str] = None
    font_weight: Optional[str] = None
    font_style: Optional[str] = None
    text_decoration: Optional[str] = None
    color: Optional[str] = None
    stroke_color: Optional[str] = None
    stroke_width: Optional[float] = Field(default=None, ge=0)
    background_color: Optional[str] = None
    background_padding: Optional[float] = Field(default=None, ge=0)
    shadow_color: Optional[str] = None
    shadow_x: Optional[float] = None
    shadow_y: Optional[float] = None
    opacity: Optional[float] = Field(default=None, ge=0, le=1)
    scale: Optional[float] = Field(default=None, gt=0)
    rotation: Optional[float] = None
    line_spacing: Optional[float] = None
    text_align: Optional[str] = None

    def merged(self, *overrides: Optional["Style"]) -> "Style":
        """
        Return a style with the explicit fields of each override applied in order.

        Args:
            overrides: Styles whose set fields win over this one, later ones last

        Returns:
            New merged Style
        """
        data = self.model_dump(exclude_none=True)
        for override in overrides:
            if override is not None:
                data.update(override.model_dump(exclude_none=True))
        return Style(**data)

    @property
    def is_bold(self) -> bool:
        return (self.font_weight or "").lower() in ("bold", "700", "800", "900")

    @property
    def is_italic(self) -> bool:
        return (self.font_style or "").lower() == "italic"

    @property
    def is_underline(self) -> bool:
        return (self.text_decoration or "").lower() == "underline"


DEFAULT_STYLE = Style(font_size=24, color="white")


def resolve_style(*layers: Optional[Style]) -> Style:
    """
    Resolve the effective style from least to most specific.

    Args:
        layers: Styles ordered global default, track, entry

    Returns:
        Style with built-in defaults underneath
    """
    return DEFAULT_STYLE.merged(*layers)


_NAMED_COLORS = {
    "white": (255, 255, 255),
    "black": (0, 0, 0),
    "red": (255, 0, 0),
    "green": (0, 128, 0),
    "blue": (0, 0, 255),
    "yellow": (255, 255, 0),
    "cyan": (0, 255, 255),
    "magenta": (255, 0, 255),
    "gray": (128, 128, 128),
    "grey": (128, 128, 128),
    "orange": (255, 165, 0),
    "purple": (128, 0, 128),
    "pink": (255, 192, 203),
}

_RGBA = re.compile(
    r"^rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*([\d.]+)\s*)?\)$", re.I
)
_HEX = re.compile(r"^(?:#|0x)([0-9a-f]{3}|[0-9a-f]{6}|[0-9a-f]{8})(?:@([\d.]+))?$", re.I)


def parse_color(value: str) -> Optional[Tuple[int, int, int, float]]:
    """
    Parse a color into (r, g, b, alpha).

    Accepts ``#RGB``, ``#RRGGBB``, ``#RRGGBBAA``, ``0xRRGGBB[@a]``,
    ``rgb()``/``rgba()`` and common color names.

    Returns:
        Tuple of channel values and alpha in [0, 1], or None if unrecognized
    """
    text = value.strip()
    match = _HEX.match(text)
    if match:
        digits, alpha = match.group(1), match.group(2)
        if len(digits) == 3:
            digits = "".join(c * 2 for c in digits)
        r, g, b = (int(digits[i : i + 2], 16) for i in (0, 2, 4))
        a = int(digits[6:8], 16) / 255 if len(digits) == 8 else 1.0
        if alpha is not None:
            a = float(alpha)
        return r, g, b, a
    match = _RGBA.match(text)
    if match:
        r, g, b = (min(255, int(match.group(i))) for i in (1, 2, 3))
        a = float(match.group(4)) if match.group(4) is not None else 1.0
        return r, g, b, min(1.0, a)
    name = text.lower()
    if name in _NAMED_COLORS:
        return _NAMED_COLORS[name] + (1.0,)
    if name == "transparent":
        return 0, 0, 0, 0.0
    return None


def to_ffmpeg_color(value: str, opacity: Optional[float] = None) -> str:
    """
    Convert a color to FFmpeg notation (``0xRRGGBB`` or ``0xRRGGBB@alpha``).

    Args:
        value: Color in any supported notation
        opacity: Extra opacity multiplier

    Returns:
        FFmpeg color string; unknown names pass through with the opacity suffix
    """
    parsed = parse_color(value)
    if parsed is None:
        if opacity is None or opacity >= 1:
            return value
        return f"{value}@{format_number(round(opacity, 3))}"
    r, g, b, a = parsed
    if opacity is not None:
        a *= opacity
    color = f"0x{r:02X}{g:02X}{b:02X}"
    if a < 1:
        color += f"@{format_number(round(a, 3))}"
    return color


def to_ass_color(value: Optional[str], default: str = "&H00FFFFFF") -> str:
    """
    Convert a color to ASS notation ``&HAABBGGRR`` (alpha 00 is opaque).

    Args:
        value: Color in any supported notation
        default: Returned when the color is missing or unrecognized

    Returns:
        ASS color string
    """
    parsed = parse_color(value) if value else None
    if parsed is None:
        return default
    r, g, b, a = parsed
    alpha = 255 - int(round(a * 255))
    return f"&H{alpha:02X}{b:02X}{g:02X}{r:02X}"


def from_ass_color(value: str) -> Optional[str]:
    """Convert an ASS ``&HAABBGGRR`` or ``&HBBGGRR&`` color to ``#RRGGBB``."""
    digits = value.strip().strip("&").lstrip("Hh")
    if not re.fullmatch(r"[0-9A-Fa-f]{6}|[0-9A-Fa-f]{8}", digits):
        return None
    digits = digits[-6:]
    b, g, r = digits[0:2], digits[2:4], digits[4:6]
    return f"#{r}{g}{b}".upper()
