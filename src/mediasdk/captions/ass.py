"""ASS/SSA subtitle parsing and generation."""

import logging
import re
from typing import Iterable, List, Optional

from ..core.errors import SubtitleParseError
from ..core.timing import format_number
from ..core.types import Anchor, AnimationType
from ..media.animations import Animation
from ..media.position import Position, resolve_point
from ..media.styles import Style, from_ass_color, to_ass_color
from .models import CaptionEntry, ParseOptions
from .srt import normalize_text, reindex
from .timecodes import format_ass_time, parse_timestamp

logger = logging.getLogger(__name__)

STYLE_FORMAT = (
    "Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, "
    "BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, "
    "Angle, BorderStyle, Outline, Shadow, Alignment, MarginL, MarginR, MarginV, Encoding"
)
EVENT_FORMAT = "Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text"
DEFAULT_EVENT_FIELDS = [f.strip().lower() for f in EVENT_FORMAT.split(",")]

# Numpad alignment used by \an
ALIGNMENT = {
    Anchor.BOTTOM_LEFT: 1,
    Anchor.BOTTOM_CENTER: 2,
    Anchor.BOTTOM_RIGHT: 3,
    Anchor.CENTER_LEFT: 4,
    Anchor.CENTER: 5,
    Anchor.CENTER_RIGHT: 6,
    Anchor.TOP_LEFT: 7,
    Anchor.TOP_CENTER: 8,
    Anchor.TOP_RIGHT: 9,
}
ANCHORS = {number: anchor for anchor, number in ALIGNMENT.items()}

ASS_DEFAULT_STYLE = Style(
    font_family="Arial",
    font_size=32,
    color="#ffffff",
    stroke_color="#000000",
    stroke_width=2,
)

_OVERRIDE = re.compile(r"\{([^}]*)\}")
_TAG = re.compile(r"\\(an|pos|fad|fs|bord|1c|3c|c|b|i|u)(\([^)]*\)|&H[0-9A-Fa-f]+&?|[\d.]+)?(?=\\|$)")


def _flag(value: bool) -> str:
    return "-1" if value else "0"


def _override_tags(entry: CaptionEntry, width: int, height: int) -> str:
    style = entry.style
    tags = []
    if style is not None:
        if style.is_bold:
            tags.append("\\b1")
        if style.is_italic:
            tags.append("\\i1")
        if style.is_underline:
            tags.append("\\u1")
        if style.font_size:
            tags.append(f"\\fs{format_number(style.font_size)}")
        if style.color:
            tags.append(f"\\c&H{to_ass_color(style.color)[4:]}&")
        if style.stroke_color:
            tags.append(f"\\3c&H{to_ass_color(style.stroke_color)[4:]}&")
        if style.stroke_width is not None:
            tags.append(f"\\bord{format_number(style.stroke_width)}")

    if entry.position is not None:
        point = resolve_point(entry.position, width, height)
        if point is not None:
            anchor = entry.position.anchor or Anchor.TOP_LEFT
            x, y = (format_number(round(v, 2)) for v in point)
            tags.append(f"\\an{ALIGNMENT[anchor]}\\pos({x},{y})")

    animation = entry.animation
    if animation is not None and animation.type in (
        AnimationType.FADE,
        AnimationType.FADE_IN,
        AnimationType.FADE_OUT,
    ):
        ms = int(round(animation.duration * 1000))
        fade_in = ms if animation.type != AnimationType.FADE_OUT else 0
        fade_out = ms if animation.type != AnimationType.FADE_IN else 0
        tags.append(f"\\fad({fade_in},{fade_out})")

    return "{" + "".join(tags) + "}" if tags else ""


def generate_ass(
    entries: Iterable[CaptionEntry],
    width: int = 1920,
    height: int = 1080,
    title: str = "mediasdk captions",
    default_style: Optional[Style] = None,
    line_ending: str = "\n",
) -> str:
    """
    Render entries as an ASS script.

    Per-entry bold, italic, underline, size, colors, outline width, numeric
    positions and fades become override tags. Backgrounds, shadows and
    non-fade animations are not written.

    Args:
        entries: Entries to write
        width: PlayResX of the script
        height: PlayResY of the script
        title: Script title
        default_style: Style of the ``Default`` ASS style
        line_ending: Line terminator

    Returns:
        ASS document
    """
    base = ASS_DEFAULT_STYLE.merged(default_style)
    style_line = ",".join(
        [
            "Style: Default",
            base.font_family,
            format_number(base.font_size),
            to_ass_color(base.color),
            "&H000000FF",
            to_ass_color(base.stroke_color, "&H00000000"),
            to_ass_color(base.background_color, "&H80000000"),
            _flag(base.is_bold),
            _flag(base.is_italic),
            _flag(base.is_underline),
            "0",
            "100",
            "100",
            "0",
            "0",
            "1",
            format_number(base.stroke_width or 0),
            format_number(base.shadow_x or 0),
            "2",
            "10",
            "10",
            "10",
            "1",
        ]
    )

    lines = [
        "[Script Info]",
        f"Title: {title}",
        "ScriptType: v4.00+",
        f"PlayResX: {width}",
        f"PlayResY: {height}",
        "WrapStyle: 0",
        "",
        "[V4+ Styles]",
        f"Format: {STYLE_FORMAT}",
        style_line,
        "",
        "[Events]",
        f"Format: {EVENT_FORMAT}",
    ]
    for entry in sorted(entries, key=lambda e: e.start_time):
        text = _override_tags(entry, width, height) + entry.text.replace("\n", "\\N")
        lines.append(
            f"Dialogue: 0,{format_ass_time(entry.start_time)},{format_ass_time(entry.end_time)},"
            f"Default,,0,0,0,,{text}"
        )
    return line_ending.join(lines) + line_ending


def _apply_tags(block: str, fields: dict, position: dict, animation: dict) -> None:
    for name, value in _TAG.findall(block):
        value = value.strip()
        if name == "b" and value not in ("", "0"):
            fields["font_weight"] = "bold"
        elif name == "i" and value == "1":
            fields["font_style"] = "italic"
        elif name == "u" and value == "1":
            fields["text_decoration"] = "underline"
        elif name in ("c", "1c"):
            color = from_ass_color(value)
            if color:
                fields["color"] = color
        elif name == "3c":
            color = from_ass_color(value)
            if color:
                fields["stroke_color"] = color
        elif name == "fs" and value:
            fields["font_size"] = float(value)
        elif name == "bord" and value:
            fields["stroke_width"] = float(value)
        elif name == "an" and value.isdigit():
            position["anchor"] = ANCHORS.get(int(value))
        elif name == "pos":
            x, _, y = value.strip("()").partition(",")
            position["x"], position["y"] = float(x), float(y)
        elif name == "fad":
            fade_in, _, fade_out = value.strip("()").partition(",")
            animation["in"], animation["out"] = int(fade_in), int(fade_out or 0)


def _parse_text(raw: str):
    fields: dict = {}
    position: dict = {}
    animation: dict = {}
    for block in _OVERRIDE.findall(raw):
        _apply_tags(block, fields, position, animation)
    text = _OVERRIDE.sub("", raw).replace("\\N", "\n").replace("\\n", "\n").replace("\\h", " ")

    style = Style(**fields) if fields else None
    pos = None
    if "x" in position:
        pos = Position(x=position["x"], y=position["y"], anchor=position.get("anchor"))
    anim = None
    if animation:
        fade_in, fade_out = animation["in"], animation["out"]
        if fade_in and fade_out:
            anim = Animation(type=AnimationType.FADE, duration=max(fade_in, fade_out) / 1000)
        elif fade_in:
            anim = Animation(type=AnimationType.FADE_IN, duration=fade_in / 1000)
        elif fade_out:
            anim = Animation(type=AnimationType.FADE_OUT, duration=fade_out / 1000)
    return text, style, pos, anim


def parse_ass(content: str, options: Optional[ParseOptions] = None) -> List[CaptionEntry]:
    """
    Parse the ``[Events]`` section of an ASS/SSA script.

    Override tags for bold, italic, underline, colors, size, outline,
    position and fade are read into each entry; other tags are stripped.

    Args:
        content: ASS or SSA document
        options: Parse options

    Returns:
        Entries sorted by start time and numbered 1..N

    Raises:
        SubtitleParseError: A Dialogue line is malformed in strict mode
    """
    options = options or ParseOptions()
    section = None
    fields = DEFAULT_EVENT_FIELDS
    entries = []

    for number, line in enumerate(normalize_text(content).split("\n"), 1):
        line = line.strip()
        if line.startswith("[") and line.endswith("]"):
            section = line.lower()
            continue
        if section != "[events]":
            continue
        if line.lower().startswith("format:"):
            fields = [f.strip().lower() for f in line.split(":", 1)[1].split(",")]
            continue
        if not line.lower().startswith("dialogue:"):
            continue

        values = line.split(":", 1)[1].lstrip().split(",", len(fields) - 1)
        record = dict(zip(fields, values))
        start = parse_timestamp(record.get("start", ""))
        end = parse_timestamp(record.get("end", ""))
        if len(values) != len(fields) or start is None or end is None:
            if options.strict:
                raise SubtitleParseError(
                    f"Malformed ASS dialogue on line {number}", block_number=number, block=line
                )
            logger.warning(f"Skipping malformed ASS dialogue on line {number}")
            continue

        text, style, position, animation = _parse_text(record.get("text", ""))
        if not options.parse_styles:
            style = None
        if not text.strip() and not options.preserve_empty:
            continue
        metadata = {}
        if record.get("name"):
            metadata["speaker"] = record["name"]
        entries.append(
            CaptionEntry(
                text=text,
                start_time=start,
                end_time=end,
                style=style,
                position=position,
                animation=animation,
                metadata=metadata,
            )
        )

    entries = reindex(entries)
    for entry in entries:
        entry.id = f"ass_{entry.index}"
    return entries
