"""Subtitle format detection, dispatch and conversion."""

import json
import os
from typing import Iterable, List, Optional, Union

from pydantic import TypeAdapter, ValidationError

from ..core.errors import SubtitleParseError, UnsupportedFormatError
from ..core.types import SubtitleFormat
from .ass import generate_ass, parse_ass
from .models import CaptionEntry, GenerateOptions, ParseOptions
from .srt import BOM, generate_srt, normalize_text, parse_srt, reindex
from .timecodes import TIME_RANGE
from .vtt import generate_vtt, parse_vtt

FormatLike = Union[SubtitleFormat, str]

_EXTENSIONS = {
    ".srt": SubtitleFormat.SRT,
    ".vtt": SubtitleFormat.VTT,
    ".ass": SubtitleFormat.ASS,
    ".ssa": SubtitleFormat.ASS,
    ".json": SubtitleFormat.JSON,
}

_ENTRY_LIST = TypeAdapter(List[CaptionEntry])


def coerce_format(fmt: FormatLike) -> SubtitleFormat:
    """Normalize a format name such as ``"SRT"`` or ``".ssa"`` to a SubtitleFormat."""
    if isinstance(fmt, SubtitleFormat):
        return fmt
    name = str(fmt).strip().lower().lstrip(".")
    if name == "ssa":
        name = "ass"
    try:
        return SubtitleFormat(name)
    except ValueError:
        raise UnsupportedFormatError(f"Unsupported subtitle format: {fmt!r}") from None


def detect_format(content: str, filename: Optional[str] = None) -> SubtitleFormat:
    """
    Guess the format of a subtitle document.

    The file extension wins when it is known; otherwise the content is
    sniffed for a WEBVTT header, an ASS section header, JSON or an SRT
    timing line.

    Raises:
        UnsupportedFormatError: Nothing recognizable was found
    """
    if filename:
        ext = os.path.splitext(filename)[1].lower()
        if ext in _EXTENSIONS:
            return _EXTENSIONS[ext]

    text = normalize_text(content).lstrip()
    if text.startswith("WEBVTT"):
        return SubtitleFormat.VTT
    if "[script info]" in text[:200].lower() or "[events]" in text.lower():
        return SubtitleFormat.ASS
    if text.startswith(("{", "[")):
        return SubtitleFormat.JSON
    for line in text.split("\n"):
        if TIME_RANGE.match(line.strip()):
            return SubtitleFormat.SRT if "," in line else SubtitleFormat.VTT
    raise UnsupportedFormatError("Could not detect subtitle format")


def parse_json(content: str, options: Optional[ParseOptions] = None) -> List[CaptionEntry]:
    """Parse a JSON list of entries, or an object with an ``entries``/``captions`` list."""
    try:
        data = json.loads(normalize_text(content))
    except json.JSONDecodeError as e:
        raise SubtitleParseError(f"Invalid caption JSON: {e}") from e
    if isinstance(data, dict):
        data = data.get("entries", data.get("captions", []))
    try:
        entries = _ENTRY_LIST.validate_python(data)
    except ValidationError as e:
        raise SubtitleParseError(f"Invalid caption JSON: {e}") from e
    if options is not None and not options.preserve_empty:
        entries = [entry for entry in entries if entry.text.strip()]
    return reindex(entries)


def generate_json(entries: Iterable[CaptionEntry], indent: Optional[int] = 2) -> str:
    ordered = sorted(entries, key=lambda e: e.start_time)
    data = _ENTRY_LIST.dump_python(ordered, mode="json", by_alias=True, exclude_none=True)
    return json.dumps({"entries": data}, indent=indent, ensure_ascii=False)


def parse_subtitles(
    content: str,
    fmt: Optional[FormatLike] = None,
    options: Optional[ParseOptions] = None,
    filename: Optional[str] = None,
) -> List[CaptionEntry]:
    """
    Parse a subtitle document in any supported format.

    Args:
        content: Document text
        fmt: Format name; detected from ``filename`` or the content when omitted
        options: Parse options
        filename: Optional file name used for detection

    Returns:
        Entries sorted by start time and numbered 1..N
    """
    fmt = coerce_format(fmt) if fmt is not None else detect_format(content, filename)
    if fmt == SubtitleFormat.SRT:
        return parse_srt(content, options)
    if fmt == SubtitleFormat.VTT:
        return parse_vtt(content, options)
    if fmt == SubtitleFormat.ASS:
        return parse_ass(content, options)
    return parse_json(content, options)


def generate_subtitles(
    entries: Iterable[CaptionEntry],
    fmt: FormatLike,
    options: Optional[GenerateOptions] = None,
    **kwargs,
) -> str:
    """
    Render entries in the requested format.

    Extra keyword arguments go to the ASS generator (``width``, ``height``,
    ``title``, ``default_style``).
    """
    fmt = coerce_format(fmt)
    if fmt == SubtitleFormat.SRT:
        return generate_srt(entries, options)
    if fmt == SubtitleFormat.VTT:
        return generate_vtt(entries, options)
    if fmt == SubtitleFormat.ASS:
        line_ending = options.line_ending if options else "\n"
        output = generate_ass(entries, line_ending=line_ending, **kwargs)
        return BOM + output if options and options.add_bom else output
    return generate_json(entries)


def convert_subtitles(
    content: str,
    to_format: FormatLike,
    from_format: Optional[FormatLike] = None,
    parse_options: Optional[ParseOptions] = None,
    generate_options: Optional[GenerateOptions] = None,
) -> str:
    """Convert a subtitle document between formats; unsupported styling is dropped."""
    entries = parse_subtitles(content, from_format, parse_options)
    return generate_subtitles(entries, to_format, generate_options)
