"""WebVTT subtitle parsing and generation."""

import logging
import re
from typing import Iterable, List, Optional

from ..core.errors import SubtitleParseError
from .models import CaptionEntry, GenerateOptions, ParseOptions
from .srt import BOM, apply_inline_styles, normalize_text, parse_inline_styles, reindex, wrap_text
from .timecodes import TIME_RANGE, format_vtt_time, parse_timestamp

logger = logging.getLogger(__name__)

_BLOCK_SPLIT = re.compile(r"\n\s*\n")
_VOICE = re.compile(r"<v(?:\.[^\s>]*)?\s+([^>]+)>", re.I)
_CUE_TAGS = re.compile(r"</?(?:v|c|lang|ruby|rt)(?:[.\s][^>]*)?>", re.I)
_TIMESTAMP_TAG = re.compile(r"<\d+:\d{2}[:.][\d.:]+>")
_SKIPPED_BLOCKS = ("NOTE", "STYLE", "REGION")


def parse_vtt(content: str, options: Optional[ParseOptions] = None) -> List[CaptionEntry]:
    """
    Parse a WebVTT document.

    NOTE, STYLE and REGION blocks are skipped. Cue settings are kept in
    ``metadata["settings"]`` and the speaker of a ``<v>`` tag in
    ``metadata["voice"]``; bold, italic and underline tags become the style.

    Args:
        content: WebVTT document
        options: Parse options

    Returns:
        Entries sorted by start time and numbered 1..N

    Raises:
        SubtitleParseError: Missing header or malformed cue in strict mode
    """
    options = options or ParseOptions()
    content = normalize_text(content).strip()
    if not content:
        return []

    blocks = _BLOCK_SPLIT.split(content)
    if blocks[0].startswith("WEBVTT"):
        blocks = blocks[1:]
    elif options.strict:
        raise SubtitleParseError("Missing WEBVTT header", block_number=0, block=blocks[0])
    else:
        logger.warning("WebVTT document has no WEBVTT header")

    entries = []
    for number, block in enumerate(blocks, 1):
        if block.startswith(_SKIPPED_BLOCKS):
            continue
        lines = block.strip("\n").split("\n")
        cue_id = None
        if lines and "-->" not in lines[0]:
            cue_id, lines = lines[0].strip(), lines[1:]

        match = TIME_RANGE.match(lines[0]) if lines else None
        start = parse_timestamp(match.group(1)) if match else None
        end = parse_timestamp(match.group(2)) if match else None
        if start is None or end is None:
            if options.strict:
                raise SubtitleParseError(
                    f"Malformed WebVTT cue {number}", block_number=number, block=block
                )
            logger.warning(f"Skipping malformed WebVTT cue {number}: {block[:40]!r}")
            continue

        text = "\n".join(line.rstrip() for line in lines[1:])
        metadata = {}
        settings = match.group(3).strip()
        if settings:
            metadata["settings"] = settings
        voice = _VOICE.search(text)
        if voice:
            metadata["voice"] = voice.group(1).strip()
        text = _TIMESTAMP_TAG.sub("", _CUE_TAGS.sub("", text))

        style = None
        if options.parse_styles:
            text, style = parse_inline_styles(text)
        if not text.strip() and not options.preserve_empty:
            continue
        entries.append(
            CaptionEntry(
                id=cue_id or "",
                text=text,
                start_time=start,
                end_time=end,
                style=style,
                metadata=metadata,
            )
        )

    entries = reindex(entries)
    for entry in entries:
        entry.id = entry.id or f"vtt_{entry.index}"
    return entries


def generate_vtt(
    entries: Iterable[CaptionEntry], options: Optional[GenerateOptions] = None
) -> str:
    """
    Render entries as WebVTT.

    Font colors have no plain WebVTT equivalent and are dropped; bold,
    italic and underline are written as tags.
    """
    options = options or GenerateOptions()
    eol = options.line_ending
    parts = [f"WEBVTT{eol}{eol}"]
    for i, entry in enumerate(sorted(entries, key=lambda e: e.start_time), 1):
        text = wrap_text(entry.text, options.max_line_length)
        if options.include_styles and entry.style is not None:
            text = apply_inline_styles(text, entry.style.model_copy(update={"color": None}))
        text = text.replace("\n", eol)
        timing = f"{format_vtt_time(entry.start_time)} --> {format_vtt_time(entry.end_time)}"
        settings = entry.metadata.get("settings")
        if settings:
            timing = f"{timing} {settings}"
        parts.append(f"{i}{eol}{timing}{eol}{text}{eol}{eol}")

    output = "".join(parts)
    if options.add_bom:
        output = BOM + output
    return output
