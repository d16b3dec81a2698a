"""SRT subtitle parsing, generation, validation and track utilities."""

import logging
import re
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Tuple, Union

from ..core.errors import MediaSDKError, SubtitleParseError
from ..core.timing import reading_duration
from ..media.styles import Style
from .models import CaptionEntry, GenerateOptions, ParseOptions, ValidationResult
from .timecodes import TIME_RANGE, format_srt_time, parse_timestamp
from .validation import validate_entries

if TYPE_CHECKING:
    from ..media.timeline import Timeline

logger = logging.getLogger(__name__)

BOM = "\ufeff"
_BLOCK_SPLIT = re.compile(r"\n\s*\n")
_FONT_COLOR = re.compile(r"""<font\s+color=["']?([^"'>]+)["']?\s*>""", re.I)
_SENTENCE = re.compile(r"[^.!?]+(?:[.!?]+|$)")


def normalize_text(content: str) -> str:
    """Drop a byte-order mark and normalize line endings to ``\\n``."""
    return content.lstrip(BOM).replace("\r\n", "\n").replace("\r", "\n")


def parse_inline_styles(text: str) -> Tuple[str, Optional[Style]]:
    """
    Extract ``<b>``, ``<i>``, ``<u>`` and ``<font color>`` tags.

    Returns:
        Text without the tags, and the style they described (None if untagged)
    """
    fields = {}
    for tag, field, value in (
        ("b", "font_weight", "bold"),
        ("i", "font_style", "italic"),
        ("u", "text_decoration", "underline"),
    ):
        if re.search(rf"<{tag}>.*?</{tag}>", text, re.I | re.S):
            fields[field] = value
            text = re.sub(rf"</?{tag}>", "", text, flags=re.I)

    match = _FONT_COLOR.search(text)
    if match:
        fields["color"] = match.group(1)
        text = re.sub(r"</?font[^>]*>", "", text, flags=re.I)

    return text, (Style(**fields) if fields else None)


def apply_inline_styles(text: str, style: Optional[Style]) -> str:
    """Wrap text in the tags for its style, innermost bold, outermost font color."""
    if style is None:
        return text
    if style.is_bold:
        text = f"<b>{text}</b>"
    if style.is_italic:
        text = f"<i>{text}</i>"
    if style.is_underline:
        text = f"<u>{text}</u>"
    if style.color:
        text = f'<font color="{style.color}">{text}</font>'
    return text


def wrap_text(text: str, max_length: int) -> str:
    """Greedy word wrap of each line to ``max_length`` characters."""
    if max_length <= 0:
        return text
    wrapped = []
    for line in text.split("\n"):
        current = ""
        for word in line.split(" "):
            if current and len(current) + len(word) + 1 > max_length:
                wrapped.append(current)
                current = word
            else:
                current = f"{current} {word}" if current else word
        wrapped.append(current)
    return "\n".join(wrapped)


def reindex(entries: Iterable[CaptionEntry]) -> List[CaptionEntry]:
    """Stable sort by start time and number entries from 1."""
    ordered = sorted(entries, key=lambda entry: entry.start_time)
    for i, entry in enumerate(ordered, 1):
        entry.index = i
    return ordered


class SRTHandler:
    """
    Reads, writes and validates SRT subtitles.

    Example:
        >>> handler = SRTHandler()
        >>> entries = handler.parse_srt(open("movie.srt").read())
        >>> handler.validate_srt(entries).valid
        True
    """

    def __init__(
        self,
        parse_options: Optional[ParseOptions] = None,
        generate_options: Optional[GenerateOptions] = None,
    ):
        self.parse_options = parse_options or ParseOptions()
        self.generate_options = generate_options or GenerateOptions()

    def parse_srt(
        self, content: str, options: Optional[ParseOptions] = None
    ) -> List[CaptionEntry]:
        """
        Parse SRT text into entries.

        Each block needs an integer index line, a time range line and text.
        Malformed blocks are skipped with a warning, or raise in strict mode.
        Input indices are never trusted: entries come back sorted by start
        time and numbered 1..N.

        Args:
            content: SRT document
            options: Overrides the handler's parse options

        Returns:
            Parsed entries

        Raises:
            SubtitleParseError: A block is malformed and strict mode is on
        """
        options = options or self.parse_options
        content = normalize_text(content).strip()
        if not content:
            return []

        entries = []
        for number, block in enumerate(_BLOCK_SPLIT.split(content), 1):
            lines = block.strip("\n").split("\n")
            entry = self._parse_block(lines, options)
            if entry is None:
                if options.strict:
                    raise SubtitleParseError(
                        f"Malformed SRT block {number}", block_number=number, block=block
                    )
                logger.warning(f"Skipping malformed SRT block {number}: {block[:40]!r}")
                continue
            if not entry.text.strip() and not options.preserve_empty:
                logger.debug(f"Skipping empty SRT block {number}")
                continue
            entries.append(entry)

        entries = reindex(entries)
        for entry in entries:
            entry.id = f"srt_{entry.index}"
        return entries

    def _parse_block(
        self, lines: List[str], options: ParseOptions
    ) -> Optional[CaptionEntry]:
        min_lines = 2 if options.preserve_empty else 3
        if len(lines) < min_lines:
            return None
        try:
            int(lines[0].strip())
        except ValueError:
            return None
        match = TIME_RANGE.match(lines[1])
        if not match:
            return None
        start = parse_timestamp(match.group(1))
        end = parse_timestamp(match.group(2))
        if start is None or end is None:
            return None

        text = "\n".join(line.rstrip() for line in lines[2:])
        style = None
        if options.parse_styles:
            text, style = parse_inline_styles(text)
        return CaptionEntry(text=text, start_time=start, end_time=end, style=style)

    def generate_srt(
        self, entries: Iterable[CaptionEntry], options: Optional[GenerateOptions] = None
    ) -> str:
        """
        Render entries as SRT.

        Entries are written in start-time order and numbered from 1; the
        entries themselves are not modified.

        Args:
            entries: Entries to write
            options: Overrides the handler's generate options

        Returns:
            SRT document
        """
        options = options or self.generate_options
        eol = options.line_ending
        ordered = sorted(entries, key=lambda entry: entry.start_time)

        blocks = []
        for i, entry in enumerate(ordered, 1):
            text = wrap_text(entry.text, options.max_line_length)
            if options.include_styles:
                text = apply_inline_styles(text, entry.style)
            text = text.replace("\n", eol)
            timing = f"{format_srt_time(entry.start_time)} --> {format_srt_time(entry.end_time)}"
            blocks.append(f"{i}{eol}{timing}{eol}{text}{eol}{eol}")

        output = "".join(blocks)
        if options.add_bom:
            output = BOM + output
        return output

    def validate_srt(
        self, entries: Union[str, Sequence[CaptionEntry]], gap_threshold: float = 5.0
    ) -> ValidationResult:
        """Validate entries (or SRT text, parsed first)."""
        if isinstance(entries, str):
            entries = self.parse_srt(entries)
        return validate_entries(entries, gap_threshold)

    # Files

    def read_srt_file(self, path: str, encoding: str = "utf-8") -> List[CaptionEntry]:
        try:
            with open(path, "r", encoding=encoding) as f:
                content = f.read()
        except OSError as e:
            raise MediaSDKError(f"Failed to read SRT file {path}: {e}") from e
        return self.parse_srt(content)

    def write_srt_file(self, path: str, entries: Iterable[CaptionEntry]) -> None:
        content = self.generate_srt(entries)
        try:
            # newline="" keeps the configured line ending untouched
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as e:
            raise MediaSDKError(f"Failed to write SRT file {path}: {e}") from e
        logger.info(f"Wrote SRT file: {path}")

    # Track utilities

    def merge_entries(
        self, entry_lists: Iterable[Sequence[CaptionEntry]], gap: float = 0.0
    ) -> List[CaptionEntry]:
        """
        Concatenate subtitle lists back to back.

        Each list is shifted to start after the previous list's last entry
        ends, plus ``gap`` seconds. The inputs are not modified.

        Returns:
            Merged entries numbered 1..N in start-time order
        """
        merged = []
        offset = 0.0
        for entries in entry_lists:
            shifted = [
                entry.model_copy(
                    update={
                        "start_time": entry.start_time + offset,
                        "end_time": entry.end_time + offset,
                    },
                    deep=True,
                )
                for entry in entries
            ]
            merged.extend(shifted)
            if shifted:
                offset = max(entry.end_time for entry in shifted) + gap
        return reindex(merged)

    def merge_srt_files(self, paths: Iterable[str], gap: float = 0.0) -> List[CaptionEntry]:
        return self.merge_entries((self.read_srt_file(path) for path in paths), gap)

    def split_by_duration(
        self, entries: Iterable[CaptionEntry], max_duration: float
    ) -> List[List[CaptionEntry]]:
        """
        Split subtitles into chunks spanning at most ``max_duration`` seconds.

        Times in each chunk are rebased to the chunk's first entry, and each
        chunk is numbered from 1.
        """
        if max_duration <= 0:
            raise ValueError("max_duration must be positive")
        chunks: List[List[CaptionEntry]] = []
        current: List[CaptionEntry] = []
        chunk_start = 0.0
        for entry in sorted(entries, key=lambda e: e.start_time):
            if current and entry.end_time - chunk_start > max_duration:
                chunks.append(current)
                current = []
                chunk_start = entry.start_time
            current.append(
                entry.model_copy(
                    update={
                        "start_time": entry.start_time - chunk_start,
                        "end_time": entry.end_time - chunk_start,
                    },
                    deep=True,
                )
            )
        if current:
            chunks.append(current)
        return [reindex(chunk) for chunk in chunks]

    def generate_subtitles_from_text(
        self,
        text: str,
        words_per_minute: float = 150,
        min_duration: float = 1.0,
        max_duration: float = 5.0,
        gap: float = 0.1,
    ) -> List[CaptionEntry]:
        """
        Create one subtitle per sentence, timed by reading speed.

        Returns:
            Entries starting at 0, separated by ``gap`` seconds
        """
        sentences = [s.strip() for s in _SENTENCE.findall(text) if s.strip()]
        entries = []
        current = 0.0
        for i, sentence in enumerate(sentences, 1):
            duration = reading_duration(
                sentence, words_per_minute, min_duration, max_duration, padding=0.0
            )
            entries.append(
                CaptionEntry(
                    id=f"srt_{i}",
                    index=i,
                    text=sentence,
                    start_time=current,
                    end_time=current + duration,
                )
            )
            current += duration + gap
        return entries

    # Timeline bridge

    def timeline_to_srt(self, timeline: "Timeline") -> str:
        """Export the text and caption layers of a timeline as SRT."""
        total = timeline.get_duration()
        entries = [
            CaptionEntry(
                text=layer.text,
                start_time=layer.start_time,
                end_time=layer.end_time if layer.end_time is not None else total,
                style=layer.style,
            )
            for layer in timeline.layers
            if layer.kind in ("text", "caption")
        ]
        return self.generate_srt(entries)

    def srt_to_timeline(
        self,
        entries: Union[str, Sequence[CaptionEntry]],
        timeline: Optional["Timeline"] = None,
        style: Optional[Style] = None,
        position="bottom",
        transition: Optional[str] = None,
    ) -> "Timeline":
        """
        Burn subtitles into a timeline as caption layers.

        Args:
            entries: Entries or SRT text
            timeline: Timeline to extend (a new one when None)
            style: Style applied under each entry's own style
            position: Default placement for entries without a position
            transition: Optional caption animation

        Returns:
            New Timeline with one caption layer per entry
        """
        from ..media.timeline import Timeline

        if isinstance(entries, str):
            entries = self.parse_srt(entries)
        timeline = timeline if timeline is not None else Timeline()
        items = [
            {
                "text": entry.text,
                "start_time": entry.start_time,
                "end_time": entry.end_time,
                "style": entry.style,
                "position": entry.position or position,
            }
            for entry in sorted(entries, key=lambda e: e.start_time)
        ]
        return timeline.add_captions(items, style=style, transition=transition, position=position)


def parse_srt(content: str, options: Optional[ParseOptions] = None) -> List[CaptionEntry]:
    return SRTHandler(parse_options=options).parse_srt(content)


def generate_srt(
    entries: Iterable[CaptionEntry], options: Optional[GenerateOptions] = None
) -> str:
    return SRTHandler(generate_options=options).generate_srt(entries)
