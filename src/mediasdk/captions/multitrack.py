"""Multi-language caption tracks with auto-timing and audio synchronization."""

import bisect
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field, ValidationError

from ..core.errors import ConstructionError, TrackNotFoundError
from ..core.timing import check_finite, reading_duration
from ..core.types import SubtitleFormat
from ..media.animations import Animation, coerce_animation
from ..media.compiler import CompileSession, FilterGraphCompiler
from ..media.context import MediaContext
from ..media.layers import CaptionLayer
from ..media.position import Position
from ..media.styles import Style
from ..media.timeline import Timeline
from .formats import FormatLike, coerce_format, generate_subtitles, parse_subtitles
from .models import CaptionEntry, CaptionTrack, GenerateOptions, ParseOptions, ValidationResult
from .validation import validate_entries

logger = logging.getLogger(__name__)

StyleLike = Union[Style, Dict[str, Any], None]

DEFAULT_TRACK_STYLE = Style(
    font_family="Arial",
    font_size=32,
    font_weight="bold",
    color="#ffffff",
    stroke_color="#000000",
    stroke_width=2,
    text_align="center",
)


class SyncOptions(BaseModel):
    """Auto-timing, line-breaking and audio synchronization settings."""

    min_duration: float = Field(default=1.0, ge=0)
    max_duration: float = Field(default=7.0, gt=0)
    gap: float = 0.1  # Seconds between captions in a sequence
    reading_speed: float = Field(default=200, gt=0)  # Words per minute
    auto_break: bool = True
    max_chars_per_line: int = Field(default=60, gt=0)
    max_lines: int = Field(default=2, gt=0)
    sync_confidence: float = 0.8  # Cues must exceed this confidence
    sync_radius: float = 1.0  # Max distance (s) between a cue and a caption start


class AudioCue(BaseModel):
    time: float
    confidence: float = 1.0


def _style(value: StyleLike) -> Optional[Style]:
    if value is None or isinstance(value, Style):
        return value
    try:
        return Style.model_validate(value)
    except ValidationError as e:
        raise ConstructionError(f"Invalid style: {e}") from e


def _cue(value: Union[AudioCue, Dict[str, Any], Tuple[float, float]]) -> AudioCue:
    if isinstance(value, AudioCue):
        return value
    if isinstance(value, dict):
        return AudioCue.model_validate(value)
    time, confidence = value
    return AudioCue(time=time, confidence=confidence)


class MultiCaptionEngine:
    """
    Manages caption tracks keyed by language.

    Tracks keep their entries sorted by start time after every change. Tracks
    can be exported to any subtitle format, rendered as caption layers on a
    Timeline, or compiled straight to drawtext filters.

    Example:
        >>> engine = MultiCaptionEngine()
        >>> engine.create_track("en", "English", priority=2)
        >>> engine.add_caption_sequence("en", ["Hello there", "Welcome back"])
        >>> srt = engine.export_captions("en", "srt")
    """

    def __init__(self, ctx: Optional[MediaContext] = None):
        self.ctx = ctx
        self._tracks: Dict[str, CaptionTrack] = {}
        self._counters: Dict[str, int] = {}
        self._defaults = DEFAULT_TRACK_STYLE
        self._sync = SyncOptions()

    @property
    def global_defaults(self) -> Style:
        return self._defaults

    @property
    def sync_options(self) -> SyncOptions:
        return self._sync

    def set_global_defaults(self, style: StyleLike) -> None:
        """Merge ``style`` into the defaults used by tracks created afterwards."""
        self._defaults = self._defaults.merged(_style(style))

    def set_sync_options(self, options: Union[SyncOptions, None] = None, **changes: Any) -> None:
        data = self._sync.model_dump()
        if options is not None:
            data.update(options.model_dump())
        data.update(changes)
        try:
            self._sync = SyncOptions(**data)
        except ValidationError as e:
            raise ConstructionError(f"Invalid sync options: {e}") from e

    # Tracks

    def create_track(
        self,
        language: str,
        language_name: Optional[str] = None,
        default_style: StyleLike = None,
        position: Union[Position, str, dict, None] = None,
        priority: int = 0,
    ) -> CaptionTrack:
        """
        Create an empty track for ``language``.

        An existing track for the same language is replaced.

        Args:
            language: Language code, also the track key
            language_name: Human readable name
            default_style: Merged over the global defaults
            position: Track-level caption position
            priority: Higher priorities are listed first and painted on top

        Returns:
            The new CaptionTrack
        """
        if not language or not language.strip():
            raise ConstructionError("language must not be empty")
        if language in self._tracks:
            logger.warning(f"Replacing existing caption track for '{language}'")
        try:
            track = CaptionTrack(
                id=f"track_{language}",
                language=language,
                language_name=language_name,
                default_style=self._defaults.merged(_style(default_style)),
                position=Position.coerce(position) if position is not None else None,
                priority=priority,
            )
        except (ValidationError, ValueError) as e:
            raise ConstructionError(f"Invalid caption track: {e}") from e
        self._tracks[language] = track
        self._counters[language] = 0
        return track

    def get_track(self, language: str) -> CaptionTrack:
        try:
            return self._tracks[language]
        except KeyError:
            raise TrackNotFoundError(language) from None

    def get_all_tracks(self) -> List[CaptionTrack]:
        """Tracks ordered by priority, highest first."""
        return sorted(self._tracks.values(), key=lambda track: -track.priority)

    def remove_track(self, language: str) -> bool:
        self._counters.pop(language, None)
        return self._tracks.pop(language, None) is not None

    # Captions

    def add_caption(
        self,
        language: str,
        text: str,
        start_time: float,
        end_time: float,
        style: StyleLike = None,
        position: Union[Position, str, dict, None] = None,
        animation: Union[Animation, str, dict, None] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> CaptionEntry:
        """
        Insert a caption, keeping the track sorted by start time.

        Inverted or empty time ranges are accepted here and reported by
        :meth:`validate_track`.

        Raises:
            TrackNotFoundError: No track exists for ``language``
            ConstructionError: Times are not finite or a field is invalid
        """
        track = self.get_track(language)
        try:
            check_finite("start_time", start_time)
            check_finite("end_time", end_time)
            self._counters[language] += 1
            entry = CaptionEntry(
                id=f"{track.id}_{self._counters[language]}",
                text=text,
                start_time=start_time,
                end_time=end_time,
                style=_style(style),
                position=Position.coerce(position) if position is not None else None,
                animation=coerce_animation(animation),
                metadata=metadata or {},
            )
        except (ValidationError, ValueError) as e:
            raise ConstructionError(f"Invalid caption: {e}") from e

        starts = [existing.start_time for existing in track.entries]
        track.entries.insert(bisect.bisect_right(starts, start_time), entry)
        for i, existing in enumerate(track.entries, 1):
            existing.index = i
        return entry

    def add_caption_sequence(
        self,
        language: str,
        texts: Sequence[str],
        start_time: float = 0.0,
        duration: Optional[float] = None,
        gap: Optional[float] = None,
        style: StyleLike = None,
        animation: Union[Animation, str, dict, None] = None,
    ) -> List[CaptionEntry]:
        """
        Append captions back to back with reading-speed durations.

        Args:
            language: Target track
            texts: Caption texts in display order
            start_time: Start of the first caption
            duration: Fixed duration for every caption instead of the heuristic
            gap: Seconds between captions (defaults to the sync options gap)
            style: Style applied to every caption
            animation: Animation applied to every caption

        Returns:
            The created entries in display order
        """
        gap = self._sync.gap if gap is None else gap
        current = start_time
        entries = []
        for text in texts:
            length = duration if duration is not None else self.calculate_optimal_duration(text)
            if self._sync.auto_break:
                text = "\n".join(self.break_text(text))
            entries.append(
                self.add_caption(
                    language,
                    text,
                    current,
                    current + length,
                    style=style,
                    animation=animation,
                )
            )
            current += length + gap
        return entries

    def calculate_optimal_duration(self, text: str) -> float:
        """Reading time of ``text`` clamped to the configured duration range."""
        return reading_duration(
            text,
            words_per_minute=self._sync.reading_speed,
            min_duration=self._sync.min_duration,
            max_duration=self._sync.max_duration,
            padding=0.0,
        )

    def break_text(self, text: str) -> List[str]:
        """
        Greedily wrap ``text`` to ``max_chars_per_line``.

        Words that do not fit in ``max_lines`` lines are kept on the last line.
        """
        limit = self._sync.max_chars_per_line
        lines: List[str] = []
        current = ""
        for word in text.split():
            candidate = f"{current} {word}" if current else word
            if len(candidate) <= limit or not current:
                current = candidate
            else:
                lines.append(current)
                current = word
        if current:
            lines.append(current)

        max_lines = self._sync.max_lines
        if len(lines) > max_lines:
            lines = lines[: max_lines - 1] + [" ".join(lines[max_lines - 1 :])]
        return lines

    def synchronize_with_audio(
        self,
        language: str,
        cues: Iterable[Union[AudioCue, Dict[str, Any], Tuple[float, float]]],
    ) -> int:
        """
        Snap caption starts to nearby audio cues.

        For each caption the nearest cue within ``sync_radius`` whose
        confidence exceeds ``sync_confidence`` is chosen, and the caption is
        shifted so its start lands on the cue. Durations never change. The
        track is re-sorted afterwards.

        Args:
            language: Track to adjust
            cues: Cues as AudioCue, ``{"time", "confidence"}`` dicts or tuples

        Returns:
            Number of captions that moved
        """
        track = self.get_track(language)
        candidates = [
            cue for cue in map(_cue, cues) if cue.confidence > self._sync.sync_confidence
        ]
        moved = 0
        for entry in track.entries:
            nearest = None
            for cue in candidates:
                distance = abs(cue.time - entry.start_time)
                if distance <= self._sync.sync_radius and (
                    nearest is None or distance < abs(nearest.time - entry.start_time)
                ):
                    nearest = cue
            if nearest is None or nearest.time == entry.start_time:
                continue
            offset = nearest.time - entry.start_time
            entry.start_time += offset
            entry.end_time += offset
            moved += 1

        track.sort_entries()
        logger.debug(f"Synchronized {moved} of {len(track.entries)} captions in '{language}'")
        return moved

    # Rendering

    def _enabled_tracks(self, languages: Optional[Iterable[str]]) -> List[CaptionTrack]:
        wanted = set(languages) if languages is not None else None
        return [
            track
            for track in self.get_all_tracks()
            if track.enabled and (wanted is None or track.language in wanted)
        ]

    def to_layers(self, languages: Optional[Iterable[str]] = None) -> List[CaptionLayer]:
        """
        Convert enabled tracks into caption layers.

        Lower-priority tracks come first so higher-priority tracks paint on top.
        """
        layers = []
        for track in reversed(self._enabled_tracks(languages)):
            for entry in track.entries:
                text = entry.text
                if self._sync.auto_break and "\n" not in text:
                    text = "\n".join(self.break_text(text))
                layers.append(
                    CaptionLayer(
                        text=text,
                        start_time=entry.start_time,
                        duration=max(0.0, entry.end_time - entry.start_time),
                        position=entry.position or track.position or Position.preset("bottom"),
                        style=entry.style,
                        track_style=track.default_style,
                        animation=entry.animation,
                        language=track.language,
                    )
                )
        return layers

    def apply_to_timeline(
        self, timeline: Timeline, languages: Optional[Iterable[str]] = None
    ) -> Timeline:
        """Return a new Timeline with the caption layers appended."""
        return Timeline(
            tuple(timeline.layers) + tuple(self.to_layers(languages)),
            timeline.global_options,
        )

    def generate_filters(
        self,
        languages: Optional[Iterable[str]] = None,
        timeline: Optional[Timeline] = None,
    ) -> str:
        """
        Render enabled tracks as a comma-joined drawtext filter chain.

        Args:
            languages: Restrict to these languages
            timeline: Supplies canvas size and default style (an empty
                Timeline is used when omitted)

        Returns:
            Filter chain text for a single video stream
        """
        layers = self.to_layers(languages)
        base = timeline if timeline is not None else Timeline()
        composed = Timeline(layers, base.global_options)
        compiler = FilterGraphCompiler(composed, self.ctx)
        width, height = composed.canvas_size
        session = CompileSession(width, height, composed.global_options.fps, composed.get_duration())
        return ",".join(compiler.drawtext_filter(layer, session).render() for layer in layers)

    # Import / export

    def export_captions(
        self,
        language: str,
        fmt: FormatLike = SubtitleFormat.SRT,
        options: Optional[GenerateOptions] = None,
    ) -> str:
        """
        Export one track as subtitle text.

        JSON exports the whole track including its settings; ASS uses the
        track's default style for the ``Default`` style.
        """
        track = self.get_track(language)
        fmt = coerce_format(fmt)
        if fmt == SubtitleFormat.JSON:
            return track.model_dump_json(by_alias=True, exclude_none=True, indent=2)
        if fmt == SubtitleFormat.ASS:
            return generate_subtitles(
                track.entries,
                fmt,
                options,
                title=track.language_name or track.language,
                default_style=track.default_style,
            )
        return generate_subtitles(track.entries, fmt, options)

    def export_all(
        self,
        fmt: FormatLike = SubtitleFormat.SRT,
        max_workers: int = 4,
        options: Optional[GenerateOptions] = None,
    ) -> Dict[str, str]:
        """
        Export every track in parallel.

        Returns:
            Mapping of language to subtitle text
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        languages = [track.language for track in self.get_all_tracks()]
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = pool.map(lambda lang: self.export_captions(lang, fmt, options), languages)
            return dict(zip(languages, results))

    def import_captions(
        self,
        language: str,
        content: str,
        fmt: Optional[FormatLike] = None,
        options: Optional[ParseOptions] = None,
        replace: bool = False,
    ) -> int:
        """
        Parse subtitle text into a track, creating the track when needed.

        Args:
            language: Target track
            content: Subtitle document
            fmt: Format; detected from the content when omitted
            options: Parse options
            replace: Drop existing entries first

        Returns:
            Number of imported captions
        """
        entries = parse_subtitles(content, fmt, options)
        if language not in self._tracks:
            self.create_track(language)
        elif replace:
            self._tracks[language].entries.clear()
            self._counters[language] = 0

        for entry in entries:
            self.add_caption(
                language,
                entry.text,
                entry.start_time,
                entry.end_time,
                style=entry.style,
                position=entry.position,
                animation=entry.animation,
                metadata=entry.metadata,
            )
        logger.info(f"Imported {len(entries)} captions into '{language}'")
        return len(entries)

    # Inspection

    def validate_track(self, language: str) -> ValidationResult:
        return validate_entries(self.get_track(language).entries)

    def get_statistics(self) -> Dict[str, Any]:
        tracks = self.get_all_tracks()
        total_captions = sum(len(track.entries) for track in tracks)
        total_chars = sum(len(entry.text) for track in tracks for entry in track.entries)
        return {
            "total_tracks": len(tracks),
            "total_captions": total_captions,
            "total_duration": sum(
                entry.duration for track in tracks for entry in track.entries
            ),
            "average_caption_length": total_chars / total_captions if total_captions else 0.0,
            "language_distribution": {track.language: len(track.entries) for track in tracks},
        }
