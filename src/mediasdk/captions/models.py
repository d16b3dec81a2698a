"""Pydantic models for caption entries, tracks and subtitle processing options."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..media.animations import Animation
from ..media.position import Position
from ..media.styles import Style


class _CaptionModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CaptionEntry(_CaptionModel):
    """One timed caption."""

    id: str = ""
    index: int = 0
    text: str
    start_time: float
    end_time: float
    style: Optional[Style] = None
    position: Optional[Position] = None
    animation: Optional[Animation] = None
    confidence: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


class CaptionTrack(_CaptionModel):
    """Captions for one language, kept sorted by start time."""

    id: str
    language: str
    language_name: Optional[str] = None
    entries: List[CaptionEntry] = Field(default_factory=list)
    default_style: Optional[Style] = None
    position: Optional[Position] = None
    enabled: bool = True
    priority: int = 0

    def sort_entries(self) -> None:
        """Stable sort by start time and renumber from 1."""
        self.entries.sort(key=lambda entry: entry.start_time)
        for i, entry in enumerate(self.entries, 1):
            entry.index = i


class ParseOptions(BaseModel):
    """Subtitle parsing options."""

    strict: bool = False  # Raise on malformed blocks instead of skipping them
    parse_styles: bool = True  # Extract <b>/<i>/<u>/<font> tags into the style
    preserve_empty: bool = False  # Keep entries whose text is empty


class GenerateOptions(BaseModel):
    """Subtitle generation options."""

    include_styles: bool = True
    line_ending: Literal["\n", "\r\n"] = "\n"
    max_line_length: int = Field(default=0, ge=0)  # 0 = no wrapping
    add_bom: bool = False


class ValidationStats(BaseModel):
    entry_count: int = 0
    total_duration: float = 0.0
    average_display_time: float = 0.0
    overlapping_count: int = 0
    gap_count: int = 0


class ValidationResult(BaseModel):
    """Validation findings; errors must be fixed, warnings should be reviewed."""

    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    stats: ValidationStats = Field(default_factory=ValidationStats)
