"""Layer model: one immutable pydantic model per layer kind."""

import math
from types import MappingProxyType
from typing import Annotated, Literal, Mapping, Optional, Union

from pydantic import Field, TypeAdapter, field_serializer, field_validator

from ..core.base import FrozenModel
from ..core.types import FitMode
from .animations import Animation
from .position import Position
from .styles import Style

ParamValue = Union[bool, int, float, str]


class BaseLayer(FrozenModel):
    """Timing, placement and style shared by every layer kind."""

    start_time: float = 0.0
    duration: Optional[float] = None
    position: Optional[Position] = None
    style: Optional[Style] = None

    @field_validator("start_time")
    @classmethod
    def _clamp_start(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError(f"start_time must be finite, got {v}")
        return max(0.0, v)

    @field_validator("duration")
    @classmethod
    def _check_duration(cls, v: Optional[float]) -> Optional[float]:
        if v is None:
            return v
        if not math.isfinite(v):
            raise ValueError(f"duration must be finite, got {v}")
        if v < 0:
            raise ValueError(f"duration must not be negative, got {v}")
        return v

    @property
    def end_time(self) -> Optional[float]:
        """Timeline end of the layer, or None when it runs to the end."""
        if self.duration is None:
            return None
        return self.start_time + self.duration

    def shifted(self, offset: float) -> "BaseLayer":
        """Return a copy moved later on the timeline by ``offset`` seconds."""
        return self.model_copy(update={"start_time": self.start_time + offset})


class MediaLayer(BaseLayer):
    """Base for layers backed by an input file or URL."""

    source: str
    trim_start: Optional[float] = Field(default=None, ge=0)
    trim_end: Optional[float] = Field(default=None, ge=0)

    @field_validator("source")
    @classmethod
    def _source_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("source must not be empty")
        return v


class VideoLayer(MediaLayer):
    """
    A video clip painted onto the canvas.

    Without a size the clip is fitted to the whole canvas. ``width``/``height``
    in pixels or ``scale`` as a fraction of the canvas turn it into an inset;
    ``fit`` then applies inside that box.
    """

    kind: Literal["video"] = "video"
    volume: float = Field(default=1.0, ge=0)
    audio: bool = True
    fit: FitMode = FitMode.CONTAIN
    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)
    scale: Optional[float] = Field(default=None, gt=0, le=1)
    border_width: int = Field(default=0, ge=0)
    border_color: str = "white"
    transition: Optional[Animation] = None

    @property
    def is_sized(self) -> bool:
        return self.width is not None or self.height is not None or self.scale is not None


class AudioLayer(MediaLayer):
    kind: Literal["audio"] = "audio"
    volume: float = Field(default=1.0, ge=0)
    fade_in: Optional[float] = Field(default=None, gt=0)
    fade_out: Optional[float] = Field(default=None, gt=0)
    tempo: Optional[float] = Field(default=None, gt=0)
    lowpass: Optional[float] = Field(default=None, gt=0)
    highpass: Optional[float] = Field(default=None, gt=0)
    echo_delay: Optional[float] = Field(default=None, gt=0)
    echo_decay: Optional[float] = Field(default=None, gt=0, le=1)
    loop: bool = False


class PanZoom(FrozenModel):
    """Ken Burns style zoom from ``start_zoom`` to ``end_zoom`` around a focus point."""

    start_zoom: float = Field(default=1.0, ge=1)
    end_zoom: float = Field(default=1.2, ge=1)
    focus_x: float = Field(default=0.5, ge=0, le=1)
    focus_y: float = Field(default=0.5, ge=0, le=1)


class ImageLayer(MediaLayer):
    kind: Literal["image"] = "image"
    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)
    pan_zoom: Optional[PanZoom] = None
    transition: Optional[Animation] = None


class TextLayer(BaseLayer):
    kind: Literal["text"] = "text"
    text: str = ""
    transition: Optional[Animation] = None

    @property
    def source(self) -> str:
        return self.text


class CaptionLayer(BaseLayer):
    kind: Literal["caption"] = "caption"
    text: str = ""
    animation: Optional[Animation] = None
    track_style: Optional[Style] = None
    language: Optional[str] = None

    @property
    def source(self) -> str:
        return self.text


class FilterLayer(BaseLayer):
    """A named video filter applied to the composed canvas."""

    kind: Literal["filter"] = "filter"
    name: str
    params: Mapping[str, ParamValue] = Field(default_factory=dict, validate_default=True)

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("filter name must not be empty")
        return v

    @field_validator("params")
    @classmethod
    def _freeze_params(cls, v: Mapping[str, ParamValue]) -> Mapping[str, ParamValue]:
        return MappingProxyType(dict(v))

    @field_serializer("params")
    def _dump_params(self, v: Mapping[str, ParamValue]) -> dict:
        return dict(v)


Layer = Annotated[
    Union[VideoLayer, AudioLayer, ImageLayer, TextLayer, CaptionLayer, FilterLayer],
    Field(discriminator="kind"),
]

LayerAdapter = TypeAdapter(Layer)
