"""Compilation of timeline layers into an FFmpeg command."""

import math
import shlex
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

from ..core.timing import format_number
from ..core.types import FitMode
from .animations import drawtext_params, fade_filters
from .context import MediaContext, default_context
from .effects import AUDIO_FILTERS, build_filters, supports_timeline
from .encoders import EncoderProfile
from .expr import Expr, Num, Var, window
from .graph import Filter, FilterGraph, FilterStage, Text
from .layers import (
    AudioLayer,
    BaseLayer,
    CaptionLayer,
    FilterLayer,
    ImageLayer,
    TextLayer,
    VideoLayer,
)
from .position import OVERLAY_FRAME, TEXT_FRAME, Frame, Position, resolve_position
from .styles import Style, resolve_style, to_ffmpeg_color

if TYPE_CHECKING:
    from .timeline import Timeline

_CENTER = Position.preset("center")


class CompileSession:
    """
    State for one compilation: input registry, label counters and a memo cache.

    A session is created per compile call and discarded afterwards, so nothing
    leaks between timelines compiled in parallel.
    """

    def __init__(self, width: int, height: int, fps: float, duration: float):
        self.width = width
        self.height = height
        self.fps = fps
        self.duration = duration
        self.inputs: List[Tuple[str, List[str]]] = []
        self._input_index: Dict[str, int] = {}
        self._counters: Dict[str, int] = {}
        self._streams: Dict[str, List[str]] = {}
        self.cache: Dict[tuple, object] = {}

    def input_for(self, source: str, pre_args: Sequence[str] = ()) -> int:
        """Register a media source once and return its input index."""
        if source not in self._input_index:
            self._input_index[source] = len(self.inputs)
            self.inputs.append((source, list(pre_args)))
        return self._input_index[source]

    def stream(self, ref: str) -> str:
        """Return the label to read an input stream from, consuming split outputs in order."""
        pending = self._streams.get(ref)
        if pending:
            return pending.pop(0)
        return ref

    def split_stream(self, graph: FilterGraph, ref: str, uses: int) -> None:
        """Fan an input stream out to several consumers with split or asplit."""
        name = "asplit" if ref.endswith(":a") else "split"
        labels = [self.label("s") for _ in range(uses)]
        graph.add([ref], [Filter(name, uses)], labels)
        self._streams[ref] = labels

    def label(self, prefix: str) -> str:
        n = self._counters.get(prefix, 0)
        self._counters[prefix] = n + 1
        return f"{prefix}{n}"

    def style(self, *layers: Optional[Style]) -> Style:
        key = ("style",) + layers
        if key not in self.cache:
            self.cache[key] = resolve_style(*layers)
        return self.cache[key]

    def position(self, position: Position, frame: Frame) -> Tuple[Expr, Expr]:
        key = ("position", position, frame)
        if key not in self.cache:
            self.cache[key] = resolve_position(position, frame)
        return self.cache[key]


class FilterGraphCompiler:
    """Walks layers in order and builds the FFmpeg argument list."""

    def __init__(self, timeline: "Timeline", ctx: Optional[MediaContext] = None):
        self.timeline = timeline
        self.options = timeline.global_options
        self.ctx = ctx or default_context()

    def compile(
        self, output_path: str, encoder: Optional[EncoderProfile] = None
    ) -> List[str]:
        """
        Build the FFmpeg argv for rendering the timeline.

        Args:
            output_path: Output file path
            encoder: Encoder profile (defaults to the timeline's quality/codec)

        Returns:
            List of FFmpeg arguments
        """
        width, height = self.timeline.canvas_size
        duration = self.timeline.get_duration()
        session = CompileSession(width, height, self.options.fps, duration)
        self.ctx.logger.info(f"Compiling {len(self.timeline.layers)} layers, duration {duration}s")

        for layer in self.timeline.layers:
            if isinstance(layer, ImageLayer):
                session.input_for(layer.source, ["-loop", "1"])
            elif isinstance(layer, AudioLayer) and layer.loop:
                session.input_for(layer.source, ["-stream_loop", "-1"])
            elif isinstance(layer, (VideoLayer, AudioLayer)):
                session.input_for(layer.source)
        self.ctx.logger.debug(f"Registered {len(session.inputs)} inputs")

        graph = FilterGraph()
        self._split_shared_inputs(graph, session)
        self._build_video(graph, session)
        has_audio = self._build_audio(graph, session)
        self.ctx.logger.debug(f"Filter graph has {len(graph)} stages")

        argv = self.ctx.command_prefix()
        for source, pre_args in session.inputs:
            argv.extend(pre_args)
            argv.extend(["-i", source])

        argv.extend(["-filter_complex", graph.render()])
        argv.extend(["-map", "[vout]"])
        if has_audio:
            argv.extend(["-map", "[aout]"])

        trim = self.options.trim
        if trim is not None:
            argv.extend(["-ss", format_number(trim.start)])
            end = trim.end if trim.end is not None else duration
            argv.extend(["-t", format_number(max(0.0, end - trim.start))])
        else:
            argv.extend(["-t", format_number(duration)])

        argv.extend(["-r", format_number(self.options.fps)])

        encoder = encoder or EncoderProfile.from_quality(
            self.options.quality, self.options.codec
        )
        argv.extend(encoder.args(output_path, has_audio=has_audio))
        return argv

    def _split_shared_inputs(self, graph: FilterGraph, session: CompileSession) -> None:
        uses: Dict[str, int] = {}
        for layer in self.timeline.layers:
            refs = []
            if isinstance(layer, (VideoLayer, ImageLayer)):
                refs.append("v")
            if isinstance(layer, AudioLayer) or (isinstance(layer, VideoLayer) and layer.audio):
                refs.append("a")
            for kind in refs:
                ref = f"{session.input_for(layer.source)}:{kind}"
                uses[ref] = uses.get(ref, 0) + 1
        for ref, count in uses.items():
            if count > 1:
                session.split_stream(graph, ref, count)

    # Visibility

    def _enable(self, layer: BaseLayer, session: CompileSession) -> Optional[Expr]:
        start = layer.start_time
        end = layer.end_time
        if end is None:
            if start <= 0:
                return None
            end = session.duration
        elif start <= 0 and end >= session.duration:
            return None
        return window(start, end)

    def _effective_end(self, layer: BaseLayer, session: CompileSession) -> float:
        end = layer.end_time
        return session.duration if end is None else end

    # Video

    def _build_video(self, graph: FilterGraph, session: CompileSession) -> None:
        options = self.options
        base = Filter(
            "color",
            c=to_ffmpeg_color(options.background_color),
            s=f"{session.width}x{session.height}",
            r=session.fps,
            d=session.duration,
        )
        last = graph.add([], [base], ["base"])
        current = "base"

        for layer in self.timeline.layers:
            if isinstance(layer, (VideoLayer, ImageLayer)):
                stage = self._overlay_stage(graph, session, layer, current)
            elif isinstance(layer, (TextLayer, CaptionLayer)):
                stage = self._drawtext_stage(graph, session, layer, current)
            elif isinstance(layer, FilterLayer):
                if layer.name in AUDIO_FILTERS:
                    continue
                stage = self._filter_stage(graph, session, layer, current)
            else:
                continue
            last = stage
            current = stage.outputs[0]

        post = []
        if options.crop is not None:
            c = options.crop
            post.append(Filter("crop", c.width, c.height, c.x, c.y))
        if options.scale is not None:
            post.append(Filter("scale", options.scale.width, options.scale.height))
        if post:
            graph.add([current], post, ["vout"])
        else:
            last.outputs = ["vout"]

    def _overlay_stage(self, graph, session, layer, current) -> FilterStage:
        idx = session.input_for(layer.source)
        start = layer.start_time
        end = self._effective_end(layer, session)
        style = layer.style or Style()
        prep: List[Filter] = []

        if layer.trim_start is not None or layer.trim_end is not None:
            prep.append(Filter("trim", start=layer.trim_start, end=layer.trim_end))

        if isinstance(layer, VideoLayer):
            prep.extend(self._video_filters(layer, session))
        else:
            prep.extend(self._image_filters(layer, session, end - start))

        prep.append(Filter("setpts", Var("PTS") - Var("STARTPTS") + start / Var("TB")))

        if style.rotation:
            prep.append(Filter("rotate", round(math.radians(style.rotation), 6), c="none"))

        fades = fade_filters(layer.transition, start, end)
        if fades or (style.opacity is not None and style.opacity < 1):
            prep.append(Filter("format", "rgba"))
        if style.opacity is not None and style.opacity < 1:
            prep.append(Filter("colorchannelmixer", aa=style.opacity))
        prep.extend(fades)

        prepared = session.label("l")
        graph.add([session.stream(f"{idx}:v")], prep, [prepared])

        default = _CENTER if isinstance(layer, VideoLayer) else Position()
        x, y = session.position(layer.position or default, OVERLAY_FRAME)
        out = session.label("v")
        overlay = Filter(
            "overlay",
            x=x,
            y=y,
            eof_action="pass",
            enable=self._enable(layer, session),
        )
        return graph.add([current, prepared], [overlay], [out])

    def _video_filters(self, layer: VideoLayer, session: CompileSession) -> List[Filter]:
        """Size the clip to the canvas or to its inset box, then add its border."""
        if layer.scale is not None:
            box = (_even(session.width * layer.scale), _even(session.height * layer.scale))
        elif layer.width is not None and layer.height is not None:
            box = (layer.width, layer.height)
        elif layer.is_sized:
            box = None
        else:
            box = (session.width, session.height)

        if box is None:
            # one side given: the other follows the aspect ratio
            filters = [Filter("scale", layer.width or -2, layer.height or -2)]
        else:
            filters = self._fit_filters(layer.fit, *box)
            if not filters and layer.is_sized:
                filters = [Filter("scale", *box)]

        if layer.border_width:
            filters.append(
                Filter(
                    "drawbox",
                    x=0,
                    y=0,
                    w=Var("iw"),
                    h=Var("ih"),
                    color=to_ffmpeg_color(layer.border_color),
                    t=layer.border_width,
                )
            )
        return filters

    def _fit_filters(self, fit: FitMode, w: int, h: int) -> List[Filter]:
        if fit == FitMode.CONTAIN:
            return [Filter("scale", w, h, force_original_aspect_ratio="decrease")]
        if fit == FitMode.COVER:
            return [
                Filter("scale", w, h, force_original_aspect_ratio="increase"),
                Filter("crop", w, h),
            ]
        if fit == FitMode.STRETCH:
            return [Filter("scale", w, h)]
        return []

    def _image_filters(
        self, layer: ImageLayer, session: CompileSession, visible: float
    ) -> List[Filter]:
        filters = []
        if layer.width or layer.height:
            filters.append(Filter("scale", layer.width or -1, layer.height or -1))
        pz = layer.pan_zoom
        if pz is not None:
            frames = max(1, int(round(visible * session.fps)))
            on = Var("on")
            zoom = pz.start_zoom + (pz.end_zoom - pz.start_zoom) * on / frames
            filters.append(
                Filter(
                    "zoompan",
                    z=zoom,
                    x=(Var("iw") - Var("iw") / Var("zoom")) * pz.focus_x,
                    y=(Var("ih") - Var("ih") / Var("zoom")) * pz.focus_y,
                    d=1,
                    s=f"{layer.width or session.width}x{layer.height or session.height}",
                    fps=session.fps,
                )
            )
        return filters

    def _drawtext_stage(self, graph, session, layer, current) -> FilterStage:
        out = session.label("v")
        return graph.add([current], [self.drawtext_filter(layer, session)], [out])

    def drawtext_filter(self, layer, session: CompileSession) -> Filter:
        """
        Build the drawtext filter for a text or caption layer.

        Args:
            layer: TextLayer or CaptionLayer
            session: Active compile session

        Returns:
            drawtext Filter with resolved style, position, animation and window
        """
        track_style = layer.track_style if isinstance(layer, CaptionLayer) else None
        style = session.style(self.options.default_style, track_style, layer.style)
        font_size = style.font_size * (style.scale or 1)
        x, y = session.position(layer.position or _CENTER, TEXT_FRAME)

        animation = layer.animation if isinstance(layer, CaptionLayer) else layer.transition
        anim = drawtext_params(
            animation, layer.start_time, self._effective_end(layer, session), x, y, font_size
        )

        f = Filter("drawtext", text=Text(layer.text))
        if style.font_file:
            f.set("fontfile", style.font_file)
        elif style.font_family:
            f.set("font", _font_pattern(style))
        f.set("fontsize", anim.get("fontsize", Num(font_size)))
        f.set("fontcolor", to_ffmpeg_color(style.color, style.opacity))

        border = anim.get("borderw")
        if border is not None:
            f.set("borderw", border)
            f.set("bordercolor", anim["bordercolor"])
        elif style.stroke_width:
            f.set("borderw", style.stroke_width)
            f.set("bordercolor", to_ffmpeg_color(style.stroke_color or "black"))

        if style.background_color:
            f.set("box", 1)
            f.set("boxcolor", to_ffmpeg_color(style.background_color))
            f.set("boxborderw", style.background_padding or 0)

        if style.shadow_color or style.shadow_x or style.shadow_y:
            f.set("shadowcolor", to_ffmpeg_color(style.shadow_color or "black@0.5"))
            f.set("shadowx", style.shadow_x if style.shadow_x is not None else 2)
            f.set("shadowy", style.shadow_y if style.shadow_y is not None else 2)

        if style.line_spacing and style.line_spacing != 1:
            f.set("line_spacing", int(round(font_size * (style.line_spacing - 1))))

        f.set("x", anim.get("x", x))
        f.set("y", anim.get("y", y))
        f.set("alpha", anim.get("alpha"))
        f.set("enable", self._enable(layer, session))
        return f

    def _filter_stage(self, graph, session, layer: FilterLayer, current) -> FilterStage:
        filters = build_filters(layer.name, dict(layer.params))
        enable = self._enable(layer, session)
        if enable is not None:
            for f in filters:
                if supports_timeline(f.name):
                    f.set("enable", enable)
        out = session.label("v")
        return graph.add([current], filters, [out])

    # Audio

    def _build_audio(self, graph: FilterGraph, session: CompileSession) -> bool:
        streams = []
        for layer in self.timeline.layers:
            if isinstance(layer, AudioLayer) or (isinstance(layer, VideoLayer) and layer.audio):
                idx = session.input_for(layer.source)
                label = session.label("a")
                graph.add([session.stream(f"{idx}:a")], self._audio_filters(layer, session), [label])
                streams.append(label)

        post = [
            f
            for layer in self.timeline.layers
            if isinstance(layer, FilterLayer) and layer.name in AUDIO_FILTERS
            for f in build_filters(layer.name, dict(layer.params))
        ]

        if not streams:
            return False
        if len(streams) > 1:
            mix = [Filter("amix", inputs=len(streams), duration="longest")]
        else:
            mix = [Filter("anull")]
        graph.add(streams, mix + post, ["aout"])
        return True

    def _audio_filters(self, layer, session: CompileSession) -> List[Filter]:
        filters = []
        if layer.trim_start is not None or layer.trim_end is not None:
            filters.append(Filter("atrim", start=layer.trim_start, end=layer.trim_end))
        filters.append(Filter("asetpts", Var("PTS") - Var("STARTPTS")))
        if layer.duration is not None:
            filters.append(Filter("atrim", duration=layer.duration))

        if isinstance(layer, AudioLayer):
            if layer.tempo is not None and layer.tempo != 1:
                filters.extend(Filter("atempo", f) for f in _atempo_chain(layer.tempo))
            if layer.highpass:
                filters.append(Filter("highpass", f=layer.highpass))
            if layer.lowpass:
                filters.append(Filter("lowpass", f=layer.lowpass))
            if layer.echo_delay:
                filters.append(
                    Filter("aecho", 0.8, 0.9, int(layer.echo_delay * 1000), layer.echo_decay or 0.5)
                )

        if layer.volume != 1:
            filters.append(Filter("volume", layer.volume))

        if isinstance(layer, AudioLayer):
            if layer.fade_in:
                filters.append(Filter("afade", t="in", st=0, d=layer.fade_in))
            if layer.fade_out:
                clip_length = self._effective_end(layer, session) - layer.start_time
                filters.append(
                    Filter(
                        "afade",
                        t="out",
                        st=max(0.0, clip_length - layer.fade_out),
                        d=layer.fade_out,
                    )
                )

        if layer.start_time > 0:
            delay = int(round(layer.start_time * 1000))
            filters.append(Filter("adelay", f"{delay}|{delay}"))
        return filters


def _atempo_chain(tempo: float) -> List[float]:
    """Split a tempo factor into atempo steps within FFmpeg's 0.5-2.0 range."""
    steps = []
    while tempo > 2.0:
        steps.append(2.0)
        tempo /= 2.0
    while tempo < 0.5:
        steps.append(0.5)
        tempo /= 0.5
    steps.append(round(tempo, 6))
    return steps


def _even(value: float) -> int:
    return max(2, int(round(value / 2)) * 2)


def _font_pattern(style: Style) -> str:
    styles = []
    if style.is_bold:
        styles.append("Bold")
    if style.is_italic:
        styles.append("Italic")
    if styles:
        return f"{style.font_family}:style={' '.join(styles)}"
    return style.font_family


def build_argv(
    timeline: "Timeline",
    output_path: str,
    ctx: Optional[MediaContext] = None,
    encoder: Optional[EncoderProfile] = None,
) -> List[str]:
    return FilterGraphCompiler(timeline, ctx).compile(output_path, encoder)


def compile_timeline(
    timeline: "Timeline",
    output_path: str,
    ctx: Optional[MediaContext] = None,
    encoder: Optional[EncoderProfile] = None,
) -> str:
    """Compile a timeline into a shell-ready FFmpeg command string."""
    return shlex.join(build_argv(timeline, output_path, ctx, encoder))


def compile_many(
    jobs: Sequence[Tuple["Timeline", str]],
    max_workers: int = 4,
    ctx: Optional[MediaContext] = None,
) -> List[str]:
    """
    Compile independent timelines in parallel.

    Args:
        jobs: (timeline, output_path) pairs
        max_workers: Upper bound on worker threads
        ctx: Media context shared by all jobs

    Returns:
        Command strings in the same order as ``jobs``
    """
    if max_workers < 1:
        raise ValueError("max_workers must be at least 1")
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(lambda job: compile_timeline(job[0], job[1], ctx), jobs))
