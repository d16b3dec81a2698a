"""Tests for subtitle parsing, generation, validation and conversion."""

import logging
import os

import pytest

from mediasdk.captions import (
    CaptionEntry,
    GenerateOptions,
    ParseOptions,
    SRTHandler,
    convert_subtitles,
    detect_format,
    generate_ass,
    generate_srt,
    generate_subtitles,
    generate_vtt,
    parse_ass,
    parse_srt,
    parse_subtitles,
    parse_vtt,
    validate_entries,
)
from mediasdk.captions.formats import coerce_format, generate_json, parse_json
from mediasdk.captions.timecodes import (
    format_ass_time,
    format_srt_time,
    format_vtt_time,
    parse_timestamp,
)
from mediasdk.core import (
    Anchor,
    AnimationType,
    MediaSDKError,
    SubtitleFormat,
    SubtitleParseError,
    UnsupportedFormatError,
)
from mediasdk.media import Animation, Position, Style, Timeline


class TestTimecodes:
    """Test timestamp formatting and parsing."""

    def test_format(self):
        """Times format per subtitle format."""
        assert format_srt_time(3661.5) == "01:01:01,500"
        assert format_vtt_time(1.25) == "00:00:01.250"
        assert format_ass_time(1.234) == "0:00:01.23"

    def test_negative_clamps(self):
        """Negative times format as zero."""
        assert format_srt_time(-1) == "00:00:00,000"

    def test_parse(self):
        """SRT, WebVTT and short forms parse to seconds."""
        assert parse_timestamp("00:00:01,500") == 1.5
        assert parse_timestamp("01:02.250") == 62.25
        assert parse_timestamp("0:00:01.5") == 1.5
        assert parse_timestamp("nonsense") is None

    def test_round_trip(self):
        """Formatting a parsed millisecond timestamp reproduces it."""
        for text in ("00:00:00,001", "00:59:59,999", "12:34:56,789"):
            assert format_srt_time(parse_timestamp(text)) == text


class TestSRTParsing:
    """Test SRT parsing."""

    def test_parse(self, sample_srt):
        """Well-formed entries parse with their times and styles."""
        entries = parse_srt(sample_srt)
        assert len(entries) == 2
        first, second = entries
        assert (first.index, first.id, first.text) == (1, "srt_1", "Hello world")
        assert (first.start_time, first.end_time) == (1.0, 4.0)
        assert second.text == "Bold line"
        assert second.style.is_bold
        assert (second.start_time, second.end_time) == (5.5, 7.25)

    def test_crlf_and_bom(self, sample_srt):
        """Windows line endings and a BOM are accepted."""
        content = "\ufeff" + sample_srt.replace("\n", "\r\n")
        assert [e.text for e in parse_srt(content)] == ["Hello world", "Bold line"]

    def test_indices_are_not_trusted(self):
        """Entries are sorted by time and renumbered regardless of input indices."""
        content = (
            "7\n00:00:05,000 --> 00:00:06,000\nLater\n\n"
            "-3\n00:00:01,000 --> 00:00:02,000\nEarlier\n\n"
            "7\n00:00:03,000 --> 00:00:04,000\nMiddle\n"
        )
        entries = parse_srt(content)
        assert [(e.index, e.text) for e in entries] == [(1, "Earlier"), (2, "Middle"), (3, "Later")]

    def test_multiline_text(self):
        """Multi-line text is kept."""
        entries = parse_srt("1\n00:00:01,000 --> 00:00:02,000\nLine one\nLine two\n")
        assert entries[0].text == "Line one\nLine two"

    def test_malformed_blocks_are_skipped(self, malformed_srt, caplog):
        """Malformed blocks are skipped with a warning."""
        with caplog.at_level(logging.WARNING):
            entries = parse_srt(malformed_srt)
        assert [e.text for e in entries] == ["First", "Third"]
        assert [e.index for e in entries] == [1, 2]
        assert "malformed SRT block 2" in caplog.text

    def test_strict_mode(self, malformed_srt):
        """Strict mode raises with the block number."""
        with pytest.raises(SubtitleParseError) as exc_info:
            parse_srt(malformed_srt, ParseOptions(strict=True))
        assert exc_info.value.block_number == 2

    def test_empty_input(self):
        """Empty documents parse to nothing."""
        assert parse_srt("") == []
        assert parse_srt("\n\n  \n") == []

    def test_font_color(self):
        """Font tags set the color."""
        entries = parse_srt('1\n00:00:01,000 --> 00:00:02,000\n<font color="#ff0000">Red</font>\n')
        assert entries[0].text == "Red"
        assert entries[0].style.color == "#ff0000"

    def test_styles_can_be_kept_as_text(self):
        """With parse_styles off the tags stay in the text."""
        entries = parse_srt("1\n00:00:01,000 --> 00:00:02,000\n<i>Hi</i>\n", ParseOptions(parse_styles=False))
        assert entries[0].text == "<i>Hi</i>"
        assert entries[0].style is None


class TestSRTGeneration:
    """Test SRT generation."""

    def test_generate(self, sample_srt):
        """Parsed entries regenerate with styles re-applied."""
        output = generate_srt(parse_srt(sample_srt))
        assert output == (
            "1\n00:00:01,000 --> 00:00:04,000\nHello world\n\n"
            "2\n00:00:05,500 --> 00:00:07,250\n<b>Bold line</b>\n\n"
        )

    def test_fixed_point(self, sample_srt):
        """Generating, parsing and generating again is stable."""
        once = generate_srt(parse_srt(sample_srt))
        assert generate_srt(parse_srt(once)) == once

    def test_sorts_without_mutating(self):
        """Output is time ordered; the input entries are untouched."""
        entries = [
            CaptionEntry(text="B", start_time=3, end_time=4, index=9),
            CaptionEntry(text="A", start_time=1, end_time=2, index=8),
        ]
        output = generate_srt(entries)
        assert output.startswith("1\n00:00:01,000 --> 00:00:02,000\nA\n")
        assert [e.index for e in entries] == [9, 8]

    def test_options(self):
        """Line endings, BOM and wrapping follow the options."""
        entries = [CaptionEntry(text="one two three four", start_time=0, end_time=1)]
        output = generate_srt(
            entries, GenerateOptions(line_ending="\r\n", add_bom=True, max_line_length=9)
        )
        assert output == "\ufeff1\r\n00:00:00,000 --> 00:00:01,000\r\none two\r\nthree\r\nfour\r\n\r\n"

    def test_without_styles(self):
        """include_styles off writes plain text."""
        entries = [CaptionEntry(text="Hi", start_time=0, end_time=1, style=Style(font_weight="bold"))]
        assert "<b>" not in generate_srt(entries, GenerateOptions(include_styles=False))


class TestValidation:
    """Test caption validation."""

    def test_overlaps_are_warnings(self, overlapping_entries):
        """Overlaps are counted but do not invalidate."""
        result = validate_entries(overlapping_entries)
        assert result.valid is True
        assert result.stats.overlapping_count == 3
        assert result.stats.entry_count == 5
        assert result.errors == []

    def test_zero_duration_is_an_error(self):
        """An entry ending at its start is invalid."""
        result = validate_entries([CaptionEntry(text="x", start_time=200, end_time=200)])
        assert result.valid is False
        assert len(result.errors) == 1

    def test_negative_start(self):
        """Negative start times are errors."""
        result = validate_entries([CaptionEntry(text="x", start_time=-1, end_time=2)])
        assert not result.valid

    def test_warnings(self):
        """Short, long, empty and distant entries are flagged."""
        entries = [
            CaptionEntry(text="blink", start_time=0, end_time=0.05),
            CaptionEntry(text="", start_time=1, end_time=2),
            CaptionEntry(text="long", start_time=20, end_time=35),
        ]
        result = validate_entries(entries)
        assert result.valid
        assert result.stats.gap_count == 1
        assert any("very short" in w for w in result.warnings)
        assert any("very long" in w for w in result.warnings)
        assert any("empty text" in w for w in result.warnings)

    def test_stats(self):
        """Durations are summed and averaged."""
        entries = [
            CaptionEntry(text="a", start_time=0, end_time=2),
            CaptionEntry(text="b", start_time=2, end_time=6),
        ]
        stats = validate_entries(entries).stats
        assert stats.total_duration == 6
        assert stats.average_display_time == 3

    def test_handler_accepts_text(self, sample_srt):
        """validate_srt parses text input first."""
        assert SRTHandler().validate_srt(sample_srt).stats.entry_count == 2


class TestSRTHandlerUtilities:
    """Test file IO and track utilities."""

    def test_file_round_trip(self, temp_dir, sample_srt):
        """Entries written to disk read back identically."""
        handler = SRTHandler()
        path = os.path.join(temp_dir, "out.srt")
        entries = handler.parse_srt(sample_srt)
        handler.write_srt_file(path, entries)
        assert [e.text for e in handler.read_srt_file(path)] == ["Hello world", "Bold line"]

    def test_missing_file(self, temp_dir):
        """Reading a missing file raises MediaSDKError."""
        with pytest.raises(MediaSDKError):
            SRTHandler().read_srt_file(os.path.join(temp_dir, "missing.srt"))

    def test_merge(self):
        """Merged lists follow each other with a gap."""
        a = [CaptionEntry(text="a", start_time=1, end_time=4)]
        b = [CaptionEntry(text="b", start_time=0, end_time=2)]
        merged = SRTHandler().merge_entries([a, b], gap=1)
        assert [(e.start_time, e.end_time, e.index) for e in merged] == [(1, 4, 1), (5, 7, 2)]
        assert b[0].start_time == 0

    def test_merge_files(self, temp_dir, sample_srt):
        """Files merge in the order given."""
        paths = []
        for name in ("a.srt", "b.srt"):
            path = os.path.join(temp_dir, name)
            with open(path, "w", encoding="utf-8") as f:
                f.write(sample_srt)
            paths.append(path)
        merged = SRTHandler().merge_srt_files(paths)
        assert len(merged) == 4
        assert merged[2].start_time == pytest.approx(7.25 + 1)

    def test_split_by_duration(self):
        """Chunks span at most max_duration and are rebased."""
        entries = [
            CaptionEntry(text=str(i), start_time=s, end_time=e)
            for i, (s, e) in enumerate([(0, 2), (3, 5), (6, 9), (10, 12)])
        ]
        chunks = SRTHandler().split_by_duration(entries, 5)
        assert [len(chunk) for chunk in chunks] == [2, 1, 1]
        assert (chunks[1][0].start_time, chunks[1][0].end_time) == (0, 3)
        assert chunks[2][0].index == 1

    def test_split_requires_positive_duration(self):
        """max_duration must be positive."""
        with pytest.raises(ValueError):
            SRTHandler().split_by_duration([], 0)

    def test_generate_from_text(self):
        """One caption per sentence, timed by reading speed."""
        entries = SRTHandler().generate_subtitles_from_text("Hello there. How are you? Fine!")
        assert [e.text for e in entries] == ["Hello there.", "How are you?", "Fine!"]
        assert [e.start_time for e in entries] == pytest.approx([0, 1.1, 2.4])

    def test_timeline_to_srt(self):
        """Text layers export as SRT entries."""
        timeline = Timeline().add_text("Hi", start_time=1, duration=2).add_filter("hflip")
        assert SRTHandler().timeline_to_srt(timeline) == "1\n00:00:01,000 --> 00:00:03,000\nHi\n\n"

    def test_srt_to_timeline(self, sample_srt):
        """SRT entries become caption layers."""
        timeline = SRTHandler().srt_to_timeline(sample_srt)
        assert [layer.kind for layer in timeline.layers] == ["caption", "caption"]
        second = timeline.layers[1]
        assert second.start_time == 5.5
        assert second.duration == pytest.approx(1.75)
        assert second.style.is_bold
        assert second.animation is None

    def test_srt_to_existing_timeline(self, sample_srt):
        """Captions are appended to an existing timeline."""
        base = Timeline().add_video("a.mp4")
        timeline = SRTHandler().srt_to_timeline(sample_srt, base)
        assert len(timeline) == 3
        assert len(base) == 1


class TestWebVTT:
    """Test WebVTT support."""

    VTT = (
        "WEBVTT\n\n"
        "NOTE this is a comment\n\n"
        "cue-1\n"
        "00:00:01.000 --> 00:00:03.000 align:start position:10%\n"
        "<v Alice>Hello <b>there</b></v>\n\n"
        "00:00:04.000 --> 00:00:05.500\n"
        "Second\n"
    )

    def test_parse(self):
        """Cues parse with ids, settings and voices."""
        first, second = parse_vtt(self.VTT)
        assert first.id == "cue-1"
        assert first.text == "Hello there"
        assert first.style.is_bold
        assert first.metadata == {"settings": "align:start position:10%", "voice": "Alice"}
        assert (second.id, second.index, second.end_time) == ("vtt_2", 2, 5.5)

    def test_missing_header(self, caplog):
        """A missing header is tolerated unless strict."""
        content = "00:00:01.000 --> 00:00:02.000\nHi\n"
        with caplog.at_level(logging.WARNING):
            assert parse_vtt(content)[0].text == "Hi"
        assert "WEBVTT" in caplog.text
        with pytest.raises(SubtitleParseError):
            parse_vtt(content, ParseOptions(strict=True))

    def test_generate(self):
        """Generated WebVTT keeps settings and drops colors."""
        entries = [
            CaptionEntry(
                text="Hi",
                start_time=1,
                end_time=2,
                style=Style(font_style="italic", color="red"),
                metadata={"settings": "line:0"},
            )
        ]
        assert generate_vtt(entries) == "WEBVTT\n\n1\n00:00:01.000 --> 00:00:02.000 line:0\n<i>Hi</i>\n\n"

    def test_round_trip(self):
        """Parsing generated WebVTT restores the entries."""
        entries = parse_vtt(self.VTT)
        again = parse_vtt(generate_vtt(entries))
        assert [(e.text, e.start_time, e.end_time) for e in again] == [
            (e.text, e.start_time, e.end_time) for e in entries
        ]


class TestASS:
    """Test ASS support."""

    def test_generate_header(self):
        """Scripts carry the info, style and event sections."""
        output = generate_ass([CaptionEntry(text="Hi", start_time=1, end_time=2.5)], title="Demo")
        assert output.startswith("[Script Info]\nTitle: Demo\nScriptType: v4.00+\nPlayResX: 1920\n")
        assert "Style: Default,Arial,32,&H00FFFFFF,&H000000FF,&H00000000," in output
        assert output.endswith("Dialogue: 0,0:00:01.00,0:00:02.50,Default,,0,0,0,,Hi\n")

    def test_override_tags(self):
        """Entry styles, positions and fades become override tags."""
        entry = CaptionEntry(
            text="Line one\nLine two",
            start_time=0,
            end_time=2,
            style=Style(font_weight="bold", color="#ff0000"),
            position=Position(x="50%", y="90%", anchor=Anchor.BOTTOM_CENTER),
            animation=Animation(type="fade", duration=0.3),
        )
        output = generate_ass([entry])
        assert "{\\b1\\c&H0000FF&\\an2\\pos(960,972)\\fad(300,300)}Line one\\NLine two" in output

    def test_round_trip(self):
        """Parsing generated ASS restores text, style, position and fade."""
        entry = CaptionEntry(
            text="Hello, world",
            start_time=1,
            end_time=3,
            style=Style(font_style="italic", color="#00ff00", font_size=40),
            position=Position(x=100, y=200, anchor=Anchor.TOP_LEFT),
            animation=Animation(type="fade_in", duration=0.5),
        )
        (parsed,) = parse_ass(generate_ass([entry]))
        assert parsed.text == "Hello, world"
        assert parsed.style.is_italic
        assert parsed.style.color == "#00FF00"
        assert parsed.style.font_size == 40
        assert (parsed.position.x, parsed.position.y) == (100, 200)
        assert parsed.position.anchor == Anchor.TOP_LEFT
        assert parsed.animation.type == AnimationType.FADE_IN
        assert parsed.animation.duration == 0.5
        assert parsed.id == "ass_1"

    def test_parse_custom_format(self):
        """The Format line decides the field order; unknown tags are stripped."""
        content = (
            "[Script Info]\nTitle: x\n\n"
            "[Events]\n"
            "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text\n"
            "Comment: 0,0:00:00.00,0:00:01.00,Default,,0,0,0,,ignored\n"
            "Dialogue: 0,0:00:02.00,0:00:03.00,Default,Bob,0,0,0,,{\\blur3}Hi\\hthere\n"
            "Dialogue: 0,0:00:00.50,0:00:01.00,Default,,0,0,0,,First\n"
        )
        entries = parse_ass(content)
        assert [e.text for e in entries] == ["First", "Hi there"]
        assert entries[1].metadata == {"speaker": "Bob"}
        assert entries[1].style is None

    def test_malformed_dialogue(self):
        """Malformed lines are skipped, or raise in strict mode."""
        content = "[Events]\nDialogue: 0,bad,0:00:01.00,Default,,0,0,0,,x\n"
        assert parse_ass(content) == []
        with pytest.raises(SubtitleParseError):
            parse_ass(content, ParseOptions(strict=True))


class TestFormats:
    """Test format detection and conversion."""

    def test_coerce(self):
        """Format names are normalized."""
        assert coerce_format("SRT") == SubtitleFormat.SRT
        assert coerce_format(".ssa") == SubtitleFormat.ASS
        with pytest.raises(UnsupportedFormatError):
            coerce_format("sub")

    def test_detect(self, sample_srt):
        """Detection uses the extension, then the content."""
        assert detect_format(sample_srt) == SubtitleFormat.SRT
        assert detect_format("WEBVTT\n\n") == SubtitleFormat.VTT
        assert detect_format("[Script Info]\nTitle: x") == SubtitleFormat.ASS
        assert detect_format('{"entries": []}') == SubtitleFormat.JSON
        assert detect_format("00:00:01.000 --> 00:00:02.000\nHi") == SubtitleFormat.VTT
        assert detect_format("anything", filename="movie.VTT") == SubtitleFormat.VTT
        with pytest.raises(UnsupportedFormatError):
            detect_format("just some text")

    def test_json_round_trip(self, sample_srt):
        """JSON keeps every field."""
        entries = parse_srt(sample_srt)
        restored = parse_json(generate_json(entries))
        assert [(e.text, e.start_time, e.end_time) for e in restored] == [
            (e.text, e.start_time, e.end_time) for e in entries
        ]
        assert restored[1].style.is_bold

    def test_json_list_and_errors(self):
        """A bare list is accepted; invalid JSON raises."""
        entries = parse_json('[{"text": "a", "startTime": 2, "endTime": 3}]')
        assert entries[0].index == 1
        with pytest.raises(SubtitleParseError):
            parse_json("{not json")
        with pytest.raises(SubtitleParseError):
            parse_json('[{"text": "missing times"}]')

    def test_parse_dispatch(self, sample_srt):
        """parse_subtitles detects the format when none is given."""
        assert len(parse_subtitles(sample_srt)) == 2
        assert len(parse_subtitles(sample_srt, "srt")) == 2

    def test_generate_dispatch(self, sample_srt):
        """generate_subtitles writes the requested format."""
        entries = parse_srt(sample_srt)
        assert generate_subtitles(entries, "vtt").startswith("WEBVTT")
        assert generate_subtitles(entries, "ass", width=1280).count("Dialogue:") == 2
        assert "PlayResX: 1280" in generate_subtitles(entries, "ass", width=1280)

    def test_convert(self, sample_srt):
        """SRT converts to WebVTT and back."""
        vtt = convert_subtitles(sample_srt, "vtt")
        assert "00:00:05.500 --> 00:00:07.250" in vtt
        srt = convert_subtitles(vtt, "srt")
        assert srt == generate_srt(parse_srt(sample_srt))
