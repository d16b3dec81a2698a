"""Tests for the multi-language caption engine."""

import json
import logging

import pytest

from mediasdk.captions import AudioCue, MultiCaptionEngine, SyncOptions
from mediasdk.core import ConstructionError, TrackNotFoundError
from mediasdk.media import Timeline
from mediasdk.media.layers import CaptionLayer


@pytest.fixture
def engine():
    """Engine with an English track."""
    engine = MultiCaptionEngine()
    engine.create_track("en", "English", priority=1)
    return engine


class TestTracks:
    """Test track management."""

    def test_create_track(self, engine):
        """Tracks are keyed by language and inherit the global defaults."""
        track = engine.get_track("en")
        assert track.id == "track_en"
        assert track.language_name == "English"
        assert track.default_style.font_family == "Arial"
        assert track.default_style.is_bold

    def test_track_style_merges_defaults(self):
        """Track styles override only the fields they set."""
        engine = MultiCaptionEngine()
        engine.set_global_defaults({"color": "yellow"})
        track = engine.create_track("de", default_style={"fontSize": 40})
        assert track.default_style.color == "yellow"
        assert track.default_style.font_size == 40

    def test_empty_language(self):
        """A language code is required."""
        with pytest.raises(ConstructionError):
            MultiCaptionEngine().create_track(" ")

    def test_replace_existing(self, engine, caplog):
        """Creating a track again replaces it with a warning."""
        engine.add_caption("en", "Hi", 0, 1)
        with caplog.at_level(logging.WARNING):
            engine.create_track("en")
        assert engine.get_track("en").entries == []
        assert "Replacing existing caption track" in caplog.text

    def test_missing_track(self, engine):
        """Unknown languages raise TrackNotFoundError."""
        with pytest.raises(TrackNotFoundError) as exc_info:
            engine.get_track("xx")
        assert exc_info.value.language == "xx"
        with pytest.raises(LookupError):
            engine.add_caption("xx", "Hi", 0, 1)

    def test_priority_order(self, engine):
        """Tracks are listed by priority, highest first."""
        engine.create_track("es", priority=5)
        engine.create_track("fr", priority=1)
        assert [t.language for t in engine.get_all_tracks()] == ["es", "en", "fr"]

    def test_remove_track(self, engine):
        """Removing reports whether a track existed."""
        assert engine.remove_track("en") is True
        assert engine.remove_track("en") is False
        assert engine.get_all_tracks() == []


class TestCaptions:
    """Test adding captions."""

    def test_entries_stay_sorted(self, engine):
        """Captions are inserted in start-time order and renumbered."""
        engine.add_caption("en", "third", 5, 6)
        engine.add_caption("en", "first", 1, 2)
        engine.add_caption("en", "second", 3, 4)
        entries = engine.get_track("en").entries
        assert [e.text for e in entries] == ["first", "second", "third"]
        assert [e.index for e in entries] == [1, 2, 3]
        assert [e.id for e in entries] == ["track_en_2", "track_en_3", "track_en_1"]

    def test_equal_starts_keep_insertion_order(self, engine):
        """Captions with the same start keep the order they were added."""
        engine.add_caption("en", "a", 1, 2)
        engine.add_caption("en", "b", 1, 3)
        assert [e.text for e in engine.get_track("en").entries] == ["a", "b"]

    def test_non_finite_times(self, engine):
        """NaN and infinite times are rejected."""
        with pytest.raises(ConstructionError):
            engine.add_caption("en", "x", float("nan"), 1)
        with pytest.raises(ConstructionError):
            engine.add_caption("en", "x", 0, float("inf"))

    def test_inverted_range_is_reported_by_validation(self, engine):
        """Inverted ranges are accepted and flagged by validate_track."""
        engine.add_caption("en", "x", 3, 2)
        assert engine.validate_track("en").valid is False

    def test_caption_fields(self, engine):
        """Style, position and animation are coerced."""
        entry = engine.add_caption(
            "en", "Hi", 0, 1, style={"color": "red"}, position="top", animation="fade"
        )
        assert entry.style.color == "red"
        assert entry.position.y == 20
        assert entry.animation.duration == 0.5

    def test_sequence_timing(self, engine):
        """Sequences use reading time, clamped, separated by the gap."""
        entries = engine.add_caption_sequence("en", ["Hello there", "Welcome back"])
        assert [(e.start_time, e.end_time) for e in entries] == [
            (0, 1.0),
            (pytest.approx(1.1), pytest.approx(2.1)),
        ]

    def test_sequence_fixed_duration(self, engine):
        """A fixed duration and gap override the heuristics."""
        entries = engine.add_caption_sequence("en", ["a", "b"], start_time=1, duration=2, gap=0.5)
        assert [(e.start_time, e.end_time) for e in entries] == [(1, 3), (3.5, 5.5)]

    def test_sequence_breaks_lines(self, engine):
        """Long captions are broken into lines."""
        engine.set_sync_options(max_chars_per_line=10)
        (entry,) = engine.add_caption_sequence("en", ["the quick brown fox"])
        assert entry.text == "the quick\nbrown fox"


class TestTiming:
    """Test duration and line-break heuristics."""

    def test_optimal_duration(self, engine):
        """Reading time is clamped to the configured range."""
        assert engine.calculate_optimal_duration("one") == 1.0
        assert engine.calculate_optimal_duration(" ".join(["w"] * 20)) == pytest.approx(6.0)
        assert engine.calculate_optimal_duration(" ".join(["w"] * 40)) == 7.0

    def test_break_text(self, engine):
        """Overflow beyond max_lines stays on the last line."""
        engine.set_sync_options(max_chars_per_line=10, max_lines=2)
        assert engine.break_text("the quick brown fox jumps") == ["the quick", "brown fox jumps"]

    def test_long_word(self, engine):
        """A word longer than the limit gets its own line."""
        engine.set_sync_options(max_chars_per_line=5)
        assert engine.break_text("supercalifragilistic") == ["supercalifragilistic"]

    def test_sync_options(self, engine):
        """Options can be replaced wholesale or field by field."""
        engine.set_sync_options(SyncOptions(gap=0.3), reading_speed=100)
        assert engine.sync_options.gap == 0.3
        assert engine.sync_options.reading_speed == 100
        with pytest.raises(ConstructionError):
            engine.set_sync_options(max_chars_per_line=0)


class TestSynchronization:
    """Test snapping captions to audio cues."""

    def test_snap_to_nearest_confident_cue(self, engine):
        """Only confident cues within the radius move captions."""
        engine.add_caption("en", "a", 1.0, 2.0)
        engine.add_caption("en", "b", 5.0, 6.0)
        moved = engine.synchronize_with_audio(
            "en",
            [AudioCue(time=1.3, confidence=0.9), {"time": 5.5, "confidence": 0.5}, (9.0, 0.99)],
        )
        a, b = engine.get_track("en").entries
        assert moved == 1
        assert (a.start_time, a.end_time) == (pytest.approx(1.3), pytest.approx(2.3))
        assert (b.start_time, b.end_time) == (5.0, 6.0)

    def test_nearest_wins(self, engine):
        """The closest qualifying cue is used."""
        engine.add_caption("en", "a", 2.0, 3.0)
        engine.synchronize_with_audio("en", [(2.8, 0.9), (1.9, 0.9)])
        assert engine.get_track("en").entries[0].start_time == 1.9

    def test_shared_cue_keeps_order(self, engine):
        """Captions snapped to one cue keep their order and numbering."""
        engine.add_caption("en", "a", 1.0, 1.5)
        engine.add_caption("en", "b", 1.6, 2.0)
        assert engine.synchronize_with_audio("en", [(0.9, 0.95)]) == 2
        entries = engine.get_track("en").entries
        assert [(e.text, e.index) for e in entries] == [("a", 1), ("b", 2)]
        assert [e.start_time for e in entries] == pytest.approx([0.9, 0.9])
        assert entries[1].duration == pytest.approx(0.4)


class TestRendering:
    """Test layers, timelines and filters."""

    def test_to_layers_paint_order(self, engine):
        """Higher-priority tracks come last so they paint on top."""
        engine.create_track("es", priority=5)
        engine.add_caption("en", "Hello", 0, 2)
        engine.add_caption("es", "Hola", 0, 2)
        layers = engine.to_layers()
        assert all(isinstance(layer, CaptionLayer) for layer in layers)
        assert [layer.language for layer in layers] == ["en", "es"]
        assert layers[0].position.anchor.value == "bottom-center"
        assert layers[0].track_style.font_family == "Arial"

    def test_disabled_and_filtered_tracks(self, engine):
        """Disabled tracks and unrequested languages are skipped."""
        engine.create_track("es")
        engine.add_caption("en", "Hello", 0, 2)
        engine.add_caption("es", "Hola", 0, 2)
        assert [layer.language for layer in engine.to_layers(["es"])] == ["es"]
        engine.get_track("es").enabled = False
        assert [layer.language for layer in engine.to_layers()] == ["en"]

    def test_apply_to_timeline(self, engine):
        """Caption layers are appended to a new timeline."""
        engine.add_caption("en", "Hello", 0, 2)
        base = Timeline().add_video("a.mp4")
        timeline = engine.apply_to_timeline(base)
        assert [layer.kind for layer in timeline.layers] == ["video", "caption"]
        assert len(base) == 1

    def test_generate_filters(self, engine):
        """Captions compile to a drawtext chain using the track style."""
        engine.add_caption("en", "Hi", 0, 2)
        engine.add_caption("en", "Bye", 2, 3)
        chain = engine.generate_filters()
        assert chain.count("drawtext=") == 2
        assert chain.startswith(r"drawtext=text=Hi:font=\'Arial:style=Bold\':fontsize=32:")
        assert "y='h-20-text_h'" in chain
        assert "enable='gte(t,2)*lt(t,3)'" in chain

    def test_generate_filters_bold_font_parses(self, engine, graph_reader):
        """The bold font pattern stays one option when FFmpeg parses the chain."""
        engine.add_caption("en", "Hi: there", 0, 2)
        engine.add_caption("en", "50% off, today", 2, 3)
        parsed = graph_reader.drawtext(engine.generate_filters())
        assert [options["text"] for options in parsed] == ["Hi: there", "50% off, today"]
        for options in parsed:
            assert options["font"] == "Arial:style=Bold"
            assert options["fontsize"] == "32"
            assert "style" not in options

    def test_generate_filters_uses_timeline_canvas(self, engine):
        """Track styles win over the timeline default style."""
        engine.add_caption("en", "Hi", 0, 2, position={"x": "50%", "y": 100})
        timeline = Timeline().set_default_style({"fontSize": 60})
        chain = engine.generate_filters(timeline=timeline)
        assert "fontsize=32" in chain
        assert "y=100" in chain


class TestImportExport:
    """Test subtitle import and export."""

    def test_export_srt(self, engine):
        """Tracks export as SRT."""
        engine.add_caption("en", "Hello", 1, 2)
        assert engine.export_captions("en") == "1\n00:00:01,000 --> 00:00:02,000\nHello\n\n"

    def test_export_json(self, engine):
        """JSON exports the whole track."""
        engine.add_caption("en", "Hello", 1, 2)
        data = json.loads(engine.export_captions("en", "json"))
        assert data["language"] == "en"
        assert data["entries"][0]["startTime"] == 1

    def test_export_ass(self, engine):
        """ASS uses the track name and style."""
        engine.add_caption("en", "Hello", 1, 2)
        output = engine.export_captions("en", "ass")
        assert "Title: English" in output
        assert "Style: Default,Arial,32,&H00FFFFFF,&H000000FF,&H00000000,&H80000000,-1," in output

    def test_export_all(self, engine):
        """Every track is exported."""
        engine.create_track("es")
        engine.add_caption("en", "Hello", 1, 2)
        engine.add_caption("es", "Hola", 1, 2)
        exported = engine.export_all("vtt", max_workers=2)
        assert set(exported) == {"en", "es"}
        assert "Hola" in exported["es"]
        with pytest.raises(ValueError):
            engine.export_all(max_workers=0)

    def test_import(self, engine, sample_srt):
        """Imports create the track when needed."""
        assert engine.import_captions("fr", sample_srt) == 2
        entries = engine.get_track("fr").entries
        assert [e.id for e in entries] == ["track_fr_1", "track_fr_2"]
        assert entries[1].style.is_bold

    def test_import_replace(self, engine, sample_srt):
        """replace drops existing entries first."""
        engine.add_caption("en", "old", 0, 1)
        engine.import_captions("en", sample_srt, "srt", replace=True)
        assert [e.text for e in engine.get_track("en").entries] == ["Hello world", "Bold line"]

    def test_import_append(self, engine, sample_srt):
        """Without replace, imported captions merge into the track."""
        engine.add_caption("en", "early", 0, 0.5)
        engine.import_captions("en", sample_srt)
        assert len(engine.get_track("en").entries) == 3

    def test_vtt_round_trip(self, engine):
        """A track survives export and import through WebVTT."""
        engine.add_caption_sequence("en", ["One", "Two"])
        vtt = engine.export_captions("en", "vtt")
        engine.import_captions("copy", vtt)
        original = engine.get_track("en").entries
        copied = engine.get_track("copy").entries
        assert [e.text for e in copied] == [e.text for e in original]
        assert [e.start_time for e in copied] == pytest.approx([e.start_time for e in original])


class TestStatistics:
    """Test engine statistics."""

    def test_statistics(self, engine):
        """Counts and durations are aggregated over tracks."""
        engine.create_track("es")
        engine.add_caption("en", "Hello", 0, 2)
        engine.add_caption("en", "World", 2, 3)
        engine.add_caption("es", "Hola", 0, 4)
        stats = engine.get_statistics()
        assert stats["total_tracks"] == 2
        assert stats["total_captions"] == 3
        assert stats["total_duration"] == 7
        assert stats["average_caption_length"] == pytest.approx(14 / 3)
        assert stats["language_distribution"] == {"en": 2, "es": 1}

    def test_empty_statistics(self):
        """An empty engine reports zeros."""
        stats = MultiCaptionEngine().get_statistics()
        assert stats["total_captions"] == 0
        assert stats["average_caption_length"] == 0.0
