#!/usr/bin/env python3
"""
Advanced composition example for mediasdk.

This example demonstrates:
1. Layering video, images, audio and word-by-word highlighted text
2. Managing caption tracks in several languages
3. Converting subtitles between SRT, WebVTT and ASS
4. Compiling several timelines in parallel with a custom context
"""

import logging

from mediasdk import (
    EncoderProfile,
    MediaContext,
    MultiCaptionEngine,
    SRTHandler,
    Timeline,
    compile_many,
    convert_subtitles,
    effects,
)


SAMPLE_SRT = """1
00:00:01,000 --> 00:00:03,500
<b>Welcome</b> to the show

2
00:00:04,000 --> 00:00:06,000
<font color="#FFFF00">Stay tuned</font>
"""


def build_timeline():
    """Create a picture-in-picture composition with music and highlighted words."""
    return (
        Timeline()
        .set_resolution(1920, 1080)
        .set_frame_rate(30)
        .set_background("#1a1a2e")
        .add_video("main.mp4", fit="cover")
        # Quarter-size camera inset in the top-right corner, visible from 2s to 8s
        .add_picture_in_picture(
            "camera.mp4",
            position="top-right",
            start_time=2,
            duration=6,
            opacity=0.9,
            border_width=4,
            transition="fade",
            audio=False,
        )
        .add_image(
            "cover.jpg",
            start_time=8,
            duration=4,
            pan_zoom={"start_zoom": 1.0, "end_zoom": 1.3},
        )
        .add_audio("music.mp3", volume=0.3, fade_in=1, fade_out=2, loop=True)
        .add_word_highlighting(
            text="Every word lights up as it is spoken",
            start_time=1,
            duration=4,
            preset="karaoke",
            position="bottom",
        )
        .pipe(effects.compose(effects.saturation(1.2), effects.fade_in(0.5), effects.fade_out(1)))
    )


def build_captions(timeline):
    """Attach English and Spanish caption tracks to the timeline."""
    engine = MultiCaptionEngine()
    engine.set_global_defaults({"font_family": "Arial", "font_size": 42, "color": "white"})

    engine.create_track("en", "English", priority=1)
    engine.create_track("es", "Español", position="top", default_style={"color": "yellow"})

    engine.add_caption_sequence(
        "en", ["Welcome to the show", "Here is what we built today"], start_time=1
    )
    engine.import_captions("es", SAMPLE_SRT)

    # Align caption starts with detected speech onsets
    moved = engine.synchronize_with_audio("en", [(1.2, 0.9), (3.9, 0.95)])
    print(f"Synchronized {moved} English captions")

    for language in ("en", "es"):
        report = engine.validate_track(language)
        status = "valid" if report.valid else f"{len(report.errors)} errors"
        print(f"Track {language}: {status}")

    stats = engine.get_statistics()
    print(f"Caption tracks: {stats['total_tracks']}, captions: {stats['total_captions']}")

    # Sidecar files for players that load subtitles separately
    for language, content in engine.export_all(fmt="vtt").items():
        print(f"--- {language}.vtt ---")
        print(content)

    return engine.apply_to_timeline(timeline)


def main():
    """Run advanced composition example."""
    logging.basicConfig(level=logging.INFO)
    ctx = MediaContext(ffmpeg="/usr/local/bin/ffmpeg", logger=logging.getLogger("example"))

    print("Creating advanced composition...")
    timeline = build_captions(build_timeline())
    print(f"Duration: {timeline.get_duration():.2f}s with {len(timeline)} layers")

    # Convert subtitles between formats
    print("Converting SRT to WebVTT and ASS...")
    print(convert_subtitles(SAMPLE_SRT, "vtt"))
    print(convert_subtitles(SAMPLE_SRT, "ass"))

    # Split long subtitle files into chunks
    handler = SRTHandler()
    entries = handler.parse_srt(SAMPLE_SRT)
    chunks = handler.split_by_duration(entries, 5)
    print(f"Split {len(entries)} captions into {len(chunks)} chunks")

    # Export in different formats
    vertical = timeline.set_aspect_ratio("9:16")
    short_clip = timeline.trim(0, 15).pipe(effects.grayscale())

    print("Compiling three versions in parallel...")
    commands = compile_many(
        [
            (timeline, "advanced_composition_hq.mp4"),
            (vertical, "advanced_composition_vertical.mp4"),
            (short_clip, "advanced_composition_short.mp4"),
        ],
        ctx=ctx,
    )
    for command in commands:
        print(command)
        print()

    # A VP9 WebM of the same composition
    print("WebM command:")
    print(timeline.get_command("advanced_composition.webm", ctx=ctx, encoder=EncoderProfile.vp9(crf=30)))

    print("✅ All commands generated!")


if __name__ == "__main__":
    main()
