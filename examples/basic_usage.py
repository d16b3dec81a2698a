#!/usr/bin/env python3
"""
Basic usage example for mediasdk.

This example demonstrates:
1. Building a timeline from a video, a logo and some text
2. Adding auto-timed captions with a platform preset
3. Generating the FFmpeg command that renders it
"""

from mediasdk import (
    EncoderProfile,
    Timeline,
    effects,
)


def main():
    """Run basic usage example."""
    # Replace with your own media paths or URLs
    video_path = "intro.mp4"
    logo_path = "logo.png"

    print(f"Building timeline for: {video_path}")

    timeline = (
        Timeline()
        .add_video(video_path, trim_start=2, trim_end=12)
        .add_watermark(logo_path, position="top-right", opacity=0.6, width=200)
        .add_text(
            "Welcome!",
            start_time=1,
            duration=3,
            position="top",
            style={"font_size": 64, "color": "white", "stroke_color": "black", "stroke_width": 3},
            transition="fade",
        )
        .add_captions(
            [
                "Hello and welcome to the channel",
                "Today we build a video from code",
                "Let's get started",
            ],
            preset="youtube",
            start_delay=4,
        )
        .set_aspect_ratio("16:9")
        .set_quality("high")
    )

    # Effects return new timelines, the original stays untouched
    graded = timeline.pipe(effects.compose(effects.contrast(1.1), effects.vignette(0.7)))

    print(f"Timeline duration: {graded.get_duration():.2f}s")
    print(f"Layers: {len(graded)}")

    # Check the canvas against a target platform
    report = graded.validate_for_platform("youtube")
    if not report["is_valid"]:
        for warning in report["warnings"]:
            print(f"Warning: {warning}")

    # Generate the command (nothing is executed here)
    output_path = "output_with_captions.mp4"
    encoder = EncoderProfile.h264(crf=20, preset="medium")
    command = graded.get_command(output_path, encoder=encoder)

    print("FFmpeg command:")
    print(command)

    # Timelines serialize to JSON, e.g. to store a project and render it later
    document = graded.to_json(indent=2)
    restored = Timeline.from_json(document)
    print(f"Restored {len(restored)} layers from {len(document)} bytes of JSON")

    print("✅ Command generated!")
    print(f"Run it to render: {output_path}")


if __name__ == "__main__":
    main()
