"""Style presets for captions, word highlighting and target platforms."""

from collections import namedtuple

from .styles import Style

CAPTION_PRESETS = {
    "instagram": Style(
        font_size=36,
        font_family="Arial",
        color="#ffffff",
        stroke_color="#000000",
        stroke_width=2,
        shadow_color="rgba(0,0,0,0.5)",
        shadow_x=2,
        shadow_y=2,
    ),
    "tiktok": Style(
        font_size=48,
        font_family="Arial Black",
        color="#ffffff",
        stroke_color="#000000",
        stroke_width=3,
        shadow_color="rgba(0,0,0,0.7)",
        shadow_x=3,
        shadow_y=3,
    ),
    "youtube": Style(
        font_size=32,
        font_family="Arial",
        color="#ffffff",
        stroke_color="#000000",
        stroke_width=2,
        background_color="rgba(0,0,0,0.8)",
        background_padding=8,
    ),
    "pinterest": Style(
        font_size=28,
        font_family="Georgia",
        color="#2d2d2d",
        background_color="rgba(255,255,255,0.9)",
        background_padding=12,
    ),
    "linkedin": Style(
        font_size=24,
        font_family="Arial",
        color="#0077b5",
        background_color="rgba(255,255,255,0.95)",
        background_padding=10,
    ),
}

WordHighlightPreset = namedtuple("WordHighlightPreset", ["base", "highlight", "glow"])

WORD_HIGHLIGHT_BASE = Style(font_size=32, color="#cccccc", stroke_color="#000000", stroke_width=1)
WORD_HIGHLIGHT_ACTIVE = Style(color="#ff0066", stroke_width=2)

WORD_HIGHLIGHT_PRESETS = {
    "tiktok": WordHighlightPreset(
        Style(font_size=48, color="#ffffff", stroke_color="#000000", stroke_width=3),
        Style(color="#ff0066", scale=1.3, stroke_width=4),
        True,
    ),
    "instagram": WordHighlightPreset(
        Style(font_size=36, color="#ffffff", stroke_color="#000000", stroke_width=2),
        Style(
            color="#ff4400",
            scale=1.2,
            background_color="rgba(255,68,0,0.3)",
            background_padding=8,
        ),
        False,
    ),
    "youtube": WordHighlightPreset(
        Style(font_size=32, color="#ffffff", background_color="rgba(0,0,0,0.8)", background_padding=6),
        Style(color="#ff0000", background_color="rgba(255,0,0,0.9)", background_padding=8),
        False,
    ),
    "karaoke": WordHighlightPreset(
        Style(font_size=40, color="#cccccc", stroke_color="#000000", stroke_width=2),
        Style(color="#ffff00", stroke_color="#ff0000", stroke_width=3),
        True,
    ),
    "typewriter": WordHighlightPreset(
        Style(
            font_size=24,
            color="#333333",
            background_color="rgba(255,255,255,0.9)",
            background_padding=10,
        ),
        Style(color="#0066cc", scale=1.1),
        False,
    ),
}

PLATFORM_ASPECT_RATIOS = {
    "tiktok": "9:16",
    "instagram": "1:1",
    "youtube": "16:9",
    "twitter": "16:9",
    "linkedin": "16:9",
}

# Canvas sizes for common aspect ratios (height 1080 unless portrait)
ASPECT_RATIO_SIZES = {
    "16:9": (1920, 1080),
    "9:16": (1080, 1920),
    "1:1": (1080, 1080),
    "4:3": (1440, 1080),
    "4:5": (1080, 1350),
    "21:9": (2560, 1080),
}
