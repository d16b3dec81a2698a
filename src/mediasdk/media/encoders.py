"""Video encoder profiles and the output arguments they add to a command."""

from collections import namedtuple
from typing import List, Literal, Optional, Union

from pydantic import BaseModel

from ..core.types import Quality

Codec = namedtuple("Codec", ["encoder", "default_crf", "uses_preset", "extra_args", "audio_codec"])

_CODECS = {
    "h264": Codec("libx264", 23, True, ["-pix_fmt", "yuv420p"], "aac"),
    # hvc1 tag so Apple players accept the stream
    "h265": Codec("libx265", 28, True, ["-pix_fmt", "yuv420p", "-tag:v", "hvc1"], "aac"),
    # -b:v 0 puts libvpx in constant quality mode
    "vp9": Codec("libvpx-vp9", 32, False, ["-b:v", "0"], "libopus"),
}

# (crf, preset) per quality level
_QUALITY_SETTINGS = {
    Quality.LOW: (28, "fast"),
    Quality.MEDIUM: (23, "medium"),
    Quality.HIGH: (18, "medium"),
    Quality.ULTRA: (15, "slow"),
}

# VP9 needs a higher CRF than x264 for comparable quality
_VP9_CRF_OFFSET = 10


class EncoderProfile(BaseModel):
    """Codec choice plus rate control, turned into FFmpeg output arguments."""

    kind: Literal["h264", "h265", "vp9"]
    crf: Optional[int] = None
    preset: Optional[str] = None
    audio_codec: Optional[str] = "aac"

    @staticmethod
    def h264(crf: int = 23, preset: str = "medium") -> "EncoderProfile":
        """
        H.264 profile, playable almost everywhere.

        Args:
            crf: Constant Rate Factor (lower = better quality, bigger file)
            preset: x264 speed preset (ultrafast ... veryslow)
        """
        return EncoderProfile(kind="h264", crf=crf, preset=preset)

    @staticmethod
    def h265(crf: int = 28, preset: str = "medium") -> "EncoderProfile":
        return EncoderProfile(kind="h265", crf=crf, preset=preset)

    @staticmethod
    def vp9(crf: int = 32) -> "EncoderProfile":
        """VP9 profile for WebM output, with Opus audio."""
        return EncoderProfile(kind="vp9", crf=crf, audio_codec=_CODECS["vp9"].audio_codec)

    @staticmethod
    def from_quality(
        quality: Union[Quality, str] = Quality.MEDIUM, codec: Optional[str] = None
    ) -> "EncoderProfile":
        """
        Profile for a Timeline's quality setting.

        Args:
            quality: low, medium, high or ultra
            codec: h264 (default), h265 or vp9

        Returns:
            Profile with the level's CRF and preset
        """
        crf, preset = _QUALITY_SETTINGS[Quality(quality)]
        kind = codec or "h264"
        if kind == "vp9":
            return EncoderProfile.vp9(crf=crf + _VP9_CRF_OFFSET)
        return EncoderProfile(kind=kind, crf=crf, preset=preset)

    def args(self, out_path: str, has_audio: bool = True) -> List[str]:
        """
        Output arguments: video codec, rate control, audio codec, then the path.

        Args:
            out_path: Output file path, always the last argument
            has_audio: Whether an audio stream is mapped
        """
        codec = _CODECS[self.kind]
        crf = self.crf if self.crf is not None else codec.default_crf
        args = ["-c:v", codec.encoder, "-crf", str(crf)]
        if codec.uses_preset:
            args += ["-preset", self.preset or "medium"]
        args += codec.extra_args

        if has_audio and self.audio_codec:
            args += ["-c:a", self.audio_codec]
        args.append(out_path)
        return args
