"""Compilation context: which FFmpeg binary commands name, its global flags and the logger."""

import logging
import shutil
from typing import List, Optional, Sequence


class MediaContext:
    """
    Settings that shape generated commands without belonging to a Timeline.

    Nothing is executed, so the binary does not have to exist when compiling.
    """

    def __init__(
        self,
        ffmpeg: str = "ffmpeg",
        logger: Optional[logging.Logger] = None,
        overwrite: bool = True,
        global_args: Optional[Sequence[str]] = None,
    ):
        """
        Args:
            ffmpeg: Binary placed first in generated commands
            logger: Receives compile progress (defaults to this module's logger)
            overwrite: Emit ``-y`` so an existing output is replaced
            global_args: Flags placed before the inputs, e.g. ``["-hide_banner"]``
        """
        self.ffmpeg = ffmpeg
        self.logger = logger or logging.getLogger(__name__)
        self.overwrite = overwrite
        self.global_args = list(global_args or [])

    def command_prefix(self) -> List[str]:
        """Binary and global flags that open every command."""
        prefix = [self.ffmpeg]
        if self.overwrite:
            prefix.append("-y")
        return prefix + self.global_args

    def locate_ffmpeg(self) -> Optional[str]:
        """Resolved path of the binary, or None when it is not on PATH."""
        path = shutil.which(self.ffmpeg)
        if path is None:
            self.logger.warning(f"FFmpeg binary not found on PATH: {self.ffmpeg}")
        return path

    def __repr__(self) -> str:
        return f"MediaContext(ffmpeg={self.ffmpeg!r}, overwrite={self.overwrite})"


_DEFAULT_CTX: Optional[MediaContext] = None


def default_context() -> MediaContext:
    """Shared context used when a caller passes none, created on first use."""
    global _DEFAULT_CTX
    if _DEFAULT_CTX is None:
        _DEFAULT_CTX = MediaContext()
    return _DEFAULT_CTX


def set_default_context(ctx: MediaContext) -> None:
    global _DEFAULT_CTX
    _DEFAULT_CTX = ctx
