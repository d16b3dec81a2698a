"""Exception hierarchy for the media SDK."""

from typing import Optional


class MediaSDKError(Exception):
    """Base exception for all SDK errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConstructionError(MediaSDKError, ValueError):
    """A builder call is missing a required field or carries invalid timing."""

    pass


class SubtitleParseError(MediaSDKError, ValueError):
    """A subtitle block could not be parsed in strict mode."""

    def __init__(
        self,
        message: str,
        block_number: Optional[int] = None,
        block: Optional[str] = None,
    ):
        super().__init__(message)
        self.block_number = block_number
        self.block = block


class TrackNotFoundError(MediaSDKError, LookupError):
    """No caption track exists for the requested language."""

    def __init__(self, language: str):
        super().__init__(f"No caption track for language '{language}'")
        self.language = language


class UnsupportedFormatError(MediaSDKError, ValueError):
    """The requested subtitle format is not supported."""

    pass
