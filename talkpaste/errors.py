"""Error types for the Talkpaste application."""

from __future__ import annotations


class TalkpasteError(RuntimeError):
    """Base class for recoverable Talkpaste failures."""


class CaptureUnavailable(TalkpasteError):
    """Raised when the audio source could not be started."""


class TransportError(TalkpasteError):
    """Raised when the transcription request fails or returns garbage."""
