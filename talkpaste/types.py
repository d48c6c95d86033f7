"""Type definitions for the Talkpaste application."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TypedDict, Union


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    AWAITING_RESULT = "awaiting_result"
    COMMITTED = "committed"


class SessionStatus(str, Enum):
    """What the status indicator shows."""

    IDLE = "idle"
    RECORDING = "recording"
    PENDING = "pending"


class ASRResponse(TypedDict, total=False):
    """JSON body returned by the transcription service."""

    text: str


@dataclass(frozen=True)
class Transcript:
    """Recognized text. Empty means the service heard nothing."""

    text: str = ""


@dataclass(frozen=True)
class TranscriptError:
    """The request failed; ``reason`` is for logs only."""

    reason: str


TranscriptResult = Union[Transcript, TranscriptError]


# Session events. Everything that touches session state arrives as one of
# these and goes through DictationSession.handle() on the control thread.


@dataclass(frozen=True)
class Press:
    pass


@dataclass(frozen=True)
class Release:
    pass


@dataclass(frozen=True)
class Toggle:
    pass


@dataclass(frozen=True)
class AudioChunk:
    data: bytes


@dataclass(frozen=True)
class LingerElapsed:
    session_id: int


@dataclass(frozen=True)
class EndOfAudio:
    session_id: int


@dataclass(frozen=True)
class ResultReceived:
    session_id: int
    result: TranscriptResult


@dataclass(frozen=True)
class FallbackFired:
    session_id: int


SessionEvent = Union[
    Press,
    Release,
    Toggle,
    AudioChunk,
    LingerElapsed,
    EndOfAudio,
    ResultReceived,
    FallbackFired,
]
