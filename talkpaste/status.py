"""Console status indicator with start/stop cue tones."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from talkpaste.audio import play_tone
from talkpaste.types import SessionStatus

if TYPE_CHECKING:
    from talkpaste.config import ToneConfig

logger = logging.getLogger(__name__)

STATUS_MARKERS = {
    SessionStatus.IDLE: "🎤 Ready",
    SessionStatus.RECORDING: "🔴 Recording...",
    SessionStatus.PENDING: "⏳ Transcribing...",
}


class ConsoleStatus:
    def __init__(self, tones: "ToneConfig", sample_rate: int) -> None:
        self._tones = tones
        self._sample_rate = sample_rate
        self._last: SessionStatus = SessionStatus.IDLE

    @property
    def last(self) -> SessionStatus:
        return self._last

    def __call__(self, status: SessionStatus) -> None:
        previous, self._last = self._last, status
        if status == previous:
            return

        if status == SessionStatus.RECORDING:
            self._tone(self._tones.start_hz)
        elif previous == SessionStatus.RECORDING:
            self._tone(self._tones.stop_hz)

        print(STATUS_MARKERS[status])

    def _tone(self, frequency_hz: int) -> None:
        try:
            play_tone(self._tones, frequency_hz, self._sample_rate)
        except Exception as e:
            logger.debug("Could not play tone: %s", e)
