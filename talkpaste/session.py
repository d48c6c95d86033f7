"""The dictation session state machine."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Protocol

from talkpaste.errors import CaptureUnavailable
from talkpaste.types import (
    AudioChunk,
    EndOfAudio,
    FallbackFired,
    LingerElapsed,
    Press,
    Release,
    ResultReceived,
    SessionEvent,
    SessionState,
    SessionStatus,
    Toggle,
    Transcript,
    TranscriptResult,
)

if TYPE_CHECKING:
    from talkpaste.config import SessionConfig
    from talkpaste.output import OutputHandler
    from talkpaste.timer import TimerHandle, TimerService

logger = logging.getLogger(__name__)


class Gateway(Protocol):
    def begin_session(self) -> None: ...

    def submit_chunk(self, data: bytes) -> None: ...

    def end_session(self, on_result: Callable[[TranscriptResult], None]) -> object: ...


class Chunker(Protocol):
    def start(self) -> None: ...

    def stop(self) -> float: ...


@dataclass
class Session:
    """One press-to-commit episode."""

    id: int
    state: SessionState = SessionState.RECORDING
    latest_text: str = ""
    committed: bool = False
    pending_timeout: "TimerHandle | None" = None
    linger: "TimerHandle | None" = None
    stopping: bool = False


class DictationSession:
    """
    Owns the press → record → transcribe → commit lifecycle.

    Every input is an event handled by ``handle()``, which must only run on
    the control loop. Other threads (hotkey listener, audio callback) go
    through ``start``/``stop``/``toggle``/``feed_audio``, which post onto
    the loop. Collaborator completions (timers, gateway results) are also
    posted rather than handled inline, so transitions never nest.
    """

    def __init__(
        self,
        timers: "TimerService",
        gateway: Gateway,
        chunker: Chunker,
        committer: "OutputHandler",
        config: "SessionConfig",
        on_status: Callable[[SessionStatus], None] | None = None,
    ) -> None:
        self._timers = timers
        self._gateway = gateway
        self._chunker = chunker
        self._committer = committer
        self._config = config
        self._on_status = on_status
        self._ids = itertools.count(1)
        self._session: Session | None = None
        self.commit_count = 0

    @property
    def state(self) -> SessionState:
        if self._session is None:
            return SessionState.IDLE
        return self._session.state

    @property
    def current(self) -> Session | None:
        return self._session

    # Thread-safe entry points

    def start(self) -> None:
        self.post(Press())

    def stop(self) -> None:
        self.post(Release())

    def toggle(self) -> None:
        self.post(Toggle())

    def feed_audio(self, data: bytes) -> None:
        self.post(AudioChunk(data))

    def post(self, event: SessionEvent) -> None:
        self._timers.post(self.handle, event)

    # Transition function

    def handle(self, event: SessionEvent) -> None:
        if isinstance(event, Press):
            self._on_press()
        elif isinstance(event, Release):
            self._on_release()
        elif isinstance(event, Toggle):
            if self.state == SessionState.IDLE:
                self._on_press()
            else:
                self._on_release()
        elif isinstance(event, AudioChunk):
            self._on_audio(event.data)
        elif isinstance(event, LingerElapsed):
            self._on_linger_elapsed(event.session_id)
        elif isinstance(event, EndOfAudio):
            self._on_end_of_audio(event.session_id)
        elif isinstance(event, ResultReceived):
            self._on_result(event.session_id, event.result)
        elif isinstance(event, FallbackFired):
            self._on_fallback(event.session_id)
        else:
            raise TypeError(f"Unknown session event: {event!r}")

    def _on_press(self) -> None:
        if self._session is not None:
            logger.debug(
                "Press ignored, session %d is %s",
                self._session.id,
                self._session.state.value,
            )
            return

        session = Session(id=next(self._ids))
        self._gateway.begin_session()
        try:
            self._chunker.start()
        except CaptureUnavailable as e:
            logger.warning("Audio capture unavailable: %s", e)
            print(f"⚠️ Microphone unavailable: {e}")
            self._set_status(SessionStatus.IDLE)
            return

        self._session = session
        logger.info("Session %d recording", session.id)
        self._set_status(SessionStatus.RECORDING)

    def _on_release(self) -> None:
        session = self._session
        if session is None or session.state != SessionState.RECORDING or session.stopping:
            logger.debug("Release ignored, no recording session")
            return

        session.stopping = True
        session_id = session.id
        session.linger = self._timers.arm_once(
            self._config.linger_s,
            lambda: self.post(LingerElapsed(session_id)),
        )

    def _on_audio(self, data: bytes) -> None:
        session = self._session
        if session is None or session.state != SessionState.RECORDING:
            logger.debug("Dropping %d bytes of audio outside a recording", len(data))
            return
        self._gateway.submit_chunk(data)

    def _on_linger_elapsed(self, session_id: int) -> None:
        session = self._active(session_id, SessionState.RECORDING)
        if session is None:
            return
        session.linger = None
        duration = self._chunker.stop()
        logger.info("Session %d stopped after %.2fs", session_id, duration)
        # Queued behind the chunks the flush just posted.
        self.post(EndOfAudio(session_id))

    def _on_end_of_audio(self, session_id: int) -> None:
        session = self._active(session_id, SessionState.RECORDING)
        if session is None:
            return

        session.state = SessionState.AWAITING_RESULT
        self._set_status(SessionStatus.PENDING)
        self._gateway.end_session(
            lambda result: self.post(ResultReceived(session_id, result))
        )
        session.pending_timeout = self._timers.arm_once(
            self._config.fallback_timeout_s,
            lambda: self.post(FallbackFired(session_id)),
        )

    def _on_result(self, session_id: int, result: TranscriptResult) -> None:
        session = self._active(session_id, SessionState.AWAITING_RESULT)
        if session is None or session.committed:
            logger.info("Ignoring late result for session %d", session_id)
            return

        if isinstance(result, Transcript):
            if result.text:
                session.latest_text = result.text
        else:
            logger.warning("Session %d transcription error: %s", session_id, result.reason)

        self._commit(session, "result")

    def _on_fallback(self, session_id: int) -> None:
        session = self._active(session_id, SessionState.AWAITING_RESULT)
        if session is None or session.committed:
            return
        logger.warning(
            "No result for session %d after %.1fs, committing what we have",
            session_id,
            self._config.fallback_timeout_s,
        )
        self._commit(session, "timeout")

    def _commit(self, session: Session, reason: str) -> None:
        session.committed = True
        self._timers.cancel(session.pending_timeout)
        session.pending_timeout = None
        session.state = SessionState.COMMITTED

        text = session.latest_text
        self.commit_count += 1
        try:
            if text:
                logger.info("Committing session %d (%s): \"%s\"", session.id, reason, text)
                print(f"\n✅ Output: \"{text}\"")
            else:
                logger.info("Committing session %d (%s) with no text", session.id, reason)
            self._committer.output(text)
        except Exception as e:
            logger.exception("Output error: %s", e)
            print(f"   ⚠️ Output error: {e}")
        finally:
            self._session = None
            self._set_status(SessionStatus.IDLE)

    def _active(self, session_id: int, state: SessionState) -> Session | None:
        session = self._session
        if session is None or session.id != session_id or session.state != state:
            return None
        return session

    def _set_status(self, status: SessionStatus) -> None:
        if self._on_status is None:
            return
        try:
            self._on_status(status)
        except Exception as e:
            logger.warning("Status indicator failed: %s", e)
