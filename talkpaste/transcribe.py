"""Client side of the remote speech-recognition service."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable

import httpx

from talkpaste.audio import pcm_to_wav
from talkpaste.errors import TransportError
from talkpaste.types import ASRResponse, Transcript, TranscriptError, TranscriptResult

if TYPE_CHECKING:
    from talkpaste.config import ASRConfig, AudioConfig

logger = logging.getLogger(__name__)

WAV_FILENAME = "audio.wav"
WAV_CONTENT_TYPE = "audio/wav"
ERROR_BODY_PREVIEW_CHARS = 200


class TranscriptionGateway:
    """
    Buffers one session's audio and turns it into a single transcription request.

    The gateway holds no reference to whoever consumes the result: each
    ``end_session`` call takes its own callback, which is invoked exactly
    once on the event loop unless a later ``begin_session`` superseded it.
    """

    def __init__(
        self,
        asr_config: "ASRConfig",
        audio_config: "AudioConfig",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = asr_config
        self._audio_config = audio_config
        # httpx applies timeout_s per phase (connect, write, read), not end to end;
        # a trickling response can run longer and is cut off by the fallback timer.
        self._client = client or httpx.AsyncClient(timeout=asr_config.timeout_s)
        self._buffer = bytearray()
        self._generation = 0
        self._in_flight: int | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def buffered_bytes(self) -> int:
        return len(self._buffer)

    @property
    def in_flight(self) -> bool:
        return self._in_flight == self._generation

    def begin_session(self) -> None:
        """Drop buffered audio and lose interest in any outstanding request."""
        self._generation += 1
        self._buffer = bytearray()
        logger.debug("Gateway session %d started", self._generation)

    def submit_chunk(self, data: bytes) -> None:
        self._buffer.extend(data)

    def end_session(
        self,
        on_result: Callable[[TranscriptResult], None],
    ) -> asyncio.Task[None] | None:
        """
        Send everything buffered since ``begin_session`` as one request.

        With no buffered audio the callback runs immediately with an empty
        transcript and no request is made.

        Returns:
            The request task, or None if nothing was sent.
        """
        if self.in_flight:
            logger.warning("Request already in flight for this session, ignoring")
            return None

        pcm = bytes(self._buffer)
        self._buffer = bytearray()

        if not pcm:
            logger.info("No audio captured, skipping transcription request")
            on_result(Transcript(""))
            return None

        wav = pcm_to_wav(
            pcm,
            sample_rate=self._audio_config.sample_rate,
            channels=self._audio_config.channels,
            bits_per_sample=self._audio_config.bits_per_sample,
        )
        duration_s = len(pcm) / self._audio_config.bytes_per_second
        logger.info("Uploading %.2fs of audio (%d bytes WAV)", duration_s, len(wav))

        generation = self._generation
        self._in_flight = generation
        task = asyncio.get_running_loop().create_task(
            self._run(generation, wav, on_result)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(
        self,
        generation: int,
        wav: bytes,
        on_result: Callable[[TranscriptResult], None],
    ) -> None:
        try:
            text = await self.transcribe(wav)
        except TransportError as e:
            logger.warning("Transcription failed: %s", e)
            result: TranscriptResult = TranscriptError(str(e))
        except Exception as e:
            logger.exception("Unexpected transcription failure: %s", e)
            result = TranscriptError(f"{type(e).__name__}: {e}")
        else:
            result = Transcript(text)
        finally:
            if self._in_flight == generation:
                self._in_flight = None

        if generation != self._generation:
            logger.debug("Dropping stale result from gateway session %d", generation)
            return
        on_result(result)

    async def transcribe(self, wav: bytes) -> str:
        """
        POST a WAV file to the service.

        Returns:
            The recognized text; empty if the response has no ``text`` field.

        Raises:
            TransportError: On network failure, timeout, a non-2xx status or
                a body that is not a JSON object.
        """
        files = {"file": (WAV_FILENAME, wav, WAV_CONTENT_TYPE)}
        data = {"language": self._config.language}

        try:
            response = await self._client.post(
                self._config.endpoint,
                files=files,
                data=data,
                timeout=self._config.timeout_s,
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"ASR request timed out: {e}") from e
        except httpx.RequestError as e:
            raise TransportError(f"ASR request failed: {e}") from e
        except httpx.InvalidURL as e:
            raise TransportError(f"Invalid ASR endpoint: {e}") from e

        if not response.is_success:
            preview = response.text[:ERROR_BODY_PREVIEW_CHARS]
            raise TransportError(f"ASR error ({response.status_code}): {preview}")

        try:
            body: ASRResponse = response.json()
        except ValueError as e:
            raise TransportError(f"ASR response is not JSON: {e}") from e

        if not isinstance(body, dict):
            raise TransportError(f"ASR response is not an object: {type(body).__name__}")

        text = body.get("text")
        if text is None:
            logger.info("ASR response has no 'text' field")
            return ""
        if not isinstance(text, str):
            raise TransportError(f"ASR 'text' is not a string: {type(text).__name__}")

        logger.info("Recognized text: \"%s\"", text)
        return text

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self._client.aclose()
