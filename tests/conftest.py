"""Pytest configuration and fixtures."""

from __future__ import annotations

import heapq
import itertools
import os
from collections import deque
from typing import Any, Callable, Generator

import numpy as np
import pytest

from talkpaste.config import SessionConfig
from talkpaste.errors import CaptureUnavailable
from talkpaste.output import OutputHandler
from talkpaste.session import DictationSession
from talkpaste.timer import TimerHandle, TimerService
from talkpaste.types import SessionStatus, Transcript, TranscriptResult


class ManualTimerService(TimerService):
    """TimerService on a virtual clock. Nothing runs until the test says so."""

    def __init__(self) -> None:
        super().__init__(loop=None)
        self._now = 0.0
        self._posted: deque[tuple[Callable[..., Any], tuple[Any, ...]]] = deque()
        self._heap: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()
        self.armed: list[TimerHandle] = []

    def now(self) -> float:
        return self._now

    def post(self, callback: Callable[..., Any], *args: Any) -> None:
        self._posted.append((callback, args))

    def arm_once(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(callback, delay)
        heapq.heappush(self._heap, (self._now + delay, next(self._seq), handle))
        self.armed.append(handle)
        return handle

    def run_pending(self) -> None:
        while self._posted:
            callback, args = self._posted.popleft()
            callback(*args)

    def advance(self, seconds: float) -> None:
        target = self._now + seconds
        self.run_pending()
        while self._heap and self._heap[0][0] <= target:
            due, _, handle = heapq.heappop(self._heap)
            self._now = due
            handle._fire()
            self.run_pending()
        self._now = target

    @property
    def active_timers(self) -> list[TimerHandle]:
        return [h for _, _, h in self._heap if h.active]


class FakeGateway:
    def __init__(self) -> None:
        self.begin_calls = 0
        self.buffer: list[bytes] = []
        self.callbacks: list[Callable[[TranscriptResult], None]] = []
        self.log: list[tuple[str, int]] = []

    def begin_session(self) -> None:
        self.begin_calls += 1
        self.buffer = []

    def submit_chunk(self, data: bytes) -> None:
        self.buffer.append(data)
        self.log.append(("chunk", len(data)))

    def end_session(self, on_result: Callable[[TranscriptResult], None]) -> None:
        self.log.append(("end", sum(len(c) for c in self.buffer)))
        self.callbacks.append(on_result)
        if not self.buffer:
            on_result(Transcript(""))

    def resolve(self, result: TranscriptResult) -> None:
        self.callbacks[-1](result)


class FakeChunker:
    def __init__(self) -> None:
        self.on_chunk: Callable[[bytes], None] = lambda data: None
        self.recording = False
        self.fail_with: Exception | None = None
        self.tail = b""
        self.start_calls = 0
        self.stop_calls = 0

    def start(self) -> None:
        self.start_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.recording = True

    def stop(self) -> float:
        self.stop_calls += 1
        self.recording = False
        if self.tail:
            self.on_chunk(self.tail)
        return 1.0


class RecordingOutput(OutputHandler):
    def __init__(self, timers: TimerService | None = None) -> None:
        self.texts: list[str] = []
        self.times: list[float] = []
        self._timers = timers

    def output(self, text: str) -> None:
        self.texts.append(text)
        if self._timers is not None:
            self.times.append(self._timers.now())


@pytest.fixture
def timers() -> ManualTimerService:
    return ManualTimerService()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def chunker() -> FakeChunker:
    return FakeChunker()


@pytest.fixture
def output(timers: ManualTimerService) -> RecordingOutput:
    return RecordingOutput(timers)


@pytest.fixture
def statuses() -> list[SessionStatus]:
    return []


@pytest.fixture
def session(
    timers: ManualTimerService,
    gateway: FakeGateway,
    chunker: FakeChunker,
    output: RecordingOutput,
    statuses: list[SessionStatus],
) -> DictationSession:
    dictation = DictationSession(
        timers=timers,
        gateway=gateway,
        chunker=chunker,
        committer=output,
        config=SessionConfig(linger_s=0.1, fallback_timeout_s=10.0),
        on_status=statuses.append,
    )
    chunker.on_chunk = dictation.feed_audio
    return dictation


@pytest.fixture
def capture_error() -> CaptureUnavailable:
    return CaptureUnavailable("permission denied")


@pytest.fixture
def sample_pcm_16k() -> bytes:
    """1 second of a 440Hz tone as 16kHz little-endian int16 PCM."""
    sample_rate = 16000
    t = np.linspace(0, 1.0, sample_rate, dtype=np.float32)
    audio = np.sin(2 * np.pi * 440 * t) * 0.5
    return (audio * 32767).astype("<i2").tobytes()


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Fixture to clean environment variables before/after tests."""
    env_vars = [
        "TALKPASTE_AUDIO_DEVICE",
        "TALKPASTE_OUTPUT_MODE",
        "TALKPASTE_ASR_URL",
        "TALKPASTE_LANGUAGE",
        "TALKPASTE_ASR_TIMEOUT",
        "TALKPASTE_FALLBACK_TIMEOUT",
        "TALKPASTE_LINGER_MS",
        "TALKPASTE_TONES",
        "TALKPASTE_VERBOSE",
    ]
    original_values = {var: os.environ.get(var) for var in env_vars}

    for var in env_vars:
        os.environ.pop(var, None)

    yield

    for var, value in original_values.items():
        if value is not None:
            os.environ[var] = value
        else:
            os.environ.pop(var, None)
