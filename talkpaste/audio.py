"""Microphone capture, cue tones and the WAV container."""

from __future__ import annotations

import logging
import struct
import threading
import time
from dataclasses import dataclass
from types import ModuleType
from typing import TYPE_CHECKING, Any, Callable

import numpy as np

from talkpaste.errors import CaptureUnavailable

if TYPE_CHECKING:
    from talkpaste.config import AudioConfig, ToneConfig

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_RATE = 16_000
FADE_DURATION_SECONDS = 0.008
FIRST_CHANNEL_INDEX = 0
WAV_HEADER_SIZE = 44
WAV_FMT_CHUNK_SIZE = 16
WAV_FORMAT_PCM = 1
# RIFF size counts everything after the first 8 header bytes
RIFF_SIZE_OVERHEAD = WAV_HEADER_SIZE - 8


def _sounddevice() -> ModuleType:
    # Deferred: importing sounddevice fails outright when PortAudio is absent.
    import sounddevice as sd

    return sd


@dataclass
class AudioDevice:
    index: int
    name: str
    is_default: bool = False

    def __str__(self) -> str:
        marker = " (DEFAULT)" if self.is_default else ""
        return f"[{self.index}] {self.name}{marker}"


def list_input_devices() -> list[AudioDevice]:
    sd = _sounddevice()
    devices = sd.query_devices()
    default_input = sd.default.device[FIRST_CHANNEL_INDEX]

    input_devices = []
    for i, dev in enumerate(devices):
        if dev["max_input_channels"] > 0:  # type: ignore[index]
            input_devices.append(
                AudioDevice(
                    index=i,
                    name=dev["name"],  # type: ignore[index]
                    is_default=(i == default_input),
                )
            )
    return input_devices


def get_device_name(device_id: int | None) -> str:
    sd = _sounddevice()
    if device_id is not None:
        info = sd.query_devices(device_id)
    else:
        default_id = sd.default.device[FIRST_CHANNEL_INDEX]
        info = sd.query_devices(default_id)
    return info["name"]  # type: ignore[index,return-value]


def play_tone(
    config: "ToneConfig",
    frequency_hz: int,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
) -> None:
    if not config.enabled:
        return

    n_samples = int(sample_rate * config.duration_s)
    t = np.arange(n_samples, dtype=np.float32) / sample_rate
    tone = np.sin(2.0 * np.pi * frequency_hz * t) * config.volume

    fade_samples = max(1, int(FADE_DURATION_SECONDS * sample_rate))
    if fade_samples * 2 < n_samples:
        window = np.ones(n_samples, dtype=np.float32)
        window[:fade_samples] = np.linspace(0, 1, fade_samples, dtype=np.float32)
        window[-fade_samples:] = np.linspace(1, 0, fade_samples, dtype=np.float32)
        tone *= window

    _sounddevice().play(tone.astype(np.float32), sample_rate, blocking=False)


def pcm_to_wav(
    pcm: bytes,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    channels: int = 1,
    bits_per_sample: int = 16,
) -> bytes:
    """
    Wrap raw little-endian PCM in a canonical 44-byte RIFF/WAVE header.

    Args:
        pcm: Raw interleaved samples.
        sample_rate: Samples per second.
        channels: Channel count.
        bits_per_sample: Sample width in bits.

    Returns:
        The complete WAV file as bytes.
    """
    data_size = len(pcm)
    block_align = channels * bits_per_sample // 8
    byte_rate = sample_rate * block_align
    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        data_size + RIFF_SIZE_OVERHEAD,
        b"WAVE",
        b"fmt ",
        WAV_FMT_CHUNK_SIZE,
        WAV_FORMAT_PCM,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        b"data",
        data_size,
    )
    return header + bytes(pcm)


class AudioChunker:
    """
    Captures 16-bit PCM from the microphone and hands it out in fixed-size chunks.

    ``on_chunk`` is called from the PortAudio thread while recording and
    from the caller's thread for the final flush in ``stop()``. Chunks are
    always delivered in capture order.
    """

    def __init__(
        self,
        audio_config: "AudioConfig",
        on_chunk: Callable[[bytes], None],
    ) -> None:
        self._audio_config = audio_config
        self._on_chunk = on_chunk

        self._stream: Any = None
        self._recording = False
        self._recording_started_at = 0.0
        self._buffer = bytearray()
        self._lock = threading.Lock()

    @property
    def is_recording(self) -> bool:
        with self._lock:
            return self._recording

    def start(self) -> None:
        with self._lock:
            if self._recording:
                return
            self._recording = True
            self._recording_started_at = time.time()
            self._buffer.clear()

        try:
            self._start_stream()
        except CaptureUnavailable:
            with self._lock:
                self._recording = False
            raise

    def stop(self) -> float:
        with self._lock:
            if not self._recording:
                return 0.0
            self._recording = False
            duration = time.time() - self._recording_started_at

        self._stop_stream()

        with self._lock:
            tail = bytes(self._buffer)
            self._buffer.clear()
        if tail:
            self._on_chunk(tail)
        return duration

    def _start_stream(self) -> None:
        try:
            sd = _sounddevice()
        except OSError as e:
            raise CaptureUnavailable(f"PortAudio unavailable: {e}") from e

        try:
            self._stream = sd.RawInputStream(
                samplerate=self._audio_config.sample_rate,
                channels=self._audio_config.channels,
                dtype="int16",
                blocksize=self._audio_config.block_size,
                device=self._audio_config.device_id,
                callback=self._audio_callback,
            )
            self._stream.start()
        except (sd.PortAudioError, ValueError) as e:
            self._stop_stream()
            raise CaptureUnavailable(f"Could not open input device: {e}") from e

    def _stop_stream(self) -> None:
        if self._stream:
            try:
                self._stream.stop()
                self._stream.close()
            except Exception as e:
                logger.warning("Error stopping audio stream: %s", e)
            finally:
                self._stream = None

    def _audio_callback(
        self,
        indata: Any,
        frames: int,
        time_info: Any,
        status: Any,
    ) -> None:
        if status:
            logger.warning("Audio callback status: %s", status)

        self._process_block(bytes(indata))

    def _process_block(self, data: bytes) -> None:
        chunk_bytes = self._audio_config.chunk_bytes
        ready: list[bytes] = []

        with self._lock:
            if not self._recording:
                return
            self._buffer.extend(data)
            while len(self._buffer) >= chunk_bytes:
                ready.append(bytes(self._buffer[:chunk_bytes]))
                del self._buffer[:chunk_bytes]

        for chunk in ready:
            self._on_chunk(chunk)
