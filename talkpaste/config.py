"""Configuration for the Talkpaste application."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

DEFAULT_ASR_URL = "http://127.0.0.1:30766/v1/audio/transcriptions"
TRUTHY = ("1", "true", "yes")


class OutputMode(str, Enum):
    PASTE = "paste"
    TYPE = "type"
    CLIPBOARD = "clipboard"


@dataclass
class AudioConfig:
    sample_rate: int = 16_000
    channels: int = 1
    bits_per_sample: int = 16
    # 100ms of 16kHz 16-bit mono
    chunk_bytes: int = 3200
    block_ms: int = 30
    device_id: int | None = None

    @property
    def block_size(self) -> int:
        return int(self.sample_rate * (self.block_ms / 1000.0))

    @property
    def bytes_per_second(self) -> int:
        return self.sample_rate * self.channels * self.bits_per_sample // 8


@dataclass
class ToneConfig:
    enabled: bool = True
    start_hz: int = 880
    stop_hz: int = 440
    duration_s: float = 0.04
    volume: float = 0.15


@dataclass
class ASRConfig:
    endpoint: str = DEFAULT_ASR_URL
    language: str = "zh"
    timeout_s: float = 30.0


@dataclass
class SessionConfig:
    linger_s: float = 0.1
    fallback_timeout_s: float = 10.0


def default_paste_modifier() -> str:
    return "cmd" if sys.platform == "darwin" else "ctrl"


@dataclass
class KeybindConfig:
    """Key names as understood by ``pynput.keyboard.Key``."""

    ptt_key: str = "alt_l"
    quit_key: str = "esc"
    quit_modifier: str = "cmd"
    paste_modifier: str = field(default_factory=default_paste_modifier)


@dataclass
class Config:
    audio: AudioConfig = field(default_factory=AudioConfig)
    tones: ToneConfig = field(default_factory=ToneConfig)
    asr: ASRConfig = field(default_factory=ASRConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    keybinds: KeybindConfig = field(default_factory=KeybindConfig)
    output_mode: OutputMode = OutputMode.PASTE
    clipboard_restore_s: float = 0.1
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        config = cls()

        if device := os.environ.get("TALKPASTE_AUDIO_DEVICE"):
            try:
                config.audio.device_id = int(device)
            except ValueError:
                logger.warning("Ignoring invalid TALKPASTE_AUDIO_DEVICE=%r", device)

        if mode := os.environ.get("TALKPASTE_OUTPUT_MODE"):
            try:
                config.output_mode = OutputMode(mode.lower())
            except ValueError:
                logger.warning("Ignoring invalid TALKPASTE_OUTPUT_MODE=%r", mode)

        if url := os.environ.get("TALKPASTE_ASR_URL"):
            config.asr.endpoint = url

        if lang := os.environ.get("TALKPASTE_LANGUAGE"):
            config.asr.language = lang

        if timeout := os.environ.get("TALKPASTE_ASR_TIMEOUT"):
            config.asr.timeout_s = _positive_float(
                "TALKPASTE_ASR_TIMEOUT", timeout, config.asr.timeout_s
            )

        if fallback := os.environ.get("TALKPASTE_FALLBACK_TIMEOUT"):
            config.session.fallback_timeout_s = _positive_float(
                "TALKPASTE_FALLBACK_TIMEOUT", fallback, config.session.fallback_timeout_s
            )

        if linger := os.environ.get("TALKPASTE_LINGER_MS"):
            linger_ms = _positive_float(
                "TALKPASTE_LINGER_MS", linger, config.session.linger_s * 1000.0
            )
            config.session.linger_s = linger_ms / 1000.0

        if tones := os.environ.get("TALKPASTE_TONES"):
            config.tones.enabled = tones.lower() in TRUTHY

        if verbose := os.environ.get("TALKPASTE_VERBOSE"):
            config.verbose = verbose.lower() in TRUTHY

        return config


def _positive_float(name: str, raw: str, default: float) -> float:
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", name, raw)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r", name, raw)
        return default
    return value
