"""Main Talkpaste application."""

from __future__ import annotations

import asyncio
import logging
import signal

from talkpaste.audio import AudioChunker, get_device_name, list_input_devices
from talkpaste.config import Config, OutputMode
from talkpaste.output import create_output_handler
from talkpaste.session import DictationSession
from talkpaste.status import ConsoleStatus
from talkpaste.timer import TimerService
from talkpaste.transcribe import TranscriptionGateway
from talkpaste.trigger import HotkeyTrigger

logger = logging.getLogger(__name__)


class DictationApp:
    """
    Push-to-Talk Dictation Application.

    Captures audio while a key is held, sends it to a remote speech
    recognition service, and pastes the transcript into the focused window.
    All session state lives on one asyncio loop; the hotkey listener and the
    audio callback hand their events over to it.
    """

    def __init__(self, config: Config | None = None) -> None:
        self._config = config or Config()

        # Components (initialized in setup)
        self._timers: TimerService | None = None
        self._gateway: TranscriptionGateway | None = None
        self._chunker: AudioChunker | None = None
        self._session: DictationSession | None = None
        self._trigger: HotkeyTrigger | None = None
        self._quit: asyncio.Event | None = None
        self._shut_down = False

    @property
    def session(self) -> DictationSession | None:
        return self._session

    def setup(self, loop: asyncio.AbstractEventLoop) -> None:
        """Initialize all components on ``loop``."""
        self._print_banner()
        self._print_devices()

        self._timers = TimerService(loop)
        self._gateway = TranscriptionGateway(self._config.asr, self._config.audio)
        committer = create_output_handler(
            self._config.output_mode,
            self._timers,
            restore_delay_s=self._config.clipboard_restore_s,
            paste_modifier=self._config.keybinds.paste_modifier,
        )
        status = ConsoleStatus(self._config.tones, self._config.audio.sample_rate)

        self._chunker = AudioChunker(self._config.audio, on_chunk=self._on_chunk)
        self._session = DictationSession(
            timers=self._timers,
            gateway=self._gateway,
            chunker=self._chunker,
            committer=committer,
            config=self._config.session,
            on_status=status,
        )
        self._trigger = HotkeyTrigger.from_config(
            self._config.keybinds,
            on_trigger=self._on_trigger,
            on_quit=self.request_quit,
        )

        self._print_instructions()

    def _print_banner(self) -> None:
        """Print application banner."""
        print("=" * 60)
        print("🎙️ TALKPASTE - Push-to-Talk Dictation")
        print("=" * 60)

    def _print_devices(self) -> None:
        """Print available audio devices."""
        try:
            devices = list_input_devices()
            device_name = get_device_name(self._config.audio.device_id)
        except OSError as e:
            logger.warning("Could not query audio devices: %s", e)
            print(f"\n⚠️ Audio devices unavailable: {e}")
            return

        print("\n🎤 Available audio input devices:")
        print("-" * 50)
        for device in devices:
            print(f"  {device}")
        print("-" * 50)

        if self._config.audio.device_id is not None:
            print(f"\n✅ Using input device [{self._config.audio.device_id}]: {device_name}")
        else:
            print(f"\n✅ Using DEFAULT input device: {device_name}")

        print(f"\n🌐 ASR endpoint: {self._config.asr.endpoint} ({self._config.asr.language})")
        print(f"🔊 Output mode: {self._config.output_mode.value}")

    def _print_instructions(self) -> None:
        """Print usage instructions."""
        keys = self._config.keybinds
        where = {
            OutputMode.PASTE: "PASTED into the focused window",
            OutputMode.TYPE: "TYPED into the focused window",
            OutputMode.CLIPBOARD: "copied to CLIPBOARD",
        }[self._config.output_mode]
        print("\n" + "=" * 60)
        print("📌 INSTRUCTIONS:")
        print(f"   • Hold {keys.ptt_key} to talk. Release to stop.")
        print(f"   • Press {keys.quit_modifier}+{keys.quit_key} to quit. Ctrl+C also works.")
        print(f"   • Text will be {where}.")
        print("=" * 60)
        print("\n🟢 Ready!\n")

    def _on_chunk(self, data: bytes) -> None:
        if self._session is not None:
            self._session.feed_audio(data)

    def _on_trigger(self, down: bool) -> None:
        if self._session is None:
            return
        if down:
            self._session.start()
        else:
            self._session.stop()

    def toggle_recording(self) -> None:
        """Start or stop recording without the hotkey."""
        if self._session is not None:
            self._session.toggle()

    def request_quit(self) -> None:
        """Ask the run loop to exit. Safe to call from any thread."""
        if self._timers is None or self._quit is None:
            return
        print("\n👋 Quitting...")
        self._timers.post(self._quit.set)

    async def run_async(self) -> None:
        loop = asyncio.get_running_loop()
        self._quit = asyncio.Event()
        self.setup(loop)
        assert self._trigger is not None

        try:
            loop.add_signal_handler(signal.SIGINT, self._quit.set)
        except (NotImplementedError, RuntimeError):
            logger.debug("Signal handlers not supported on this loop")

        self._trigger.start()
        try:
            await self._quit.wait()
        finally:
            await self.shutdown()

    def run(self) -> None:
        """Run the application until quit is requested."""
        asyncio.run(self.run_async())

    async def shutdown(self) -> None:
        """Shutdown the application gracefully."""
        if self._shut_down:
            return
        self._shut_down = True
        logger.info("Shutting down...")

        if self._trigger is not None:
            self._trigger.stop()

        if self._chunker is not None and self._chunker.is_recording:
            self._chunker.stop()

        if self._gateway is not None:
            await self._gateway.aclose()
