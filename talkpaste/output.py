"""Output handlers for transcribed text."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import pyperclip

if TYPE_CHECKING:
    from talkpaste.config import OutputMode
    from talkpaste.timer import TimerService

logger = logging.getLogger(__name__)


def _keyboard_controller() -> Any:
    # pynput picks its backend at import time and needs a display for it.
    from pynput.keyboard import Controller as KeyboardController

    return KeyboardController()


def _resolve_key(name: str) -> Any:
    from pynput.keyboard import Key

    return getattr(Key, name)


class OutputHandler(ABC):
    """Abstract base class for output handlers."""

    @abstractmethod
    def output(self, text: str) -> None:
        """Deliver the final text. Empty text is a valid no-op."""
        ...


class ClipboardOutput(OutputHandler):
    """Outputs text to the system clipboard."""

    def output(self, text: str) -> None:
        """Copy text to clipboard."""
        if text:
            pyperclip.copy(text)


class TyperOutput(OutputHandler):
    """Types text directly into the focused window."""

    def __init__(self) -> None:
        self._controller: Any = None

    def output(self, text: str) -> None:
        """Type text into the focused window."""
        if not text:
            return
        if self._controller is None:
            self._controller = _keyboard_controller()
        try:
            # Small delay to ensure the window is ready
            time.sleep(0.05)
            self._controller.type(text)
        except Exception as e:
            logger.error("Failed to type text: %s", e)
            raise


class PasteOutput(OutputHandler):
    """
    Pastes text through the clipboard and puts the old clipboard back.

    The clipboard is borrowed: its previous content is read before anything
    is written and restored ``restore_delay_s`` later, even if the paste
    fails. Restoring is deferred so the target app has time to read the
    pasted text.
    """

    def __init__(
        self,
        timers: "TimerService",
        restore_delay_s: float = 0.1,
        paste_modifier: str = "cmd",
    ) -> None:
        self._timers = timers
        self._restore_delay_s = restore_delay_s
        self._paste_modifier = paste_modifier
        self._controller: Any = None

    def output(self, text: str) -> None:
        original = pyperclip.paste()
        try:
            if text:
                pyperclip.copy(text)
                self._send_paste()
        finally:
            self._timers.arm_once(self._restore_delay_s, lambda: self._restore(original))

    def _send_paste(self) -> None:
        if self._controller is None:
            self._controller = _keyboard_controller()
        with self._controller.pressed(_resolve_key(self._paste_modifier)):
            self._controller.tap("v")

    def _restore(self, original: str) -> None:
        try:
            pyperclip.copy(original)
        except pyperclip.PyperclipException as e:
            logger.warning("Failed to restore clipboard: %s", e)


def create_output_handler(
    mode: "OutputMode",
    timers: "TimerService",
    restore_delay_s: float = 0.1,
    paste_modifier: str = "cmd",
) -> OutputHandler:
    """
    Create an output handler based on the configured mode.

    Args:
        mode: The output mode.
        timers: Used to schedule the clipboard restore in paste mode.
        restore_delay_s: How long the pasted text stays on the clipboard.
        paste_modifier: ``pynput`` key name held while tapping V.

    Returns:
        An appropriate output handler.
    """
    from talkpaste.config import OutputMode

    if mode == OutputMode.CLIPBOARD:
        return ClipboardOutput()
    if mode == OutputMode.TYPE:
        return TyperOutput()
    return PasteOutput(timers, restore_delay_s, paste_modifier)
