"""Global push-to-talk hotkey."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from talkpaste.config import KeybindConfig

logger = logging.getLogger(__name__)


class HotkeyTrigger:
    """
    Turns global key events into push-to-talk edges.

    ``on_trigger(True)`` fires once when the push-to-talk key goes down,
    however many auto-repeat presses the OS sends while it is held, and
    ``on_trigger(False)`` fires once when it comes up. Both run on the
    listener thread; callers are expected to marshal them elsewhere.
    """

    def __init__(
        self,
        ptt_key: Any,
        quit_key: Any,
        quit_modifier: Any,
        on_trigger: Callable[[bool], None],
        on_quit: Callable[[], None],
    ) -> None:
        self._ptt_key = ptt_key
        self._quit_key = quit_key
        self._quit_modifier = quit_modifier
        self._on_trigger = on_trigger
        self._on_quit = on_quit

        self._lock = threading.Lock()
        self._ptt_down = False
        self._modifier_down = False
        self._quitting = False
        self._listener: Any = None

    @classmethod
    def from_config(
        cls,
        keybinds: "KeybindConfig",
        on_trigger: Callable[[bool], None],
        on_quit: Callable[[], None],
    ) -> "HotkeyTrigger":
        from pynput.keyboard import Key

        return cls(
            ptt_key=getattr(Key, keybinds.ptt_key),
            quit_key=getattr(Key, keybinds.quit_key),
            quit_modifier=getattr(Key, keybinds.quit_modifier),
            on_trigger=on_trigger,
            on_quit=on_quit,
        )

    @property
    def is_running(self) -> bool:
        return self._listener is not None

    def start(self) -> None:
        if self._listener is not None:
            return
        from pynput import keyboard

        self._listener = keyboard.Listener(
            on_press=self._on_press,
            on_release=self._on_release,
        )
        self._listener.start()
        logger.info("Hotkey listener started")

    def stop(self) -> None:
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.stop()
            logger.info("Hotkey listener stopped")

    def _on_press(self, key: Any) -> None:
        if key == self._quit_modifier:
            self._modifier_down = True
            return

        if key == self._ptt_key:
            with self._lock:
                if self._ptt_down:
                    return
                self._ptt_down = True
            self._on_trigger(True)

    def _on_release(self, key: Any) -> bool | None:
        if key == self._quit_modifier:
            self._modifier_down = False
            return None

        if key == self._quit_key and self._modifier_down:
            if self._quitting:
                return None
            self._quitting = True
            self._on_quit()
            return False  # Stop listener

        if key == self._ptt_key:
            with self._lock:
                if not self._ptt_down:
                    return None
                self._ptt_down = False
            self._on_trigger(False)

        return None
