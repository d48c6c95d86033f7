"""One-shot timers and the hand-off onto the control loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class TimerHandle:
    """A single armed callback. Fires at most once."""

    def __init__(self, callback: Callable[[], None], delay: float) -> None:
        self._callback = callback
        self.delay = delay
        self._cancelled = False
        self._fired = False
        self._scheduled: asyncio.TimerHandle | None = None

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active(self) -> bool:
        return not (self._fired or self._cancelled)

    def _fire(self) -> None:
        # A cancel that was processed before dispatch wins.
        if not self.active:
            return
        self._fired = True
        self._callback()


class TimerService:
    """
    Schedules work on the asyncio loop that owns all session state.

    ``post`` may be called from any thread. ``arm_once`` and ``cancel``
    must be called on the loop thread, which is where every session
    transition runs anyway.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def post(self, callback: Callable[..., Any], *args: Any) -> None:
        """Queue ``callback(*args)`` on the control loop in FIFO order."""
        self.loop.call_soon_threadsafe(callback, *args)

    def arm_once(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(callback, delay)
        handle._scheduled = self.loop.call_later(delay, handle._fire)
        return handle

    def cancel(self, handle: TimerHandle | None) -> bool:
        """
        Disarm ``handle``.

        Returns:
            True if this call prevented the callback, False if it had
            already fired, was already cancelled, or there was no handle.
        """
        if handle is None or not handle.active:
            return False
        handle._cancelled = True
        if handle._scheduled is not None:
            handle._scheduled.cancel()
            handle._scheduled = None
        return True
