"""Single-fire cancellation signal shared between links."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, List, Optional

LOGGER = logging.getLogger(__name__)

CancelCallback = Callable[[], None]


class CancelSignal:
    """One-shot cancellation primitive.

    The signal starts pending and moves to cancelled exactly once. Links that
    own a request write to it (``cancel()``); transports race their network
    call against ``wait()``. Awaiting after the transition returns immediately.

    ``cancel()`` may be called from another thread; the wake-up is then
    handed to the owning loop with ``call_soon_threadsafe``.
    """

    __slots__ = ("_cancelled", "_event", "_callbacks", "_loop", "_lock", "__weakref__")

    def __init__(self) -> None:
        self._cancelled = False
        self._event = asyncio.Event()
        self._callbacks: List[CancelCallback] = []
        self._lock = threading.Lock()
        try:
            self._loop: Optional[asyncio.AbstractEventLoop] = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None

    @classmethod
    def linked(cls, parent: Optional["CancelSignal"]) -> "CancelSignal":
        """Return a new signal that is cancelled whenever ``parent`` is."""

        signal = cls()
        if parent is not None:
            parent.add_callback(signal.cancel)
        return signal

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            callbacks, self._callbacks = self._callbacks, []
        self._wake()
        for callback in callbacks:
            try:
                callback()
            except Exception:  # noqa: BLE001
                LOGGER.exception("Cancel callback %r failed", callback)

    async def wait(self) -> None:
        """Block until the signal is cancelled."""

        self._loop = asyncio.get_running_loop()
        if self._cancelled:
            return
        await self._event.wait()

    def _wake(self) -> None:
        loop = self._loop
        if loop is not None and not loop.is_closed():
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None
            if running is not loop:
                loop.call_soon_threadsafe(self._event.set)
                return
        self._event.set()

    def add_callback(self, callback: CancelCallback) -> None:
        with self._lock:
            if not self._cancelled:
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: CancelCallback) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

    def cancel_after(self, delay: float) -> asyncio.TimerHandle:
        """Schedule ``cancel()`` on the running loop after ``delay`` seconds."""

        loop = asyncio.get_running_loop()
        return loop.call_later(delay, self.cancel)

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "pending"
        return f"<CancelSignal {state} at {id(self):#x}>"


__all__ = ["CancelSignal", "CancelCallback"]
