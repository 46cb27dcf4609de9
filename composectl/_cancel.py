"""Cooperative cancellation shared by every streaming operation."""

from __future__ import annotations

import threading
from collections.abc import Callable

from composectl._log import get_logger

logger = get_logger("cancel")


class CancelToken:
    """A caller-owned cancellation signal.

    Wraps a :class:`threading.Event` and additionally runs wake-up callbacks
    when cancelled, so that code blocked on a condition variable can be
    notified instead of polling the flag.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Fire the token. Callbacks run once, in registration order."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.warning("Cancellation callback failed", exc_info=True)

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register *callback* to run on cancellation.

        Runs immediately when the token is already cancelled. Returns a
        function that unregisters the callback.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._remove(callback)
        callback()
        return lambda: None

    def _remove(self, callback: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

    def __enter__(self) -> CancelToken:
        return self

    def __exit__(self, *args: object) -> None:
        self.cancel()
