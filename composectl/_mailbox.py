"""Closable FIFO buffer with cancellation-aware blocking reads."""

from __future__ import annotations

import queue
import threading
from collections import deque
from typing import Generic, TypeVar

from composectl._cancel import CancelToken

_T = TypeVar("_T")


class MailboxClosed(Exception):
    """Raised by :meth:`Mailbox.get` once the mailbox is closed and drained."""


class Cancelled(Exception):
    """Raised by :meth:`Mailbox.get` when the caller's token fires first."""


class Mailbox(Generic[_T]):
    """A FIFO that readers can block on until an item, close, or cancellation.

    :meth:`put_nowait` raises :class:`queue.Full` when a bounded mailbox has
    no room; :meth:`put` waits for room instead. Closing wakes every reader
    and writer. Readers still get the buffered items before
    :class:`MailboxClosed` (or the *error* passed to :meth:`close`) is
    raised; blocked writers get it straight away.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self.maxsize = maxsize
        self._items: deque[_T] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._error: BaseException | None = None

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    @property
    def error(self) -> BaseException | None:
        with self._cond:
            return self._error

    def qsize(self) -> int:
        with self._cond:
            return len(self._items)

    def put_nowait(self, item: _T) -> None:
        with self._cond:
            if self._closed:
                self._raise_closed()
            if self._full():
                raise queue.Full
            self._items.append(item)
            self._cond.notify_all()

    def put(self, item: _T) -> None:
        """Append *item*, blocking while the mailbox is full."""
        with self._cond:
            while not self._closed and self._full():
                self._cond.wait()
            if self._closed:
                self._raise_closed()
            self._items.append(item)
            self._cond.notify_all()

    def get(self, cancel: CancelToken | None = None) -> _T:
        """Block until an item is available and return it."""
        unregister = cancel.add_callback(self._wake) if cancel is not None else None
        try:
            with self._cond:
                while True:
                    if cancel is not None and cancel.cancelled:
                        raise Cancelled
                    if self._items:
                        item = self._items.popleft()
                        self._cond.notify_all()
                        return item
                    if self._closed:
                        self._raise_closed()
                    self._cond.wait()
        finally:
            if unregister is not None:
                unregister()

    def close(self, error: BaseException | None = None) -> bool:
        """Close the mailbox. Returns False if it was already closed."""
        with self._cond:
            if self._closed:
                return False
            self._closed = True
            self._error = error
            self._cond.notify_all()
            return True

    def _full(self) -> bool:
        return self.maxsize > 0 and len(self._items) >= self.maxsize

    def _raise_closed(self) -> None:
        if self._error is not None:
            raise self._error
        raise MailboxClosed("mailbox is closed")

    def _wake(self) -> None:
        with self._cond:
            self._cond.notify_all()
