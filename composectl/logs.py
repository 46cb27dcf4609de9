"""Log Stream Adapter: framed, timestamped log lines for one service.

Wire format::

    Attaching to <service>
    <RFC3339 timestamp with nanoseconds> <message>
    ...
    <service> exited with code <n>

The trailer is only written when the upstream ends on its own; a cancelled
stream stops after the last line it already produced.
"""

from __future__ import annotations

import re
import threading
import time
from collections.abc import Generator, Iterable
from datetime import UTC, datetime

from composectl._cancel import CancelToken
from composectl._log import get_logger
from composectl._mailbox import Cancelled, Mailbox, MailboxClosed

logger = get_logger("logs")

_TIMESTAMP_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d{1,9})?(?:Z|[+-]\d{2}:\d{2})$"
)


def format_timestamp(ns: int | None = None) -> str:
    """Format *ns* (nanoseconds since the epoch) as RFC 3339 with nanoseconds, in UTC.

    Trailing zeros of the fraction are dropped, and so is the fraction
    itself when it is zero.
    """
    if ns is None:
        ns = time.time_ns()
    seconds, nanos = divmod(ns, 1_000_000_000)
    stamp = datetime.fromtimestamp(seconds, tz=UTC).strftime("%Y-%m-%dT%H:%M:%S")
    if nanos:
        stamp += "." + f"{nanos:09d}".rstrip("0")
    return stamp + "Z"


def format_log_line(message: str, ns: int | None = None) -> str:
    return f"{format_timestamp(ns)} {message.rstrip()}\n"


def attach_line(service: str) -> str:
    return f"Attaching to {service}\n"


def exit_line(service: str, exit_code: int) -> str:
    return f"{service} exited with code {exit_code}\n"


def parse_log_line(line: str) -> tuple[str | None, str]:
    """Split a content line into ``(timestamp, message)``.

    Framing lines and anything without a leading timestamp come back as
    ``(None, line)`` with the newline removed.
    """
    line = line.rstrip("\n")
    stamp, sep, message = line.partition(" ")
    if sep and _TIMESTAMP_RE.match(stamp):
        return stamp, message
    return None, line


class LogFeed:
    """Upstream output of one simulated service.

    Tests write lines as the "container" produces them, then call
    :meth:`finish` when it exits. Each line is handed to exactly one
    reader.
    """

    def __init__(self, lines: Iterable[str] = ()) -> None:
        self._mailbox: Mailbox[str] = Mailbox()
        self.exit_code = 0
        for line in lines:
            self.write(line)

    @property
    def finished(self) -> bool:
        return self._mailbox.closed

    def write(self, line: str) -> None:
        self._mailbox.put_nowait(line)

    def finish(self, exit_code: int = 0) -> None:
        """Mark the service as exited. Later writes raise ``MailboxClosed``."""
        self.exit_code = exit_code
        self._mailbox.close()

    def _next(self, cancel: CancelToken) -> str:
        return self._mailbox.get(cancel)


class LogStream:
    """A live, lazily produced sequence of framed log lines for one service.

    Lines are produced as the consumer iterates; reading blocks until the
    feed has new content, the feed finishes, or *cancel* fires. A stream is
    not restartable: once exhausted, cancelled, or closed it stays closed.
    :meth:`close` may be called from another thread while a reader is
    blocked; the reader then stops without an exit trailer.
    """

    def __init__(self, service: str, feed: LogFeed | None, cancel: CancelToken) -> None:
        self.service = service
        self.exit_code: int | None = None
        self._feed = feed
        self._cancel = cancel
        # Fired by the caller's token or by close(); the producer only waits on this one.
        self._stop = CancelToken()
        self._unlink = cancel.add_callback(self._stop.cancel)
        self._lines = self._produce()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cancelled(self) -> bool:
        return self._cancel.cancelled

    def _produce(self) -> Generator[str, None, None]:
        # docker compose always logs an "Attaching to ..." line at the start of a session
        yield attach_line(self.service)

        if self._feed is None:
            self._stop.wait()
            return

        while True:
            try:
                message = self._feed._next(self._stop)
            except Cancelled:
                return
            except MailboxClosed:
                # logs are followed, so they only end normally when the container exits
                self.exit_code = self._feed.exit_code
                yield exit_line(self.service, self.exit_code)
                return
            yield format_log_line(message)

    def __iter__(self) -> LogStream:
        return self

    def __next__(self) -> str:
        if self._closed:
            raise StopIteration
        try:
            return next(self._lines)
        except StopIteration:
            self._mark_closed()
            raise

    def read(self) -> str:
        """Consume the rest of the stream and return it as one string."""
        return "".join(self)

    def close(self) -> None:
        """Stop production. Safe to call more than once, from any thread."""
        self._stop.cancel()
        if not self._lines.gi_running:
            try:
                self._lines.close()
            except ValueError:
                # A reader entered the generator meanwhile; _stop ends it there.
                pass
        self._mark_closed()

    def _mark_closed(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._unlink()
        logger.debug(
            "Log stream for '%s' closed (%s)",
            self.service,
            "cancelled" if self.exit_code is None else f"exit code {self.exit_code}",
        )

    def __enter__(self) -> LogStream:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
