"""Centralized logging for composectl.

Every module logs through ``get_logger(<tag>)``. Records go to stderr as
``[tag] message``; the level is WARNING unless ``COMPOSECTL_LOG_LEVEL`` or
``--verbose`` says otherwise.
"""

from __future__ import annotations

import logging
import sys
import threading

_ROOT = "composectl"

_lock = threading.Lock()
_handler: logging.Handler | None = None


def _tag(logger_name: str) -> str:
    if logger_name.startswith(_ROOT + "."):
        return logger_name[len(_ROOT) + 1 :]
    return logger_name


class _TagFormatter(logging.Formatter):
    """Prefix the formatted line with the logger's tag.

    The record is left as it came in, so other handlers (pytest's caplog,
    an application's own handler) see the plain message.
    """

    def format(self, record: logging.LogRecord) -> str:
        return f"[{_tag(record.name)}] {super().format(record)}"


def setup_logging(verbose: bool = False) -> None:
    """Attach the stderr handler to the ``composectl`` logger once.

    Later calls leave the handler alone, but ``verbose=True`` still lowers
    the level to DEBUG. ``propagate`` is turned off so records don't reach
    the root logger twice.
    """
    global _handler
    from composectl.config import get_log_level

    with _lock:
        root = logging.getLogger(_ROOT)
        if _handler is None:
            root.setLevel(get_log_level())
            _handler = logging.StreamHandler(sys.stderr)
            _handler.setFormatter(_TagFormatter())
            root.addHandler(_handler)
            root.propagate = False
        if verbose:
            root.setLevel(logging.DEBUG)


def get_logger(name: str) -> logging.Logger:
    """Return the ``composectl.<name>`` logger, setting up stderr output on first use."""
    setup_logging()
    return logging.getLogger(f"{_ROOT}.{name}")
