"""Error taxonomy for the compose control client."""

from __future__ import annotations


class ComposeError(Exception):
    """Base class for every error raised by composectl."""


class ComposeRuntimeError(ComposeError):
    """Raised when the compose runtime rejects a lifecycle request."""


class InjectedFault(ComposeRuntimeError):
    """A caller-configured failure returned by the fake client.

    Faults are sticky: once assigned to a client's ``down_error`` (or
    ``rm_error``/``up_error``) they are raised on every call until the
    caller clears them.
    """


class ConfigParseError(ComposeError):
    """Raised when raw compose configuration cannot be loaded into a project."""


class SerializationError(ComposeError):
    """Raised when an event cannot be encoded for the event bus."""


class OverflowFault(ComposeError):
    """A subscriber's delivery buffer was full when an event arrived.

    Fatal for the event bus that raised it: the bus halts instead of
    dropping the event or buffering without bound.
    """

    def __init__(self, payload: str, capacity: int) -> None:
        self.payload = payload
        self.capacity = capacity
        super().__init__(
            f"no room on events channel (capacity {capacity}) to send event: {payload!r}. "
            "Something is wrong (or you need to increase the buffer)."
        )
