"""Project event feed: canonical event encoding and a bounded fan-out bus."""

from __future__ import annotations

import json
import queue
import threading
from collections import deque
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic_core import PydanticSerializationError

from composectl._cancel import CancelToken
from composectl._log import get_logger
from composectl._mailbox import Mailbox, MailboxClosed
from composectl.config import EVENT_QUEUE_SIZE, SUBSCRIBER_QUEUE_SIZE
from composectl.errors import ComposeError, OverflowFault, SerializationError
from composectl.models import ComposeProject

logger = get_logger("events")

_WAKE = object()


class Event(BaseModel):
    """A project-level state change, shaped like ``docker compose events --json``."""

    model_config = ConfigDict(frozen=True)

    time: str = ""
    type: str = "container"
    action: str
    id: str = ""
    service: str = ""
    attributes: dict[str, Any] = {}

    @property
    def is_container_event(self) -> bool:
        return self.type == "container"


def encode_event(event: Event | Mapping[str, Any]) -> str:
    """Return the canonical JSON form of *event*.

    Models keep their declared field order; plain mappings are encoded with
    sorted keys. Either way the output has no insignificant whitespace, and
    the same values are rejected: NaN, infinities, sets and anything else
    without a JSON form.

    Raises:
        SerializationError: If the event contains values JSON can't represent.
    """
    try:
        if isinstance(event, BaseModel):
            data, sort_keys = event.model_dump(), False
        else:
            data, sort_keys = event, True
        return json.dumps(data, sort_keys=sort_keys, separators=(",", ":"), allow_nan=False)
    except (PydanticSerializationError, TypeError, ValueError) as e:
        raise SerializationError(f"Cannot encode event: {e}") from e


def decode_event(payload: str) -> Event:
    try:
        return Event.model_validate_json(payload)
    except ValidationError as e:
        raise SerializationError(f"Cannot decode event {payload!r}:\n{e}") from e


def _log_fatal(fault: OverflowFault) -> None:
    logger.critical("Event bus halted: %s", fault)


class EventSubscription:
    """One subscriber's view of the event feed.

    Iterating yields serialized events in ingestion order. Iteration ends
    when the subscription is cancelled or the bus is closed, after the
    already-delivered events have been handed out. If the bus halted on an
    overflow, the :class:`~composectl.errors.OverflowFault` is raised in
    place of the clean end.
    """

    def __init__(
        self,
        project: ComposeProject,
        cancel: CancelToken,
        capacity: int = SUBSCRIBER_QUEUE_SIZE,
    ) -> None:
        self.project = project
        self.capacity = capacity
        self._cancel = cancel
        self._mailbox: Mailbox[str] = Mailbox(maxsize=capacity)

    @property
    def closed(self) -> bool:
        return self._mailbox.closed

    @property
    def pending(self) -> int:
        """Number of delivered events not yet consumed."""
        return self._mailbox.qsize()

    def cancel(self) -> None:
        self._cancel.cancel()

    def __iter__(self) -> Iterator[str]:
        while True:
            try:
                yield self._mailbox.get()
            except MailboxClosed:
                return

    def events(self) -> Iterator[Event]:
        """Like iterating, but yields decoded :class:`Event` objects."""
        for payload in self:
            yield decode_event(payload)

    def _offer(self, payload: str) -> None:
        self._mailbox.put_nowait(payload)

    def _close(self, error: BaseException | None = None) -> None:
        self._mailbox.close(error)


class EventBus:
    """Fans serialized events out to every live subscriber.

    Producers call :meth:`send`, which encodes the event and puts it on a
    retained ingestion queue (blocking only while that queue is full). A
    single daemon thread drains the queue and offers each event to every
    subscriber's delivery buffer. The thread starts with the first
    subscriber and exits when the last one goes away; events sent in
    between are kept for the next subscriber.

    A full delivery buffer halts the bus with an
    :class:`~composectl.errors.OverflowFault`: every subscription is closed
    with the fault, *on_fatal* is called with it, and every send, including
    one already waiting for room in the ingestion queue, raises it.
    """

    def __init__(
        self,
        queue_size: int = EVENT_QUEUE_SIZE,
        subscriber_queue_size: int = SUBSCRIBER_QUEUE_SIZE,
        *,
        on_fatal: Callable[[OverflowFault], None] | None = None,
    ) -> None:
        self._ingest: Mailbox[Any] = Mailbox(maxsize=queue_size)
        self._subscriber_queue_size = subscriber_queue_size
        self._on_fatal = on_fatal or _log_fatal
        self._lock = threading.Lock()
        self._held: deque[str] = deque()
        self._subscriptions: list[EventSubscription] = []
        self._thread: threading.Thread | None = None
        self._fault: OverflowFault | None = None
        self._closed = False
        self._halted = threading.Event()

    @property
    def fault(self) -> OverflowFault | None:
        with self._lock:
            return self._fault

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def wait_halted(self, timeout: float | None = None) -> bool:
        """Block until the bus halts on an overflow. Returns False on timeout."""
        return self._halted.wait(timeout)

    def send(self, event: Event | Mapping[str, Any]) -> None:
        """Encode *event* and enqueue it for distribution.

        Raises:
            SerializationError: If the event can't be encoded.
            OverflowFault: If the bus halted, before or while waiting for room.
            ComposeError: If the bus was closed.
        """
        payload = encode_event(event)
        with self._lock:
            if self._fault is not None:
                raise self._fault
            if self._closed:
                raise ComposeError("Event bus is closed")
        try:
            self._ingest.put(payload)
        except MailboxClosed:
            raise ComposeError("Event bus is closed") from None

    def subscribe(self, project: ComposeProject, cancel: CancelToken) -> EventSubscription:
        """Register a new subscriber whose lifetime is bound to *cancel*."""
        subscription = EventSubscription(project, cancel, self._subscriber_queue_size)
        with self._lock:
            if self._fault is not None:
                subscription._close(self._fault)
                return subscription
            if self._closed:
                subscription._close()
                return subscription
            self._subscriptions.append(subscription)
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._distribute, daemon=True, name="compose-events"
                )
                self._thread.start()
        cancel.add_callback(lambda: self._unsubscribe(subscription))
        return subscription

    def close(self) -> None:
        """Stop distribution and close every subscription cleanly."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscriptions, self._subscriptions = self._subscriptions, []
            self._held.clear()
        self._ingest.close()
        for subscription in subscriptions:
            subscription._close()

    def _unsubscribe(self, subscription: EventSubscription) -> None:
        with self._lock:
            try:
                self._subscriptions.remove(subscription)
            except ValueError:
                return
            idle = not self._subscriptions
        subscription._close()
        if idle:
            self._wake()

    def _wake(self) -> None:
        try:
            self._ingest.put_nowait(_WAKE)
        except (queue.Full, MailboxClosed):
            # A full queue means the loop has work and will notice the change itself.
            pass

    def _next_payload(self) -> Any:
        with self._lock:
            if self._held:
                return self._held.popleft()
        return self._ingest.get()

    def _distribute(self) -> None:
        """Distribution loop: drain the ingestion queue into subscriber buffers."""
        while True:
            try:
                payload = self._next_payload()
            except MailboxClosed:
                with self._lock:
                    self._thread = None
                return
            fault: OverflowFault | None = None
            subscriptions: list[EventSubscription] = []
            with self._lock:
                if self._closed or not self._subscriptions:
                    if payload is not _WAKE and not self._closed:
                        self._held.appendleft(payload)
                    self._thread = None
                    return
                if payload is _WAKE:
                    continue
                for subscription in self._subscriptions:
                    try:
                        subscription._offer(payload)
                    except MailboxClosed:
                        continue
                    except queue.Full:
                        fault = OverflowFault(payload, subscription.capacity)
                        break
                if fault is not None:
                    self._fault = fault
                    subscriptions, self._subscriptions = self._subscriptions, []
                    self._held.clear()
                    self._thread = None
            if fault is not None:
                # Wakes producers blocked on a full ingestion queue with the fault.
                self._ingest.close(fault)
                for subscription in subscriptions:
                    subscription._close(fault)
                try:
                    self._on_fatal(fault)
                finally:
                    self._halted.set()
                return
