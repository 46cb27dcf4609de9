"""Deterministic in-memory compose client for tests."""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TextIO

from composectl._cancel import CancelToken
from composectl._log import get_logger
from composectl.config import (
    EVENT_QUEUE_SIZE,
    FAKE_BUILD,
    SUBSCRIBER_QUEUE_SIZE,
    get_default_version,
)
from composectl.errors import OverflowFault
from composectl.events import Event, EventBus, EventSubscription
from composectl.logs import LogFeed, LogStream
from composectl.models import ComposeProject, DownCall, RmCall, ServiceUpSpec, UpCall
from composectl.project import build_environment, load_project
from composectl.schema import StructuredProject

logger = get_logger("fake")


def _echo(sink: TextIO | None, message: str) -> None:
    if sink is not None:
        sink.write(message + "\n")


class FakeComposeClient:
    """A :class:`~composectl.client.ComposeClient` that never touches a real runtime.

    Every configurable output and injected failure is a plain attribute of
    the instance, so independent fakes can run side by side:

    - ``run_log_output``: service name → :class:`LogFeed` read by ``stream_logs``
    - ``container_id_output`` / ``container_ids``: answers for ``container_id``
    - ``config_output``: raw compose text served by ``config`` and ``project``
    - ``version_output``: reported version (a known-good default when empty)
    - ``up_error`` / ``down_error`` / ``rm_error``: sticky faults. Once set,
      every call raises the same exception until the attribute is cleared
      (or :meth:`reset_faults` is called).

    Calls are recorded in ``up_calls``, ``down_calls`` and ``rm_calls`` in
    call order, whether or not they fail.
    """

    def __init__(
        self,
        *,
        work_dir: str = "",
        environment: Mapping[str, str] | None = None,
        event_queue_size: int = EVENT_QUEUE_SIZE,
        subscriber_queue_size: int = SUBSCRIBER_QUEUE_SIZE,
        on_fatal: Callable[[OverflowFault], None] | None = None,
    ) -> None:
        self.run_log_output: dict[str, LogFeed] = {}
        self.container_id_output = ""
        self.container_ids: dict[str, str] = {}
        self.config_output = ""
        self.version_output = ""

        self.up_calls: list[UpCall] = []
        self.down_calls: list[DownCall] = []
        self.rm_calls: list[RmCall] = []
        self.up_error: BaseException | None = None
        self.down_error: BaseException | None = None
        self.rm_error: BaseException | None = None

        self.work_dir = work_dir
        self.environment = environment

        self._history_lock = threading.Lock()
        self._events = EventBus(event_queue_size, subscriber_queue_size, on_fatal=on_fatal)

    @property
    def events(self) -> EventBus:
        return self._events

    def log_feed(self, service: str) -> LogFeed:
        """Return the feed for *service*, creating it on first use."""
        return self.run_log_output.setdefault(service, LogFeed())

    def reset_faults(self) -> None:
        self.up_error = None
        self.down_error = None
        self.rm_error = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def up(
        self,
        spec: ServiceUpSpec,
        should_build: bool,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        with self._history_lock:
            self.up_calls.append(UpCall(spec, should_build))
            err = self.up_error
        logger.debug("up %s (build=%s)", spec.service, should_build)
        if err is not None:
            _echo(stderr, f"Error starting {spec.service}: {err}")
            raise err
        if should_build:
            _echo(stdout, f"Building {spec.service}")
        _echo(stdout, f"Starting {spec.service} ... done")

    def down(
        self,
        project: ComposeProject,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        with self._history_lock:
            self.down_calls.append(DownCall(project))
            err = self.down_error
        logger.debug("down %s", project.name or project.project_path)
        if err is not None:
            _echo(stderr, f"Error tearing down project: {err}")
            raise err
        _echo(stdout, "Removing network ... done")

    def rm(
        self,
        specs: Sequence[ServiceUpSpec],
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        with self._history_lock:
            self.rm_calls.append(RmCall(tuple(specs)))
            err = self.rm_error
        logger.debug("rm %s", ", ".join(spec.service for spec in specs))
        if err is not None:
            _echo(stderr, f"Error removing services: {err}")
            raise err
        for spec in specs:
            _echo(stdout, f"Removing {spec.service} ... done")

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def stream_logs(self, spec: ServiceUpSpec, cancel: CancelToken) -> LogStream:
        return LogStream(spec.service, self.run_log_output.get(spec.service), cancel)

    def stream_events(self, project: ComposeProject, cancel: CancelToken) -> EventSubscription:
        return self._events.subscribe(project, cancel)

    def send_event(self, event: Event | Mapping[str, Any]) -> None:
        """Publish *event* to every ``stream_events`` subscriber.

        Raises:
            SerializationError: If the event can't be encoded.
            OverflowFault: If the event bus already halted.
        """
        self._events.send(event)

    # ------------------------------------------------------------------
    # Project resolution and diagnostics
    # ------------------------------------------------------------------

    def config(self, config_paths: Sequence[str]) -> str:
        return self.config_output

    def project(self, project: ComposeProject) -> StructuredProject:
        environment = (
            self.environment if self.environment is not None else build_environment(self.work_dir)
        )
        return load_project(
            self.config_output,
            self.work_dir,
            environment,
            name=project.name or None,
        )

    def container_id(self, spec: ServiceUpSpec) -> str:
        return self.container_ids.get(spec.service, self.container_id_output)

    def version(self) -> tuple[str, str]:
        if self.version_output:
            return self.version_output, FAKE_BUILD
        # default to a "known good" version that won't produce warnings
        return get_default_version(), FAKE_BUILD

    def close(self) -> None:
        """Stop event distribution and close every subscription."""
        self._events.close()

    def __enter__(self) -> FakeComposeClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
