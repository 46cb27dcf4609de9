"""The operations surface every compose client implementation satisfies."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, TextIO, runtime_checkable

if TYPE_CHECKING:
    from composectl._cancel import CancelToken
    from composectl.events import EventSubscription
    from composectl.logs import LogStream
    from composectl.models import ComposeProject, ServiceUpSpec
    from composectl.schema import StructuredProject


@runtime_checkable
class ComposeClient(Protocol):
    """
    Protocol for compose runtime clients.

    Implementations mediate between an orchestrator and a compose runtime,
    whether by shelling out to the real binary or by simulating it.

    Lifecycle calls (``up``/``down``/``rm``) are synchronous. Errors the
    runtime reports are raised as
    :class:`~composectl.errors.ComposeRuntimeError` and never retried.
    ``stdout``/``stderr`` are optional sinks for operator-visible output.
    """

    def up(
        self,
        spec: ServiceUpSpec,
        should_build: bool,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        """Start the service described by *spec*, building its image first if *should_build*."""
        ...

    def down(
        self,
        project: ComposeProject,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        """Tear down an entire project."""
        ...

    def rm(
        self,
        specs: Sequence[ServiceUpSpec],
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        """Remove the containers of the given services."""
        ...

    def stream_logs(self, spec: ServiceUpSpec, cancel: CancelToken) -> LogStream:
        """Follow a service's logs until it exits or *cancel* fires."""
        ...

    def stream_events(self, project: ComposeProject, cancel: CancelToken) -> EventSubscription:
        """Subscribe to project state-change events until *cancel* fires."""
        ...

    def config(self, config_paths: Sequence[str]) -> str:
        """Return the resolved configuration text for *config_paths*."""
        ...

    def project(self, project: ComposeProject) -> StructuredProject:
        """Load a structural view of *project*.

        Raises:
            ConfigParseError: If the configuration can't be loaded.
        """
        ...

    def container_id(self, spec: ServiceUpSpec) -> str:
        """Return the running container ID for *spec*'s service."""
        ...

    def version(self) -> tuple[str, str]:
        """Return ``(version, build)`` as reported by the runtime."""
        ...
