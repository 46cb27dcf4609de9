"""Value types describing compose projects, service specs, and call history."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class ComposeProject(BaseModel):
    """Identifies which compose project a call targets.

    ``name`` may be left empty, in which case it is derived from
    ``project_path`` (see :func:`composectl.project.derive_project_name`).
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    project_path: str = ""
    config_paths: tuple[str, ...] = ()
    env_file: str | None = None


class ServiceUpSpec(BaseModel):
    """A request to bring a single service up."""

    model_config = ConfigDict(frozen=True)

    service: str = Field(min_length=1)
    build: bool = False
    project: ComposeProject = ComposeProject()


@dataclass(frozen=True)
class UpCall:
    """Represents a single call to ``up``."""

    spec: ServiceUpSpec
    should_build: bool


@dataclass(frozen=True)
class DownCall:
    """Represents a single call to ``down``."""

    project: ComposeProject


@dataclass(frozen=True)
class RmCall:
    specs: tuple[ServiceUpSpec, ...]
