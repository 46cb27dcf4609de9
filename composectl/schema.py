"""Pydantic models for compose configuration and the structured project."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


def _scalar_to_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _key_value_mapping(value: Any, field: str) -> dict[str, str | None]:
    """Accept both ``{"A": "1"}`` and ``["A=1", "B"]`` forms."""
    if value is None:
        return {}
    if isinstance(value, dict):
        return {str(k): _scalar_to_str(v) for k, v in value.items()}
    if isinstance(value, list):
        result: dict[str, str | None] = {}
        for item in value:
            if not isinstance(item, str):
                raise ValueError(f"{field} entries must be strings, got {type(item).__name__}")
            key, sep, val = item.partition("=")
            result[key] = val if sep else None
        return result
    raise ValueError(f"{field} must be a mapping or a list")


class BuildConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    context: str = "."
    dockerfile: str | None = None
    args: dict[str, str | None] = {}
    target: str | None = None

    @field_validator("args", mode="before")
    @classmethod
    def _normalize_args(cls, v: Any) -> dict[str, str | None]:
        return _key_value_mapping(v, "build.args")


class ServiceConfig(BaseModel):
    """A single service definition. Keys this model doesn't name are kept as extras."""

    model_config = ConfigDict(extra="allow")

    image: str | None = None
    build: BuildConfig | None = None
    command: str | list[str] | None = None
    container_name: str | None = None
    environment: dict[str, str | None] = {}
    ports: list[str | dict[str, Any]] = []
    volumes: list[str | dict[str, Any]] = []
    networks: dict[str, dict[str, Any] | None] = {}
    labels: dict[str, str | None] = {}
    depends_on: list[str] = []
    profiles: list[str] = []

    @field_validator("build", mode="before")
    @classmethod
    def _normalize_build(cls, v: Any) -> Any:
        if isinstance(v, str):
            return {"context": v}
        return v

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_environment(cls, v: Any) -> dict[str, str | None]:
        return _key_value_mapping(v, "environment")

    @field_validator("labels", mode="before")
    @classmethod
    def _normalize_labels(cls, v: Any) -> dict[str, str | None]:
        return _key_value_mapping(v, "labels")

    @field_validator("ports", mode="before")
    @classmethod
    def _normalize_ports(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, list):
            return [p if isinstance(p, dict) else str(p) for p in v]
        return v

    @field_validator("networks", mode="before")
    @classmethod
    def _normalize_networks(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, list):
            return {str(name): None for name in v}
        return v

    @field_validator("depends_on", mode="before")
    @classmethod
    def _normalize_depends_on(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, dict):
            return list(v.keys())
        return v

    @property
    def needs_build(self) -> bool:
        return self.build is not None


class NetworkConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str | None = None
    driver: str | None = None
    external: bool = False


class VolumeConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str | None = None
    driver: str | None = None
    external: bool = False


def _none_to_empty(v: Any) -> Any:
    if isinstance(v, dict):
        return {k: ({} if cfg is None else cfg) for k, cfg in v.items()}
    if v is None:
        return {}
    return v


class ComposeFile(BaseModel):
    """The document shape of a compose file after interpolation."""

    model_config = ConfigDict(extra="allow")

    name: str | None = None
    services: dict[str, ServiceConfig] = {}
    networks: dict[str, NetworkConfig] = {}
    volumes: dict[str, VolumeConfig] = {}

    @field_validator("services", "networks", "volumes", mode="before")
    @classmethod
    def _fill_empty(cls, v: Any) -> Any:
        return _none_to_empty(v)


class StructuredProject(BaseModel):
    """A fully resolved compose project.

    Returned by :func:`composectl.project.load_project`; the caller owns it.
    """

    name: str
    working_dir: str
    services: dict[str, ServiceConfig]
    networks: dict[str, NetworkConfig] = {}
    volumes: dict[str, VolumeConfig] = {}
    environment: dict[str, str] = {}

    @model_validator(mode="after")
    def _validate_graph(self) -> StructuredProject:
        service_names = set(self.services.keys())

        for name, svc in self.services.items():
            for dep in svc.depends_on:
                if dep == name:
                    raise ValueError(f"Service '{name}' cannot depend on itself")
                if dep not in service_names:
                    raise ValueError(f"Service '{name}' depends on undefined service '{dep}'")

        from composectl._graph import topological_tiers

        topological_tiers(
            service_names,
            {name: svc.depends_on for name, svc in self.services.items()},
        )
        return self

    def service_names(self) -> list[str]:
        return sorted(self.services)

    def start_order(self) -> list[list[str]]:
        """Return services grouped into tiers that can be started together."""
        from composectl._graph import topological_tiers

        return topological_tiers(
            set(self.services),
            {name: svc.depends_on for name, svc in self.services.items()},
        )
