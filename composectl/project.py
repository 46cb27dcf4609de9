"""Project Loader adapter: raw compose text + working directory → structured project."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path, PurePath

import yaml
from pydantic import ValidationError

from composectl._interpolate import InterpolationError, interpolate
from composectl._log import get_logger
from composectl.config import DOTENV_FILENAME, FALLBACK_PROJECT_NAME
from composectl.errors import ConfigParseError
from composectl.schema import ComposeFile, StructuredProject

logger = get_logger("project")

_ALLOWED_NAME_CHARS = re.compile(r"[a-z0-9_-]")


def normalize_project_name(name: str) -> str:
    """Lowercase *name*, drop characters outside ``[a-z0-9_-]`` and strip leading ``_``/``-``.

    Idempotent: ``normalize_project_name(normalize_project_name(x)) == normalize_project_name(x)``.
    """
    name = name.lower()
    name = "".join(_ALLOWED_NAME_CHARS.findall(name))
    return name.lstrip("_-")


def derive_project_name(working_dir: str | os.PathLike[str] | None) -> str:
    """Derive a project name from the final path segment of *working_dir*.

    An empty working directory yields :data:`~composectl.config.FALLBACK_PROJECT_NAME`.
    """
    if not working_dir or not os.fspath(working_dir):
        return FALLBACK_PROJECT_NAME
    return normalize_project_name(PurePath(os.fspath(working_dir)).name)


def build_environment(
    working_dir: str | os.PathLike[str] | None,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Return the interpolation environment for a project.

    Starts from *base* (the process environment by default) and fills in
    values from ``<working_dir>/.env``. Existing values always win.
    """
    from dotenv import dotenv_values

    env = dict(os.environ if base is None else base)
    if working_dir:
        dotenv_path = Path(working_dir) / DOTENV_FILENAME
        if dotenv_path.is_file():
            for key, value in dotenv_values(dotenv_path).items():
                if value is not None:
                    env.setdefault(key, value)
    return env


def load_project(
    config_text: str,
    working_dir: str | os.PathLike[str] | None,
    environment: Mapping[str, str],
    *,
    name: str | None = None,
) -> StructuredProject:
    """Parse, interpolate and validate compose configuration text.

    Name precedence: explicit *name*, then a top-level ``name:`` in the
    config, then the name derived from *working_dir*. The chosen name is
    always normalized.

    Raises:
        ConfigParseError: If the text is not valid YAML, not a mapping,
            fails interpolation, or fails validation.
    """
    try:
        data = yaml.safe_load(config_text)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Invalid YAML in compose config: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigParseError(
            f"Top-level object must be a mapping, got {type(data).__name__}"
        )

    try:
        data = interpolate(data, environment)
    except InterpolationError as e:
        raise ConfigParseError(str(e)) from e

    try:
        compose_file = ComposeFile.model_validate(data)
    except ValidationError as e:
        raise ConfigParseError(f"Validation failed for compose config:\n{e}") from e

    if name:
        project_name = normalize_project_name(name)
    elif compose_file.name:
        project_name = normalize_project_name(compose_file.name)
    else:
        project_name = derive_project_name(working_dir)

    if not project_name:
        raise ConfigParseError(
            "Project name must contain at least one character from [a-z0-9_-]"
        )

    try:
        project = StructuredProject(
            name=project_name,
            working_dir=os.fspath(working_dir) if working_dir else "",
            services=compose_file.services,
            networks=compose_file.networks,
            volumes=compose_file.volumes,
            environment=dict(environment),
        )
    except ValidationError as e:
        raise ConfigParseError(f"Validation failed for compose config:\n{e}") from e

    logger.debug(
        "Loaded project '%s' with %d service(s)", project.name, len(project.services)
    )
    return project
