"""Helpers for interpreting the compose runtime's reported version."""

from __future__ import annotations

import re

_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)(?:\.(\d+))?")


def parse_version(version: str) -> tuple[int, int, int]:
    """Parse ``"v1.29.2"``, ``"2.20.3"`` or ``"2.20.3-desktop.1"`` into a tuple.

    Raises:
        ValueError: If *version* doesn't start with a ``major.minor`` number.
    """
    match = _VERSION_RE.match(version.strip())
    if match is None:
        raise ValueError(f"Unrecognized compose version: {version!r}")
    major, minor, patch = match.groups()
    return int(major), int(minor), int(patch or 0)


def is_compose_v2(version: str) -> bool:
    """Return True for compose v2+; unparseable versions count as modern."""
    try:
        return parse_version(version)[0] >= 2
    except ValueError:
        return True
