"""Variable interpolation for compose configuration values."""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any

from composectl._log import get_logger

logger = get_logger("interpolate")

_NAME = re.compile(r"[_a-zA-Z][_a-zA-Z0-9]*")
_OPERATOR = re.compile(r":?[-?+]")


class InterpolationError(ValueError):
    """Raised for malformed ``$`` expressions or ``${VAR:?message}`` failures."""


def _closing_brace(text: str, start: int) -> int:
    """Index of the ``}`` closing a ``${`` whose body starts at *start*, or -1."""
    depth = 1
    i = start
    while i < len(text):
        if text.startswith("$$", i):
            i += 2
            continue
        if text.startswith("${", i):
            depth += 1
            i += 2
            continue
        if text[i] == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _lookup(name: str, environment: Mapping[str, str]) -> str:
    value = environment.get(name)
    if value is None:
        logger.warning("The %s variable is not set. Defaulting to a blank string.", name)
        return ""
    return value


def _apply(
    name: str,
    op: str,
    arg: Callable[[], str],
    environment: Mapping[str, str],
    path: str,
) -> str:
    value = environment.get(name)
    is_set = value is not None
    is_empty = not value

    if op == ":-":
        return arg() if is_empty else value  # type: ignore[return-value]
    if op == "-":
        return value if is_set else arg()  # type: ignore[return-value]
    if op == ":+":
        return "" if is_empty else arg()
    if op == "+":
        return arg() if is_set else ""
    if (op == ":?" and is_empty) or (op == "?" and not is_set):
        where = f" ({path})" if path else ""
        raise InterpolationError(
            f"Required variable {name} is missing a value{where}: {arg() or 'not set'}"
        )
    return value  # type: ignore[return-value]


def interpolate_value(text: str, environment: Mapping[str, str], path: str = "") -> str:
    """Substitute ``$VAR``/``${VAR...}`` expressions in a single string.

    Supported forms: ``$VAR``, ``${VAR}``, ``${VAR:-default}``,
    ``${VAR-default}``, ``${VAR:?message}``, ``${VAR?message}``,
    ``${VAR:+replacement}``, ``${VAR+replacement}`` and ``$$`` for a literal
    dollar sign. Defaults, replacements and messages are interpolated too,
    so ``${A:-${B:-x}}`` works; they are only evaluated when used. Unset
    variables without a default become the empty string.
    """

    def _invalid() -> InterpolationError:
        where = f" in {path}" if path else ""
        return InterpolationError(f"Invalid interpolation format{where}: {text!r}")

    out: list[str] = []
    i = 0
    while (dollar := text.find("$", i)) != -1:
        out.append(text[i:dollar])
        following = text[dollar + 1 : dollar + 2]

        if following == "$":
            out.append("$")
            i = dollar + 2
            continue

        if following == "{":
            end = _closing_brace(text, dollar + 2)
            name = _NAME.match(text, dollar + 2)
            if end == -1 or name is None or name.end() > end:
                raise _invalid()
            rest = text[name.end() : end]
            if not rest:
                out.append(_lookup(name.group(), environment))
            else:
                op = _OPERATOR.match(rest)
                if op is None:
                    raise _invalid()
                raw = rest[op.end() :]
                out.append(
                    _apply(
                        name.group(),
                        op.group(),
                        lambda raw=raw: interpolate_value(raw, environment, path),
                        environment,
                        path,
                    )
                )
            i = end + 1
            continue

        name = _NAME.match(text, dollar + 1)
        if name is None:
            raise _invalid()
        out.append(_lookup(name.group(), environment))
        i = name.end()

    out.append(text[i:])
    return "".join(out)


def interpolate(data: Any, environment: Mapping[str, str], path: str = "") -> Any:
    """Recursively interpolate every string value in a parsed YAML document.

    Mapping keys are left untouched; only values are substituted.
    """
    if isinstance(data, str):
        return interpolate_value(data, environment, path)
    if isinstance(data, dict):
        return {
            key: interpolate(value, environment, f"{path}.{key}" if path else str(key))
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [
            interpolate(item, environment, f"{path}[{i}]") for i, item in enumerate(data)
        ]
    return data
