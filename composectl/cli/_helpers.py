"""Shared CLI helpers."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

console = Console()


def read_compose_file(path: Path) -> str:
    """Read a compose file or exit with a readable error."""
    try:
        return path.read_text()
    except OSError as e:
        console.print(f"[red]Error:[/red] Cannot read {path}: {escape(str(e))}")
        raise typer.Exit(1) from None
