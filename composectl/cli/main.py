"""Typer CLI for composectl: the app hub that wires in the command modules."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.markup import escape

from composectl.cli._helpers import console
from composectl.cli.project_cmd import app as project_app

app = typer.Typer(
    name="composectl",
    help="Inspect compose projects the way the compose control client sees them.",
    no_args_is_help=True,
)

app.add_typer(project_app, name="project")


def version_callback(value: bool) -> None:
    if value:
        from composectl import __version__

        console.print(f"composectl {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging"),
    ] = False,
) -> None:
    """Compose control client tooling."""
    from composectl._log import setup_logging

    setup_logging(verbose=verbose)


@app.command("check-version")
def check_version(
    version: Annotated[str, typer.Argument(help="Version reported by the compose runtime")],
) -> None:
    """Report which compose generation a runtime version belongs to."""
    from composectl.diagnostics import is_compose_v2, parse_version

    try:
        major, minor, patch = parse_version(version)
    except ValueError as e:
        console.print(f"[yellow]Warning:[/yellow] {escape(str(e))}; assuming compose v2")
        return
    if is_compose_v2(version):
        console.print(f"compose {major}.{minor}.{patch}: v2")
    else:
        console.print(f"compose {major}.{minor}.{patch}: v1 (legacy)")
