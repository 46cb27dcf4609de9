"""Project commands: derive names, load compose files, and show start order."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.markup import escape
from rich.table import Table

from composectl.cli._helpers import console, read_compose_file

if TYPE_CHECKING:
    from composectl.schema import StructuredProject

app = typer.Typer(help="Inspect compose projects.")


def _load(compose_file: Path, workdir: Path | None, name: str | None) -> StructuredProject:
    from composectl.errors import ConfigParseError
    from composectl.project import build_environment, load_project

    text = read_compose_file(compose_file)
    work_dir = workdir if workdir is not None else compose_file.resolve().parent
    try:
        return load_project(text, work_dir, build_environment(work_dir), name=name)
    except ConfigParseError as e:
        console.print(f"[red]Invalid:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None


@app.command("name")
def project_name(
    workdir: Annotated[str, typer.Argument(help="Project working directory")],
) -> None:
    """Print the project name derived from a working directory."""
    from composectl.project import derive_project_name

    name = derive_project_name(str(Path(workdir).resolve()) if workdir else "")
    if not name:
        shown = escape(repr(workdir))
        console.print(f"[red]Error:[/red] Cannot derive a project name from {shown}")
        raise typer.Exit(1)
    console.print(name)


@app.command("show")
def project_show(
    compose_file: Annotated[Path, typer.Argument(help="Path to compose YAML")],
    workdir: Annotated[
        Path | None, typer.Option("--workdir", help="Working directory (default: file's dir)")
    ] = None,
    name: Annotated[str | None, typer.Option("--name", "-p", help="Project name")] = None,
) -> None:
    """Load a compose file and list its services."""
    project = _load(compose_file, workdir, name)

    table = Table(title=f"Project: {project.name}")
    table.add_column("Service", style="cyan")
    table.add_column("Image / Build")
    table.add_column("Ports")
    table.add_column("Depends On")

    for svc_name in project.service_names():
        svc = project.services[svc_name]
        if svc.build is not None:
            source = f"build: {svc.build.context}"
        else:
            source = svc.image or "(none)"
        ports = ", ".join(p if isinstance(p, str) else str(p) for p in svc.ports) or "(none)"
        deps = ", ".join(svc.depends_on) if svc.depends_on else "(none)"
        table.add_row(svc_name, source, ports, deps)

    console.print(table)
    if project.networks:
        console.print(f"Networks: {', '.join(sorted(project.networks))}")
    if project.volumes:
        console.print(f"Volumes: {', '.join(sorted(project.volumes))}")


@app.command("order")
def project_order(
    compose_file: Annotated[Path, typer.Argument(help="Path to compose YAML")],
    workdir: Annotated[
        Path | None, typer.Option("--workdir", help="Working directory (default: file's dir)")
    ] = None,
) -> None:
    """Print the tiers services would be started in."""
    project = _load(compose_file, workdir, None)
    for i, tier in enumerate(project.start_order(), start=1):
        console.print(f"{i}. {', '.join(tier)}")
