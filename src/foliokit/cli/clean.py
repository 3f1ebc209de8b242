"""foliokit clean: clear the processing cache.

Every entry is dropped and an empty cache is saved, so the next build
reprocesses all content. Content files, pins, and foliokit.yaml are untouched.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from foliokit.cli.project import load_project, open_pipeline
from foliokit.config import cache_file

console = Console()


def clean_cmd(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    project: Annotated[
        Path,
        typer.Option("--project", "-p", help="Project directory (contains foliokit.yaml)."),
    ] = Path("."),
) -> None:
    """Clear the processing cache; the next build reprocesses everything."""
    project_dir = project.resolve()
    cfg = load_project(project_dir)
    pipeline = open_pipeline(project_dir, cfg)
    path = cache_file(cfg, project_dir)

    entries = len(pipeline.cache)
    if entries == 0 and not pipeline.cache.corrupt:
        console.print("[dim]Cache is already empty.[/]")
        raise typer.Exit(0)

    console.print(f"Clear cache: [bold]{cfg.pipeline.cache_path}[/] ({entries} entries)")
    if not yes:
        if not typer.confirm("Confirm?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

    pipeline.cache.clear()
    pipeline.save()
    console.print(f"[green]✓[/] Cache cleared ({entries} entries removed from {path.name}).")
