"""foliokit remove: drop a file from the project.

Removes everything foliokit keeps about the file:
  - cache entry (its processed result)
  - role pin in foliokit.yaml
  - the file itself, only with --delete-file

Without --delete-file a file still inside the content directory is picked up
again by the next build.

Usage:
  foliokit remove content/old-bio.md
  foliokit remove content/old-bio.md --yes --delete-file
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from foliokit.cli.errors import err_not_tracked, err_outside_project
from foliokit.cli.project import load_project, open_pipeline, scan_content
from foliokit.config import save_pins
from foliokit.pipeline.scheduler import process_target_id

console = Console()


def remove_cmd(
    file: Annotated[
        Path,
        typer.Argument(help="File to remove (relative to the project directory)."),
    ],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    delete_file: Annotated[
        bool,
        typer.Option("--delete-file", help="Also delete the file from disk."),
    ] = False,
    project: Annotated[
        Path,
        typer.Option("--project", "-p", help="Project directory (contains foliokit.yaml)."),
    ] = Path("."),
) -> None:
    """Remove a file's cache entry and role pin (optionally the file itself)."""
    project_dir = project.resolve()
    cfg = load_project(project_dir)
    pipeline = open_pipeline(project_dir, cfg)

    try:
        rel = pipeline.relpath(file if file.is_absolute() else project_dir / file)
    except ValueError:
        console.print(err_outside_project(str(file), str(project_dir)))
        raise typer.Exit(1)

    on_disk = project_dir / rel
    exists = on_disk.is_file()
    pinned = rel in cfg.roles.pins
    cached = process_target_id(rel) in pipeline.cache

    if not (exists or pinned or cached):
        console.print(err_not_tracked(rel))
        raise typer.Exit(0)

    # Scan so the graph knows which files still reference this one.
    pipeline.scan(scan_content(project_dir, cfg))
    referenced_by = [p for p in pipeline.graph.dependents_of(rel) if p != rel]

    # Show what will be removed
    console.print(f"\nRemove: [bold]{rel}[/]")
    console.print(
        f"  Cache entry: {'yes' if cached else 'no'}  |  "
        f"Role pin: {cfg.roles.pins[rel].value if pinned else 'no'}  |  "
        f"Delete file: {'yes' if delete_file and exists else 'no'}"
    )

    if not yes:
        if not typer.confirm("Confirm removal?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

    # ---- Remove ----
    pipeline.remove(rel)
    pipeline.save()

    if pinned:
        pins = {p: r for p, r in cfg.roles.pins.items() if p != rel}
        save_pins(project_dir, pins)

    if delete_file and exists:
        on_disk.unlink()

    console.print(f"\n[green]✓[/] Removed: {rel}")
    if referenced_by:
        console.print(
            f"\n[yellow]⚠[/] Still referenced by {len(referenced_by)} file(s):"
        )
        for path in referenced_by:
            console.print(f"    {path}")
        console.print("  They will be reprocessed on the next  foliokit build")
