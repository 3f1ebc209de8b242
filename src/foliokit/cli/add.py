"""foliokit add: copy files into the project and classify them.

Each FILE is copied into the content directory (``--dest`` overrides it);
a directory is expanded to the files it contains, keeping its structure.
Files already inside the destination are not copied again.

``--role`` pins every added file to that role; pins are stored under
``roles.pins`` in foliokit.yaml and win over the inference rules on every
later run. The pipeline then runs for the added files only.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from foliokit.cli.errors import (
    err_file_not_found,
    err_outside_project,
    err_unknown_role,
    warn_constraint_violations,
)
from foliokit.cli.project import human_size, load_project, open_pipeline, scan_content, scan_dir
from foliokit.config import save_pins
from foliokit.models import Role
from foliokit.processors import describe

console = Console()


def add_cmd(
    files: Annotated[
        list[Path],
        typer.Argument(help="Files or directories to add."),
    ],
    role: Annotated[
        str | None,
        typer.Option("--role", "-r", help="Pin the added files to this role."),
    ] = None,
    dest: Annotated[
        Path | None,
        typer.Option("--dest", help="Destination directory inside the project (default: content dir)."),
    ] = None,
    project: Annotated[
        Path,
        typer.Option("--project", "-p", help="Project directory (contains foliokit.yaml)."),
    ] = Path("."),
) -> None:
    """Add files to the project, then classify and process them."""
    project_dir = project.resolve()
    cfg = load_project(project_dir)

    pinned_role: Role | None = None
    if role is not None:
        try:
            pinned_role = Role(role.lower())
        except ValueError:
            console.print(err_unknown_role(role))
            raise typer.Exit(1)

    dest_dir = (project_dir / (dest if dest is not None else cfg.project.content_dir)).resolve()
    if not dest_dir.is_relative_to(project_dir):
        console.print(err_outside_project(str(dest), str(project_dir)))
        raise typer.Exit(1)

    for src in files:
        if not src.exists():
            console.print(err_file_not_found(str(src)))
            raise typer.Exit(1)

    # ---- Copy ----
    added: list[Path] = []
    for src, target in _plan_copies(files, dest_dir):
        if src.resolve() != target.resolve():
            target.parent.mkdir(parents=True, exist_ok=True)
            replaced = target.exists()
            shutil.copy2(src, target)
            mark = "[yellow]↻[/]" if replaced else "[green]✓[/]"
            console.print(f"  {mark} {target.relative_to(project_dir).as_posix()}")
        added.append(target)

    if not added:
        console.print("[yellow]No files found to add.[/]")
        raise typer.Exit(0)

    rel_paths = [t.relative_to(project_dir).as_posix() for t in added]

    # ---- Pin ----
    if pinned_role is not None:
        pins = dict(cfg.roles.pins)
        for rel in rel_paths:
            pins[rel] = pinned_role
        save_pins(project_dir, pins)
        cfg.roles.pins = pins
        console.print(f"  [green]✓[/] Pinned {len(rel_paths)} file(s) to role '{pinned_role.value}'")

    # ---- Process ----
    pipeline = open_pipeline(project_dir, cfg)
    # Index the rest of the content first so constraint checks see every file.
    pipeline.scan(scan_content(project_dir, cfg))
    summary = pipeline.run(
        describe,
        rel_paths,
        continue_on_error=cfg.pipeline.continue_on_error,
    )

    failed = {e.path: e for e in summary.errors}
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("File")
    table.add_column("Role")
    table.add_column("Size", justify="right")
    table.add_column("Status")
    for rel in rel_paths:
        record = pipeline.records.get(rel)
        if record is None or record.missing:
            continue
        result = summary.result_for(rel)
        if rel in failed:
            status = f"[red]✗ {failed[rel].error_type}[/]"
        elif result is not None and result.from_cache:
            status = "[dim]unchanged[/]"
        else:
            status = "[green]processed[/]"
        role_label = record.role.value if record.role else "?"
        if record.pinned:
            role_label += " [dim](pinned)[/]"
        table.add_row(rel, role_label, human_size(record.size_bytes), status)
    console.print()
    console.print(table)

    for error in summary.errors:
        console.print(f"  [red]✗[/] {error.path}: {error.message}")

    violations = summary.roles.get("violations", [])
    if violations:
        console.print(f"\n{warn_constraint_violations(len(violations))}")

    console.print(f"\n[bold green]✓[/] Added {len(rel_paths)} file(s).")
    if not summary.ok:
        raise typer.Exit(1)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _plan_copies(sources: list[Path], dest_dir: Path) -> list[tuple[Path, Path]]:
    """Pair each source file with its destination; directories keep their layout."""
    pairs: list[tuple[Path, Path]] = []
    for src in sources:
        if src.is_dir():
            for f in scan_dir(src, recursive=True, exclude=[], depth=0):
                pairs.append((f, dest_dir / src.resolve().name / f.relative_to(src)))
        else:
            pairs.append((src, dest_dir / src.name))
    return pairs

