"""foliokit init: project scaffold.

Creates:
  foliokit.yaml   project config (project:, pipeline:, scan: + roles: template)
  content/        where `foliokit add` copies files
  .foliokit/      cache and build manifest
  .gitignore      ignores .foliokit/ (created if missing)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from foliokit.config import PROJECT_CONFIG_NAME, write_default_config

console = Console()

_DEFAULT_PROJECT_DIR = Path(".")
_STATE_DIR = ".foliokit"


def init_cmd(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Directory to initialize. Defaults to current directory."),
    ] = _DEFAULT_PROJECT_DIR,
    name: Annotated[
        str | None,
        typer.Option("--name", "-n", help="Project name. Defaults to the directory name."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Overwrite an existing foliokit.yaml without asking."),
    ] = False,
) -> None:
    """Initialize a new foliokit project."""
    project_dir = project_dir.resolve()
    project_dir.mkdir(parents=True, exist_ok=True)

    # Already initialized?
    config_path = project_dir / PROJECT_CONFIG_NAME
    if config_path.exists():
        console.print(f"[yellow]⚠[/]  {config_path} already exists.")
        if not yes and not typer.confirm("Overwrite it? Content and cache are kept.", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

    project_name = name or project_dir.name

    console.print(f"\n[bold]Creating scaffold in {project_dir} …[/]\n")

    write_default_config(project_dir, project_name)
    console.print(f"  [green]✓[/] {PROJECT_CONFIG_NAME}")

    (project_dir / "content").mkdir(exist_ok=True)
    console.print("  [green]✓[/] content/")

    (project_dir / _STATE_DIR).mkdir(exist_ok=True)
    console.print(f"  [green]✓[/] {_STATE_DIR}/")

    _update_gitignore(project_dir)

    console.print(f"\n[bold green]✓ Project '{project_name}' initialized.[/]")
    console.print("\nNext steps:")
    console.print("  1. foliokit add <file> [--role hero]   (add content)")
    console.print("  2. foliokit build                      (process changed files)")
    console.print("  3. foliokit status                     (roles and constraints)")


def _update_gitignore(project_dir: Path) -> None:
    """Add the .foliokit/ state directory to .gitignore."""
    gitignore = project_dir / ".gitignore"
    entry = f"{_STATE_DIR}/"

    if gitignore.exists():
        existing = gitignore.read_text(encoding="utf-8")
        if entry in existing.splitlines():
            return
        with gitignore.open("a", encoding="utf-8") as f:
            if existing and not existing.endswith("\n"):
                f.write("\n")
            f.write(f"\n# foliokit\n{entry}\n")
        console.print("  [green]✓[/] .gitignore (updated)")
    else:
        gitignore.write_text(f"# foliokit\n{entry}\n", encoding="utf-8")
        console.print("  [green]✓[/] .gitignore")
