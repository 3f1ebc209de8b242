"""foliokit status command.

Shows project overview: config, roles per file type, role constraint
violations, and cache state (entries, last save, files pending a rebuild).
Nothing is processed and the cache is never written.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from foliokit.cli.project import human_size, load_project, open_pipeline, scan_content
from foliokit.config import FoliokitConfig, cache_file
from foliokit.pipeline.orchestrator import ContentPipeline
from foliokit.pipeline.scheduler import SchedulePlan

console = Console()


def status_cmd(
    project: Annotated[
        Path,
        typer.Option("--project", "-p", help="Project directory (contains foliokit.yaml)."),
    ] = Path("."),
) -> None:
    """Show project status: roles, constraint violations, and cache state."""
    project_dir = project.resolve()
    cfg = load_project(project_dir)

    pipeline = open_pipeline(project_dir, cfg)
    files = scan_content(project_dir, cfg)
    plan = pipeline.preview(files)

    # ---- Panel 1: Project ----
    _show_project_panel(project_dir, cfg, len(files))

    # ---- Panel 2: Roles ----
    _show_roles_panel(pipeline)

    # ---- Panel 3: Constraint violations ----
    _show_violations_panel(pipeline)

    # ---- Panel 4: Cache ----
    _show_cache_panel(project_dir, cfg, pipeline, plan)


# ---------------------------------------------------------------------------
# Panel renderers
# ---------------------------------------------------------------------------


def _show_project_panel(project_dir: Path, cfg: FoliokitConfig, file_count: int) -> None:
    content_dir = project_dir / cfg.project.content_dir
    content_status = "[green]✓[/]" if content_dir.is_dir() else "[yellow]✗ missing[/]"
    lines = [
        f"Project:   [bold]{cfg.project.name or '(unnamed)'}[/]",
        f"Directory: {project_dir}",
        f"Content:   {cfg.project.content_dir}/ {content_status}  ({file_count} files)",
    ]
    if cfg.roles.pins:
        lines.append(f"Pinned:    {len(cfg.roles.pins)} file(s)")
    console.print(Panel("\n".join(lines), title="[bold]Project[/]", expand=False))


def _show_roles_panel(pipeline: ContentPipeline) -> None:
    report = pipeline.index.report()["roles"]
    if not report:
        console.print(
            Panel(
                "[dim]No content files yet.[/]\n"
                "  Run:  foliokit add <file>",
                title="[bold]Roles[/]",
                expand=False,
            )
        )
        return

    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("Role")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Extensions", style="dim")
    for role, stats in report.items():
        table.add_row(
            role,
            str(stats["count"]),
            human_size(stats["totalSize"]),
            " ".join(stats["extensions"]),
        )
    console.print(Panel(table, title="[bold]Roles[/]", expand=False))


def _show_violations_panel(pipeline: ContentPipeline) -> None:
    violations = pipeline.index.validate_role_constraints()
    if not violations:
        console.print(
            Panel("[green]✓[/] All role constraints satisfied.", title="[bold]Constraints[/]", expand=False)
        )
        return

    lines: list[str] = []
    for v in violations:
        if v.issue == "too_many_files":
            lines.append(f"[yellow]✗[/] {v.role}: {v.current} files (max {v.max})")
        else:
            allowed = " ".join(v.allowed)
            lines.append(f"[yellow]✗[/] {v.role}: {v.file} has {v.extension} (allowed: {allowed})")
    console.print(
        Panel(
            "\n".join(lines),
            title=f"[bold]Constraints[/] [dim]({len(violations)} violations)[/]",
            expand=False,
        )
    )


def _show_cache_panel(
    project_dir: Path, cfg: FoliokitConfig, pipeline: ContentPipeline, plan: SchedulePlan
) -> None:
    path = cache_file(cfg, project_dir)
    cache = pipeline.cache
    if cache.corrupt:
        state = "[red]unreadable, next build starts cold[/]"
    elif path.exists():
        size_kb = path.stat().st_size / 1024
        state = f"[green]✓[/] {size_kb:.1f} KB"
    else:
        state = "[dim]not built yet[/]"

    lines = [
        f"File:      {cfg.pipeline.cache_path}  {state}",
        f"Entries:   [bold]{len(cache)}[/]",
        f"Saved:     [dim]{cache.generated_at or 'never'}[/]",
        f"Pending:   [bold]{len(plan.stale)}[/] to process, {len(plan.reused)} up to date",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Cache[/]", expand=False))
