"""foliokit build: incremental processing of the content directory.

Scans ``project.content_dir``, runs the content pipeline with the default
processor (``foliokit.processors.describe``), and writes a JSON build
manifest for downstream collaborators (preview server, exporters):

  .foliokit/build.json
    project       project name
    generatedAt   UTC timestamp
    files[]       path, role, pinned, extension, sizeBytes, contentHash,
                  dependencies, metadata, result
    roles         role/constraint report
    summary       counts, errors, skipped, metrics

Exit code is 1 only when files were queued and none processed successfully.

Usage:
  foliokit build
  foliokit build --full          (ignore the cache, reprocess everything)
  foliokit build --fail-fast     (stop scheduling after the first failure)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from foliokit.cli.errors import (
    err_build_failed,
    err_content_dir_missing,
    err_output_path_unsafe,
    warn_constraint_violations,
)
from foliokit.cli.project import load_project, open_pipeline, scan_content
from foliokit.config import FoliokitConfig
from foliokit.pipeline.cache import utc_now
from foliokit.pipeline.orchestrator import ContentPipeline, PipelineSummary
from foliokit.processors import describe
from foliokit.writer import confine_output_path, write_json

console = Console()

_DEFAULT_MANIFEST = Path(".foliokit") / "build.json"


def build_cmd(
    full: Annotated[
        bool,
        typer.Option("--full", help="Ignore the cache and reprocess every file."),
    ] = False,
    fail_fast: Annotated[
        bool,
        typer.Option("--fail-fast", help="Stop scheduling new files after the first failure."),
    ] = False,
    manifest: Annotated[
        Path | None,
        typer.Option("--manifest", "-m", help="Build manifest path (default: .foliokit/build.json)."),
    ] = None,
    project: Annotated[
        Path,
        typer.Option("--project", "-p", help="Project directory (contains foliokit.yaml)."),
    ] = Path("."),
) -> None:
    """Process new and changed content files; reuse cached results for the rest."""
    project_dir = project.resolve()
    cfg = load_project(project_dir)

    content_dir = project_dir / cfg.project.content_dir
    if not content_dir.is_dir():
        console.print(err_content_dir_missing(cfg.project.content_dir))
        raise typer.Exit(1)

    try:
        manifest_path = confine_output_path(
            manifest if manifest is not None else _DEFAULT_MANIFEST, project_dir
        )
    except ValueError:
        console.print(err_output_path_unsafe(str(manifest)))
        raise typer.Exit(1)

    files = scan_content(project_dir, cfg)
    if not files:
        console.print(f"[yellow]No files found in {cfg.project.content_dir}/.[/]")
        console.print("  Run:  foliokit add <file>")
        raise typer.Exit(0)

    pipeline = open_pipeline(project_dir, cfg)

    # ---- Run ----
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        transient=True,
        console=console,
    ) as prog:
        task = prog.add_task("Scanning…", total=None)

        def _on_progress(path: str, done: int, total: int) -> None:
            prog.update(task, description=f"Processing {path}", completed=done, total=total)

        pipeline.on_progress = _on_progress
        summary = pipeline.run(
            describe,
            files,
            incremental=cfg.pipeline.incremental and not full,
            continue_on_error=cfg.pipeline.continue_on_error and not fail_fast,
        )

    # ---- Report ----
    _show_summary(summary, cfg)

    for error in summary.errors:
        console.print(f"  [red]✗[/] {error.path}: {error.error_type}: {error.message}")
    for path in summary.skipped:
        console.print(f"  [dim]– skipped {path}[/]")
    for path in summary.missing:
        console.print(f"  [yellow]?[/] vanished during build: {path}")

    violations = summary.roles.get("violations", [])
    if violations:
        console.print(f"\n{warn_constraint_violations(len(violations))}")

    # ---- Manifest ----
    write_json(manifest_path, _manifest(pipeline, summary, cfg))
    console.print(f"\n[bold green]✓[/] Build manifest written to [bold]{_display(manifest_path, project_dir)}[/]")

    if not summary.ok:
        console.print(err_build_failed(summary.stale))
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _show_summary(summary: PipelineSummary, cfg: FoliokitConfig) -> None:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Metric", style="bold")
    table.add_column("Value")

    processed = summary.metrics.files_processed
    table.add_row("Files", str(summary.total))
    table.add_row("Processed", f"[green]{processed}[/]" if processed else "0")
    table.add_row("From cache", str(summary.reused))
    if summary.errors:
        table.add_row("Failed", f"[red]{len(summary.errors)}[/]")
    if summary.skipped:
        table.add_row("Skipped", f"[yellow]{len(summary.skipped)}[/]")
    table.add_row("Cache hits", f"{summary.metrics.cache_hit_ratio:.0%}")
    table.add_row("Elapsed", f"{summary.metrics.elapsed:.2f}s")

    distribution = summary.metrics.role_distribution
    if distribution:
        table.add_row("Roles", ", ".join(f"{role} {n}" for role, n in distribution.items()))

    title = f"[bold]Build[/] [dim]{cfg.project.name}[/]" if cfg.project.name else "[bold]Build[/]"
    console.print(Panel(table, title=title, expand=False))


def _display(path: Path, project_dir: Path) -> str:
    try:
        return path.relative_to(project_dir).as_posix()
    except ValueError:
        return str(path)


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


def _manifest(
    pipeline: ContentPipeline, summary: PipelineSummary, cfg: FoliokitConfig
) -> dict[str, Any]:
    results = {r.path: r.result for r in summary.results}
    files: list[dict[str, Any]] = []
    for path in sorted(pipeline.records):
        record = pipeline.records[path]
        if record.missing or not record.content_hash:
            continue
        files.append(
            {
                "path": record.path,
                "role": record.role.value if record.role else None,
                "pinned": record.pinned,
                "extension": record.extension,
                "sizeBytes": record.size_bytes,
                "contentHash": record.content_hash,
                "dependencies": list(record.dependencies),
                "metadata": record.metadata.to_dict(),
                "result": results.get(path),
            }
        )

    run = summary.to_dict()
    return {
        "project": cfg.project.name,
        "generatedAt": utc_now(),
        "files": files,
        "roles": run.pop("roles"),
        "summary": {k: v for k, v in run.items() if k != "results"},
    }
