"""Shared helpers for commands that work on an initialised project.

  load_project()    foliokit.yaml → FoliokitConfig, or an actionable error + exit 1
  open_pipeline()   ContentPipeline with cache, constraints, and pins from config
  scan_content()    files under project.content_dir (hidden entries and
                    node_modules skipped, scan.exclude globs honoured)
"""

from __future__ import annotations

import fnmatch
import warnings
from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from foliokit.cli.errors import err_config_invalid, err_no_config, warn_cache_corrupt
from foliokit.config import (
    PROJECT_CONFIG_NAME,
    ConfigError,
    FoliokitConfig,
    cache_file,
    load_config,
)
from foliokit.errors import CacheCorruptionWarning
from foliokit.pipeline.orchestrator import ContentPipeline

console = Console()

_ALWAYS_SKIPPED = frozenset({"node_modules", "__pycache__"})


def load_project(project_dir: Path) -> FoliokitConfig:
    """Load the project config or exit with an actionable message."""
    if not (project_dir / PROJECT_CONFIG_NAME).exists():
        console.print(err_no_config(str(project_dir)))
        raise typer.Exit(1)
    try:
        return load_config(project_dir)
    except ConfigError as exc:
        console.print(err_config_invalid(str(exc)))
        raise typer.Exit(1)


def open_pipeline(project_dir: Path, cfg: FoliokitConfig, **kwargs: Any) -> ContentPipeline:
    """Open the project's pipeline; a corrupt cache is reported once, via rich."""
    cache_path = cache_file(cfg, project_dir)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", CacheCorruptionWarning)
        pipeline = ContentPipeline.open(
            project_dir,
            cache_path=cache_path,
            include_mtime=cfg.pipeline.include_mtime,
            batch_size=cfg.pipeline.batch_size,
            constraints=cfg.roles.constraints,
            pins=cfg.roles.pins,
            **kwargs,
        )
    if pipeline.cache.corrupt:
        console.print(warn_cache_corrupt(str(cache_path)))
    return pipeline


def scan_content(project_dir: Path, cfg: FoliokitConfig) -> list[Path]:
    """Return every file under the configured content directory."""
    content_dir = project_dir / cfg.project.content_dir
    if not content_dir.is_dir():
        return []
    skip = {(project_dir / PROJECT_CONFIG_NAME).resolve()}
    return [
        f
        for f in scan_dir(
            content_dir,
            recursive=cfg.scan.recursive,
            exclude=cfg.scan.exclude,
            depth=0,
            max_depth=cfg.scan.max_depth,
            base=content_dir,
        )
        if f.resolve() not in skip
    ]


def scan_dir(
    directory: Path,
    recursive: bool,
    exclude: list[str],
    depth: int,
    max_depth: int = 10,
    base: Path | None = None,
) -> list[Path]:
    """Return files in *directory* (optionally recursive), sorted by name."""
    if depth > max_depth:
        return []
    base = base or directory
    files: list[Path] = []
    try:
        entries = sorted(directory.iterdir())
    except PermissionError:
        return []
    for entry in entries:
        if entry.name.startswith(".") or entry.name in _ALWAYS_SKIPPED:
            continue
        rel = entry.relative_to(base).as_posix()
        if any(fnmatch.fnmatch(entry.name, pat) or fnmatch.fnmatch(rel, pat) for pat in exclude):
            continue
        if entry.is_file():
            files.append(entry)
        elif entry.is_dir() and recursive and depth < max_depth:
            files.extend(
                scan_dir(
                    entry,
                    recursive=recursive,
                    exclude=exclude,
                    depth=depth + 1,
                    max_depth=max_depth,
                    base=base,
                )
            )
    return files


def human_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"
