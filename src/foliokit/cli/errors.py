"""foliokit rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from foliokit.cli.errors import err_no_config
    console.print(err_no_config(project_dir))
    raise typer.Exit(1)
"""

from __future__ import annotations

from foliokit.models import Role


def err_no_config(project_dir: str) -> str:
    """No foliokit.yaml found in the project directory."""
    return (
        f"[red]Error:[/] No foliokit.yaml found in '{project_dir}'.\n"
        "  Run:  foliokit init"
    )


def err_config_invalid(detail: str) -> str:
    """foliokit.yaml (or the global config) failed validation."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {detail}\n"
        "  Fix foliokit.yaml and run the command again."
    )


def err_content_dir_missing(content_dir: str) -> str:
    return (
        f"[red]Error:[/] Content directory not found: '{content_dir}'\n"
        "  Create it or set project.content_dir in foliokit.yaml.\n"
        "  Run:  foliokit add <file>   to add your first file."
    )


def err_file_not_found(path: str) -> str:
    return (
        f"[red]Error:[/] File not found: '{path}'\n"
        "  Check the path and try again."
    )


def err_outside_project(path: str, project_dir: str) -> str:
    """A path resolves outside the project directory."""
    return (
        f"[red]Error:[/] '{path}' is outside the project directory '{project_dir}'.\n"
        "  Use a path within the project, or pass --project to choose another root."
    )


def err_unknown_role(role: str) -> str:
    valid = ", ".join(r.value for r in Role)
    return (
        f"[red]Error:[/] Unknown role '{role}'.\n"
        f"  Valid roles: {valid}"
    )


def err_output_path_unsafe(path: str) -> str:
    """--manifest path fails validation."""
    return (
        f"[red]Error:[/] Output path is not allowed: '{path}'\n"
        "  Use a path within the project directory."
    )


def err_not_tracked(path: str) -> str:
    """remove: nothing known about the path."""
    return (
        f"[yellow]Not tracked:[/] '{path}' has no cache entry or role pin.\n"
        "  Run:  foliokit status  to see the project files."
    )


def err_build_failed(failed: int) -> str:
    """Every queued file failed."""
    return (
        f"[red]Error:[/] Build failed: none of the {failed} queued file(s) processed successfully.\n"
        "  Fix the errors listed above, then run:  foliokit build"
    )


def warn_cache_corrupt(cache_path: str) -> str:
    """The cache file could not be read; the run starts cold."""
    return (
        f"[yellow]⚠[/] Cache file '{cache_path}' is unreadable; rebuilding everything.\n"
        "  It will be rewritten at the end of this run."
    )


def warn_constraint_violations(count: int) -> str:
    return (
        f"[yellow]⚠[/] {count} role constraint violation(s).\n"
        "  Run:  foliokit status  for details, or pin a role with:  foliokit add <file> --role <role>"
    )
