"""foliokit CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from foliokit.cli.add import add_cmd
from foliokit.cli.build import build_cmd
from foliokit.cli.clean import clean_cmd
from foliokit.cli.init import init_cmd
from foliokit.cli.remove import remove_cmd
from foliokit.cli.status import status_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("foliokit")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"foliokit {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="foliokit",
    help=(
        "foliokit: portfolio builder with an incremental content pipeline.\n\n"
        "  foliokit add     Copy files into the project and classify them.\n"
        "  foliokit build   Process changed files; reuse cached results for the rest."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """foliokit: portfolio builder with an incremental content pipeline."""


app.command("init")(init_cmd)
app.command("add")(add_cmd)
app.command("build")(build_cmd)
app.command("status")(status_cmd)
app.command("remove")(remove_cmd)
app.command("clean")(clean_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed foliokit version."""
    typer.echo(f"foliokit {_installed_version()}")


if __name__ == "__main__":
    app()
