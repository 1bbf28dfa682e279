"""docsync CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from docsync.cli.status import status_cmd
from docsync.cli.sync import sync_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("docsync")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"docsync {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="docsync",
    help=(
        "docsync — incremental docs → embedded sections sync.\n\n"
        "  docsync sync    Enumerate the docs tree and refresh changed pages.\n"
        "  docsync status  Show stored documents, sections and incomplete pages."
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
    """docsync — incremental docs → embedded sections sync."""


app.command("sync")(sync_cmd)
app.command("status")(status_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed docsync version."""
    typer.echo(f"docsync {_installed_version()}")


if __name__ == "__main__":
    app()
