"""docsync status — what the document store currently holds."""

from __future__ import annotations

import sqlite3
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from docsync.cli.errors import err_config, err_db_unavailable, err_no_db
from docsync.config import ConfigError, load_config
from docsync.db.connection import Database
from docsync.db.migrations import current_version
from docsync.db.repository import Repository

console = Console()


def status_cmd(
    db: Annotated[
        str | None,
        typer.Option("--db", help="Database URL (sqlite:///path.db) or file path."),
    ] = None,
) -> None:
    """Show stored documents, sections, and pages left incomplete by a failed run."""
    if db is None:
        try:
            db = load_config().database.url
        except ConfigError as exc:
            console.print(err_config(str(exc)))
            raise typer.Exit(1)

    database = Database(db, read_only=True)
    if not database.db_path.exists():
        console.print(err_no_db(db))
        raise typer.Exit(1)

    try:
        with database as conn:
            repo = Repository(conn)
            documents = repo.count_documents()
            sections = repo.count_sections()
            incomplete = [
                (doc, repo.count_sections(doc.id)) for doc in repo.list_incomplete_documents()
            ]
            version = current_version(conn)
    except sqlite3.Error as exc:
        console.print(err_db_unavailable(db, str(exc)))
        raise typer.Exit(1)

    console.print(
        Panel(
            f"Database:   {database.db_path}  (schema v{version})\n"
            f"Documents:  {documents}\n"
            f"Sections:   {sections}\n"
            f"Incomplete: {len(incomplete)}",
            title="[bold]Document store[/]",
            expand=False,
        )
    )

    if incomplete:
        table = Table(title="Incomplete documents (retried on next sync)")
        table.add_column("Path")
        table.add_column("Sections", justify="right")
        table.add_column("Last refreshed")
        for doc, section_count in incomplete:
            table.add_row(doc.path, str(section_count), doc.last_refreshed_at)
        console.print(table)
