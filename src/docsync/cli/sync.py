"""docsync sync — refresh the document store from the docs tree.

Per source the engine either skips it (checksum unchanged), refreshes it
(sections deleted, re-embedded, checksum written last) or records a failure and
moves on. Documents whose source disappeared or failed to load are pruned.

Exit codes:
  0  run completed (individual sources may have failed)
  1  fatal startup/cleanup error, or --strict with at least one failed source
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from docsync.cli.errors import (
    err_config,
    err_db_unavailable,
    err_docs_root_unreadable,
    err_no_api_key,
    err_no_docs_root,
    warn_failed_sources,
)
from docsync.config import ConfigError, DocsyncConfig, load_config, resolve_api_key
from docsync.db.connection import Database
from docsync.db.repository import Repository
from docsync.db.schema import initialize
from docsync.sources.base import SourceDescriptor
from docsync.sources.walk import walk
from docsync.sync.engine import run_sync
from docsync.sync.outcomes import Failed, Refreshed, Skipped, SourceOutcome, SyncSummary
from docsync.sync.plan import SyncPlan, plan_sync

console = Console()


def sync_cmd(
    docs_root: Annotated[
        Path | None,
        typer.Option("--docs-root", "-r", help="Root of the documentation tree."),
    ] = None,
    db: Annotated[
        str | None,
        typer.Option("--db", help="Database URL (sqlite:///path.db) or file path."),
    ] = None,
    refresh_all: Annotated[
        bool,
        typer.Option("--refresh-all", help="Re-embed every page even if unchanged."),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would change without writing."),
    ] = False,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Exit with code 1 if any source failed."),
    ] = False,
    exclude: Annotated[
        list[str] | None,
        typer.Option("--exclude", help="Glob pattern to exclude (repeatable)."),
    ] = None,
) -> None:
    """Synchronize the docs tree into embedded document sections."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)

    _apply_cli_overrides(cfg, docs_root, db, refresh_all, exclude)

    if not cfg.docs.root:
        console.print(err_no_docs_root())
        raise typer.Exit(1)

    # ---- Enumerate (fatal on failure) ----
    try:
        descriptors = walk(
            cfg.docs.root, exclude=cfg.docs.exclude, extensions=cfg.docs.extensions
        )
    except OSError as exc:
        console.print(err_docs_root_unreadable(cfg.docs.root, str(exc)))
        raise typer.Exit(1)

    console.print(f"[bold]Found {len(descriptors)} pages[/] in {cfg.docs.root}")

    if dry_run:
        _dry_run(cfg, descriptors)
        return

    model = cfg.embedding.model
    try:
        api_key = resolve_api_key(model)
    except EnvironmentError:
        provider = model.split("/")[0] if "/" in model else "openai"
        console.print(err_no_api_key(provider))
        raise typer.Exit(1)

    if cfg.sync.refresh_all:
        console.print("[yellow]↻ Refreshing all pages[/]")

    # ---- Sync ----
    try:
        summary = _run_with_progress(cfg, api_key, descriptors)
    except (sqlite3.Error, ValueError) as exc:
        console.print(err_db_unavailable(cfg.database.url, str(exc)))
        raise typer.Exit(1)

    _show_summary(summary)

    if summary.failed:
        console.print(f"\n{warn_failed_sources(len(summary.failed))}")
        if strict:
            raise typer.Exit(1)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _apply_cli_overrides(
    cfg: DocsyncConfig,
    docs_root: Path | None,
    db: str | None,
    refresh_all: bool,
    exclude: list[str] | None,
) -> None:
    if docs_root is not None:
        cfg.docs.root = str(docs_root)
    if db is not None:
        cfg.database.url = db
    if refresh_all:
        cfg.sync.refresh_all = True
    if exclude:
        cfg.docs.exclude = [*cfg.docs.exclude, *exclude]


def _run_with_progress(
    cfg: DocsyncConfig, api_key: str, descriptors: list[SourceDescriptor]
) -> SyncSummary:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        transient=True,
        console=console,
    ) as prog:
        task = prog.add_task("Syncing…", total=len(descriptors))

        def _on_outcome(outcome: SourceOutcome) -> None:
            prog.console.print(format_outcome(outcome))
            prog.advance(task)

        return run_sync(cfg, api_key, descriptors=descriptors, on_outcome=_on_outcome)


def format_outcome(outcome: SourceOutcome) -> str:
    """One console line per source."""
    if isinstance(outcome, Skipped):
        return f"  [dim]↷ {outcome.path} — unchanged, skipped[/]"
    if isinstance(outcome, Refreshed):
        if outcome.created:
            return f"  [green]+[/] {outcome.path} — created, {outcome.section_count} sections embedded"
        return f"  [yellow]↻[/] {outcome.path} — updated, {outcome.section_count} sections embedded"
    if isinstance(outcome, Failed):
        return f"  [red]✗ {outcome.path}[/] — {outcome.reason}"
    raise TypeError(f"Unknown outcome: {outcome!r}")


def _show_summary(summary: SyncSummary) -> None:
    table = Table(title="Sync summary", show_header=False, expand=False)
    table.add_column("", style="bold")
    table.add_column("", justify="right")
    table.add_row("Discovered", str(summary.discovered))
    table.add_row("Skipped", str(len(summary.skipped)))
    table.add_row("Refreshed", f"{len(summary.refreshed)} ({len(summary.created)} new)")
    table.add_row("Failed", str(len(summary.failed)))
    table.add_row("Pruned", str(summary.pruned))
    console.print()
    console.print(table)


def _dry_run(cfg: DocsyncConfig, descriptors: list[SourceDescriptor]) -> None:
    """Print the planned action per page without embedding or writing."""
    try:
        db = Database(cfg.database.url, read_only=True)
        if db.db_path.exists():
            with db as conn:
                plan = plan_sync(
                    Repository(conn), descriptors, refresh_all=cfg.sync.refresh_all
                )
        else:
            with Database(":memory:") as conn:
                initialize(conn)
                plan = plan_sync(
                    Repository(conn), descriptors, refresh_all=cfg.sync.refresh_all
                )
    except (sqlite3.Error, ValueError) as exc:
        console.print(err_db_unavailable(cfg.database.url, str(exc)))
        raise typer.Exit(1)
    _show_plan(plan)


def _show_plan(plan: SyncPlan) -> None:
    styles = {"create": "green", "refresh": "yellow", "skip": "dim", "error": "red"}
    for action in plan.actions:
        style = styles[action.action]
        detail = f" — {action.detail}" if action.detail else ""
        console.print(f"  [{style}]{action.action:<7}[/] {action.path}{detail}")
    for path in plan.prune:
        console.print(f"  [red]prune  [/] {path}")
    console.print(
        f"\n[dim]Dry run — {plan.count('create')} create, {plan.count('refresh')} refresh, "
        f"{plan.count('skip')} skip, {plan.count('error')} error, {len(plan.prune)} prune. "
        "Nothing written.[/]"
    )
