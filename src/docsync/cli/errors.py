"""docsync error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from docsync.cli.errors import err_no_api_key
    console.print(err_no_api_key("openai"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from docsync.config import API_KEY_ENV


def err_no_api_key(provider: str) -> str:
    """No API key for the embedding *provider*."""
    env_var = f"{provider.upper()}_API_KEY"
    return (
        f"[red]Error:[/] No API key for embedding provider '{provider}'.\n"
        f"  Set:  export {API_KEY_ENV}=...   (or {env_var})"
    )


def err_no_docs_root() -> str:
    """No docs root given on the command line, in env, or in docsync.yaml."""
    return (
        "[red]Error:[/] No docs root configured.\n"
        "  Pass --docs-root PATH, export DOCSYNC_DOCS_ROOT=PATH,\n"
        "  or set docs.root in docsync.yaml."
    )


def err_docs_root_unreadable(root: str, reason: str) -> str:
    """The docs tree cannot be enumerated — nothing was synced."""
    return (
        f"[red]Error:[/] Cannot read docs root '{root}': {reason}\n"
        "  Check that the path exists and is readable. No documents were changed."
    )


def err_db_unavailable(url: str, reason: str) -> str:
    """The database cannot be opened or the cleanup phase failed."""
    return (
        f"[red]Error:[/] Database error for '{url}': {reason}\n"
        "  Check the --db / DOCSYNC_DATABASE_URL value and re-run docsync sync."
    )


def err_no_db(db_url: str) -> str:
    """No database found at the configured location."""
    return (
        f"[red]Error:[/] No database found at '{db_url}'.\n"
        "  Run:  docsync sync --docs-root PATH"
    )


def err_config(reason: str) -> str:
    """A config file is invalid or contains a forbidden key."""
    return f"[red]Error:[/] Invalid configuration.\n  {reason}"


def warn_failed_sources(count: int) -> str:
    """Shown after a run in which some sources failed."""
    return (
        f"[yellow]⚠[/] {count} source(s) failed and will be retried on the next run.\n"
        "  Documents left incomplete are listed by:  docsync status"
    )
