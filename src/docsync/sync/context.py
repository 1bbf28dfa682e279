"""Run-scoped state threaded through the sync engine."""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from docsync.config import DocsyncConfig
from docsync.db.connection import Database
from docsync.db.repository import Repository
from docsync.db.schema import initialize
from docsync.ingest.embedding_client import Embedding, EmbeddingClient


class Embedder(Protocol):
    def embed(self, text: str) -> Embedding: ...


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def new_version_stamp() -> str:
    return uuid.uuid4().hex


@dataclass
class SyncContext:
    """Collaborators and run constants for one synchronization run.

    Attributes:
        repo: Persistence gateway over an open connection.
        embedder: Anything with ``embed(text) -> Embedding``.
        version_stamp: Unique per run; documents not carrying it are pruned.
        run_timestamp: Written to ``last_refreshed_at`` of every touched document.
        refresh_all: Regenerate sections even when checksums match.
    """

    repo: Repository
    embedder: Embedder
    version_stamp: str = field(default_factory=new_version_stamp)
    run_timestamp: str = field(default_factory=_utc_now)
    refresh_all: bool = False


@contextmanager
def open_sync_context(
    config: DocsyncConfig,
    api_key: str | None,
    *,
    refresh_all: bool | None = None,
) -> Iterator[SyncContext]:
    """Open the database and embedding client for one run; always close the connection.

    Args:
        config: Merged configuration (database URL, embedding model).
        api_key: Embedding provider credential.
        refresh_all: Overrides ``config.sync.refresh_all`` when not None.
    """
    conn = Database(config.database.url).connect()
    try:
        initialize(conn)
        yield SyncContext(
            repo=Repository(conn),
            embedder=EmbeddingClient(config.embedding, api_key),
            refresh_all=config.sync.refresh_all if refresh_all is None else refresh_all,
        )
    finally:
        conn.close()
