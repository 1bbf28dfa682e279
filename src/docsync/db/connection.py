"""SQLite connection layer with sqlite-vec extension."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import sqlite_vec

_SQLITE_SCHEME = "sqlite:///"


def parse_database_url(url: str | Path) -> Path:
    """Return the database file path for *url*.

    Accepts ``sqlite:///relative.db``, ``sqlite:////abs/path.db`` or a plain path.

    Raises:
        ValueError: If *url* uses a scheme other than ``sqlite``.
    """
    text = str(url)
    if text.startswith(_SQLITE_SCHEME):
        return Path(text[len(_SQLITE_SCHEME):])
    if "://" in text:
        scheme = text.split("://", 1)[0]
        raise ValueError(
            f"Unsupported database scheme '{scheme}' — use sqlite:///path/to.db or a file path."
        )
    return Path(text)


class Database:
    """Per-project SQLite database with sqlite-vec vector support."""

    def __init__(self, url: Path | str, *, read_only: bool = False) -> None:
        """Store the database location. Call connect() to open the connection.

        Args:
            url: ``sqlite:///`` URL or path to the SQLite file (created if missing).
            read_only: Open an existing file in ``mode=ro``; nothing is created or written.
        """
        self.db_path = parse_database_url(url)
        self.read_only = read_only
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        """Open a connection, load sqlite-vec, and return the connection."""
        if self.read_only:
            conn = sqlite3.connect(f"{self.db_path.resolve().as_uri()}?mode=ro", uri=True)
        else:
            conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.enable_load_extension(True)
        sqlite_vec.load(conn)
        conn.enable_load_extension(False)
        conn.execute("PRAGMA foreign_keys = ON")
        if not self.read_only:
            conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def __enter__(self) -> sqlite3.Connection:
        self._conn = self.connect()
        return self._conn

    def __exit__(self, *args: object) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
