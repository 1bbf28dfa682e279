"""Forward-only migration runner for the docsync schema."""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

# parent_document_id is resolved by path lookup, not enforced as a foreign key.
# checksum stays NULL while a document's sections are being regenerated.
_V1_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    id                  TEXT PRIMARY KEY,
    parent_document_id  TEXT,
    path                TEXT NOT NULL UNIQUE,
    parent_path         TEXT,
    checksum            TEXT,
    metadata            TEXT NOT NULL DEFAULT '{}',
    version_stamp       TEXT NOT NULL,
    last_refreshed_at   DATETIME NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_documents_version ON documents(version_stamp);

CREATE TABLE IF NOT EXISTS sections (
    id              TEXT PRIMARY KEY,
    document_id     TEXT NOT NULL REFERENCES documents(id),
    slug            TEXT,
    heading         TEXT,
    content         TEXT NOT NULL,
    embedding       BLOB NOT NULL,
    token_count     INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sections_document ON sections(document_id);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def current_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied migration version (0 for a fresh database)."""
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] if row[0] is not None else 0


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    current = current_version(conn)

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
