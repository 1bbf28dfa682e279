"""Repository pattern for all docsync database operations.

Single interface for the two-table schema: documents and their sections.
Every write commits immediately unless it runs inside ``transaction()``.
"""

from __future__ import annotations

import sqlite3
import struct
from collections.abc import Iterator
from contextlib import contextmanager

from sqlite_vec import serialize_float32

from docsync.db.models import Document, Section

_DOCUMENT_COLUMNS = (
    "id, parent_document_id, path, parent_path, checksum, metadata, "
    "version_stamp, last_refreshed_at"
)
_SECTION_COLUMNS = "id, document_id, slug, heading, content, embedding, token_count"

# Columns update_document() may touch; id is immutable.
_UPDATABLE_DOCUMENT_FIELDS = frozenset(
    [
        "parent_document_id",
        "parent_path",
        "checksum",
        "metadata",
        "version_stamp",
        "last_refreshed_at",
    ]
)


class Repository:
    """Data access layer for documents and sections.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with sqlite-vec loaded and schema
                initialised (see docsync.db.schema.initialize).
        """
        self._conn = conn
        self._in_transaction = False

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[Repository]:
        """Group several writes into one commit; roll back if the block raises."""
        if self._in_transaction:
            yield self
            return
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            self._conn.rollback()
            raise
        else:
            self._conn.commit()
        finally:
            self._in_transaction = False

    def _commit(self) -> None:
        if not self._in_transaction:
            self._conn.commit()

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def find_document_by_path(self, path: str) -> Document | None:
        """Return the document stored under logical *path*, or None."""
        row = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE path = ?", (path,)
        ).fetchone()
        return _row_to_document(row) if row else None

    def get_document(self, document_id: str) -> Document | None:
        """Return a document by ID, or None if not found."""
        row = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ?", (document_id,)
        ).fetchone()
        return _row_to_document(row) if row else None

    def list_documents(self) -> list[Document]:
        """Return all documents ordered by path."""
        rows = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents ORDER BY path"
        ).fetchall()
        return [_row_to_document(r) for r in rows]

    def list_incomplete_documents(self) -> list[Document]:
        """Return documents whose checksum is NULL (interrupted or failed refresh)."""
        rows = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE checksum IS NULL ORDER BY path"
        ).fetchall()
        return [_row_to_document(r) for r in rows]

    def count_documents(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]

    def insert_document(self, document: Document) -> None:
        """Insert a new document record.

        Args:
            document: Document instance to persist. ``document.path`` must be unique.
        """
        self._conn.execute(
            f"""
            INSERT INTO documents ({_DOCUMENT_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                document.id,
                document.parent_document_id,
                document.path,
                document.parent_path,
                document.checksum,
                document.metadata,
                document.version_stamp,
                document.last_refreshed_at,
            ),
        )
        self._commit()

    def update_document(self, document_id: str, **fields: object) -> None:
        """Update the given columns of one document in place.

        Args:
            document_id: ID of the document to update.
            **fields: Column/value pairs; ``None`` writes SQL NULL.

        Raises:
            ValueError: If a field is unknown or not updatable.
        """
        if not fields:
            return
        unknown = set(fields) - _UPDATABLE_DOCUMENT_FIELDS
        if unknown:
            raise ValueError(f"Cannot update document field(s): {', '.join(sorted(unknown))}")
        assignments = ", ".join(f"{name} = ?" for name in fields)
        self._conn.execute(
            f"UPDATE documents SET {assignments} WHERE id = ?",  # noqa: S608
            (*fields.values(), document_id),
        )
        self._commit()

    def delete_documents_where_version_not(self, version_stamp: str) -> int:
        """Delete every document not stamped with *version_stamp*, with its sections.

        Sections are deleted first: ownership is enforced here, not by the schema.

        Returns:
            Number of documents deleted.
        """
        self._conn.execute(
            """
            DELETE FROM sections WHERE document_id IN (
                SELECT id FROM documents WHERE version_stamp != ?
            )
            """,
            (version_stamp,),
        )
        cur = self._conn.execute(
            "DELETE FROM documents WHERE version_stamp != ?", (version_stamp,)
        )
        self._commit()
        return cur.rowcount

    def repair_parent_links(self) -> int:
        """Re-resolve ``parent_document_id`` from ``parent_path`` for all documents.

        Links to parents that no longer exist become NULL.

        Returns:
            Number of documents whose link changed.
        """
        cur = self._conn.execute(
            """
            UPDATE documents
            SET parent_document_id = (
                SELECT p.id FROM documents AS p WHERE p.path = documents.parent_path
            )
            WHERE parent_document_id IS NOT (
                SELECT p.id FROM documents AS p WHERE p.path = documents.parent_path
            )
            """
        )
        self._commit()
        return cur.rowcount

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def insert_section(self, section: Section) -> None:
        """Insert one embedded section."""
        self._conn.execute(
            f"""
            INSERT INTO sections ({_SECTION_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                section.id,
                section.document_id,
                section.slug,
                section.heading,
                section.content,
                serialize_float32(section.embedding),
                section.token_count,
            ),
        )
        self._commit()

    def list_sections(self, document_id: str) -> list[Section]:
        """Return the sections of a document in insertion (source) order."""
        rows = self._conn.execute(
            f"SELECT {_SECTION_COLUMNS} FROM sections WHERE document_id = ? ORDER BY rowid",
            (document_id,),
        ).fetchall()
        return [_row_to_section(r) for r in rows]

    def count_sections(self, document_id: str | None = None) -> int:
        """Return the number of sections, optionally for a single document."""
        if document_id is None:
            return self._conn.execute("SELECT COUNT(*) FROM sections").fetchone()[0]
        return self._conn.execute(
            "SELECT COUNT(*) FROM sections WHERE document_id = ?", (document_id,)
        ).fetchone()[0]

    def delete_sections_by_document_id(self, document_id: str) -> int:
        """Delete all sections owned by *document_id*. Returns the number deleted."""
        cur = self._conn.execute(
            "DELETE FROM sections WHERE document_id = ?", (document_id,)
        )
        self._commit()
        return cur.rowcount


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _deserialize_float32(blob: bytes) -> list[float]:
    return list(struct.unpack(f"{len(blob) // 4}f", blob))


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        parent_document_id=row["parent_document_id"],
        path=row["path"],
        parent_path=row["parent_path"],
        checksum=row["checksum"],
        metadata=row["metadata"],
        version_stamp=row["version_stamp"],
        last_refreshed_at=row["last_refreshed_at"],
    )


def _row_to_section(row: sqlite3.Row) -> Section:
    return Section(
        id=row["id"],
        document_id=row["document_id"],
        slug=row["slug"],
        heading=row["heading"],
        content=row["content"],
        embedding=_deserialize_float32(row["embedding"]),
        token_count=row["token_count"],
    )
