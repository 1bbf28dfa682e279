"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from docsync.db.connection import Database
from docsync.db.schema import initialize


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".docsync.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()
