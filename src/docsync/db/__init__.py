"""docsync database layer."""

from docsync.db.connection import Database
from docsync.db.migrations import MIGRATIONS, run_migrations
from docsync.db.models import Document, Section
from docsync.db.repository import Repository
from docsync.db.schema import initialize

__all__ = [
    "Database",
    "Document",
    "MIGRATIONS",
    "Repository",
    "Section",
    "initialize",
    "run_migrations",
]
