"""Fixtures for sync engine tests: a docs tree and a scripted embedder."""

from __future__ import annotations

from pathlib import Path

import pytest

from docsync.db.repository import Repository
from docsync.ingest.embedding_client import Embedding, EmbeddingError
from docsync.sync.context import SyncContext


class FakeEmbedder:
    """Returns a 3-d vector per call; raises on the configured (1-based) call numbers."""

    def __init__(self, fail_on: set[int] | None = None) -> None:
        self.calls: list[str] = []
        self.fail_on = fail_on or set()

    def embed(self, text: str) -> Embedding:
        self.calls.append(text)
        if len(self.calls) in self.fail_on:
            raise EmbeddingError("provider unavailable")
        return Embedding(vector=[float(len(self.calls)), 0.0, 1.0], token_count=len(text) // 4 or 1)


def _write_page(root: Path, rel: str, text: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def fake_embedder():
    return FakeEmbedder


@pytest.fixture
def write_page():
    return _write_page


@pytest.fixture
def docs_root(tmp_path: Path) -> Path:
    root = tmp_path / "pages"
    _write_page(root, "index.mdx", "# Welcome\n\nStart here.\n")
    _write_page(root, "guides.mdx", "# Guides\n\nAll guides.\n")
    _write_page(
        root,
        "guides/setup.md",
        "---\ntitle: Setup\n---\n# Setup\n\nInstall it.\n\n## Configure\n\nEdit the file.\n",
    )
    return root


@pytest.fixture
def repo(tmp_db) -> Repository:
    return Repository(tmp_db)


@pytest.fixture
def make_ctx(repo):
    """Build a fresh SyncContext (new version stamp) around the shared repository."""

    def _make(embedder: FakeEmbedder | None = None, refresh_all: bool = False) -> SyncContext:
        return SyncContext(repo=repo, embedder=embedder or FakeEmbedder(), refresh_all=refresh_all)

    return _make
