"""Tests for the docsync sync command."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from docsync.cli.main import app
from docsync.db.connection import Database
from docsync.db.repository import Repository
from docsync.ingest.embedding_client import Embedding, EmbeddingError

runner = CliRunner()


class _StubClient:
    """Stands in for EmbeddingClient: fixed 3-d vectors, no network."""

    def __init__(self, *args, **kwargs) -> None:
        pass

    def embed(self, text: str) -> Embedding:
        return Embedding(vector=[0.1, 0.2, 0.3], token_count=5)


class _FailingClient(_StubClient):
    def embed(self, text: str) -> Embedding:
        raise EmbeddingError("provider unavailable")


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run from an empty directory with no global config and a dummy API key."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("docsync.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    for name in ["DOCSYNC_DOCS_ROOT", "DOCSYNC_DATABASE_URL", "DOCSYNC_EMBEDDING_MODEL", "DOCSYNC_REFRESH_ALL"]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DOCSYNC_EMBEDDING_API_KEY", "sk-test")


@pytest.fixture
def stub_embedder(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("docsync.sync.context.EmbeddingClient", _StubClient)


@pytest.fixture
def docs(tmp_path: Path) -> Path:
    root = tmp_path / "pages"
    (root / "guides").mkdir(parents=True)
    (root / "index.mdx").write_text("# Welcome\n\nHello.\n", encoding="utf-8")
    (root / "guides.mdx").write_text("# Guides\n", encoding="utf-8")
    (root / "guides" / "setup.md").write_text("# Setup\n\n## Install\n\nRun it.\n", encoding="utf-8")
    (root / "404.mdx").write_text("# Not found\n", encoding="utf-8")
    return root


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "docs.db"


def _sync(docs: Path, db_path: Path, *extra: str):
    return runner.invoke(app, ["sync", "--docs-root", str(docs), "--db", str(db_path), *extra])


def _paths(db_path: Path) -> list[str]:
    with Database(db_path) as conn:
        return [d.path for d in Repository(conn).list_documents()]


# ------------------------------------------------------------------
# Startup errors
# ------------------------------------------------------------------


def test_sync_without_docs_root_fails() -> None:
    result = runner.invoke(app, ["sync"])
    assert result.exit_code == 1
    assert "No docs root" in result.output


def test_sync_missing_docs_root_fails(tmp_path: Path, db_path: Path) -> None:
    result = _sync(tmp_path / "missing", db_path)
    assert result.exit_code == 1
    assert "Cannot read docs root" in result.output
    assert not db_path.exists()


def test_sync_without_api_key_fails(docs: Path, db_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("DOCSYNC_EMBEDDING_API_KEY")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    result = _sync(docs, db_path)
    assert result.exit_code == 1
    assert "No API key" in result.output


def test_sync_invalid_config_fails(tmp_path: Path, docs: Path, db_path: Path) -> None:
    (tmp_path / "docsync.yaml").write_text("embedding:\n  api_key: sk-nope\n", encoding="utf-8")
    result = _sync(docs, db_path)
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_sync_unsupported_db_scheme_fails(docs: Path, stub_embedder) -> None:
    result = runner.invoke(
        app, ["sync", "--docs-root", str(docs), "--db", "postgres://localhost/docs"]
    )
    assert result.exit_code == 1
    assert "Database error" in result.output


# ------------------------------------------------------------------
# Runs
# ------------------------------------------------------------------


def test_sync_first_run_creates_documents(docs: Path, db_path: Path, stub_embedder) -> None:
    result = _sync(docs, db_path)
    assert result.exit_code == 0, result.output
    assert "Found 3 pages" in result.output
    assert "created" in result.output
    assert _paths(db_path) == ["guides", "guides/setup", "index"]


def test_sync_default_exclude_skips_404(docs: Path, db_path: Path, stub_embedder) -> None:
    _sync(docs, db_path)
    assert "404" not in _paths(db_path)


def test_sync_extra_exclude(docs: Path, db_path: Path, stub_embedder) -> None:
    result = _sync(docs, db_path, "--exclude", "guides/*")
    assert result.exit_code == 0, result.output
    assert _paths(db_path) == ["guides", "index"]


def test_sync_second_run_skips_unchanged(docs: Path, db_path: Path, stub_embedder) -> None:
    _sync(docs, db_path)
    result = _sync(docs, db_path)
    assert result.exit_code == 0
    assert "unchanged" in result.output


def test_sync_refresh_all_flag(docs: Path, db_path: Path, stub_embedder) -> None:
    _sync(docs, db_path)
    result = _sync(docs, db_path, "--refresh-all")
    assert result.exit_code == 0
    assert "Refreshing all pages" in result.output
    assert "updated" in result.output


def test_sync_prunes_removed_page(docs: Path, db_path: Path, stub_embedder) -> None:
    _sync(docs, db_path)
    (docs / "index.mdx").unlink()
    result = _sync(docs, db_path)
    assert result.exit_code == 0
    assert _paths(db_path) == ["guides", "guides/setup"]


def test_sync_accepts_sqlite_url(tmp_path: Path, docs: Path, stub_embedder) -> None:
    db_file = tmp_path / "url.db"
    result = runner.invoke(app, ["sync", "--docs-root", str(docs), "--db", f"sqlite:///{db_file}"])
    assert result.exit_code == 0, result.output
    assert db_file.exists()


# ------------------------------------------------------------------
# Failures and --strict
# ------------------------------------------------------------------


def test_sync_failed_sources_exit_zero_by_default(docs: Path, db_path: Path, monkeypatch) -> None:
    monkeypatch.setattr("docsync.sync.context.EmbeddingClient", _FailingClient)
    result = _sync(docs, db_path)
    assert result.exit_code == 0
    assert "provider unavailable" in result.output
    assert "failed" in result.output


def test_sync_strict_exits_one_on_failure(docs: Path, db_path: Path, monkeypatch) -> None:
    monkeypatch.setattr("docsync.sync.context.EmbeddingClient", _FailingClient)
    result = _sync(docs, db_path, "--strict")
    assert result.exit_code == 1


def test_sync_strict_exits_zero_when_clean(docs: Path, db_path: Path, stub_embedder) -> None:
    result = _sync(docs, db_path, "--strict")
    assert result.exit_code == 0


# ------------------------------------------------------------------
# --dry-run
# ------------------------------------------------------------------


def test_dry_run_writes_nothing(docs: Path, db_path: Path) -> None:
    result = _sync(docs, db_path, "--dry-run")
    assert result.exit_code == 0, result.output
    assert "create" in result.output
    assert "Nothing written" in result.output
    assert not db_path.exists()


def test_dry_run_needs_no_api_key(docs: Path, db_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("DOCSYNC_EMBEDDING_API_KEY")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    result = _sync(docs, db_path, "--dry-run")
    assert result.exit_code == 0


def test_dry_run_against_existing_store(docs: Path, db_path: Path, stub_embedder) -> None:
    _sync(docs, db_path)
    (docs / "index.mdx").unlink()
    result = _sync(docs, db_path, "--dry-run")
    assert result.exit_code == 0
    assert "skip" in result.output
    assert "prune" in result.output
    assert _paths(db_path) == ["guides", "guides/setup", "index"]


def test_dry_run_leaves_existing_store_untouched(docs: Path, db_path: Path, stub_embedder) -> None:
    _sync(docs, db_path)
    with Database(db_path) as conn:
        versions = conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
    stored = db_path.read_bytes()
    (docs / "guides" / "setup.md").write_text("# Setup\n\nChanged.\n", encoding="utf-8")

    result = _sync(docs, db_path, "--dry-run")

    assert result.exit_code == 0, result.output
    assert "refresh" in result.output
    assert db_path.read_bytes() == stored
    with Database(db_path) as conn:
        assert conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0] == versions


def test_dry_run_against_unreadable_store_fails(docs: Path, db_path: Path) -> None:
    db_path.write_text("not a database", encoding="utf-8")
    result = _sync(docs, db_path, "--dry-run")
    assert result.exit_code == 1
    assert "Database error" in result.output
    assert db_path.read_text(encoding="utf-8") == "not a database"
