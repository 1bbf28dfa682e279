"""docsync configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (DOCSYNC_DOCS_ROOT, DOCSYNC_DATABASE_URL,
     DOCSYNC_EMBEDDING_MODEL, DOCSYNC_REFRESH_ALL)
  3. Per-project docsync.yaml  (current working directory)
  4. Global ~/.docsync/config.yaml
  5. Hardcoded defaults

Config files must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_PATH: Path = Path.home() / ".docsync" / "config.yaml"
_PROJECT_CONFIG_NAME: str = "docsync.yaml"

# Key names that look like credentials. Does NOT match token_budget, max_tokens.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(["docs", "database", "embedding", "sync"])

_TRUTHY: frozenset[str] = frozenset(["1", "true", "yes", "on"])

API_KEY_ENV = "DOCSYNC_EMBEDDING_API_KEY"

# Provider → conventional env var. None means no key is required.
_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "ollama": None,
}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class DocsCfg:
    """Docs tree configuration (docsync.yaml: docs:)."""

    root: str | None = None
    exclude: list[str] = field(default_factory=lambda: ["404.mdx"])
    extensions: list[str] = field(default_factory=lambda: [".md", ".mdx"])


@dataclass
class DatabaseCfg:
    """Target store (docsync.yaml: database:). ``sqlite:///`` URL or file path."""

    url: str = ".docsync.db"


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (docsync.yaml: embedding:)."""

    model: str = "openai/text-embedding-ada-002"
    dimensions: int = 1536


@dataclass
class SyncCfg:
    """Run behaviour (docsync.yaml: sync:)."""

    refresh_all: bool = False


@dataclass
class DocsyncConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    docs: DocsCfg = field(default_factory=DocsCfg)
    database: DatabaseCfg = field(default_factory=DatabaseCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    sync: SyncCfg = field(default_factory=SyncCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else str(k)
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {API_KEY_ENV}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config '{path}' is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config '{path}' must be a mapping at the top level.")
    return data


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _as_str_list(value: Any, key: str) -> list[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list of strings.")
    return [str(v) for v in value]


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> DocsyncConfig:
    """Build a *DocsyncConfig* from a merged raw YAML dict."""
    cfg = DocsyncConfig()

    if "docs" in data:
        d = data["docs"] or {}
        cfg.docs = DocsCfg(
            root=d.get("root", cfg.docs.root),
            exclude=_as_str_list(d.get("exclude", cfg.docs.exclude), "docs.exclude"),
            extensions=_as_str_list(
                d.get("extensions", cfg.docs.extensions), "docs.extensions"
            ),
        )

    if "database" in data:
        db = data["database"] or {}
        cfg.database = DatabaseCfg(url=str(db.get("url", cfg.database.url)))

    if "embedding" in data:
        e = data["embedding"] or {}
        try:
            dimensions = int(e.get("dimensions", cfg.embedding.dimensions))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"embedding.dimensions must be an integer: {exc}") from exc
        if dimensions < 1:
            raise ConfigError(f"embedding.dimensions must be >= 1, got {dimensions}")
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=dimensions,
        )

    if "sync" in data:
        s = data["sync"] or {}
        cfg.sync = SyncCfg(refresh_all=_as_bool(s.get("refresh_all", cfg.sync.refresh_all)))

    return cfg


def _apply_env_overrides(cfg: DocsyncConfig) -> DocsyncConfig:
    """Apply DOCSYNC_* environment variable overrides."""
    if root := os.environ.get("DOCSYNC_DOCS_ROOT"):
        cfg.docs.root = root
    if url := os.environ.get("DOCSYNC_DATABASE_URL"):
        cfg.database.url = url
    if model := os.environ.get("DOCSYNC_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if (refresh := os.environ.get("DOCSYNC_REFRESH_ALL")) is not None:
        cfg.sync.refresh_all = _as_bool(refresh)
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> DocsyncConfig:
    """Load and return a merged *DocsyncConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *docsync.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If a config file contains API-key-like fields or invalid values.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    for path in (global_path, search_dir / _PROJECT_CONFIG_NAME):
        if path.exists():
            raw = _read_yaml(path)
            _check_no_api_keys(raw, path)
            _warn_unknown_keys(raw, path)
            merged = _deep_merge(merged, raw)

    return _apply_env_overrides(_cfg_from_dict(merged))


def resolve_api_key(model: str) -> str | None:
    """Return the embedding provider API key for *model* from the environment.

    ``DOCSYNC_EMBEDDING_API_KEY`` wins; otherwise the provider's conventional
    variable is used (``openai/...`` → ``OPENAI_API_KEY``). Models without a
    provider prefix are treated as OpenAI.

    Raises:
        EnvironmentError: If the provider needs a key and none is set.
    """
    if key := os.environ.get(API_KEY_ENV):
        return key
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    if provider in _PROVIDER_ENV and _PROVIDER_ENV[provider] is None:
        return None
    env_var = _PROVIDER_ENV.get(provider) or f"{provider.upper()}_API_KEY"
    if key := os.environ.get(env_var):
        return key
    raise EnvironmentError(
        f"API key not found for provider '{provider}'. "
        f"Set {API_KEY_ENV} or the {env_var} environment variable."
    )
