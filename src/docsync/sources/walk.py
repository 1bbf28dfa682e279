"""Source enumeration: walk a docs tree and link files to their index documents.

A directory ``guides/`` has an index document when a sibling file
``guides.md`` / ``guides.mdx`` sits next to it. Every file beneath ``guides/``
gets that index as its parent, unless a deeper directory has its own index.
"""

from __future__ import annotations

import fnmatch
import warnings
from collections.abc import Iterable
from pathlib import Path

from docsync.sources.base import SourceDescriptor

DEFAULT_EXTENSIONS: tuple[str, ...] = (".md", ".mdx")


def logical_path(file_path: Path, root: Path) -> str:
    """Root-relative POSIX path with the extension stripped.

    Example:
        ``<root>/guides/setup.mdx`` -> ``guides/setup``
    """
    return file_path.relative_to(root).with_suffix("").as_posix()


def walk(
    root: Path | str,
    *,
    exclude: Iterable[str] = (),
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> list[SourceDescriptor]:
    """Return one descriptor per content file under *root*, sorted by file path.

    Sorting by root-relative file path puts ``guides.mdx`` before
    ``guides/setup.md`` (``.`` sorts before ``/``), so index documents always
    precede the documents that point at them. Dotfiles and dot-directories are
    ignored. When two files share a logical path (``a.md`` and ``a.mdx``) the
    first in sort order wins and the other is skipped with a warning.

    Args:
        root: Docs root directory.
        exclude: Glob patterns matched against file names and root-relative paths.
        extensions: File suffixes treated as content (case-insensitive).

    Raises:
        FileNotFoundError: If *root* does not exist.
        NotADirectoryError: If *root* is not a directory.
        PermissionError: If a directory under *root* cannot be listed.
    """
    root = Path(root)
    if not root.exists():
        raise FileNotFoundError(f"Docs root not found: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Docs root is not a directory: {root}")

    exts = tuple(e.lower() for e in extensions)
    patterns = list(exclude)
    found = _walk_dir(root, root, None, exts, patterns)
    found.sort(key=lambda d: d.file_path.relative_to(root).as_posix())

    seen: set[str] = set()
    result: list[SourceDescriptor] = []
    for descriptor in found:
        if descriptor.path in seen:
            warnings.warn(
                f"Skipping '{descriptor.file_path}': logical path '{descriptor.path}' "
                "is already provided by another file.",
                UserWarning,
                stacklevel=2,
            )
            continue
        seen.add(descriptor.path)
        result.append(descriptor)
    return result


def _walk_dir(
    directory: Path,
    root: Path,
    parent_path: str | None,
    exts: tuple[str, ...],
    patterns: list[str],
) -> list[SourceDescriptor]:
    entries = sorted(directory.iterdir())
    files = {e.name: e for e in entries if e.is_file()}
    found: list[SourceDescriptor] = []

    for entry in entries:
        if entry.name.startswith(".") or _is_excluded(entry, root, patterns):
            continue
        if entry.is_dir():
            index = _find_index(entry.name, files, exts)
            next_parent = logical_path(index, root) if index is not None else parent_path
            found.extend(_walk_dir(entry, root, next_parent, exts, patterns))
        elif entry.is_file() and entry.suffix.lower() in exts:
            found.append(
                SourceDescriptor(
                    kind="markdown",
                    path=logical_path(entry, root),
                    parent_path=parent_path,
                    file_path=entry,
                )
            )
    return found


def _find_index(dir_name: str, files: dict[str, Path], exts: tuple[str, ...]) -> Path | None:
    """Return the sibling index file ``<dir_name><ext>`` if one exists."""
    for name, path in files.items():
        stem, dot, suffix = name.rpartition(".")
        if dot and stem == dir_name and f".{suffix.lower()}" in exts:
            return path
    return None


def _is_excluded(entry: Path, root: Path, patterns: list[str]) -> bool:
    rel = entry.relative_to(root).as_posix()
    return any(
        fnmatch.fnmatch(entry.name, pat) or fnmatch.fnmatch(rel, pat) for pat in patterns
    )
