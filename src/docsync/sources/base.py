"""Source descriptors and parsed-content records shared by enumerator and loader."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

SourceKind = Literal["markdown"]


class SourceLoadError(RuntimeError):
    """Raised when a source cannot be read or parsed."""


@dataclass(frozen=True)
class SourceDescriptor:
    """One discoverable content file.

    Attributes:
        kind: Loader tag; new source formats add a tag, not a subclass.
        path: Normalized logical path (root-relative, extension stripped).
        parent_path: Logical path of the nearest enclosing index document.
        file_path: Location of the file on disk.
    """

    kind: SourceKind
    path: str
    file_path: Path
    parent_path: str | None = None


@dataclass(frozen=True)
class ParsedSection:
    content: str
    heading: str | None = None
    slug: str | None = None


@dataclass(frozen=True)
class ParsedContent:
    """Result of loading a source: content fingerprint, metadata and ordered sections."""

    checksum: str
    metadata: dict[str, Any] = field(default_factory=dict)
    sections: list[ParsedSection] = field(default_factory=list)
