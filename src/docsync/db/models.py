"""Domain models for the docsync database layer."""

from __future__ import annotations

import json
from dataclasses import dataclass, field


@dataclass
class Document:
    id: str
    path: str
    version_stamp: str
    last_refreshed_at: str
    parent_path: str | None = None
    parent_document_id: str | None = None
    checksum: str | None = None  # None while sections are being regenerated
    metadata: str = field(default_factory=lambda: "{}")

    @property
    def metadata_dict(self) -> dict:
        return json.loads(self.metadata)

    @property
    def is_complete(self) -> bool:
        return self.checksum is not None


@dataclass
class Section:
    id: str
    document_id: str
    content: str
    embedding: list[float]
    token_count: int
    heading: str | None = None
    slug: str | None = None
