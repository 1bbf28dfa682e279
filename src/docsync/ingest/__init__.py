"""docsync ingest helpers: the embedding client."""

from docsync.ingest.embedding_client import (
    Embedding,
    EmbeddingClient,
    EmbeddingError,
    normalize_section_text,
)

__all__ = ["Embedding", "EmbeddingClient", "EmbeddingError", "normalize_section_text"]
