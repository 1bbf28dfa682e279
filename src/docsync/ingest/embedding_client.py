"""Embedding client: section-text normalization and LiteLLM embeddings.

No retry or backoff happens here: a failed call raises EmbeddingError so the
sync engine leaves the document marked for retry on the next run.
"""

from __future__ import annotations

from dataclasses import dataclass

import litellm

from docsync.config import EmbeddingCfg

litellm.suppress_debug_info = True


class EmbeddingError(RuntimeError):
    """Raised when the provider rejects a request or returns an unusable result."""


@dataclass(frozen=True)
class Embedding:
    vector: list[float]
    token_count: int


def normalize_section_text(text: str) -> str:
    """Replace every line break with a single space before embedding."""
    return text.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")


class EmbeddingClient:
    """Embed section text through ``litellm.embedding()``.

    Args:
        config: Embedding model + expected vector dimensions.
        api_key: Provider credential; None lets LiteLLM read its own env vars
            (or use a local provider that needs none).
    """

    def __init__(self, config: EmbeddingCfg | None = None, api_key: str | None = None) -> None:
        self._config = config or EmbeddingCfg()
        self._api_key = api_key

    @property
    def model(self) -> str:
        return self._config.model

    @property
    def dimensions(self) -> int:
        return self._config.dimensions

    def embed(self, text: str) -> Embedding:
        """Return the embedding and token usage for *text* (normalized first).

        Raises:
            EmbeddingError: If the provider call fails, returns no data, or
                returns a vector of the wrong dimension.
        """
        normalized = normalize_section_text(text)
        kwargs: dict = {"model": self._config.model, "input": [normalized], "num_retries": 0}
        if self._api_key:
            kwargs["api_key"] = self._api_key
        try:
            response = litellm.embedding(**kwargs)
        except Exception as exc:
            raise EmbeddingError(f"Embedding request failed ({self._config.model}): {exc}") from exc

        if not response.data:
            raise EmbeddingError(f"Embedding response from {self._config.model} contained no data")
        vector = list(response.data[0]["embedding"])
        if len(vector) != self._config.dimensions:
            raise EmbeddingError(
                f"Expected {self._config.dimensions}-dimensional embedding from "
                f"{self._config.model}, got {len(vector)}"
            )
        return Embedding(vector=vector, token_count=_token_count(response, normalized))


def _token_count(response: object, text: str) -> int:
    """Token usage reported by the provider; 4-chars-per-token estimate otherwise."""
    usage = getattr(response, "usage", None)
    for attr in ("total_tokens", "prompt_tokens"):
        value = getattr(usage, attr, None) if usage is not None else None
        if isinstance(value, int) and value > 0:
            return value
    return max(1, len(text) // 4)
