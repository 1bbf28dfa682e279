"""Tests for EmbeddingClient."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from docsync.config import EmbeddingCfg
from docsync.ingest.embedding_client import (
    EmbeddingClient,
    EmbeddingError,
    normalize_section_text,
)

_PATCH = "docsync.ingest.embedding_client.litellm.embedding"


def _client(dimensions: int = 3, api_key: str | None = "sk-test") -> EmbeddingClient:
    return EmbeddingClient(
        EmbeddingCfg(model="openai/text-embedding-ada-002", dimensions=dimensions),
        api_key=api_key,
    )


def _response(vector: list[float] | None = None, total_tokens: int | None = None):
    vector = vector if vector is not None else [0.1, 0.2, 0.3]
    usage = SimpleNamespace(total_tokens=total_tokens, prompt_tokens=None)
    return SimpleNamespace(data=[{"embedding": vector}], usage=usage)


# ------------------------------------------------------------------
# normalize_section_text
# ------------------------------------------------------------------


def test_normalize_replaces_newlines_with_spaces():
    assert normalize_section_text("# A\nline one\r\nline two\rend") == "# A line one line two end"


def test_normalize_leaves_single_line_untouched():
    assert normalize_section_text("plain text") == "plain text"


# ------------------------------------------------------------------
# embed
# ------------------------------------------------------------------


def test_embed_returns_vector_and_tokens():
    with patch(_PATCH, return_value=_response(total_tokens=7)):
        result = _client().embed("# Title\nBody")
    assert result.vector == [0.1, 0.2, 0.3]
    assert result.token_count == 7


def test_embed_sends_normalized_text_and_model():
    with patch(_PATCH, return_value=_response()) as mock_embed:
        _client().embed("# Title\nBody")
    kwargs = mock_embed.call_args.kwargs
    assert kwargs["input"] == ["# Title Body"]
    assert kwargs["model"] == "openai/text-embedding-ada-002"
    assert kwargs["api_key"] == "sk-test"
    assert kwargs["num_retries"] == 0


def test_embed_omits_api_key_when_none():
    with patch(_PATCH, return_value=_response()) as mock_embed:
        _client(api_key=None).embed("text")
    assert "api_key" not in mock_embed.call_args.kwargs


def test_embed_estimates_tokens_without_usage():
    with patch(_PATCH, return_value=_response(total_tokens=None)):
        result = _client().embed("a" * 40)
    assert result.token_count == 10


def test_embed_token_estimate_minimum_one():
    with patch(_PATCH, return_value=_response()):
        assert _client().embed("hi").token_count == 1


def test_embed_with_magicmock_response_falls_back_to_estimate():
    mock_response = MagicMock()
    mock_response.data = [{"embedding": [0.0, 0.0, 1.0]}]
    with patch(_PATCH, return_value=mock_response):
        assert _client().embed("a" * 8).token_count == 2


def test_embed_provider_error_wrapped():
    with patch(_PATCH, side_effect=RuntimeError("rate limited")):
        with pytest.raises(EmbeddingError, match="rate limited"):
            _client().embed("text")


def test_embed_empty_data_raises():
    with patch(_PATCH, return_value=SimpleNamespace(data=[], usage=None)):
        with pytest.raises(EmbeddingError, match="no data"):
            _client().embed("text")


def test_embed_dimension_mismatch_raises():
    with patch(_PATCH, return_value=_response(vector=[0.1, 0.2])):
        with pytest.raises(EmbeddingError, match="Expected 3-dimensional"):
            _client().embed("text")


def test_client_defaults_to_ada_1536():
    client = EmbeddingClient()
    assert client.model == "openai/text-embedding-ada-002"
    assert client.dimensions == 1536
