"""Unit tests for embedding provider adapters — OpenAI, Nomic."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from dreamembed.config.settings import Settings
from dreamembed.utils.errors import (
    EmbeddingError,
    InvalidInputError,
    ProviderUnavailableError,
    RateLimitError,
)


def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_embedding_model": "",
        "ollama_base_url": "http://localhost:11434",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _client_returning(*vectors: list[float]) -> AsyncMock:
    response = MagicMock()
    response.data = [MagicMock(embedding=v) for v in vectors]
    response.usage = MagicMock(total_tokens=12)
    client = AsyncMock()
    client.embeddings.create = AsyncMock(return_value=response)
    return client


def _client_raising(exc: Exception) -> AsyncMock:
    client = AsyncMock()
    client.embeddings.create = AsyncMock(side_effect=exc)
    return client


_REQUEST = httpx.Request("POST", "https://api.example.test/v1/embeddings")


def _status_error(cls, status: int):
    return cls(message=f"HTTP {status}", response=httpx.Response(status, request=_REQUEST), body=None)


# ======================================================================
# OpenAI Embedding Provider
# ======================================================================


class TestOpenAIEmbeddingProvider:
    def test_defaults(self) -> None:
        from dreamembed.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        provider = OpenAIEmbeddingProvider(_settings(), client=_client_returning())
        assert provider.get_provider_name() == "openai_embedding"
        assert provider.get_model_version() == "text-embedding-3-small"
        assert provider.get_dimension() == 1536
        assert provider.is_available() is True

    def test_compatible_endpoint_with_bge_m3(self) -> None:
        from dreamembed.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        provider = OpenAIEmbeddingProvider(
            _settings(openai_base_url="https://api.together.xyz/v1", openai_embedding_model="BAAI/bge-m3"),
            client=_client_returning(),
        )
        assert provider.get_provider_name() == "openai-compatible_embedding"
        assert provider.get_dimension() == 1024
        assert provider.get_model_version() == "BAAI/bge-m3"

    def test_not_available_without_key(self) -> None:
        from dreamembed.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        provider = OpenAIEmbeddingProvider(_settings(openai_api_key=""), client=_client_returning())
        assert provider.is_available() is False

    @pytest.mark.asyncio
    async def test_embed_success(self) -> None:
        from dreamembed.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        client = _client_returning([0.1, 0.2], [0.3, 0.4])
        provider = OpenAIEmbeddingProvider(_settings(), client=client)

        result = await provider.embed(["falling", "flying"])

        assert result == [[0.1, 0.2], [0.3, 0.4]]
        client.embeddings.create.assert_awaited_once_with(
            input=["falling", "flying"], model="text-embedding-3-small"
        )

    @pytest.mark.asyncio
    async def test_embed_empty_list_skips_api(self) -> None:
        from dreamembed.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        client = _client_returning()
        provider = OpenAIEmbeddingProvider(_settings(), client=client)
        assert await provider.embed([]) == []
        client.embeddings.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_embed_single(self) -> None:
        from dreamembed.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        provider = OpenAIEmbeddingProvider(_settings(), client=_client_returning([0.5, 0.5]))
        assert await provider.embed_single("a dream") == [0.5, 0.5]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("raised", "expected", "retryable"),
        [
            (_status_error(openai.RateLimitError, 429), RateLimitError, True),
            (_status_error(openai.BadRequestError, 400), InvalidInputError, False),
            (_status_error(openai.InternalServerError, 500), EmbeddingError, True),
            (openai.APIConnectionError(request=_REQUEST), ProviderUnavailableError, True),
        ],
    )
    async def test_error_mapping(self, raised, expected, retryable) -> None:
        from dreamembed.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        provider = OpenAIEmbeddingProvider(_settings(), client=_client_raising(raised))

        with pytest.raises(expected) as exc_info:
            await provider.embed(["text"])
        assert exc_info.value.retryable is retryable
        assert exc_info.value.provider_name == "openai_embedding"


# ======================================================================
# Nomic Embedding Provider
# ======================================================================


class TestNomicEmbeddingProvider:
    def test_identity(self) -> None:
        from dreamembed.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider

        provider = NomicEmbeddingProvider(_settings(), client=_client_returning())
        assert provider.get_provider_name() == "nomic_embedding"
        assert provider.get_dimension() == 768
        assert provider.get_model_version() == "nomic-embed-text-v1.5"

    @pytest.mark.asyncio
    async def test_embed_success(self) -> None:
        from dreamembed.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider

        client = _client_returning([0.1] * 768)
        provider = NomicEmbeddingProvider(_settings(), client=client)

        result = await provider.embed(["a dream about water"])

        assert len(result) == 1
        assert len(result[0]) == 768
        assert client.embeddings.create.call_args.kwargs["model"] == "nomic-embed-text"

    @pytest.mark.asyncio
    async def test_unreachable_server(self) -> None:
        from dreamembed.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider

        provider = NomicEmbeddingProvider(
            _settings(), client=_client_raising(openai.APIConnectionError(request=_REQUEST))
        )
        with pytest.raises(ProviderUnavailableError, match="unreachable"):
            await provider.embed(["text"])

    @pytest.mark.parametrize(
        ("status", "payload", "expected"),
        [
            (200, {"models": [{"name": "nomic-embed-text:latest"}, {"name": "llama3:8b"}]}, True),
            (200, {"models": [{"name": "llama3:8b"}]}, False),
            (200, {}, True),
            (503, {}, False),
        ],
    )
    def test_is_available_checks_pulled_models(self, status, payload, expected) -> None:
        from dreamembed.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider

        response = MagicMock(status_code=status)
        response.json.return_value = payload
        provider = NomicEmbeddingProvider(_settings(), client=_client_returning())
        with patch(
            "dreamembed.providers.embedding.nomic_embedding_provider.httpx.get",
            return_value=response,
        ):
            assert provider.is_available() is expected

    @pytest.mark.asyncio
    async def test_short_response_is_an_embedding_error(self) -> None:
        from dreamembed.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider

        provider = NomicEmbeddingProvider(_settings(), client=_client_returning([0.1] * 768))
        with pytest.raises(EmbeddingError, match="returned 1 vectors for 2 inputs"):
            await provider.embed(["one", "two"])

    def test_is_unavailable_on_connect_error(self) -> None:
        from dreamembed.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider

        provider = NomicEmbeddingProvider(_settings(), client=_client_returning())
        with patch(
            "dreamembed.providers.embedding.nomic_embedding_provider.httpx.get",
            side_effect=httpx.ConnectError("refused"),
        ):
            assert provider.is_available() is False
