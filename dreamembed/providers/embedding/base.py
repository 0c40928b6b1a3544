"""Shared plumbing for embedding providers that speak the OpenAI embeddings API.

Both the hosted OpenAI / OpenAI-compatible provider and the local Ollama
(nomic) provider send the same ``embeddings.create`` request through an
``openai.AsyncOpenAI`` client; only the endpoint, model and dimension differ.
This base owns request batching, response validation and the translation of
``openai`` exceptions into the pipeline's retryable/non-retryable hierarchy.
"""

from __future__ import annotations

import openai
import structlog

from dreamembed.interfaces.embedding_provider import IEmbeddingProvider
from dreamembed.utils.errors import (
    DreamEmbedError,
    EmbeddingError,
    InvalidInputError,
    ProviderUnavailableError,
    RateLimitError,
)

logger = structlog.get_logger(logger_name=__name__)


class OpenAIClientEmbeddingProvider(IEmbeddingProvider):
    """Base for providers backed by an ``openai.AsyncOpenAI`` client.

    Subclasses set the client, model, dimension and provider name in their
    constructor and may override :attr:`batch_limit` and :meth:`_endpoint`.
    """

    batch_limit: int = 2048

    def __init__(
        self,
        client: openai.AsyncOpenAI,
        model: str,
        dimension: int,
        provider_name: str,
    ) -> None:
        self._client = client
        self._model = model
        self._dimension = dimension
        self._provider_name = provider_name

    def _endpoint(self) -> str:
        """Human-readable endpoint for error messages."""
        return self._provider_name

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        vectors: list[list[float]] = []
        for start in range(0, len(texts), self.batch_limit):
            batch = texts[start : start + self.batch_limit]
            try:
                response = await self._client.embeddings.create(input=batch, model=self._model)
            except openai.APIError as exc:
                raise self._translate(exc) from exc

            if len(response.data) != len(batch):
                raise EmbeddingError(
                    message=(
                        f"{self._endpoint()} returned {len(response.data)} vectors "
                        f"for {len(batch)} inputs"
                    ),
                    provider_name=self._provider_name,
                )
            vectors.extend(item.embedding for item in response.data)
            logger.debug(
                "embedding_batch",
                provider=self._provider_name,
                model=self._model,
                batch_size=len(batch),
                tokens=getattr(response.usage, "total_tokens", None),
            )
        return vectors

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_name

    def get_model_version(self) -> str:
        return self._model

    def _translate(self, exc: openai.APIError) -> DreamEmbedError:
        # Order matters: RateLimitError and BadRequestError are APIStatusError
        # subclasses, and APITimeoutError is an APIConnectionError.
        endpoint = self._endpoint()
        if isinstance(exc, openai.RateLimitError):
            return RateLimitError(f"{endpoint} rate limit exceeded: {exc}", self._provider_name)
        if isinstance(exc, openai.BadRequestError):
            return InvalidInputError(f"{endpoint} rejected input: {exc}", self._provider_name)
        if isinstance(exc, openai.APITimeoutError):
            return EmbeddingError(f"{endpoint} timed out: {exc}", self._provider_name)
        if isinstance(exc, openai.APIConnectionError):
            return ProviderUnavailableError(f"{endpoint} unreachable: {exc}", self._provider_name)
        return EmbeddingError(f"{endpoint} API error: {exc}", self._provider_name)
