"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.  The model
itself is opaque to the pipeline: text in, fixed-length vector out.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations (dreamembed/providers/embedding/):
#   OpenAIEmbeddingProvider -- text-embedding-3-small or any OpenAI-compatible API
#   NomicEmbeddingProvider  -- nomic-embed-text via Ollama (local)
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the embedding worker.

    Implementations raise :class:`~dreamembed.utils.errors.EmbeddingError`
    (or its :class:`RateLimitError` subclass) for transient failures and
    :class:`~dreamembed.utils.errors.InvalidInputError` when the input
    itself is rejected.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  Each
            inner list has length equal to :meth:`get_dimension`.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Must stay constant for the lifetime of the provider and match the
        dimension of the theme catalog's precomputed vectors.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def get_model_version(self) -> str:
        """Return the version tag stored with every chunk embedding.

        Part of the chunk-embedding uniqueness key: switching models writes
        new rows next to the old ones instead of overwriting them.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and reachable."""
