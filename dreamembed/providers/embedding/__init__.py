"""Embedding provider implementations.

Narration chunks and theme descriptions are embedded into the same space,
so theme matching is a cosine-similarity lookup.

Both providers share :class:`OpenAIClientEmbeddingProvider` and are listed
in the order ``auto`` selection tries them:
    1. OpenAIEmbeddingProvider -- text-embedding-3-small (1536 dims) or any
       OpenAI-compatible endpoint (e.g. a hosted bge-m3).
    2. NomicEmbeddingProvider  -- nomic-embed-text via Ollama (768 dims).
       Free and local, but requires a running Ollama server.
"""

from dreamembed.providers.embedding.base import OpenAIClientEmbeddingProvider
from dreamembed.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from dreamembed.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["NomicEmbeddingProvider", "OpenAIClientEmbeddingProvider", "OpenAIEmbeddingProvider"]
