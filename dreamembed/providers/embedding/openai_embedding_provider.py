"""Hosted embedding provider: OpenAI or any OpenAI-compatible endpoint.

With only ``OPENAI_API_KEY`` set, narrations are embedded with
``text-embedding-3-small``.  Setting ``OPENAI_BASE_URL`` (and usually
``OPENAI_EMBEDDING_MODEL``) points the same client at a compatible host,
for example a bge-m3 deployment, which is how the 1024-dimension dream
vectors are produced in production.
"""

from __future__ import annotations

import openai

from dreamembed.config.settings import Settings
from dreamembed.providers.embedding.base import OpenAIClientEmbeddingProvider

_DEFAULT_MODEL = "text-embedding-3-small"
_FALLBACK_DIMENSION = 768

# Output sizes of the models we have run narrations and themes through.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "BAAI/bge-m3": 1024,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
    "intfloat/multilingual-e5-large-instruct": 1024,
}


class OpenAIEmbeddingProvider(OpenAIClientEmbeddingProvider):
    """Embeds through the OpenAI embeddings API or a compatible host.

    The provider name distinguishes the two (``openai_embedding`` vs
    ``openai-compatible_embedding``) so stored errors say which one failed.
    Unknown models are assumed to produce 768-dimension vectors; the
    embedding service rejects any vector that disagrees.
    """

    def __init__(self, settings: Settings, client: openai.AsyncOpenAI | None = None) -> None:
        self._api_key = settings.openai_api_key
        self._base_url = settings.openai_base_url

        if client is None:
            client_kwargs: dict = {"api_key": self._api_key or "unset"}
            if self._base_url:
                client_kwargs["base_url"] = self._base_url
            client = openai.AsyncOpenAI(**client_kwargs)

        model = settings.openai_embedding_model or _DEFAULT_MODEL
        super().__init__(
            client=client,
            model=model,
            dimension=_MODEL_DIMENSIONS.get(model, _FALLBACK_DIMENSION),
            provider_name="openai-compatible_embedding" if self._base_url else "openai_embedding",
        )

    def _endpoint(self) -> str:
        return self._base_url or "OpenAI"

    def is_available(self) -> bool:
        """An API key is all this provider needs; reachability is checked per call."""
        return bool(self._api_key)
