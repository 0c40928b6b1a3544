"""Local embedding provider: ``nomic-embed-text`` served by Ollama.

Needs no API key, only a running Ollama with the model pulled
(``ollama pull nomic-embed-text``).  Requests go through Ollama's
OpenAI-compatible ``/v1`` endpoint; availability is probed on the native
``/api/tags`` endpoint.
"""

from __future__ import annotations

import httpx
import openai

from dreamembed.config.settings import Settings
from dreamembed.providers.embedding.base import OpenAIClientEmbeddingProvider

_MODEL = "nomic-embed-text"
_MODEL_VERSION = "nomic-embed-text-v1.5"
_DIMENSION = 768
_PROBE_TIMEOUT_SECONDS = 3.0


class NomicEmbeddingProvider(OpenAIClientEmbeddingProvider):
    """768-dimension embeddings from a local Ollama server."""

    batch_limit = 512

    def __init__(self, settings: Settings, client: openai.AsyncOpenAI | None = None) -> None:
        self._base_url = settings.ollama_base_url.rstrip("/")
        super().__init__(
            client=client or openai.AsyncOpenAI(base_url=f"{self._base_url}/v1", api_key="ollama"),
            model=_MODEL,
            dimension=_DIMENSION,
            provider_name="nomic_embedding",
        )

    def _endpoint(self) -> str:
        return f"Ollama server at {self._base_url}"

    def get_model_version(self) -> str:
        # Stored with every chunk; the Ollama tag alone does not pin a release.
        return _MODEL_VERSION

    def is_available(self) -> bool:
        """Return ``True`` if Ollama answers and has the model pulled.

        A server that does not list its models is given the benefit of the
        doubt; the first embed call will fail loudly if the model is missing.
        """
        if not self._base_url:
            return False
        try:
            response = httpx.get(f"{self._base_url}/api/tags", timeout=_PROBE_TIMEOUT_SECONDS)
        except (httpx.ConnectError, httpx.TimeoutException):
            return False
        if response.status_code != 200:
            return False
        try:
            models = response.json().get("models", [])
        except ValueError:
            return True
        return any(str(m.get("name", "")).startswith(_MODEL) for m in models) if models else True
