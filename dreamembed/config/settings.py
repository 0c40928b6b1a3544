"""Application settings loaded from environment variables via pydantic-settings.

Configuration is read from, in priority order:

  1. **Environment variables** -- e.g. ``CONCURRENCY_LIMIT=4``
  2. **.env file** -- key=value lines in the working directory
  3. Field defaults below

Field name ``poll_interval_seconds`` maps to env var ``POLL_INTERVAL_SECONDS``.
YAML defaults from ``config/config.yaml`` are layered underneath the
environment by :func:`dreamembed.config.loader.load_settings`.
"""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """dreamembed worker settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Storage ===
    database_path: str = "data/dreamembed.db"

    # === Embedding provider ===
    # "auto" tries OpenAI (when a key is set) and then Nomic via Ollama.
    embedding_provider: Literal["auto", "openai", "nomic"] = "auto"
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoints (TogetherAI, etc.)
    openai_embedding_model: str = ""
    ollama_base_url: str = "http://localhost:11434"
    # Stored alongside every chunk vector; empty = provider's model tag.
    embedding_version: str = ""

    # === Worker pool ===
    poll_interval_seconds: float = Field(default=5.0, gt=0)
    concurrency_limit: int = Field(default=2, ge=1)
    job_max_attempts: int = Field(default=3, ge=1)
    retry_backoff_base_seconds: float = Field(default=60.0, ge=0)
    retry_backoff_max_seconds: float = Field(default=3600.0, ge=0)
    embed_timeout_seconds: float = Field(default=30.0, ge=0)
    theme_search_timeout_seconds: float = Field(default=10.0, ge=0)

    # === Reaper ===
    reaper_interval_seconds: float = Field(default=300.0, gt=0)
    stale_job_timeout_seconds: float = Field(default=1800.0, gt=0)

    # === Chunking ===
    min_tokens_to_embed: int = Field(default=10, ge=0)
    max_tokens_per_chunk: int = Field(default=1000, ge=1)
    target_chunk_tokens: int = Field(default=750, ge=1)
    chunk_overlap_tokens: int = Field(default=100, ge=0)
    chunk_boundary_tolerance_tokens: int = Field(default=50, ge=0)
    chars_per_token: int = Field(default=4, ge=1)

    # === Themes ===
    theme_similarity_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    max_themes_per_document: int = Field(default=5, ge=1)
    theme_aggregation: Literal["max", "mean"] = "max"
    theme_cache_ttl_seconds: int = Field(default=300, ge=1)

    # === Language filter ===
    # Code prefixes that are embedded; other tagged languages are skipped.
    # Env form is JSON, e.g. ALLOWED_LANGUAGES='["en", "es"]'.  Empty = all.
    allowed_languages: list[str] = Field(default_factory=lambda: ["en"])

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_chunk_budget(self) -> "Settings":
        if self.target_chunk_tokens > self.max_tokens_per_chunk:
            raise ValueError("target_chunk_tokens must not exceed max_tokens_per_chunk")
        if self.chunk_overlap_tokens + self.chunk_boundary_tolerance_tokens >= self.target_chunk_tokens:
            raise ValueError(
                "chunk_overlap_tokens + chunk_boundary_tolerance_tokens must be "
                "smaller than target_chunk_tokens"
            )
        return self

    def get_available_embedding_providers(self) -> list[str]:
        """Return embedding provider names in the order they will be tried."""
        if self.embedding_provider != "auto":
            return [self.embedding_provider]
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("nomic")
        return providers
