"""dreamembed worker entry point.

Wires together providers, services, the worker pool and the reaper via
plain constructor injection.  Loads configuration from ``.env`` and
``config/config.yaml`` and configures structured logging.

Also exposes the ``build_*`` factories the operator CLI uses for one-shot
commands that need only part of the stack (e.g. ``status`` never touches
the embedder).
"""

from __future__ import annotations

import asyncio
import signal
from dataclasses import dataclass

import structlog

from dreamembed.config.settings import Settings
from dreamembed.interfaces.embedding_provider import IEmbeddingProvider
from dreamembed.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from dreamembed.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from dreamembed.providers.store.sqlite_job_store import SQLiteJobStore
from dreamembed.providers.theme_catalog.sqlite_theme_catalog import SQLiteThemeCatalog
from dreamembed.services.chunker import TextChunker
from dreamembed.services.embedding_service import EmbeddingService
from dreamembed.services.theme_extractor import ThemeExtractor
from dreamembed.utils.errors import ConfigurationError
from dreamembed.utils.logging import get_logger
from dreamembed.worker.embedding_worker import EmbeddingWorker
from dreamembed.worker.reaper import StaleJobReaper

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """Select the embedding provider.

    With ``embedding_provider="auto"`` the priority is OpenAI /
    OpenAI-compatible (if an API key is set) then Nomic via Ollama (if
    reachable).

    Raises
    ------
    ConfigurationError
        If no provider is usable.  This is the only fatal startup error.
    """
    choice = app_settings.embedding_provider

    if choice == "openai":
        if not app_settings.openai_api_key:
            raise ConfigurationError(
                "EMBEDDING_PROVIDER=openai requires OPENAI_API_KEY",
                provider_name="openai_embedding",
            )
        return OpenAIEmbeddingProvider(settings=app_settings)

    if choice == "nomic":
        return NomicEmbeddingProvider(settings=app_settings)

    for name in app_settings.get_available_embedding_providers():
        provider: IEmbeddingProvider
        if name == "openai":
            provider = OpenAIEmbeddingProvider(settings=app_settings)
        else:
            provider = NomicEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            _logger.info("embedding_provider_selected", provider=provider.get_provider_name())
            return provider

    raise ConfigurationError(
        "No embedding provider available: set OPENAI_API_KEY or start Ollama "
        f"at {app_settings.ollama_base_url}"
    )


def build_store(app_settings: Settings) -> SQLiteJobStore:
    return SQLiteJobStore(
        db_path=app_settings.database_path,
        max_attempts=app_settings.job_max_attempts,
    )


def build_catalog(app_settings: Settings) -> SQLiteThemeCatalog:
    return SQLiteThemeCatalog(
        db_path=app_settings.database_path,
        cache_ttl_seconds=app_settings.theme_cache_ttl_seconds,
    )


def build_chunker(app_settings: Settings) -> TextChunker:
    return TextChunker(
        max_tokens_per_chunk=app_settings.max_tokens_per_chunk,
        target_chunk_tokens=app_settings.target_chunk_tokens,
        overlap_tokens=app_settings.chunk_overlap_tokens,
        min_tokens_to_chunk=app_settings.min_tokens_to_embed,
        boundary_tolerance_tokens=app_settings.chunk_boundary_tolerance_tokens,
        chars_per_token=app_settings.chars_per_token,
    )


# ---------------------------------------------------------------------------
# Full assembly
# ---------------------------------------------------------------------------


@dataclass
class Pipeline:
    """Every long-lived component of a running worker process."""

    settings: Settings
    store: SQLiteJobStore
    catalog: SQLiteThemeCatalog
    embedding_provider: IEmbeddingProvider
    service: EmbeddingService
    worker: EmbeddingWorker
    reaper: StaleJobReaper

    async def initialize(self) -> None:
        await self.store.initialize()
        await self.catalog.initialize()


def build_pipeline(
    app_settings: Settings,
    embedding_provider: IEmbeddingProvider | None = None,
    worker_id: str | None = None,
) -> Pipeline:
    """Assemble the worker stack; the embedder is selected unless injected."""
    embedder = embedding_provider or build_embedding_provider(app_settings)
    store = build_store(app_settings)
    catalog = build_catalog(app_settings)

    extractor = ThemeExtractor(
        catalog=catalog,
        min_similarity=app_settings.theme_similarity_threshold,
        max_themes=app_settings.max_themes_per_document,
        aggregation=app_settings.theme_aggregation,
        search_timeout_seconds=app_settings.theme_search_timeout_seconds,
    )
    service = EmbeddingService(
        store=store,
        embedding_provider=embedder,
        theme_extractor=extractor,
        chunker=build_chunker(app_settings),
        embedding_version=app_settings.embedding_version or None,
        embed_timeout_seconds=app_settings.embed_timeout_seconds,
        allowed_languages=app_settings.allowed_languages,
    )
    worker = EmbeddingWorker(
        store=store,
        service=service,
        concurrency_limit=app_settings.concurrency_limit,
        poll_interval_seconds=app_settings.poll_interval_seconds,
        retry_backoff_base_seconds=app_settings.retry_backoff_base_seconds,
        retry_backoff_max_seconds=app_settings.retry_backoff_max_seconds,
        worker_id=worker_id,
    )
    reaper = StaleJobReaper(
        store=store,
        stale_timeout_seconds=app_settings.stale_job_timeout_seconds,
        interval_seconds=app_settings.reaper_interval_seconds,
    )
    return Pipeline(
        settings=app_settings,
        store=store,
        catalog=catalog,
        embedding_provider=embedder,
        service=service,
        worker=worker,
        reaper=reaper,
    )


async def run_worker(pipeline: Pipeline) -> None:
    """Run the worker pool and the reaper until SIGINT/SIGTERM.

    In-flight jobs are allowed to finish; anything interrupted harder than
    that is recovered by the reaper of the next process.
    """
    await pipeline.initialize()

    def _shutdown(signame: str) -> None:
        _logger.info("shutdown_requested", signal=signame)
        pipeline.worker.stop()
        pipeline.reaper.stop()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _shutdown, sig.name)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops.
            pass

    _logger.info(
        "pipeline_starting",
        embedding_provider=pipeline.embedding_provider.get_provider_name(),
        embedding_version=pipeline.service.embedding_version,
        database_path=pipeline.settings.database_path,
    )
    await asyncio.gather(pipeline.worker.run(), pipeline.reaper.run())
