"""Per-job orchestration: load text, chunk, embed, extract themes.

# ─── PIPELINE FOR ONE CLAIMED JOB ────────────────────────────────────
#
#   document text ──→ TextChunker ──→ embed each chunk ──→ ThemeExtractor
#         │                 │                │                    │
#    missing: fail     below floor:     any chunk fails:     search fails:
#   (not retryable)      skipped      abort, retry job     abort, retry job
#
# The service only *computes*.  Its result is held in memory and committed
# by the worker in one store transaction, so a failure anywhere leaves no
# partial chunk embeddings or theme associations behind.  A document tagged
# with a language outside the allowed set is skipped before chunking.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import time

import structlog

from dreamembed.interfaces.embedding_provider import IEmbeddingProvider
from dreamembed.interfaces.job_store_provider import IJobStoreProvider
from dreamembed.models.embedding import ChunkEmbedding, TextChunk
from dreamembed.models.job import Job
from dreamembed.models.result import DocumentEmbeddingResult, ProcessingOutcome
from dreamembed.services.chunker import TextChunker
from dreamembed.services.theme_extractor import ThemeExtractor
from dreamembed.utils.concurrency import call_with_timeout
from dreamembed.utils.errors import DocumentValidationError, EmbeddingError

logger = structlog.get_logger(logger_name=__name__)


class EmbeddingService:
    """Computes chunk embeddings and ranked themes for one document.

    Parameters
    ----------
    store:
        Source of the document text (read-only here).
    embedding_provider:
        Embedder used for every chunk.
    theme_extractor:
        Catalog matcher applied to the chunk vectors.
    chunker:
        Splits the narration before embedding.
    embedding_version:
        Tag written with every chunk embedding; defaults to the provider's
        model version.
    embed_timeout_seconds:
        Per-chunk embedder call timeout; ``None`` or ``0`` disables it.
    allowed_languages:
        Language-code prefixes that are embedded (``"en"`` admits ``en-GB``
        and ``eng``).  Documents tagged with any other language are skipped;
        untagged documents and an empty list admit everything.
    """

    def __init__(
        self,
        store: IJobStoreProvider,
        embedding_provider: IEmbeddingProvider,
        theme_extractor: ThemeExtractor,
        chunker: TextChunker,
        embedding_version: str | None = None,
        embed_timeout_seconds: float | None = 30.0,
        allowed_languages: list[str] | tuple[str, ...] = ("en",),
    ) -> None:
        self._store = store
        self._embedder = embedding_provider
        self._theme_extractor = theme_extractor
        self._chunker = chunker
        self._embedding_version = embedding_version or embedding_provider.get_model_version()
        self._embed_timeout = embed_timeout_seconds
        self._allowed_languages = tuple(
            code.strip().lower() for code in allowed_languages if code.strip()
        )

    @property
    def embedding_version(self) -> str:
        return self._embedding_version

    async def process(self, job: Job) -> DocumentEmbeddingResult:
        """Compute the full embedding result for *job*'s document.

        Raises
        ------
        DocumentValidationError
            The document no longer exists or has no captured text.
        EmbeddingError
            Any chunk failed to embed, timed out, or came back with the
            wrong dimension.
        ThemeCatalogError
            Theme search failed.
        """
        started = time.perf_counter()
        document = await self._store.get_document(job.document_id)
        if document is None:
            raise DocumentValidationError(f"Document {job.document_id} not found")
        if document.raw_text is None:
            raise DocumentValidationError(f"Document {job.document_id} has no text to embed")

        if not self._language_allowed(document.language):
            logger.info(
                "document_language_skipped", document_id=job.document_id, language=document.language
            )
            return DocumentEmbeddingResult(
                document_id=job.document_id,
                outcome=ProcessingOutcome.SKIPPED,
                processing_time_ms=_elapsed_ms(started),
                skip_reason=f"Non-English language: {document.language}",
            )

        chunks = self._chunker.chunk(document.raw_text)
        if not chunks:
            reason = (
                f"Text too short to embed ({self._chunker.estimate_tokens(document.raw_text.strip())} "
                f"estimated tokens)"
            )
            logger.info("document_below_floor", document_id=job.document_id)
            return DocumentEmbeddingResult(
                document_id=job.document_id,
                outcome=ProcessingOutcome.SKIPPED,
                processing_time_ms=_elapsed_ms(started),
                skip_reason=reason,
            )

        chunk_embeddings = [await self._embed_chunk(job.document_id, chunk) for chunk in chunks]

        themes = await self._theme_extractor.extract(
            job.document_id, [ce.embedding for ce in chunk_embeddings]
        )

        return DocumentEmbeddingResult(
            document_id=job.document_id,
            outcome=ProcessingOutcome.COMPLETED,
            chunk_embeddings=chunk_embeddings,
            themes=themes,
            processing_time_ms=_elapsed_ms(started),
        )

    def _language_allowed(self, language: str | None) -> bool:
        if not language or not self._allowed_languages:
            return True
        return language.strip().lower().startswith(self._allowed_languages)

    async def _embed_chunk(self, document_id: str, chunk: TextChunk) -> ChunkEmbedding:
        provider = self._embedder.get_provider_name()
        chunk_started = time.perf_counter()
        vector = await call_with_timeout(
            self._embedder.embed_single(chunk.text),
            self._embed_timeout,
            on_timeout=lambda: EmbeddingError(
                message=f"Embedding chunk {chunk.index} timed out after {self._embed_timeout}s",
                provider_name=provider,
            ),
        )

        expected = self._embedder.get_dimension()
        if len(vector) != expected:
            raise EmbeddingError(
                message=(
                    f"Chunk {chunk.index} embedding has dimension {len(vector)}, "
                    f"expected {expected}"
                ),
                provider_name=provider,
            )

        return ChunkEmbedding(
            document_id=document_id,
            chunk_index=chunk.index,
            chunk_text=chunk.text,
            token_count=chunk.token_count,
            embedding=vector,
            embedding_version=self._embedding_version,
            processing_time_ms=_elapsed_ms(chunk_started),
            metadata=chunk.to_metadata(),
        )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
