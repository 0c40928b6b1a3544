"""Theme extraction: per-chunk catalog search aggregated into ranked tags.

Each chunk vector is matched against the theme catalog independently; the
per-chunk hits are then merged by theme code so a document surfaces each
theme at most once, with the chunk that produced the best evidence.

Aggregation policies
--------------------
``max``  (default)
    A theme's score is its highest similarity across chunks.  When two
    chunks tie, the earlier chunk is kept as the source.
``mean``
    A theme's score is the mean of its similarities over the chunks in
    which it cleared the threshold; the source chunk is still the one with
    the highest individual similarity.

Results are sorted by descending score (theme code breaks ties), capped at
``max_themes`` and ranked 1..K.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import structlog

from dreamembed.interfaces.theme_catalog_provider import IThemeCatalogProvider
from dreamembed.models.theme import DocumentTheme, ThemeMatch
from dreamembed.utils.concurrency import call_with_timeout, throttled_gather
from dreamembed.utils.errors import ThemeCatalogError

logger = structlog.get_logger(logger_name=__name__)

_AGGREGATIONS = ("max", "mean")


@dataclass
class _ThemeEvidence:
    code: str
    label: str
    best_similarity: float
    best_chunk: int
    similarities: list[float] = field(default_factory=list)

    def score(self, aggregation: str) -> float:
        if aggregation == "mean":
            return sum(self.similarities) / len(self.similarities)
        return self.best_similarity


class ThemeExtractor:
    """Turns chunk vectors into a ranked, deduplicated list of document themes."""

    def __init__(
        self,
        catalog: IThemeCatalogProvider,
        min_similarity: float = 0.6,
        max_themes: int = 5,
        aggregation: str = "max",
        search_timeout_seconds: float | None = 10.0,
        max_concurrent_searches: int = 4,
    ) -> None:
        if aggregation not in _AGGREGATIONS:
            raise ValueError(f"aggregation must be one of {_AGGREGATIONS}, got {aggregation!r}")
        if not 0.0 <= min_similarity <= 1.0:
            raise ValueError("min_similarity must lie in [0, 1]")
        if max_themes < 1:
            raise ValueError("max_themes must be >= 1")
        self._catalog = catalog
        self._min_similarity = min_similarity
        self._max_themes = max_themes
        self._aggregation = aggregation
        self._search_timeout = search_timeout_seconds
        self._semaphore = asyncio.Semaphore(max_concurrent_searches)

    async def extract(self, document_id: str, chunk_vectors: list[list[float]]) -> list[DocumentTheme]:
        """Return the document's top themes across all *chunk_vectors*.

        Raises
        ------
        ThemeCatalogError
            If any chunk's catalog search fails or times out; partial
            results are discarded so the job retries as a whole.
        """
        if not chunk_vectors:
            return []

        results = await throttled_gather(
            [self._search(vector) for vector in chunk_vectors],
            semaphore=self._semaphore,
        )
        for result in results:
            if isinstance(result, BaseException):
                if isinstance(result, ThemeCatalogError):
                    raise result
                raise ThemeCatalogError(
                    message=f"Theme search failed: {result}",
                    provider_name=self._catalog.get_provider_name(),
                ) from result

        themes = self.aggregate(document_id, results)  # type: ignore[arg-type]
        logger.debug(
            "themes_extracted",
            document_id=document_id,
            chunks=len(chunk_vectors),
            themes=[t.theme_code for t in themes],
        )
        return themes

    def aggregate(self, document_id: str, per_chunk: list[list[ThemeMatch]]) -> list[DocumentTheme]:
        """Merge per-chunk matches (index = chunk index) into ranked themes."""
        evidence: dict[str, _ThemeEvidence] = {}
        for chunk_index, matches in enumerate(per_chunk):
            for match in matches:
                # The catalog applies the threshold too; re-check so a
                # lenient catalog can never leak low-confidence tags.
                if match.similarity < self._min_similarity:
                    continue
                current = evidence.get(match.code)
                if current is None:
                    evidence[match.code] = _ThemeEvidence(
                        code=match.code,
                        label=match.label,
                        best_similarity=match.similarity,
                        best_chunk=chunk_index,
                        similarities=[match.similarity],
                    )
                    continue
                current.similarities.append(match.similarity)
                # Strictly greater: on a tie the earlier chunk stays the source.
                if match.similarity > current.best_similarity:
                    current.best_similarity = match.similarity
                    current.best_chunk = chunk_index

        ranked = sorted(
            evidence.values(),
            key=lambda e: (-e.score(self._aggregation), e.code),
        )[: self._max_themes]

        total_chunks = len(per_chunk)
        return [
            DocumentTheme(
                document_id=document_id,
                theme_code=e.code,
                label=e.label,
                rank=rank,
                similarity=min(1.0, max(0.0, e.score(self._aggregation))),
                chunk_index=e.best_chunk,
                explanation=self._explain(e, total_chunks),
            )
            for rank, e in enumerate(ranked, start=1)
        ]

    async def _search(self, vector: list[float]) -> list[ThemeMatch]:
        return await call_with_timeout(
            self._catalog.search_similar(vector, self._min_similarity, self._max_themes),
            self._search_timeout,
            on_timeout=lambda: ThemeCatalogError(
                message=f"Theme search timed out after {self._search_timeout}s",
                provider_name=self._catalog.get_provider_name(),
            ),
        )

    def _explain(self, evidence: _ThemeEvidence, total_chunks: int) -> str:
        text = (
            f"Matched '{evidence.label}' with similarity {evidence.best_similarity:.3f} "
            f"in chunk {evidence.best_chunk + 1} of {total_chunks}"
        )
        if len(evidence.similarities) > 1:
            text += f"; also matched in {len(evidence.similarities) - 1} other chunk(s)"
        return text
