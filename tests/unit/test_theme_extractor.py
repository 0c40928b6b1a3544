"""Unit tests for ThemeExtractor — per-chunk search, aggregation and ranking."""

from __future__ import annotations

import asyncio

import pytest

from dreamembed.interfaces.theme_catalog_provider import IThemeCatalogProvider
from dreamembed.models.theme import Theme, ThemeMatch
from dreamembed.services.theme_extractor import ThemeExtractor
from dreamembed.utils.errors import PersistenceError, ThemeCatalogError


class _StubCatalog(IThemeCatalogProvider):
    """Returns canned matches keyed by the first component of the query vector."""

    def __init__(self, responses: dict[float, list[ThemeMatch]], error: Exception | None = None,
                 delay: float = 0.0) -> None:
        self._responses = responses
        self._error = error
        self._delay = delay
        self.queries: list[tuple[list[float], float, int]] = []

    async def initialize(self) -> None:
        pass

    async def search_similar(self, vector, min_similarity, max_results):
        self.queries.append((vector, min_similarity, max_results))
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return list(self._responses.get(vector[0], []))

    async def list_themes(self) -> list[Theme]:
        return []

    async def upsert_theme(self, theme: Theme) -> None:
        pass

    async def set_theme_embedding(self, code, embedding) -> bool:
        return False

    async def themes_missing_embeddings(self) -> list[Theme]:
        return []

    def get_provider_name(self) -> str:
        return "stub_catalog"


def _m(code: str, similarity: float) -> ThemeMatch:
    return ThemeMatch(code=code, label=code.replace("_", " ").title(), similarity=similarity)


# ======================================================================
# extract()
# ======================================================================


class TestExtract:
    @pytest.mark.asyncio
    async def test_single_chunk_ranked_by_similarity(self) -> None:
        catalog = _StubCatalog({0.0: [_m("falling", 0.82), _m("anxiety", 0.71)]})
        extractor = ThemeExtractor(catalog)

        themes = await extractor.extract("doc-1", [[0.0, 1.0]])

        assert [(t.theme_code, t.rank) for t in themes] == [("falling", 1), ("anxiety", 2)]
        assert themes[0].similarity == pytest.approx(0.82)
        assert themes[0].document_id == "doc-1"
        assert themes[0].chunk_index == 0
        assert themes[0].label == "Falling"

    @pytest.mark.asyncio
    async def test_passes_threshold_and_cap_to_catalog(self) -> None:
        catalog = _StubCatalog({})
        extractor = ThemeExtractor(catalog, min_similarity=0.65, max_themes=3)

        await extractor.extract("doc-1", [[0.0], [1.0]])

        assert [(q[1], q[2]) for q in catalog.queries] == [(0.65, 3), (0.65, 3)]

    @pytest.mark.asyncio
    async def test_no_vectors_no_search(self) -> None:
        catalog = _StubCatalog({})
        assert await ThemeExtractor(catalog).extract("doc-1", []) == []
        assert catalog.queries == []

    @pytest.mark.asyncio
    async def test_catalog_error_propagates(self) -> None:
        catalog = _StubCatalog({}, error=ThemeCatalogError("dimension mismatch"))
        with pytest.raises(ThemeCatalogError, match="dimension mismatch"):
            await ThemeExtractor(catalog).extract("doc-1", [[0.0]])

    @pytest.mark.asyncio
    async def test_other_errors_become_catalog_errors(self) -> None:
        catalog = _StubCatalog({}, error=PersistenceError("disk I/O error"))
        with pytest.raises(ThemeCatalogError) as exc_info:
            await ThemeExtractor(catalog).extract("doc-1", [[0.0], [1.0]])
        assert exc_info.value.provider_name == "stub_catalog"
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_search_timeout(self) -> None:
        catalog = _StubCatalog({}, delay=0.5)
        extractor = ThemeExtractor(catalog, search_timeout_seconds=0.01)
        with pytest.raises(ThemeCatalogError, match="timed out"):
            await extractor.extract("doc-1", [[0.0]])


# ======================================================================
# aggregate()
# ======================================================================


class TestAggregate:
    def test_threshold_is_inclusive(self) -> None:
        extractor = ThemeExtractor(_StubCatalog({}), min_similarity=0.6)
        themes = extractor.aggregate("d", [[_m("a", 0.6), _m("b", 0.5999)]])
        assert [t.theme_code for t in themes] == ["a"]

    def test_caps_at_max_themes(self) -> None:
        extractor = ThemeExtractor(_StubCatalog({}), max_themes=5)
        matches = [_m(f"t{i}", 0.9 - i * 0.01) for i in range(8)]
        themes = extractor.aggregate("d", [matches])

        assert len(themes) == 5
        assert [t.rank for t in themes] == [1, 2, 3, 4, 5]
        assert [t.theme_code for t in themes] == ["t0", "t1", "t2", "t3", "t4"]

    def test_each_theme_appears_once_with_best_chunk(self) -> None:
        extractor = ThemeExtractor(_StubCatalog({}))
        themes = extractor.aggregate(
            "d",
            [
                [_m("falling", 0.70)],
                [_m("falling", 0.90), _m("flying", 0.65)],
                [_m("falling", 0.75)],
            ],
        )

        assert [t.theme_code for t in themes] == ["falling", "flying"]
        falling = themes[0]
        assert falling.similarity == pytest.approx(0.90)
        assert falling.chunk_index == 1
        assert falling.explanation == (
            "Matched 'Falling' with similarity 0.900 in chunk 2 of 3; "
            "also matched in 2 other chunk(s)"
        )
        assert themes[1].explanation == "Matched 'Flying' with similarity 0.650 in chunk 2 of 3"

    def test_tie_keeps_earlier_chunk(self) -> None:
        extractor = ThemeExtractor(_StubCatalog({}))
        themes = extractor.aggregate("d", [[_m("water", 0.8)], [_m("water", 0.8)]])
        assert themes[0].chunk_index == 0

    def test_equal_scores_order_by_code(self) -> None:
        extractor = ThemeExtractor(_StubCatalog({}))
        themes = extractor.aggregate("d", [[_m("zombies", 0.7), _m("anxiety", 0.7), _m("house", 0.7)]])
        assert [t.theme_code for t in themes] == ["anxiety", "house", "zombies"]

    def test_mean_aggregation(self) -> None:
        extractor = ThemeExtractor(_StubCatalog({}), aggregation="mean")
        themes = extractor.aggregate(
            "d",
            [
                [_m("falling", 0.875), _m("water", 0.75)],
                [_m("falling", 0.625), _m("water", 0.75)],
            ],
        )

        # falling: mean 0.75, water: mean 0.75 -> tie broken by code
        assert [t.theme_code for t in themes] == ["falling", "water"]
        assert themes[0].similarity == pytest.approx(0.75)
        assert themes[0].chunk_index == 0

    def test_mean_can_reorder_against_max(self) -> None:
        per_chunk = [
            [_m("falling", 0.99), _m("water", 0.90)],
            [_m("water", 0.90)],
            [_m("falling", 0.61), _m("water", 0.90)],
        ]
        by_max = ThemeExtractor(_StubCatalog({}), aggregation="max").aggregate("d", per_chunk)
        by_mean = ThemeExtractor(_StubCatalog({}), aggregation="mean").aggregate("d", per_chunk)

        assert by_max[0].theme_code == "falling"
        assert by_mean[0].theme_code == "water"

    def test_empty_evidence(self) -> None:
        extractor = ThemeExtractor(_StubCatalog({}))
        assert extractor.aggregate("d", [[], []]) == []


class TestValidation:
    def test_unknown_aggregation(self) -> None:
        with pytest.raises(ValueError, match="aggregation"):
            ThemeExtractor(_StubCatalog({}), aggregation="median")

    def test_threshold_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            ThemeExtractor(_StubCatalog({}), min_similarity=1.5)

    def test_max_themes_positive(self) -> None:
        with pytest.raises(ValueError):
            ThemeExtractor(_StubCatalog({}), max_themes=0)
