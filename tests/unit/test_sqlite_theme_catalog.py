"""Unit tests for SQLiteThemeCatalog — upserts, backfill and cosine search."""

from __future__ import annotations

import pytest

from dreamembed.models.theme import Theme
from dreamembed.providers.theme_catalog.sqlite_theme_catalog import SQLiteThemeCatalog
from dreamembed.utils.errors import ThemeCatalogError


@pytest.fixture
async def empty_catalog(db_path) -> SQLiteThemeCatalog:
    c = SQLiteThemeCatalog(db_path=db_path)
    await c.initialize()
    return c


# ─── Search ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_search_returns_matches_above_threshold(catalog, query_vector):
    matches = await catalog.search_similar(query_vector, min_similarity=0.6, max_results=5)

    assert [m.code for m in matches] == ["falling", "anxiety"]
    assert matches[0].similarity == pytest.approx(0.82)
    assert matches[1].similarity == pytest.approx(0.71)
    assert matches[0].label == "Falling"


@pytest.mark.asyncio
async def test_search_respects_max_results(catalog, query_vector):
    matches = await catalog.search_similar(query_vector, min_similarity=0.0, max_results=1)
    assert [m.code for m in matches] == ["falling"]
    assert await catalog.search_similar(query_vector, 0.0, 0) == []


@pytest.mark.asyncio
async def test_search_is_scale_invariant(catalog):
    matches = await catalog.search_similar([5.0, 0.0, 0.0, 0.0], 0.6, 5)
    assert matches[0].similarity == pytest.approx(0.82)


@pytest.mark.asyncio
async def test_anti_correlated_themes_score_zero(catalog):
    matches = await catalog.search_similar([-1.0, 0.0, 0.0, 0.0], 0.0, 5)
    assert all(m.similarity == 0.0 for m in matches)
    # Equal scores fall back to code order.
    assert [m.code for m in matches] == ["anxiety", "falling", "fear"]


@pytest.mark.asyncio
async def test_zero_query_vector_matches_nothing(catalog):
    assert await catalog.search_similar([0.0, 0.0, 0.0, 0.0], 0.0, 5) == []


@pytest.mark.asyncio
async def test_dimension_mismatch_raises(catalog):
    with pytest.raises(ThemeCatalogError, match="dimension"):
        await catalog.search_similar([1.0, 0.0], 0.6, 5)


@pytest.mark.asyncio
async def test_empty_catalog_matches_nothing(empty_catalog):
    assert await empty_catalog.search_similar([1.0, 0.0], 0.0, 5) == []


@pytest.mark.asyncio
async def test_themes_without_embeddings_are_not_searched(empty_catalog):
    await empty_catalog.upsert_theme(Theme(code="water", label="Water"))
    assert await empty_catalog.search_similar([1.0, 0.0], 0.0, 5) == []


@pytest.mark.asyncio
async def test_mixed_dimensions_raise(empty_catalog):
    await empty_catalog.upsert_theme(Theme(code="a", label="A", embedding=[1.0, 0.0]))
    await empty_catalog.upsert_theme(Theme(code="b", label="B", embedding=[1.0, 0.0, 0.0]))
    with pytest.raises(ThemeCatalogError, match="mixed dimensions"):
        await empty_catalog.search_similar([1.0, 0.0], 0.0, 5)


# ─── Maintenance ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_themes_ordered_by_code(catalog):
    themes = await catalog.list_themes()
    assert [t.code for t in themes] == ["anxiety", "falling", "fear"]
    assert themes[0].embedding is not None


@pytest.mark.asyncio
async def test_upsert_preserves_existing_embedding(catalog):
    await catalog.upsert_theme(Theme(code="falling", label="Falling Down", description="new text"))

    falling = next(t for t in await catalog.list_themes() if t.code == "falling")
    assert falling.label == "Falling Down"
    assert falling.description == "new text"
    assert falling.embedding is not None


@pytest.mark.asyncio
async def test_backfill_flow(empty_catalog):
    await empty_catalog.upsert_theme(Theme(code="water", label="Water"))
    await empty_catalog.upsert_theme(Theme(code="flying", label="Flying"))

    missing = await empty_catalog.themes_missing_embeddings()
    assert [t.code for t in missing] == ["flying", "water"]

    assert await empty_catalog.set_theme_embedding("water", [0.0, 1.0]) is True
    assert await empty_catalog.set_theme_embedding("unknown", [0.0, 1.0]) is False
    assert [t.code for t in await empty_catalog.themes_missing_embeddings()] == ["flying"]


@pytest.mark.asyncio
async def test_writes_invalidate_cached_matrix(empty_catalog):
    await empty_catalog.upsert_theme(Theme(code="water", label="Water", embedding=[1.0, 0.0]))
    assert [m.code for m in await empty_catalog.search_similar([0.0, 1.0], 0.5, 5)] == []

    await empty_catalog.set_theme_embedding("water", [0.0, 1.0])

    assert [m.code for m in await empty_catalog.search_similar([0.0, 1.0], 0.5, 5)] == ["water"]


@pytest.mark.asyncio
async def test_empty_embedding_rejected(empty_catalog):
    with pytest.raises(ValueError):
        await empty_catalog.set_theme_embedding("water", [])
