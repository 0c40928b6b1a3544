"""SQLite-backed theme catalog with in-process cosine similarity search.

Theme vectors live as JSON arrays in the ``themes`` table next to the job
store's tables.  The catalog is small (tens to low hundreds of entries), so
search loads every backfilled vector into a normalised ``numpy`` matrix and
scores a query with a single matrix-vector product.

The matrix is cached per catalog instance in a ``cachetools.TTLCache`` and
dropped on every write, so concurrent workers read a shared, immutable
snapshot without locking.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import structlog
from cachetools import TTLCache

from dreamembed.interfaces.theme_catalog_provider import IThemeCatalogProvider
from dreamembed.models.theme import Theme, ThemeMatch
from dreamembed.providers.store.connection import open_connection
from dreamembed.providers.store.schema import CREATE_THEMES_TABLE
from dreamembed.utils.clock import to_iso, utc_now
from dreamembed.utils.errors import PersistenceError, ThemeCatalogError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/dreamembed.db")
_MATRIX_KEY = "theme_matrix"

_SELECT_THEMES = """\
SELECT code, label, description, embedding FROM themes ORDER BY code ASC;
"""

_SELECT_EMBEDDED_THEMES = """\
SELECT code, label, embedding FROM themes WHERE embedding IS NOT NULL ORDER BY code ASC;
"""

_SELECT_MISSING_EMBEDDINGS = """\
SELECT code, label, description, embedding FROM themes WHERE embedding IS NULL ORDER BY code ASC;
"""

_UPSERT_THEME = """\
INSERT INTO themes (code, label, description, embedding, updated_at)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT(code)
DO UPDATE SET label       = excluded.label,
              description = excluded.description,
              embedding   = COALESCE(excluded.embedding, themes.embedding),
              updated_at  = excluded.updated_at;
"""

_UPDATE_EMBEDDING = "UPDATE themes SET embedding = ?, updated_at = ? WHERE code = ?;"


@dataclass(frozen=True)
class _ThemeMatrix:
    codes: list[str]
    labels: list[str]
    vectors: np.ndarray  # shape (n_themes, dim), rows L2-normalised


class SQLiteThemeCatalog(IThemeCatalogProvider):
    """Theme catalog stored in SQLite, searched with numpy.

    Parameters
    ----------
    db_path:
        SQLite file; normally the same file as the job store so that
        ``document_themes.theme_code`` can reference ``themes.code``.
    cache_ttl_seconds:
        How long a loaded theme matrix is reused before re-reading the table.
    """

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH, cache_ttl_seconds: int = 300) -> None:
        self._db_path = Path(db_path)
        self._cache: TTLCache[str, _ThemeMatrix] = TTLCache(maxsize=1, ttl=cache_ttl_seconds)

    def _connect(self):
        return open_connection(self._db_path, self.get_provider_name())

    async def initialize(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            await db.execute(CREATE_THEMES_TABLE)
        logger.info("theme_catalog_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_theme_catalog"

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_similar(
        self,
        vector: list[float],
        min_similarity: float,
        max_results: int,
    ) -> list[ThemeMatch]:
        if max_results <= 0:
            return []
        try:
            matrix = await self._load_matrix()
        except PersistenceError as exc:
            raise ThemeCatalogError(
                message=f"Cannot load theme catalog: {exc.message}",
                provider_name=self.get_provider_name(),
            ) from exc
        if not matrix.codes:
            return []

        query = np.asarray(vector, dtype=np.float64)
        if query.ndim != 1 or query.shape[0] != matrix.vectors.shape[1]:
            raise ThemeCatalogError(
                message=(
                    f"Query dimension {query.shape[0] if query.ndim == 1 else query.shape} "
                    f"does not match catalog dimension {matrix.vectors.shape[1]}"
                ),
                provider_name=self.get_provider_name(),
            )
        norm = np.linalg.norm(query)
        if norm == 0.0:
            return []

        # Cosine similarity lies in [-1, 1]; anti-correlated themes count as 0.
        similarities = np.clip(matrix.vectors @ (query / norm), 0.0, 1.0)

        # Stable sort on rows already ordered by code: ties resolve by code.
        order = np.argsort(-similarities, kind="stable")
        matches: list[ThemeMatch] = []
        for i in order:
            score = float(similarities[i])
            if score < min_similarity:
                break
            matches.append(ThemeMatch(code=matrix.codes[i], label=matrix.labels[i], similarity=score))
            if len(matches) >= max_results:
                break
        return matches

    async def _load_matrix(self) -> _ThemeMatrix:
        cached = self._cache.get(_MATRIX_KEY)
        if cached is not None:
            return cached

        async with self._connect() as db:
            cursor = await db.execute(_SELECT_EMBEDDED_THEMES)
            rows = await cursor.fetchall()

        codes = [r["code"] for r in rows]
        labels = [r["label"] for r in rows]
        vectors = [json.loads(r["embedding"]) for r in rows]

        if not vectors:
            matrix = _ThemeMatrix(codes=[], labels=[], vectors=np.zeros((0, 0)))
        else:
            dims = {len(v) for v in vectors}
            if len(dims) != 1:
                raise ThemeCatalogError(
                    message=f"Theme embeddings have mixed dimensions: {sorted(dims)}",
                    provider_name=self.get_provider_name(),
                )
            array = np.asarray(vectors, dtype=np.float64)
            norms = np.linalg.norm(array, axis=1, keepdims=True)
            norms[norms == 0.0] = 1.0
            matrix = _ThemeMatrix(codes=codes, labels=labels, vectors=array / norms)

        self._cache[_MATRIX_KEY] = matrix
        logger.debug("theme_matrix_loaded", themes=len(codes))
        return matrix

    def invalidate_cache(self) -> None:
        self._cache.pop(_MATRIX_KEY, None)

    # ------------------------------------------------------------------
    # Catalog maintenance
    # ------------------------------------------------------------------

    async def list_themes(self) -> list[Theme]:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_THEMES)
            rows = await cursor.fetchall()
        return [self._row_to_theme(r) for r in rows]

    async def themes_missing_embeddings(self) -> list[Theme]:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_MISSING_EMBEDDINGS)
            rows = await cursor.fetchall()
        return [self._row_to_theme(r) for r in rows]

    async def upsert_theme(self, theme: Theme) -> None:
        embedding = json.dumps(theme.embedding) if theme.embedding is not None else None
        async with self._connect() as db:
            await db.execute(
                _UPSERT_THEME,
                (theme.code, theme.label, theme.description, embedding, to_iso(utc_now())),
            )
        self.invalidate_cache()

    async def set_theme_embedding(self, code: str, embedding: list[float]) -> bool:
        if not embedding:
            raise ValueError("embedding must be a non-empty vector")
        async with self._connect() as db:
            cursor = await db.execute(
                _UPDATE_EMBEDDING, (json.dumps(embedding), to_iso(utc_now()), code)
            )
            updated = cursor.rowcount > 0
        self.invalidate_cache()
        return updated

    @staticmethod
    def _row_to_theme(row) -> Theme:
        return Theme(
            code=row["code"],
            label=row["label"],
            description=row["description"],
            embedding=json.loads(row["embedding"]) if row["embedding"] else None,
        )
