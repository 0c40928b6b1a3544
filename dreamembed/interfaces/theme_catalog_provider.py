"""Abstract base class for the theme catalog.

The catalog is a fixed set of ``(code, label, precomputed embedding)``
entries plus a nearest-neighbour search over them.  The embedding worker
only ever reads from it; writes happen through the backfill tooling.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from dreamembed.models.theme import Theme, ThemeMatch


# Concrete implementation: SQLiteThemeCatalog (dreamembed/providers/theme_catalog/)
class IThemeCatalogProvider(ABC):
    """Contract for theme catalog storage and similarity search."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables if they don't exist.  Called at startup."""

    @abstractmethod
    async def search_similar(
        self,
        vector: list[float],
        min_similarity: float,
        max_results: int,
    ) -> list[ThemeMatch]:
        """Return catalog themes closest to *vector* by cosine similarity.

        Parameters
        ----------
        vector:
            Query embedding; must have the catalog's dimension.
        min_similarity:
            Matches strictly below this similarity are dropped.
        max_results:
            Upper bound on the number of matches returned.

        Returns
        -------
        list[ThemeMatch]
            Ordered by descending similarity; every similarity in [0, 1].

        Raises
        ------
        dreamembed.utils.errors.ThemeCatalogError
            If the search cannot be performed (dimension mismatch, storage error).
        """

    @abstractmethod
    async def list_themes(self) -> list[Theme]:
        """Return every catalog entry, ordered by code."""

    @abstractmethod
    async def upsert_theme(self, theme: Theme) -> None:
        """Insert or update a theme's label/description (and embedding when given)."""

    @abstractmethod
    async def set_theme_embedding(self, code: str, embedding: list[float]) -> bool:
        """Store the precomputed embedding for *code*.  Returns ``False`` if unknown."""

    @abstractmethod
    async def themes_missing_embeddings(self) -> list[Theme]:
        """Return themes whose embedding has not been backfilled yet."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
