"""Theme catalog seeding and embedding backfill.

Catalog entries are declared in YAML (``config/themes.yaml``) as a list of
``code`` / ``label`` / ``description`` mappings.  Seeding upserts them;
backfilling embeds ``"<label>. <description>"`` for every theme whose vector
is still null, using the same embedding provider the worker uses so themes
and chunks share one vector space.
"""

from __future__ import annotations

from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from dreamembed.interfaces.embedding_provider import IEmbeddingProvider
from dreamembed.interfaces.theme_catalog_provider import IThemeCatalogProvider
from dreamembed.models.theme import Theme
from dreamembed.utils.errors import ConfigurationError, EmbeddingError

logger = structlog.get_logger(logger_name=__name__)


def load_themes_yaml(path: str | Path) -> list[Theme]:
    """Parse a theme list from *path*.

    Raises
    ------
    ConfigurationError
        If the file is missing, malformed, or an entry fails validation.
    """
    theme_path = Path(path)
    if not theme_path.exists():
        raise ConfigurationError(f"Theme file not found: {theme_path}")
    try:
        with open(theme_path) as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Cannot parse {theme_path}: {exc}") from exc

    entries = raw.get("themes", []) if isinstance(raw, dict) else raw
    if not isinstance(entries, list):
        raise ConfigurationError(f"{theme_path} must contain a list under 'themes'")

    themes: list[Theme] = []
    seen: set[str] = set()
    for entry in entries:
        try:
            theme = Theme(**entry)
        except (TypeError, ValidationError) as exc:
            raise ConfigurationError(f"Invalid theme entry {entry!r}: {exc}") from exc
        if theme.code in seen:
            raise ConfigurationError(f"Duplicate theme code {theme.code!r} in {theme_path}")
        seen.add(theme.code)
        themes.append(theme)
    return themes


class ThemeSeeder:
    """Upserts catalog entries and backfills their embeddings."""

    def __init__(
        self,
        catalog: IThemeCatalogProvider,
        embedding_provider: IEmbeddingProvider,
        batch_size: int = 32,
    ) -> None:
        self._catalog = catalog
        self._embedder = embedding_provider
        self._batch_size = max(1, batch_size)

    async def seed(self, themes: list[Theme]) -> int:
        """Upsert *themes*; existing embeddings are preserved.  Returns the count."""
        for theme in themes:
            await self._catalog.upsert_theme(theme)
        logger.info("themes_seeded", count=len(themes))
        return len(themes)

    async def backfill_embeddings(self) -> int:
        """Embed every theme that has no vector yet.  Returns how many were filled."""
        missing = await self._catalog.themes_missing_embeddings()
        if not missing:
            logger.info("theme_backfill_nothing_to_do")
            return 0

        expected = self._embedder.get_dimension()
        filled = 0
        for start in range(0, len(missing), self._batch_size):
            batch = missing[start : start + self._batch_size]
            vectors = await self._embedder.embed([t.embedding_text() for t in batch])
            if len(vectors) != len(batch):
                raise EmbeddingError(
                    message=f"Expected {len(batch)} theme vectors, got {len(vectors)}",
                    provider_name=self._embedder.get_provider_name(),
                )
            for theme, vector in zip(batch, vectors):
                if len(vector) != expected:
                    raise EmbeddingError(
                        message=(
                            f"Theme {theme.code} embedding has dimension {len(vector)}, "
                            f"expected {expected}"
                        ),
                        provider_name=self._embedder.get_provider_name(),
                    )
                if await self._catalog.set_theme_embedding(theme.code, vector):
                    filled += 1

        logger.info(
            "theme_embeddings_backfilled",
            count=filled,
            provider=self._embedder.get_provider_name(),
        )
        return filled

    async def seed_from_file(self, path: str | Path, backfill: bool = True) -> tuple[int, int]:
        """Seed from YAML and optionally backfill.  Returns ``(seeded, embedded)``."""
        seeded = await self.seed(load_themes_yaml(path))
        embedded = await self.backfill_embeddings() if backfill else 0
        return seeded, embedded
