"""Theme catalog entries and document-theme associations."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Theme(BaseModel):
    """A catalog tag.  ``embedding`` stays null until the catalog is backfilled."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(min_length=1)
    label: str = Field(min_length=1)
    description: str | None = None
    embedding: list[float] | None = None

    def embedding_text(self) -> str:
        """Text embedded to represent this theme in vector space."""
        if self.description:
            return f"{self.label}. {self.description}"
        return self.label


class ThemeMatch(BaseModel):
    """One catalog hit for a query vector."""

    model_config = ConfigDict(frozen=True)

    code: str
    label: str
    similarity: float = Field(ge=0.0, le=1.0)


class DocumentTheme(BaseModel):
    """A ranked theme association for a document (top-K per extraction run)."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    theme_code: str
    rank: int = Field(ge=1, description="1-based position in the ranked result set.")
    similarity: float = Field(ge=0.0, le=1.0)
    explanation: str | None = None
    chunk_index: int | None = Field(default=None, ge=0)
    label: str | None = None
    extracted_at: datetime | None = None
