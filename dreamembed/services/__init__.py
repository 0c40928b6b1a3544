"""Domain services for the embedding pipeline.

Services hold the pipeline's logic and depend only on the interfaces in
:mod:`dreamembed.interfaces`, never on concrete providers.
"""

from dreamembed.services.chunker import TextChunker
from dreamembed.services.embedding_service import EmbeddingService
from dreamembed.services.theme_extractor import ThemeExtractor
from dreamembed.services.theme_seeder import ThemeSeeder, load_themes_yaml

__all__ = [
    "EmbeddingService",
    "TextChunker",
    "ThemeExtractor",
    "ThemeSeeder",
    "load_themes_yaml",
]
