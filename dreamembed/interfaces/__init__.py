"""Public interface definitions for all external collaborators.

Every external service the pipeline touches -- the embedder, the theme
catalog and the durable job store -- is accessed exclusively through the
abstract base classes defined here.  Concrete adapters live in
``dreamembed/providers/`` and are wired together in ``dreamembed/main.py``;
tests inject fakes through the same interfaces.

    Interface               →  Concrete implementations
    ─────────────────────────────────────────────────────
    IEmbeddingProvider      →  OpenAIEmbeddingProvider, NomicEmbeddingProvider
    IThemeCatalogProvider   →  SQLiteThemeCatalog
    IJobStoreProvider       →  SQLiteJobStore
"""

from dreamembed.interfaces.embedding_provider import IEmbeddingProvider
from dreamembed.interfaces.job_store_provider import IJobStoreProvider
from dreamembed.interfaces.theme_catalog_provider import IThemeCatalogProvider

__all__ = [
    "IEmbeddingProvider",
    "IJobStoreProvider",
    "IThemeCatalogProvider",
]
