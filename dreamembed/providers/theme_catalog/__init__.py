"""Theme catalog implementations."""

from dreamembed.providers.theme_catalog.sqlite_theme_catalog import SQLiteThemeCatalog

__all__ = ["SQLiteThemeCatalog"]
