"""Local translation file adapter."""

from __future__ import annotations

from .catalog_files import LocalCatalogStore, flatten, unflatten

__all__ = ["LocalCatalogStore", "flatten", "unflatten"]
