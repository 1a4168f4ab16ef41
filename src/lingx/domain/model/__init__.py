"""Domain model for translation catalogs and the branches that hold them."""

from __future__ import annotations

from .branch import DEFAULT_BRANCH_NAME, Branch, Project, Space, slugify
from .catalog import Catalog, CatalogEntry, Identity, NestedCatalog
from .keys import (
    NAMESPACE_DELIMITER,
    NamespacedKey,
    combine_key,
    from_user_key,
    parse_namespaced_key,
    parse_user_key,
    to_user_key,
)

__all__ = [
    "DEFAULT_BRANCH_NAME",
    "NAMESPACE_DELIMITER",
    "Branch",
    "Catalog",
    "CatalogEntry",
    "Identity",
    "NamespacedKey",
    "NestedCatalog",
    "Project",
    "Space",
    "combine_key",
    "from_user_key",
    "parse_namespaced_key",
    "parse_user_key",
    "slugify",
    "to_user_key",
]
