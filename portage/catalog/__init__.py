"""Portage question catalog."""

from portage.catalog.loader import (
    ALL_AGES,
    Catalog,
    CatalogError,
    CatalogLoader,
    get_default_catalog,
    load_catalog,
)

__all__ = [
    "ALL_AGES",
    "Catalog",
    "CatalogError",
    "CatalogLoader",
    "get_default_catalog",
    "load_catalog",
]
