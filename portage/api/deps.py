"""FastAPI dependency injection utilities."""

from functools import lru_cache

from portage.catalog.loader import Catalog, get_default_catalog
from portage.core.config import settings
from portage.db.session import AsyncSessionLocal
from portage.services.storage import ChildrenStore, JsonFileChildrenStore, SqlChildrenStore


@lru_cache
def get_children_store() -> ChildrenStore:
    """Store selected by ``settings.storage_backend``."""
    if settings.storage_backend == "file":
        return JsonFileChildrenStore(settings.data_file)
    return SqlChildrenStore(AsyncSessionLocal)


def get_catalog() -> Catalog:
    """The question catalog reports are computed against."""
    return get_default_catalog()
