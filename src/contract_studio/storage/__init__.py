"""
Storage adapters for Contract Studio.

The SQL adapter is used when DATABASE_URL is set, otherwise the in-memory store.
"""

from functools import lru_cache

from contract_studio.config import Settings, get_settings
from contract_studio.storage.base import InMemoryStore, Store
from contract_studio.storage.sql import SQLStore


def build_store(settings: Settings) -> Store:
    """Create the store selected by configuration."""
    if settings.database_url:
        return SQLStore(settings.database_url, echo=settings.db_echo)
    return InMemoryStore()


@lru_cache()
def get_store() -> Store:
    """Get cached store instance."""
    return build_store(get_settings())


__all__ = [
    "InMemoryStore",
    "SQLStore",
    "Store",
    "build_store",
    "get_store",
]
