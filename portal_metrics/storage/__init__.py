"""
Data storage layer.

Operational samples, operator-configured baselines and the cached ROI rows
live behind the ``StorageBackend`` contract. DuckDB is the default backend;
SQLite is available through ``DB_TYPE=sqlite``.
"""

from functools import lru_cache

from portal_metrics.config import get_settings

from .base import RawAggregateFetchError, StorageBackend, StorageError
from .duckdb_storage import DuckDBStorage
from .sqlite_storage import SQLiteStorage


@lru_cache
def get_storage() -> StorageBackend:
    """
    Get cached storage backend instance (singleton).

    Returns:
        StorageBackend implementation selected by ``settings.db_type``
    """
    settings = get_settings()
    if settings.db_type == "sqlite":
        return SQLiteStorage(db_path=settings.sqlite_path)
    return DuckDBStorage(db_path=settings.db_path)


__all__ = [
    "DuckDBStorage",
    "RawAggregateFetchError",
    "SQLiteStorage",
    "StorageBackend",
    "StorageError",
    "get_storage",
]
