"""
Stores package for benchsync.

Re-exports the adapter interfaces and the concrete adapters so downstream code
can import from `benchsync.stores` directly.
"""

from benchsync.stores.abstract import AbstractStoreAdapter, StoreAdapter
from benchsync.stores.document import MongoStoreAdapter
from benchsync.stores.relational import PostgresStoreAdapter

__all__ = [
    # Abstracts
    "AbstractStoreAdapter",
    "StoreAdapter",
    # Concrete adapters
    "MongoStoreAdapter",
    "PostgresStoreAdapter",
]
