"""
Error taxonomy for store adapters and the reconciler.

Adapters translate driver-specific exceptions (psycopg, pymongo) into these
types so the reconciler never has to know which backend it is talking to.
A missing record is not an error: lookups return ``None``.
"""

from __future__ import annotations

from typing import Optional


class BenchSyncError(Exception):
    """Base class for all benchsync errors."""


class StoreUnavailable(BenchSyncError):
    """A store could not be reached within its bounded attempt."""

    def __init__(self, store: str, message: str = "store unreachable") -> None:
        self.store = store
        self.message = message
        super().__init__(f"[{store}] {message}")


class StoreWriteError(BenchSyncError):
    """A single record's insert or update failed."""

    def __init__(
        self,
        store: str,
        correlation_id: Optional[str],
        message: str = "write failed",
    ) -> None:
        self.store = store
        self.correlation_id = correlation_id
        self.message = message
        super().__init__(f"[{store}] {correlation_id}: {message}")


class UnknownKindError(BenchSyncError, ValueError):
    """Raised when a configured entity kind is not registered."""


__all__ = [
    "BenchSyncError",
    "StoreUnavailable",
    "StoreWriteError",
    "UnknownKindError",
]
