"""
Store adapter interfaces for benchsync.

Each backing store (document or relational) implements the StoreAdapter
protocol. The reconciler depends on nothing else: identifiers, query dialects
and driver exceptions stay behind this boundary.
"""

from __future__ import annotations

import abc
from typing import List, Optional, Protocol, runtime_checkable

from benchsync.domain.models import Record


@runtime_checkable
class StoreAdapter(Protocol):
    """
    Common interface all store adapters must implement.

    Attributes
    ----------
    name : str
        Short identifier used in logs and errors (e.g. "postgres", "mongo").
    """

    name: str

    def fetch_active(self) -> List[Record]:
        """
        Return every record with ``is_deleted == False``.

        Raises
        ------
        StoreUnavailable
            If the store cannot be reached within a bounded attempt.
        """
        ...

    def fetch_by_correlation_id(self, correlation_id: str) -> Optional[Record]:
        """Return the record carrying `correlation_id`, or None."""
        ...

    def fetch_by_native_id(self, native_id: str) -> Optional[Record]:
        """Return the record stored under the store-local key, or None."""
        ...

    def insert(self, record: Record) -> str:
        """
        Create a record preserving its correlation id, timestamps and payload.

        Returns
        -------
        str
            The native id assigned by the store.

        Raises
        ------
        StoreWriteError
            On constraint violation or connectivity loss during the write.
        """
        ...

    def update(self, correlation_id: str, record: Record) -> bool:
        """
        Overwrite payload and ``updated_at`` of the record with `correlation_id`.

        Raises
        ------
        StoreWriteError
            If no matching record exists or the write fails.
        """
        ...

    def ping(self) -> None:
        """Cheap round trip; raises StoreUnavailable when unreachable."""
        ...


class AbstractStoreAdapter(abc.ABC):
    """
    Optional ABC helper for class-based implementations.

    Subclasses set `name` and implement the data operations. Schema setup and
    resource release default to no-ops.
    """

    name: str

    @abc.abstractmethod
    def fetch_active(self) -> List[Record]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def fetch_by_correlation_id(
        self, correlation_id: str
    ) -> Optional[Record]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def fetch_by_native_id(self, native_id: str) -> Optional[Record]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def insert(self, record: Record) -> str:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def update(self, correlation_id: str, record: Record) -> bool:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def ping(self) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    def ensure_schema(self) -> None:
        """Create tables/indexes the adapter relies on."""

    def close(self) -> None:
        """Release resources owned by the adapter."""


__all__ = ["StoreAdapter", "AbstractStoreAdapter"]
