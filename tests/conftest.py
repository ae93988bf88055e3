"""
Pytest configuration for benchsync.

Provides fixtures for:
- In-memory store adapters with failure injection (unit tests)
- Timestamp helpers
- Live PostgreSQL/MongoDB connection details for integration tests
"""

from __future__ import annotations

import os
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set

import psycopg
import pytest
from pymongo import MongoClient

from benchsync.config import Settings, get_settings
from benchsync.domain.models import Record
from benchsync.errors import StoreUnavailable, StoreWriteError


def ts(seconds: float) -> datetime:
    """Turn a small integer clock value into an aware UTC timestamp."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


class InMemoryStore:
    """
    StoreAdapter double backed by a dict.

    Knobs:
    - `reachable`: when False every operation raises StoreUnavailable.
    - `reject`: correlation ids whose insert/update raises StoreWriteError.
    - `lookups_before_outage`: number of correlation lookups that succeed
      before the store goes down.
    - `on_write`: callback invoked after every successful write.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.rows: Dict[str, Record] = {}
        self.reachable = True
        self.reject: Set[str] = set()
        self.lookups_before_outage: Optional[int] = None
        self.on_write: Optional[Callable[[Record], None]] = None
        self.calls: List[str] = []
        self.closed = False
        self._next_id = 1
        self._lock = threading.Lock()

    # -- test helpers --------------------------------------------------------

    def seed(
        self,
        correlation_id: str,
        updated_at: float,
        payload: Optional[dict] = None,
        is_deleted: bool = False,
        created_at: Optional[float] = None,
    ) -> Record:
        record = Record(
            correlation_id=correlation_id,
            payload=payload if payload is not None else {"value": correlation_id},
            is_deleted=is_deleted,
            created_at=ts(created_at if created_at is not None else updated_at),
            updated_at=ts(updated_at),
        )
        return self._store(record)

    def get(self, correlation_id: str) -> Optional[Record]:
        for record in self.rows.values():
            if record.correlation_id == correlation_id:
                return record
        return None

    @property
    def write_calls(self) -> int:
        return sum(1 for call in self.calls if call in {"insert", "update"})

    def _store(self, record: Record) -> Record:
        with self._lock:
            native_id = record.native_id or f"{self.name}-{self._next_id}"
            self._next_id += 1
            stored = record.with_native_id(native_id)
            self.rows[native_id] = stored
            return stored

    def _check(self, op: str) -> None:
        with self._lock:
            self.calls.append(op)
        if not self.reachable:
            raise StoreUnavailable(self.name)

    # -- StoreAdapter --------------------------------------------------------

    def fetch_active(self) -> List[Record]:
        self._check("fetch_active")
        return [r for r in self.rows.values() if not r.is_deleted]

    def fetch_by_correlation_id(self, correlation_id: str) -> Optional[Record]:
        self._check("fetch_by_correlation_id")
        with self._lock:
            if self.lookups_before_outage is not None:
                if self.lookups_before_outage <= 0:
                    self.reachable = False
                    raise StoreUnavailable(self.name, "connection lost")
                self.lookups_before_outage -= 1
        return self.get(correlation_id)

    def fetch_by_native_id(self, native_id: str) -> Optional[Record]:
        self._check("fetch_by_native_id")
        return self.rows.get(native_id)

    def insert(self, record: Record) -> str:
        self._check("insert")
        if record.correlation_id in self.reject:
            raise StoreWriteError(self.name, record.correlation_id, "rejected")
        if self.get(record.correlation_id) is not None:
            raise StoreWriteError(self.name, record.correlation_id, "duplicate correlation id")
        stored = self._store(record.with_native_id(None))
        if self.on_write:
            self.on_write(stored)
        return stored.native_id

    def update(self, correlation_id: str, record: Record) -> bool:
        self._check("update")
        if correlation_id in self.reject:
            raise StoreWriteError(self.name, correlation_id, "rejected")
        current = self.get(correlation_id)
        if current is None:
            raise StoreWriteError(self.name, correlation_id, "no matching record to update")
        if current.updated_at > record.updated_at:
            raise StoreWriteError(self.name, correlation_id, "stored copy is newer")
        updated = current.model_copy(update={"payload": record.payload, "updated_at": record.updated_at})
        with self._lock:
            self.rows[current.native_id] = updated
        if self.on_write:
            self.on_write(updated)
        return True

    def ping(self) -> None:
        self._check("ping")

    def ensure_schema(self) -> None:
        self._check("ensure_schema")

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_store() -> Callable[[str], InMemoryStore]:
    """Factory for named in-memory stores."""
    return InMemoryStore


@pytest.fixture
def store_a() -> InMemoryStore:
    return InMemoryStore("doc")


@pytest.fixture
def store_b() -> InMemoryStore:
    return InMemoryStore("rel")


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Make env changes made by a test visible to get_settings()."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# -- integration -------------------------------------------------------------


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "benchmarks"),
        mongo_uri=os.getenv("MONGO_URI", "mongodb://localhost:27017"),
        mongo_db=os.getenv("MONGO_DB", "benchsync_test"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    return test_settings.dsn


@pytest.fixture(scope="session")
def pg_available(test_dsn: str) -> bool:
    """
    Check if PostgreSQL is reachable.

    Used to conditionally skip integration tests when the DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=3) as conn:
            conn.execute("SELECT 1")
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def mongo_client(test_settings: Settings):
    """
    Provide a session-scoped MongoClient, skipping when MongoDB is down.
    """
    client = MongoClient(test_settings.mongo_uri, serverSelectionTimeoutMS=2000, tz_aware=True)
    try:
        client.admin.command("ping")
    except Exception:  # noqa: BLE001 - any failure means "no live Mongo"
        client.close()
        pytest.skip("MongoDB not available")
    yield client
    client.close()
