"""
Connection factory utilities for benchsync.

Provides centralized management of the PostgreSQL connection pools and MongoDB
clients used by the store adapters. The PoolManager singleton shares one pool
per DSN and one client per URI across entity kinds, and ensures everything is
closed on application exit.

Includes bounded retry helpers for transient connection failures using tenacity.
"""

from __future__ import annotations

import atexit
import threading
from typing import Dict, Optional, Tuple, Type

import psycopg
from psycopg_pool import ConnectionPool
from pymongo import MongoClient
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from benchsync.config import get_settings
from benchsync.utils.logging import get_logger

log = get_logger(__name__)


def bounded_retry(
    attempts: int,
    exc_types: Tuple[Type[BaseException], ...],
    max_wait: float = 2.0,
) -> Retrying:
    """
    Build a tenacity retryer for a bounded number of attempts.

    Parameters
    ----------
    attempts : int
        Total attempts including the first call (minimum 1).
    exc_types : tuple of exception types
        Only these exceptions trigger a retry; anything else propagates at once.
    max_wait : float
        Upper bound for the exponential backoff between attempts, in seconds.
    """
    return Retrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=0.2, min=0.1, max=max_wait),
        retry=retry_if_exception_type(exc_types),
        reraise=True,
    )


class PoolManager:
    """
    Thread-safe singleton for managing store connections.

    Handles lifecycle management with automatic cleanup via atexit hook.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._pg_pools: Dict[str, ConnectionPool] = {}
                cls._instance._mongo_clients: Dict[str, MongoClient] = {}
                atexit.register(cls._instance.close_all)
            return cls._instance

    def get_pg_pool(
        self,
        dsn: Optional[str] = None,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> ConnectionPool:
        """
        Get or create the connection pool for `dsn`.

        Parameters
        ----------
        dsn : str | None
            Connection string; defaults to the one composed from settings.
        min_size, max_size : int | None
            Pool bounds; default to DB_POOL_MIN_SIZE / DB_POOL_MAX_SIZE.
        timeout : float | None
            Seconds to wait for a connection before the pool gives up; also
            used as the per-connection connect timeout.

        Returns
        -------
        ConnectionPool
            The managed pool instance.
        """
        settings = get_settings()
        conninfo = dsn or settings.dsn
        wait = timeout if timeout is not None else settings.store_timeout_seconds
        with self._lock:
            pool = self._pg_pools.get(conninfo)
            if pool is None:
                pool = ConnectionPool(
                    conninfo=conninfo,
                    min_size=min_size if min_size is not None else settings.db_pool_min_size,
                    max_size=max_size if max_size is not None else settings.db_pool_max_size,
                    timeout=wait,
                    kwargs={"connect_timeout": max(1, int(wait))},
                    open=True,
                )
                self._pg_pools[conninfo] = pool
                log.debug("Postgres pool created", extra={"host": settings.db_host})
            return pool

    def get_mongo_client(
        self, uri: Optional[str] = None, timeout: Optional[float] = None
    ) -> MongoClient:
        """
        Get or create the MongoClient for `uri`.

        Server selection, connect and socket operations are all bounded by
        `timeout` (seconds) so no call can block indefinitely.
        """
        settings = get_settings()
        target = uri or settings.mongo_uri
        wait_ms = int((timeout if timeout is not None else settings.store_timeout_seconds) * 1000)
        with self._lock:
            client = self._mongo_clients.get(target)
            if client is None:
                client = MongoClient(
                    target,
                    serverSelectionTimeoutMS=wait_ms,
                    connectTimeoutMS=wait_ms,
                    socketTimeoutMS=wait_ms,
                    tz_aware=True,
                )
                self._mongo_clients[target] = client
                log.debug("Mongo client created")
            return client

    def close_all(self) -> None:
        """
        Close all managed pools and clients.

        This is called automatically on exit via atexit hook.
        """
        with self._lock:
            for conninfo, pool in list(self._pg_pools.items()):
                try:
                    pool.close()
                except Exception:  # noqa: BLE001
                    log.debug("Failed to close Postgres pool", exc_info=True)
                finally:
                    del self._pg_pools[conninfo]

            for uri, client in list(self._mongo_clients.items()):
                try:
                    client.close()
                except Exception:  # noqa: BLE001
                    log.debug("Failed to close Mongo client", exc_info=True)
                finally:
                    del self._mongo_clients[uri]


def apply_statement_timeout(cur: psycopg.Cursor, timeout_ms: int) -> None:
    """
    Bound every statement of the current transaction to `timeout_ms`.

    Uses ``set_config(..., is_local => true)`` so the setting ends with the
    transaction and never leaks into pooled connections.
    """
    cur.execute("SELECT set_config('statement_timeout', %s, true)", (str(int(timeout_ms)),))


def get_pg_pool(dsn: Optional[str] = None, **kwargs) -> ConnectionPool:
    """Get or create a PostgreSQL pool via PoolManager."""
    return PoolManager().get_pg_pool(dsn, **kwargs)


def get_mongo_client(uri: Optional[str] = None, timeout: Optional[float] = None) -> MongoClient:
    """Get or create a MongoClient via PoolManager."""
    return PoolManager().get_mongo_client(uri, timeout=timeout)


__all__ = [
    "PoolManager",
    "apply_statement_timeout",
    "bounded_retry",
    "get_mongo_client",
    "get_pg_pool",
]
