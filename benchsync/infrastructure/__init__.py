"""
Infrastructure package for benchsync.

Centralizes connectivity concerns (Postgres pools, Mongo clients, retries).
Keep this layer focused on I/O and resource management, decoupled from
adapter/reconciler logic.
"""

from benchsync.infrastructure.connections import (
    PoolManager,
    apply_statement_timeout,
    bounded_retry,
    get_mongo_client,
    get_pg_pool,
)

__all__ = [
    "PoolManager",
    "apply_statement_timeout",
    "bounded_retry",
    "get_mongo_client",
    "get_pg_pool",
]
