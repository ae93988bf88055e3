"""
Relational store adapter: one PostgreSQL table per entity kind.

Rows are addressed natively by a BIGSERIAL `id`; the cross-store identity lives
in a separate, unique `correlation_id` column. The payload is kept verbatim in
a JSONB column so the adapter never has to know a kind's domain fields.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool, PoolTimeout

from benchsync.config import get_settings
from benchsync.domain.kinds import EntityKind
from benchsync.domain.models import Record
from benchsync.errors import StoreUnavailable, StoreWriteError
from benchsync.infrastructure.connections import apply_statement_timeout, bounded_retry, get_pg_pool
from benchsync.stores.abstract import AbstractStoreAdapter
from benchsync.utils.logging import get_logger

log = get_logger(__name__)

_UNAVAILABLE_ERRORS = (psycopg.OperationalError, psycopg.InterfaceError, PoolTimeout)

_COLUMNS = sql.SQL("id, correlation_id, payload, is_deleted, created_at, updated_at")


class PostgresStoreAdapter(AbstractStoreAdapter):
    """
    StoreAdapter over a psycopg ConnectionPool.

    Every transaction is bounded by a statement timeout; reads are retried a
    bounded number of times on connection-level errors before surfacing as
    StoreUnavailable.
    """

    name: str = "postgres"

    def __init__(
        self,
        kind: EntityKind,
        pool: Optional[ConnectionPool] = None,
        dsn_override: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        retry_attempts: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self.kind = kind
        self.timeout_seconds = timeout_seconds or settings.store_timeout_seconds
        self.retry_attempts = retry_attempts or settings.store_retry_attempts
        self._dsn_override = dsn_override
        self._pool_instance = pool
        self._table = sql.Identifier(kind.table)

    def _get_pool(self) -> ConnectionPool:
        if self._pool_instance is None:
            self._pool_instance = get_pg_pool(self._dsn_override, timeout=self.timeout_seconds)
        return self._pool_instance

    @contextmanager
    def _cursor(self) -> Generator[psycopg.Cursor, None, None]:
        """Pooled connection + dict cursor inside one bounded transaction."""
        with self._get_pool().connection(timeout=self.timeout_seconds) as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                apply_statement_timeout(cur, int(self.timeout_seconds * 1000))
                yield cur

    def _read(self, fn, *args):
        try:
            return bounded_retry(self.retry_attempts, _UNAVAILABLE_ERRORS)(fn, *args)
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailable(self.name, f"{self.kind.table}: {exc}") from exc

    @staticmethod
    def _to_record(row: Dict[str, Any]) -> Record:
        return Record(
            correlation_id=row["correlation_id"],
            native_id=str(row["id"]),
            payload=row["payload"] or {},
            is_deleted=row["is_deleted"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # -- reads -------------------------------------------------------------

    def _fetch_active_once(self) -> List[Record]:
        query = sql.SQL("SELECT {cols} FROM {table} WHERE is_deleted = FALSE ORDER BY id").format(
            cols=_COLUMNS, table=self._table
        )
        with self._cursor() as cur:
            cur.execute(query)
            rows = cur.fetchall()

        records = [self._to_record(row) for row in rows if row["correlation_id"]]
        ignored = len(rows) - len(records)
        if ignored:
            log.warning(
                f"[{self.name}] {ignored} active row(s) without correlation id ignored",
                extra={"store": self.name, "kind": self.kind.name, "ignored": ignored},
            )
        return records

    def fetch_active(self) -> List[Record]:
        return self._read(self._fetch_active_once)

    def _fetch_one(self, column: str, value: Any) -> Optional[Record]:
        query = sql.SQL("SELECT {cols} FROM {table} WHERE {column} = %s LIMIT 1").format(
            cols=_COLUMNS, table=self._table, column=sql.Identifier(column)
        )
        with self._cursor() as cur:
            cur.execute(query, (value,))
            row = cur.fetchone()
        return self._to_record(row) if row else None

    def fetch_by_correlation_id(self, correlation_id: str) -> Optional[Record]:
        return self._read(self._fetch_one, "correlation_id", correlation_id)

    def fetch_by_native_id(self, native_id: str) -> Optional[Record]:
        if not str(native_id).isdigit():
            return None
        return self._read(self._fetch_one, "id", int(native_id))

    # -- writes ------------------------------------------------------------

    def insert(self, record: Record) -> str:
        query = sql.SQL(
            "INSERT INTO {table} (correlation_id, payload, is_deleted, created_at, updated_at) "
            "VALUES (%s, %s, %s, %s, %s) RETURNING id"
        ).format(table=self._table)
        try:
            with self._cursor() as cur:
                cur.execute(
                    query,
                    (
                        record.correlation_id,
                        Jsonb(record.payload),
                        record.is_deleted,
                        record.created_at,
                        record.updated_at,
                    ),
                )
                native_id = cur.fetchone()["id"]
        except psycopg.Error as exc:
            raise StoreWriteError(self.name, record.correlation_id, str(exc)) from exc
        return str(native_id)

    def update(self, correlation_id: str, record: Record) -> bool:
        # The updated_at guard keeps a stale write from rolling a newer row back.
        query = sql.SQL(
            "UPDATE {table} SET payload = %s, updated_at = %s "
            "WHERE correlation_id = %s AND updated_at <= %s"
        ).format(table=self._table)
        try:
            with self._cursor() as cur:
                cur.execute(
                    query,
                    (Jsonb(record.payload), record.updated_at, correlation_id, record.updated_at),
                )
                matched = cur.rowcount
        except psycopg.Error as exc:
            raise StoreWriteError(self.name, correlation_id, str(exc)) from exc
        if not matched:
            raise StoreWriteError(self.name, correlation_id, "no matching record to update")
        return True

    # -- lifecycle ---------------------------------------------------------

    def ping(self) -> None:
        try:
            with self._get_pool().connection(timeout=self.timeout_seconds) as conn:
                conn.execute("SELECT 1")
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailable(self.name, str(exc)) from exc

    def ensure_schema(self) -> None:
        statements = [
            sql.SQL(
                "CREATE TABLE IF NOT EXISTS {table} ("
                " id BIGSERIAL PRIMARY KEY,"
                " correlation_id TEXT NOT NULL UNIQUE,"
                " payload JSONB NOT NULL DEFAULT '{{}}'::jsonb,"
                " is_deleted BOOLEAN NOT NULL DEFAULT FALSE,"
                " created_at TIMESTAMPTZ NOT NULL DEFAULT now(),"
                " updated_at TIMESTAMPTZ NOT NULL DEFAULT now())"
            ).format(table=self._table),
            sql.SQL("CREATE INDEX IF NOT EXISTS {index} ON {table} (is_deleted)").format(
                index=sql.Identifier(f"{self.kind.table}_is_deleted_idx"), table=self._table
            ),
        ]
        try:
            with self._cursor() as cur:
                for statement in statements:
                    cur.execute(statement)
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailable(self.name, str(exc)) from exc
        log.info(f"[{self.name}] schema ready for {self.kind.table}", extra={"kind": self.kind.name})

    def close(self) -> None:
        # Pools belong to the PoolManager (or to whoever passed one in).
        self._pool_instance = None


__all__ = ["PostgresStoreAdapter"]
