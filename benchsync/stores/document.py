"""
Document store adapter: one MongoDB collection per entity kind.

Documents keep their domain fields at the top level, next to the bookkeeping
fields `correlationId`, `isDeleted`, `createdAt` and `updatedAt`. The native
key is the document's ObjectId and is never shared with the relational side.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.decimal128 import Decimal128
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import ConnectionFailure, ExecutionTimeout, PyMongoError

from benchsync.config import get_settings
from benchsync.domain.kinds import EntityKind
from benchsync.domain.models import Record
from benchsync.errors import StoreUnavailable, StoreWriteError
from benchsync.infrastructure.connections import bounded_retry, get_mongo_client
from benchsync.stores.abstract import AbstractStoreAdapter
from benchsync.utils.logging import get_logger

log = get_logger(__name__)

_UNAVAILABLE_ERRORS = (ConnectionFailure, ExecutionTimeout)

_RESERVED_FIELDS = frozenset({"_id", "__v", "correlationId", "isDeleted", "createdAt", "updatedAt"})


def _jsonable(value: Any) -> Any:
    """Convert BSON-specific values so payloads compare equal across stores."""
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal128):
        value = value.to_decimal()
    if isinstance(value, Decimal):
        return float(value)
    return value


class MongoStoreAdapter(AbstractStoreAdapter):
    """
    StoreAdapter over a pymongo collection.

    Server selection, sockets and individual queries (``maxTimeMS``) are all
    bounded by `timeout_seconds`.
    """

    name: str = "mongo"

    def __init__(
        self,
        kind: EntityKind,
        client: Optional[MongoClient] = None,
        database: Optional[str] = None,
        uri_override: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        retry_attempts: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self.kind = kind
        self.database = database or settings.mongo_db
        self.timeout_seconds = timeout_seconds or settings.store_timeout_seconds
        self.retry_attempts = retry_attempts or settings.store_retry_attempts
        self._uri_override = uri_override
        self._client_instance = client

    @property
    def _timeout_ms(self) -> int:
        return int(self.timeout_seconds * 1000)

    def _get_client(self) -> MongoClient:
        if self._client_instance is None:
            self._client_instance = get_mongo_client(self._uri_override, timeout=self.timeout_seconds)
        return self._client_instance

    def _collection(self) -> Collection:
        return self._get_client()[self.database][self.kind.collection]

    def _read(self, fn, *args):
        try:
            return bounded_retry(self.retry_attempts, _UNAVAILABLE_ERRORS)(fn, *args)
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailable(self.name, f"{self.kind.collection}: {exc}") from exc

    @staticmethod
    def _created_at(doc: Dict[str, Any]) -> Optional[datetime]:
        created = doc.get("createdAt")
        if created is None and isinstance(doc.get("_id"), ObjectId):
            created = doc["_id"].generation_time
        return created

    @classmethod
    def _is_syncable(cls, doc: Dict[str, Any]) -> bool:
        """Legacy documents lack a correlationId or any usable timestamp."""
        return bool(doc.get("correlationId")) and (
            cls._created_at(doc) is not None or doc.get("updatedAt") is not None
        )

    @classmethod
    def _to_record(cls, doc: Dict[str, Any]) -> Record:
        created = cls._created_at(doc) or doc.get("updatedAt")
        return Record(
            correlation_id=doc["correlationId"],
            native_id=str(doc["_id"]),
            payload={k: _jsonable(v) for k, v in doc.items() if k not in _RESERVED_FIELDS},
            is_deleted=bool(doc.get("isDeleted", False)),
            created_at=created,
            updated_at=doc.get("updatedAt") or created,
        )

    @staticmethod
    def _payload_fields(record: Record) -> Dict[str, Any]:
        return {k: v for k, v in record.payload.items() if k not in _RESERVED_FIELDS}

    # -- reads -------------------------------------------------------------

    def _fetch_active_once(self) -> List[Record]:
        cursor = self._collection().find({"isDeleted": {"$ne": True}}, max_time_ms=self._timeout_ms)
        docs = list(cursor)
        records = [self._to_record(doc) for doc in docs if self._is_syncable(doc)]
        ignored = len(docs) - len(records)
        if ignored:
            log.warning(
                f"[{self.name}] {ignored} active document(s) without correlationId or timestamps ignored",
                extra={"store": self.name, "kind": self.kind.name, "ignored": ignored},
            )
        return records

    def fetch_active(self) -> List[Record]:
        return self._read(self._fetch_active_once)

    def _find_one(self, query: Dict[str, Any]) -> Optional[Record]:
        doc = self._collection().find_one(query, max_time_ms=self._timeout_ms)
        return self._to_record(doc) if doc else None

    def fetch_by_correlation_id(self, correlation_id: str) -> Optional[Record]:
        return self._read(self._find_one, {"correlationId": correlation_id})

    def fetch_by_native_id(self, native_id: str) -> Optional[Record]:
        if not ObjectId.is_valid(native_id):
            return None
        return self._read(self._find_one, {"_id": ObjectId(native_id)})

    # -- writes ------------------------------------------------------------

    def insert(self, record: Record) -> str:
        document = {
            **self._payload_fields(record),
            "correlationId": record.correlation_id,
            "isDeleted": record.is_deleted,
            "createdAt": record.created_at,
            "updatedAt": record.updated_at,
        }
        try:
            result = self._collection().insert_one(document)
        except PyMongoError as exc:
            raise StoreWriteError(self.name, record.correlation_id, str(exc)) from exc
        return str(result.inserted_id)

    def update(self, correlation_id: str, record: Record) -> bool:
        collection = self._collection()
        try:
            current = collection.find_one(
                {"correlationId": correlation_id}, max_time_ms=self._timeout_ms
            )
            if current is None:
                raise StoreWriteError(self.name, correlation_id, "no matching record to update")
            # Replace rather than $set so fields dropped from the payload go away too.
            replacement = {
                **self._payload_fields(record),
                "correlationId": correlation_id,
                "isDeleted": current.get("isDeleted", False),
                "createdAt": current.get("createdAt", record.created_at),
                "updatedAt": record.updated_at,
            }
            result = collection.replace_one(
                {"_id": current["_id"], "updatedAt": {"$lte": record.updated_at}}, replacement
            )
        except PyMongoError as exc:
            raise StoreWriteError(self.name, correlation_id, str(exc)) from exc
        if not result.matched_count:
            raise StoreWriteError(self.name, correlation_id, "record changed concurrently")
        return True

    # -- lifecycle ---------------------------------------------------------

    def ping(self) -> None:
        try:
            self._get_client().admin.command("ping")
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailable(self.name, str(exc)) from exc

    def ensure_schema(self) -> None:
        collection = self._collection()
        try:
            collection.create_index(
                [("correlationId", ASCENDING)],
                name="correlationId_unique",
                unique=True,
                partialFilterExpression={"correlationId": {"$type": "string"}},
            )
            collection.create_index([("isDeleted", ASCENDING)], name="isDeleted_idx")
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailable(self.name, str(exc)) from exc
        log.info(
            f"[{self.name}] indexes ready for {self.kind.collection}", extra={"kind": self.kind.name}
        )

    def close(self) -> None:
        # Clients belong to the PoolManager (or to whoever passed one in).
        self._client_instance = None


__all__ = ["MongoStoreAdapter"]
