"""
Domain models for benchsync.

Defines the canonical shape of a synchronizable benchmark record. Both store
adapters map their native rows/documents onto this model, so the reconciler
only ever compares `Record` instances.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


def _normalize_timestamp(value: datetime) -> datetime:
    # Stores disagree on precision (BSON dates are milliseconds, TIMESTAMPTZ is
    # microseconds); both sides must compare equal after a round trip.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def utcnow() -> datetime:
    """Current UTC time at the precision every store can hold."""
    return _normalize_timestamp(datetime.now(timezone.utc))


class Record(BaseModel):
    """
    A single logical benchmark record as seen by one store.

    `correlation_id` identifies the record across stores; `native_id` is only
    meaningful to the store the record was read from and is never copied.
    """

    correlation_id: str = Field(..., min_length=1, description="Cross-store identifier.")
    native_id: Optional[str] = Field(None, description="Store-local primary key.")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Opaque domain fields.")
    is_deleted: bool = Field(False, description="Soft-delete marker.")
    created_at: datetime = Field(..., description="Creation timestamp (UTC).")
    updated_at: datetime = Field(..., description="Last modification timestamp (UTC).")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "arbitrary_types_allowed": False,
    }

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc_millis(cls, value: datetime) -> datetime:
        return _normalize_timestamp(value)

    @property
    def is_active(self) -> bool:
        return not self.is_deleted

    def with_native_id(self, native_id: Optional[str]) -> "Record":
        return self.model_copy(update={"native_id": native_id})

    @classmethod
    def new(cls, payload: Dict[str, Any], now: Optional[datetime] = None) -> "Record":
        """
        Build a brand-new record for its origin store.

        The correlation id is generated here, once; every later copy of the
        record carries it unchanged.
        """
        ts = now or utcnow()
        return cls(
            correlation_id=uuid.uuid4().hex,
            payload=dict(payload),
            created_at=ts,
            updated_at=ts,
        )


__all__ = ["Record", "utcnow"]
