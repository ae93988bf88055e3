"""
Origin-store writes for freshly produced benchmark records.

A new record lands in exactly one store: the preferred one when it answers a
ping, otherwise the fallback. Its correlation id is generated here and the
reconciler later copies the record to the other store.
"""

from __future__ import annotations

from typing import Any, Dict, Sequence, Tuple

from benchsync.domain.models import Record
from benchsync.errors import StoreUnavailable
from benchsync.stores.abstract import StoreAdapter
from benchsync.utils.logging import get_logger

log = get_logger(__name__)


def store_new_record(
    payload: Dict[str, Any], stores: Sequence[StoreAdapter]
) -> Tuple[str, Record]:
    """
    Insert a new record into the first reachable store of `stores`.

    Returns
    -------
    tuple[str, Record]
        Name of the origin store and the stored record (with its native id).

    Raises
    ------
    StoreUnavailable
        If no store answered.
    StoreWriteError
        If the origin store rejected the insert.
    """
    record = Record.new(payload)
    for store in stores:
        try:
            store.ping()
        except StoreUnavailable as exc:
            log.warning(f"[ORIGIN] {store.name} unreachable, trying next store", extra={"error": str(exc)})
            continue
        native_id = store.insert(record)
        log.debug(
            f"[ORIGIN] {record.correlation_id} created in {store.name}",
            extra={"correlation_id": record.correlation_id, "store": store.name},
        )
        return store.name, record.with_native_id(native_id)
    raise StoreUnavailable(",".join(s.name for s in stores), "no store reachable for new record")


__all__ = ["store_new_record"]
