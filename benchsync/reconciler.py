"""
Reconciler: make two stores agree on every active record.

One pass:

1. Probe both stores; if either is unreachable the pass is a no-op.
2. Snapshot the active records of both stores.
3. For every record of A, look up its twin in B by correlation id. No twin:
   insert it into B. Twin strictly older: overwrite it. Equal timestamps: no
   write (a differing payload is reported as a conflict).
4. Same for B against A. Both directions run concurrently; each direction
   spreads records over a bounded worker pool, keeping records that share a
   correlation id on one worker.

Write failures skip the record and the pass goes on. A store that becomes
unreachable mid-pass stops the remaining work; writes already made stand.

Only one pass may run at a time against the same pair of stores; see
`benchsync.trigger.ReconciliationTrigger`.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from benchsync.config import get_settings
from benchsync.domain.models import Record
from benchsync.domain.summary import (
    REASON_CANCELLED,
    REASON_STORE_UNAVAILABLE,
    ReconciliationSummary,
)
from benchsync.errors import StoreUnavailable, StoreWriteError
from benchsync.probe import AvailabilityProbe
from benchsync.stores.abstract import StoreAdapter
from benchsync.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class _Direction:
    key: str
    source: StoreAdapter
    target: StoreAdapter
    # A conflict is seen from both sides when both copies are active; only
    # the reverse direction reports it when the forward side cannot see it.
    always_report_conflicts: bool

    @property
    def label(self) -> str:
        return f"{self.source.name}->{self.target.name}"


class _PassState:
    """Mutable bookkeeping for one pass; shared by all worker threads."""

    def __init__(self, cancel_event: Optional[threading.Event]) -> None:
        self.summary = ReconciliationSummary()
        self.unavailable = threading.Event()
        self.cancel_event = cancel_event
        self.interrupted = False
        self._lock = threading.Lock()

    def count(self, counter: str) -> None:
        with self._lock:
            setattr(self.summary, counter, getattr(self.summary, counter) + 1)

    def should_stop(self) -> bool:
        if self.unavailable.is_set():
            return True
        if self.cancel_event is not None and self.cancel_event.is_set():
            self.interrupted = True
            return True
        return False


def group_by_correlation_id(records: Sequence[Record]) -> List[List[Record]]:
    """Group records sharing a correlation id, preserving first-seen order."""
    groups: Dict[str, List[Record]] = {}
    for record in records:
        groups.setdefault(record.correlation_id, []).append(record)
    return list(groups.values())


class Reconciler:
    """
    Last-write-wins reconciliation between two store adapters.

    Parameters
    ----------
    adapter_a, adapter_b : StoreAdapter
        The two stores. Which one is "A" only matters for summary labels.
    probe : AvailabilityProbe | None
        Defaults to a probe over both adapters.
    max_workers : int | None
        Worker pool size per direction. Defaults to SYNC_WORKERS.
    cancel_event : threading.Event | None
        When set, no further record work starts and the pass reports
        ``aborted=True, reason="cancelled"``.
    label : str | None
        Name used in log lines (usually the entity kind).
    """

    def __init__(
        self,
        adapter_a: StoreAdapter,
        adapter_b: StoreAdapter,
        probe: Optional[AvailabilityProbe] = None,
        max_workers: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
        label: Optional[str] = None,
    ) -> None:
        self.adapter_a = adapter_a
        self.adapter_b = adapter_b
        self.probe = probe or AvailabilityProbe([adapter_a, adapter_b])
        self.max_workers = max(1, max_workers or get_settings().sync_workers)
        self.cancel_event = cancel_event
        self.label = label or f"{adapter_a.name}<->{adapter_b.name}"

    def run(self) -> ReconciliationSummary:
        """Execute one reconciliation pass and return its summary."""
        state = _PassState(self.cancel_event)
        extra = {"label": self.label}

        status = self.probe.check_status()
        if not status.all_available:
            log.info(
                f"[PASS SKIPPED] {self.label}: unreachable store(s) {', '.join(status.unavailable)}",
                extra={**extra, "unavailable": status.unavailable},
            )
            state.summary.abort(REASON_STORE_UNAVAILABLE)
            return state.summary

        if state.should_stop():
            state.summary.abort(REASON_CANCELLED)
            return state.summary

        log.info(f"[PASS START] {self.label}", extra=extra)
        try:
            active_a = self.adapter_a.fetch_active()
            active_b = self.adapter_b.fetch_active()
        except StoreUnavailable as exc:
            log.warning(f"[PASS ABORTED] {self.label}: {exc}", extra=extra)
            state.summary.abort(REASON_STORE_UNAVAILABLE)
            return state.summary

        log.info(
            f"[SNAPSHOT] {self.label}",
            extra={
                **extra,
                f"active_{self.adapter_a.name}": len(active_a),
                f"active_{self.adapter_b.name}": len(active_b),
            },
        )

        forward = _Direction("a_to_b", self.adapter_a, self.adapter_b, True)
        backward = _Direction("b_to_a", self.adapter_b, self.adapter_a, False)

        # Directions write to disjoint stores, so they may overlap in time.
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="direction") as directions:
            futures = [
                directions.submit(self._sync_direction, active_a, forward, state),
                directions.submit(self._sync_direction, active_b, backward, state),
            ]
            for future in futures:
                future.result()

        if state.unavailable.is_set():
            state.summary.abort(REASON_STORE_UNAVAILABLE)
        elif state.interrupted:
            state.summary.abort(REASON_CANCELLED)

        outcome = "PASS ABORTED" if state.summary.aborted else "PASS COMPLETE"
        log.info(f"[{outcome}] {self.label}", extra={**extra, **state.summary.as_dict()})
        return state.summary

    def _sync_direction(self, records: Sequence[Record], direction: _Direction, state: _PassState) -> None:
        groups = group_by_correlation_id(records)
        if not groups:
            return
        workers = min(self.max_workers, len(groups))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=direction.key) as pool:
            futures = [pool.submit(self._sync_group, group, direction, state) for group in groups]
            for future in futures:
                future.result()

    def _sync_group(self, group: Sequence[Record], direction: _Direction, state: _PassState) -> None:
        for record in group:
            if state.should_stop():
                return
            self._sync_record(record, direction, state)

    def _sync_record(self, record: Record, direction: _Direction, state: _PassState) -> None:
        target = direction.target
        cid = record.correlation_id
        extra = {"label": self.label, "direction": direction.label, "correlation_id": cid}
        try:
            twin = target.fetch_by_correlation_id(cid)
            if twin is None:
                target.insert(record)
                state.count(f"created_{direction.key}")
                log.info(f"[CREATED] {cid} {direction.label}", extra=extra)
            elif record.updated_at > twin.updated_at:
                target.update(cid, record)
                state.count(f"updated_{direction.key}")
                log.info(f"[UPDATED] {cid} {direction.label}", extra=extra)
            elif record.updated_at == twin.updated_at and record.payload != twin.payload:
                if direction.always_report_conflicts or twin.is_deleted:
                    state.count("conflicts")
                    log.warning(
                        f"[CONFLICT] {cid}: equal updated_at, differing payloads; manual review needed",
                        extra={**extra, "updated_at": record.updated_at.isoformat()},
                    )
        except StoreUnavailable as exc:
            if not state.unavailable.is_set():
                log.error(f"[STORE LOST] {target.name} mid-pass: {exc}", extra=extra)
            state.unavailable.set()
        except StoreWriteError as exc:
            state.count("skipped")
            log.warning(f"[SKIPPED] {cid} {direction.label}: {exc.message}", extra=extra)
        except Exception:  # noqa: BLE001 - one bad record must not end the pass
            state.count("skipped")
            log.exception(f"[SKIPPED] {cid} {direction.label}: unexpected error", extra=extra)


__all__ = ["Reconciler", "group_by_correlation_id"]
