"""
Trigger for reconciliation passes.

Usage (example from a scheduler or an admin command):
    from benchsync.trigger import run_reconciliation

    summary = run_reconciliation()
    print(summary.as_dict())

`ReconciliationTrigger` owns the single-reconciler guarantee: it holds a
non-blocking lock around every invocation, so an overlapping call returns an
aborted summary instead of racing the running pass into duplicate inserts.
Configuration (kinds, workers, timeouts) is fixed at construction time.
"""

from __future__ import annotations

import threading
from typing import Callable, Iterable, List, Optional, Tuple

from benchsync.config import get_settings
from benchsync.domain.kinds import EntityKind, resolve_kinds
from benchsync.domain.summary import (
    REASON_ALREADY_RUNNING,
    REASON_CANCELLED,
    REASON_INTERNAL_ERROR,
    REASON_STORE_UNAVAILABLE,
    ReconciliationSummary,
)
from benchsync.probe import AvailabilityProbe
from benchsync.reconciler import Reconciler
from benchsync.stores.abstract import StoreAdapter
from benchsync.stores.document import MongoStoreAdapter
from benchsync.stores.relational import PostgresStoreAdapter
from benchsync.utils.logging import get_logger
from benchsync.utils.profiler import profile_block

log = get_logger(__name__)

AdapterFactory = Callable[[EntityKind], Tuple[StoreAdapter, StoreAdapter]]


def default_adapters(kind: EntityKind) -> Tuple[StoreAdapter, StoreAdapter]:
    """Document store as A, relational store as B."""
    return MongoStoreAdapter(kind), PostgresStoreAdapter(kind)


class ReconciliationTrigger:
    """
    Runs reconciliation passes for a fixed set of entity kinds.

    Parameters
    ----------
    kinds : iterable of str | None
        Kind names to reconcile; defaults to SYNC_KINDS.
    adapter_factory : callable | None
        Builds the (A, B) adapter pair for a kind. Defaults to Mongo/Postgres.
    max_workers : int | None
        Worker pool size per direction; defaults to SYNC_WORKERS.
    probe_timeout_seconds : float | None
        Bound for each availability check; defaults to PROBE_TIMEOUT_SECONDS.
    cancel_event : threading.Event | None
        Shared shutdown signal; set it to stop the running pass cleanly.
    """

    def __init__(
        self,
        kinds: Optional[Iterable[str]] = None,
        adapter_factory: Optional[AdapterFactory] = None,
        max_workers: Optional[int] = None,
        probe_timeout_seconds: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        settings = get_settings()
        self.kinds: List[EntityKind] = resolve_kinds(
            kinds if kinds is not None else settings.kind_names()
        )
        self.adapter_factory = adapter_factory or default_adapters
        self.max_workers = max_workers or settings.sync_workers
        self.probe_timeout_seconds = probe_timeout_seconds or settings.probe_timeout_seconds
        self.cancel_event = cancel_event or threading.Event()
        self._running = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._running.locked()

    def run_reconciliation(self) -> ReconciliationSummary:
        """
        Run one pass over every configured kind.

        Never raises for store-level problems: they are reflected in the
        returned summary (`aborted`, `reason`, `skipped`).
        """
        if not self._running.acquire(blocking=False):
            log.warning("[TRIGGER] Pass already running; invocation ignored")
            return ReconciliationSummary.aborted_with(REASON_ALREADY_RUNNING)

        try:
            total = ReconciliationSummary()
            with profile_block("reconciliation") as stats:
                for kind in self.kinds:
                    if self.cancel_event.is_set():
                        total.abort(REASON_CANCELLED)
                        break
                    summary = self._run_kind(kind)
                    total = total + summary
                    total.kinds[kind.name] = summary
                    if summary.reason == REASON_STORE_UNAVAILABLE:
                        # No partial sync: remaining kinds wait for the next trigger.
                        break
            total.duration_seconds = stats.duration_seconds
            total.peak_rss_bytes = stats.peak_rss_bytes
        finally:
            self._running.release()

        log.info(
            f"[TRIGGER COMPLETE] {len(total.kinds)}/{len(self.kinds)} kind(s) reconciled",
            extra=total.as_dict(),
        )
        return total

    def _run_kind(self, kind: EntityKind) -> ReconciliationSummary:
        adapter_a, adapter_b = self.adapter_factory(kind)
        try:
            reconciler = Reconciler(
                adapter_a,
                adapter_b,
                probe=AvailabilityProbe([adapter_a, adapter_b], self.probe_timeout_seconds),
                max_workers=self.max_workers,
                cancel_event=self.cancel_event,
                label=kind.name,
            )
            return reconciler.run()
        except Exception:  # noqa: BLE001 - callers only ever see a summary
            log.exception(f"[PASS FAILED] {kind.name}", extra={"kind": kind.name})
            return ReconciliationSummary.aborted_with(REASON_INTERNAL_ERROR)
        finally:
            adapter_a.close()
            adapter_b.close()

    def run_forever(
        self, interval_seconds: Optional[float] = None, stop_event: Optional[threading.Event] = None
    ) -> int:
        """
        Run passes back to back, `interval_seconds` apart, until stopped.

        Passes never overlap: the next one starts only after the previous one
        returned. Returns the number of passes executed.
        """
        interval = interval_seconds if interval_seconds is not None else get_settings().sync_interval_seconds
        stop = stop_event or self.cancel_event
        passes = 0
        try:
            while not stop.is_set():
                self.run_reconciliation()
                passes += 1
                stop.wait(timeout=interval)
        finally:
            # The trigger stays usable for later one-shot passes.
            self.cancel_event.clear()
        log.info("[TRIGGER] Stopped", extra={"passes": passes})
        return passes

    def stop(self) -> None:
        """
        Ask the running pass (and `run_forever`) to finish early.

        Outside `run_forever` the request sticks: later passes report
        ``cancelled`` until `resume()` is called.
        """
        self.cancel_event.set()

    def resume(self) -> None:
        """Allow passes again after `stop()`."""
        self.cancel_event.clear()


_default_trigger: Optional[ReconciliationTrigger] = None
_default_trigger_lock = threading.Lock()


def default_trigger() -> ReconciliationTrigger:
    """
    Process-wide trigger shared by every `run_reconciliation()` caller.

    Built from settings on first use; sharing it is what keeps concurrent
    callers (a scheduler tick and an admin hook, say) from overlapping.
    """
    global _default_trigger
    with _default_trigger_lock:
        if _default_trigger is None:
            _default_trigger = ReconciliationTrigger()
        return _default_trigger


def run_reconciliation() -> ReconciliationSummary:
    """One pass through the shared trigger; refused while another is running."""
    return default_trigger().run_reconciliation()


__all__ = [
    "AdapterFactory",
    "ReconciliationTrigger",
    "default_adapters",
    "default_trigger",
    "run_reconciliation",
]
