from __future__ import annotations

import threading

import pytest

from benchsync import trigger as trigger_module
from benchsync.domain.summary import (
    REASON_ALREADY_RUNNING,
    REASON_CANCELLED,
    REASON_INTERNAL_ERROR,
    REASON_STORE_UNAVAILABLE,
    ReconciliationSummary,
)
from benchsync.errors import UnknownKindError
from benchsync.trigger import ReconciliationTrigger

KINDS = ["execution_time", "memory_usage"]


@pytest.fixture(autouse=True)
def _no_shared_trigger(monkeypatch):
    monkeypatch.setattr(trigger_module, "_default_trigger", None)


class _Stores:
    """Keeps one pair of in-memory stores per kind across trigger invocations."""

    def __init__(self, make_store) -> None:
        self.make_store = make_store
        self.pairs = {}

    def __call__(self, kind):
        if kind.name not in self.pairs:
            self.pairs[kind.name] = (self.make_store("doc"), self.make_store("rel"))
        return self.pairs[kind.name]


def test_run_reconciliation_reports_per_kind_and_total(make_store) -> None:
    stores = _Stores(make_store)
    trigger = ReconciliationTrigger(kinds=KINDS, adapter_factory=stores, max_workers=2)
    stores.pairs["execution_time"] = (make_store("doc"), make_store("rel"))
    stores.pairs["memory_usage"] = (make_store("doc"), make_store("rel"))
    stores.pairs["execution_time"][0].seed("e1", updated_at=10)
    stores.pairs["memory_usage"][1].seed("m1", updated_at=10)
    stores.pairs["memory_usage"][1].seed("m2", updated_at=11)

    summary = trigger.run_reconciliation()

    assert set(summary.kinds) == set(KINDS)
    assert summary.kinds["execution_time"].created_a_to_b == 1
    assert summary.kinds["memory_usage"].created_b_to_a == 2
    assert summary.created_a_to_b == 1
    assert summary.created_b_to_a == 2
    assert summary.aborted is False
    assert summary.duration_seconds > 0
    assert all(store.closed for pair in stores.pairs.values() for store in pair)

    again = trigger.run_reconciliation()
    assert again.writes == 0


def test_overlapping_invocation_is_refused(make_store) -> None:
    nested = {}
    stores = _Stores(make_store)

    def factory(kind):
        # Re-enter while the outer pass holds the lock.
        nested["summary"] = trigger.run_reconciliation()
        return stores(kind)

    trigger = ReconciliationTrigger(kinds=["execution_time"], adapter_factory=factory)

    outer = trigger.run_reconciliation()

    assert outer.aborted is False
    assert nested["summary"].aborted is True
    assert nested["summary"].reason == REASON_ALREADY_RUNNING
    assert nested["summary"].writes == 0
    assert trigger.is_running is False


def test_unavailable_store_stops_remaining_kinds(make_store) -> None:
    stores = _Stores(make_store)
    down = make_store("rel")
    down.reachable = False
    stores.pairs["execution_time"] = (make_store("doc"), down)
    trigger = ReconciliationTrigger(kinds=KINDS, adapter_factory=stores)

    summary = trigger.run_reconciliation()

    assert summary.aborted is True
    assert summary.reason == REASON_STORE_UNAVAILABLE
    assert list(summary.kinds) == ["execution_time"]
    assert "memory_usage" not in stores.pairs


def test_internal_error_is_turned_into_a_summary(make_store) -> None:
    stores = _Stores(make_store)
    broken = make_store("doc")

    def explode():
        raise ValueError("unparseable row")

    broken.fetch_active = explode
    stores.pairs["execution_time"] = (broken, make_store("rel"))
    trigger = ReconciliationTrigger(kinds=["execution_time"], adapter_factory=stores)

    summary = trigger.run_reconciliation()

    assert summary.aborted is True
    assert summary.reason == REASON_INTERNAL_ERROR
    assert broken.closed is True


def test_cancelled_trigger_does_not_start_kinds(make_store) -> None:
    stores = _Stores(make_store)
    cancel = threading.Event()
    cancel.set()
    trigger = ReconciliationTrigger(kinds=KINDS, adapter_factory=stores, cancel_event=cancel)

    summary = trigger.run_reconciliation()

    assert summary.aborted is True
    assert summary.reason == REASON_CANCELLED
    assert stores.pairs == {}


def test_run_forever_runs_until_stopped(make_store, monkeypatch) -> None:
    stores = _Stores(make_store)
    stop = threading.Event()
    trigger = ReconciliationTrigger(kinds=["execution_time"], adapter_factory=stores)
    calls = []
    original = trigger.run_reconciliation

    def counting_run() -> ReconciliationSummary:
        calls.append(1)
        if len(calls) == 2:
            stop.set()
        return original()

    monkeypatch.setattr(trigger, "run_reconciliation", counting_run)

    passes = trigger.run_forever(interval_seconds=0.01, stop_event=stop)

    assert passes == 2


def test_unknown_kind_is_rejected_at_construction() -> None:
    with pytest.raises(UnknownKindError):
        ReconciliationTrigger(kinds=["nope"])


def test_kinds_default_to_settings(monkeypatch) -> None:
    monkeypatch.setenv("SYNC_KINDS", "page_load, execution_time")

    trigger = ReconciliationTrigger(adapter_factory=lambda kind: None)

    assert [k.name for k in trigger.kinds] == ["page_load", "execution_time"]


def test_module_level_run_reconciliation_uses_default_trigger(monkeypatch) -> None:
    expected = ReconciliationSummary(created_a_to_b=3)

    class _FakeTrigger:
        def run_reconciliation(self) -> ReconciliationSummary:
            return expected

    monkeypatch.setattr(trigger_module, "ReconciliationTrigger", _FakeTrigger)

    assert trigger_module.run_reconciliation() is expected


def test_module_level_calls_share_one_trigger_and_never_overlap(make_store, monkeypatch) -> None:
    monkeypatch.setenv("SYNC_KINDS", "execution_time")
    entered = threading.Event()
    release = threading.Event()
    active = []
    peak = []

    def blocking_factory(kind):
        active.append(1)
        peak.append(len(active))
        entered.set()
        release.wait(timeout=5)
        active.pop()
        return make_store("doc"), make_store("rel")

    monkeypatch.setattr(trigger_module, "default_adapters", blocking_factory)
    results = {}

    def first_caller() -> None:
        results["first"] = trigger_module.run_reconciliation()

    worker = threading.Thread(target=first_caller)
    worker.start()
    assert entered.wait(timeout=5)

    second = trigger_module.run_reconciliation()
    release.set()
    worker.join(timeout=5)

    assert second.aborted is True
    assert second.reason == REASON_ALREADY_RUNNING
    assert results["first"].aborted is False
    assert max(peak) == 1
    assert trigger_module.default_trigger() is trigger_module.default_trigger()


def test_trigger_is_reusable_after_run_forever_is_stopped(make_store) -> None:
    stores = _Stores(make_store)
    stores.pairs["execution_time"] = (make_store("doc"), make_store("rel"))
    trigger = ReconciliationTrigger(kinds=["execution_time"], adapter_factory=stores)

    trigger.stop()
    assert trigger.run_forever(interval_seconds=0.01) == 0

    stores.pairs["execution_time"][0].seed("e1", updated_at=10)
    summary = trigger.run_reconciliation()

    assert summary.aborted is False
    assert summary.created_a_to_b == 1


def test_stop_outside_run_forever_sticks_until_resume(make_store) -> None:
    trigger = ReconciliationTrigger(kinds=["execution_time"], adapter_factory=_Stores(make_store))

    trigger.stop()
    assert trigger.run_reconciliation().reason == REASON_CANCELLED

    trigger.resume()
    assert trigger.run_reconciliation().aborted is False
