from __future__ import annotations

import threading
import time

import pytest

from benchsync.probe import AvailabilityProbe

PROBE_TIMEOUT = 0.2


def test_all_reachable(store_a, store_b) -> None:
    status = AvailabilityProbe([store_a, store_b], timeout_seconds=PROBE_TIMEOUT).check_status()

    assert status.all_available is True
    assert status[store_a.name] is True
    assert status.unavailable == []


def test_unreachable_store_is_reported(store_a, store_b) -> None:
    store_b.reachable = False

    status = AvailabilityProbe([store_a, store_b], timeout_seconds=PROBE_TIMEOUT).check_status()

    assert status.all_available is False
    assert status.stores == {store_a.name: True, store_b.name: False}
    assert status.unavailable == [store_b.name]


def test_unexpected_ping_error_counts_as_unreachable(store_a, store_b) -> None:
    def broken_ping() -> None:
        raise OSError("network is down")

    store_a.ping = broken_ping

    status = AvailabilityProbe([store_a, store_b], timeout_seconds=PROBE_TIMEOUT).check_status()

    assert status[store_a.name] is False
    assert status[store_b.name] is True


def test_hanging_ping_is_bounded_by_timeout(store_a, store_b) -> None:
    release = threading.Event()

    def slow_ping() -> None:
        release.wait(timeout=5)

    store_b.ping = slow_ping

    start = time.perf_counter()
    status = AvailabilityProbe([store_a, store_b], timeout_seconds=PROBE_TIMEOUT).check_status()
    elapsed = time.perf_counter() - start
    release.set()

    assert status[store_b.name] is False
    assert elapsed < 2


def test_probe_does_not_retry(store_a, store_b) -> None:
    store_b.reachable = False

    AvailabilityProbe([store_a, store_b], timeout_seconds=PROBE_TIMEOUT).check_status()

    assert store_b.calls == ["ping"]


def test_duplicate_adapter_names_are_rejected(make_store) -> None:
    with pytest.raises(ValueError, match="distinct"):
        AvailabilityProbe([make_store("same"), make_store("same")])


def test_empty_probe_is_never_available() -> None:
    status = AvailabilityProbe([], timeout_seconds=PROBE_TIMEOUT).check_status()

    assert status.all_available is False
