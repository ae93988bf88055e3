"""
Availability probe: is every store reachable right now?

Pings run concurrently and are each bounded by a short timeout. There are no
retries here; a false negative only defers reconciliation to the next trigger.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from benchsync.config import get_settings
from benchsync.errors import StoreUnavailable
from benchsync.stores.abstract import StoreAdapter
from benchsync.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class AvailabilityStatus:
    """Reachability per store name."""

    stores: Dict[str, bool]

    @property
    def all_available(self) -> bool:
        return bool(self.stores) and all(self.stores.values())

    @property
    def unavailable(self) -> List[str]:
        return [name for name, ok in self.stores.items() if not ok]

    def __getitem__(self, name: str) -> bool:
        return self.stores[name]


class AvailabilityProbe:
    """
    Check reachability of a fixed set of adapters.

    Parameters
    ----------
    adapters : sequence of StoreAdapter
        Adapters to ping; their `name` attributes must be distinct.
    timeout_seconds : float | None
        Overall bound for one `check_status` call. Defaults to
        PROBE_TIMEOUT_SECONDS.
    """

    def __init__(
        self, adapters: Sequence[StoreAdapter], timeout_seconds: Optional[float] = None
    ) -> None:
        names = [adapter.name for adapter in adapters]
        if len(set(names)) != len(names):
            raise ValueError(f"Adapter names must be distinct, got {names}")
        self.adapters = list(adapters)
        self.timeout_seconds = timeout_seconds or get_settings().probe_timeout_seconds

    def check_status(self) -> AvailabilityStatus:
        executor = ThreadPoolExecutor(max_workers=len(self.adapters) or 1, thread_name_prefix="probe")
        try:
            futures = {adapter.name: executor.submit(adapter.ping) for adapter in self.adapters}
            deadline = time.monotonic() + self.timeout_seconds
            stores: Dict[str, bool] = {}
            for name, future in futures.items():
                try:
                    future.result(timeout=max(0.0, deadline - time.monotonic()))
                    stores[name] = True
                except FutureTimeout:
                    log.warning(f"[PROBE] {name} did not answer in time", extra={"store": name})
                    stores[name] = False
                except StoreUnavailable as exc:
                    log.warning(f"[PROBE] {name} unreachable", extra={"store": name, "error": str(exc)})
                    stores[name] = False
                except Exception as exc:  # noqa: BLE001 - any ping failure means "not reachable"
                    log.warning(
                        f"[PROBE] {name} ping failed unexpectedly",
                        extra={"store": name, "error": repr(exc)},
                    )
                    stores[name] = False
        finally:
            # A hung ping must not hold the caller; its own driver timeout ends it.
            executor.shutdown(wait=False, cancel_futures=True)

        status = AvailabilityStatus(stores=stores)
        log.debug("[PROBE] status", extra={"stores": stores})
        return status


__all__ = ["AvailabilityProbe", "AvailabilityStatus"]
