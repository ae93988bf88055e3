"""
benchsync - dual-store reconciliation for benchmark records.

Benchmark results are written to whichever store is reachable at creation
time: a MongoDB document store or a PostgreSQL relational store. This package
keeps the two in agreement:

- A store-agnostic record model keyed by a correlation id
- One adapter per store hiding native ids, dialects and driver errors
- An availability probe that defers passes when a store is down
- A last-write-wins reconciler that is idempotent and tolerates partial failure
- A trigger enforcing one pass at a time, plus a CLI for one-shot and periodic runs
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from benchsync.config import Settings, get_settings
from benchsync.domain.kinds import EntityKind, available_kinds, resolve_kinds
from benchsync.domain.models import Record
from benchsync.domain.summary import ReconciliationSummary
from benchsync.errors import BenchSyncError, StoreUnavailable, StoreWriteError
from benchsync.probe import AvailabilityProbe, AvailabilityStatus
from benchsync.reconciler import Reconciler
from benchsync.stores.abstract import AbstractStoreAdapter, StoreAdapter
from benchsync.trigger import ReconciliationTrigger, run_reconciliation
from benchsync.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "EntityKind",
    "Record",
    "ReconciliationSummary",
    "available_kinds",
    "resolve_kinds",
    # Errors
    "BenchSyncError",
    "StoreUnavailable",
    "StoreWriteError",
    # Stores
    "AbstractStoreAdapter",
    "StoreAdapter",
    # Reconciliation
    "AvailabilityProbe",
    "AvailabilityStatus",
    "Reconciler",
    "ReconciliationTrigger",
    "run_reconciliation",
    # Logging
    "configure_logging",
    "get_logger",
]
