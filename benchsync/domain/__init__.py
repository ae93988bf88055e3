"""
Domain package for benchsync.

Exports the record model, the entity-kind registry and the pass summary.
Keep this package focused on data definitions and validation concerns.
"""

from benchsync.domain.kinds import EntityKind, available_kinds, get_kind, resolve_kinds
from benchsync.domain.models import Record, utcnow
from benchsync.domain.summary import ReconciliationSummary

__all__ = [
    "EntityKind",
    "Record",
    "ReconciliationSummary",
    "available_kinds",
    "get_kind",
    "resolve_kinds",
    "utcnow",
]
