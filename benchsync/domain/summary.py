"""
Summary contract returned by every reconciliation pass.

The summary is the only thing the caller of a pass ever sees: store errors are
folded into its counters and `aborted`/`reason` fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

REASON_STORE_UNAVAILABLE = "store_unavailable"
REASON_CANCELLED = "cancelled"
REASON_ALREADY_RUNNING = "already_running"
REASON_INTERNAL_ERROR = "internal_error"

_COUNTERS = (
    "created_a_to_b",
    "created_b_to_a",
    "updated_a_to_b",
    "updated_b_to_a",
    "skipped",
    "conflicts",
)


@dataclass
class ReconciliationSummary:
    """
    Outcome of one reconciliation pass (or several passes combined with ``+``).
    """

    created_a_to_b: int = 0
    created_b_to_a: int = 0
    updated_a_to_b: int = 0
    updated_b_to_a: int = 0
    skipped: int = 0
    conflicts: int = 0
    aborted: bool = False
    reason: Optional[str] = None
    duration_seconds: float = 0.0
    peak_rss_bytes: Optional[int] = None
    kinds: Dict[str, "ReconciliationSummary"] = field(default_factory=dict)

    @classmethod
    def aborted_with(cls, reason: str) -> "ReconciliationSummary":
        return cls(aborted=True, reason=reason)

    @property
    def writes(self) -> int:
        return self.created_a_to_b + self.created_b_to_a + self.updated_a_to_b + self.updated_b_to_a

    def abort(self, reason: str) -> None:
        self.aborted = True
        if self.reason is None:
            self.reason = reason

    def __add__(self, other: "ReconciliationSummary") -> "ReconciliationSummary":
        if not isinstance(other, ReconciliationSummary):
            return NotImplemented
        combined = ReconciliationSummary(
            **{name: getattr(self, name) + getattr(other, name) for name in _COUNTERS}
        )
        combined.aborted = self.aborted or other.aborted
        combined.reason = self.reason or other.reason
        combined.duration_seconds = self.duration_seconds + other.duration_seconds
        peaks = [p for p in (self.peak_rss_bytes, other.peak_rss_bytes) if p is not None]
        combined.peak_rss_bytes = max(peaks) if peaks else None
        combined.kinds = {**self.kinds, **other.kinds}
        return combined

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {name: getattr(self, name) for name in _COUNTERS}
        payload["aborted"] = self.aborted
        payload["reason"] = self.reason
        payload["duration_seconds"] = round(self.duration_seconds, 3)
        payload["peak_rss_bytes"] = self.peak_rss_bytes
        if self.kinds:
            payload["kinds"] = {name: s.as_dict() for name, s in self.kinds.items()}
        return payload


__all__ = [
    "REASON_ALREADY_RUNNING",
    "REASON_CANCELLED",
    "REASON_INTERNAL_ERROR",
    "REASON_STORE_UNAVAILABLE",
    "ReconciliationSummary",
]
