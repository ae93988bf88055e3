"""
Registry of benchmark entity kinds.

Every kind is stored twice: as a table in the relational store and as a
collection in the document store. The reconciler itself is kind-agnostic; a
kind only tells the adapters where to look.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List

from benchsync.errors import UnknownKindError


@dataclass(frozen=True)
class EntityKind:
    name: str
    table: str
    collection: str
    description: str = ""


_KINDS: Dict[str, EntityKind] = {
    kind.name: kind
    for kind in (
        EntityKind(
            name="execution_time",
            table="execution_times",
            collection="executiontimes",
            description="Wall-clock execution time per code snippet.",
        ),
        EntityKind(
            name="memory_usage",
            table="memory_usage_benchmarks",
            collection="memoryusagebenchmarks",
            description="Heap usage per code snippet.",
        ),
        EntityKind(
            name="async_performance",
            table="async_performance_benchmarks",
            collection="asyncperformancebenchmarks",
            description="Async execution timings.",
        ),
        EntityKind(
            name="page_load",
            table="page_load_benchmarks",
            collection="pageloadbenchmarks",
            description="Page load timings.",
        ),
    )
}


def available_kinds() -> List[str]:
    """List registered kind names."""
    return sorted(_KINDS.keys())


def get_kind(name: str) -> EntityKind:
    if name not in _KINDS:
        raise UnknownKindError(f"Unknown kind '{name}'. Available: {', '.join(available_kinds())}")
    return _KINDS[name]


def resolve_kinds(names: Iterable[str]) -> List[EntityKind]:
    """
    Resolve kind names to `EntityKind` entries, expanding ``"all"``.

    Duplicates are dropped while preserving order.
    """
    requested = list(names)
    if not requested or "all" in requested:
        requested = available_kinds()

    resolved: List[EntityKind] = []
    seen = set()
    for name in requested:
        if name in seen:
            continue
        seen.add(name)
        resolved.append(get_kind(name))
    return resolved


__all__ = ["EntityKind", "available_kinds", "get_kind", "resolve_kinds"]
