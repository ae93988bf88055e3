"""
Utilities package for benchsync.

Exports shared helpers for logging, profiling, and other cross-cutting concerns.
Keep this package lightweight and free of store-specific logic.
"""

from benchsync.utils.logging import configure_logging, get_logger
from benchsync.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
