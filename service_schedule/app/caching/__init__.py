"""
Schedule caching package.

Read-through file cache used by the schedule routes: a durable envelope
store, a date-aware freshness policy, and the cache-aside engine that ties
them to upstream fetchers with stale fallback on failure.
"""

from .engine import CacheEngine, CacheResult
from .file_store import CacheEnvelope, FileEntryStore
from .freshness import FreshnessPolicy, today_utc
from .single_flight import SingleFlight

__all__ = [
    "CacheEngine",
    "CacheEnvelope",
    "CacheResult",
    "FileEntryStore",
    "FreshnessPolicy",
    "SingleFlight",
    "today_utc",
]
