"""
Cache-aside engine for upstream schedule lookups.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, TYPE_CHECKING

from shared.errors import CorruptEntryError, FetchFailedError, StoreUnavailableError
from shared.logging import get_logger

from .file_store import CacheEnvelope, FileEntryStore, format_timestamp
from .single_flight import SingleFlight

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


FetchFunc = Callable[[], Awaitable[Any]]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheResult:
    """Outcome of a cache lookup, returned on every successful path."""

    value: Any
    cached: bool
    stale: bool
    fetched_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "cached": self.cached,
            "stale": self.stale,
            "fetchedAt": format_timestamp(self.fetched_at),
        }


class CacheEngine:
    """Read-through cache over a :class:`FileEntryStore`.

    ``get_or_fetch`` serves a stored envelope while it is younger than the
    TTL supplied for the call, otherwise invokes the caller's fetch function
    and persists the result. When the fetch fails, any stored envelope is
    returned flagged stale; without one the failure propagates as
    :class:`FetchFailedError`.

    With ``single_flight`` enabled, concurrent misses for the same key share
    one fetch. Disabled, every caller fetches and writes independently.
    """

    def __init__(
        self,
        store: FileEntryStore,
        *,
        clock: Optional[Clock] = None,
        single_flight: bool = True,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("schedule.cache_engine")
        self._clock = clock or utc_now
        self._single_flight = SingleFlight() if single_flight else None

    def now(self) -> datetime:
        return self._clock()

    async def get_or_fetch(self, key: str, ttl: timedelta, fetch: FetchFunc) -> CacheResult:
        """Return a fresh cached value for ``key`` or fetch and store a new one."""
        envelope = await self._read(key)
        if envelope is not None:
            age = self.now() - envelope.fetched_at
            if age <= ttl:
                self.logger.debug("Cache hit", key=key, age_seconds=age.total_seconds())
                self._record_outcome("hit")
                return CacheResult(
                    value=envelope.value,
                    cached=True,
                    stale=False,
                    fetched_at=envelope.fetched_at,
                )
            self.logger.debug(
                "Cache entry expired",
                key=key,
                age_seconds=age.total_seconds(),
                ttl_seconds=ttl.total_seconds(),
            )

        if self._single_flight is not None:
            return await self._single_flight.do(key, lambda: self._fetch_through(key, fetch))
        return await self._fetch_through(key, fetch)

    async def refresh(self, key: str, fetch: FetchFunc) -> CacheResult:
        """Fetch ``key`` unconditionally, persist it, and never fall back."""
        try:
            value = await fetch()
        except Exception as exc:
            self.logger.error("Forced refresh failed", key=key, error=str(exc))
            self._record_outcome("error")
            raise FetchFailedError(key, exc) from exc

        return await self._store_fresh(key, value, outcome="refresh")

    async def _fetch_through(self, key: str, fetch: FetchFunc) -> CacheResult:
        try:
            value = await fetch()
        except Exception as exc:
            return await self._fallback(key, exc)

        return await self._store_fresh(key, value, outcome="miss")

    async def _store_fresh(self, key: str, value: Any, *, outcome: str) -> CacheResult:
        envelope = CacheEnvelope(value=value, fetched_at=self.now())
        await self._run(self.store.write, key, envelope)

        self.logger.info("Cache entry refreshed", key=key, outcome=outcome)
        self._record_outcome(outcome)
        return CacheResult(value=value, cached=False, stale=False, fetched_at=envelope.fetched_at)

    async def _fallback(self, key: str, error: Exception) -> CacheResult:
        try:
            envelope = await self._read(key)
        except StoreUnavailableError as exc:
            self.logger.error("Stale fallback read failed", key=key, error=str(exc))
            envelope = None

        if envelope is None:
            self.logger.error("Fetch failed and no cached entry exists", key=key, error=str(error))
            self._record_outcome("error")
            raise FetchFailedError(key, error) from error

        self.logger.warning(
            "Serving stale cache entry after fetch failure",
            key=key,
            fetched_at=format_timestamp(envelope.fetched_at),
            error=str(error),
        )
        self._record_outcome("stale")
        return CacheResult(
            value=envelope.value,
            cached=True,
            stale=True,
            fetched_at=envelope.fetched_at,
        )

    async def _read(self, key: str) -> Optional[CacheEnvelope]:
        """Read an envelope, treating corrupt entries as a miss."""
        try:
            return await self._run(self.store.read, key)
        except CorruptEntryError as exc:
            self.logger.warning("Discarding corrupt cache entry", key=key, error=exc.message)
            self._record_outcome("corrupt")
            return None

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run blocking store I/O in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    def _record_outcome(self, outcome: str) -> None:
        if not self.metrics:
            return

        try:
            self.metrics.increment_counter("cache_lookups_total", outcome=outcome)
        except Exception as exc:  # pragma: no cover - metrics failures should never break lookups
            self.logger.debug("Failed to record cache metrics", error=str(exc))
