"""
Async ESPN scoreboard client used by the schedule service.
"""

from __future__ import annotations

import time
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING

import httpx

from shared.errors import ExternalServiceError
from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


SCOREBOARD_LIMIT = 500


def espn_dates_param(day: date) -> str:
    """ESPN expects dates as YYYYMMDD."""
    return day.strftime("%Y%m%d")


class EspnClient:
    """Lightweight async client for ESPN's public scoreboard API."""

    provider = "espn"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 12.0,
        football_leagues: Optional[List[str]] = None,
        cfb_groups: Optional[List[str]] = None,
        cbb_groups: Optional[List[str]] = None,
        metrics: Optional["MetricsCollector"] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.football_leagues = football_leagues or ["eng.1"]
        self.cfb_groups = cfb_groups or ["80"]
        self.cbb_groups = cbb_groups or ["50"]
        self.metrics = metrics
        self.logger = get_logger("schedule.espn")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"accept": "application/json", "user-agent": "sportify/1.0"},
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def fetch_scoreboard(
        self,
        sport_path: str,
        day: date,
        extra_params: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        """Return the raw events of one scoreboard, e.g. ``football/nfl``."""
        params: Dict[str, str] = {"dates": espn_dates_param(day), "limit": str(SCOREBOARD_LIMIT)}
        if extra_params:
            params.update(extra_params)

        payload = await self._get_json(f"/sports/{sport_path}/scoreboard", params)
        events = payload.get("events") if isinstance(payload, dict) else None
        return events if isinstance(events, list) else []

    async def fetch_nfl_events(self, day: date) -> List[Dict[str, Any]]:
        return await self.fetch_scoreboard("football/nfl", day)

    async def fetch_mma_events(self, day: date) -> List[Dict[str, Any]]:
        return await self.fetch_scoreboard("mma/ufc", day)

    async def fetch_football_events(self, day: date) -> List[Dict[str, Any]]:
        """Soccer events across every configured league."""
        requests = [(f"soccer/{league}", None) for league in self.football_leagues]
        return await self._collect(requests, day)

    async def fetch_cfb_events(self, day: date) -> List[Dict[str, Any]]:
        """College football events across every configured conference group."""
        requests = [("football/college-football", {"groups": group}) for group in self.cfb_groups]
        return await self._collect(requests, day)

    async def fetch_cbb_events(self, day: date) -> List[Dict[str, Any]]:
        """Men's college basketball events across every configured group."""
        requests = [("basketball/mens-college-basketball", {"groups": group}) for group in self.cbb_groups]
        return await self._collect(requests, day)

    async def _collect(
        self,
        requests: Iterable[Tuple[str, Optional[Dict[str, str]]]],
        day: date,
    ) -> List[Dict[str, Any]]:
        """Concatenate scoreboards, keeping the first occurrence of each event id."""
        events: List[Dict[str, Any]] = []
        seen = set()

        for sport_path, extra_params in requests:
            for event in await self.fetch_scoreboard(sport_path, day, extra_params):
                event_id = str(event.get("id") or "") if isinstance(event, dict) else ""
                if not event_id or event_id in seen:
                    continue
                seen.add(event_id)
                events.append(event)
        return events

    async def _get_json(self, path: str, params: Dict[str, str]) -> Any:
        start = time.perf_counter()
        result = "error"
        try:
            try:
                response = await self._client.get(path, params=params)
            except httpx.HTTPError as exc:
                self.logger.error("ESPN request failed", path=path, params=params, error=str(exc))
                raise ExternalServiceError(
                    service=self.provider,
                    message=f"request failed: {exc}",
                    details={"path": path},
                ) from exc

            if not response.is_success:
                self.logger.error(
                    "ESPN request returned error status",
                    path=path,
                    params=params,
                    status_code=response.status_code,
                )
                raise ExternalServiceError(
                    service=self.provider,
                    message=f"HTTP {response.status_code}",
                    details={"status_code": response.status_code, "body": response.text[:300]},
                )

            try:
                payload = response.json()
            except ValueError as exc:
                raise ExternalServiceError(
                    service=self.provider,
                    message="invalid JSON",
                    details={"body": response.text[:300]},
                ) from exc

            result = "ok"
            self.logger.debug("ESPN scoreboard retrieved", path=path, params=params)
            return payload
        finally:
            self._record_fetch(result, time.perf_counter() - start)

    def _record_fetch(self, result: str, duration: float) -> None:
        if not self.metrics:
            return

        try:
            self.metrics.increment_counter("upstream_fetch_total", provider=self.provider, result=result)
            self.metrics.observe_histogram("upstream_fetch_duration_seconds", duration, provider=self.provider)
        except Exception as exc:  # pragma: no cover - metrics failures should never break fetches
            self.logger.debug("Failed to record fetch metrics", error=str(exc))
