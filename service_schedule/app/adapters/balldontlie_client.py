"""
balldontlie NBA games client.
"""

from __future__ import annotations

import time
from datetime import date
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import httpx

from shared.errors import ExternalServiceError
from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


GAMES_PER_PAGE = 100


class BalldontlieClient:
    """Client for the balldontlie ``/v1/games`` endpoint."""

    provider = "balldontlie"

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        *,
        timeout: float = 10.0,
        metrics: Optional["MetricsCollector"] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.metrics = metrics
        self.logger = get_logger("schedule.balldontlie")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"accept": "application/json"},
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def fetch_games_by_date(self, day: date) -> List[Dict[str, Any]]:
        """Return the raw games scheduled on ``day``.

        Only the first page is requested; a single day never exceeds
        ``GAMES_PER_PAGE`` NBA games.
        """
        if not self.api_key:
            raise ExternalServiceError(
                service=self.provider,
                message="API key is not configured",
                details={"setting": "BALLDONTLIE_API_KEY"},
            )

        params = [("dates[]", day.isoformat()), ("per_page", str(GAMES_PER_PAGE))]
        start = time.perf_counter()
        result = "error"
        try:
            try:
                response = await self._client.get(
                    "/v1/games",
                    params=params,
                    headers={"Authorization": self.api_key},
                )
            except httpx.HTTPError as exc:
                self.logger.error("balldontlie request failed", date=day.isoformat(), error=str(exc))
                raise ExternalServiceError(
                    service=self.provider,
                    message=f"request failed: {exc}",
                ) from exc

            if not response.is_success:
                self.logger.error(
                    "balldontlie request returned error status",
                    date=day.isoformat(),
                    status_code=response.status_code,
                    response=response.text[:300],
                )
                raise ExternalServiceError(
                    service=self.provider,
                    message=f"HTTP {response.status_code} {response.reason_phrase}",
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

            data = payload.get("data") if isinstance(payload, dict) else None
            result = "ok"
            return data if isinstance(data, list) else []
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
