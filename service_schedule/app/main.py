"""
Schedule service: unified sports schedules over cached upstream providers.
"""

import asyncio
import re
from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fastapi import Query, Request, Response

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import RateLimitError, ValidationError
from shared.logging import set_client_context

from .adapters import BalldontlieClient, EspnClient
from .caching import CacheEngine, CacheResult, FileEntryStore, FreshnessPolicy, today_utc
from .caching.engine import Clock, utc_now
from .normalization import SUPPORTED_SPORTS, normalize_games
from .ratelimit import FixedWindowRateLimiter, get_client_id


_DATE_PARAM = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TRUTHY = {"1", "true", "yes", "y"}

SPORT_PROVIDERS: Dict[str, str] = {
    "nba": "balldontlie",
    "nfl": "espn",
    "football": "espn",
    "cbb": "espn",
    "cfb": "espn",
    "mma": "espn",
}

CACHE_CONTROL = "public, max-age=30"


def truthy_param(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in _TRUTHY


class ScheduleService(BaseService):
    """Schedule API service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        espn_client: Optional[EspnClient] = None,
        balldontlie_client: Optional[BalldontlieClient] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__("schedule", config)
        self.clock = clock or utc_now

        self.store = FileEntryStore(self.config.cache_dir)
        self.cache_engine = CacheEngine(
            self.store,
            clock=self.clock,
            single_flight=self.config.cache_single_flight,
            metrics=self.metrics,
        )
        self.freshness_policy = FreshnessPolicy(
            today_ttl=self.config.cache_ttl_today,
            default_ttl=self.config.cache_ttl_default,
        )

        self.espn_client = espn_client or EspnClient(
            self.config.espn_base_url,
            timeout=self.config.espn_timeout_ms / 1000,
            football_leagues=self.config.football_league_list,
            cfb_groups=self.config.cfb_group_list,
            cbb_groups=self.config.cbb_group_list,
            metrics=self.metrics,
        )
        self.balldontlie_client = balldontlie_client or BalldontlieClient(
            self.config.balldontlie_base_url,
            self.config.balldontlie_api_key,
            timeout=self.config.balldontlie_timeout_ms / 1000,
            metrics=self.metrics,
        )

        self.rate_limiter = FixedWindowRateLimiter(
            {"schedule": self.config.schedule_rate_limit_per_minute}
        )

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.espn_client.close()
            await self.balldontlie_client.close()

        self._setup_schedule_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.schedule_service = self

    def _fetcher_for(self, sport: str) -> Callable[[date], Awaitable[List[Dict[str, Any]]]]:
        """Resolve the upstream fetch function for a sport at call time."""
        fetchers = {
            "nba": self.balldontlie_client.fetch_games_by_date,
            "nfl": self.espn_client.fetch_nfl_events,
            "football": self.espn_client.fetch_football_events,
            "cbb": self.espn_client.fetch_cbb_events,
            "cfb": self.espn_client.fetch_cfb_events,
            "mma": self.espn_client.fetch_mma_events,
        }
        return fetchers[sport]

    def _resolve_date(self, value: Optional[str]) -> date:
        """Parse the ``date`` query parameter, defaulting to today in UTC."""
        candidate = (value or "").strip()
        if not candidate:
            return today_utc(self.clock())

        if not _DATE_PARAM.match(candidate):
            raise ValidationError("Invalid date format", {"got": candidate, "expected": "YYYY-MM-DD"})
        try:
            return date.fromisoformat(candidate)
        except ValueError as exc:
            raise ValidationError("Invalid date", {"got": candidate}) from exc

    async def get_games(self, sport: str, date_param: Optional[str], force_refresh: bool) -> Dict[str, Any]:
        """Serve one sport's games for a day through the read-through cache."""
        day = self._resolve_date(date_param)
        day_str = day.isoformat()
        key = f"{sport}/games/{day_str}.json"
        fetcher = self._fetcher_for(sport)

        async def fetch() -> List[Dict[str, Any]]:
            return await fetcher(day)

        if force_refresh:
            result: CacheResult = await self.cache_engine.refresh(key, fetch)
        else:
            ttl = self.freshness_policy.ttl(key, self.clock())
            result = await self.cache_engine.get_or_fetch(key, ttl, fetch)

        envelope = result.to_dict()
        return {
            "date": day_str,
            "provider": SPORT_PROVIDERS[sport],
            "cached": envelope["cached"],
            "stale": envelope["stale"],
            "fetchedAt": envelope["fetchedAt"],
            "data": normalize_games(sport, result.value, day_str),
        }

    async def _enforce_rate_limit(self, request: Request, endpoint: str) -> Dict[str, Any]:
        """Check the rate limiter for the caller."""
        client_id = get_client_id(request)
        set_client_context(client_id)
        result = await self.rate_limiter.check_rate_limit(client_id, endpoint, "schedule")

        if not result.get("allowed", False):
            self.metrics.increment_counter("rate_limit_hits_total", endpoint=endpoint)
            raise RateLimitError(
                details={
                    "limit": result.get("limit"),
                    "current_count": result.get("current_count"),
                    "reset_in_seconds": result.get("reset_in_seconds"),
                }
            )
        return result

    def _set_rate_limit_headers(self, response: Response, rate_result: Dict[str, Any]) -> None:
        """Propagate rate limiting metadata via standard headers."""
        limit = rate_result.get("limit")
        remaining = rate_result.get("remaining")
        reset = rate_result.get("reset_in_seconds")

        if limit is not None:
            response.headers["X-RateLimit-Limit"] = str(limit)
        if remaining is not None:
            response.headers["X-RateLimit-Remaining"] = str(remaining)
        if reset is not None:
            response.headers["X-RateLimit-Reset"] = str(reset)

    async def _check_dependencies(self) -> Dict[str, str]:
        loop = asyncio.get_running_loop()
        writable = await loop.run_in_executor(None, self.store.check_writable)
        return {"cache_dir": "ok" if writable else "error"}

    def _setup_schedule_routes(self):
        """Set up per-sport and combined schedule routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "schedule",
                "message": "Sportify - Unified sports schedule API",
                "version": "1.0.0",
                "sports": list(SUPPORTED_SPORTS),
            }

        for sport in SUPPORTED_SPORTS:
            self._add_games_route(sport)

        @self.app.get("/schedule")
        async def get_schedule(
            request: Request,
            response: Response,
            sport: Optional[str] = Query(None),
            date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today (UTC)"),
            forceRefresh: Optional[str] = Query(None),
        ):
            """Dispatch to the per-sport handler selected by ``sport``."""
            rate_result = await self._enforce_rate_limit(request, "/schedule")
            self._set_rate_limit_headers(response, rate_result)

            normalized = (sport or "").strip().lower()
            if not normalized:
                raise ValidationError(
                    "Missing query param: sport",
                    {"example": "/schedule?sport=nba&date=2026-01-25"},
                )
            if normalized not in SPORT_PROVIDERS:
                raise ValidationError(
                    "Unsupported sport",
                    {"sport": normalized, "supported": list(SUPPORTED_SPORTS)},
                )

            payload = await self.get_games(normalized, date, truthy_param(forceRefresh))
            response.headers["cache-control"] = CACHE_CONTROL
            return {"sport": normalized, **payload}

    def _add_games_route(self, sport: str) -> None:
        async def get_sport_games(
            response: Response,
            date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today (UTC)"),
            forceRefresh: Optional[str] = Query(None),
        ):
            payload = await self.get_games(sport, date, truthy_param(forceRefresh))
            response.headers["cache-control"] = CACHE_CONTROL
            return payload

        get_sport_games.__doc__ = f"Return {sport} games for a day."
        self.app.add_api_route(
            f"/{sport}/games",
            get_sport_games,
            methods=["GET"],
            name=f"{sport}_games",
        )


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = ScheduleService(config, **kwargs)
    return service.app


if __name__ == "__main__":
    service = ScheduleService()
    service.run()
