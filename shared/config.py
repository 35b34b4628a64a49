"""
Shared configuration management for the Sportify schedule service.
"""

from datetime import timedelta
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class BaseConfig(BaseSettings):
    """Base configuration class with common settings.

    Environment variable names match the field names (case-insensitive), so
    ``CACHE_DIR`` populates ``cache_dir`` and so on.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    app_env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Cache
    cache_dir: str = Field(default=".cache")
    cache_ttl_today_seconds: int = Field(default=300, ge=0)
    cache_ttl_default_seconds: int = Field(default=6 * 60 * 60, ge=0)
    cache_single_flight: bool = Field(default=True)

    # ESPN scoreboard
    espn_base_url: str = Field(default="https://site.api.espn.com/apis/site/v2")
    espn_timeout_ms: int = Field(default=12_000, gt=0)
    football_leagues: str = Field(default="eng.1")
    cfb_groups: str = Field(default="80")
    cbb_groups: str = Field(default="50")

    # balldontlie
    balldontlie_base_url: str = Field(default="https://api.balldontlie.io")
    balldontlie_api_key: Optional[str] = Field(default=None)
    balldontlie_timeout_ms: int = Field(default=10_000, gt=0)

    # HTTP surface
    allowed_origins: str = Field(default="")
    schedule_rate_limit_per_minute: int = Field(default=120, gt=0)

    @property
    def football_league_list(self) -> List[str]:
        return _split_csv(self.football_leagues) or ["eng.1"]

    @property
    def cfb_group_list(self) -> List[str]:
        return _split_csv(self.cfb_groups) or ["80"]

    @property
    def cbb_group_list(self) -> List[str]:
        return _split_csv(self.cbb_groups) or ["50"]

    @property
    def allowed_origin_list(self) -> List[str]:
        return _split_csv(self.allowed_origins)

    @property
    def cache_ttl_today(self) -> timedelta:
        return timedelta(seconds=self.cache_ttl_today_seconds)

    @property
    def cache_ttl_default(self) -> timedelta:
        return timedelta(seconds=self.cache_ttl_default_seconds)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str = "schedule"
    port: int = 3000
    host: str = "0.0.0.0"


def get_config(service_name: str, **overrides) -> ServiceConfig:
    """Build the configuration for a service once, at process start."""
    return ServiceConfig(service_name=service_name, **overrides)
