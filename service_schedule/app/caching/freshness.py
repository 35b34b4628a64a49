"""
Freshness policy: how long a cached schedule stays fresh.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional


_DATE_PATTERN = re.compile(r"(\d{4})-(\d{2})-(\d{2})")

DEFAULT_TODAY_TTL = timedelta(minutes=5)
DEFAULT_OTHER_TTL = timedelta(hours=6)


def today_utc(now: Optional[datetime] = None) -> date:
    """Return the current UTC calendar date."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).date()


def date_in_key(key: str) -> Optional[date]:
    """Return the first valid YYYY-MM-DD date embedded in a cache key."""
    for match in _DATE_PATTERN.finditer(key):
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            continue
    return None


class FreshnessPolicy:
    """Maps a cache key and the current time onto a TTL.

    Schedules for the current UTC day change while games are in progress and
    get the short TTL; every other date (past, future or undated keys) gets
    the long one.
    """

    def __init__(
        self,
        today_ttl: timedelta = DEFAULT_TODAY_TTL,
        default_ttl: timedelta = DEFAULT_OTHER_TTL,
    ) -> None:
        self.today_ttl = today_ttl
        self.default_ttl = default_ttl

    def ttl(self, key: str, now: datetime) -> timedelta:
        """Return the freshness window for ``key`` evaluated at ``now``."""
        key_date = date_in_key(key)
        if key_date is not None and key_date == today_utc(now):
            return self.today_ttl
        return self.default_ttl
