"""
Shared fixtures for schedule service tests.
"""

from datetime import datetime, timedelta, timezone

import pytest


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current = self.current + delta


class DummyMetrics:
    """Minimal metrics collector stub."""

    def __init__(self):
        self.counters = []
        self.histograms = []

    def increment_counter(self, metric_name: str, **labels):
        self.counters.append((metric_name, labels))

    def observe_histogram(self, metric_name: str, value: float, **labels):
        self.histograms.append((metric_name, value, labels))

    def outcomes(self):
        return [labels["outcome"] for name, labels in self.counters if name == "cache_lookups_total"]


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 25, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def dummy_metrics():
    return DummyMetrics()
