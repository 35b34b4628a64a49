"""
Unit tests for the fixed-window rate limiter.
"""

from unittest.mock import MagicMock

import pytest

from service_schedule.app.ratelimit import FixedWindowRateLimiter, get_client_id


class FakeMonotonic:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestFixedWindowRateLimiter:
    """Test cases for FixedWindowRateLimiter."""

    @pytest.fixture
    def ticker(self):
        return FakeMonotonic()

    @pytest.fixture
    def rate_limiter(self, ticker):
        return FixedWindowRateLimiter({"schedule": 3}, clock=ticker)

    @pytest.mark.asyncio
    async def test_requests_within_limit_are_allowed(self, rate_limiter):
        first = await rate_limiter.check_rate_limit("1.2.3.4", "/schedule", "schedule")
        second = await rate_limiter.check_rate_limit("1.2.3.4", "/schedule", "schedule")

        assert first["allowed"] is True
        assert first["remaining"] == 2
        assert second["current_count"] == 2
        assert second["remaining"] == 1
        assert second["limit"] == 3
        assert second["reset_in_seconds"] == 60

    @pytest.mark.asyncio
    async def test_requests_over_limit_are_denied(self, rate_limiter):
        for _ in range(3):
            await rate_limiter.check_rate_limit("1.2.3.4", "/schedule", "schedule")

        result = await rate_limiter.check_rate_limit("1.2.3.4", "/schedule", "schedule")

        assert result["allowed"] is False
        assert result["remaining"] == 0
        assert result["current_count"] == 3
        assert result["retry_after"] == result["reset_in_seconds"]

    @pytest.mark.asyncio
    async def test_window_resets_after_sixty_seconds(self, rate_limiter, ticker):
        for _ in range(3):
            await rate_limiter.check_rate_limit("1.2.3.4", "/schedule", "schedule")

        ticker.now += 45
        denied = await rate_limiter.check_rate_limit("1.2.3.4", "/schedule", "schedule")
        ticker.now += 15
        allowed = await rate_limiter.check_rate_limit("1.2.3.4", "/schedule", "schedule")

        assert denied["allowed"] is False
        assert denied["reset_in_seconds"] == 15
        assert allowed["allowed"] is True
        assert allowed["current_count"] == 1

    @pytest.mark.asyncio
    async def test_clients_and_endpoints_are_counted_separately(self, rate_limiter):
        for _ in range(3):
            await rate_limiter.check_rate_limit("1.2.3.4", "/schedule", "schedule")

        other_client = await rate_limiter.check_rate_limit("5.6.7.8", "/schedule", "schedule")
        other_endpoint = await rate_limiter.check_rate_limit("1.2.3.4", "/nba/games", "schedule")

        assert other_client["allowed"] is True
        assert other_endpoint["allowed"] is True

    @pytest.mark.asyncio
    async def test_unknown_limit_type_uses_public_limit(self, rate_limiter):
        result = await rate_limiter.check_rate_limit("1.2.3.4", "/schedule", "partner")

        assert result["limit"] == 120

    @pytest.mark.asyncio
    async def test_reset_rate_limit(self, rate_limiter):
        for _ in range(3):
            await rate_limiter.check_rate_limit("1.2.3.4", "/schedule", "schedule")

        assert await rate_limiter.reset_rate_limit("1.2.3.4", "/schedule") is True
        assert await rate_limiter.reset_rate_limit("1.2.3.4", "/schedule") is False

        result = await rate_limiter.check_rate_limit("1.2.3.4", "/schedule", "schedule")
        assert result["current_count"] == 1

    @pytest.mark.asyncio
    async def test_expired_windows_are_pruned(self, ticker):
        limiter = FixedWindowRateLimiter({"schedule": 5}, clock=ticker, max_tracked_keys=2)
        await limiter.check_rate_limit("a", "/schedule", "schedule")
        await limiter.check_rate_limit("b", "/schedule", "schedule")

        ticker.now += 61
        await limiter.check_rate_limit("c", "/schedule", "schedule")

        assert len(limiter._windows) == 1

    @pytest.mark.asyncio
    async def test_tracked_windows_are_capped_by_evicting_oldest(self, ticker):
        limiter = FixedWindowRateLimiter({"schedule": 5}, clock=ticker, max_tracked_keys=3)

        for client in ("a", "b", "c", "d", "e"):
            await limiter.check_rate_limit(client, "/schedule", "schedule")
            ticker.now += 1

        assert len(limiter._windows) == 3
        assert list(limiter._windows) == [limiter._make_key(client, "/schedule") for client in ("c", "d", "e")]

    @pytest.mark.asyncio
    async def test_restarted_window_moves_behind_newer_ones(self, ticker):
        limiter = FixedWindowRateLimiter({"schedule": 5}, clock=ticker, max_tracked_keys=2)
        await limiter.check_rate_limit("a", "/schedule", "schedule")
        ticker.now += 30
        await limiter.check_rate_limit("b", "/schedule", "schedule")
        ticker.now += 31
        await limiter.check_rate_limit("a", "/schedule", "schedule")
        await limiter.check_rate_limit("c", "/schedule", "schedule")

        assert list(limiter._windows) == [limiter._make_key(client, "/schedule") for client in ("a", "c")]


class TestGetClientId:
    """Test cases for caller identification."""

    def _request(self, headers, host="10.0.0.1"):
        request = MagicMock()
        request.headers = headers
        request.client.host = host
        return request

    def test_forwarded_for_takes_first_hop(self):
        assert get_client_id(self._request({"X-Forwarded-For": "203.0.113.9, 10.0.0.2"})) == "203.0.113.9"

    def test_real_ip_header(self):
        assert get_client_id(self._request({"X-Real-IP": "198.51.100.4"})) == "198.51.100.4"

    def test_falls_back_to_socket_peer(self):
        assert get_client_id(self._request({})) == "10.0.0.1"

    def test_unknown_without_client(self):
        request = self._request({})
        request.client = None

        assert get_client_id(request) == "unknown"
