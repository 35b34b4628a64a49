"""
Tests for the upstream provider clients.
"""

from datetime import date

import httpx
import pytest

from service_schedule.app.adapters import BalldontlieClient, EspnClient
from service_schedule.app.adapters.espn_client import espn_dates_param
from shared.errors import ExternalServiceError


DAY = date(2026, 1, 25)
ESPN_BASE = "https://site.api.espn.com/apis/site/v2"
BDL_BASE = "https://api.balldontlie.io"


class RecordingTransport:
    """Builds an httpx.MockTransport that records every request."""

    def __init__(self, handler):
        self.requests = []
        self._handler = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def scoreboard(*event_ids):
    return {"events": [{"id": event_id, "name": f"event {event_id}"} for event_id in event_ids]}


class TestEspnClient:
    """Test cases for EspnClient."""

    def _client(self, handler, **kwargs):
        recorder = RecordingTransport(handler)
        client = EspnClient(ESPN_BASE, transport=recorder.transport(), **kwargs)
        return client, recorder

    def test_dates_param_is_compact(self):
        assert espn_dates_param(date(2026, 3, 7)) == "20260307"

    @pytest.mark.asyncio
    async def test_nfl_scoreboard_request(self):
        client, recorder = self._client(lambda request: httpx.Response(200, json=scoreboard("401")))

        events = await client.fetch_nfl_events(DAY)
        await client.close()

        assert [event["id"] for event in events] == ["401"]
        request = recorder.requests[0]
        assert request.url.path == "/apis/site/v2/sports/football/nfl/scoreboard"
        assert request.url.params["dates"] == "20260125"
        assert request.url.params["limit"] == "500"
        assert request.headers["user-agent"] == "sportify/1.0"

    @pytest.mark.asyncio
    async def test_mma_uses_ufc_scoreboard(self):
        client, recorder = self._client(lambda request: httpx.Response(200, json=scoreboard()))

        assert await client.fetch_mma_events(DAY) == []
        await client.close()

        assert recorder.requests[0].url.path.endswith("/sports/mma/ufc/scoreboard")

    @pytest.mark.asyncio
    async def test_missing_events_key_yields_empty_list(self):
        client, _ = self._client(lambda request: httpx.Response(200, json={"leagues": []}))

        assert await client.fetch_nfl_events(DAY) == []
        await client.close()

    @pytest.mark.asyncio
    async def test_football_merges_leagues_and_drops_duplicates(self):
        boards = {
            "/apis/site/v2/sports/soccer/eng.1/scoreboard": scoreboard("1", "2"),
            "/apis/site/v2/sports/soccer/uefa.champions/scoreboard": {
                "events": [{"id": "2"}, {"id": "3"}, {"name": "no id"}],
            },
        }
        client, recorder = self._client(
            lambda request: httpx.Response(200, json=boards[request.url.path]),
            football_leagues=["eng.1", "uefa.champions"],
        )

        events = await client.fetch_football_events(DAY)
        await client.close()

        assert [event["id"] for event in events] == ["1", "2", "3"]
        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_college_scoreboards_pass_group_params(self):
        client, recorder = self._client(
            lambda request: httpx.Response(200, json=scoreboard(request.url.params["groups"])),
            cfb_groups=["80", "81"],
            cbb_groups=["50"],
        )

        cfb = await client.fetch_cfb_events(DAY)
        cbb = await client.fetch_cbb_events(DAY)
        await client.close()

        assert [event["id"] for event in cfb] == ["80", "81"]
        assert [event["id"] for event in cbb] == ["50"]
        paths = [request.url.path for request in recorder.requests]
        assert paths[0].endswith("/sports/football/college-football/scoreboard")
        assert paths[2].endswith("/sports/basketball/mens-college-basketball/scoreboard")

    @pytest.mark.asyncio
    async def test_error_status_raises_external_service_error(self, dummy_metrics):
        client, _ = self._client(lambda request: httpx.Response(503, text="unavailable"), metrics=dummy_metrics)

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.fetch_nfl_events(DAY)
        await client.close()

        assert exc_info.value.details["status_code"] == 503
        assert exc_info.value.service == "espn"
        assert dummy_metrics.counters == [("upstream_fetch_total", {"provider": "espn", "result": "error"})]

    @pytest.mark.asyncio
    async def test_invalid_json_raises_external_service_error(self):
        client, _ = self._client(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(ExternalServiceError, match="invalid JSON"):
            await client.fetch_nfl_events(DAY)
        await client.close()

    @pytest.mark.asyncio
    async def test_transport_error_raises_external_service_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = self._client(handler)

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.fetch_nfl_events(DAY)
        await client.close()

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_successful_fetch_records_metrics(self, dummy_metrics):
        client, _ = self._client(lambda request: httpx.Response(200, json=scoreboard("1")), metrics=dummy_metrics)

        await client.fetch_nfl_events(DAY)
        await client.close()

        assert dummy_metrics.counters == [("upstream_fetch_total", {"provider": "espn", "result": "ok"})]
        assert dummy_metrics.histograms[0][0] == "upstream_fetch_duration_seconds"


class TestBalldontlieClient:
    """Test cases for BalldontlieClient."""

    @pytest.mark.asyncio
    async def test_games_request_carries_date_and_key(self):
        recorder = RecordingTransport(lambda request: httpx.Response(200, json={"data": [{"id": 1}], "meta": {}}))
        client = BalldontlieClient(BDL_BASE, "secret-key", transport=recorder.transport())

        games = await client.fetch_games_by_date(DAY)
        await client.close()

        assert games == [{"id": 1}]
        request = recorder.requests[0]
        assert request.url.path == "/v1/games"
        assert request.url.params.get_list("dates[]") == ["2026-01-25"]
        assert request.url.params["per_page"] == "100"
        assert request.headers["authorization"] == "secret-key"

    @pytest.mark.asyncio
    async def test_missing_api_key_fails_without_request(self):
        recorder = RecordingTransport(lambda request: httpx.Response(200, json={"data": []}))
        client = BalldontlieClient(BDL_BASE, None, transport=recorder.transport())

        with pytest.raises(ExternalServiceError, match="API key"):
            await client.fetch_games_by_date(DAY)
        await client.close()

        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_unauthorized_raises_external_service_error(self, dummy_metrics):
        recorder = RecordingTransport(lambda request: httpx.Response(401, json={"error": "Unauthorized"}))
        client = BalldontlieClient(BDL_BASE, "bad", metrics=dummy_metrics, transport=recorder.transport())

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.fetch_games_by_date(DAY)
        await client.close()

        assert exc_info.value.details["status_code"] == 401
        assert dummy_metrics.counters == [("upstream_fetch_total", {"provider": "balldontlie", "result": "error"})]

    @pytest.mark.asyncio
    async def test_payload_without_data_yields_empty_list(self):
        recorder = RecordingTransport(lambda request: httpx.Response(200, json={"meta": {}}))
        client = BalldontlieClient(BDL_BASE, "key", transport=recorder.transport())

        assert await client.fetch_games_by_date(DAY) == []
        await client.close()
