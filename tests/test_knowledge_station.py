"""Tests for the Knowledge Station client, parser and adapter."""

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from rail_live.adapters.knowledge_station_api import (
    KnowledgeStationAdapter,
    KnowledgeStationHttpClient,
)
from rail_live.adapters.knowledge_station_api.http_client import PLACEHOLDER_TOKEN
from rail_live.adapters.knowledge_station_api.parser import (
    parse_disruptions,
    parse_service_tracking,
    parse_station_info,
)
from rail_live.domain.errors import (
    CapabilityUnsupported,
    ConfigurationMissing,
    ParseError,
    TransportError,
)
from rail_live.domain.models.station_board_request import StationBoardRequest

API_URL = "https://ks.example/api/"

KGX_STATION = {
    "crs": "kgx",
    "name": "London Kings Cross",
    "facilities": ["Toilets", "Waiting Room"],
    "accessibility": {"wheelchairAccess": True, "inductionLoop": True},
    "contacts": {"phone": "03457 48 49 50"},
    "latitude": 51.5308,
    "longitude": -0.1238,
    "region": "London",
    "operator": "Network Rail",
}


def _response(status: int, payload: object = None, content_type: str = "application/json") -> MagicMock:
    response = MagicMock()
    response.status = status
    response.headers = {"Content-Type": content_type}
    response.json = AsyncMock(return_value=payload)
    response.text = AsyncMock(return_value=str(payload))
    return response


def _context(response: MagicMock) -> MagicMock:
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)
    return context


def _client(session: MagicMock, **kwargs: object) -> KnowledgeStationHttpClient:
    return KnowledgeStationHttpClient(session, API_URL, token="ks-token", backoff_seconds=0, **kwargs)


class TestParseStationInfo:
    """Tests for station record parsing."""

    def test_when_full_record_then_all_fields_mapped(self) -> None:
        """Given a complete station record, when parsing, then every field is carried over."""
        info = parse_station_info(KGX_STATION)

        assert info.code == "KGX"
        assert info.facilities == ("Toilets", "Waiting Room")
        assert info.accessibility.wheelchair_access is True
        assert info.accessibility.assistance_available is False
        assert info.coordinates is not None
        assert info.coordinates.latitude == pytest.approx(51.5308)
        assert info.source == "knowledge-station"

    def test_when_name_missing_then_parse_error(self) -> None:
        """Given a record without a name, when parsing, then ParseError is raised."""
        with pytest.raises(ParseError):
            parse_station_info({"crs": "KGX"})

    @pytest.mark.parametrize(
        ("field", "value"),
        [("latitude", "north"), ("facilities", 5), ("accessibility", "step free")],
    )
    def test_when_field_malformed_then_parse_error(self, field: str, value: object) -> None:
        """Given a record with a malformed field, when parsing, then ParseError is raised."""
        with pytest.raises(ParseError):
            parse_station_info({**KGX_STATION, field: value})


class TestParseServiceTracking:
    """Tests for live tracking parsing."""

    def test_when_locations_present_then_current_and_next_three_stops(self) -> None:
        """Given five locations, when parsing, then the first is current and the next three follow."""
        raw = {
            "uid": "W12345",
            "operator": "LNER",
            "headcode": "1S15",
            "updated": "2024-01-15T10:02:00Z",
            "locations": [
                {"name": f"Stop {i}", "crs": f"S0{i}", "scheduledArrival": f"10:{i}0"}
                for i in range(5)
            ],
        }

        tracking = parse_service_tracking(raw, "SVC1")

        assert tracking.service_id == "W12345"
        assert tracking.current_location is not None
        assert tracking.current_location.name == "Stop 0"
        assert [stop.code for stop in tracking.next_stops] == ["S01", "S02", "S03"]
        assert tracking.next_stops[0].expected == "10:10"
        assert tracking.last_updated is not None

    def test_when_no_locations_then_no_current_location(self) -> None:
        """Given no locations, when parsing, then the service id falls back to the requested one."""
        tracking = parse_service_tracking({}, "SVC1")

        assert tracking.service_id == "SVC1"
        assert tracking.current_location is None
        assert tracking.next_stops == ()


class TestParseDisruptions:
    """Tests for disruption list parsing."""

    def test_when_records_malformed_then_dropped(self) -> None:
        """Given a mix of valid and malformed records, when parsing, then only valid ones remain."""
        raw = [
            {
                "id": "D1",
                "title": "Signalling fault",
                "severity": "major",
                "affectedRoutes": [{"origin": {"crs": "kgx"}, "destination": "EDB"}],
                "validFrom": "2024-01-15T08:00:00Z",
            },
            {"id": "D2"},
            "not a record",
        ]

        disruptions = parse_disruptions(raw)

        assert [d.id for d in disruptions] == ["D1"]
        assert disruptions[0].affected_routes[0].origin == "KGX"
        assert disruptions[0].touches("EDB") is True
        assert disruptions[0].touches("YRK") is False

    @pytest.mark.parametrize("field", ["affectedRoutes", "affectedOperators", "affectedServices"])
    def test_when_list_field_not_a_list_then_only_that_record_dropped(self, field: str) -> None:
        """Given one record with a scalar where a list belongs, when parsing, then the rest survive."""
        raw = [
            {"id": "D1", "title": "ok", "affectedOperators": ["GR"]},
            {"id": "D2", "title": "bad", field: 5},
            {"id": "D3", "title": "also ok"},
        ]

        disruptions = parse_disruptions(raw)

        assert [d.id for d in disruptions] == ["D1", "D3"]
        assert disruptions[0].affected_operators == ("GR",)


class TestKnowledgeStationHttpClient:
    """Tests for configuration, status mapping and retries."""

    def test_when_placeholder_token_then_not_configured(self) -> None:
        """Given the sample placeholder token, when checking, then the client is not configured."""
        client = KnowledgeStationHttpClient(MagicMock(), API_URL, token=PLACEHOLDER_TOKEN)

        assert client.is_configured() is False

    def test_when_switched_off_then_not_configured(self) -> None:
        """Given the master switch off, when checking, then the client is not configured."""
        client = KnowledgeStationHttpClient(MagicMock(), API_URL, token="t", enabled=False)

        assert client.is_configured() is False

    @pytest.mark.asyncio
    async def test_when_not_configured_then_configuration_missing(self) -> None:
        """Given no credentials, when fetching, then ConfigurationMissing is raised."""
        client = KnowledgeStationHttpClient(MagicMock(), API_URL)

        with pytest.raises(ConfigurationMissing):
            await client.fetch_station("KGX")

    @pytest.mark.asyncio
    async def test_when_station_fetched_then_json_requested_with_auth(self) -> None:
        """Given a JSON response, when fetching a station, then the URL and format are set."""
        session = MagicMock()
        session.get = MagicMock(return_value=_context(_response(200, KGX_STATION)))

        data = await _client(session).fetch_station("kgx")

        assert data["name"] == "London Kings Cross"
        args, kwargs = session.get.call_args
        assert args[0] == "https://ks.example/api/station/KGX"
        assert kwargs["params"]["format"] == "json"
        assert kwargs["auth"].login == "ks-token"

    @pytest.mark.asyncio
    async def test_when_forbidden_then_unauthorized_error(self) -> None:
        """Given HTTP 403, when fetching, then TransportError with UNAUTHORIZED is raised."""
        session = MagicMock()
        session.get = MagicMock(return_value=_context(_response(403)))

        with pytest.raises(TransportError) as exc_info:
            await _client(session).fetch_station("KGX")

        assert exc_info.value.code == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_when_not_json_then_invalid_response_type(self) -> None:
        """Given an HTML body, when fetching, then ParseError INVALID_RESPONSE_TYPE is raised."""
        session = MagicMock()
        session.get = MagicMock(return_value=_context(_response(200, "<html/>", "text/html")))

        with pytest.raises(ParseError) as exc_info:
            await _client(session).fetch_station("KGX")

        assert exc_info.value.code == "INVALID_RESPONSE_TYPE"

    @pytest.mark.asyncio
    async def test_when_network_keeps_failing_then_retried_then_connection_error(self) -> None:
        """Given repeated network errors, when fetching, then all retries are used up."""
        session = MagicMock()
        session.get = MagicMock(side_effect=aiohttp.ClientConnectionError("reset"))

        with pytest.raises(TransportError) as exc_info:
            await _client(session, retries=3).fetch_station("KGX")

        assert exc_info.value.code == "CONNECTION_ERROR"
        assert session.get.call_count == 3

    @pytest.mark.asyncio
    async def test_when_network_recovers_then_second_attempt_succeeds(self) -> None:
        """Given one network error then success, when fetching, then the data is returned."""
        session = MagicMock()
        session.get = MagicMock(
            side_effect=[
                aiohttp.ClientConnectionError("reset"),
                _context(_response(200, {"disruptions": [{"id": "D1", "title": "Fault"}]})),
            ]
        )

        raw = await _client(session).fetch_disruptions(limit=5)

        assert raw == [{"id": "D1", "title": "Fault"}]
        assert session.get.call_args.kwargs["params"]["limit"] == "5"


class TestKnowledgeStationAdapter:
    """Tests for the Knowledge Station adapter."""

    @pytest.mark.asyncio
    async def test_when_board_requested_then_capability_unsupported(self) -> None:
        """Given the enhancement adapter, when asking for a board, then CapabilityUnsupported."""
        adapter = KnowledgeStationAdapter(KnowledgeStationHttpClient(None, None))

        with pytest.raises(CapabilityUnsupported):
            await adapter.get_station_board(StationBoardRequest(location_code="KGX"))

        with pytest.raises(CapabilityUnsupported):
            await adapter.get_service_details("SVC1")

    @pytest.mark.asyncio
    async def test_when_unconfigured_then_unhealthy(self) -> None:
        """Given no credentials, when probing, then the adapter is disabled and unhealthy."""
        adapter = KnowledgeStationAdapter(KnowledgeStationHttpClient(MagicMock(), API_URL))

        assert adapter.is_enabled() is False
        assert await adapter.is_healthy() is False

    @pytest.mark.asyncio
    async def test_when_disruptions_fetched_then_parsed(self) -> None:
        """Given a raw disruption list, when asked, then parsed disruptions are returned."""
        client = MagicMock()
        client.fetch_disruptions = AsyncMock(return_value=[{"id": "D1", "title": "Fault"}, {}])
        adapter = KnowledgeStationAdapter(client)

        disruptions = await adapter.get_disruptions(limit=10, severity="major")

        assert [d.id for d in disruptions] == ["D1"]
        client.fetch_disruptions.assert_awaited_once_with(limit=10, severity="major")
        assert adapter.get_capabilities().disruptions is True
