"""Tests for Darwin SOAP request arguments and result parsing."""

from datetime import UTC, datetime
from typing import Any

import pytest

from rail_live.adapters.darwin_api.response_parser import (
    as_list,
    parse_departure_board,
    parse_generated_at,
    parse_service_details,
    resolve_clock_time,
)
from rail_live.adapters.darwin_api.soap_request import (
    access_token_header,
    departure_board_arguments,
)
from rail_live.domain.errors import NotFound, ParseError
from rail_live.domain.models.station_board_request import StationBoardRequest


def _location(name: str, crs: str) -> dict[str, Any]:
    return {"locationName": name, "crs": crs, "via": None, "futureChangeTo": None}


def _service(
    service_id: str | None,
    std: str | None,
    etd: str | None = "On time",
    platform: str | None = "1",
    destinations: tuple[tuple[str, str], ...] = (("Edinburgh", "EDB"),),
    **extra: Any,
) -> dict[str, Any]:
    """A service shaped like zeep's serialized ServiceItemWithCallingPoints."""
    service: dict[str, Any] = {
        "std": std,
        "etd": etd,
        "platform": platform,
        "operator": "London North Eastern Railway",
        "operatorCode": "GR",
        "serviceType": "train",
        "serviceID": service_id,
        "isCancelled": None,
        "length": None,
        "origin": {"location": [_location("London Kings Cross", "KGX")]},
        "destination": (
            {"location": [_location(name, crs) for name, crs in destinations]}
            if destinations
            else None
        ),
    }
    service.update(extra)
    return service


def _board(
    services: list[dict[str, Any]],
    generated_at: datetime | str = datetime(2024, 1, 15, 10, 0, 0, 123456, tzinfo=UTC),
    messages: list[Any] | None = None,
) -> dict[str, Any]:
    """A GetStationBoardResult as zeep returns it."""
    return {
        "generatedAt": generated_at,
        "locationName": "London Kings Cross",
        "crs": "KGX",
        "filterLocationName": None,
        "filtercrs": None,
        "nrccMessages": {"message": messages} if messages else None,
        "platformAvailable": True,
        "trainServices": {"service": services} if services else None,
    }


class TestParseDepartureBoard:
    """Tests for departure board parsing."""

    def test_when_kgx_board_has_three_services_then_all_parsed(self) -> None:
        """Given a KGX board with three services, when parsing, then three departures are returned."""
        result = _board(
            [
                _service("S1", "10:05"),
                _service("S2", "10:20", etd="10:25", platform="4"),
                _service("S3", "10:45", etd="Cancelled", platform=None),
            ]
        )

        board = parse_departure_board(result)

        assert board.code == "KGX"
        assert board.location_name == "London Kings Cross"
        assert [d.service_id for d in board.departures] == ["S1", "S2", "S3"]
        assert board.departures[1].estimated == "10:25"
        assert board.departures[2].is_cancelled is True
        assert board.departures[2].platform is None

    def test_when_single_service_not_wrapped_in_list_then_parsed(self) -> None:
        """Given a service container holding one bare service, when parsing, then one departure results."""
        result = _board([])
        result["trainServices"] = {"service": _service("ONLY", "10:05")}

        board = parse_departure_board(result)

        assert len(board.departures) == 1
        assert board.departures[0].destination.code == "EDB"

    def test_when_no_services_then_empty_board(self) -> None:
        """Given a board without services, when parsing, then departures are empty."""
        board = parse_departure_board(_board([]))

        assert board.departures == ()

    def test_when_one_of_five_services_malformed_then_four_returned(self) -> None:
        """Given five services and one without a departure time, when parsing, then four remain."""
        services = [_service(f"S{i}", f"10:{i:02d}") for i in range(4)]
        services.insert(2, _service("BROKEN", None))

        board = parse_departure_board(_board(services))

        assert len(board.departures) == 4
        assert "BROKEN" not in [d.service_id for d in board.departures]

    def test_when_destination_is_plain_text_then_only_that_service_dropped(self) -> None:
        """Given one service whose destination is bare text, when parsing, then the other four remain."""
        services = [_service(f"S{i}", f"10:{i:02d}") for i in range(4)]
        services.append(_service("TEXT", "10:30", destination="Edinburgh"))

        board = parse_departure_board(_board(services))

        assert [d.service_id for d in board.departures] == ["S0", "S1", "S2", "S3"]

    def test_when_destination_repeated_then_only_that_service_dropped(self) -> None:
        """Given one service with two destination containers, when parsing, then it alone is dropped."""
        twice = [{"location": [_location("Leeds", "LDS")]}, {"location": [_location("York", "YRK")]}]
        services = [_service("OK", "10:05"), _service("TWICE", "10:10", destination=twice)]

        board = parse_departure_board(_board(services))

        assert [d.service_id for d in board.departures] == ["OK"]

    def test_when_origin_is_plain_text_then_service_dropped(self) -> None:
        """Given a service whose origin is bare text, when parsing, then it is dropped."""
        services = [_service("OK", "10:05"), _service("TEXT", "10:10", origin="London")]

        board = parse_departure_board(_board(services))

        assert [d.service_id for d in board.departures] == ["OK"]

    def test_when_service_has_no_destination_then_dropped(self) -> None:
        """Given a service without a destination, when parsing, then it is dropped."""
        board = parse_departure_board(
            _board([_service("NODEST", "10:05", destinations=()), _service("OK", "10:10")])
        )

        assert [d.service_id for d in board.departures] == ["OK"]

    def test_when_train_divides_then_last_destination_used(self) -> None:
        """Given a dividing train with two destinations, when parsing, then the last one is used."""
        result = _board(
            [_service("DIV", "10:05", destinations=(("Leeds", "LDS"), ("Harrogate", "HGT")))]
        )

        board = parse_departure_board(result)

        assert board.departures[0].destination.name == "Harrogate"

    def test_when_etd_missing_then_on_time_assumed(self) -> None:
        """Given a service without etd, when parsing, then the estimate is 'On time'."""
        board = parse_departure_board(_board([_service("S1", "10:05", etd=None)]))

        assert board.departures[0].estimated == "On time"

    def test_when_typed_fields_then_converted(self) -> None:
        """Given zeep's typed booleans and integers, when parsing, then they map directly."""
        result = _board([_service("S1", "10:05", isCancelled=True, length=8)])

        departure = parse_departure_board(result).departures[0]

        assert departure.is_cancelled is True
        assert departure.length == 8

    def test_when_parsed_twice_then_results_equal(self) -> None:
        """Given the same result, when parsing twice, then the boards are equal."""
        result = _board([_service("S1", "10:05"), _service("S2", "10:20")])

        assert parse_departure_board(result) == parse_departure_board(result)

    def test_when_board_has_nrcc_messages_then_html_stripped(self) -> None:
        """Given an NRCC message with embedded HTML, when parsing, then plain text remains."""
        messages = [
            {
                "_value_1": 'Lifts out of order. <a href="https://example.org">More</a>',
                "severity": "Major",
            },
            "Plain notice",
        ]

        board = parse_departure_board(_board([], messages=messages))

        assert len(board.messages) == 2
        assert board.messages[0].message == "Lifts out of order. More"
        assert board.messages[0].severity == "major"
        assert board.messages[1].severity == "info"

    def test_when_result_missing_then_parse_error(self) -> None:
        """Given an empty result, when parsing, then ParseError is raised."""
        with pytest.raises(ParseError):
            parse_departure_board(None)


class TestTimeHandling:
    """Tests for timestamp and clock time resolution."""

    def test_when_generated_at_has_seven_fraction_digits_then_parsed(self) -> None:
        """Given Darwin's seven digit fraction as text, when parsing, then it is truncated."""
        parsed = parse_generated_at("2024-01-15T10:00:00.1234567+00:00")

        assert parsed == datetime(2024, 1, 15, 10, 0, 0, 123456, tzinfo=UTC)

    def test_when_generated_at_naive_datetime_then_utc_assumed(self) -> None:
        """Given a naive datetime, when parsing, then it is taken as UTC."""
        assert parse_generated_at(datetime(2024, 1, 15, 10, 0)) == datetime(
            2024, 1, 15, 10, 0, tzinfo=UTC
        )

    def test_when_time_just_after_midnight_then_resolved_to_next_day(self) -> None:
        """Given a board generated before midnight, when resolving 00:10, then it is the next day."""
        reference = datetime(2024, 1, 15, 23, 50, tzinfo=UTC)

        assert resolve_clock_time("00:10", reference) == datetime(2024, 1, 16, 0, 10, tzinfo=UTC)

    def test_when_time_just_before_midnight_then_resolved_to_previous_day(self) -> None:
        """Given a board generated after midnight, when resolving 23:55, then it is the previous day."""
        reference = datetime(2024, 1, 16, 0, 5, tzinfo=UTC)

        assert resolve_clock_time("23:55", reference) == datetime(2024, 1, 15, 23, 55, tzinfo=UTC)

    def test_when_time_invalid_then_parse_error(self) -> None:
        """Given an impossible clock time, when resolving, then ParseError is raised."""
        with pytest.raises(ParseError):
            resolve_clock_time("25:00", datetime(2024, 1, 15, tzinfo=UTC))


class TestParseServiceDetails:
    """Tests for service details parsing."""

    def test_when_details_have_calling_points_then_flattened(self) -> None:
        """Given subsequent calling points, when parsing, then they are flattened in order."""
        result = {
            "locationName": "London Kings Cross",
            "crs": "KGX",
            "operator": "LNER",
            "operatorCode": "GR",
            "std": "10:00",
            "etd": "On time",
            "platform": "5",
            "isCancelled": None,
            "previousCallingPoints": None,
            "subsequentCallingPoints": {
                "callingPointList": [
                    {
                        "callingPoint": [
                            {"locationName": "Peterborough", "crs": "PBO", "st": "10:45", "et": "On time"},
                            {"locationName": "York", "crs": "YRK", "st": "11:50", "et": "11:52"},
                        ]
                    }
                ]
            },
        }

        details = parse_service_details(result, "SVC1")

        assert details.service_id == "SVC1"
        assert details.platform == "5"
        assert [p.code for p in details.subsequent_calling_points] == ["PBO", "YRK"]
        assert details.subsequent_calling_points[1].estimated == "11:52"
        assert details.previous_calling_points == ()

    def test_when_no_result_then_not_found(self) -> None:
        """Given an empty result, when parsing, then NotFound is raised."""
        with pytest.raises(NotFound):
            parse_service_details(None, "GONE")


class TestHelpers:
    """Tests for small parsing helpers."""

    def test_when_value_single_then_wrapped_in_list(self) -> None:
        """Given a single item, when normalizing, then a one-element list results."""
        assert as_list({"a": 1}) == [{"a": 1}]
        assert as_list(None) == []
        assert as_list([1, 2]) == [1, 2]


class TestRequestArguments:
    """Tests for request arguments and the access token header."""

    def test_when_row_limit_above_darwin_max_then_clamped(self) -> None:
        """Given 150 rows requested, when building arguments, then numRows is 50."""
        arguments = departure_board_arguments(StationBoardRequest(location_code="kgx", row_limit=150))

        assert arguments["numRows"] == 50
        assert arguments["crs"] == "KGX"

    def test_when_no_filter_then_filter_fields_omitted(self) -> None:
        """Given no filter station, when building arguments, then no filter fields are sent."""
        arguments = departure_board_arguments(StationBoardRequest(location_code="KGX"))

        assert "filterCrs" not in arguments
        assert "filterType" not in arguments

    def test_when_filter_set_then_filter_fields_included(self) -> None:
        """Given a from-filter, when building arguments, then filterCrs and filterType are sent."""
        arguments = departure_board_arguments(
            StationBoardRequest(location_code="KGX", filter_code="yrk", filter_type="from")
        )

        assert arguments["filterCrs"] == "YRK"
        assert arguments["filterType"] == "from"

    def test_when_header_built_then_token_value_set(self) -> None:
        """Given a token, when building the header, then it carries the token value."""
        header = access_token_header("secret-token")

        assert header.TokenValue == "secret-token"
