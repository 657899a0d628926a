"""Tests for the command line client."""

from dataclasses import replace
from unittest.mock import AsyncMock, patch

import pytest

from rail_live import cli
from rail_live.domain.errors import TransportError
from rail_live.domain.models.service_details import CallingPoint, ServiceDetails
from rail_live.domain.models.station_message import StationMessage

from .factories import build_board, build_departure


def test_format_board_lists_departures_and_messages() -> None:
    """Given a board with departures and a message, when formatting, then each gets a line."""
    board = build_board(
        [build_departure("S1", 10, 5), build_departure("S2", 10, 20, platform=None, estimated="10:27")]
    )
    board = replace(board, messages=(StationMessage(message="Lifts out of order"),))

    text = cli.format_board(board)

    lines = text.splitlines()
    assert lines[0] == "London Kings Cross (KGX) at 10:00"
    assert lines[1].startswith("  10:05  Edinburgh")
    assert "plat 1" in lines[1]
    assert "plat -" in lines[2]
    assert lines[2].endswith("10:27")
    assert "  ! Lifts out of order" in lines
    assert lines[-1] == "Source: primary, quality 0%"


def test_format_board_without_departures() -> None:
    """Given an empty board, when formatting, then a placeholder line is shown."""
    assert "  No departures." in cli.format_board(build_board([])).splitlines()


def test_format_service_shows_calling_points_and_cancellation() -> None:
    """Given cancelled service details, when formatting, then the reason and stops are shown."""
    details = ServiceDetails(
        service_id="SVC1",
        operator="LNER",
        operator_code="GR",
        location_name="London Kings Cross",
        code="KGX",
        scheduled_departure="10:05",
        is_cancelled=True,
        cancel_reason="Signalling fault",
        subsequent_calling_points=(
            CallingPoint(location_name="York", code="YRK", scheduled="11:55"),
        ),
    )

    text = cli.format_service(details)

    assert "Cancelled: Signalling fault" in text
    assert "    11:55  York (YRK)" in text
    assert "expected ?" in text


@pytest.mark.asyncio
async def test_main_dispatches_board_command() -> None:
    """Given board arguments, when running main, then show_board receives them."""
    with (
        patch("sys.argv", ["rail-live-cli", "board", "kgx", "--rows", "5", "--json"]),
        patch("rail_live.cli.show_board", new_callable=AsyncMock) as show_board,
    ):
        await cli.main()

    show_board.assert_awaited_once_with("kgx", 5, format_json=True)


@pytest.mark.asyncio
async def test_main_reports_rail_data_errors(capsys: pytest.CaptureFixture[str]) -> None:
    """Given a failing command, when running main, then the error code is printed and exit is 1."""
    with (
        patch("sys.argv", ["rail-live-cli", "health"]),
        patch("rail_live.cli.show_health", AsyncMock(side_effect=TransportError("darwin down"))),
        pytest.raises(SystemExit) as exc_info,
    ):
        await cli.main()

    assert exc_info.value.code == 1
    assert "Error [NETWORK_ERROR]: darwin down" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_main_without_command_prints_help() -> None:
    """Given no command, when running main, then it exits with status 1."""
    with patch("sys.argv", ["rail-live-cli"]), pytest.raises(SystemExit) as exc_info:
        await cli.main()

    assert exc_info.value.code == 1
