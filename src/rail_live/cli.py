"""CLI tool for querying live rail data without running the server."""

import asyncio
import json
import logging
import sys
from typing import Any
from pydantic import TypeAdapter, ValidationError

from rail_live.adapters.config import AppConfig
from rail_live.bootstrap import (
    build_aggregator,
    build_corpus_table,
    build_location_lookup,
    build_resolver,
    open_sessions,
)
from rail_live.domain.errors import RailDataError
from rail_live.domain.models.service_details import ServiceDetails
from rail_live.domain.models.station_board import EnhancedStationBoard
from rail_live.domain.models.station_board_request import StationBoardRequest

_json_adapter: TypeAdapter[Any] = TypeAdapter(Any)


def _print_json(value: Any) -> None:
    print(json.dumps(_json_adapter.dump_python(value, mode="json"), indent=2, ensure_ascii=False))


def format_board(board: EnhancedStationBoard) -> str:
    """Render a board as plain text, one departure per line."""
    lines = [f"{board.location_name} ({board.code}) at {board.generated_at:%H:%M}"]
    if board.filter_location_name:
        lines[0] += f" calling at {board.filter_location_name}"
    if not board.departures:
        lines.append("  No departures.")
    for departure in board.departures:
        platform = f"plat {departure.platform}" if departure.platform else "plat -"
        lines.append(
            f"  {departure.scheduled_time:%H:%M}  {departure.destination.name:<30} "
            f"{platform:<8} {departure.estimated}"
        )
    for message in board.messages:
        lines.append(f"  ! {message.message}")
    lines.append(f"Source: {board.data_source}, quality {board.data_quality:.0%}")
    return "\n".join(lines)


def format_service(details: ServiceDetails) -> str:
    """Render service details and calling points as plain text."""
    lines = [
        f"{details.service_id} {details.operator} from {details.location_name} ({details.code})",
        f"  Departs {details.scheduled_departure or '?'}, "
        f"expected {details.estimated_departure or '?'}",
    ]
    if details.is_cancelled:
        lines.append(f"  Cancelled: {details.cancel_reason or 'no reason given'}")
    for point in details.subsequent_calling_points:
        lines.append(f"    {point.scheduled}  {point.location_name} ({point.code})")
    return "\n".join(lines)


async def show_board(code: str, rows: int, format_json: bool = False) -> None:
    """Print the departure board for a station."""
    config = AppConfig()
    request = StationBoardRequest(location_code=code, row_limit=rows)
    async with open_sessions(config) as (session, soap_session):
        aggregator, _ = build_aggregator(config, session, soap_session)
        board = await aggregator.get_station_board(request)

    if format_json:
        _print_json(board)
    else:
        print(format_board(board))


async def show_service(service_id: str, format_json: bool = False) -> None:
    """Print details of a single service."""
    config = AppConfig()
    async with open_sessions(config) as (session, soap_session):
        aggregator, _ = build_aggregator(config, session, soap_session)
        details = await aggregator.get_service_details(service_id)

    if format_json:
        _print_json(details)
    else:
        print(format_service(details))


async def show_health() -> None:
    """Probe every configured data source and print its state."""
    config = AppConfig()
    async with open_sessions(config) as (session, soap_session):
        aggregator, _ = build_aggregator(config, session, soap_session)
        status = await aggregator.get_health_status(refresh=True)
    _print_json(status)


async def resolve_tiploc(tiploc: str) -> None:
    """Resolve a TIPLOC to its CRS code."""
    config = AppConfig()
    async with open_sessions(config) as (session, _):
        lookup = build_location_lookup(config, session, build_corpus_table(config, session))
        resolver = build_resolver(config, lookup)
        code = await resolver.resolve(tiploc)

    if code is None:
        print(f"No station code known for {tiploc.upper()}", file=sys.stderr)
        sys.exit(1)
    print(code)


async def main() -> None:
    """Main CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="rail-live command line client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Next departures from King's Cross
  rail-live-cli board KGX --rows 5

  # Service details
  rail-live-cli service 1234567PADTON__

  # Data source health
  rail-live-cli health

  # TIPLOC to CRS
  rail-live-cli resolve KNGX
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    board_parser = subparsers.add_parser("board", help="Show a departure board")
    board_parser.add_argument("code", help="Three letter station code (e.g., KGX)")
    board_parser.add_argument("--rows", type=int, default=10, help="Number of departures")
    board_parser.add_argument("--json", action="store_true", help="Output as JSON")

    service_parser = subparsers.add_parser("service", help="Show service details")
    service_parser.add_argument("service_id", help="Darwin service id")
    service_parser.add_argument("--json", action="store_true", help="Output as JSON")

    subparsers.add_parser("health", help="Check data source health")

    resolve_parser = subparsers.add_parser("resolve", help="Resolve a TIPLOC to a station code")
    resolve_parser.add_argument("tiploc", help="TIPLOC (e.g., KNGX)")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(level=logging.WARNING, stream=sys.stderr)

    try:
        if args.command == "board":
            await show_board(args.code, args.rows, format_json=args.json)
        elif args.command == "service":
            await show_service(args.service_id, format_json=args.json)
        elif args.command == "health":
            await show_health()
        elif args.command == "resolve":
            await resolve_tiploc(args.tiploc)

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(1)
    except ValidationError as e:
        print(f"Invalid request: {e.errors()[0]['msg']}", file=sys.stderr)
        sys.exit(2)
    except RailDataError as e:
        print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
        sys.exit(1)


def cli_main() -> None:
    """Synchronous entry point for the CLI command."""
    asyncio.run(main())


if __name__ == "__main__":
    cli_main()
