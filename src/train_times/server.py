import argparse
import asyncio
import logging
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel

from train_times.app import mcp
from train_times.data.config import get_settings, load_agency_registry
from train_times.data.database import open_executor
from train_times.errors import TrainTimesError
from train_times.services.agency_service import list_agencies
from train_times.services.refresh_service import refresh_agency, refresh_all

# Register tools on the shared FastMCP instance.
from train_times.tools import agency_tools, departure_tools, refresh_tools, station_tools  # noqa: F401, E402


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str


@mcp.tool()
def health() -> HealthResponse:
    """Check if the Train Times MCP server is running and healthy.

    Returns the server status, version, and current timestamp.
    """
    from train_times import __version__

    return HealthResponse(
        status="ok",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
    )


async def run_refresh(agency_id: str | None, agencies_file: Path, db_path: Path) -> int:
    """Run a refresh of one agency (or all when agency_id is None)."""
    registry = load_agency_registry(agencies_file)

    async with open_executor(db_path) as executor:
        if agency_id is not None:
            try:
                result = await refresh_agency(registry, agency_id, executor)
            except TrainTimesError as e:
                print(f"\nRefresh failed: {e}")
                return 1
            results, errors = [result], []
        else:
            summary = await refresh_all(registry, executor)
            results, errors = summary.results, summary.errors

    for result in results:
        print(f"\n{result.agency_id}: refresh complete. Row counts:")
        print(f"  stops: {result.stops:,}")
        print(f"  routes: {result.routes:,}")
        print(f"  trips: {result.trips:,}")
        print(f"  stop_times: {result.stop_times:,}")
        print(f"  stop_routes: {result.stop_routes:,}")
    for error in errors:
        print(f"\n{error.agency_id}: {error.error} ({error.status_code}): {error.message}")
    return 1 if errors else 0


def main() -> None:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="train-times",
        description="Train Times MCP Server",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("serve", help="Run the MCP server (default)")
    subparsers.add_parser("agencies", help="List configured agencies")

    refresh_parser = subparsers.add_parser(
        "refresh",
        help="Download GTFS feeds and replace the stored schedules",
    )
    target = refresh_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("agency_id", nargs="?", help="Agency to refresh")
    target.add_argument("--all", action="store_true", help="Refresh every configured agency")
    refresh_parser.add_argument(
        "--db",
        type=Path,
        default=settings.db_path,
        help="SQLite database path (default: data/train_times.db or TRAIN_TIMES_DB_PATH env var)",
    )

    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "refresh":
        agency_id = None if args.all else args.agency_id
        raise SystemExit(asyncio.run(run_refresh(agency_id, settings.agencies_file, args.db)))
    elif args.command == "agencies":
        response = list_agencies(load_agency_registry(settings.agencies_file))
        for agency in response.agencies:
            print(f"{agency.agency_id}: {agency.name} ({agency.timezone}) {agency.gtfs_url}")
    else:
        # Default: run MCP server
        mcp.run()


if __name__ == "__main__":
    main()
