"""Turn a remote GTFS archive into typed tables for one agency."""

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from train_times.data.archive_fetcher import ArchiveFetcher, FeedArchive
from train_times.data.config import AgencyConfig, Settings, get_settings
from train_times.data.csv_decoder import decode_table
from train_times.models.gtfs import NormalizedFeed, Route, Stop, StopTime, Trip

logger = logging.getLogger(__name__)

# Table name -> archive member. All four must be present.
REQUIRED_MEMBERS: dict[str, str] = {
    "stops": "stops.txt",
    "routes": "routes.txt",
    "trips": "trips.txt",
    "stop_times": "stop_times.txt",
}

# Columns that must be non-empty for a row to be kept.
REQUIRED_COLUMNS: dict[str, list[str]] = {
    "stops": ["stop_id", "stop_name"],
    "routes": ["route_id", "route_type"],
    "trips": ["trip_id", "route_id"],
    "stop_times": ["trip_id", "stop_id"],
}


def _text(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    return value


def _int(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _float(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _to_stop(row: dict[str, str]) -> Stop:
    return Stop(
        stop_id=row["stop_id"],
        stop_code=_text(row.get("stop_code")),
        stop_name=row["stop_name"],
        stop_desc=_text(row.get("stop_desc")),
        stop_lat=_float(row.get("stop_lat")),
        stop_lon=_float(row.get("stop_lon")),
        location_type=_int(row.get("location_type")),
        parent_station=_text(row.get("parent_station")),
        wheelchair_boarding=_int(row.get("wheelchair_boarding")),
    )


def _to_route(row: dict[str, str]) -> Route:
    # int() raises ValueError for a non-numeric route_type; the row is dropped
    return Route(
        route_id=row["route_id"],
        route_short_name=_text(row.get("route_short_name")),
        route_long_name=_text(row.get("route_long_name")),
        route_type=int(row["route_type"]),
        route_color=_text(row.get("route_color")),
        route_text_color=_text(row.get("route_text_color")),
    )


def _to_trip(row: dict[str, str]) -> Trip:
    return Trip(
        trip_id=row["trip_id"],
        route_id=row["route_id"],
        trip_headsign=_text(row.get("trip_headsign")),
    )


def _to_stop_time(row: dict[str, str]) -> StopTime:
    return StopTime(
        trip_id=row["trip_id"],
        stop_id=row["stop_id"],
        stop_sequence=_int(row.get("stop_sequence")),
        departure_time=_text(row.get("departure_time")),
        stop_headsign=_text(row.get("stop_headsign")),
    )


CONVERTERS: dict[str, Callable[[dict[str, str]], BaseModel]] = {
    "stops": _to_stop,
    "routes": _to_route,
    "trips": _to_trip,
    "stop_times": _to_stop_time,
}


class FeedNormalizer:
    """Fetches an agency's archive and decodes its four required tables.

    A call either returns the complete feed or raises; there is no partial
    result and no retry.
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()

    async def normalize(self, agency: AgencyConfig) -> NormalizedFeed:
        """Download and normalize the agency's current feed.

        Raises:
            RetrievalError: If the archive cannot be downloaded.
            FormatError: If the archive is corrupt.
            MissingMemberError: If a required table is absent.
        """
        async with ArchiveFetcher(self._settings) as fetcher:
            data = await fetcher.fetch(agency.gtfs_url)
        archive = await FeedArchive.load(data)
        return self.normalize_archive(archive, agency.agency_id)

    def normalize_archive(self, archive: FeedArchive, agency_id: str = "") -> NormalizedFeed:
        """Decode the required tables from an already-decompressed archive."""
        # Read every member up front so a missing table fails before any decoding.
        texts = {table: archive.text(member) for table, member in REQUIRED_MEMBERS.items()}

        tables: dict[str, list[Any]] = {}
        dropped: dict[str, int] = {}
        for table, text in texts.items():
            tables[table], dropped[table] = self._decode(table, text)

        total_dropped = sum(dropped.values())
        if total_dropped:
            details = ", ".join(f"{table}={count:,}" for table, count in dropped.items() if count)
            logger.warning(f"Skipped {total_dropped:,} malformed rows for {agency_id} ({details})")

        logger.info(
            f"Normalized feed for {agency_id}: {len(tables['stops']):,} stops, "
            f"{len(tables['routes']):,} routes, {len(tables['trips']):,} trips, "
            f"{len(tables['stop_times']):,} stop times"
        )
        return NormalizedFeed(
            stops=tables["stops"],
            routes=tables["routes"],
            trips=tables["trips"],
            stop_times=tables["stop_times"],
            dropped_rows=dropped,
        )

    def _decode(self, table: str, text: str) -> tuple[list[Any], int]:
        dropped = 0

        def count_drop(line_number: int, line: str) -> None:
            nonlocal dropped
            dropped += 1
            logger.debug(f"{REQUIRED_MEMBERS[table]}:{line_number}: field count mismatch")

        rows = decode_table(text, on_drop=count_drop)
        required = REQUIRED_COLUMNS[table]
        convert = CONVERTERS[table]

        entities: list[Any] = []
        for row in rows:
            if not all(row.get(col) for col in required):
                dropped += 1
                continue
            try:
                entities.append(convert(row))
            except ValueError:
                dropped += 1
        return entities, dropped
