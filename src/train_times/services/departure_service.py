"""Next departures from a stop, based on the static schedule."""

from datetime import datetime
from typing import Protocol
from zoneinfo import ZoneInfo

from train_times.data.database import SqliteExecutor
from train_times.errors import InputError
from train_times.models.responses import Departure, GetDeparturesResponse, RouteInfo

DEFAULT_LIMIT = 15

# Candidates fetched per requested departure; past-due rows are dropped after the query.
OVERFETCH_FACTOR = 3

MINUTES_PER_DAY = 24 * 60

DEPARTURES_SQL = """
    SELECT st.trip_id, st.departure_time,
           COALESCE(st.stop_headsign, t.trip_headsign) AS headsign,
           r.route_id, r.route_short_name, r.route_long_name, r.route_type,
           r.route_color, r.route_text_color
    FROM stop_times st
    JOIN trips t ON t.agency_id = st.agency_id AND t.trip_id = st.trip_id
    JOIN routes r ON r.agency_id = t.agency_id AND r.route_id = t.route_id
    WHERE st.agency_id = ? AND st.stop_id = ?
    ORDER BY st.departure_time
    LIMIT ?
"""


class Clock(Protocol):
    """Source of the current time of day."""

    def minutes_of_day(self) -> int: ...


class SystemClock:
    """Reads the wall clock, in the server's local zone unless one is given."""

    def __init__(self, timezone: str | None = None):
        self._zone = ZoneInfo(timezone) if timezone else None

    def minutes_of_day(self) -> int:
        now = datetime.now(self._zone)
        return now.hour * 60 + now.minute


class FixedClock:
    """Always reports the same minute of day."""

    def __init__(self, minutes: int):
        self._minutes = minutes % MINUTES_PER_DAY

    def minutes_of_day(self) -> int:
        return self._minutes


def parse_gtfs_time(time_str: str) -> tuple[int, int, int]:
    """Parse a GTFS time string into hours, minutes, seconds.

    GTFS times can exceed 24:00:00 for trips that extend past midnight.
    For example, "25:30:00" means 1:30 AM the next day.

    Raises:
        ValueError: If the time string is invalid.
    """
    parts = time_str.strip().split(":")
    if len(parts) != 3:
        raise ValueError(f"Invalid GTFS time format: {time_str}")

    try:
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(parts[2])
    except ValueError as e:
        raise ValueError(f"Invalid GTFS time format: {time_str}") from e

    return hours, minutes, seconds


def departure_minute_of_day(time_str: str | None) -> int | None:
    """Map a GTFS time onto a same-day minute of day, or None if malformed.

    The hour is taken modulo 24, so "25:30:00" and "01:30:00" both give 90.
    Which service day a time belongs to is not tracked.
    """
    if time_str is None:
        return None
    try:
        hours, minutes, _ = parse_gtfs_time(time_str)
    except ValueError:
        return None
    return (hours % 24) * 60 + minutes


def require_limit(limit: int, maximum: int) -> int:
    """Validate a caller-supplied departure limit, capping it at maximum.

    Raises:
        InputError: If the limit is below 1.
    """
    if limit < 1:
        raise InputError(f"Invalid limit: {limit} (must be at least 1)")
    return min(limit, maximum)


def require_stop_id(stop_id: str | None) -> str:
    """Validate a caller-supplied stop id.

    Raises:
        InputError: If the stop id is missing or blank.
    """
    if stop_id is None or not stop_id.strip():
        raise InputError("Missing stop parameter")
    return stop_id.strip()


async def get_departures(
    executor: SqliteExecutor,
    agency_id: str,
    stop_id: str,
    limit: int = DEFAULT_LIMIT,
    clock: Clock | None = None,
) -> GetDeparturesResponse:
    """Get upcoming scheduled departures from a stop.

    Candidates are read in raw departure_time order (limit * 3 of them), rows
    with malformed times are skipped, and a row is kept when its minute of day
    is at or after now. Fewer than `limit` departures may be returned.

    Args:
        executor: SQL executor.
        agency_id: Agency the stop belongs to.
        stop_id: The stop to get departures for.
        limit: Maximum number of departures to return.
        clock: Time source for "now" (default: server local clock).

    Returns:
        GetDeparturesResponse with departures in candidate order.
    """
    clock = clock or SystemClock()
    now = clock.minutes_of_day()

    result = await (
        executor.prepare(DEPARTURES_SQL)
        .bind(agency_id, stop_id, limit * OVERFETCH_FACTOR)
        .all()
    )

    departures: list[Departure] = []
    for row in result["results"]:
        if len(departures) >= limit:
            break
        minute = departure_minute_of_day(row["departure_time"])
        if minute is None or minute < now:
            continue
        departures.append(
            Departure(
                trip_id=row["trip_id"],
                departure_time=row["departure_time"],
                headsign=row["headsign"],
                route=RouteInfo(
                    route_id=row["route_id"],
                    route_short_name=row["route_short_name"],
                    route_long_name=row["route_long_name"],
                    route_type=int(row["route_type"]),
                    route_color=row["route_color"],
                    route_text_color=row["route_text_color"],
                ),
            )
        )

    return GetDeparturesResponse(
        agency_id=agency_id,
        stop_id=stop_id,
        departures=departures,
        query_minutes=now,
        count=len(departures),
    )
