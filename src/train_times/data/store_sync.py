"""Replace one agency's rows in the store with a freshly normalized feed."""

import logging
from collections.abc import Iterable

from pydantic import BaseModel

from train_times.data.database import AGENCY_TABLES, BoundStatement, SqliteExecutor
from train_times.models.gtfs import NormalizedFeed, StopTime, Trip

logger = logging.getLogger(__name__)

INSERT_SQL: dict[str, str] = {
    "stops": (
        "INSERT INTO stops (agency_id, stop_id, stop_code, stop_name, stop_desc, stop_lat, "
        "stop_lon, location_type, parent_station, wheelchair_boarding) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
    ),
    "routes": (
        "INSERT INTO routes (agency_id, route_id, route_short_name, route_long_name, "
        "route_type, route_color, route_text_color) VALUES (?, ?, ?, ?, ?, ?, ?)"
    ),
    "trips": "INSERT INTO trips (agency_id, trip_id, route_id, trip_headsign) VALUES (?, ?, ?, ?)",
    "stop_times": (
        "INSERT INTO stop_times (agency_id, trip_id, stop_id, stop_sequence, departure_time, "
        "stop_headsign) VALUES (?, ?, ?, ?, ?, ?)"
    ),
    "stop_routes": "INSERT INTO stop_routes (agency_id, stop_id, route_id) VALUES (?, ?, ?)",
}


class SyncResult(BaseModel):
    """Row counts written for one agency."""

    agency_id: str
    stops: int
    routes: int
    trips: int
    stop_times: int
    stop_routes: int


def derive_stop_routes(trips: Iterable[Trip], stop_times: Iterable[StopTime]) -> list[tuple[str, str]]:
    """Compute every distinct (stop_id, route_id) pair served by some trip.

    Pairs are returned in first-seen order. Stop times whose trip is unknown
    are ignored.
    """
    route_by_trip = {trip.trip_id: trip.route_id for trip in trips}
    pairs: dict[tuple[str, str], None] = {}
    for stop_time in stop_times:
        route_id = route_by_trip.get(stop_time.trip_id)
        if route_id is not None:
            pairs.setdefault((stop_time.stop_id, route_id), None)
    return list(pairs)


def _dedupe(items: list, key: str) -> list:
    # Feeds occasionally repeat an id; keep the first so the primary key holds.
    seen: set[str] = set()
    unique = []
    for item in items:
        value = getattr(item, key)
        if value not in seen:
            seen.add(value)
            unique.append(item)
    return unique


class StoreSynchronizer:
    """Atomically swaps an agency's stops/routes/trips/stop_times/stop_routes."""

    def __init__(self, executor: SqliteExecutor):
        self._executor = executor

    def build_statements(self, agency_id: str, feed: NormalizedFeed) -> tuple[list[BoundStatement], SyncResult]:
        """Build the delete-then-insert statement list for one agency."""
        prepare = self._executor.prepare
        statements: list[BoundStatement] = [
            prepare(f"DELETE FROM {table} WHERE agency_id = ?").bind(agency_id)
            for table in AGENCY_TABLES
        ]

        stops = _dedupe(feed.stops, "stop_id")
        routes = _dedupe(feed.routes, "route_id")
        trips = _dedupe(feed.trips, "trip_id")
        stop_routes = derive_stop_routes(trips, feed.stop_times)

        insert = {table: prepare(sql) for table, sql in INSERT_SQL.items()}
        statements.extend(
            insert["stops"].bind(
                agency_id,
                s.stop_id,
                s.stop_code,
                s.stop_name,
                s.stop_desc,
                s.stop_lat,
                s.stop_lon,
                s.location_type,
                s.parent_station,
                s.wheelchair_boarding,
            )
            for s in stops
        )
        statements.extend(
            insert["routes"].bind(
                agency_id,
                r.route_id,
                r.route_short_name,
                r.route_long_name,
                r.route_type,
                r.route_color,
                r.route_text_color,
            )
            for r in routes
        )
        statements.extend(
            insert["trips"].bind(agency_id, t.trip_id, t.route_id, t.trip_headsign) for t in trips
        )
        statements.extend(
            insert["stop_times"].bind(
                agency_id,
                st.trip_id,
                st.stop_id,
                st.stop_sequence,
                st.departure_time,
                st.stop_headsign,
            )
            for st in feed.stop_times
        )
        statements.extend(
            insert["stop_routes"].bind(agency_id, stop_id, route_id)
            for stop_id, route_id in stop_routes
        )

        result = SyncResult(
            agency_id=agency_id,
            stops=len(stops),
            routes=len(routes),
            trips=len(trips),
            stop_times=len(feed.stop_times),
            stop_routes=len(stop_routes),
        )
        return statements, result

    async def sync(self, agency_id: str, feed: NormalizedFeed) -> SyncResult:
        """Replace all persisted rows for agency_id with the contents of feed.

        Deletes and inserts run as one executor batch: on failure the previous
        rows stay in place.

        Raises:
            PersistenceError: If the batch fails.
        """
        statements, result = self.build_statements(agency_id, feed)
        logger.info(f"Replacing stored feed for {agency_id} ({len(statements):,} statements)")
        await self._executor.batch(statements)
        logger.info(
            f"Stored {result.stops:,} stops, {result.routes:,} routes, "
            f"{result.stop_routes:,} stop-route links for {agency_id}"
        )
        return result
