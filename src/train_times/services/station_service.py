"""Station listing for an agency, filtered by route type."""

from collections.abc import Iterable
from typing import Any

from train_times.data.config import AgencyConfig
from train_times.data.database import SqliteExecutor, placeholders
from train_times.errors import InputError
from train_times.models.responses import GetStationsResponse, RouteInfo, Station

STATIONS_SQL = """
    SELECT s.stop_id, s.stop_name, s.stop_code, s.stop_lat, s.stop_lon,
           s.wheelchair_boarding,
           r.route_id, r.route_short_name, r.route_long_name, r.route_type,
           r.route_color, r.route_text_color
    FROM stops s
    JOIN stop_routes sr ON sr.agency_id = s.agency_id AND sr.stop_id = s.stop_id
    JOIN routes r ON r.agency_id = sr.agency_id AND r.route_id = sr.route_id
    WHERE s.agency_id = ?
      AND r.route_type IN ({route_types})
      AND (s.location_type = 1 OR s.parent_station IS NULL OR s.parent_station = '')
    ORDER BY s.stop_name
"""


def group_station_rows(rows: Iterable[dict[str, Any]]) -> list[Station]:
    """Fold one-row-per-(stop, route) join output into one Station per stop.

    Stations keep the order of their first row; routes keep row order and
    are not repeated within a station.
    """
    stations: dict[str, Station] = {}
    for row in rows:
        station = stations.get(row["stop_id"])
        if station is None:
            station = Station(
                stop_id=row["stop_id"],
                stop_name=row["stop_name"],
                stop_code=row["stop_code"],
                stop_lat=row["stop_lat"],
                stop_lon=row["stop_lon"],
                wheelchair_boarding=row["wheelchair_boarding"],
                routes=[],
            )
            stations[row["stop_id"]] = station
        if any(route.route_id == row["route_id"] for route in station.routes):
            continue
        station.routes.append(
            RouteInfo(
                route_id=row["route_id"],
                route_short_name=row["route_short_name"],
                route_long_name=row["route_long_name"],
                route_type=int(row["route_type"]),
                route_color=row["route_color"],
                route_text_color=row["route_text_color"],
            )
        )
    return list(stations.values())


async def get_stations(
    executor: SqliteExecutor,
    agency: AgencyConfig,
    route_types: Iterable[int] | None = None,
) -> GetStationsResponse:
    """Get stations served by at least one route of the given types.

    Args:
        executor: SQL executor.
        agency: Agency whose stations to list.
        route_types: Route type codes to match. Defaults to the agency's
                     configured default_route_types.

    Returns:
        GetStationsResponse with stations ordered by name, each carrying the
        distinct matching routes that serve it.

    Raises:
        InputError: If no route types are given and the agency has no default.
    """
    types = list(dict.fromkeys(agency.default_route_types if route_types is None else route_types))
    if not types:
        raise InputError("At least one route type is required")

    sql = STATIONS_SQL.format(route_types=placeholders(len(types)))
    result = await executor.prepare(sql).bind(agency.agency_id, *types).all()
    stations = group_station_rows(result["results"])

    return GetStationsResponse(
        agency_id=agency.agency_id,
        route_types=types,
        stations=stations,
        count=len(stations),
    )
