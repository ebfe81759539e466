"""MCP tools for listing stations."""

from train_times.app import get_registry, mcp, tool_error
from train_times.data.database import open_executor
from train_times.errors import TrainTimesError
from train_times.models.responses import GetStationsResponse
from train_times.services.station_service import get_stations as _get_stations


@mcp.tool()
async def get_stations(
    agency_id: str,
    route_types: list[int] | None = None,
) -> GetStationsResponse:
    """List stations of an agency served by the given route types.

    Platforms belonging to a parent station are not listed; their parent is.
    Each station carries the distinct routes that serve it.

    Examples:
        get_stations(agency_id="mbta")  # Agency's default route types
        get_stations(agency_id="mbta", route_types=[2])  # Commuter rail only

    Args:
        agency_id: Agency to list stations for. Use list_agencies() to find ids.
        route_types: GTFS route type codes (0=tram, 1=subway, 2=rail, 3=bus).
                     Defaults to the agency's configured route types.

    Returns:
        GetStationsResponse with stations sorted by name.
    """
    try:
        agency = get_registry().require(agency_id)
        async with open_executor() as executor:
            return await _get_stations(executor, agency, route_types)
    except TrainTimesError as e:
        raise tool_error(e) from e
