"""MCP tools for scheduled departures."""

from train_times.app import get_registry, mcp, tool_error
from train_times.data.config import get_settings
from train_times.data.database import open_executor
from train_times.errors import TrainTimesError
from train_times.models.responses import GetDeparturesResponse
from train_times.services.departure_service import get_departures as _get_departures
from train_times.services.departure_service import require_limit, require_stop_id


@mcp.tool()
async def get_departures(
    agency_id: str,
    stop_id: str,
    limit: int | None = None,
) -> GetDeparturesResponse:
    """Get the next scheduled departures from a stop.

    Uses the static schedule only. Times past midnight are compared by time of
    day, so "25:30:00" counts as 1:30 AM.

    Examples:
        get_departures(agency_id="mbta", stop_id="place-sstat")
        get_departures(agency_id="mbta", stop_id="place-sstat", limit=5)

    Args:
        agency_id: Agency the stop belongs to. Use list_agencies() to find ids.
        stop_id: The stop to get departures for (required).
        limit: Maximum number of departures (default 15, max 100).

    Returns:
        GetDeparturesResponse with departures in scheduled order.
    """
    settings = get_settings()
    if limit is None:
        limit = settings.default_departure_limit

    try:
        stop_id = require_stop_id(stop_id)
        limit = require_limit(limit, settings.max_departure_limit)
        agency = get_registry().require(agency_id)
        async with open_executor() as executor:
            return await _get_departures(executor, agency.agency_id, stop_id, limit=limit)
    except TrainTimesError as e:
        raise tool_error(e) from e
