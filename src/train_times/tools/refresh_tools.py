"""MCP tools for refreshing stored schedules."""

from train_times.app import get_registry, mcp, tool_error
from train_times.data.database import open_executor
from train_times.errors import TrainTimesError
from train_times.models.responses import RefreshResponse
from train_times.services.refresh_service import refresh_agency as _refresh_agency


@mcp.tool()
async def refresh_agency(agency_id: str) -> RefreshResponse:
    """Download an agency's GTFS feed and replace its stored schedule.

    The replacement is all-or-nothing: if the download, archive or store
    fails, the previously stored schedule is kept.

    Args:
        agency_id: Agency to refresh. Use list_agencies() to find ids.

    Returns:
        RefreshResponse with the number of stops and routes stored.
    """
    try:
        registry = get_registry()
        async with open_executor() as executor:
            return await _refresh_agency(registry, agency_id, executor)
    except TrainTimesError as e:
        raise tool_error(e) from e
