"""MCP tools for configured agencies."""

from train_times.app import get_registry, mcp, tool_error
from train_times.errors import TrainTimesError
from train_times.models.responses import ListAgenciesResponse
from train_times.services.agency_service import list_agencies as _list_agencies


@mcp.tool()
def list_agencies() -> ListAgenciesResponse:
    """List the transit agencies this server has schedules for.

    Returns:
        ListAgenciesResponse with each agency's id, name, timezone, feed URL
        and the route types used by default when listing stations.
    """
    try:
        return _list_agencies(get_registry())
    except TrainTimesError as e:
        raise tool_error(e) from e
