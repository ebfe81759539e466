"""MCP application instance.

This module exists to avoid circular import issues when running with `python -m`.
All tool modules should import `mcp` from here, not from server.py.
"""

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from train_times.data.config import AgencyRegistry, get_settings, load_agency_registry
from train_times.errors import ConfigurationError, TrainTimesError

# Initialize the MCP server
mcp = FastMCP(
    "Train Times",
    instructions="Transit stations and scheduled departures from GTFS feeds of configured agencies",
)


def get_registry() -> AgencyRegistry:
    """Load the configured agencies from the agencies file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or has invalid entries.
    """
    path = get_settings().agencies_file
    try:
        return load_agency_registry(path)
    except (OSError, ValueError) as e:
        # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
        raise ConfigurationError(f"Cannot load agencies from {path}: {e}") from e


def tool_error(exc: TrainTimesError) -> ToolError:
    """Wrap a train-times error so the client receives its structured payload."""
    return ToolError(exc.to_response().model_dump_json(exclude_none=True))
