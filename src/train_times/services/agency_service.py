from train_times.data.config import AgencyConfig, AgencyRegistry
from train_times.models.responses import AgencyInfo, ListAgenciesResponse


def _agency_info(agency: AgencyConfig) -> AgencyInfo:
    return AgencyInfo(
        agency_id=agency.agency_id,
        name=agency.name,
        timezone=agency.timezone,
        gtfs_url=agency.gtfs_url,
        default_route_types=list(agency.default_route_types),
    )


def list_agencies(registry: AgencyRegistry) -> ListAgenciesResponse:
    """List configured agencies in configuration order."""
    agencies = [_agency_info(agency) for agency in registry.values()]
    return ListAgenciesResponse(agencies=agencies, count=len(agencies))
