from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    error: str = Field(description="Error kind, e.g. InputError or RetrievalError")
    message: str
    status_code: int = Field(description="400 for caller errors, 5xx for server-side failures")
    upstream_status: int | None = Field(
        default=None, description="HTTP status returned by the feed host (RetrievalError only)"
    )
    agency_id: str | None = None


class AgencyInfo(BaseModel):
    agency_id: str
    name: str
    timezone: str
    gtfs_url: str
    default_route_types: list[int] = Field(
        description="Route types used by get_stations when none are given"
    )


class ListAgenciesResponse(BaseModel):
    agencies: list[AgencyInfo]
    count: int


class RouteInfo(BaseModel):
    route_id: str
    route_short_name: str | None = None
    route_long_name: str | None = None
    route_type: int = Field(description="0=tram, 1=subway, 2=rail, 3=bus, ...")
    route_color: str | None = None
    route_text_color: str | None = None


class Station(BaseModel):
    stop_id: str
    stop_name: str
    stop_code: str | None = None
    stop_lat: float | None = None
    stop_lon: float | None = None
    wheelchair_boarding: int | None = Field(
        default=None, description="0=no info, 1=accessible, 2=not accessible"
    )
    routes: list[RouteInfo] = Field(description="Distinct routes serving this station")


class GetStationsResponse(BaseModel):
    agency_id: str
    route_types: list[int]
    stations: list[Station]
    count: int = Field(description="Number of stations returned")


class Departure(BaseModel):
    trip_id: str
    departure_time: str = Field(
        description="Scheduled departure in HH:MM:SS; hours may exceed 23 for past-midnight service"
    )
    headsign: str | None = Field(default=None, description="Destination displayed on vehicle")
    route: RouteInfo


class GetDeparturesResponse(BaseModel):
    agency_id: str
    stop_id: str
    departures: list[Departure]
    query_minutes: int = Field(description="Minute-of-day used as 'now' for filtering")
    count: int = Field(description="Number of departures returned")


class RefreshResponse(BaseModel):
    agency_id: str
    stops: int
    routes: int
    trips: int = 0
    stop_times: int = 0
    stop_routes: int = 0
    dropped_rows: dict[str, int] = Field(
        default_factory=dict, description="Malformed feed rows skipped, per table"
    )
    duration_ms: int | None = None


class RefreshAllResponse(BaseModel):
    results: list[RefreshResponse]
    errors: list[ErrorResponse]
