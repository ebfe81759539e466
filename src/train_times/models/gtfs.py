"""Pydantic models for GTFS entities."""

from pydantic import BaseModel, Field

LOCATION_TYPE_STATION = 1


class Route(BaseModel):
    """GTFS route entity."""

    route_id: str
    route_short_name: str | None = None
    route_long_name: str | None = None
    route_type: int  # 0=tram, 1=subway, 2=rail, 3=bus
    route_color: str | None = None
    route_text_color: str | None = None


class Stop(BaseModel):
    """GTFS stop entity."""

    stop_id: str
    stop_code: str | None = None
    stop_name: str
    stop_desc: str | None = None
    stop_lat: float | None = None
    stop_lon: float | None = None
    location_type: int | None = None  # 0=stop, 1=station, 2=entrance
    parent_station: str | None = None
    wheelchair_boarding: int | None = None

    @property
    def is_station(self) -> bool:
        """True for parent stations and standalone stops, False for platforms."""
        return self.location_type == LOCATION_TYPE_STATION or not self.parent_station


class Trip(BaseModel):
    """GTFS trip entity."""

    trip_id: str
    route_id: str
    trip_headsign: str | None = None


class StopTime(BaseModel):
    """GTFS stop_times entity."""

    trip_id: str
    stop_id: str
    stop_sequence: int | None = None
    departure_time: str | None = None  # HH:MM:SS (can exceed 24:00:00)
    stop_headsign: str | None = None


class NormalizedFeed(BaseModel):
    """One agency's schedule snapshot, ready to persist."""

    stops: list[Stop] = Field(default_factory=list)
    routes: list[Route] = Field(default_factory=list)
    trips: list[Trip] = Field(default_factory=list)
    stop_times: list[StopTime] = Field(default_factory=list)
    dropped_rows: dict[str, int] = Field(default_factory=dict)
