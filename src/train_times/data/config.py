import json
from collections.abc import Iterator, Mapping
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from train_times.errors import InputError


class Settings(BaseSettings):
    """Process configuration for train-times.

    Automatically loads from TRAIN_TIMES_* environment variables and .env file.
    """

    model_config = SettingsConfigDict(env_prefix="TRAIN_TIMES_", env_file=".env", extra="ignore")

    db_path: Path = Path("data/train_times.db")
    agencies_file: Path = Path("agencies.json")
    user_agent: str = "TrainTimesApp/1.0"
    http_timeout_seconds: float = 120.0
    default_departure_limit: int = Field(default=15, ge=1)
    max_departure_limit: int = Field(default=100, ge=1)


@lru_cache
def get_settings() -> Settings:
    """Get process settings (cached singleton).

    Returns:
        Settings with values from .env file or environment variables.
    """
    return Settings()


class AgencyConfig(BaseModel):
    """Static configuration for one agency. Immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    agency_id: str = Field(min_length=1)
    name: str
    gtfs_url: str
    timezone: str
    default_route_types: tuple[int, ...] = ()

    @field_validator("gtfs_url")
    @classmethod
    def _check_gtfs_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"GTFS URL must be http(s): {value}")
        if not value.endswith(".zip") and "gtfs" not in value.lower():
            raise ValueError(f"Invalid GTFS URL: {value}")
        return value


class AgencyRegistry(Mapping[str, AgencyConfig]):
    """Read-only set of configured agencies, keyed by agency_id.

    Passed explicitly to the services that need agency lookups.
    """

    def __init__(self, agencies: list[AgencyConfig] | tuple[AgencyConfig, ...] = ()):
        by_id: dict[str, AgencyConfig] = {}
        for agency in agencies:
            if agency.agency_id in by_id:
                raise ValueError(f"Duplicate agency_id in configuration: {agency.agency_id}")
            by_id[agency.agency_id] = agency
        self._agencies = MappingProxyType(by_id)

    def __getitem__(self, agency_id: str) -> AgencyConfig:
        return self._agencies[agency_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._agencies)

    def __len__(self) -> int:
        return len(self._agencies)

    def require(self, agency_id: str | None) -> AgencyConfig:
        """Look up an agency, raising InputError for a missing or unknown id."""
        if not agency_id:
            raise InputError("Missing agency parameter")
        agency = self._agencies.get(agency_id)
        if agency is None:
            raise InputError(f"Unknown agency: {agency_id}")
        return agency


def load_agency_registry(path: Path) -> AgencyRegistry:
    """Load agencies from a JSON file containing a list of agency objects.

    Args:
        path: Path to the agencies JSON file.

    Returns:
        AgencyRegistry with one entry per agency.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        pydantic.ValidationError: If an entry is invalid.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Agencies file not found at {path}. Copy agencies.example.json to get started."
        )
    raw = json.loads(path.read_text(encoding="utf-8"))
    return AgencyRegistry([AgencyConfig.model_validate(entry) for entry in raw])
