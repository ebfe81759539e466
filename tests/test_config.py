"""Tests for settings and the agency registry."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from train_times.data.config import (
    AgencyConfig,
    AgencyRegistry,
    Settings,
    load_agency_registry,
)
from train_times.errors import InputError


def make_agency(agency_id: str = "mbta", gtfs_url: str = "https://cdn.example.com/gtfs.zip") -> AgencyConfig:
    return AgencyConfig(
        agency_id=agency_id,
        name="Agency",
        gtfs_url=gtfs_url,
        timezone="America/New_York",
        default_route_types=(2,),
    )


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("TRAIN_TIMES_DB_PATH", raising=False)
        settings = Settings(_env_file=None)
        assert settings.db_path == Path("data/train_times.db")
        assert settings.user_agent == "TrainTimesApp/1.0"
        assert settings.default_departure_limit == 15

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TRAIN_TIMES_DB_PATH", "/tmp/other.db")
        monkeypatch.setenv("TRAIN_TIMES_HTTP_TIMEOUT_SECONDS", "7.5")
        settings = Settings(_env_file=None)
        assert settings.db_path == Path("/tmp/other.db")
        assert settings.http_timeout_seconds == 7.5


class TestAgencyConfig:
    """Tests for agency validation."""

    def test_zip_url_accepted(self) -> None:
        assert make_agency(gtfs_url="https://cdn.example.com/feed.zip").gtfs_url.endswith(".zip")

    def test_gtfs_url_accepted(self) -> None:
        assert make_agency(gtfs_url="https://example.com/api/gtfs/latest").gtfs_url

    def test_non_gtfs_url_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_agency(gtfs_url="https://example.com/index.html")

    def test_non_http_url_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_agency(gtfs_url="file:///etc/gtfs.zip")

    def test_frozen(self) -> None:
        agency = make_agency()
        with pytest.raises(ValidationError):
            agency.name = "Changed"


class TestAgencyRegistry:
    """Tests for agency lookup."""

    def test_require_known(self) -> None:
        registry = AgencyRegistry([make_agency("a"), make_agency("b")])
        assert registry.require("b").agency_id == "b"
        assert list(registry) == ["a", "b"]
        assert len(registry) == 2

    def test_require_unknown_is_input_error(self) -> None:
        registry = AgencyRegistry([make_agency("a")])
        with pytest.raises(InputError) as exc_info:
            registry.require("zzz")
        assert "zzz" in exc_info.value.message

    @pytest.mark.parametrize("agency_id", [None, ""])
    def test_require_missing_is_input_error(self, agency_id: str | None) -> None:
        with pytest.raises(InputError):
            AgencyRegistry([make_agency()]).require(agency_id)

    def test_duplicate_ids_rejected(self) -> None:
        with pytest.raises(ValueError):
            AgencyRegistry([make_agency("a"), make_agency("a")])

    def test_read_only(self) -> None:
        registry = AgencyRegistry([make_agency("a")])
        with pytest.raises(TypeError):
            registry["b"] = make_agency("b")  # type: ignore[index]


class TestLoadAgencyRegistry:
    """Tests for loading agencies from JSON."""

    def test_load(self, tmp_path: Path) -> None:
        path = tmp_path / "agencies.json"
        path.write_text(
            json.dumps(
                [
                    {
                        "agency_id": "mbta",
                        "name": "MBTA",
                        "gtfs_url": "https://cdn.example.com/MBTA_GTFS.zip",
                        "timezone": "America/New_York",
                        "default_route_types": [0, 1, 2],
                    }
                ]
            )
        )
        registry = load_agency_registry(path)
        assert registry.require("mbta").default_route_types == (0, 1, 2)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_agency_registry(tmp_path / "missing.json")

    def test_example_file_is_valid(self) -> None:
        example = Path(__file__).parent.parent / "agencies.example.json"
        registry = load_agency_registry(example)
        assert len(registry) >= 1
