import io
import zipfile
from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from train_times.data.archive_fetcher import FeedArchive
from train_times.data.config import AgencyConfig, AgencyRegistry
from train_times.data.database import SqliteExecutor, open_executor
from train_times.data.feed_normalizer import FeedNormalizer
from train_times.models.gtfs import NormalizedFeed

SAMPLE_FEED: dict[str, str] = {
    "agency.txt": (
        "agency_id,agency_name,agency_url,agency_timezone\n"
        "MBTA,MBTA,http://www.mbta.com,America/New_York\n"
    ),
    "routes.txt": (
        "route_id,route_short_name,route_long_name,route_type,route_color,route_text_color\n"
        "1,,Red Line,2,DA291C,FFFFFF\n"
        "2,,Green Line,1,00843D,FFFFFF\n"
        "B,10,Bus 10,3,FFC72C,000000\n"
        "X,,Broken Route,notanumber,,\n"
    ),
    "stops.txt": (
        "stop_id,stop_code,stop_name,stop_desc,stop_lat,stop_lon,location_type,parent_station,wheelchair_boarding\n"
        "PARK,,Park Street,,42.356,-71.062,1,,1\n"
        "PARK-1,,Park Street - Red,,42.356,-71.062,0,PARK,1\n"
        "SOUTH,,South Station,,42.352,-71.055,0,,1\n"
        "ALEWIFE,,Alewife,,42.395,-71.142,0,,1\n"
        "KENMORE,,Kenmore,,42.348,-71.095,,,1\n"
        'HARV,,"Harvard, Square",,42.373,-71.118,0,,1\n'
    ),
    "trips.txt": (
        "route_id,service_id,trip_id,trip_headsign\n"
        "1,WK,T1,Alewife\n"
        "1,WK,T2,Ashmont\n"
        "2,WK,T3,Kenmore\n"
        "B,WK,T4,Downtown\n"
    ),
    "stop_times.txt": (
        "trip_id,arrival_time,departure_time,stop_id,stop_sequence,stop_headsign\n"
        "T1,08:00:00,08:00:00,SOUTH,1,\n"
        "T1,08:05:00,08:05:00,PARK-1,2,\n"
        "T1,08:20:00,08:20:00,ALEWIFE,3,\n"
        "T1,09:00:00,SOUTH\n"
        "T2,23:59:00,23:59:00,SOUTH,1,Ashmont via Park\n"
        "T2,24:05:00,24:05:00,PARK-1,2,\n"
        "T3,25:30:00,25:30:00,SOUTH,1,\n"
        "T3,25:40:00,25:40:00,HARV,2,\n"
        "T3,25:50:00,25:50:00,KENMORE,3,\n"
        "T4,08:00,08:00,ALEWIFE,1,\n"
        "T4,09:15:00,09:15:00,ALEWIFE,2,\n"
    ),
}


def make_gtfs_zip(files: dict[str, str]) -> bytes:
    """Build an in-memory GTFS ZIP from member name -> text."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, text in files.items():
            zf.writestr(name, text)
    return buffer.getvalue()


def make_feed(files: dict[str, str] | None = None) -> NormalizedFeed:
    """Normalize a feed built from the given files (default: SAMPLE_FEED)."""
    archive = FeedArchive.from_bytes(make_gtfs_zip(files or SAMPLE_FEED))
    return FeedNormalizer().normalize_archive(archive, "mbta")


@pytest.fixture
def sample_zip() -> bytes:
    return make_gtfs_zip(SAMPLE_FEED)


@pytest.fixture
def sample_feed() -> NormalizedFeed:
    return make_feed()


@pytest.fixture
def agency() -> AgencyConfig:
    return AgencyConfig(
        agency_id="mbta",
        name="Massachusetts Bay Transportation Authority",
        gtfs_url="https://cdn.example.com/MBTA_GTFS.zip",
        timezone="America/New_York",
        default_route_types=(1, 2),
    )


@pytest.fixture
def registry(agency: AgencyConfig) -> AgencyRegistry:
    other = AgencyConfig(
        agency_id="other",
        name="Other Transit",
        gtfs_url="https://feeds.example.com/other/gtfs",
        timezone="America/Chicago",
        default_route_types=(3,),
    )
    return AgencyRegistry([agency, other])


@pytest.fixture
async def executor(tmp_path: Path) -> AsyncIterator[SqliteExecutor]:
    async with open_executor(tmp_path / "test.db") as executor:
        yield executor


async def count_rows(executor: SqliteExecutor, table: str, agency_id: str) -> int:
    """Count an agency's rows in one table."""
    result = await (
        executor.prepare(f"SELECT COUNT(*) AS n FROM {table} WHERE agency_id = ?")
        .bind(agency_id)
        .all()
    )
    return result["results"][0]["n"]
