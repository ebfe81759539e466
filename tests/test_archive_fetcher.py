"""Tests for the archive fetcher and archive reader."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from conftest import make_gtfs_zip

from train_times.data.archive_fetcher import ArchiveFetcher, FeedArchive
from train_times.data.config import Settings
from train_times.errors import FormatError, MissingMemberError, RetrievalError


@pytest.fixture
def settings() -> Settings:
    return Settings(user_agent="TrainTimesApp/1.0", http_timeout_seconds=5)


def mock_client_with(response: MagicMock | None = None, error: Exception | None = None) -> AsyncMock:
    mock_client = AsyncMock()
    if error is not None:
        mock_client.get = AsyncMock(side_effect=error)
    else:
        mock_client.get = AsyncMock(return_value=response)
    return mock_client


class TestArchiveFetcher:
    """Tests for ArchiveFetcher.fetch."""

    async def test_fetch_returns_body(self, settings: Settings) -> None:
        mock_response = MagicMock()
        mock_response.is_success = True
        mock_response.status_code = 200
        mock_response.content = b"PK-bytes"

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client_class.return_value = mock_client_with(mock_response)

            async with ArchiveFetcher(settings) as fetcher:
                data = await fetcher.fetch("https://example.com/gtfs.zip")

        assert data == b"PK-bytes"

    async def test_sends_user_agent(self, settings: Settings) -> None:
        mock_response = MagicMock()
        mock_response.is_success = True
        mock_response.content = b""

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client_class.return_value = mock_client_with(mock_response)

            async with ArchiveFetcher(settings) as fetcher:
                await fetcher.fetch("https://example.com/gtfs.zip")

        kwargs = mock_client_class.call_args.kwargs
        assert kwargs["headers"]["User-Agent"] == "TrainTimesApp/1.0"
        assert kwargs["follow_redirects"] is True

    async def test_non_success_status_raises_with_upstream_status(self, settings: Settings) -> None:
        mock_response = MagicMock()
        mock_response.is_success = False
        mock_response.status_code = 404

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client_class.return_value = mock_client_with(mock_response)

            async with ArchiveFetcher(settings) as fetcher:
                with pytest.raises(RetrievalError) as exc_info:
                    await fetcher.fetch("https://example.com/gtfs.zip")

        assert exc_info.value.upstream_status == 404
        assert exc_info.value.status_code == 502
        assert exc_info.value.to_response().upstream_status == 404

    async def test_transport_error_raises_retrieval_error(self, settings: Settings) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client_class.return_value = mock_client_with(error=httpx.ConnectError("refused"))

            async with ArchiveFetcher(settings) as fetcher:
                with pytest.raises(RetrievalError) as exc_info:
                    await fetcher.fetch("https://example.com/gtfs.zip")

        assert exc_info.value.upstream_status is None

    async def test_fetch_requires_context(self, settings: Settings) -> None:
        fetcher = ArchiveFetcher(settings)
        with pytest.raises(RuntimeError):
            await fetcher.fetch("https://example.com/gtfs.zip")


class TestFeedArchive:
    """Tests for decompressing archives and reading members."""

    def test_members_keyed_by_path(self) -> None:
        archive = FeedArchive.from_bytes(make_gtfs_zip({"stops.txt": "a\n", "routes.txt": "b\n"}))
        assert sorted(archive.names()) == ["routes.txt", "stops.txt"]
        assert archive.read("stops.txt") == b"a\n"

    async def test_load_off_event_loop(self) -> None:
        archive = await FeedArchive.load(make_gtfs_zip({"stops.txt": "a\n"}))
        assert archive.text("stops.txt") == "a\n"

    def test_corrupt_archive_raises_format_error(self) -> None:
        with pytest.raises(FormatError) as exc_info:
            FeedArchive.from_bytes(b"this is not a zip file")
        assert not isinstance(exc_info.value, MissingMemberError)

    def test_missing_member_raises_distinct_error(self) -> None:
        archive = FeedArchive.from_bytes(make_gtfs_zip({"stops.txt": "a\n"}))
        with pytest.raises(MissingMemberError) as exc_info:
            archive.text("stop_times.txt")
        assert exc_info.value.member == "stop_times.txt"
        assert "missing" in exc_info.value.message

    def test_member_in_subfolder_matched_by_name(self) -> None:
        archive = FeedArchive.from_bytes(make_gtfs_zip({"feed/stops.txt": "nested\n"}))
        assert archive.text("stops.txt") == "nested\n"

    def test_text_decodes_utf8(self) -> None:
        archive = FeedArchive.from_bytes(make_gtfs_zip({"stops.txt": "Société\n"}))
        assert archive.text("stops.txt") == "Société\n"

    @pytest.mark.parametrize(
        ("offset", "value"),
        [
            (10, 99),  # compression method zipfile cannot decompress
            (8, 0x01),  # encrypted member, no password
        ],
    )
    def test_undecodable_member_raises_format_error(self, offset: int, value: int) -> None:
        data = bytearray(make_gtfs_zip({"stops.txt": "stop_id\nA\n"}))
        central = data.index(b"PK\x01\x02")
        data[central + offset] = value

        with pytest.raises(FormatError) as exc_info:
            FeedArchive.from_bytes(bytes(data))
        assert exc_info.value.status_code == 500
