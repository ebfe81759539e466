"""Download GTFS archives and read their member files."""

import asyncio
import io
import logging
import posixpath
import zipfile
import zlib

import httpx

from train_times.data.config import Settings, get_settings
from train_times.errors import FormatError, MissingMemberError, RetrievalError

logger = logging.getLogger(__name__)


class ArchiveFetcher:
    """Async HTTP client for downloading feed archives.

    Usage:
        async with ArchiveFetcher(settings) as fetcher:
            data = await fetcher.fetch(url)
    """

    def __init__(self, settings: Settings | None = None):
        """Initialize the fetcher.

        Args:
            settings: Settings with the User-Agent and timeout to use.
        """
        self._settings = settings or get_settings()
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "ArchiveFetcher":
        """Enter async context - create HTTP client."""
        self._client = httpx.AsyncClient(
            headers={"User-Agent": self._settings.user_agent},
            timeout=self._settings.http_timeout_seconds,
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> bytes:
        """Download the archive at url.

        Returns:
            Raw archive bytes.

        Raises:
            RuntimeError: If client not initialized.
            RetrievalError: If the request fails or the host answers with a
                non-success status (carried as upstream_status).
        """
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")

        logger.info(f"Fetching feed archive from {url}")
        try:
            response = await self._client.get(url)
        except httpx.RequestError as e:
            raise RetrievalError(f"Failed to fetch GTFS data: {e}") from e

        if not response.is_success:
            raise RetrievalError(
                f"Failed to fetch GTFS data: {response.status_code}",
                upstream_status=response.status_code,
            )

        data = response.content
        logger.info(f"Downloaded {len(data):,} bytes from {url}")
        return data


class FeedArchive:
    """Decompressed archive contents, keyed by member path."""

    def __init__(self, members: dict[str, bytes]):
        self.members = members

    @classmethod
    def from_bytes(cls, data: bytes) -> "FeedArchive":
        """Decompress a ZIP payload.

        Raises:
            FormatError: If the payload is not a readable ZIP archive.
        """
        # Unsupported compression methods raise NotImplementedError, encrypted members RuntimeError.
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as zf:
                members = {
                    info.filename: zf.read(info)
                    for info in zf.infolist()
                    if not info.is_dir()
                }
        except (
            zipfile.BadZipFile,
            zipfile.LargeZipFile,
            zlib.error,
            EOFError,
            NotImplementedError,
            RuntimeError,
        ) as e:
            raise FormatError(f"Unreadable feed archive: {e}") from e
        return cls(members)

    @classmethod
    async def load(cls, data: bytes) -> "FeedArchive":
        """Decompress a ZIP payload without blocking the event loop."""
        return await asyncio.to_thread(cls.from_bytes, data)

    def names(self) -> list[str]:
        return list(self.members)

    def read(self, name: str) -> bytes:
        """Get a member's raw bytes.

        An exact path match wins; otherwise a single member with the same base
        name (e.g. 'feed/stops.txt' for 'stops.txt') is accepted.

        Raises:
            MissingMemberError: If no member matches.
        """
        if name in self.members:
            return self.members[name]
        candidates = [path for path in self.members if posixpath.basename(path) == name]
        if len(candidates) == 1:
            return self.members[candidates[0]]
        raise MissingMemberError(name)

    def text(self, name: str) -> str:
        """Get a member decoded as UTF-8. Invalid bytes are replaced."""
        return self.read(name).decode("utf-8", errors="replace")
