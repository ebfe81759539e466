"""SQLite store and the SQL executor used by ingestion and queries.

Callers talk to the store through a small prepare/bind/execute contract:

    stmt = executor.prepare("SELECT * FROM stops WHERE agency_id = ?")
    rows = (await stmt.bind("mbta").all())["results"]
    await executor.batch([delete_stmt.bind("mbta"), insert_stmt.bind(...)])

`batch` runs every statement in one transaction, so readers on other
connections see either the state before the batch or the state after it.
"""

import logging
import sqlite3
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import aiosqlite

from train_times.data.config import get_settings
from train_times.errors import PersistenceError

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS stops (
    agency_id TEXT NOT NULL,
    stop_id TEXT NOT NULL,
    stop_code TEXT,
    stop_name TEXT NOT NULL,
    stop_desc TEXT,
    stop_lat REAL,
    stop_lon REAL,
    location_type INTEGER,
    parent_station TEXT,
    wheelchair_boarding INTEGER,
    PRIMARY KEY (agency_id, stop_id)
);

CREATE TABLE IF NOT EXISTS routes (
    agency_id TEXT NOT NULL,
    route_id TEXT NOT NULL,
    route_short_name TEXT,
    route_long_name TEXT,
    route_type INTEGER NOT NULL,
    route_color TEXT,
    route_text_color TEXT,
    PRIMARY KEY (agency_id, route_id)
);

CREATE TABLE IF NOT EXISTS trips (
    agency_id TEXT NOT NULL,
    trip_id TEXT NOT NULL,
    route_id TEXT NOT NULL,
    trip_headsign TEXT,
    PRIMARY KEY (agency_id, trip_id)
);

CREATE TABLE IF NOT EXISTS stop_times (
    agency_id TEXT NOT NULL,
    trip_id TEXT NOT NULL,
    stop_id TEXT NOT NULL,
    stop_sequence INTEGER,
    departure_time TEXT,
    stop_headsign TEXT
);

CREATE TABLE IF NOT EXISTS stop_routes (
    agency_id TEXT NOT NULL,
    stop_id TEXT NOT NULL,
    route_id TEXT NOT NULL,
    PRIMARY KEY (agency_id, stop_id, route_id)
);

CREATE INDEX IF NOT EXISTS idx_routes_type ON routes(agency_id, route_type);
CREATE INDEX IF NOT EXISTS idx_stops_name ON stops(agency_id, stop_name);
CREATE INDEX IF NOT EXISTS idx_trips_route ON trips(agency_id, route_id);
CREATE INDEX IF NOT EXISTS idx_stop_times_stop_departure
    ON stop_times(agency_id, stop_id, departure_time);
CREATE INDEX IF NOT EXISTS idx_stop_routes_route ON stop_routes(agency_id, route_id);
"""

# Child tables first so nothing references a row that is already gone.
AGENCY_TABLES = ("stop_routes", "stop_times", "trips", "routes", "stops")


def placeholders(count: int) -> str:
    """Build a `?, ?, ...` placeholder list for an IN clause of the given size."""
    if count < 1:
        raise ValueError("IN list needs at least one placeholder")
    return ", ".join(["?"] * count)


class BoundStatement:
    """A prepared statement with its parameters bound."""

    def __init__(self, executor: "SqliteExecutor", sql: str, params: tuple[Any, ...]):
        self._executor = executor
        self.sql = sql
        self.params = params

    async def all(self) -> dict[str, list[dict[str, Any]]]:
        """Run the statement and return every row as a dict under "results"."""
        return {"results": await self._executor._fetch_all(self.sql, self.params)}

    async def run(self) -> None:
        """Run the statement outside a batch, committing immediately."""
        await self._executor.batch([self])


class Statement:
    """SQL text waiting for parameters."""

    def __init__(self, executor: "SqliteExecutor", sql: str):
        self._executor = executor
        self.sql = sql

    def bind(self, *params: Any) -> BoundStatement:
        return BoundStatement(self._executor, self.sql, params)


class SqliteExecutor:
    """SQL executor backed by one aiosqlite connection.

    The connection runs in autocommit mode; `batch` opens its own transaction.
    """

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    def prepare(self, sql: str) -> Statement:
        return Statement(self, sql)

    async def _fetch_all(self, sql: str, params: tuple[Any, ...]) -> list[dict[str, Any]]:
        try:
            async with self._db.execute(sql, params) as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Query failed: {e}") from e
        return [dict(row) for row in rows]

    async def batch(self, statements: Sequence[BoundStatement]) -> None:
        """Execute all statements atomically.

        Consecutive statements with identical SQL are sent with executemany.

        Raises:
            PersistenceError: If any statement fails. Nothing is committed.
        """
        logger.debug(f"Executing batch of {len(statements):,} statements")
        try:
            await self._db.execute("BEGIN IMMEDIATE")
            try:
                for sql, rows in _group_consecutive(statements):
                    if len(rows) == 1:
                        await self._db.execute(sql, rows[0])
                    else:
                        await self._db.executemany(sql, rows)
                await self._db.execute("COMMIT")
            except Exception:
                await self._db.execute("ROLLBACK")
                raise
        except sqlite3.Error as e:
            raise PersistenceError(f"Batch failed, no changes applied: {e}") from e


def _group_consecutive(
    statements: Sequence[BoundStatement],
) -> list[tuple[str, list[tuple[Any, ...]]]]:
    groups: list[tuple[str, list[tuple[Any, ...]]]] = []
    for stmt in statements:
        if groups and groups[-1][0] == stmt.sql:
            groups[-1][1].append(stmt.params)
        else:
            groups.append((stmt.sql, [stmt.params]))
    return groups


def get_db_path() -> Path:
    """Get the database path from settings."""
    return get_settings().db_path


@asynccontextmanager
async def open_executor(db_path: Path | None = None) -> AsyncIterator[SqliteExecutor]:
    """Async context manager yielding an executor with the schema in place.

    Args:
        db_path: Optional path to the database. If not provided, uses the
                 TRAIN_TIMES_DB_PATH setting (default 'data/train_times.db').

    Yields:
        SqliteExecutor bound to a fresh connection.
    """
    if db_path is None:
        db_path = get_db_path()
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    async with aiosqlite.connect(db_path, isolation_level=None) as db:
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA journal_mode=WAL")
        await db.execute("PRAGMA busy_timeout=30000")
        await db.executescript(SCHEMA_SQL)
        yield SqliteExecutor(db)
