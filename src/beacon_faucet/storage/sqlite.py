"""SQLite implementation of the RequestStore protocol."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from pathlib import Path

import aiosqlite

from beacon_faucet.errors import StoreError
from beacon_faucet.models.records import LastRequestRecord

log = logging.getLogger(__name__)

_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS {table} (
    user_id TEXT PRIMARY KEY UNIQUE NOT NULL,
    last_requested INTEGER NOT NULL,
    last_address TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS {table}_user_id ON {table}(user_id);
"""

# Columns added after the first release: name -> column definition.
# ALTER TABLE cannot add a NOT NULL column without a default.
MIGRATED_COLUMNS = {
    "last_address": "TEXT NOT NULL DEFAULT ''",
}


def _check_table(table: str) -> str:
    if not _TABLE_RE.match(table):
        raise StoreError(f"Invalid table name: {table!r}")
    return table


class SQLiteRequestStore:
    """SQLite-backed implementation of the RequestStore protocol.

    One table per network. Every statement goes through a single
    connection and the read-modify-write in `store_last_request` is
    serialized by a lock.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def initialize(self, tables: list[str]) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        for table in tables:
            await self._create_table(_check_table(table))
        await self._db.commit()
        log.info("Request store ready at %s (%d tables)", self._db_path, len(tables))

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    async def _create_table(self, table: str) -> None:
        await self.db.executescript(TABLE_SCHEMA.format(table=table))
        existing = await self.columns(table)
        for column, definition in MIGRATED_COLUMNS.items():
            if column not in existing:
                log.info("Migrating %s: adding column %s", table, column)
                await self.db.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")

    async def columns(self, table: str) -> set[str]:
        async with self.db.execute(f"PRAGMA table_info({_check_table(table)})") as cur:
            return {row["name"] async for row in cur}

    # ── Last requests ──────────────────────────────────────

    async def get_last_request(self, table: str, user_id: str) -> LastRequestRecord | None:
        async with self.db.execute(
            f"SELECT user_id, last_requested, last_address FROM {_check_table(table)}"
            " WHERE user_id=?",
            (user_id,),
        ) as cur:
            row = await cur.fetchone()
            if row is None:
                return None
            return LastRequestRecord(
                user_id=row["user_id"],
                last_requested=row["last_requested"],
                last_address=row["last_address"],
            )

    async def store_last_request(
        self, table: str, user_id: str, address: str, now: int | None = None
    ) -> None:
        table = _check_table(table)
        stamp = int(time.time()) if now is None else int(now)
        async with self._lock:
            await self.db.execute(
                f"INSERT INTO {table} (user_id, last_requested, last_address)"
                " VALUES (?, ?, ?)"
                " ON CONFLICT(user_id) DO UPDATE SET"
                " last_requested=excluded.last_requested,"
                " last_address=excluded.last_address",
                (user_id, stamp, address),
            )
            await self.db.commit()

    async def count(self, table: str) -> int:
        async with self.db.execute(f"SELECT COUNT(*) AS n FROM {_check_table(table)}") as cur:
            row = await cur.fetchone()
            return row["n"] if row else 0
