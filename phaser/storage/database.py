"""SQLite connection for phaser.

One ``Database`` wraps one aiosqlite connection. Several engine processes
may open the same file at once; WAL mode plus a busy timeout lets their
short writes interleave, and certification locks are taken inside
``transaction()`` so the purge-then-insert pair is atomic.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, AsyncIterator

import aiosqlite

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

Row = aiosqlite.Row

BUSY_TIMEOUT_MS = 5000


class Database:
    """Async access to the phaser database file.

    Usage:
        async with Database(Path("data/phaser.db")) as db:
            due = await db.fetch_column("SELECT id FROM certifications")
    """

    def __init__(self, path: Path):
        self.path = path
        self._conn: aiosqlite.Connection | None = None
        self._in_transaction = False

    async def connect(self) -> None:
        if self._conn is not None:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self.path)
        self._conn.row_factory = aiosqlite.Row

        for pragma in (
            "journal_mode=WAL",
            "foreign_keys=ON",
            f"busy_timeout={BUSY_TIMEOUT_MS}",
        ):
            await self._conn.execute(f"PRAGMA {pragma}")

        logger.debug(f"Opened {self.path}")

    async def close(self) -> None:
        if self._conn is None:
            return
        await self._conn.close()
        self._conn = None
        logger.debug(f"Closed {self.path}")

    async def __aenter__(self) -> Database:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._conn

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    # --- Statements ---

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> aiosqlite.Cursor:
        return await self.connection.execute(sql, params)

    async def execute_count(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a write statement and return how many rows it touched."""
        cursor = await self.execute(sql, params)
        return cursor.rowcount

    async def executescript(self, sql: str) -> None:
        await self.connection.executescript(sql)

    # --- Queries ---

    async def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Row | None:
        cursor = await self.execute(sql, params)
        return await cursor.fetchone()

    async def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        cursor = await self.execute(sql, params)
        return list(await cursor.fetchall())

    async def fetch_column(self, sql: str, params: Sequence[Any] = ()) -> list[Any]:
        """First column of every row, in query order."""
        return [row[0] for row in await self.fetch_all(sql, params)]

    async def fetch_scalar(
        self, sql: str, params: Sequence[Any] = (), default: Any = None
    ) -> Any:
        """First column of the first row, or ``default`` when empty or NULL."""
        row = await self.fetch_one(sql, params)
        if row is None or row[0] is None:
            return default
        return row[0]

    # --- Transactions ---

    async def commit(self) -> None:
        """Commit pending writes. Deferred to the end of an open ``transaction()``."""
        if not self._in_transaction:
            await self.connection.commit()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Run the block as one immediate write transaction.

        Commits on normal exit, rolls back and re-raises on error. Calls to
        ``commit()`` inside the block are ignored.

        Raises:
            RuntimeError: If a transaction is already open
        """
        if self._in_transaction:
            raise RuntimeError("Nested transactions are not supported")

        # BEGIN fails while an implicit transaction is still open
        await self.connection.commit()
        self._in_transaction = True
        await self.execute("BEGIN IMMEDIATE")
        try:
            yield
        except BaseException:
            await self.execute("ROLLBACK")
            raise
        else:
            await self.execute("COMMIT")
        finally:
            self._in_transaction = False

    # --- Schema Versioning ---

    async def table_exists(self, table_name: str) -> bool:
        name = await self.fetch_scalar(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
            (table_name,),
        )
        return name is not None

    async def get_schema_version(self) -> int:
        """Highest applied schema version, 0 for a fresh file."""
        if not await self.table_exists("schema_version"):
            return 0
        return int(await self.fetch_scalar("SELECT MAX(version) FROM schema_version", default=0))

    async def set_schema_version(self, version: int) -> None:
        await self.execute(
            "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
            (version, datetime.now(timezone.utc).isoformat()),
        )
        await self.commit()
