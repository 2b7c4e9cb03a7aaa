# archive_viewer/database/manager.py

import os
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional, Sequence, Union

import aiosqlite

from .schema import ARCHIVE_SCHEMA, FULL_TEXT_CREATE, FULL_TEXT_DROP, FULL_TEXT_REBUILD

FULL_TEXT_FEATURE = "PostArchiverViewer:SearchFullText"

Parameters = Union[Sequence[Any], dict]


async def fetch_all(db: aiosqlite.Connection, sql: str,
                    parameters: Parameters = ()) -> List[aiosqlite.Row]:
    """Runs a query and returns every row, closing the cursor."""
    return list(await db.execute_fetchall(sql, parameters))


async def fetch_one(db: aiosqlite.Connection, sql: str,
                    parameters: Parameters = ()) -> Optional[aiosqlite.Row]:
    """Runs a query and returns its first row, or None."""
    async with db.execute(sql, parameters) as cursor:
        return await cursor.fetchone()


async def fetch_count(db: aiosqlite.Connection, sql: str,
                      parameters: Parameters = ()) -> int:
    row = await fetch_one(db, sql, parameters)
    return int(row[0]) if row is not None else 0


class ArchiveManager:
    """
    Owns the single connection to a post-archiver database.

    Every statement in the process goes through this connection, guarded
    by one asyncio lock: at most one statement runs at a time. The lock is
    held through ``async with``, so errors and cancelled requests always
    release it.
    """

    def __init__(self, database_path: str, busy_timeout: int = 60000):
        self.database_path = database_path
        self.busy_timeout = busy_timeout
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def initialize(self, create: bool = False):
        """Opens the archive; with create=True a missing archive is created empty."""
        if self._conn is not None:
            return

        try:
            if not os.path.exists(self.database_path):
                if not create:
                    raise FileNotFoundError(f"No archive found at {self.database_path}")
                os.makedirs(os.path.dirname(self.database_path) or ".", exist_ok=True)
                logging.info(f"Creating empty archive at {self.database_path}")

            # Autocommit mode; transactions are opened explicitly.
            conn = await aiosqlite.connect(self.database_path, isolation_level=None)
            conn.row_factory = aiosqlite.Row
            await conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout)}")
            await conn.execute("PRAGMA foreign_keys = ON")
            if create:
                logging.info("Applying archive schema...")
                await conn.executescript(ARCHIVE_SCHEMA)
            self._conn = conn
            logging.info(f"Opened archive {self.database_path}")

        except Exception as e:
            logging.error(f"Failed to open archive: {e}")
            raise

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Provides exclusive use of the archive connection."""
        if self._conn is None:
            await self.initialize()

        async with self._lock:
            try:
                yield self._conn
            except aiosqlite.Error as e:
                logging.error(f"Database error: {e}")
                raise

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Exclusive use of the connection inside one transaction, so all
        statements of a response read the same snapshot.
        """
        async with self.connection() as db:
            if db.in_transaction:
                # left open by a request that was cancelled mid-rollback
                logging.warning("Rolling back abandoned transaction")
                await db.execute("ROLLBACK")

            await db.execute("BEGIN")
            try:
                yield db
            except BaseException:
                await db.execute("ROLLBACK")
                raise
            else:
                await db.execute("COMMIT")

    async def sync_full_text_search(self, wanted: Optional[bool]) -> bool:
        """
        Brings the full-text index in line with the requested setting.

        The archive remembers the last setting in its features table; when
        wanted is None the stored setting is kept. Returns whether
        full-text search is enabled.
        """
        async with self.connection() as db:
            row = await fetch_one(
                db, "SELECT value FROM features WHERE name = ?", (FULL_TEXT_FEATURE,)
            )
            stored = bool(row[0]) if row is not None else False
            status = stored if wanted is None else wanted
            changed = status != stored

            logging.info(
                f"search-full-text: {'enabled' if status else 'disabled'}"
                f"{' (changed)' if changed else ''}"
            )

            if changed:
                await db.execute("BEGIN")
                try:
                    await db.execute("""
                        INSERT INTO features (name, value) VALUES (?, ?)
                        ON CONFLICT(name) DO UPDATE SET value = excluded.value
                    """, (FULL_TEXT_FEATURE, int(status)))

                    if status:
                        logging.info("Creating search table")
                        await db.execute(FULL_TEXT_CREATE)
                    else:
                        logging.info("Dropping search table")
                        await db.execute(FULL_TEXT_DROP)
                    await db.execute("COMMIT")
                except BaseException:
                    await db.execute("ROLLBACK")
                    raise

                logging.info("Cleaning up database")
                await db.execute("VACUUM")

            if status:
                logging.info("Rebuilding full-text search index")
                await db.execute(FULL_TEXT_REBUILD)

            return status

    async def close(self):
        """Closes the archive connection."""
        if self._conn is None:
            return

        async with self._lock:
            await self._conn.close()
            self._conn = None
            logging.info(f"Closed archive {self.database_path}")
