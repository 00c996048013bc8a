import asyncio
import sqlite3
from typing import Any, Optional, Sequence

import aiosqlite
from fastapi import Request

from lms.errors import StorageError, UniqueViolation
from lms.settings import settings
from lms.utils.logging import db_logger


def _is_connection_lost(error: Exception) -> bool:
    # aiosqlite raises ValueError once its worker connection is gone;
    # sqlite3 reports use of a closed handle as a ProgrammingError
    if isinstance(error, ValueError):
        return True
    return "closed" in str(error).lower()


class DatabasePool:
    """Process-wide handle to the SQLite store.

    The underlying connection is opened lazily on the first ``acquire()`` and
    shared by every request afterwards. A fatal connection error discards the
    handle so that the next ``acquire()`` opens a fresh one. Statements are
    issued as independent round trips and each write is committed on its own;
    nothing here wraps several statements in a transaction.
    """

    def __init__(self, database_url: str, timeout: float = 30.0):
        self.database_url = database_url
        self.timeout = timeout
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def acquire(self) -> aiosqlite.Connection:
        if self._conn is not None:
            return self._conn

        async with self._lock:
            if self._conn is None:
                try:
                    conn = await aiosqlite.connect(
                        self.database_url, timeout=self.timeout
                    )
                except sqlite3.Error as e:
                    db_logger.error(
                        f"Failed to create database connection pool: {e}"
                    )
                    raise StorageError(str(e))

                conn.row_factory = aiosqlite.Row
                self._conn = conn
                db_logger.info(
                    f"Database connection pool created for {self.database_url}"
                )

        return self._conn

    async def reset(self):
        """Drop the current handle; the next acquire() rebuilds it."""
        conn, self._conn = self._conn, None
        if conn is None:
            return

        try:
            await conn.close()
        except (sqlite3.Error, ValueError) as e:
            db_logger.warning(f"Error while closing discarded connection: {e}")

    async def close(self):
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            db_logger.info("Database connection pool closed")

    async def execute(
        self,
        query: str,
        params: Sequence[Any] = (),
        fetch_one: bool = False,
        fetch_all: bool = False,
        get_last_row_id: bool = False,
        get_row_count: bool = False,
    ):
        """Run one parameterized statement.

        Reads return a dict (``fetch_one``) or a list of dicts (``fetch_all``).
        Anything else is treated as a write and committed immediately.
        """
        conn = await self.acquire()

        try:
            async with conn.execute(query, tuple(params)) as cursor:
                if fetch_one:
                    row = await cursor.fetchone()
                    return dict(row) if row is not None else None

                if fetch_all:
                    rows = await cursor.fetchall()
                    return [dict(row) for row in rows]

                await conn.commit()

                if get_last_row_id:
                    return cursor.lastrowid

                if get_row_count:
                    return cursor.rowcount

                return None
        except sqlite3.IntegrityError as e:
            db_logger.warning(f"SQL constraint violation: {e}")
            if "UNIQUE" in str(e):
                raise UniqueViolation(str(e))
            raise StorageError(str(e))
        except (sqlite3.ProgrammingError, ValueError) as e:
            if not _is_connection_lost(e):
                db_logger.error(f"SQL query error: {e}")
                raise StorageError(str(e))

            db_logger.error(f"SQL pool error, discarding connection: {e}")
            await self.reset()
            raise StorageError(str(e))
        except sqlite3.Error as e:
            db_logger.error(f"SQL query error: {e}")
            raise StorageError(str(e))

    async def execute_script(self, script: str):
        conn = await self.acquire()
        try:
            await conn.executescript(script)
            await conn.commit()
        except sqlite3.Error as e:
            db_logger.error(f"SQL script error: {e}")
            raise StorageError(str(e))


db_pool = DatabasePool(settings.database_url, timeout=settings.database_timeout)


def get_db_pool(request: Request) -> DatabasePool:
    """FastAPI dependency returning the pool owned by the running app."""
    return request.app.state.db_pool
