"""
Record store connection management: one long-lived aiosqlite connection.

Concurrency model
-----------------
SQLite is single-writer. Writes are serialised at the application layer
with a semaphore so async tasks queue instead of fighting SQLite's busy
timeout. Reads run concurrently in WAL mode and need no semaphore.

A write is durable once ``transaction()`` exits cleanly: the commit at
the end of the block is the flush. Callers must not report success for a
mutation before that point.

Usage
-----
    store = ConnectionManager()
    await store.open(path)

    async with store.transaction() as conn:
        await conn.execute("INSERT ...")
        # commits (flushes) here, rolls back on exception

    async with store.read() as conn:
        cursor = await conn.execute("SELECT ...")

    await store.close()

Every sqlite failure, and any use of a store that is not open, is raised
as :class:`memberwarden.errors.StoreIOError`.
"""

from __future__ import annotations

import asyncio
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from memberwarden.database.db_schema import SchemaManager
from memberwarden.errors import StoreIOError
from memberwarden.util.logger import get_logger

logger = get_logger("database_connection")

# ── Pragmas applied once when the connection is opened ──────────────────────
_PRAGMAS = [
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = FULL",      # a committed suspension must survive power loss
    "PRAGMA temp_store = MEMORY",
    "PRAGMA wal_autocheckpoint = 1000",
]


class ConnectionManager:
    """
    Owner of the single aiosqlite connection backing the record store.

    * Reads:  ``async with read()``; WAL allows concurrent reads.
    * Writes: ``async with transaction()``; serialised by ``_write_sem``.
    """

    def __init__(self) -> None:
        self._conn: aiosqlite.Connection | None = None
        self._write_sem = asyncio.Semaphore(1)
        self._path: Path | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self, path: Path) -> None:
        """
        Open the database, apply pragmas, and create the schema.

        Args:
            path: Path to the SQLite database file. ``":memory:"`` is accepted
                for throwaway stores.

        Raises:
            StoreIOError: If the file cannot be opened or the schema created.
        """
        if self._conn is not None:
            logger.warning("[DB CONNECTION] open() called but connection already exists; ignoring")
            return

        self._path = path
        try:
            if str(path) != ":memory:":
                path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = await aiosqlite.connect(path)
            for pragma in _PRAGMAS:
                await self._conn.execute(pragma)
            await SchemaManager.initialize_schema(self._conn)
        except (sqlite3.Error, OSError) as exc:
            if self._conn is not None:
                await self._conn.close()
                self._conn = None
            raise StoreIOError(f"Could not open record store at {path}: {exc}") from exc

        logger.info("[DB CONNECTION] Opened connection to %s", path)

    async def close(self) -> None:
        """Checkpoint the WAL and close the connection. Safe to call twice."""
        if self._conn is None:
            return

        try:
            await self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            await self._conn.commit()
        except sqlite3.Error:
            logger.exception("[DB CONNECTION] WAL checkpoint failed during close")
        finally:
            await self._conn.close()
            self._conn = None
            logger.info("[DB CONNECTION] Connection closed")

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> aiosqlite.Connection:
        """
        The raw aiosqlite connection.

        Raises:
            StoreIOError: If the connection has not been opened yet.
        """
        if self._conn is None:
            raise StoreIOError("Record store is not open. Call await store.open(path) at startup.")
        return self._conn

    # ------------------------------------------------------------------
    # Transaction context (writes)
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Serialised write transaction that commits on clean exit.

        Rolls back and raises :class:`StoreIOError` if a sqlite error occurs
        inside the block or during the commit. Other exceptions roll back and
        propagate unchanged.
        """
        conn = self.connection

        async with self._write_sem:
            try:
                yield conn
                await conn.commit()
            except sqlite3.Error as exc:
                await self._safe_rollback(conn)
                raise StoreIOError(f"Record store write failed: {exc}") from exc
            except BaseException:
                await self._safe_rollback(conn)
                raise

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Read context; no semaphore is taken.

        sqlite errors raised inside the block surface as :class:`StoreIOError`.
        """
        conn = self.connection
        try:
            yield conn
        except sqlite3.Error as exc:
            raise StoreIOError(f"Record store read failed: {exc}") from exc

    @staticmethod
    async def _safe_rollback(conn: aiosqlite.Connection) -> None:
        try:
            await conn.rollback()
        except sqlite3.Error:
            logger.exception("[DB CONNECTION] Rollback failed")
