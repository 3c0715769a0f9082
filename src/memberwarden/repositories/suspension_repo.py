"""
Persistent storage for active suspensions.

Timestamps are stored as INTEGER unix seconds (UTC) so comparisons are
trivial and there is no string parsing or timezone conversion needed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator

import aiosqlite


@dataclass
class SuspensionRow:
    """A single raw row from the ``suspensions`` table, not yet validated."""
    user_id: str
    release_at: int   # unix seconds (UTC)


class SuspensionRepo:
    """Low-level CRUD for the ``suspensions`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def upsert(conn: aiosqlite.Connection, user_id: str, release_at: int) -> None:
        """Insert or replace the suspension row for ``user_id``."""
        await conn.execute(
            """
            INSERT INTO suspensions (user_id, release_at)
            VALUES (?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                release_at = excluded.release_at
            """,
            (user_id, release_at),
        )

    @staticmethod
    async def delete(conn: aiosqlite.Connection, user_id: str) -> bool:
        """Remove the row for ``user_id``; returns whether a row existed."""
        cursor = await conn.execute(
            "DELETE FROM suspensions WHERE user_id = ?",
            (user_id,),
        )
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get(conn: aiosqlite.Connection, user_id: str) -> SuspensionRow | None:
        cursor = await conn.execute(
            "SELECT user_id, release_at FROM suspensions WHERE user_id = ? LIMIT 1",
            (user_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return SuspensionRow(user_id=str(row[0]), release_at=row[1])

    @staticmethod
    async def iter_all(conn: aiosqlite.Connection) -> AsyncIterator[SuspensionRow]:
        """Stream every row without loading the table into memory."""
        async with conn.execute("SELECT user_id, release_at FROM suspensions") as cursor:
            async for row in cursor:
                yield SuspensionRow(user_id=str(row[0]), release_at=row[1])


suspension_repo = SuspensionRepo()
