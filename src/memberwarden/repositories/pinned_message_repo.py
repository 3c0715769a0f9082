"""
Persistent storage for named message pointers (the rules message).
"""

from __future__ import annotations

from typing import Tuple

import aiosqlite

RULES_MESSAGE = "rules"


class PinnedMessageRepo:
    """Low-level get/set for the ``pinned_messages`` table."""

    @staticmethod
    async def set(conn: aiosqlite.Connection, name: str, channel_id: int, message_id: int) -> None:
        """Create or overwrite the pointer stored under ``name``."""
        await conn.execute(
            """
            INSERT INTO pinned_messages (name, channel_id, message_id)
            VALUES (?, ?, ?)
            ON CONFLICT(name) DO UPDATE SET
                channel_id = excluded.channel_id,
                message_id = excluded.message_id
            """,
            (name, channel_id, message_id),
        )

    @staticmethod
    async def get(conn: aiosqlite.Connection, name: str) -> Tuple[int, int] | None:
        cursor = await conn.execute(
            "SELECT channel_id, message_id FROM pinned_messages WHERE name = ? LIMIT 1",
            (name,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return row[0], row[1]


pinned_message_repo = PinnedMessageRepo()
