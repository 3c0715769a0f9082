"""
Suspension ledger: the durable source of truth for who is suspended.

Every mutation runs inside a store transaction, so by the time a mutating
method returns the change has been committed (flushed). A user is suspended
if and only if a record exists for them here; the scheduler's timers are a
cache that :func:`memberwarden.suspension.recovery.recover` rebuilds from
:meth:`SuspensionLedger.list_all`.
"""

from __future__ import annotations

import asyncio
import weakref
from datetime import datetime
from typing import AsyncIterator

from memberwarden.database.db_connection import ConnectionManager
from memberwarden.datatypes.discord_datatypes import ChannelID, MessageID, UserID
from memberwarden.datatypes.suspension_datatypes import (
    PinnedAckMessage,
    SuspensionRecord,
    expiry_from_unix,
    expiry_to_unix,
)
from memberwarden.errors import MalformedIdentifier
from memberwarden.repositories.pinned_message_repo import RULES_MESSAGE, pinned_message_repo
from memberwarden.repositories.suspension_repo import SuspensionRow, suspension_repo
from memberwarden.util.logger import get_logger

logger = get_logger("suspension_ledger")


class SuspensionLedger:
    """
    Suspension records and the pinned rules message pointer.

    Per-user locks serialise read-modify-write sequences (check the record,
    then change it) for one user while different users proceed concurrently.
    Locks are not re-entrant: callers take :meth:`lock_for` around a
    sequence of ledger calls, never inside one. A lock lives only while
    some task holds or waits on it.
    """

    def __init__(self, store: ConnectionManager) -> None:
        self._store = store
        self._suspensions = suspension_repo
        self._pinned = pinned_message_repo
        self._per_user_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def lock_for(self, user_id: UserID) -> asyncio.Lock:
        key = str(user_id)
        lock = self._per_user_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._per_user_locks[key] = lock
        return lock

    # ------------------------------------------------------------------
    # Suspensions
    # ------------------------------------------------------------------

    async def put(self, user_id: UserID, release_at: datetime) -> SuspensionRecord:
        """Insert or overwrite the suspension for ``user_id`` and flush.

        Raises:
            StoreIOError: If the write or its commit fails.
        """
        unix = expiry_to_unix(release_at)
        async with self._store.transaction() as conn:
            await self._suspensions.upsert(conn, str(user_id), unix)
        logger.debug("[LEDGER] Stored suspension for %s until %d", user_id, unix)
        return SuspensionRecord(user_id=UserID(user_id), release_at=expiry_from_unix(unix))

    async def replace(self, user_id: UserID, release_at: datetime) -> SuspensionRecord:
        """Release-then-recreate the suspension for ``user_id`` in one commit.

        The old record is deleted and the new one written inside a single
        transaction, so a crash leaves either the old suspension or the new
        one, never neither.

        Raises:
            StoreIOError: If the write or its commit fails; the old record is kept.
        """
        unix = expiry_to_unix(release_at)
        async with self._store.transaction() as conn:
            await self._suspensions.delete(conn, str(user_id))
            await self._suspensions.upsert(conn, str(user_id), unix)
        logger.debug("[LEDGER] Replaced suspension for %s, now until %d", user_id, unix)
        return SuspensionRecord(user_id=UserID(user_id), release_at=expiry_from_unix(unix))

    async def remove(self, user_id: UserID) -> bool:
        """Delete the suspension for ``user_id`` and flush; absence is not an error.

        Returns:
            True if a record was removed.
        """
        async with self._store.transaction() as conn:
            removed = await self._suspensions.delete(conn, str(user_id))
        if removed:
            logger.debug("[LEDGER] Removed suspension for %s", user_id)
        return removed

    async def get(self, user_id: UserID) -> datetime | None:
        """Return the release instant for ``user_id``, or None if not suspended."""
        async with self._store.read() as conn:
            row = await self._suspensions.get(conn, str(user_id))
        if row is None:
            return None
        return expiry_from_unix(row.release_at)

    async def is_suspended(self, user_id: UserID) -> bool:
        return await self.get(user_id) is not None

    async def list_all(self) -> AsyncIterator[SuspensionRecord]:
        """
        Stream every suspension record, in no particular order.

        Each call starts a fresh scan. Rows whose user id or timestamp cannot
        be parsed are logged and skipped; they stay in the table untouched.
        """
        async with self._store.read() as conn:
            async for row in self._suspensions.iter_all(conn):
                record = self._parse_row(row)
                if record is not None:
                    yield record

    @staticmethod
    def _parse_row(row: SuspensionRow) -> SuspensionRecord | None:
        try:
            user_id = UserID.parse(row.user_id)
            if isinstance(row.release_at, bool) or not isinstance(row.release_at, int):
                raise ValueError(f"release_at is not an integer: {row.release_at!r}")
            release_at = expiry_from_unix(row.release_at)
        except (MalformedIdentifier, ValueError, OverflowError, OSError) as exc:
            logger.error("[LEDGER] Skipping corrupt suspension record %r: %s", row, exc)
            return None
        return SuspensionRecord(user_id=user_id, release_at=release_at)

    # ------------------------------------------------------------------
    # Pinned acknowledgement message
    # ------------------------------------------------------------------

    async def set_pinned_ack(self, channel_id: ChannelID, message_id: MessageID) -> PinnedAckMessage:
        """Point the acknowledgement gate at a new rules message, replacing any prior one."""
        async with self._store.transaction() as conn:
            await self._pinned.set(conn, RULES_MESSAGE, channel_id.to_int(), message_id.to_int())
        logger.info("[LEDGER] Rules message set to %s/%s", channel_id, message_id)
        return PinnedAckMessage(channel_id=channel_id, message_id=message_id)

    async def get_pinned_ack(self) -> PinnedAckMessage | None:
        async with self._store.read() as conn:
            row = await self._pinned.get(conn, RULES_MESSAGE)
        if row is None:
            return None
        channel_id, message_id = row
        return PinnedAckMessage(channel_id=ChannelID(channel_id), message_id=MessageID(message_id))
