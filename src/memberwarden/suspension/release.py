"""
Release sequencer: what happens when a suspension ends.

1. Best-effort DM telling the user they are free (failure is logged, never
   fatal).
2. Remove the suspension record and flush.

Capability restoration is not done here; the user re-acknowledges the rules
and the acknowledgement gate grants the role again.
"""

from __future__ import annotations

from datetime import datetime

from memberwarden.datatypes.discord_datatypes import UserID
from memberwarden.datatypes.suspension_datatypes import expiry_to_unix
from memberwarden.errors import PlatformOpFailure
from memberwarden.platform.base import Platform
from memberwarden.suspension.ledger import SuspensionLedger
from memberwarden.util.logger import get_logger

logger = get_logger("release_sequencer")


class ReleaseSequencer:
    """Idempotent end-of-suspension action.

    Args:
        ledger: Suspension records.
        platform: Used for the release DM.
        release_notice: Text of the release DM.
    """

    def __init__(self, ledger: SuspensionLedger, platform: Platform, release_notice: str) -> None:
        self.ledger = ledger
        self.platform = platform
        self.release_notice = release_notice

    async def release(self, user_id: UserID, expected_expiry: datetime | None = None) -> bool:
        """
        End the suspension of ``user_id``.

        Args:
            user_id: User to release.
            expected_expiry: When given, only release if the stored record still
                has this expiry. Timers pass their own expiry so a timer that
                fires just as the user is re-suspended cannot end the new
                suspension.

        Returns:
            True if a record was removed; False if there was nothing to do.

        Raises:
            StoreIOError: If the ledger cannot be read or the removal flushed.
        """
        async with self.ledger.lock_for(user_id):
            current = await self.ledger.get(user_id)
            if current is None:
                logger.debug("[RELEASE] %s is not suspended; nothing to release", user_id)
                return False
            if expected_expiry is not None and expiry_to_unix(current) != expiry_to_unix(expected_expiry):
                logger.info(
                    "[RELEASE] Suspension of %s was re-timed to %s; skipping stale release",
                    user_id, current.isoformat(),
                )
                return False

            try:
                await self.platform.send_direct(user_id, self.release_notice)
            except PlatformOpFailure as exc:
                logger.warning("[RELEASE] Could not notify %s of release: %s", user_id, exc)

            await self.ledger.remove(user_id)

        logger.info("[RELEASE] Released %s from suspension", user_id)
        return True

    async def release_on_expiry(self, user_id: UserID, release_at: datetime) -> bool:
        """Scheduler callback: release only the suspension this timer was created for."""
        return await self.release(user_id, expected_expiry=release_at)
