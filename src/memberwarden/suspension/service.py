"""
Suspension service: the operations the command and event layers call.

The service builds the ledger, scheduler, release sequencer and
acknowledgement gate once and hands each of them the store, platform and
clock it was given; nothing here is a module-level global. Commands wait
until recovery has finished so a fresh timeout can never race a timer that
recovery is about to create for the same user.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Awaitable

from memberwarden.configuration.app_configuration import AppConfig
from memberwarden.database.db_connection import ConnectionManager
from memberwarden.datatypes.discord_datatypes import ChannelID, UserID
from memberwarden.datatypes.suspension_datatypes import (
    GateOutcome,
    PinnedAckMessage,
    ReactionEvent,
    normalize_expiry,
)
from memberwarden.errors import InvalidDuration, PlatformOpFailure
from memberwarden.platform.base import Platform
from memberwarden.suspension.ack_gate import AcknowledgementGate
from memberwarden.suspension.clock import Clock, SystemClock
from memberwarden.suspension.expiry_scheduler import ExpiryScheduler
from memberwarden.suspension.ledger import SuspensionLedger
from memberwarden.suspension.recovery import recover
from memberwarden.suspension.release import ReleaseSequencer
from memberwarden.util.format_utils import humanize_timestamp
from memberwarden.util.logger import get_logger

logger = get_logger("suspension_service")


class SuspensionService:
    """
    Timeout, release, rules message and reaction handling for one guild.

    Args:
        store: Open record store.
        platform: Chat platform operations.
        config: Application configuration (emoji and notice texts).
        clock: Time source; defaults to the system clock.
    """

    def __init__(
        self,
        store: ConnectionManager,
        platform: Platform,
        config: AppConfig,
        clock: Clock | None = None,
    ) -> None:
        self.clock = clock or SystemClock()
        self.config = config
        self.platform = platform
        self.ledger = SuspensionLedger(store)
        self.sequencer = ReleaseSequencer(self.ledger, platform, config.release_notice)
        self.scheduler = ExpiryScheduler(self.sequencer.release_on_expiry, self.clock)
        self.gate = AcknowledgementGate(self.ledger, platform, config.acknowledgement_emoji)
        self._recovered = asyncio.Event()

    # ------------------------------------------------------------------
    # Startup / shutdown
    # ------------------------------------------------------------------

    @property
    def recovered(self) -> bool:
        return self._recovered.is_set()

    async def recover(self) -> int:
        """Rebuild timers from the ledger once per process and unblock commands.

        Raises:
            StoreIOError: If the ledger cannot be read; commands stay blocked.
        """
        if self._recovered.is_set():
            logger.debug("[SUSPENSIONS] Recovery already ran; skipping")
            return 0
        restored = await recover(self.ledger, self.scheduler)
        self._recovered.set()
        return restored

    async def wait_until_recovered(self) -> None:
        await self._recovered.wait()

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def timeout(self, user_id: UserID, duration: timedelta) -> datetime:
        """
        Suspend ``user_id`` for ``duration`` and return the release instant.

        The record is flushed and its timer scheduled before any platform
        call. Removing the member role, disconnecting voice, retracting the
        rules reaction and the DM are then each attempted independently; their
        failures are logged only. Re-suspending a suspended user replaces the
        old record without a release notice.

        Raises:
            InvalidDuration: If the release instant is past the end of the calendar.
            StoreIOError: If the record cannot be written.
        """
        await self._recovered.wait()
        try:
            release_at = normalize_expiry(self.clock.now() + duration)
        except OverflowError as exc:
            raise InvalidDuration(f"Duration {duration} is too long.") from exc

        async with self.ledger.lock_for(user_id):
            if await self.ledger.get(user_id) is not None:
                await self.ledger.replace(user_id, release_at)
                logger.info("[SUSPENSIONS] %s was already suspended; replaced the suspension", user_id)
            else:
                await self.ledger.put(user_id, release_at)
            # Cancels the previous timer, if any.
            self.scheduler.schedule(user_id, release_at)

        logger.info("[SUSPENSIONS] Suspended %s until %s", user_id, release_at.isoformat())

        await self._best_effort("remove member role from", user_id, self.platform.revoke_capability(user_id))
        await self._best_effort("disconnect from voice", user_id, self.platform.disconnect_voice(user_id))

        pinned = await self.ledger.get_pinned_ack()
        if pinned is not None:
            await self._best_effort(
                "retract rules reaction of",
                user_id,
                self.platform.remove_reaction(
                    pinned.channel_id, pinned.message_id, user_id, self.config.acknowledgement_emoji
                ),
            )

        notice = self.config.format_suspension_notice(humanize_timestamp(release_at))
        await self._best_effort("notify", user_id, self.platform.send_direct(user_id, notice))
        return release_at

    async def release(self, user_id: UserID) -> bool:
        """End a suspension early.

        Returns:
            True if the user was suspended and has been released.
        """
        await self._recovered.wait()
        if self.scheduler.cancel_user(user_id):
            logger.debug("[SUSPENSIONS] Cancelled pending timer for %s", user_id)
        return await self.sequencer.release(user_id)

    async def post_acknowledgement_message(self, channel_id: ChannelID, text: str) -> PinnedAckMessage:
        """Post the rules message, add the acknowledgement reaction, and remember it.

        Raises:
            PlatformOpFailure: If posting or reacting fails; the old pointer is kept.
            StoreIOError: If the pointer cannot be saved.
        """
        message_id = await self.platform.post_message(channel_id, text)
        await self.platform.add_reaction(channel_id, message_id, self.config.acknowledgement_emoji)
        return await self.ledger.set_pinned_ack(channel_id, message_id)

    # ------------------------------------------------------------------
    # Events and queries
    # ------------------------------------------------------------------

    async def handle_reaction(self, event: ReactionEvent) -> GateOutcome:
        return await self.gate.handle(event)

    async def is_suspended(self, user_id: UserID) -> bool:
        return await self.ledger.is_suspended(user_id)

    async def get_release_at(self, user_id: UserID) -> datetime | None:
        return await self.ledger.get(user_id)

    @staticmethod
    async def _best_effort(action: str, user_id: UserID, operation: Awaitable[object]) -> None:
        try:
            await operation
        except PlatformOpFailure as exc:
            logger.warning("[SUSPENSIONS] Could not %s %s: %s", action, user_id, exc)
