"""
Acknowledgement gate: turns reactions on the rules message into member role
changes.

* Events on any other message are ignored.
* A suspended user's reaction is retracted on add and ignored on remove.
* Otherwise the acknowledgement emoji grants the role on add and revokes it
  on remove; other emoji are ignored.

Role changes the platform rejects are logged and not retried, so the
reaction state and the role state can drift apart.
"""

from __future__ import annotations

from memberwarden.datatypes.suspension_datatypes import GateOutcome, ReactionEvent
from memberwarden.errors import PlatformOpFailure
from memberwarden.platform.base import Platform
from memberwarden.suspension.ledger import SuspensionLedger
from memberwarden.util.logger import get_logger

logger = get_logger("acknowledgement_gate")


class AcknowledgementGate:
    def __init__(self, ledger: SuspensionLedger, platform: Platform, emoji: str) -> None:
        self.ledger = ledger
        self.platform = platform
        self.emoji = emoji

    async def handle(self, event: ReactionEvent) -> GateOutcome:
        """Apply one reaction event and report what was done.

        Raises:
            StoreIOError: If the ledger cannot be read.
        """
        pinned = await self.ledger.get_pinned_ack()
        if pinned is None or not pinned.matches(event.channel_id, event.message_id):
            return GateOutcome.IGNORED

        user_id = event.user_id
        if await self.ledger.is_suspended(user_id):
            if not event.added:
                return GateOutcome.IGNORED
            try:
                await self.platform.remove_reaction(event.channel_id, event.message_id, user_id, event.emoji)
            except PlatformOpFailure as exc:
                logger.error("[ACK GATE] Could not retract reaction of suspended user %s: %s", user_id, exc)
                return GateOutcome.FAILED
            logger.info("[ACK GATE] Retracted reaction of suspended user %s", user_id)
            return GateOutcome.RETRACTED

        if event.emoji != self.emoji:
            return GateOutcome.IGNORED

        if event.added:
            return await self._grant(event)
        return await self._revoke(event)

    async def _grant(self, event: ReactionEvent) -> GateOutcome:
        user_id = event.user_id
        try:
            if await self.platform.has_capability(user_id):
                logger.debug("[ACK GATE] %s already has the member role", user_id)
                return GateOutcome.ALREADY_GRANTED
            await self.platform.grant_capability(user_id)
        except PlatformOpFailure as exc:
            logger.error("[ACK GATE] Could not add member role to uid %s: %s", user_id, exc)
            return GateOutcome.FAILED
        logger.info("[ACK GATE] Added member role to uid: %s", user_id)
        return GateOutcome.GRANTED

    async def _revoke(self, event: ReactionEvent) -> GateOutcome:
        user_id = event.user_id
        try:
            await self.platform.revoke_capability(user_id)
        except PlatformOpFailure as exc:
            logger.error("[ACK GATE] Could not remove member role from uid %s: %s", user_id, exc)
            return GateOutcome.FAILED
        logger.info("[ACK GATE] Removed member role from uid: %s", user_id)
        return GateOutcome.REVOKED
