"""
Records and events exchanged between the suspension components.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from memberwarden.datatypes.discord_datatypes import ChannelID, MessageID, UserID


def normalize_expiry(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime truncated to whole seconds.

    The ledger stores unix seconds, so every expiry that is scheduled or
    compared in memory goes through here first.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0)


def expiry_to_unix(value: datetime) -> int:
    return int(normalize_expiry(value).timestamp())


def expiry_from_unix(value: int) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


@dataclass(frozen=True, slots=True)
class SuspensionRecord:
    """An active suspension: the user and the instant it ends."""

    user_id: UserID
    release_at: datetime


@dataclass(frozen=True, slots=True)
class PinnedAckMessage:
    """The rules message users react to in order to become members."""

    channel_id: ChannelID
    message_id: MessageID

    def matches(self, channel_id: ChannelID, message_id: MessageID) -> bool:
        return self.channel_id == channel_id and self.message_id == message_id


@dataclass(frozen=True, slots=True)
class ReactionEvent:
    """
    A reaction added to or removed from a message.

    Attributes:
        channel_id: Channel containing the message.
        message_id: Message the reaction is on.
        user_id: User who added or removed the reaction.
        emoji: The reaction rendered as a string (unicode emoji or ``<:name:id>``).
        added: ``True`` for an add event, ``False`` for a remove event.
    """

    channel_id: ChannelID
    message_id: MessageID
    user_id: UserID
    emoji: str
    added: bool


class GateOutcome(Enum):
    """What the acknowledgement gate did with a reaction event."""

    IGNORED = "ignored"
    GRANTED = "granted"
    ALREADY_GRANTED = "already_granted"
    REVOKED = "revoked"
    RETRACTED = "retracted"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value
