"""
The chat-platform operations the suspension components depend on.

The suspension core only talks to :class:`Platform`; Discord is one
implementation and tests pass an in-memory fake.
"""

from __future__ import annotations

from typing import Protocol

from memberwarden.datatypes.discord_datatypes import ChannelID, MessageID, UserID


class Platform(Protocol):
    async def send_direct(self, user_id: UserID, text: str) -> None:
        """DM a user. Raises NotificationFailure when the DM cannot be sent."""
        ...

    async def grant_capability(self, user_id: UserID) -> None:
        """Give the member role. Raises CapabilityOpFailure on rejection."""
        ...

    async def revoke_capability(self, user_id: UserID) -> None:
        """Take the member role away. Raises CapabilityOpFailure on rejection."""
        ...

    async def has_capability(self, user_id: UserID) -> bool:
        ...

    async def remove_reaction(self, channel_id: ChannelID, message_id: MessageID, user_id: UserID, emoji: str) -> None:
        ...

    async def post_message(self, channel_id: ChannelID, text: str) -> MessageID:
        ...

    async def add_reaction(self, channel_id: ChannelID, message_id: MessageID, emoji: str) -> None:
        ...

    async def disconnect_voice(self, user_id: UserID) -> None:
        ...
