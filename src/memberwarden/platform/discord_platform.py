"""
py-cord implementation of :class:`memberwarden.platform.base.Platform`.

All operations act on the single configured guild. Discord HTTP errors are
translated into the Memberwarden error taxonomy so the suspension core never
handles ``discord`` exceptions directly.
"""

from __future__ import annotations

import discord

from memberwarden.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, RoleID, UserID
from memberwarden.errors import CapabilityOpFailure, NotificationFailure, PlatformOpFailure


class DiscordPlatform:
    """
    Discord operations for one guild and one member role.

    Args:
        bot: The running py-cord bot.
        guild_id: Guild the bot moderates.
        member_role_id: Role granted on rules acknowledgement.
    """

    def __init__(self, bot: discord.Bot, guild_id: GuildID, member_role_id: RoleID) -> None:
        self.bot = bot
        self.guild_id = guild_id
        self.member_role_id = member_role_id

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _guild(self) -> discord.Guild:
        guild = self.bot.get_guild(self.guild_id.to_int())
        if guild is None:
            raise PlatformOpFailure(f"Guild {self.guild_id} is not available to the bot.")
        return guild

    async def _member(self, user_id: UserID) -> discord.Member:
        guild = self._guild()
        member = guild.get_member(user_id.to_int())
        if member is not None:
            return member
        try:
            return await guild.fetch_member(user_id.to_int())
        except discord.NotFound as exc:
            raise CapabilityOpFailure(f"User {user_id} is not a member of guild {self.guild_id}.") from exc
        except discord.HTTPException as exc:
            raise CapabilityOpFailure(f"Could not fetch member {user_id}: {exc}") from exc

    async def _channel(self, channel_id: ChannelID):
        channel = self.bot.get_channel(channel_id.to_int())
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(channel_id.to_int())
            except discord.HTTPException as exc:
                raise PlatformOpFailure(f"Could not fetch channel {channel_id}: {exc}") from exc
        if not isinstance(channel, discord.abc.Messageable):
            raise PlatformOpFailure(f"Channel {channel_id} cannot hold messages.")
        return channel

    def _role(self) -> discord.Object:
        return discord.Object(id=self.member_role_id.to_int())

    # ------------------------------------------------------------------
    # Platform operations
    # ------------------------------------------------------------------

    async def send_direct(self, user_id: UserID, text: str) -> None:
        try:
            user = self.bot.get_user(user_id.to_int()) or await self.bot.fetch_user(user_id.to_int())
            await user.send(text)
        except discord.HTTPException as exc:
            raise NotificationFailure(f"Could not DM user {user_id}: {exc}") from exc

    async def grant_capability(self, user_id: UserID) -> None:
        member = await self._member(user_id)
        try:
            await member.add_roles(self._role(), reason="Acknowledged the rules")
        except discord.HTTPException as exc:
            raise CapabilityOpFailure(f"Could not add member role to {user_id}: {exc}") from exc

    async def revoke_capability(self, user_id: UserID) -> None:
        member = await self._member(user_id)
        try:
            await member.remove_roles(self._role(), reason="Member role withdrawn")
        except discord.HTTPException as exc:
            raise CapabilityOpFailure(f"Could not remove member role from {user_id}: {exc}") from exc

    async def has_capability(self, user_id: UserID) -> bool:
        try:
            member = await self._member(user_id)
        except CapabilityOpFailure:
            return False
        role_id = self.member_role_id.to_int()
        return any(role.id == role_id for role in member.roles)

    async def remove_reaction(self, channel_id: ChannelID, message_id: MessageID, user_id: UserID, emoji: str) -> None:
        channel = await self._channel(channel_id)
        message = channel.get_partial_message(message_id.to_int())
        try:
            await message.remove_reaction(emoji, discord.Object(id=user_id.to_int()))
        except discord.HTTPException as exc:
            raise PlatformOpFailure(f"Could not remove reaction of {user_id} on {message_id}: {exc}") from exc

    async def post_message(self, channel_id: ChannelID, text: str) -> MessageID:
        channel = await self._channel(channel_id)
        try:
            message = await channel.send(text)
        except discord.HTTPException as exc:
            raise PlatformOpFailure(f"Could not post to channel {channel_id}: {exc}") from exc
        return MessageID.from_message(message)

    async def add_reaction(self, channel_id: ChannelID, message_id: MessageID, emoji: str) -> None:
        channel = await self._channel(channel_id)
        message = channel.get_partial_message(message_id.to_int())
        try:
            await message.add_reaction(emoji)
        except discord.HTTPException as exc:
            raise PlatformOpFailure(f"Could not react to message {message_id}: {exc}") from exc

    async def disconnect_voice(self, user_id: UserID) -> None:
        member = await self._member(user_id)
        if member.voice is None:
            return
        try:
            await member.move_to(None, reason="Suspended")
        except discord.HTTPException as exc:
            raise CapabilityOpFailure(f"Could not disconnect {user_id} from voice: {exc}") from exc
