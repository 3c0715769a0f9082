"""
discord_utils.py
================

Stateless helpers for translating between py-cord objects and Memberwarden
types, plus the permission check shared by the command cogs.
"""

import discord

from memberwarden.datatypes.discord_datatypes import ChannelID, MessageID, UserID
from memberwarden.datatypes.suspension_datatypes import ReactionEvent


def has_permissions(application_context: discord.ApplicationContext, **required_permissions) -> bool:
    """
    Check if the command issuer has all specified permissions in the guild.

    Args:
        application_context (discord.ApplicationContext): The command context.
        **required_permissions: Permission flags to check.

    Returns:
        bool: True if all permissions are present, False otherwise.
    """
    if not isinstance(application_context.author, discord.Member):
        return False
    return all(
        getattr(application_context.author.guild_permissions, permission_name, False)
        for permission_name in required_permissions
    )


def reaction_event_from_payload(payload: discord.RawReactionActionEvent) -> ReactionEvent:
    """Build a :class:`ReactionEvent` from a raw gateway reaction payload."""
    return ReactionEvent(
        channel_id=ChannelID(payload.channel_id),
        message_id=MessageID(payload.message_id),
        user_id=UserID(payload.user_id),
        emoji=str(payload.emoji),
        added=payload.event_type == "REACTION_ADD",
    )
