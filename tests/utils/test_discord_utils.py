from types import SimpleNamespace
from unittest.mock import MagicMock

import discord

from memberwarden.datatypes.discord_datatypes import ChannelID, MessageID, UserID
from memberwarden.util.discord_utils import has_permissions, reaction_event_from_payload


def make_ctx(administrator: bool):
    author = MagicMock(spec=discord.Member)
    author.guild_permissions = SimpleNamespace(administrator=administrator)
    return SimpleNamespace(author=author)


def test_has_permissions_checks_guild_permissions():
    assert has_permissions(make_ctx(True), administrator=True) is True
    assert has_permissions(make_ctx(False), administrator=True) is False


def test_has_permissions_rejects_non_members():
    ctx = SimpleNamespace(author=SimpleNamespace(guild_permissions=SimpleNamespace(administrator=True)))
    assert has_permissions(ctx, administrator=True) is False


def test_reaction_event_from_payload():
    payload = SimpleNamespace(channel_id=7, message_id=8, user_id=9, emoji="✅", event_type="REACTION_REMOVE")
    event = reaction_event_from_payload(payload)

    assert event.channel_id == ChannelID(7)
    assert event.message_id == MessageID(8)
    assert event.user_id == UserID(9)
    assert event.emoji == "✅"
    assert event.added is False
