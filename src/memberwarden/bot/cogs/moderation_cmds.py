"""
Moderation cog: administrator commands for suspensions and the rules message.

Commands
- ``/timeout user duration``: suspend a user; ``duration`` is humantime style
  (``10m``, ``1h 30m``, ``2d``).
- ``/release user``: end a suspension early.
- ``/makerules channel [text]``: post the rules message users react to. Without
  ``text`` the bot asks for the post in the current channel; replying
  ``cancel`` stops the process.
- ``/ping``: liveness check.

Every command requires the Administrator permission and replies ephemerally.
``user`` is a mention or a raw ID so that malformed input can be rejected with
a readable message instead of a Discord-side conversion error.
"""

import asyncio

import discord
from discord import Option
from discord.ext import commands

from memberwarden.datatypes.discord_datatypes import ChannelID, UserID
from memberwarden.errors import InvalidDuration, MalformedIdentifier, PlatformOpFailure
from memberwarden.suspension.service import SuspensionService
from memberwarden.util.discord_utils import has_permissions
from memberwarden.util.format_utils import format_duration, humanize_timestamp, parse_duration
from memberwarden.util.logger import get_logger

logger = get_logger("moderation_cog")

RULES_REPLY_TIMEOUT_SECONDS = 300


class ModerationActionCog(commands.Cog):
    """Cog containing the suspension and rules message slash commands."""

    def __init__(self, discord_bot_instance, service: SuspensionService):
        """
        Parameters
        ----------
        discord_bot_instance:
            Active :class:`discord.Bot`, used to wait for the rules post reply.
        service:
            Suspension service the commands delegate to.
        """
        self.discord_bot_instance = discord_bot_instance
        self.service = service
        logger.info("Moderation cog loaded")

    async def check_admin(self, ctx: discord.ApplicationContext) -> bool:
        """Return True if the invoker is an administrator; reply and return False otherwise."""
        if has_permissions(ctx, administrator=True):
            return True
        await ctx.send_followup("You do not have permission to use this command.")
        return False

    @commands.slash_command(name="ping", description="Check that the bot is responsive.")
    async def ping(self, ctx: discord.ApplicationContext) -> None:
        await ctx.defer(ephemeral=True)
        if not await self.check_admin(ctx):
            return
        await ctx.send_followup("Pong!")

    @commands.slash_command(name="timeout", description="Temporarily suspend a user.")
    async def timeout(
        self,
        ctx: discord.ApplicationContext,
        user: Option(str, "The user to suspend (mention or ID).", required=True),  # type: ignore
        duration: Option(str, "How long, e.g. 10m, 1h 30m, 2d.", required=True),  # type: ignore
    ) -> None:
        """Suspend a user: remove the member role and schedule automatic release."""
        await ctx.defer(ephemeral=True)
        if not await self.check_admin(ctx):
            return

        try:
            user_id = UserID.parse(user)
        except MalformedIdentifier:
            await ctx.send_followup("Could not parse user.")
            return

        try:
            length = parse_duration(duration)
            release_at = await self.service.timeout(user_id, length)
        except InvalidDuration as exc:
            await ctx.send_followup(f"Could not parse duration: {exc}")
            return

        logger.info(
            "%s suspended %s for %s",
            ctx.author, user_id, format_duration(int(length.total_seconds())),
        )
        await ctx.send_followup(f"Timeout applied. Will expire: {humanize_timestamp(release_at)}")

    @commands.slash_command(name="release", description="Release a user from timeout early.")
    async def release(
        self,
        ctx: discord.ApplicationContext,
        user: Option(str, "The user to release (mention or ID).", required=True),  # type: ignore
    ) -> None:
        await ctx.defer(ephemeral=True)
        if not await self.check_admin(ctx):
            return

        try:
            user_id = UserID.parse(user)
        except MalformedIdentifier:
            await ctx.send_followup("Could not parse user.")
            return

        if await self.service.release(user_id):
            logger.info("%s released %s from timeout", ctx.author, user_id)
            await ctx.send_followup("User has been released from timeout.")
        else:
            await ctx.send_followup("That user is not in timeout.")

    @commands.slash_command(name="makerules", description="Post the rules message users react to.")
    async def makerules(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(discord.TextChannel, "Channel to post the rules in.", required=True),  # type: ignore
        text: Option(str, "Rules text. Leave empty to be asked for it.", required=False, default=None),  # type: ignore
    ) -> None:
        await ctx.defer(ephemeral=True)
        if not await self.check_admin(ctx):
            return

        if not text:
            text = await self.ask_for_rules_post(ctx)
            if text is None:
                return

        try:
            await self.service.post_acknowledgement_message(ChannelID.from_channel(channel), text)
        except PlatformOpFailure as exc:
            logger.error("Could not post rules message: %s", exc)
            await ctx.send_followup(f"Could not post the rules message: {exc}")
            return

        await ctx.send_followup(self.service.config.rules_posted_reply)

    async def ask_for_rules_post(self, ctx: discord.ApplicationContext) -> str | None:
        """Wait for the invoker's next message in this channel; None if cancelled or timed out."""
        await ctx.send_followup("Respond with the new post. 'cancel' will stop the process.")

        def is_reply(message: discord.Message) -> bool:
            return message.author.id == ctx.author.id and message.channel.id == ctx.channel_id

        try:
            reply = await self.discord_bot_instance.wait_for(
                "message", check=is_reply, timeout=RULES_REPLY_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError:
            await ctx.send_followup("No post received. Action Canceled.")
            return None

        if reply.content.strip().lower() == "cancel":
            await ctx.send_followup("Action Canceled.")
            return None
        return reply.content


def setup(discord_bot_instance, service: SuspensionService) -> None:
    """Register the moderation cog with the bot."""
    discord_bot_instance.add_cog(ModerationActionCog(discord_bot_instance, service))
