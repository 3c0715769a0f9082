"""Event listener Cog for Memberwarden.

Runs suspension recovery when the bot first connects, feeds reactions on the
rules message to the acknowledgement gate, and reports command errors.
"""

import discord
from discord.ext import commands

from memberwarden.errors import StoreIOError
from memberwarden.suspension.service import SuspensionService
from memberwarden.util.discord_utils import reaction_event_from_payload
from memberwarden.util.logger import get_logger

logger = get_logger("events_listener_cog")


class EventsListenerCog(commands.Cog):
    """Cog containing lifecycle, reaction, and command error handlers."""

    def __init__(self, discord_bot_instance, service: SuspensionService):
        self.bot = discord_bot_instance
        self.service = service
        logger.info("Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self):
        """Log the connection and restore suspension timers on the first ready event.

        Reconnects fire ``on_ready`` again; recovery only runs once. If the
        ledger cannot be read the bot shuts down rather than run without its
        timers.
        """
        if self.bot.user:
            logger.info(f"Bot connected as {self.bot.user} (ID: {self.bot.user.id})")
        else:
            logger.warning("Bot partially connected, but user information not yet available.")

        if self.service.recovered:
            return

        try:
            restored = await self.service.recover()
        except StoreIOError as exc:
            logger.critical("Could not restore suspensions from the ledger: %s", exc)
            await self.bot.close()
            return
        logger.info("Suspension recovery complete (%d timer(s) restored)", restored)

    @commands.Cog.listener(name="on_raw_reaction_add")
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent):
        await self.handle_reaction(payload)

    @commands.Cog.listener(name="on_raw_reaction_remove")
    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent):
        await self.handle_reaction(payload)

    async def handle_reaction(self, payload: discord.RawReactionActionEvent) -> None:
        if payload.guild_id is None:
            return
        if self.bot.user is not None and payload.user_id == self.bot.user.id:
            return

        event = reaction_event_from_payload(payload)
        try:
            outcome = await self.service.handle_reaction(event)
        except StoreIOError as exc:
            logger.error("Could not handle reaction from %s: %s", event.user_id, exc)
            return
        logger.debug("Reaction %s by %s on %s -> %s", event.emoji, event.user_id, event.message_id, outcome)

    @commands.Cog.listener(name="on_application_command_error")
    async def on_application_command_error(self, application_context: discord.ApplicationContext, error: Exception):
        """Log command errors with a traceback and send the invoker a generic reply."""
        if isinstance(error, commands.CommandNotFound):
            return

        command_name = getattr(application_context.command, "name", "<unknown>")
        logger.error(f"Error in command '{command_name}': {error}", exc_info=error)

        error_message = "An error occurred while processing the command."
        try:
            await application_context.respond(error_message, ephemeral=True)
        except discord.InteractionResponded:
            await application_context.followup.send(error_message, ephemeral=True)


def setup(discord_bot_instance, service: SuspensionService):
    """Register the EventsListenerCog with the bot."""
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance, service))
