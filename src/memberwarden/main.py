"""
Memberwarden
============

A Discord bot that grants a member role to users who acknowledge the rules
message and lets administrators place users in temporary suspension that
expires on its own, even across restarts.
"""

import os
import sys
from pathlib import Path

def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. MEMBERWARDEN_HOME environment variable, if set.
    2. If running in a frozen/compiled context (e.g., PyInstaller, Nuitka), use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("MEMBERWARDEN_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]

BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from memberwarden.bot.cogs import events_listener, moderation_cmds
from memberwarden.configuration.app_configuration import AppConfig, app_config
from memberwarden.database.db_connection import ConnectionManager
from memberwarden.errors import StoreIOError
from memberwarden.platform.discord_platform import DiscordPlatform
from memberwarden.suspension.service import SuspensionService
from memberwarden.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Intents for guild members, reactions, voice state, and the rules post reply."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    intents.messages = True
    intents.message_content = True
    intents.reactions = True
    intents.voice_states = True
    intents.dm_messages = True
    return intents


def load_cogs(discord_bot_instance: discord.Bot, service: SuspensionService) -> None:
    events_listener.setup(discord_bot_instance, service)
    moderation_cmds.setup(discord_bot_instance, service)
    logger.info("All cogs loaded successfully.")


def create_bot(store: ConnectionManager, config: AppConfig) -> tuple[discord.Bot, SuspensionService]:
    """Instantiate the bot, its platform adapter and the suspension service, and register cogs.

    Raises
    ------
    ValueError
        If ``guild_id`` or ``member_role_id`` is missing from the configuration.
    """
    guild_id = config.guild_id
    member_role_id = config.member_role_id
    if guild_id is None or member_role_id is None:
        raise ValueError("guild_id and member_role_id must be set in config/app_config.yml")

    bot = discord.Bot(intents=build_intents())
    platform = DiscordPlatform(bot, guild_id, member_role_id)
    service = SuspensionService(store, platform, config)
    load_cogs(bot, service)
    return bot, service


async def start_bot(bot: discord.Bot, token: str) -> None:
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, service: SuspensionService | None, store: ConnectionManager) -> None:
    """Stop timers, close the Discord connection, and close the record store.

    Pending suspensions stay in the ledger and are rescheduled on next start.
    """
    if service is not None:
        try:
            await service.shutdown()
        except Exception as exc:
            logger.exception("Error while stopping suspension timers: %s", exc)

    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord connection: %s", exc)

    await store.close()
    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the record store and the bot, returning an exit code."""
    token = load_environment()

    store = ConnectionManager()
    try:
        await store.open(app_config.database_path)
    except StoreIOError as exc:
        logger.critical("Failed to open the record store: %s", exc)
        return 1

    try:
        bot, service = create_bot(store, app_config)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await store.close()
        return 1

    exit_code = 0
    try:
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, service, store)

    return exit_code


def main() -> int:
    """Entrypoint that runs the bot and returns the process exit code."""
    logger.info("Starting Memberwarden…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())
