from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from memberwarden import main


def test_build_intents_enables_members_reactions_and_voice():
    intents = main.build_intents()
    assert intents.members
    assert intents.reactions
    assert intents.voice_states
    assert intents.message_content


def test_load_environment_requires_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", lambda **kwargs: None)
    monkeypatch.delenv("DISCORD_BOT_TOKEN", raising=False)
    with pytest.raises(SystemExit):
        main.load_environment()


def test_load_environment_returns_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", lambda **kwargs: None)
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "abc")
    assert main.load_environment() == "abc"


def test_resolve_base_dir_honours_env(monkeypatch, tmp_path):
    monkeypatch.setenv("MEMBERWARDEN_HOME", str(tmp_path))
    assert main.resolve_base_dir() == tmp_path.resolve()


def test_create_bot_requires_guild_and_role():
    config = SimpleNamespace(guild_id=None, member_role_id=None)
    with pytest.raises(ValueError):
        main.create_bot(MagicMock(), config)


def test_load_cogs_registers_both_cogs():
    added = []
    bot = SimpleNamespace(add_cog=added.append)
    main.load_cogs(bot, MagicMock())
    assert [type(cog).__name__ for cog in added] == ["EventsListenerCog", "ModerationActionCog"]


@pytest.mark.asyncio
async def test_shutdown_runtime_stops_timers_and_closes(store):
    service = SimpleNamespace(shutdown=AsyncMock())
    bot = SimpleNamespace(is_closed=lambda: False, close=AsyncMock())

    await main.shutdown_runtime(bot, service, store)

    service.shutdown.assert_awaited_once()
    bot.close.assert_awaited_once()
    assert not store.is_open


def test_main_returns_exit_code(monkeypatch):
    async def fake_async_main():
        return 3

    monkeypatch.setattr(main, "async_main", fake_async_main)
    assert main.main() == 3
