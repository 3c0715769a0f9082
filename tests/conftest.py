"""
Pytest configuration and fixtures for Memberwarden tests.
"""

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from memberwarden.configuration.app_configuration import AppConfig  # noqa: E402
from memberwarden.database.db_connection import ConnectionManager  # noqa: E402
from memberwarden.datatypes.discord_datatypes import MessageID  # noqa: E402
from memberwarden.errors import CapabilityOpFailure, NotificationFailure, PlatformOpFailure  # noqa: E402
from memberwarden.suspension.ledger import SuspensionLedger  # noqa: E402
from memberwarden.suspension.service import SuspensionService  # noqa: E402

START_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)

TEST_CONFIG = """\
guild_id: 1000
member_role_id: 2000
acknowledgement_emoji: "✅"
messages:
  release_notice: "You are free."
  suspension_notice: "Suspended until {release_at}."
  rules_posted: "Rules posted."
"""


class FakeClock:
    """Manually advanced clock; sleepers wake when ``advance`` passes their deadline."""

    def __init__(self, start: datetime = START_TIME) -> None:
        self._now = start
        self._sleepers: list[tuple[datetime, asyncio.Future]] = []

    def now(self) -> datetime:
        return self._now

    async def sleep_until(self, when: datetime) -> None:
        if when <= self._now:
            return
        waiter = asyncio.get_running_loop().create_future()
        entry = (when, waiter)
        self._sleepers.append(entry)
        try:
            await waiter
        finally:
            if entry in self._sleepers:
                self._sleepers.remove(entry)

    def advance(self, delta: timedelta) -> None:
        self._now += delta
        for when, waiter in list(self._sleepers):
            if when <= self._now and not waiter.done():
                waiter.set_result(None)


class FakePlatform:
    """In-memory platform that records every call; the ``fail_*`` flags make calls raise."""

    def __init__(self) -> None:
        self.members: set[str] = set()
        self.direct_messages: list[tuple[str, str]] = []
        self.grants: list[str] = []
        self.revokes: list[str] = []
        self.removed_reactions: list[tuple[str, str, str, str]] = []
        self.posted: list[tuple[str, str, str]] = []
        self.added_reactions: list[tuple[str, str, str]] = []
        self.disconnected: list[str] = []
        self.fail_dm = False
        self.fail_capability = False
        self.fail_reaction = False
        self.fail_post = False
        self._next_message_id = 5000

    async def send_direct(self, user_id, text):
        if self.fail_dm:
            raise NotificationFailure(f"DMs closed for {user_id}")
        self.direct_messages.append((str(user_id), text))

    async def grant_capability(self, user_id):
        if self.fail_capability:
            raise CapabilityOpFailure("Missing permissions")
        self.grants.append(str(user_id))
        self.members.add(str(user_id))

    async def revoke_capability(self, user_id):
        if self.fail_capability:
            raise CapabilityOpFailure("Missing permissions")
        self.revokes.append(str(user_id))
        self.members.discard(str(user_id))

    async def has_capability(self, user_id):
        return str(user_id) in self.members

    async def remove_reaction(self, channel_id, message_id, user_id, emoji):
        if self.fail_reaction:
            raise PlatformOpFailure("Unknown message")
        self.removed_reactions.append((str(channel_id), str(message_id), str(user_id), emoji))

    async def post_message(self, channel_id, text):
        if self.fail_post:
            raise PlatformOpFailure("Missing access")
        self._next_message_id += 1
        message_id = MessageID(self._next_message_id)
        self.posted.append((str(channel_id), str(message_id), text))
        return message_id

    async def add_reaction(self, channel_id, message_id, emoji):
        if self.fail_reaction:
            raise PlatformOpFailure("Unknown message")
        self.added_reactions.append((str(channel_id), str(message_id), emoji))

    async def disconnect_voice(self, user_id):
        if self.fail_capability:
            raise CapabilityOpFailure("Missing permissions")
        self.disconnected.append(str(user_id))

    def notices_to(self, user_id, text):
        return [body for uid, body in self.direct_messages if uid == str(user_id) and body == text]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def config(tmp_path):
    path = tmp_path / "app_config.yml"
    path.write_text(TEST_CONFIG, encoding="utf-8")
    return AppConfig(path)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "data" / "memberwarden.db"


@pytest_asyncio.fixture
async def store(db_path):
    manager = ConnectionManager()
    await manager.open(db_path)
    yield manager
    await manager.close()


@pytest.fixture
def ledger(store):
    return SuspensionLedger(store)


@pytest_asyncio.fixture
async def service(store, platform, config, clock):
    svc = SuspensionService(store, platform, config, clock=clock)
    await svc.recover()
    yield svc
    await svc.shutdown()
