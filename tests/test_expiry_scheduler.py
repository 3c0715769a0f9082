import asyncio
from datetime import timedelta

import pytest

from memberwarden.datatypes.discord_datatypes import UserID
from memberwarden.suspension.expiry_scheduler import ExpiryScheduler


class ReleaseRecorder:
    def __init__(self) -> None:
        self.calls: list[tuple[str, object]] = []

    async def __call__(self, user_id, release_at):
        self.calls.append((str(user_id), release_at))


async def settle(handle) -> None:
    await asyncio.wait_for(handle.wait(), timeout=1)


@pytest.mark.asyncio
async def test_timer_fires_at_expiry(clock):
    recorder = ReleaseRecorder()
    scheduler = ExpiryScheduler(recorder, clock)

    handle = scheduler.schedule(UserID(42), clock.now() + timedelta(minutes=10))
    await asyncio.sleep(0)
    assert recorder.calls == []
    assert scheduler.pending(UserID(42)) is handle

    clock.advance(timedelta(minutes=9, seconds=59))
    await asyncio.sleep(0)
    assert recorder.calls == []

    clock.advance(timedelta(seconds=1))
    await settle(handle)

    assert recorder.calls == [("42", handle.release_at)]
    assert handle.started
    assert scheduler.pending(UserID(42)) is None
    assert len(scheduler) == 0


@pytest.mark.asyncio
async def test_past_expiry_fires_immediately(clock):
    recorder = ReleaseRecorder()
    scheduler = ExpiryScheduler(recorder, clock)

    handle = scheduler.schedule(UserID(7), clock.now() - timedelta(hours=1))
    await settle(handle)

    assert recorder.calls == [("7", handle.release_at)]


@pytest.mark.asyncio
async def test_cancel_prevents_release_and_is_idempotent(clock):
    recorder = ReleaseRecorder()
    scheduler = ExpiryScheduler(recorder, clock)

    handle = scheduler.schedule(UserID(42), clock.now() + timedelta(minutes=10))
    assert scheduler.cancel(handle) is True
    assert scheduler.cancel(handle) is False
    assert handle.cancelled

    clock.advance(timedelta(minutes=11))
    await settle(handle)

    assert recorder.calls == []
    assert scheduler.pending(UserID(42)) is None


@pytest.mark.asyncio
async def test_cancel_user_without_timer_returns_false(clock):
    scheduler = ExpiryScheduler(ReleaseRecorder(), clock)
    assert scheduler.cancel_user(UserID(1)) is False


@pytest.mark.asyncio
async def test_cancel_after_release_started_is_noop(clock):
    release_started = asyncio.Event()
    finish_release = asyncio.Event()
    released: list[str] = []

    async def slow_release(user_id, release_at):
        release_started.set()
        await finish_release.wait()
        released.append(str(user_id))

    scheduler = ExpiryScheduler(slow_release, clock)
    handle = scheduler.schedule(UserID(5), clock.now())

    await asyncio.wait_for(release_started.wait(), timeout=1)
    assert handle.started
    assert scheduler.cancel(handle) is False
    assert not handle.cancelled

    finish_release.set()
    await settle(handle)
    assert released == ["5"]


@pytest.mark.asyncio
async def test_rescheduling_replaces_previous_timer(clock):
    recorder = ReleaseRecorder()
    scheduler = ExpiryScheduler(recorder, clock)

    first = scheduler.schedule(UserID(42), clock.now() + timedelta(minutes=10))
    second = scheduler.schedule(UserID(42), clock.now() + timedelta(minutes=20))

    assert first.cancelled
    assert scheduler.pending(UserID(42)) is second

    clock.advance(timedelta(minutes=10))
    await settle(first)
    await asyncio.sleep(0)
    assert recorder.calls == []

    clock.advance(timedelta(minutes=10))
    await settle(second)
    assert recorder.calls == [("42", second.release_at)]


@pytest.mark.asyncio
async def test_timers_for_different_users_are_independent(clock):
    recorder = ReleaseRecorder()
    scheduler = ExpiryScheduler(recorder, clock)

    early = scheduler.schedule(UserID(1), clock.now() + timedelta(minutes=1))
    late = scheduler.schedule(UserID(2), clock.now() + timedelta(hours=1))
    assert sorted(str(u) for u in scheduler.active_users()) == ["1", "2"]

    clock.advance(timedelta(minutes=5))
    await settle(early)

    assert [user for user, _ in recorder.calls] == ["1"]
    assert scheduler.pending(UserID(2)) is late
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_release_errors_are_logged_not_raised(clock):
    async def broken_release(user_id, release_at):
        raise RuntimeError("boom")

    scheduler = ExpiryScheduler(broken_release, clock)
    handle = scheduler.schedule(UserID(3), clock.now())
    await settle(handle)

    assert handle.done()
    assert scheduler.pending(UserID(3)) is None


@pytest.mark.asyncio
async def test_shutdown_stops_timers_without_firing(clock):
    recorder = ReleaseRecorder()
    scheduler = ExpiryScheduler(recorder, clock)
    scheduler.schedule(UserID(1), clock.now() + timedelta(minutes=10))
    scheduler.schedule(UserID(2), clock.now() + timedelta(minutes=20))

    await scheduler.shutdown()
    clock.advance(timedelta(hours=1))
    await asyncio.sleep(0)

    assert recorder.calls == []
    assert len(scheduler) == 0


@pytest.mark.asyncio
async def test_release_at_is_truncated_to_whole_seconds(clock):
    scheduler = ExpiryScheduler(ReleaseRecorder(), clock)
    handle = scheduler.schedule(UserID(9), clock.now() + timedelta(minutes=1, microseconds=750000))

    assert handle.release_at.microsecond == 0
    await scheduler.shutdown()
