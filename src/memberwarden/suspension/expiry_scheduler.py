"""
Expiry scheduler: one asyncio timer per active suspension.

Each timer is its own task that waits for whichever comes first: its
deadline elapsing or its cancellation event being set. If the deadline wins,
the handle is marked started before the release callback runs, and from that
point cancellation is a no-op. A suspension is therefore released once at
its expiry or not at all, never twice.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Dict, List

from memberwarden.datatypes.discord_datatypes import UserID
from memberwarden.datatypes.suspension_datatypes import normalize_expiry
from memberwarden.suspension.clock import Clock, SystemClock
from memberwarden.util.logger import get_logger

logger = get_logger("expiry_scheduler")

ReleaseCallback = Callable[[UserID, datetime], Awaitable[object]]


class CancellationHandle:
    """
    Controls one scheduled release.

    Attributes:
        user_id (UserID): The suspended user.
        release_at (datetime): UTC instant the release fires.
    """

    def __init__(self, user_id: UserID, release_at: datetime) -> None:
        self.user_id = user_id
        self.release_at = release_at
        self._cancel_event = asyncio.Event()
        self._started = False
        self._task: asyncio.Task[None] | None = None

    @property
    def started(self) -> bool:
        """True once the release sequence has begun; it will run to completion."""
        return self._started

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set() and not self._started

    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def cancel(self) -> bool:
        """Pre-empt the release if it has not started yet.

        Returns:
            True if this call prevented the release; False if it had already
            fired, started, or been cancelled.
        """
        if self._started or self._cancel_event.is_set():
            return False
        self._cancel_event.set()
        return True

    async def wait(self) -> None:
        """Wait until the timer has fired or been cancelled. Never raises."""
        if self._task is not None:
            await asyncio.wait({self._task})

    def __repr__(self) -> str:
        state = "started" if self._started else "cancelled" if self.cancelled else "pending"
        return f"CancellationHandle(user_id={self.user_id!r}, release_at={self.release_at.isoformat()}, {state})"


class ExpiryScheduler:
    """
    Maps every active suspension to exactly one live timer.

    Scheduling a user who already has a timer cancels the old one first, so
    there is never more than one pending release per user.

    Args:
        release: Coroutine function called as ``release(user_id, release_at)``
            when a timer fires.
        clock: Source of the current time and of sleeps.
    """

    def __init__(self, release: ReleaseCallback, clock: Clock | None = None) -> None:
        self._release = release
        self._clock = clock or SystemClock()
        self._handles: Dict[str, CancellationHandle] = {}

    def schedule(self, user_id: UserID, release_at: datetime) -> CancellationHandle:
        """
        Start a timer that releases ``user_id`` at ``release_at``.

        An expiry at or before now fires on the next loop iteration without
        waiting. Must be called from a running event loop.
        """
        release_at = normalize_expiry(release_at)
        key = str(user_id)

        previous = self._handles.get(key)
        if previous is not None and previous.cancel():
            logger.debug("[SCHEDULER] Replaced pending release for %s", user_id)

        handle = CancellationHandle(user_id, release_at)
        self._handles[key] = handle
        handle._task = asyncio.get_running_loop().create_task(
            self._run(handle), name=f"memberwarden-expiry-{user_id}"
        )
        logger.debug("[SCHEDULER] Scheduled release of %s at %s", user_id, release_at.isoformat())
        return handle

    def cancel(self, handle: CancellationHandle) -> bool:
        """Cancel ``handle``; idempotent, and a no-op once the release started."""
        return handle.cancel()

    def cancel_user(self, user_id: UserID) -> bool:
        """Cancel the pending release for ``user_id``, if any."""
        handle = self._handles.get(str(user_id))
        if handle is None:
            return False
        return handle.cancel()

    def pending(self, user_id: UserID) -> CancellationHandle | None:
        """Return the live handle for ``user_id``, or None."""
        handle = self._handles.get(str(user_id))
        if handle is None or handle.cancelled:
            return None
        return handle

    def active_users(self) -> List[UserID]:
        return [handle.user_id for handle in self._handles.values() if not handle.cancelled]

    def __len__(self) -> int:
        return len(self.active_users())

    async def shutdown(self) -> None:
        """Stop every timer without firing it. Records stay in the ledger for recovery."""
        handles = list(self._handles.values())
        self._handles.clear()
        tasks = [handle._task for handle in handles if handle._task is not None and not handle._task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("[SCHEDULER] Stopped %d pending timer(s)", len(tasks))

    # ------------------------------------------------------------------
    # Timer internals
    # ------------------------------------------------------------------

    async def _run(self, handle: CancellationHandle) -> None:
        try:
            try:
                delay = (handle.release_at - self._clock.now()).total_seconds()
            except (OverflowError, TypeError, ValueError):
                delay = 0.0

            if delay > 0:
                if not await self._wait_for_deadline(handle):
                    logger.debug("[SCHEDULER] Release of %s cancelled", handle.user_id)
                    return
            elif handle._cancel_event.is_set():
                return

            handle._started = True
            logger.info("[SCHEDULER] Suspension of %s expired; releasing", handle.user_id)
            try:
                await self._release(handle.user_id, handle.release_at)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception("[SCHEDULER] Failed to release %s: %s", handle.user_id, exc)
        finally:
            if self._handles.get(str(handle.user_id)) is handle:
                del self._handles[str(handle.user_id)]

    async def _wait_for_deadline(self, handle: CancellationHandle) -> bool:
        """Wait for the deadline or a cancel; True means the deadline won."""
        sleeper = asyncio.ensure_future(self._clock.sleep_until(handle.release_at))
        canceller = asyncio.ensure_future(handle._cancel_event.wait())
        try:
            await asyncio.wait({sleeper, canceller}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in (sleeper, canceller):
                if not waiter.done():
                    waiter.cancel()
        return not handle._cancel_event.is_set()
