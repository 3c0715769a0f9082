"""
Wall-clock access for the suspension components.

Expiries are absolute UTC instants, so timers need "what time is it" and
"wake me at this instant". Tests substitute a manually advanced clock.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Current time as an aware UTC datetime."""
        ...

    async def sleep_until(self, when: datetime) -> None:
        """Return once ``when`` has been reached; immediately if it already has."""
        ...


class SystemClock:
    """The real clock: ``datetime.now(timezone.utc)`` and ``asyncio.sleep``."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep_until(self, when: datetime) -> None:
        delay = (when - self.now()).total_seconds()
        if delay > 0:
            await asyncio.sleep(delay)
