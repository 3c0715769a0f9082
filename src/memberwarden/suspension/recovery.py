"""
Recovery bootstrap: rebuild every expiry timer from the ledger at startup.

Past-due records are scheduled like any other and fire immediately; there is
no grace period. Corrupt rows are skipped by the ledger (and logged) so one
bad record cannot stop the rest from being restored.
"""

from __future__ import annotations

from memberwarden.suspension.expiry_scheduler import ExpiryScheduler
from memberwarden.suspension.ledger import SuspensionLedger
from memberwarden.util.logger import get_logger

logger = get_logger("recovery")


async def recover(ledger: SuspensionLedger, scheduler: ExpiryScheduler) -> int:
    """Schedule one timer per stored suspension and return how many were scheduled.

    Raises:
        StoreIOError: If the ledger cannot be read at all.
    """
    # Read everything before scheduling: past-due timers start writing to the
    # ledger as soon as they are scheduled.
    records = [record async for record in ledger.list_all()]
    for record in records:
        scheduler.schedule(record.user_id, record.release_at)
    restored = len(records)
    logger.info("[RECOVERY] Restored %d suspension timer(s) from the ledger", restored)
    return restored
