"""
Temporary suspensions and the rules acknowledgement gate.

Public API:
    - SuspensionService: timeout / release / rules message / reaction handling
    - SuspensionLedger, ExpiryScheduler, ReleaseSequencer, AcknowledgementGate
    - recover: rebuild timers from the ledger at startup
"""

from memberwarden.suspension.ack_gate import AcknowledgementGate
from memberwarden.suspension.expiry_scheduler import CancellationHandle, ExpiryScheduler
from memberwarden.suspension.ledger import SuspensionLedger
from memberwarden.suspension.recovery import recover
from memberwarden.suspension.release import ReleaseSequencer
from memberwarden.suspension.service import SuspensionService

__all__ = [
    "AcknowledgementGate",
    "CancellationHandle",
    "ExpiryScheduler",
    "ReleaseSequencer",
    "SuspensionLedger",
    "SuspensionService",
    "recover",
]
