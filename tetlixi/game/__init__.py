"""Engines that hand out prizes and apply double-or-nothing."""

from .allocation import (
    AllocationAttempt,
    AllocationEngine,
    AttemptStatus,
    CLAIM_RETRIES,
    PrizeAllocation,
)
from .wager import WagerEngine, WagerResult, resolve_wager_amount

__all__ = [
    "AllocationAttempt",
    "AllocationEngine",
    "AttemptStatus",
    "CLAIM_RETRIES",
    "PrizeAllocation",
    "WagerEngine",
    "WagerResult",
    "resolve_wager_amount",
]
