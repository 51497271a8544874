"""
Points Ledger for the Contact Directory

This module provides:
- Per-user ledgers: point balance, upload and unlock history
- Unlocking a contact's private fields for points, at most once per user
- Upload rewards for contributed contacts, single and bulk
- Reconciliation of derived counters against their source collections
- A bounded, most-recent activity log
"""

from .exceptions import (
    LedgerServiceError,
    ContactNotFoundError,
    LedgerNotFoundError,
    AlreadyUnlockedError,
    InsufficientPointsError,
    InvalidInputError,
)
from .models import Ledger, UnlockResult
from .service import LedgerService
from .storage import InMemoryLedgerStore

__all__ = [
    "Ledger",
    "UnlockResult",
    "LedgerService",
    "InMemoryLedgerStore",
    "LedgerServiceError",
    "ContactNotFoundError",
    "LedgerNotFoundError",
    "AlreadyUnlockedError",
    "InsufficientPointsError",
    "InvalidInputError",
]
