"""
In-memory ledger store.

Records are kept as plain dicts keyed by user id and handed out as
``Ledger`` copies, so callers never hold a reference to stored state.
All writes go through ``transaction`` which holds the store lock for the
whole read-check-write cycle.
"""

import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from .activity import keep_last
from .models import Ledger


class InMemoryLedgerStore:
    def __init__(self, starting_points: int = 100):
        self.ledgers: dict[str, dict] = {}
        self.starting_points = starting_points
        self._lock = threading.RLock()

    def find_by_user(self, user_id: str) -> Optional[Ledger]:
        data = self.ledgers.get(user_id)
        return Ledger(**data).model_copy(deep=True) if data else None

    @contextmanager
    def transaction(self, user_id: str, create: bool = False) -> Iterator[Optional[Ledger]]:
        """
        Yield a working copy of the user's ledger and commit it on clean exit.

        If the block raises, nothing is written. With ``create=True`` a
        missing ledger is started with default values and stored on
        commit; otherwise ``None`` is yielded for a missing ledger.
        """
        with self._lock:
            data = self.ledgers.get(user_id)
            if data is not None:
                working = Ledger(**data).model_copy(deep=True)
            elif create:
                working = Ledger(user_id=user_id, available_points=self.starting_points)
            else:
                working = None

            yield working

            if working is not None:
                self.ledgers[user_id] = working.model_dump()

    def update(
        self,
        user_id: str,
        *,
        inc: Optional[dict[str, int]] = None,
        push: Optional[dict[str, list]] = None,
        slice_last: Optional[dict[str, int]] = None,
        set_: Optional[dict[str, Any]] = None,
        upsert: bool = False,
    ) -> Optional[Ledger]:
        """
        Apply increments, array pushes and field sets as one atomic write.

        ``slice_last`` trims a pushed array to its last N entries.
        Returns the updated ledger, or None when the ledger is missing and
        ``upsert`` is False.
        """
        with self.transaction(user_id, create=upsert) as ledger:
            if ledger is None:
                return None
            for field, delta in (inc or {}).items():
                setattr(ledger, field, getattr(ledger, field) + delta)
            for field, values in (push or {}).items():
                getattr(ledger, field).extend(values)
            for field, capacity in (slice_last or {}).items():
                setattr(ledger, field, keep_last(getattr(ledger, field), capacity))
            for field, value in (set_ or {}).items():
                setattr(ledger, field, value)
        return ledger

    def upsert(self, user_id: str, patch: dict[str, Any]) -> Ledger:
        return self.update(user_id, set_=patch, upsert=True)
