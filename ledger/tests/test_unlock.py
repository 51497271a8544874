"""
Unit Tests for unlocking contacts

Tests cover:
1. Successful unlock and point deduction
2. Validation order (contact, ledger, already unlocked, points)
3. No state change on failure
4. Concurrent unlocks of the same contact
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from contacts.models import ContactCreate
from ledger.exceptions import (
    AlreadyUnlockedError,
    ContactNotFoundError,
    InsufficientPointsError,
    LedgerNotFoundError,
)
from ledger.service import LedgerService


UPLOADER_ID = "uploader-1"
USER_ID = "user-1"


def make_contact(service: LedgerService, name: str = "Ada Lovelace"):
    return service.contacts.create(ContactCreate(
        name=name,
        job_title="CTO",
        company="Analytical Engines",
        email=f"{name.split()[0].lower()}@example.com",
        phone="+44 20 0000 0000",
        uploaded_by=UPLOADER_ID,
    ))


class TestUnlockFlow:
    """Tests for the happy path."""

    def test_unlock_deducts_cost(self):
        """Fresh user with 100 points unlocks a contact and keeps 80."""
        service = LedgerService()
        contact = make_contact(service)
        service.get_ledger(USER_ID)

        result = service.unlock(USER_ID, contact.id)

        assert result.success is True
        assert result.points_deducted == 20
        assert result.remaining_points == 80
        assert result.ledger.available_points == 80
        assert result.ledger.unlocked_contact_ids == [contact.id]
        assert result.ledger.unlocked_profiles == 1
        assert result.ledger.recent_activity[-1] == "Unlocked contact: Ada Lovelace"

    def test_unlock_reveals_private_fields(self):
        """The returned contact carries the unlock flag and private fields."""
        service = LedgerService()
        contact = make_contact(service)
        service.get_ledger(USER_ID)

        result = service.unlock(USER_ID, contact.id)

        assert result.contact.is_unlocked is True
        assert result.contact.email == "ada@example.com"
        assert result.contact.phone is not None

    def test_unlock_does_not_touch_contact(self):
        """Unlock status lives on the user's ledger, never on the contact."""
        service = LedgerService()
        contact = make_contact(service)
        service.get_ledger(USER_ID)
        before = service.contacts.find_by_id(contact.id)

        service.unlock(USER_ID, contact.id)

        assert service.contacts.find_by_id(contact.id) == before
        other_view = service.get_contact(contact.id, "someone-else")
        assert other_view.is_unlocked is False
        assert other_view.email is None

    def test_second_unlock_conflicts(self):
        """Unlocking the same contact twice fails without charging again."""
        service = LedgerService()
        contact = make_contact(service)
        service.get_ledger(USER_ID)
        service.unlock(USER_ID, contact.id)

        with pytest.raises(AlreadyUnlockedError):
            service.unlock(USER_ID, contact.id)

        ledger = service.get_ledger(USER_ID)
        assert ledger.available_points == 80
        assert ledger.unlocked_contact_ids == [contact.id]

    def test_activity_log_keeps_last_ten(self):
        """Unlock activity is truncated to the ten most recent entries."""
        service = LedgerService()
        service.get_ledger(USER_ID)
        service.ledgers.upsert(USER_ID, {"available_points": 1000})

        for i in range(12):
            contact = make_contact(service, name=f"Contact {i}")
            service.unlock(USER_ID, contact.id)

        ledger = service.get_ledger(USER_ID)
        assert len(ledger.recent_activity) == 10
        assert ledger.recent_activity[0] == "Unlocked contact: Contact 2"
        assert ledger.recent_activity[-1] == "Unlocked contact: Contact 11"
        assert ledger.unlocked_profiles == 12


class TestUnlockValidation:
    """Tests for precondition failures."""

    def test_missing_contact(self):
        service = LedgerService()
        service.get_ledger(USER_ID)

        with pytest.raises(ContactNotFoundError):
            service.unlock(USER_ID, "does-not-exist")

    def test_missing_contact_checked_before_ledger(self):
        """A missing contact is reported even when the ledger is missing too."""
        service = LedgerService()

        with pytest.raises(ContactNotFoundError):
            service.unlock("nobody", "does-not-exist")

    def test_missing_ledger(self):
        """Unlock never creates a ledger on its own."""
        service = LedgerService()
        contact = make_contact(service)

        with pytest.raises(LedgerNotFoundError):
            service.unlock("nobody", contact.id)

        assert service.ledgers.find_by_user("nobody") is None

    def test_insufficient_points(self):
        """User with 15 points cannot pay the 20 point cost."""
        service = LedgerService()
        contact = make_contact(service)
        service.ledgers.upsert(USER_ID, {"available_points": 15})
        before = service.ledgers.find_by_user(USER_ID)

        with pytest.raises(InsufficientPointsError) as exc_info:
            service.unlock(USER_ID, contact.id)

        assert exc_info.value.required == 20
        assert exc_info.value.available == 15
        assert exc_info.value.details["shortfall"] == 5
        assert service.ledgers.find_by_user(USER_ID) == before

    def test_already_unlocked_checked_before_points(self):
        """A broke user re-unlocking is told it is already unlocked."""
        service = LedgerService()
        contact = make_contact(service)
        service.get_ledger(USER_ID)
        service.unlock(USER_ID, contact.id)
        service.ledgers.upsert(USER_ID, {"available_points": 0})

        with pytest.raises(AlreadyUnlockedError):
            service.unlock(USER_ID, contact.id)

    def test_balance_never_negative(self):
        """Spending down the balance stops at zero."""
        service = LedgerService()
        service.get_ledger(USER_ID)

        for i in range(6):
            contact = make_contact(service, name=f"Contact {i}")
            if i < 5:
                service.unlock(USER_ID, contact.id)
            else:
                with pytest.raises(InsufficientPointsError):
                    service.unlock(USER_ID, contact.id)

        assert service.get_ledger(USER_ID).available_points == 0


class TestConcurrentUnlock:
    """Tests for concurrent unlock attempts."""

    def test_same_contact_charged_once(self):
        """Two racing unlocks with points for one: exactly one wins."""
        service = LedgerService()
        contact = make_contact(service)
        service.ledgers.upsert(USER_ID, {"available_points": 20})
        barrier = threading.Barrier(2, timeout=5)

        def attempt():
            barrier.wait()
            try:
                service.unlock(USER_ID, contact.id)
                return "ok"
            except (AlreadyUnlockedError, InsufficientPointsError):
                return "rejected"

        with ThreadPoolExecutor(max_workers=2) as pool:
            outcomes = list(pool.map(lambda _: attempt(), range(2)))

        assert sorted(outcomes) == ["ok", "rejected"]
        ledger = service.ledgers.find_by_user(USER_ID)
        assert ledger.available_points == 0
        assert ledger.unlocked_contact_ids == [contact.id]

    def test_many_racing_unlocks_keep_ids_unique(self):
        service = LedgerService()
        contact = make_contact(service)
        service.ledgers.upsert(USER_ID, {"available_points": 1000})

        def attempt(_):
            try:
                service.unlock(USER_ID, contact.id)
                return True
            except AlreadyUnlockedError:
                return False

        with ThreadPoolExecutor(max_workers=8) as pool:
            wins = sum(pool.map(attempt, range(32)))

        ledger = service.ledgers.find_by_user(USER_ID)
        assert wins == 1
        assert ledger.unlocked_contact_ids.count(contact.id) == 1
        assert ledger.available_points == 980
