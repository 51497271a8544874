import logging
from typing import Optional, Union

from pydantic import ValidationError

from contacts.models import Contact, ContactCreate, ContactFields, ContactSummary, ContactView
from contacts.store import InMemoryContactStore

from .activity import append_activity, most_recent_first, unlocked_message, uploaded_message
from .config import Settings, get_settings
from .exceptions import (
    AlreadyUnlockedError,
    ContactNotFoundError,
    InsufficientPointsError,
    InvalidInputError,
    LedgerNotFoundError,
)
from .models import (
    ActivitySummary,
    BulkCreateResponse,
    ContactCreatedResponse,
    Ledger,
    UnlockedContactsResponse,
    UnlockResult,
    utcnow,
)
from .storage import InMemoryLedgerStore

logger = logging.getLogger(__name__)

ContactInput = Union[ContactCreate, dict]


class LedgerService:
    def __init__(
        self,
        ledgers: Optional[InMemoryLedgerStore] = None,
        contacts: Optional[InMemoryContactStore] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.ledgers = ledgers if ledgers is not None else InMemoryLedgerStore(self.settings.starting_points)
        self.contacts = contacts if contacts is not None else InMemoryContactStore()

    # -- ledger reads ---------------------------------------------------

    def get_ledger(self, user_id: str) -> Ledger:
        return self.reconcile(user_id)

    def reconcile(self, user_id: str) -> Ledger:
        """
        Recompute the derived counters from their source collections.

        Only ``my_uploads``, ``unlocked_profiles`` and ``total_contacts`` are
        ever rewritten, and only when they have drifted. The ledger is
        created with defaults if the user has none yet.
        """
        with self.ledgers.transaction(user_id, create=True) as ledger:
            actual_uploads = self.contacts.count_by_uploader(user_id)
            actual_unlocked = len(ledger.unlocked_contact_ids)

            if ledger.my_uploads != actual_uploads or ledger.unlocked_profiles != actual_unlocked:
                logger.warning(
                    f"Ledger counters drifted for {user_id}: "
                    f"uploads {ledger.my_uploads} -> {actual_uploads}, "
                    f"unlocked {ledger.unlocked_profiles} -> {actual_unlocked}"
                )
                ledger.my_uploads = actual_uploads
                ledger.unlocked_profiles = actual_unlocked
                ledger.total_contacts = actual_uploads
        return ledger

    def get_unlocked_contacts(self, user_id: str) -> UnlockedContactsResponse:
        ledger = self._require_ledger(user_id)
        unlocked = self.contacts.find_many(ledger.unlocked_contact_ids)
        return UnlockedContactsResponse(
            user_id=user_id,
            unlocked_contact_ids=ledger.unlocked_contact_ids,
            total_unlocked=ledger.unlocked_profiles,
            actual_unlocked_count=len(ledger.unlocked_contact_ids),
            unlocked_profiles=[ContactSummary.model_validate(c) for c in unlocked],
        )

    def get_activity_summary(self, user_id: str) -> ActivitySummary:
        ledger = self._require_ledger(user_id)
        limit = self.settings.activity_summary_limit
        uploaded = self.contacts.list_by_uploader(user_id, limit=limit)
        return ActivitySummary(
            recent_activity=most_recent_first(ledger.recent_activity, limit),
            uploaded_profiles=[ContactSummary.model_validate(c) for c in uploaded],
            total_activities=len(ledger.recent_activity),
            last_updated=ledger.updated_at,
        )

    # -- unlock ---------------------------------------------------------

    def unlock(self, user_id: str, contact_id: str) -> UnlockResult:
        contact = self.contacts.find_by_id(contact_id)
        if contact is None:
            raise ContactNotFoundError(contact_id)

        cost = self.settings.unlock_cost
        with self.ledgers.transaction(user_id) as ledger:
            if ledger is None:
                raise LedgerNotFoundError(user_id)
            if ledger.has_unlocked(contact_id):
                raise AlreadyUnlockedError(user_id, contact_id)
            if ledger.available_points < cost:
                raise InsufficientPointsError(
                    required=cost,
                    available=ledger.available_points,
                    user_id=user_id,
                )

            ledger.available_points -= cost
            ledger.unlocked_profiles += 1
            ledger.unlocked_contact_ids.append(contact_id)
            ledger.recent_activity = append_activity(
                ledger.recent_activity,
                [unlocked_message(contact.display_name)],
                self.settings.activity_window,
            )
            ledger.updated_at = utcnow()

        logger.info(f"User {user_id} unlocked contact {contact_id}, {ledger.available_points} points left")
        return UnlockResult(
            contact=ContactView.for_viewer(contact, is_unlocked=True, reveal=True),
            ledger=ledger,
            points_deducted=cost,
            remaining_points=ledger.available_points,
        )

    # -- contribution ---------------------------------------------------

    def record_upload(self, user_id: str, contact: Contact) -> Ledger:
        return self._credit_uploads(user_id, [contact])

    def record_bulk_upload(self, user_id: str, contacts: list[Contact]) -> Ledger:
        return self._credit_uploads(user_id, contacts)

    def create_contact(self, fields: ContactInput, uploaded_by: Optional[str] = None) -> ContactCreatedResponse:
        item = self._validate_contacts([fields], uploaded_by)[0]
        created, ledger = self._store_and_credit(item.uploaded_by, [item])
        contact = created[0]
        return ContactCreatedResponse(contact=self._view(contact, ledger, contact.uploaded_by), ledger=ledger)

    def bulk_create_contacts(self, items: list[ContactInput], uploaded_by: Optional[str] = None) -> BulkCreateResponse:
        if not items:
            raise InvalidInputError("Invalid profiles data: expected a non-empty list")

        validated = self._validate_contacts(items, uploaded_by)

        # Rows may carry their own uploader when no batch uploader is given.
        groups: dict[Optional[str], list[int]] = {}
        for index, item in enumerate(validated):
            groups.setdefault(item.uploaded_by, []).append(index)

        created: list[Optional[Contact]] = [None] * len(validated)
        ledger = None
        for uploader, indexes in groups.items():
            batch, credited = self._store_and_credit(uploader, [validated[i] for i in indexes])
            for index, contact in zip(indexes, batch):
                created[index] = contact
            if uploader is not None and uploader == uploaded_by:
                ledger = credited

        return BulkCreateResponse(
            count=len(created),
            contacts=[self._view(c, ledger, uploaded_by) for c in created],
            ledger=ledger,
        )

    def _store_and_credit(
        self, uploader: Optional[str], items: list[ContactCreate]
    ) -> tuple[list[Contact], Optional[Ledger]]:
        """
        Insert contacts and credit their uploader as one ledger write.

        The uploader's ledger stays locked until both the contacts and the
        credit are in place, so a concurrent reconcile never counts the
        new contacts before they are credited.
        """
        if not uploader:
            return self.contacts.insert_many(items), None

        with self.ledgers.transaction(uploader, create=True) as ledger:
            created = self.contacts.insert_many(items)
            self._apply_uploads(ledger, created)

        logger.info(f"Credited {uploader} for {len(created)} upload(s), balance {ledger.available_points}")
        return created, ledger

    def _credit_uploads(self, user_id: str, contacts: list[Contact]) -> Ledger:
        for index, contact in enumerate(contacts):
            missing = contact.missing_fields()
            if missing:
                raise InvalidInputError(
                    f"Contact is missing required fields: {', '.join(missing)}",
                    details={"index": index, "missing_fields": missing},
                )

        with self.ledgers.transaction(user_id, create=True) as ledger:
            self._apply_uploads(ledger, contacts)

        logger.info(f"Credited {user_id} for {len(contacts)} upload(s), balance {ledger.available_points}")
        return ledger

    def _apply_uploads(self, ledger: Ledger, contacts: list[Contact]) -> None:
        count = len(contacts)
        ledger.available_points += self.settings.upload_reward * count
        ledger.total_contacts += count
        ledger.my_uploads += count
        ledger.uploaded_profile_ids.extend(c.id for c in contacts)
        ledger.recent_activity = append_activity(
            ledger.recent_activity,
            [uploaded_message(c.display_name) for c in contacts],
            self.settings.activity_window,
        )
        ledger.updated_at = utcnow()

    def _validate_contacts(self, items: list[ContactInput], uploaded_by: Optional[str]) -> list[ContactCreate]:
        validated = []
        for index, item in enumerate(items):
            try:
                contact = item if isinstance(item, ContactFields) else ContactCreate.model_validate(item)
            except ValidationError as e:
                raise InvalidInputError(
                    f"Contact at index {index} is malformed",
                    details={"index": index, "errors": e.errors(include_url=False, include_context=False)},
                )

            missing = contact.missing_fields()
            if missing:
                raise InvalidInputError(
                    f"Contact at index {index} is missing required fields: {', '.join(missing)}",
                    details={"index": index, "missing_fields": missing},
                )

            if uploaded_by:
                contact = contact.model_copy(update={"uploaded_by": uploaded_by})
            validated.append(contact)
        return validated

    # -- activity -------------------------------------------------------

    def append_activity(self, user_id: str, message: str) -> Ledger:
        message = (message or "").strip()
        if not message:
            raise InvalidInputError("Activity message required")

        return self.ledgers.update(
            user_id,
            push={"recent_activity": [message]},
            slice_last={"recent_activity": self.settings.activity_append_window},
            set_={"updated_at": utcnow()},
            upsert=True,
        )

    # -- contact views --------------------------------------------------

    def list_contacts(self, user_id: Optional[str] = None) -> list[ContactView]:
        ledger = self.ledgers.find_by_user(user_id) if user_id else None
        return [self._view(c, ledger, user_id) for c in self.contacts.list_all()]

    def get_contact(self, contact_id: str, user_id: Optional[str] = None) -> ContactView:
        contact = self.contacts.find_by_id(contact_id)
        if contact is None:
            raise ContactNotFoundError(contact_id)
        ledger = self.ledgers.find_by_user(user_id) if user_id else None
        return self._view(contact, ledger, user_id)

    def _view(self, contact: Contact, ledger: Optional[Ledger], viewer_id: Optional[str]) -> ContactView:
        is_unlocked = ledger is not None and ledger.has_unlocked(contact.id)
        is_owner = viewer_id is not None and contact.uploaded_by == viewer_id
        return ContactView.for_viewer(contact, is_unlocked=is_unlocked, reveal=is_unlocked or is_owner)

    def _require_ledger(self, user_id: str) -> Ledger:
        ledger = self.ledgers.find_by_user(user_id)
        if ledger is None:
            raise LedgerNotFoundError(user_id)
        return ledger
