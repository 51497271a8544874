import threading
from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import uuid4

from .models import Contact, ContactCreate


class InMemoryContactStore:
    def __init__(self):
        self.contacts: dict[str, dict] = {}
        self._lock = threading.Lock()

    def find_by_id(self, contact_id: str) -> Optional[Contact]:
        data = self.contacts.get(contact_id)
        return Contact(**data) if data else None

    def find_many(self, contact_ids: Iterable[str]) -> list[Contact]:
        return [Contact(**self.contacts[cid]) for cid in contact_ids if cid in self.contacts]

    def create(self, fields: ContactCreate) -> Contact:
        return self.insert_many([fields])[0]

    def insert_many(self, items: list[ContactCreate]) -> list[Contact]:
        now = datetime.now(timezone.utc)
        records = [
            {**item.model_dump(), "id": uuid4().hex, "uploaded_at": now}
            for item in items
        ]
        with self._lock:
            for record in records:
                self.contacts[record["id"]] = record
        return [Contact(**r) for r in records]

    def count_by_uploader(self, user_id: str) -> int:
        return sum(1 for c in list(self.contacts.values()) if c["uploaded_by"] == user_id)

    def list_all(self) -> list[Contact]:
        # Newest first; dict keeps insertion order.
        return [Contact(**c) for c in reversed(list(self.contacts.values()))]

    def list_by_uploader(self, user_id: str, limit: Optional[int] = None) -> list[Contact]:
        uploaded = [c for c in self.list_all() if c.uploaded_by == user_id]
        return uploaded[:limit] if limit is not None else uploaded
