from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from contacts.models import ContactCreate, ContactSummary, ContactView


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Ledger(BaseModel):
    user_id: str
    available_points: int = Field(default=100, ge=0)
    total_contacts: int = 0
    unlocked_profiles: int = 0
    my_uploads: int = 0
    uploaded_profile_ids: list[str] = Field(default_factory=list)
    unlocked_contact_ids: list[str] = Field(default_factory=list)
    recent_activity: list[str] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(from_attributes=True, validate_assignment=True)

    def has_unlocked(self, contact_id: str) -> bool:
        return contact_id in self.unlocked_contact_ids


class UnlockRequest(BaseModel):
    user_id: str = Field(..., description="User spending points on the unlock")


class UnlockResult(BaseModel):
    success: bool = True
    contact: ContactView
    ledger: Ledger
    points_deducted: int
    remaining_points: int


class ContactCreatedResponse(BaseModel):
    contact: ContactView
    ledger: Optional[Ledger] = None


class BulkCreateRequest(BaseModel):
    profiles: list[ContactCreate]
    uploaded_by: Optional[str] = None


class BulkCreateResponse(BaseModel):
    success: bool = True
    count: int
    contacts: list[ContactView]
    ledger: Optional[Ledger] = None


class ActivityRequest(BaseModel):
    activity: str = Field(..., description="Human readable activity message")


class ActivityAppendResponse(BaseModel):
    success: bool = True
    activity: str
    total_activities: int
    ledger: Ledger


class UnlockedContactsResponse(BaseModel):
    user_id: str
    unlocked_contact_ids: list[str]
    total_unlocked: int
    actual_unlocked_count: int
    unlocked_profiles: list[ContactSummary]


class ActivitySummary(BaseModel):
    recent_activity: list[str]
    uploaded_profiles: list[ContactSummary]
    total_activities: int
    last_updated: datetime
