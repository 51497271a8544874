from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


REQUIRED_FIELDS = ("name", "job_title", "company")


class ContactFields(BaseModel):
    name: Optional[str] = None
    job_title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    industry: Optional[str] = None
    experience: Optional[int] = None
    seniority_level: Optional[str] = None
    skills: list[str] = Field(default_factory=list)
    education: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    uploaded_by: Optional[str] = None

    @field_validator("skills", mode="before")
    @classmethod
    def split_skills(cls, value):
        # CSV uploads send skills as "python, sql"
        if isinstance(value, str):
            return [s.strip() for s in value.split(",") if s.strip()]
        return value or []

    def missing_fields(self) -> list[str]:
        return [f for f in REQUIRED_FIELDS if not (getattr(self, f) or "").strip()]

    @property
    def display_name(self) -> str:
        return self.name or "Unknown"


class ContactCreate(ContactFields):
    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Priya Sharma",
            "job_title": "Head of Procurement",
            "company": "Acme Logistics",
            "location": "Bengaluru",
            "skills": ["negotiation", "supply chain"],
            "email": "priya@acme.example",
            "phone": "+91 98450 00000",
            "uploaded_by": "user-123",
        }
    })


class Contact(ContactFields):
    id: str
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ContactView(Contact):
    """A contact as seen by one requesting user."""

    is_unlocked: bool = False

    @classmethod
    def for_viewer(cls, contact: Contact, is_unlocked: bool, reveal: bool) -> "ContactView":
        view = cls(**contact.model_dump(), is_unlocked=is_unlocked)
        if not reveal:
            view.email = None
            view.phone = None
        return view


class ContactSummary(BaseModel):
    id: str
    name: Optional[str] = None
    job_title: Optional[str] = None
    company: Optional[str] = None
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)
