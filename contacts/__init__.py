"""
Contact Directory

Professional contact records and the per-viewer projection that hides
private fields (email, phone) until the viewer unlocks them.
"""

from .models import Contact, ContactCreate, ContactSummary, ContactView
from .store import InMemoryContactStore

__all__ = [
    "Contact",
    "ContactCreate",
    "ContactSummary",
    "ContactView",
    "InMemoryContactStore",
]
