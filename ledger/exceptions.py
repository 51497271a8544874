"""
Ledger exceptions.

Every failure raised by the ledger carries a machine readable code and a
details dict so the API layer can tell the client exactly which
constraint failed.
"""

from typing import Any, Optional


class LedgerServiceError(Exception):
    """Base exception for all ledger errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(LedgerServiceError):
    """Resource not found."""

    pass


class ContactNotFoundError(NotFoundError):
    def __init__(self, contact_id: str):
        super().__init__(
            f"Contact {contact_id} not found",
            code="CONTACT_NOT_FOUND",
            details={"contact_id": contact_id},
        )


class LedgerNotFoundError(NotFoundError):
    def __init__(self, user_id: str):
        super().__init__(
            f"Ledger for user {user_id} not found",
            code="LEDGER_NOT_FOUND",
            details={"user_id": user_id},
        )


class ConflictError(LedgerServiceError):
    """The requested change conflicts with the current state."""

    pass


class AlreadyUnlockedError(ConflictError):
    def __init__(self, user_id: str, contact_id: str):
        super().__init__(
            "Contact already unlocked by this user",
            code="ALREADY_UNLOCKED",
            details={"user_id": user_id, "contact_id": contact_id},
        )


class InsufficientPointsError(LedgerServiceError):
    """
    Raised when a user doesn't have enough points to unlock a contact.

    The UI uses ``shortfall`` to render how many more points are needed.
    """

    def __init__(self, required: int, available: int, user_id: Optional[str] = None):
        super().__init__(
            f"Insufficient points. Required: {required}, available: {available}",
            code="INSUFFICIENT_POINTS",
            details={
                "required": required,
                "available": available,
                "shortfall": required - available,
            },
        )
        self.required = required
        self.available = available
        if user_id:
            self.details["user_id"] = user_id


class InvalidInputError(LedgerServiceError):
    """Input validation failed."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, code="INVALID_INPUT", details=details)
