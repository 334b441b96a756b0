from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations.

    Every subclass carries a stable machine-readable ``kind`` and the HTTP
    status the controller layer answers with.
    """

    kind = "DOMAIN_ERROR"
    http_status = 400

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or self.kind

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "VALIDATION_ERROR"

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


class AuthorizationError(DomainError):
    """Raised when the actor lacks the role or company scope for an action."""

    kind = "UNAUTHORIZED"
    http_status = 403


class NotFoundError(DomainError):
    """Raised when an entity does not exist (or is not visible to the actor)."""

    kind = "NOT_FOUND"
    http_status = 404


class ConflictError(DomainError):
    """Raised when an entity exists but is not in the state the action needs."""

    kind = "CONFLICT"
    http_status = 409


class ConfigurationIncomplete(DomainError):
    """Raised when pay configuration is missing for a user or company."""

    kind = "CONFIGURATION_INCOMPLETE"
    http_status = 422


class TransactionFailure(DomainError):
    """Raised when the store aborts an atomic write. Safe to retry once if idempotent."""

    kind = "TRANSACTION_FAILURE"
    http_status = 500


class InternalError(DomainError):
    """Raised for unexpected failures surfaced to the caller."""

    kind = "INTERNAL_ERROR"
    http_status = 500


class DuplicateEntryError(Exception):
    """Store-level unique key violation (never surfaced to callers)."""
