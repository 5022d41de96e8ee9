"""Error taxonomy shared by the repositories and the HTTP layer.

Every error carries a stable ``code`` and a human-readable message. The HTTP
layer renders them as ``{"code": ..., "message": ...}`` and never includes
raw storage error text.
"""
from typing import Optional


class ServicebokError(Exception):
    code = "error"
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        self.message = message or self.default_message
        self.field = field
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.field:
            body["field"] = self.field
        return body


class InvalidInputError(ServicebokError):
    """Malformed or out-of-range input. Fixed by the caller, never retried."""

    code = "validation_error"
    status_code = 422
    default_message = "Invalid input"


class NotFound(ServicebokError):
    """Record does not exist or belongs to another user."""

    code = "not_found"
    status_code = 404
    default_message = "Not found"


class Conflict(ServicebokError):
    """VIN or license plate already registered on another vehicle."""

    code = "conflict"
    status_code = 409
    default_message = "Conflicting record"


class RateLimited(ServicebokError):
    code = "rate_limited"
    status_code = 429
    default_message = "Too many requests"


class StorageUnavailable(ServicebokError):
    code = "storage_unavailable"
    status_code = 503
    default_message = "Storage is temporarily unavailable, please try again"


class DegradedConsistency(ServicebokError):
    """A derived-state write failed after its primary write committed.

    Logged and recorded, never returned to the caller as a failure.
    """

    code = "degraded_consistency"
    status_code = 200
    default_message = "Derived state could not be updated"

    def __init__(self, rule: str, entity_id: int, cause: Optional[BaseException] = None):
        self.rule = rule
        self.entity_id = entity_id
        self.cause = cause
        super().__init__(f"{rule} failed for id={entity_id}")
