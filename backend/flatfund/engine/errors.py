"""Error taxonomy for the payment engine.

Every failure the engine can surface maps to one of these classes:

  - ``ConfigurationError``   missing/invalid rate, area or type data, attributable
                             to a named field; fixed only by an admin data change
  - ``IdentityConflict``     email or mobile mismatch; resolved only by an explicit
                             user decision, never automatically
  - ``DuplicateSubmission``  blocking business rule, carries the existing record
  - ``TransientLookupFailure`` store unreachable during a lookup
  - ``PersistenceFailure``   the final write failed; retryable by resubmission
"""

from __future__ import annotations

from typing import Any


class FlatFundError(Exception):
    """Base class for all engine errors."""

    code = "ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ConfigurationError(FlatFundError):
    """Rate / area / type configuration is missing or invalid for a named field."""

    code = "CONFIGURATION_ERROR"

    def __init__(self, field: str, message: str = ""):
        super().__init__(message or f"Missing or invalid configuration: {field}")
        self.field = field

    def to_dict(self) -> dict:
        return {**super().to_dict(), "field": self.field}


class IdentityConflict(FlatFundError):
    """Submitted identity contradicts the stored flat contact record."""

    code = "IDENTITY_CONFLICT"

    def __init__(self, code: str, message: str = "", detail: dict[str, Any] | None = None):
        super().__init__(message or code)
        self.code = code
        self.detail = detail or {}

    def to_dict(self) -> dict:
        return {**super().to_dict(), "detail": self.detail}


class DuplicateSubmission(FlatFundError):
    """A submission for the same (block, flat, collection) already exists."""

    code = "DUPLICATE"

    def __init__(self, existing: dict[str, Any], message: str = ""):
        super().__init__(message or "A payment for this collection has already been submitted")
        self.existing = existing

    def to_dict(self) -> dict:
        return {**super().to_dict(), "existing": self.existing}


class TransientLookupFailure(FlatFundError):
    """The backing store could not be reached for a lookup."""

    code = "LOOKUP_UNAVAILABLE"


class StoreUnavailable(TransientLookupFailure):
    """Raised by store adapters when the backing data store is unreachable."""


class PersistenceFailure(FlatFundError):
    """The final submission write failed."""

    code = "SUBMIT_FAILED"


class ReferenceNotFound(FlatFundError):
    """An apartment / block / flat / collection id does not exist."""

    code = "NOT_FOUND"
