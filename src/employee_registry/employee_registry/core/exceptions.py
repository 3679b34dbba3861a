from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    category = "domain"
    status_code = 400


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    category = "validation"
    status_code = 400


class NotFoundError(DomainError):
    """Raised when no employee carries the requested identifier."""

    category = "not_found"
    status_code = 404


class DuplicateError(DomainError):
    """Raised when the duplicate detector matched an existing record.

    Only the matching rule is exposed, never the other record's fields.
    """

    category = "duplicate"
    status_code = 409

    def __init__(self, field):
        self.field = field
        super().__init__(f"Duplicate employee detected: same {field.value} already exists")


class StoreUnavailableError(DomainError):
    """Raised when the record store fails for infrastructure reasons (retryable)."""

    category = "store_unavailable"
    status_code = 503


class SequenceConflictError(DomainError):
    """Raised when an insert hit the identifier uniqueness constraint."""

    category = "sequence_conflict"
    status_code = 500

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Identifier {identifier} is already taken")


class FatalAllocationError(DomainError):
    """Raised when an allocation cannot complete after bounded retries."""

    category = "fatal_allocation"
    status_code = 500

    def __init__(self, message: str, *, bucket: Optional[str] = None, serial: Optional[int] = None):
        self.bucket = bucket
        self.serial = serial
        super().__init__(message)


class SequenceExhaustedError(FatalAllocationError):
    """Raised when a bucket already issued its last 6-digit serial."""


class ProofGenerationError(DomainError):
    """Raised when a QR or barcode image cannot be produced."""

    category = "proof_generation"
    status_code = 500


class PhotoStorageError(DomainError):
    """Raised when a photo cannot be stored or removed."""

    category = "photo_storage"
    status_code = 500
