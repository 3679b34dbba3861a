from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import optional_text
from ..core.constants import DEFAULT_LIST_LIMIT, DUPLICATE_CHECK_SCOPE, MAX_LIST_LIMIT, PHOTO_DELETE_MARKER
from ..core.exceptions import DomainError, NotFoundError, PhotoStorageError, ValidationError
from ..photos.storage import PhotoStorage, PhotoUpload, validate_upload
from ..proofs.generator import ProofBundle, ProofGenerator, verification_url
from .allocation import AllocationCoordinator
from .duplicates import DuplicateDetector
from .model import AllocationResult, EmployeeRecord, NewEmployee
from .repository import EmployeeRepository

logger = logging.getLogger(__name__)


def _photo_url_from(data: Mapping[str, Any]) -> str:
    return optional_text(data.get("photo_url") or data.get("photoUrl"))


def _as_int(value, field_name: str, default: int) -> int:
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")


def page_bounds(limit=None, offset=None) -> tuple[int, int]:
    """Clamp list paging: limit to 1..MAX_LIST_LIMIT, offset to >= 0."""
    limit = min(max(_as_int(limit, "limit", DEFAULT_LIST_LIMIT), 1), MAX_LIST_LIMIT)
    offset = max(_as_int(offset, "offset", 0), 0)
    return limit, offset


class EmployeeService:
    """Use cases: register, look up, edit and remove employees."""

    def __init__(
        self,
        employees: EmployeeRepository,
        *,
        coordinator: AllocationCoordinator,
        detector: DuplicateDetector,
        proofs: ProofGenerator,
        photos: Optional[PhotoStorage] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._employees = employees
        self._coordinator = coordinator
        self._detector = detector
        self._proofs = proofs
        self._photos = photos
        self._clock = clock

    def create(
        self, data: Mapping[str, Any], *, base_url: str, photo: Optional[PhotoUpload] = None
    ) -> AllocationResult:
        candidate = NewEmployee.from_input(data)
        photo_url = _photo_url_from(data)
        # An external photo URL wins over an uploaded file.
        if photo is not None and not photo_url:
            validate_upload(photo)
        else:
            photo = None
        return self._coordinator.allocate(candidate, base_url=base_url, photo=photo, photo_url=photo_url)

    def get(self, identifier: str) -> EmployeeRecord:
        record = self._employees.get_by_identifier(identifier)
        if not record:
            raise NotFoundError(f"Employee {identifier} not found")
        return record

    def search(self, *, q: str = "", limit=None, offset=None) -> Sequence[EmployeeRecord]:
        limit, offset = page_bounds(limit, offset)
        return self._employees.search(q=optional_text(q), limit=limit, offset=offset)

    def update(
        self, identifier: str, changes: Mapping[str, Any], *, photo: Optional[PhotoUpload] = None
    ) -> EmployeeRecord:
        """Edit an employee; the identifier (and so its bucket) never changes.

        The previous photo is removed only after the record was written; when the
        write fails a freshly uploaded photo is removed instead.
        """
        existing = self.get(identifier)
        candidate = NewEmployee.merged(existing, changes)
        if photo is not None:
            validate_upload(photo)

        photo_url, photo_ref = self._next_photo(existing, photo=photo, requested_url=_photo_url_from(changes))
        new_ref = photo_ref if photo_ref != existing.photo_ref else None

        updated = replace(candidate.apply_to(existing, updated_at=self._clock()), photo_url=photo_url, photo_ref=photo_ref)
        try:
            with self._employees.allocation_scope(DUPLICATE_CHECK_SCOPE):
                self._detector.ensure_unique(candidate, exclude_identifier=existing.identifier)
                if not self._employees.update(updated):
                    raise NotFoundError(f"Employee {identifier} not found")
        except DomainError:
            self._drop_photo(new_ref, identifier)
            raise

        if existing.photo_ref != photo_ref:
            self._drop_photo(existing.photo_ref, identifier)
        logger.info("Updated employee %s", identifier)
        return updated

    def _next_photo(self, existing: EmployeeRecord, *, photo: Optional[PhotoUpload], requested_url: str):
        if photo is not None and self._photos is not None:
            stored = self._photos.save(photo)
            return stored.url, stored.ref
        if requested_url == PHOTO_DELETE_MARKER:
            return None, None
        if requested_url and requested_url != existing.photo_url:
            return requested_url, None
        return existing.photo_url, existing.photo_ref

    def _drop_photo(self, ref: Optional[str], identifier: str) -> None:
        if not ref or self._photos is None:
            return
        try:
            self._photos.delete(ref)
        except PhotoStorageError as e:
            logger.warning("Could not remove photo %s of %s: %s", ref, identifier, e)

    def delete(self, identifier: str) -> None:
        """Remove the record, then its photo; the serial stays consumed."""
        record = self.get(identifier)
        if not self._employees.delete_by_identifier(identifier):
            raise NotFoundError(f"Employee {identifier} not found")
        self._drop_photo(record.photo_ref, identifier)
        logger.info("Deleted employee %s", identifier)

    def verify_url(self, identifier: str, *, base_url: str) -> str:
        return verification_url(base_url, identifier)

    def proofs_for(self, identifier: str, *, base_url: str) -> ProofBundle:
        record = self.get(identifier)
        return self._proofs.generate(record.identifier, verification_url(base_url, record.identifier))

    def qr_png(self, identifier: str, *, base_url: str) -> bytes:
        record = self.get(identifier)
        return self._proofs.qr_png(verification_url(base_url, record.identifier))

    def barcode_png(self, identifier: str) -> bytes:
        return self._proofs.barcode_png(self.get(identifier).identifier)
