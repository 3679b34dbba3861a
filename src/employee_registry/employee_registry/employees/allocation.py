"""Allocation of new employee identifiers.

Steps, in order: VALIDATED -> DUPLICATE_CHECKED -> SEQUENCE_ASSIGNED -> PERSISTED.
A failing step leaves the store untouched. The duplicate check and the write run
under one store-wide scope, so two requests for the same person cannot both
pass the check. Serial assignment for a bucket also runs under the bucket lock,
and the store's uniqueness constraint on the identifier backs it up: an insert
conflict is retried with a freshly computed serial a bounded number of times.

Photo storage and proof generation happen after the insert committed; their
failures are reported on the result, never rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local, two_digit_year
from ..core.constants import DEFAULT_ALLOCATION_RETRIES, DEFAULT_COMPANY_CODE, DUPLICATE_CHECK_SCOPE
from ..core.enums import AllocationStage
from ..core.exceptions import (
    FatalAllocationError,
    PhotoStorageError,
    ProofGenerationError,
    SequenceConflictError,
    StoreUnavailableError,
)
from ..identifiers.codes import dept_code
from ..identifiers.model import Bucket, EmployeeIdentifier, validate_company_code
from ..identifiers.sequencer import IdentifierSequencer
from ..photos.storage import PhotoStorage, PhotoUpload
from ..proofs.generator import ProofGenerator, verification_url
from .duplicates import DuplicateDetector
from .model import AllocationResult, EmployeeRecord, NewEmployee
from .repository import EmployeeRepository

logger = logging.getLogger(__name__)


class AllocationCoordinator:
    def __init__(
        self,
        store: EmployeeRepository,
        *,
        detector: DuplicateDetector,
        sequencer: IdentifierSequencer,
        proofs: ProofGenerator,
        photos: Optional[PhotoStorage] = None,
        company_code: str = DEFAULT_COMPANY_CODE,
        max_retries: int = DEFAULT_ALLOCATION_RETRIES,
        clock: Callable[[], datetime] = now_local,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self._store = store
        self._detector = detector
        self._sequencer = sequencer
        self._proofs = proofs
        self._photos = photos
        self._company_code = validate_company_code(company_code)
        self._max_retries = max_retries
        self._clock = clock

    @property
    def company_code(self) -> str:
        return self._company_code

    def bucket_for(self, department: str, *, at: datetime) -> Bucket:
        return Bucket(self._company_code, two_digit_year(at), dept_code(department))

    def allocate(
        self,
        candidate: NewEmployee,
        *,
        base_url: str,
        photo: Optional[PhotoUpload] = None,
        photo_url: str = "",
    ) -> AllocationResult:
        """Allocate an identifier for an already validated candidate and persist it.

        Raises DuplicateError, StoreUnavailableError or FatalAllocationError;
        nothing is stored when any of them is raised.
        """
        logger.debug("Allocation reached %s", AllocationStage.VALIDATED.value)
        with self._store.allocation_scope(DUPLICATE_CHECK_SCOPE):
            self._detector.ensure_unique(candidate)
            logger.debug("Allocation reached %s", AllocationStage.DUPLICATE_CHECKED.value)
            record = self._persist(candidate, photo_url=photo_url)

        photo_error = None
        if photo is not None and self._photos is not None:
            record, photo_error = self._attach_photo(record, photo)

        verify_url = verification_url(base_url, record.identifier)
        proofs = None
        proof_error = None
        try:
            proofs = self._proofs.generate(record.identifier, verify_url)
        except ProofGenerationError as e:
            logger.warning("Employee %s created but proof generation failed: %s", record.identifier, e)
            proof_error = str(e)

        return AllocationResult(
            record=record,
            verify_url=verify_url,
            proofs=proofs,
            proof_error=proof_error,
            photo_error=photo_error,
        )

    def _persist(self, candidate: NewEmployee, *, photo_url: str) -> EmployeeRecord:
        now = self._clock()
        bucket = self.bucket_for(candidate.department, at=now)
        serial: Optional[int] = None
        last_conflict: Optional[SequenceConflictError] = None

        try:
            with self._store.allocation_scope(bucket.prefix):
                for attempt in range(1, self._max_retries + 1):
                    serial = self._sequencer.next_serial(bucket)
                    identifier = str(EmployeeIdentifier(bucket, serial))
                    logger.debug("Allocation reached %s: %s", AllocationStage.SEQUENCE_ASSIGNED.value, identifier)
                    record = candidate.to_record(identifier, created_at=now, photo_url=photo_url)

                    if self._store.insert_with_unique_identifier(record):
                        logger.info(
                            "Allocated %s (bucket=%s, attempt=%d) -> %s",
                            identifier,
                            bucket,
                            attempt,
                            AllocationStage.PERSISTED.value,
                        )
                        return record

                    last_conflict = SequenceConflictError(identifier)
                    logger.warning(
                        "Identifier conflict in bucket %s at serial %06d (attempt %d/%d)",
                        bucket,
                        serial,
                        attempt,
                        self._max_retries,
                    )
        except StoreUnavailableError:
            logger.error("Record store failed while allocating in bucket %s (attempted serial=%s)", bucket, serial)
            raise

        logger.error("Giving up allocation in bucket %s after %d conflicts (last serial=%s)", bucket, self._max_retries, serial)
        raise FatalAllocationError(
            f"Could not allocate an identifier in bucket {bucket} after {self._max_retries} attempts",
            bucket=str(bucket),
            serial=serial,
        ) from last_conflict

    def _attach_photo(self, record: EmployeeRecord, photo: PhotoUpload):
        try:
            stored = self._photos.save(photo)
        except PhotoStorageError as e:
            logger.warning("Employee %s created but photo storage failed: %s", record.identifier, e)
            return record, str(e)

        updated = replace(record, photo_url=stored.url, photo_ref=stored.ref)
        try:
            self._store.update(updated)
        except StoreUnavailableError as e:
            logger.warning("Employee %s created but its photo could not be linked: %s", record.identifier, e)
            self._discard_photo(stored.ref)
            return record, str(e)
        return updated, None

    def _discard_photo(self, ref: str) -> None:
        try:
            self._photos.delete(ref)
        except PhotoStorageError as e:
            logger.warning("Could not remove unlinked photo %s: %s", ref, e)
