from __future__ import annotations

import logging
from typing import Optional, Protocol

from ..core.constants import MAX_SERIAL
from ..core.exceptions import SequenceExhaustedError
from .model import Bucket, serial_of

logger = logging.getLogger(__name__)


class IssuedRecord(Protocol):
    identifier: str


class SerialSource(Protocol):
    """The part of the record store the sequencer reads."""

    def find_latest_in_bucket(self, bucket_prefix: str) -> Optional[IssuedRecord]:
        raise NotImplementedError

    def highest_issued_serial(self, bucket_prefix: str) -> int:
        raise NotImplementedError


class IdentifierSequencer:
    """Computes the next serial of a bucket from what the store already issued.

    Store errors propagate untouched: serial 1 is only returned when the store
    confirmed there is no earlier record in the bucket.
    """

    def __init__(self, store: SerialSource):
        self._store = store

    def last_serial(self, bucket: Bucket) -> int:
        latest = self._store.find_latest_in_bucket(bucket.prefix)
        last = serial_of(latest.identifier) if latest else 0
        # Deleted records leave a high-water mark behind; never hand their serials out again.
        return max(last, int(self._store.highest_issued_serial(bucket.prefix) or 0))

    def next_serial(self, bucket: Bucket) -> int:
        last = self.last_serial(bucket)
        if last >= MAX_SERIAL:
            logger.error("Serial space exhausted for bucket %s (last=%06d)", bucket, last)
            raise SequenceExhaustedError(
                f"Bucket {bucket} has no serials left", bucket=str(bucket), serial=last + 1
            )
        return last + 1
