from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from werkzeug.utils import secure_filename

from ..core.constants import ALLOWED_PHOTO_TYPES, MAX_PHOTO_BYTES
from ..core.exceptions import PhotoStorageError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhotoUpload:
    data: bytes
    filename: str
    content_type: str


@dataclass(frozen=True)
class StoredPhoto:
    url: str
    ref: str


def validate_upload(upload: PhotoUpload) -> PhotoUpload:
    if upload.content_type not in ALLOWED_PHOTO_TYPES:
        raise ValidationError("Unsupported file type")
    if not upload.data:
        raise ValidationError("Empty photo upload")
    if len(upload.data) > MAX_PHOTO_BYTES:
        raise ValidationError(f"Photo exceeds {MAX_PHOTO_BYTES // (1024 * 1024)} MB")
    return upload


class PhotoStorage(Protocol):
    def save(self, upload: PhotoUpload) -> StoredPhoto:
        raise NotImplementedError

    def delete(self, ref: str) -> None:
        raise NotImplementedError


class LocalPhotoStorage(PhotoStorage):
    """Stores photos as files under one directory, served back at `url_prefix`."""

    def __init__(self, root: str | Path, *, url_prefix: str = "/photos"):
        self._root = Path(root)
        self._url_prefix = url_prefix.rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def save(self, upload: PhotoUpload) -> StoredPhoto:
        ref = f"{uuid.uuid4().hex}-{secure_filename(upload.filename) or 'photo'}"
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            (self._root / ref).write_bytes(upload.data)
        except OSError as e:
            raise PhotoStorageError(f"Photo upload failed: {e}") from e
        logger.info("Stored photo %s (%d bytes)", ref, len(upload.data))
        return StoredPhoto(url=f"{self._url_prefix}/{ref}", ref=ref)

    def delete(self, ref: str) -> None:
        if not ref:
            return
        try:
            (self._root / secure_filename(ref)).unlink(missing_ok=True)
        except OSError as e:
            raise PhotoStorageError(f"Photo delete failed: {e}") from e
