"""Validation, naming and storage of uploaded photos."""

import asyncio
import itertools
import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Iterable, Optional

from .config import DEFAULT_ALLOWED_TYPES, UploadConfig
from .errors import PayloadTooLarge, StoreFailure, UnsupportedMediaType

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 2 * 1024 * 1024

_counter = itertools.count(1)
_counter_lock = threading.Lock()


@dataclass(frozen=True)
class StoredPhoto:
    """An accepted upload and the name it will be stored under."""

    filename: str
    content_type: str
    size: int


def _next_sequence() -> int:
    with _counter_lock:
        return next(_counter)


def storage_name(original_name: str) -> str:
    """Build a collision-resistant file name keeping the lower-cased extension."""
    ext = PurePath(original_name or "").suffix.lower()
    return f"img_{time.time_ns() // 1_000_000}_{_next_sequence()}{ext}"


def validate_upload(
    declared_type: Optional[str],
    size: int,
    original_name: Optional[str],
    allowed_types: Iterable[str] = DEFAULT_ALLOWED_TYPES,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> Optional[StoredPhoto]:
    """
    Check an uploaded file against the media type allow-list and size ceiling.

    The declared MIME type is trusted as-is; file contents are not inspected.

    Args:
        declared_type: MIME type sent by the client.
        size: Size of the upload in bytes.
        original_name: File name sent by the client; empty means no file.
        allowed_types: Accepted MIME types.
        max_bytes: Largest accepted size.

    Returns:
        StoredPhoto naming the file, or None when nothing was attached.

    Raises:
        UnsupportedMediaType: If the declared type is not allowed.
        PayloadTooLarge: If the file exceeds the size ceiling.
    """
    if not original_name:
        return None

    content_type = (declared_type or "").split(";")[0].strip().lower()
    if content_type not in set(allowed_types):
        raise UnsupportedMediaType()

    if size > max_bytes:
        raise PayloadTooLarge(f"File exceeds the {max_bytes} byte limit.")

    return StoredPhoto(filename=storage_name(original_name), content_type=content_type, size=size)


class UploadStorage:
    """Write-once storage for accepted photos under the public uploads directory."""

    def __init__(self, config: UploadConfig, public_base_url: str = ""):
        self.config = config
        self.directory = Path(config.directory).expanduser()
        self.public_prefix = public_base_url.rstrip("/") + "/" + config.public_path.strip("/")

    def ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def validate(
        self, declared_type: Optional[str], size: int, original_name: Optional[str]
    ) -> Optional[StoredPhoto]:
        """Validate an upload against this storage's configured limits."""
        return validate_upload(
            declared_type,
            size,
            original_name,
            allowed_types=self.config.allowed_types,
            max_bytes=self.config.max_bytes,
        )

    def public_url(self, photo: StoredPhoto) -> str:
        return f"{self.public_prefix}/{photo.filename}"

    def _write(self, path: Path, data: bytes) -> None:
        self.ensure_directory()
        with path.open("xb") as f:
            f.write(data)

    async def save(self, photo: StoredPhoto, data: bytes) -> str:
        """
        Write the photo bytes and return the public URL.

        Raises:
            StoreFailure: If the file cannot be written.
        """
        path = self.directory / photo.filename
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            logger.error("Failed to write upload %s: %s", path, e)
            raise StoreFailure("Failed to store uploaded photo.") from e

        logger.info("Uploaded file saved: %s (%d bytes)", path, photo.size)
        return self.public_url(photo)

    async def discard(self, photo: StoredPhoto) -> None:
        """Remove a stored photo whose submission was not persisted."""
        path = self.directory / photo.filename
        try:
            await asyncio.to_thread(path.unlink, True)
        except OSError as e:
            logger.warning("Failed to remove orphaned upload %s: %s", path, e)
