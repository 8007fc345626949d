"""
File storage for uploaded videos.

Every upload lands in a single flat directory (UPLOAD_DIR) under a generated
name of the form ``<epoch ms>-<random 9 digits><ext>``. The name never
depends on the user's custom id or title, so renaming a video or changing
its custom id never touches the disk.

Usage:
    storage = get_storage_service()
    stored = await storage.save_upload(upload, max_size=settings.MAX_UPLOAD_SIZE)
    path = storage.path_for(stored.filename)
    await storage.delete_file(stored.filename)
"""

import logging
import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

from streamvault.config import settings
from streamvault.exceptions import UploadTooLargeError

logger = logging.getLogger(__name__)

# Extensions longer than this are not real video extensions
MAX_EXTENSION_LENGTH = 10


@dataclass
class StoredFile:
    """Result of writing an upload to disk."""
    filename: str
    path: Path
    size: int


class LocalStorageService:
    """Saves files to a local directory."""

    def __init__(self, base_path: str = "uploads"):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def generate_filename(original_name: str | None) -> str:
        """Collision-resistant disk name, independent of any user metadata."""
        ext = Path(original_name or "").suffix
        if len(ext) > MAX_EXTENSION_LENGTH:
            ext = ""
        return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"

    def path_for(self, filename: str) -> Path:
        return self.base_path / filename

    async def save_upload(self, file: UploadFile, max_size: int) -> StoredFile:
        """Write an uploaded file to disk in chunks.

        Raises UploadTooLargeError (after removing the partial file) when the
        upload grows past max_size.
        """
        filename = self.generate_filename(file.filename)
        file_path = self.path_for(filename)

        chunk_size = 1024 * 1024  # 1MB chunks
        total_bytes = 0

        try:
            with open(file_path, "wb") as dest:
                while True:
                    chunk = await file.read(chunk_size)
                    if not chunk:
                        break
                    total_bytes += len(chunk)
                    if total_bytes > max_size:
                        raise UploadTooLargeError(max_size)
                    dest.write(chunk)
        except BaseException:
            self._unlink_quietly(file_path)
            raise

        logger.info("Stored upload %r as %s (%d bytes)", file.filename, filename, total_bytes)
        return StoredFile(filename=filename, path=file_path, size=total_bytes)

    async def delete_file(self, filename: str) -> bool:
        """Delete a file from storage."""
        file_path = self.path_for(filename)
        if file_path.exists():
            file_path.unlink()
            return True
        return False

    async def discard(self, filename: str) -> None:
        """Best-effort removal of an orphaned upload. Never raises."""
        self._unlink_quietly(self.path_for(filename))

    async def file_exists(self, filename: str) -> bool:
        """Check if a file exists in storage."""
        return self.path_for(filename).is_file()

    def disk_usage(self) -> int:
        """Bytes currently occupied by files in the upload directory."""
        total = 0
        for entry in os.scandir(self.base_path):
            if entry.is_file(follow_symlinks=False):
                total += entry.stat(follow_symlinks=False).st_size
        return total

    @staticmethod
    def _unlink_quietly(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove orphaned upload %s: %s", path, e)


def get_storage_service() -> LocalStorageService:
    """Storage backend for the configured upload dir."""
    return LocalStorageService(settings.UPLOAD_DIR)
