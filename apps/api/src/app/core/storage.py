"""
Local File Storage

Blob store for uploaded application documents. Records in the database
keep only the storage reference ("<category>/<uuid><ext>"); the bytes
live under UPLOAD_DIR. Writes go to a temp file and are renamed into
place, and every reference is validated against the storage root.
"""

import asyncio
import logging
import mimetypes
import os
import re
import tempfile
from collections.abc import AsyncIterator
from functools import lru_cache
from pathlib import Path
from uuid import uuid4

import aiofiles
import aiofiles.os
from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import ServiceError

logger = logging.getLogger(__name__)

_SAFE_SUFFIX = re.compile(r"^\.[a-z0-9]{1,10}$")


class StorageError(ServiceError):
    """Base exception for storage errors."""


class FileTooLargeError(StorageError):
    """Raised when an upload exceeds the configured size limit."""

    def __init__(self, field: str, max_size: int):
        super().__init__(
            message=f"File '{field}' exceeds the maximum size of {max_size // (1024 * 1024)}MB.",
            error_code="FILE_TOO_LARGE",
            status_code=400,
        )


class StoredFileNotFoundError(StorageError):
    """Raised when a storage reference does not resolve to a file."""

    def __init__(self, storage_ref: str):
        super().__init__(
            message=f"File not found: {storage_ref}",
            error_code="FILE_NOT_FOUND",
            status_code=404,
        )


class LocalFileStorage:
    """Filesystem storage with atomic writes and path traversal protection."""

    CHUNK_SIZE = 64 * 1024  # 64KB

    def __init__(self, root: str, max_file_size: int) -> None:
        self.root = Path(root).resolve()
        self.max_file_size = max_file_size
        self.root.mkdir(parents=True, exist_ok=True, mode=0o750)

    def _get_full_path(self, storage_ref: str) -> Path:
        full_path = (self.root / storage_ref).resolve()
        try:
            full_path.relative_to(self.root)
        except ValueError as e:
            logger.warning(f"Rejected storage reference outside root: {storage_ref!r}")
            raise StoredFileNotFoundError(storage_ref) from e
        if full_path == self.root:
            raise StoredFileNotFoundError(storage_ref)
        return full_path

    @staticmethod
    def _suffix_for(filename: str | None) -> str:
        suffix = Path(filename or "").suffix.lower()
        return suffix if _SAFE_SUFFIX.match(suffix) else ""

    @staticmethod
    def _reserve_temp_file(directory: Path) -> str:
        fd, temp_path = tempfile.mkstemp(dir=directory, prefix=".tmp_")
        os.close(fd)
        os.chmod(temp_path, 0o640)
        return temp_path

    async def save(self, upload: UploadFile, category: str) -> str:
        """
        Store an uploaded file and return its storage reference.

        Args:
            upload: The multipart upload to persist
            category: Sub-directory (the form field it arrived in)

        Raises:
            FileTooLargeError: If the file exceeds max_file_size
        """
        storage_ref = f"{category}/{uuid4().hex}{self._suffix_for(upload.filename)}"
        target_path = self._get_full_path(storage_ref)
        await aiofiles.os.makedirs(target_path.parent, mode=0o750, exist_ok=True)
        temp_path = await asyncio.to_thread(self._reserve_temp_file, target_path.parent)
        try:
            size = 0
            async with aiofiles.open(temp_path, "wb") as f:
                while chunk := await upload.read(self.CHUNK_SIZE):
                    size += len(chunk)
                    if size > self.max_file_size:
                        raise FileTooLargeError(category, self.max_file_size)
                    await f.write(chunk)
            await aiofiles.os.replace(temp_path, target_path)
        finally:
            if await aiofiles.os.path.exists(temp_path):
                await aiofiles.os.remove(temp_path)

        logger.info(f"Stored upload {storage_ref} ({size} bytes)")
        return storage_ref

    async def exists(self, storage_ref: str) -> bool:
        try:
            return await aiofiles.os.path.isfile(self._get_full_path(storage_ref))
        except StoredFileNotFoundError:
            return False

    async def download(self, storage_ref: str) -> AsyncIterator[bytes]:
        """Stream file content in chunks."""
        file_path = self._get_full_path(storage_ref)
        if not await aiofiles.os.path.isfile(file_path):
            raise StoredFileNotFoundError(storage_ref)
        async with aiofiles.open(file_path, "rb") as f:
            while chunk := await f.read(self.CHUNK_SIZE):
                yield chunk

    async def delete(self, storage_ref: str) -> bool:
        """Delete a stored file. Returns True if something was removed."""
        file_path = self._get_full_path(storage_ref)
        if not await aiofiles.os.path.isfile(file_path):
            return False
        await aiofiles.os.remove(file_path)
        return True

    @staticmethod
    def content_type(storage_ref: str) -> str:
        guessed, _ = mimetypes.guess_type(storage_ref)
        return guessed or "application/octet-stream"


@lru_cache
def get_storage() -> LocalFileStorage:
    """FastAPI dependency returning the process-wide storage instance."""
    return LocalFileStorage(settings.upload_dir, settings.max_upload_size)
