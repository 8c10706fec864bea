"""
Infinite Notepad Backend — Object Storage Service
===================================================

What:  Bucket-style object storage for note attachments, backed by a local
       directory, plus HMAC-signed time-limited download URLs.
How:   Objects live under <storage_root>/<bucket>/<key>. Keys are
       `{userId}/{noteId}/{ms}-{sanitizedName}`, so the first path segment
       is always the owner. Writes go through aiofiles.
Who:   MediaService (upload/remove), NoteService (cleanup on note delete),
       the storage route (signed downloads), and the health check.

Signed URL format:
    /api/storage/<key>?expires=<unix seconds>&signature=<hex hmac>

    signature = HMAC-SHA256(signing_key, "<key>:<expires>")

The bucket is verified at startup and again before each upload; a missing
bucket directory is created, an unwritable one is a FileStorageError.
"""

import hashlib
import hmac
import logging
import os
import time
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import aiofiles

from notepad.config import settings
from notepad.exceptions import FileStorageError, ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)


class ObjectStorage:
    """
    A single storage bucket.

    Attributes:
        bucket: Bucket name (a directory under storage_root)
        bucket_path: Absolute path of the bucket directory
    """

    def __init__(
        self,
        storage_root: Optional[str] = None,
        bucket: Optional[str] = None,
        signing_key: Optional[str] = None,
    ):
        self.bucket = bucket or settings.storage_bucket
        self.bucket_path = (Path(storage_root or settings.storage_root) / self.bucket).resolve()
        self._signing_key = (signing_key or settings.signing_key).encode("utf-8")

    # ── Bucket ────────────────────────────────────────────────────────────

    def ensure_bucket(self) -> None:
        """
        Make sure the bucket directory exists and is writable.

        Raises:
            FileStorageError: the directory cannot be created or written
        """
        try:
            self.bucket_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Cannot create bucket %s: %s", self.bucket_path, str(e))
            raise FileStorageError(
                message=f"Storage bucket '{self.bucket}' is not available.",
                context={"bucket": self.bucket, "os_error": str(e)},
            )
        if not os.access(self.bucket_path, os.W_OK):
            raise FileStorageError(
                message=f"Storage bucket '{self.bucket}' is not writable.",
                context={"bucket": self.bucket},
            )

    def is_available(self) -> bool:
        """Health check: bucket exists and is writable."""
        return self.bucket_path.is_dir() and os.access(self.bucket_path, os.W_OK)

    def path_for(self, key: str) -> Path:
        """
        Resolve an object key to a path inside the bucket.

        Raises:
            ForbiddenError: the key escapes the bucket (e.g. `../`)
        """
        path = (self.bucket_path / key).resolve()
        if path == self.bucket_path or self.bucket_path not in path.parents:
            raise ForbiddenError(message="Invalid object key", context={"key": key})
        return path

    # ── Objects ───────────────────────────────────────────────────────────

    async def upload(self, key: str, content: bytes) -> str:
        """
        Write an object. Returns the key.

        Raises:
            FileStorageError: bucket unavailable or write failed
        """
        self.ensure_bucket()
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store object %s: %s", key, str(e))
            raise FileStorageError(
                message="Failed to save uploaded file. Please try again.",
                context={"key": key, "os_error": str(e)},
            )
        logger.info("Object stored: %s (%d bytes)", key, len(content))
        return key

    async def read(self, key: str) -> bytes:
        path = self.path_for(key)
        if not path.is_file():
            raise NotFoundError(resource="object", resource_id=key)
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    async def remove(self, key: str) -> bool:
        """
        Delete an object. Returns False when it was already gone.

        Raises:
            FileStorageError: the file exists but could not be removed
        """
        path = self.path_for(key)
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.debug("Remove: object already gone: %s", key)
            return False
        except OSError as e:
            logger.error("Failed to remove object %s: %s", key, str(e))
            raise FileStorageError(
                message="Failed to remove stored file.",
                context={"key": key, "os_error": str(e)},
            )
        logger.info("Object removed: %s", key)
        return True

    # ── Signed URLs ───────────────────────────────────────────────────────

    def _sign(self, key: str, expires: int) -> str:
        message = f"{key}:{expires}".encode("utf-8")
        return hmac.new(self._signing_key, message, hashlib.sha256).hexdigest()

    def create_signed_url(self, key: str, expires_in: Optional[int] = None) -> str:
        """
        Build a time-limited download path for `key`.

        The result is relative to the API origin; routes prefix the
        request's base URL.
        """
        ttl = expires_in or settings.signed_url_ttl
        expires = int(time.time()) + ttl
        signature = self._sign(key, expires)
        return f"/api/storage/{quote(key)}?expires={expires}&signature={signature}"

    def verify_signature(self, key: str, expires: int, signature: str) -> None:
        """
        Raises:
            ForbiddenError: expired, or the signature does not match
        """
        if expires < int(time.time()):
            raise ForbiddenError(message="Signed URL has expired", context={"key": key})
        expected = self._sign(key, expires)
        if not hmac.compare_digest(expected, signature or ""):
            raise ForbiddenError(message="Invalid URL signature", context={"key": key})
