"""
Infinite Notepad Backend — Media Service
==========================================

What:  Validates, stores, lists, signs and deletes note attachments.
How:   A two-phase write: object first, metadata row second. If the row
       insert fails the object is deleted again (compensating delete). If
       that cleanup also fails the object is orphaned; this is logged and
       accepted, the caller still gets the original error.
Who:   Called by the media route handlers.

Validation order (cheap checks first, all before any storage write):
    1. Size ceiling (settings.max_file_size), declared length before the
       upload is read, actual bytes after
    2. MIME type allow-list
    3. The target note belongs to the caller (404 otherwise)
"""

import logging
import re
import time
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from notepad.config import settings
from notepad.exceptions import DatabaseError, NotFoundError, ValidationError
from notepad.repositories.media import MediaRepository
from notepad.repositories.note import NoteRepository
from notepad.schemas.media import MediaResponse, MediaUrlResponse
from notepad.services.storage_service import ObjectStorage

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    # image
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    # audio
    "audio/mpeg",
    "audio/wav",
    "audio/ogg",
    "audio/mp4",
    "audio/webm",
    # video
    "video/mp4",
    "video/webm",
    "video/quicktime",
}

# Multipart framing (boundary lines, part headers) around the file bytes
MULTIPART_OVERHEAD = 64 * 1024

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def classify_mime_type(mime_type: str) -> str:
    """image/*, audio/*, video/* by prefix; everything else is 'other'."""
    prefix = mime_type.split("/", 1)[0].lower()
    if prefix in ("image", "audio", "video"):
        return prefix
    return "other"


def sanitize_file_name(file_name: str) -> str:
    return _UNSAFE_NAME_CHARS.sub("_", file_name) or "file"


def build_object_key(user_id, note_id, file_name: str, timestamp_ms: Optional[int] = None) -> str:
    """`{userId}/{noteId}/{timestampMs}-{sanitizedName}`"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{user_id}/{note_id}/{timestamp_ms}-{sanitize_file_name(file_name)}"


class MediaService:
    """Attachment workflows; stateless, like NoteService."""

    def validate_size(self, content_length: Optional[int], actual_size: int = 0) -> None:
        """
        Size ceiling, checked twice: the declared request length before the
        upload is read, then the byte count actually received.

        Raises:
            ValidationError: either size is over the limit
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if content_length and content_length > settings.max_file_size + MULTIPART_OVERHEAD:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_upload(self, mime_type: Optional[str], size: int) -> str:
        """
        Returns:
            The normalized MIME type.

        Raises:
            ValidationError: too large, or type not in the allow-list
        """
        self.validate_size(None, size)

        normalized = (mime_type or "").split(";", 1)[0].strip().lower()
        if normalized not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=f"File type '{normalized or 'unknown'}' is not supported.",
                field="file",
                context={"mime_type": normalized, "allowed": sorted(ALLOWED_MIME_TYPES)},
            )
        return normalized

    async def upload(
        self,
        notes: NoteRepository,
        media: MediaRepository,
        storage: ObjectStorage,
        note_id: str,
        file_name: str,
        content: bytes,
        mime_type: Optional[str],
    ) -> MediaResponse:
        """
        Attach a file to one of the caller's notes.

        Raises:
            ValidationError: size or type rejected (nothing written)
            NotFoundError: note missing or not the caller's (nothing written)
            FileStorageError: object write failed
            DatabaseError: row insert failed (object cleaned up best-effort)
        """
        normalized = self.validate_upload(mime_type, len(content))
        note = await notes.get(note_id)

        key = build_object_key(notes.user_id, note.id, file_name or "file")
        await storage.upload(key, content)

        try:
            row = await media.create(
                note_id=note.id,
                file_name=file_name or "file",
                file_path=key,
                file_type=classify_mime_type(normalized),
                file_size=len(content),
                mime_type=normalized,
            )
        except SQLAlchemyError as e:
            logger.error("Media row insert failed for %s: %s", key, str(e), exc_info=True)
            await self._discard_object(storage, key)
            raise DatabaseError(
                message="Could not save the attachment. Please try again.",
                context={"note_id": str(note.id)},
            )

        logger.info("Media %s attached to note %s (%s, %d bytes)", row.id, note.id, normalized, len(content))
        return MediaResponse.model_validate(row)

    async def _discard_object(self, storage: ObjectStorage, key: str) -> None:
        try:
            await storage.remove(key)
        except Exception as e:
            logger.error("Compensating delete failed, orphaned object %s: %s", key, str(e))

    async def list_for_note(self, notes: NoteRepository, media: MediaRepository, note_id: str) -> List[MediaResponse]:
        note = await notes.get(note_id)
        rows = await media.list_for_note(note.id)
        return [MediaResponse.model_validate(row) for row in rows]

    async def signed_url(
        self,
        notes: NoteRepository,
        media: MediaRepository,
        storage: ObjectStorage,
        media_id: str,
        base_url: str = "",
    ) -> MediaUrlResponse:
        """
        Signed download URL for an attachment the caller owns.

        The parent note is checked too: an attachment whose note is gone or
        belongs to someone else is reported as not found.
        """
        row = await media.get(media_id)
        if await notes.get_or_none(row.note_id) is None:
            raise NotFoundError(resource="media", resource_id=media_id)
        ttl = settings.signed_url_ttl
        path = storage.create_signed_url(row.file_path, ttl)
        return MediaUrlResponse(url=f"{base_url.rstrip('/')}{path}", expires_in=ttl)

    async def delete(self, media: MediaRepository, storage: ObjectStorage, media_id: str) -> None:
        """Row first, then the object best-effort."""
        row = await media.get(media_id)
        key = row.file_path
        await media.remove(row)
        logger.info("Media deleted: %s", media_id)
        await self._discard_object(storage, key)


media_service = MediaService()
