"""
Infinite Notepad Backend — Media Schemas
==========================================

Client-facing media attachment shape:

    { "id", "fileName", "filePath", "fileType", "fileSize", "mimeType", "createdAt" }
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _camel_field(name: str, camel: str, **kwargs: Any) -> Any:
    return Field(
        validation_alias=AliasChoices(camel, name),
        serialization_alias=camel,
        **kwargs,
    )


class MediaResponse(BaseModel):
    """A media attachment's metadata row."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    file_name: str = _camel_field("file_name", "fileName")
    file_path: str = _camel_field("file_path", "filePath")
    file_type: str = _camel_field("file_type", "fileType", description="image, audio, video or other")
    file_size: int = _camel_field("file_size", "fileSize", description="Size in bytes")
    mime_type: str = _camel_field("mime_type", "mimeType")
    created_at: datetime = _camel_field("created_at", "createdAt")

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Any:
        if isinstance(v, uuid.UUID):
            return str(v)
        return v


class MediaUrlResponse(BaseModel):
    """Time-limited signed download URL for one attachment."""

    model_config = ConfigDict(populate_by_name=True)

    url: str
    expires_in: int = _camel_field("expires_in", "expiresIn", description="Validity in seconds")
