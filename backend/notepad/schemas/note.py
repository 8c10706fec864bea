"""
Infinite Notepad Backend — Note Schemas
=========================================

What:  The client-facing note shape and the note request bodies.
How:   Storage rows use snake_case timestamps; the API speaks camelCase:

           { "id", "content", "createdAt", "updatedAt" }

       Every endpoint that returns a note (list, create, update, search)
       renders it through NoteResponse, so the translation lives in one place.
       Validation accepts both spellings, which lets the client parse
       responses with the same model the server serializes with.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class NoteResponse(BaseModel):
    """A note as returned by every note-bearing endpoint."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str = Field(description="Unique note identifier (UUID string)")
    content: str = Field(default="", description="Full note text; empty string when blank")
    created_at: datetime = Field(
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
        description="Creation time (UTC ISO 8601)",
    )
    updated_at: datetime = Field(
        validation_alias=AliasChoices("updatedAt", "updated_at"),
        serialization_alias="updatedAt",
        description="Last content replacement (UTC ISO 8601)",
    )

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Any:
        if isinstance(v, uuid.UUID):
            return str(v)
        return v

    @field_validator("content", mode="before")
    @classmethod
    def none_content_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class NoteCreate(BaseModel):
    """Body of POST /api/notes. New notes normally start empty."""

    content: Optional[str] = Field(default="", description="Initial content")

    @field_validator("content", mode="before")
    @classmethod
    def none_content_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class NoteUpdate(BaseModel):
    """
    Body of PUT /api/notes/{id}.

    Full-content replacement: there is no patch/diff form. A missing or null
    content replaces the note with the empty string.
    """

    content: Optional[str] = Field(default="", description="Complete new content")

    @field_validator("content", mode="before")
    @classmethod
    def none_content_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v
