"""
Data models for users, notes and note types.

Uses Pydantic for validation and serialization. Records are stored in Redis
as JSON with camelCase keys, so every model aliases its fields to camelCase
and accepts either spelling on input.
"""

import re
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Optional
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


BASIC_NOTE_TYPE = "basic-note"

# Ids end up inside Redis keys, so only this alphabet is accepted from clients
RECORD_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_valid_id(value: Any) -> bool:
    return isinstance(value, str) and bool(RECORD_ID_PATTERN.fullmatch(value))


class CamelModel(BaseModel):
    """Base model with camelCase aliases for the stored JSON documents."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> Dict[str, Any]:
        """JSON-ready dict, as stored in Redis and returned to the client."""
        return self.model_dump(mode="json", by_alias=True)


# ============================================================================
# USERS
# ============================================================================


class User(CamelModel):
    """Stored user record. Unknown profile keys (e.g. preferences) are kept."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str = Field(default_factory=lambda: str(uuid4()))
    email: str
    name: str
    # Older records keep the credential under "password"
    password_hash: str = Field(
        default="",
        validation_alias=AliasChoices("passwordHash", "password", "password_hash"),
        serialization_alias="passwordHash",
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def public(self) -> Dict[str, Any]:
        """The record without its credential."""
        record = self.to_record()
        record.pop("passwordHash", None)
        record.pop("password", None)
        return record


# ============================================================================
# NOTES
# ============================================================================


def _normalize_tags(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    seen: List[str] = []
    for tag in value:
        tag = str(tag).strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _optional_tags(value: Any) -> Any:
    return None if value is None else _normalize_tags(value)


Tags = Annotated[List[str], BeforeValidator(_normalize_tags)]
OptionalTags = Annotated[Optional[List[str]], BeforeValidator(_optional_tags)]
OptionalText = Annotated[Optional[str], BeforeValidator(_blank_to_none)]
FieldMap = Annotated[Dict[str, Any], BeforeValidator(lambda value: value or {})]


class NoteImage(CamelModel):
    """Image descriptor returned by the media store and folded into a note."""

    id: str
    url: str
    public_id: Optional[str] = None
    caption: Optional[str] = None


class Note(CamelModel):
    """Complete note with all fields"""

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    title: str
    content: str
    type: str
    fields: FieldMap = Field(default_factory=dict)
    parent_id: OptionalText = None
    thread_id: Optional[str] = None
    category: OptionalText = None
    tags: Tags = Field(default_factory=list)
    color: Optional[str] = None
    is_pinned: bool = False
    is_archived: bool = False
    images: List[NoteImage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_thread_root(self) -> bool:
        return not self.parent_id


class NoteCreate(CamelModel):
    """Payload for creating a note; presence rules are checked by the store."""

    title: Optional[str] = None
    content: str = ""
    type: str = ""
    fields: FieldMap = Field(default_factory=dict)
    parent_id: OptionalText = None
    category: OptionalText = None
    tags: Tags = Field(default_factory=list)
    color: Optional[str] = None
    images: List[NoteImage] = Field(default_factory=list)


class NoteUpdate(CamelModel):
    """
    Partial update. Identity, ownership, creation time and thread placement
    are not part of the model, so clients cannot change them.
    """

    title: Optional[str] = None
    content: Optional[str] = None
    type: Optional[str] = None
    fields: Optional[Dict[str, Any]] = None
    category: OptionalText = None
    tags: OptionalTags = None
    color: Optional[str] = None
    is_pinned: Optional[bool] = None
    is_archived: Optional[bool] = None
    images: Optional[List[NoteImage]] = None


class NoteThread(CamelModel):
    """A root note plus its replies"""

    id: str
    root_note: Note
    replies: List[Note] = Field(default_factory=list)


# ============================================================================
# NOTE TYPES
# ============================================================================


class NoteTypeField(CamelModel):
    id: str
    name: str
    label: str
    type: str
    placeholder: Optional[str] = None
    required: Optional[bool] = None
    options: Optional[List[str]] = None
    default_value: Optional[Any] = None


class NoteType(CamelModel):
    """User-defined note template. System types live in the client only."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    name: str
    description: str = ""
    icon: str = ""
    fields: List[NoteTypeField]
    is_system: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# ============================================================================
# REQUEST BODIES
# ============================================================================


class RegisterRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class ImageDeleteRequest(CamelModel):
    public_id: Optional[str] = None
