"""
Redis-backed storage for user-defined note types.

System note types ship with the client and are never stored here.
"""

from __future__ import annotations

from typing import Any, Dict, List
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from ..errors import Forbidden, NotFound, ValidationError
from .kv import KeyValueStore
from .models import NoteType, is_valid_id, utcnow


# Set by the server whatever the client sends
SERVER_FIELDS = frozenset(
    {"id", "userId", "user_id", "isSystem", "is_system", "createdAt", "created_at", "updatedAt", "updated_at"}
)


def note_type_key(note_type_id: str) -> str:
    return f"note-types:{note_type_id}"


def user_note_types_key(user_id: str) -> str:
    return f"note-types:user:{user_id}"


class NoteTypeStore:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def list(self, user_id: str) -> List[NoteType]:
        ids = sorted(self.store.members(user_note_types_key(user_id)))
        records = self.store.get_many_json(note_type_key(i) for i in ids)
        return [NoteType.model_validate(r) for r in records if r]

    def create(self, user_id: str, payload: Dict[str, Any]) -> NoteType:
        """
        Store a custom note type.

        A client-supplied id is kept when it is a plain slug that no stored
        type already uses.
        """
        if not payload.get("name") or not isinstance(payload.get("fields"), list):
            raise ValidationError("Name and fields are required")

        note_type_id = payload.get("id")
        if not is_valid_id(note_type_id) or self.store.get_json(note_type_key(note_type_id)):
            note_type_id = str(uuid4())

        now = utcnow()
        try:
            note_type = NoteType.model_validate(
                {
                    **{k: v for k, v in payload.items() if k not in SERVER_FIELDS},
                    "id": note_type_id,
                    "userId": user_id,
                    "isSystem": False,
                    "createdAt": now,
                    "updatedAt": now,
                }
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid note type: {e.errors()[0]['msg']}") from e

        self.store.set_json(note_type_key(note_type.id), note_type.to_record())
        self.store.add_to_set(user_note_types_key(user_id), note_type.id)
        return note_type

    def delete(self, user_id: str, note_type_id: str) -> None:
        if not is_valid_id(note_type_id):
            raise NotFound("Note type not found")
        record = self.store.get_json(note_type_key(note_type_id))
        if not record:
            raise NotFound("Note type not found")
        if record.get("userId") != user_id:
            raise Forbidden("You do not have permission to delete this note type")

        self.store.delete(note_type_key(note_type_id))
        self.store.remove_from_set(user_note_types_key(user_id), note_type_id)
