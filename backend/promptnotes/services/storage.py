"""
Redis-backed storage service for notes.

Notes are JSON records; every lookup other than by id goes through a set
index kept next to the records:

    notes:{id}                           note record
    notes:user:{userId}                  ids of every note the user owns
    notes:thread:{threadId}              ids of the replies under a thread root
    notes:tag:{userId}:{tag}             ids of the user's notes carrying a tag
    tags:user:{userId}                   the user's tag vocabulary
    notes:category:{userId}:{category}   ids of the user's notes in a category

The indexes are derived data. Every mutating method below is responsible for
keeping them in step with the record, one write at a time; a failure halfway
through leaves stale index entries, which readers tolerate by skipping ids
that no longer resolve.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from ..errors import Forbidden, NotFound, ParentNotFound, ValidationError
from .kv import KeyValueStore
from .models import BASIC_NOTE_TYPE, Note, NoteCreate, NoteThread, NoteUpdate, is_valid_id, utcnow

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 50
TITLE_TRUNCATE_AT = 47
DEFAULT_BASIC_TITLE = "Basic Note"

# Fields a client may clear by sending null
NULLABLE_FIELDS = frozenset({"category", "color"})


def note_key(note_id: str) -> str:
    return f"notes:{note_id}"


def user_notes_key(user_id: str) -> str:
    return f"notes:user:{user_id}"


def thread_key(thread_id: str) -> str:
    return f"notes:thread:{thread_id}"


def tag_key(user_id: str, tag: str) -> str:
    return f"notes:tag:{user_id}:{tag}"


def user_tags_key(user_id: str) -> str:
    return f"tags:user:{user_id}"


def category_key(user_id: str, category: str) -> str:
    return f"notes:category:{user_id}:{category}"


def derive_title(content: str) -> str:
    """Title for a basic note created without one."""
    if len(content) > TITLE_MAX_LENGTH:
        title = content[:TITLE_TRUNCATE_AT].strip() + "..."
    else:
        title = content.strip()
    return title or DEFAULT_BASIC_TITLE


class NoteStorage:
    """
    Note CRUD plus thread, tag and category indexing.

    Methods that take a ``user_id`` enforce ownership: a note that exists but
    belongs to someone else raises ``Forbidden``.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _load(self, note_id: str) -> Optional[Note]:
        if not is_valid_id(note_id):
            return None
        record = self.store.get_json(note_key(note_id))
        if not record:
            return None
        return Note.model_validate(record)

    def _load_many(self, note_ids: Iterable[str]) -> List[Note]:
        """Hydrate ids in a single round trip, dropping ids that no longer resolve."""
        ids = list(note_ids)
        records = self.store.get_many_json(note_key(i) for i in ids)
        notes = []
        for note_id, record in zip(ids, records):
            if not record:
                logger.debug("Skipping dangling note id %s", note_id)
                continue
            notes.append(Note.model_validate(record))
        return notes

    def get_note(self, user_id: str, note_id: str) -> Note:
        note = self._load(note_id)
        if note is None:
            raise NotFound("Note not found")
        if note.user_id != user_id:
            raise Forbidden("You do not have permission to access this note")
        return note

    def get_thread(self, user_id: str, note_id: str) -> NoteThread:
        """
        Return the thread a note belongs to.

        For a root this is the note and its replies; for a reply it is the
        reply's root and all of that root's replies. A reply whose root is
        gone is returned as a thread of its own.
        """
        note = self.get_note(user_id, note_id)

        root = note
        if not note.is_thread_root:
            root = self._load(note.thread_id) if note.thread_id else None
            if root is None or root.user_id != user_id:
                return NoteThread(id=note.id, root_note=note, replies=[])

        replies = self._load_many(self.store.members(thread_key(root.id)))
        replies.sort(key=lambda n: n.created_at)
        return NoteThread(id=root.id, root_note=root, replies=replies)

    def list_notes(
        self,
        user_id: str,
        tag: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Note]:
        """All of the user's notes, optionally narrowed by tag and/or category."""
        keys = [user_notes_key(user_id)]
        if tag:
            keys.append(tag_key(user_id, tag))
        if category:
            keys.append(category_key(user_id, category))

        note_ids = self.store.members(keys[0]) if len(keys) == 1 else self.store.intersect(*keys)
        notes = self._load_many(note_ids)
        notes.sort(key=lambda n: n.updated_at, reverse=True)
        return notes

    def list_tags(self, user_id: str) -> List[str]:
        return sorted(self.store.members(user_tags_key(user_id)))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_note(self, user_id: str, payload: NoteCreate) -> Note:
        """
        Create a note and register it in every index it belongs to.

        Raises:
            ValidationError: content/type missing, or title missing for a
                non-basic note type.
            ParentNotFound: ``parent_id`` does not name one of the user's notes.
        """
        if not payload.content or not payload.type:
            raise ValidationError("Content and type are required")

        title = (payload.title or "").strip()
        if not title:
            if payload.type != BASIC_NOTE_TYPE:
                raise ValidationError("Title is required for this note type")
            title = derive_title(payload.content)

        thread_id = None
        if payload.parent_id:
            parent = self._load(payload.parent_id)
            if parent is None or parent.user_id != user_id:
                raise ParentNotFound()
            thread_id = parent.thread_id or parent.id

        now = utcnow()
        note = Note(
            user_id=user_id,
            title=title,
            content=payload.content,
            type=payload.type,
            fields=payload.fields,
            parent_id=payload.parent_id,
            category=payload.category,
            tags=payload.tags,
            color=payload.color,
            images=payload.images,
            created_at=now,
            updated_at=now,
        )
        # A root is the root of its own thread.
        note.thread_id = thread_id or note.id

        self.store.set_json(note_key(note.id), note.to_record())
        self.store.add_to_set(user_notes_key(user_id), note.id)
        if not note.is_thread_root:
            self.store.add_to_set(thread_key(note.thread_id), note.id)
        self._index_tags(user_id, note.id, note.tags)
        if note.category:
            self.store.add_to_set(category_key(user_id, note.category), note.id)

        return note

    def update_note(self, user_id: str, note_id: str, changes: NoteUpdate) -> Note:
        """
        Apply a partial update and move the note between tag/category indexes.

        Only the tags that actually changed are touched.
        """
        existing = self.get_note(user_id, note_id)
        updates = {
            k: v
            for k, v in changes.model_dump(exclude_unset=True).items()
            if v is not None or k in NULLABLE_FIELDS
        }
        if "title" in updates and not updates["title"].strip():
            raise ValidationError("Title cannot be empty")
        for field in ("content", "type"):
            if field in updates and not updates[field].strip():
                raise ValidationError("Content and type cannot be empty")

        note = Note.model_validate(
            {**existing.model_dump(), **updates, "updated_at": utcnow()}
        )

        if "tags" in updates:
            old_tags, new_tags = set(existing.tags), set(note.tags)
            for tag in old_tags - new_tags:
                self.store.remove_from_set(tag_key(user_id, tag), note_id)
            self._index_tags(user_id, note_id, [t for t in note.tags if t not in old_tags])

        if "category" in updates and note.category != existing.category:
            if existing.category:
                self.store.remove_from_set(category_key(user_id, existing.category), note_id)
            if note.category:
                self.store.add_to_set(category_key(user_id, note.category), note_id)

        self.store.set_json(note_key(note_id), note.to_record())
        return note

    def delete_note(self, user_id: str, note_id: str) -> None:
        """
        Delete a note.

        Deleting a thread root deletes every reply and the thread's reply-set;
        deleting a reply only unlinks it from its thread.
        """
        note = self.get_note(user_id, note_id)

        if note.is_thread_root:
            reply_ids = self.store.members(thread_key(note.id))
            for reply in self._load_many(reply_ids):
                self._unindex(user_id, reply)
                self.store.delete(note_key(reply.id))
            # Ids that no longer resolve still have to leave the user index.
            self.store.remove_from_set(user_notes_key(user_id), *reply_ids)
            self.store.delete(thread_key(note.id))
        elif note.thread_id:
            self.store.remove_from_set(thread_key(note.thread_id), note_id)

        self._unindex(user_id, note)
        self.store.delete(note_key(note_id))

    def repair_threads(self, user_id: str) -> Dict[str, int]:
        """
        Bring older notes in line with the thread rules.

        Roots get ``thread_id == id``; replies without a thread id take their
        parent's (or the parent id) and are added to that thread's reply-set.

        Returns:
            {"updated": int, "total": int}
        """
        notes = self._load_many(self.store.members(user_notes_key(user_id)))
        updated = 0

        for note in notes:
            needs_update = False

            if note.is_thread_root and note.thread_id != note.id:
                note.thread_id = note.id
                needs_update = True

            if not note.is_thread_root and not note.thread_id:
                parent = self._load(note.parent_id)
                if parent is not None:
                    note.thread_id = parent.thread_id or parent.id
                    needs_update = True

            if needs_update:
                self.store.set_json(note_key(note.id), note.to_record())
                if not note.is_thread_root:
                    self.store.add_to_set(thread_key(note.thread_id), note.id)
                updated += 1

        logger.info("Thread repair for user %s: %d of %d notes updated", user_id, updated, len(notes))
        return {"updated": updated, "total": len(notes)}

    # ------------------------------------------------------------------
    # Index helpers
    # ------------------------------------------------------------------

    def _index_tags(self, user_id: str, note_id: str, tags: Iterable[str]) -> None:
        for tag in tags:
            self.store.add_to_set(user_tags_key(user_id), tag)
            self.store.add_to_set(tag_key(user_id, tag), note_id)

    def _unindex(self, user_id: str, note: Note) -> None:
        """Drop a note from its tag, category and user indexes."""
        for tag in note.tags:
            self.store.remove_from_set(tag_key(user_id, tag), note.id)
        if note.category:
            self.store.remove_from_set(category_key(user_id, note.category), note.id)
        self.store.remove_from_set(user_notes_key(user_id), note.id)
