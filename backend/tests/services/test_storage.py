"""
Tests for the Redis note storage service.

Covers:
- create/read/update/delete
- thread placement and cascade delete
- tag and category indexes
"""
from __future__ import annotations

import pytest

from promptnotes.errors import Forbidden, NotFound, ParentNotFound, ValidationError
from promptnotes.services.models import NoteCreate, NoteUpdate
from promptnotes.services.storage import (
    NoteStorage,
    category_key,
    derive_title,
    note_key,
    tag_key,
    thread_key,
    user_notes_key,
    user_tags_key,
)


@pytest.fixture()
def notes(store):
    return NoteStorage(store)


def _note(notes, user_id="u1", **kwargs):
    payload = {"content": "some content", "type": "basic-note", **kwargs}
    return notes.create_note(user_id, NoteCreate(**payload))


# ============================================================================
# TITLES
# ============================================================================


def test_derive_title_short_content():
    assert derive_title("  hello  ") == "hello"


def test_derive_title_truncates_long_content():
    title = derive_title("a" * 51)
    assert title == "a" * 47 + "..."
    assert len(title) == 50


def test_derive_title_keeps_exactly_fifty_chars():
    assert derive_title("b" * 50) == "b" * 50


def test_derive_title_falls_back_for_blank_content():
    assert derive_title("   ") == "Basic Note"


def test_explicit_title_is_kept(notes):
    note = _note(notes, title="  My Title ", type="recipe")
    assert note.title == "My Title"


# ============================================================================
# CREATE + READ
# ============================================================================


def test_create_round_trips_through_store(notes, store):
    note = _note(notes, tags=["a", "a", " b "], category="work", fields={"k": 1}, color="red")

    loaded = notes.get_note("u1", note.id)
    assert loaded.to_record() == note.to_record()
    assert loaded.tags == ["a", "b"]
    assert store.get_json(note_key(note.id))["userId"] == "u1"


def test_root_note_is_its_own_thread(notes, store):
    root = _note(notes)
    assert root.parent_id is None
    assert root.thread_id == root.id
    assert store.members(thread_key(root.id)) == set()


def test_reply_joins_root_thread(notes, store):
    root = _note(notes)
    reply = _note(notes, parent_id=root.id)
    nested = _note(notes, parent_id=reply.id)

    assert reply.thread_id == root.id
    assert nested.thread_id == root.id
    assert store.members(thread_key(root.id)) == {reply.id, nested.id}


def test_reply_to_missing_parent(notes):
    with pytest.raises(ParentNotFound):
        _note(notes, parent_id="missing")


def test_reply_to_other_users_note(notes):
    other = _note(notes, user_id="u2")
    with pytest.raises(ParentNotFound):
        _note(notes, user_id="u1", parent_id=other.id)


def test_create_validates_content_and_type(notes):
    with pytest.raises(ValidationError, match="Content and type are required"):
        notes.create_note("u1", NoteCreate(content="", type="basic-note"))
    with pytest.raises(ValidationError, match="Title is required"):
        notes.create_note("u1", NoteCreate(content="x", type="recipe", title="  "))


def test_get_note_ownership(notes):
    note = _note(notes, user_id="u2")
    with pytest.raises(Forbidden):
        notes.get_note("u1", note.id)
    with pytest.raises(NotFound):
        notes.get_note("u1", "nope")


def test_get_thread_from_root_and_reply(notes):
    root = _note(notes, content="root")
    first = _note(notes, content="first", parent_id=root.id)
    second = _note(notes, content="second", parent_id=root.id)

    for note_id in (root.id, second.id):
        thread = notes.get_thread("u1", note_id)
        assert thread.id == root.id
        assert thread.root_note.id == root.id
        assert [r.id for r in thread.replies] == [first.id, second.id]


def test_get_thread_for_orphaned_reply(notes, store):
    root = _note(notes)
    reply = _note(notes, parent_id=root.id)
    store.delete(note_key(root.id))

    thread = notes.get_thread("u1", reply.id)
    assert thread.id == reply.id
    assert thread.root_note.id == reply.id
    assert thread.replies == []


def test_list_notes_most_recent_first_and_skips_dangling(notes, store):
    first = _note(notes, content="first")
    second = _note(notes, content="second")
    notes.update_note("u1", first.id, NoteUpdate(content="touched"))
    store.add_to_set(user_notes_key("u1"), "ghost")

    assert [n.id for n in notes.list_notes("u1")] == [first.id, second.id]


def test_list_notes_by_tag_and_category(notes):
    a = _note(notes, tags=["x", "y"], category="c1")
    b = _note(notes, tags=["x"], category="c2")
    _note(notes, user_id="u2", tags=["x"], category="c1")

    assert {n.id for n in notes.list_notes("u1", tag="x")} == {a.id, b.id}
    assert [n.id for n in notes.list_notes("u1", category="c1")] == [a.id]
    assert [n.id for n in notes.list_notes("u1", tag="x", category="c2")] == [b.id]
    assert notes.list_notes("u1", tag="z") == []


def test_list_tags_is_per_user(notes):
    _note(notes, tags=["b", "a"])
    _note(notes, user_id="u2", tags=["z"])
    assert notes.list_tags("u1") == ["a", "b"]


# ============================================================================
# UPDATE
# ============================================================================


def test_update_moves_tag_and_category_indexes(notes, store):
    note = _note(notes, tags=["keep", "drop"], category="old")

    updated = notes.update_note(
        "u1", note.id, NoteUpdate(tags=["keep", "add"], category="new")
    )

    assert updated.tags == ["keep", "add"]
    assert store.members(tag_key("u1", "drop")) == set()
    assert store.members(tag_key("u1", "keep")) == {note.id}
    assert store.members(tag_key("u1", "add")) == {note.id}
    assert store.members(category_key("u1", "old")) == set()
    assert store.members(category_key("u1", "new")) == {note.id}
    # The vocabulary only grows
    assert store.members(user_tags_key("u1")) == {"keep", "drop", "add"}


def test_update_can_clear_category(notes, store):
    note = _note(notes, category="old")
    updated = notes.update_note("u1", note.id, NoteUpdate.model_validate({"category": None}))
    assert updated.category is None
    assert store.members(category_key("u1", "old")) == set()


def test_update_keeps_identity_and_thread(notes):
    root = _note(notes)
    reply = _note(notes, parent_id=root.id)

    updated = notes.update_note(
        "u1", reply.id, NoteUpdate.model_validate({"parentId": None, "threadId": "x", "title": "T"})
    )
    assert updated.parent_id == root.id
    assert updated.thread_id == root.id
    assert updated.created_at == reply.created_at
    assert updated.updated_at >= reply.updated_at
    assert updated.title == "T"


def test_update_ignores_null_for_required_fields(notes):
    note = _note(notes, content="original")
    updated = notes.update_note("u1", note.id, NoteUpdate.model_validate({"content": None}))
    assert updated.content == "original"


def test_update_rejects_blank_title(notes):
    note = _note(notes)
    with pytest.raises(ValidationError, match="Title cannot be empty"):
        notes.update_note("u1", note.id, NoteUpdate(title=" "))


@pytest.mark.parametrize("field", ["content", "type"])
def test_update_rejects_blank_content_or_type(notes, field):
    note = _note(notes, content="original")
    with pytest.raises(ValidationError, match="Content and type cannot be empty"):
        notes.update_note("u1", note.id, NoteUpdate.model_validate({field: "  "}))
    assert notes.get_note("u1", note.id).content == "original"


def test_update_other_users_note(notes):
    note = _note(notes, user_id="u2")
    with pytest.raises(Forbidden):
        notes.update_note("u1", note.id, NoteUpdate(title="x"))


# ============================================================================
# DELETE
# ============================================================================


def test_delete_reply_unlinks_from_thread(notes, store):
    root = _note(notes)
    reply = _note(notes, parent_id=root.id, tags=["t"])

    notes.delete_note("u1", reply.id)

    assert store.get_json(note_key(reply.id)) is None
    assert store.members(thread_key(root.id)) == set()
    assert store.members(tag_key("u1", "t")) == set()
    assert store.members(user_notes_key("u1")) == {root.id}


def test_delete_root_cascades(notes, store):
    root = _note(notes, tags=["t"], category="c")
    replies = [_note(notes, parent_id=root.id, tags=["t"], category="reply-cat") for _ in range(2)]
    store.add_to_set(thread_key(root.id), "dangling")
    store.add_to_set(user_notes_key("u1"), "dangling")
    keep = _note(notes)

    notes.delete_note("u1", root.id)

    for note in [root, *replies]:
        assert store.get_json(note_key(note.id)) is None
    assert store.members(user_notes_key("u1")) == {keep.id}
    assert store.members(tag_key("u1", "t")) == set()
    assert store.members(category_key("u1", "c")) == set()
    assert store.members(category_key("u1", "reply-cat")) == set()
    assert store.members(thread_key(root.id)) == set()


def test_delete_other_users_note(notes):
    note = _note(notes, user_id="u2")
    with pytest.raises(Forbidden):
        notes.delete_note("u1", note.id)


# ============================================================================
# THREAD REPAIR
# ============================================================================


def test_repair_threads_is_idempotent(notes, store):
    root = _note(notes)
    reply = _note(notes, parent_id=root.id)
    record = store.get_json(note_key(reply.id))
    record.pop("threadId")
    store.set_json(note_key(reply.id), record)
    store.delete(thread_key(root.id))

    assert notes.repair_threads("u1") == {"updated": 1, "total": 2}
    assert store.members(thread_key(root.id)) == {reply.id}
    assert notes.repair_threads("u1") == {"updated": 0, "total": 2}


# ============================================================================
# ID HANDLING
# ============================================================================


@pytest.mark.parametrize("note_id", ["user:u1", "a b", "x\n", ""])
def test_ids_outside_the_slug_alphabet_are_not_found(notes, note_id):
    _note(notes)
    with pytest.raises(NotFound):
        notes.get_note("u1", note_id)
    with pytest.raises(NotFound):
        notes.delete_note("u1", note_id)


def test_reply_to_index_key_is_parent_not_found(notes):
    _note(notes)
    with pytest.raises(ParentNotFound):
        _note(notes, parent_id="user:u1")
