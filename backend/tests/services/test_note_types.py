from __future__ import annotations

import pytest

from promptnotes.errors import Forbidden, NotFound, ValidationError
from promptnotes.services.note_types import NoteTypeStore, note_type_key, user_note_types_key

FIELDS = [
    {"id": "f1", "name": "ingredients", "label": "Ingredients", "type": "textarea", "required": True},
    {"id": "f2", "name": "course", "label": "Course", "type": "select", "options": ["main", "dessert"]},
]


@pytest.fixture()
def note_types(store):
    return NoteTypeStore(store)


def test_create_and_list(note_types, store):
    created = note_types.create("u1", {"name": "Recipe", "description": "Food", "fields": FIELDS})

    assert created.user_id == "u1"
    assert created.is_system is False
    assert [f.name for f in created.fields] == ["ingredients", "course"]
    assert store.members(user_note_types_key("u1")) == {created.id}
    assert store.get_json(note_type_key(created.id))["fields"][1]["options"] == ["main", "dessert"]

    assert [t.id for t in note_types.list("u1")] == [created.id]
    assert note_types.list("u2") == []


def test_create_ignores_server_fields(note_types):
    created = note_types.create(
        "u1", {"name": "X", "fields": [], "userId": "u2", "isSystem": True, "createdAt": "2000-01-01T00:00:00Z"}
    )
    assert created.user_id == "u1"
    assert created.is_system is False
    assert created.created_at.year != 2000


def test_client_id_kept_unless_taken(note_types):
    first = note_types.create("u1", {"id": "recipe", "name": "Recipe", "fields": []})
    assert first.id == "recipe"

    second = note_types.create("u2", {"id": "recipe", "name": "Recipe", "fields": []})
    assert second.id != "recipe"


@pytest.mark.parametrize(
    "payload",
    [{}, {"name": "X"}, {"fields": []}, {"name": "X", "fields": "nope"}],
)
def test_create_requires_name_and_fields(note_types, payload):
    with pytest.raises(ValidationError, match="Name and fields are required"):
        note_types.create("u1", payload)


def test_create_rejects_malformed_field(note_types):
    with pytest.raises(ValidationError, match="Invalid note type"):
        note_types.create("u1", {"name": "X", "fields": [{"id": "f1"}]})


def test_delete(note_types, store):
    created = note_types.create("u1", {"name": "X", "fields": []})

    with pytest.raises(Forbidden):
        note_types.delete("u2", created.id)

    note_types.delete("u1", created.id)
    assert store.get_json(note_type_key(created.id)) is None
    assert store.members(user_note_types_key("u1")) == set()

    with pytest.raises(NotFound):
        note_types.delete("u1", created.id)


@pytest.mark.parametrize("client_id", ["user:victim", "a b", "../x", 42, ""])
def test_client_id_outside_slug_alphabet_is_replaced(note_types, store, client_id):
    store.add_to_set(user_note_types_key("victim"), "existing")

    created = note_types.create("attacker", {"id": client_id, "name": "X", "fields": []})

    assert created.id != client_id
    assert store.members(user_note_types_key("victim")) == {"existing"}
    assert note_types.list("victim") == []


def test_delete_rejects_key_like_ids(note_types, store):
    store.add_to_set(user_note_types_key("u1"), "existing")
    with pytest.raises(NotFound):
        note_types.delete("u1", "user:u1")
    assert store.members(user_note_types_key("u1")) == {"existing"}
