"""Tests for the SQLite project store."""

import json
import sqlite3

import pytest

from outline_notes.core.database.store import (
    SqliteProjectStore,
    build_note_hierarchy,
    flatten_notes,
)
from outline_notes.errors import PersistenceError
from outline_notes.models.note import ImageRef, Note
from tests.unit.conftest import deep_notes


def test_create_project(sqlite_store: SqliteProjectStore) -> None:
    info = sqlite_store.create("Work", "day job")
    assert info.name == "Work"
    assert info.description == "day job"
    assert info.note_count == 0
    assert sqlite_store.load(info.id) == (sqlite_store.find_project(info.id), [])


def test_create_corrects_conflicting_names(sqlite_store: SqliteProjectStore) -> None:
    sqlite_store.create("Work")
    assert sqlite_store.create("Work").name == "Work (2)"
    assert sqlite_store.create("Work").name == "Work (3)"


def test_create_rejects_empty_name(sqlite_store: SqliteProjectStore) -> None:
    with pytest.raises(PersistenceError, match="empty"):
        sqlite_store.create("   ")


def test_save_and_load_roundtrip(sqlite_store: SqliteProjectStore) -> None:
    info = sqlite_store.create("Work")
    notes = deep_notes()
    notes[1] = Note(
        id="B",
        content="Beta",
        position=1,
        is_discussion=True,
        time_set="12:30",
        url="https://example.com",
        url_display_text="Example",
        images=(ImageRef(id="i1", url="https://img/1.png", storage_path="p/1.png"),),
        children=notes[1].children,
    )
    saved = sqlite_store.save(info.id, "Work", "", notes)
    assert saved.note_count == 6

    loaded_info, loaded = sqlite_store.load(info.id)
    assert loaded_info.note_count == 6
    assert loaded == notes


def test_save_replaces_previous_notes(sqlite_store: SqliteProjectStore) -> None:
    info = sqlite_store.create("Work")
    sqlite_store.save(info.id, "Work", "", deep_notes())
    sqlite_store.save(info.id, "Work", "", [Note(id="only", content="Only")])
    _, loaded = sqlite_store.load(info.id)
    assert loaded == [Note(id="only", content="Only")]


def test_save_corrects_name_taken_by_other_project(sqlite_store: SqliteProjectStore) -> None:
    sqlite_store.create("Home")
    work = sqlite_store.create("Work")
    assert sqlite_store.save(work.id, "Home", "", []).name == "Home (2)"
    assert sqlite_store.save(work.id, "Home (2)", "", []).name == "Home (2)"


def test_save_unknown_project(sqlite_store: SqliteProjectStore) -> None:
    with pytest.raises(PersistenceError, match="not found"):
        sqlite_store.save("nope", "X", "", [])


def test_load_unknown_project(sqlite_store: SqliteProjectStore) -> None:
    with pytest.raises(PersistenceError, match="not found"):
        sqlite_store.load("nope")


def test_list_and_find_projects(sqlite_store: SqliteProjectStore) -> None:
    work = sqlite_store.create("Work")
    sqlite_store.create("Home")
    assert [p.name for p in sqlite_store.list_projects()] == ["Home", "Work"]
    assert sqlite_store.find_project("Work") == work
    assert sqlite_store.find_project(work.id) == work
    assert sqlite_store.find_project("nope") is None


def test_flatten_notes_rows() -> None:
    rows = flatten_notes(deep_notes(), "p1")
    assert [(r[0], r[2], r[4]) for r in rows] == [
        ("A", None, 0),
        ("A1", "A", 0),
        ("A1a", "A1", 0),
        ("A2", "A", 1),
        ("B", None, 1),
        ("B1", "B", 0),
    ]
    assert all(r[1] == "p1" for r in rows)
    assert json.loads(rows[0][5])["images"] == []


def test_build_hierarchy_moves_orphans_to_top_level() -> None:
    rows = [
        ("a", None, "A", 0, "{}"),
        ("orphan", "missing", "Orphan", 0, "{}"),
    ]
    notes = build_note_hierarchy(rows)
    assert [n.id for n in notes] == ["a", "orphan"]
    assert [n.position for n in notes] == [0, 1]


def test_build_hierarchy_drops_parent_cycles() -> None:
    rows = [
        ("a", None, "A", 0, "{}"),
        ("x", "y", "X", 0, "{}"),
        ("y", "x", "Y", 0, "{}"),
    ]
    assert [n.id for n in build_note_hierarchy(rows)] == ["a"]


def test_build_hierarchy_ignores_malformed_meta() -> None:
    notes = build_note_hierarchy([("a", None, "A", 0, "not json")])
    assert notes == (Note(id="a", content="A"),)


def test_save_rolls_back_on_database_error(db_conn: sqlite3.Connection) -> None:
    store = SqliteProjectStore(db_conn)
    info = store.create("Work")
    store.save(info.id, "Work", "", deep_notes())
    duplicate = [Note(id="same"), Note(id="same", position=1)]
    with pytest.raises(PersistenceError, match="Could not save"):
        store.save(info.id, "Work", "", duplicate)
    _, loaded = store.load(info.id)
    assert [n.id for n in loaded] == ["A", "B"]
