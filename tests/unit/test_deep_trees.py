"""Tests for trees nested deeper than Python's recursion limit."""

from collections.abc import Sequence
from typing import Any

from outline_notes.core.database.store import SqliteProjectStore
from outline_notes.core.interchange import count_notes, import_notes
from outline_notes.core.tree.positions import positions_are_sequential, sort_siblings
from outline_notes.core.tree.store import TreeSnapshot
from outline_notes.editor import NotesEditor
from outline_notes.models.note import Note
from tests.unit.fakes import FakeClock, FakeProjectStore

DEPTH = 1500


def _chain_notes(depth: int) -> tuple[Note, ...]:
    """One top-level note with a single line of descendants, ``depth`` notes in all."""
    note = Note(id=f"n{depth - 1}", content=f"level {depth - 1}", position=3)
    for level in range(depth - 2, -1, -1):
        note = Note(id=f"n{level}", content=f"level {level}", position=7, children=(note,))
    return (note,)


def _depth(notes: Sequence[Note]) -> int:
    depth = 0
    while notes:
        depth += 1
        notes = notes[0].children
    return depth


def _dict_depth(notes: list[dict[str, Any]]) -> int:
    depth = 0
    while notes:
        depth += 1
        notes = notes[0]["children"]
    return depth


def test_editor_chain_can_be_exported_imported_and_saved(
    fake_store: FakeProjectStore, clock: FakeClock
) -> None:
    editor = NotesEditor(fake_store, clock=clock)
    editor.create_project("Deep")
    parent: str | None = None
    for _ in range(DEPTH):
        parent = editor.add_note(parent)["note_id"]
    assert parent is not None
    editor.update_note(parent, content="bottom")

    data = editor.export_notes()
    assert _dict_depth(data["notes"]) == DEPTH

    saved = editor.save_project()
    assert saved["success"]
    assert saved["project"]["note_count"] == DEPTH
    assert not editor.persistence.dirty

    result = editor.import_notes(data)
    assert result == {"success": True, "count": DEPTH}
    assert editor.max_depth == DEPTH - 1
    clock.advance(1)
    assert editor.tick() is not None
    stored = fake_store.notes["p1"]
    assert _depth(stored) == DEPTH
    bottom = stored[0]
    while bottom.children:
        bottom = bottom.children[0]
    assert bottom.content == "bottom"


def test_snapshot_round_trip_of_deep_chain() -> None:
    snapshot = TreeSnapshot.from_notes(_chain_notes(DEPTH))
    assert len(snapshot) == DEPTH
    assert snapshot.parent_of(f"n{DEPTH - 1}") == f"n{DEPTH - 2}"

    nested = snapshot.to_notes()
    assert _depth(nested) == DEPTH
    assert positions_are_sequential(nested)
    assert _depth((snapshot.subtree("n1"),)) == DEPTH - 1


def test_sort_siblings_and_count_on_deep_chain() -> None:
    ordered = sort_siblings(_chain_notes(DEPTH))
    assert positions_are_sequential(ordered)
    assert count_notes(ordered) == DEPTH


def test_import_of_deep_export() -> None:
    data: dict[str, Any] = {"notes": []}
    level = data["notes"]
    for index in range(DEPTH):
        child: dict[str, Any] = {"id": f"x{index}", "content": str(index), "children": []}
        level.append(child)
        level = child["children"]

    notes = import_notes(data)
    assert _depth(notes) == DEPTH
    assert notes[0].id != "x0"
    assert notes[0].content == "0"


def test_sqlite_store_round_trip_of_deep_chain(sqlite_store: SqliteProjectStore) -> None:
    info = sqlite_store.create("Deep")
    saved = sqlite_store.save(info.id, "Deep", "", _chain_notes(DEPTH))
    assert saved.note_count == DEPTH

    _, notes = sqlite_store.load(info.id)
    assert _depth(notes) == DEPTH
    assert positions_are_sequential(notes)
