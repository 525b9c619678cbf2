"""Tests for the cycle guard."""

from types import MappingProxyType

import pytest

from outline_notes.core.tree.guard import CYCLE_MESSAGE, check_move, is_within_subtree
from outline_notes.core.tree.store import TreeSnapshot, TreeStore
from outline_notes.errors import NoteNotFoundError, StructuralViolationError
from outline_notes.models.note import Note


def test_is_within_subtree(deep_store: TreeStore) -> None:
    snap = deep_store.snapshot
    assert is_within_subtree(snap, "A", "A")
    assert is_within_subtree(snap, "A", "A1a")
    assert not is_within_subtree(snap, "A1", "A")
    assert not is_within_subtree(snap, "A", "B1")


def test_check_move_to_top_level_is_always_allowed(deep_store: TreeStore) -> None:
    check_move(deep_store.snapshot, "A1a", None)


def test_check_move_into_descendant_is_rejected(deep_store: TreeStore) -> None:
    with pytest.raises(StructuralViolationError, match="invalid move"):
        check_move(deep_store.snapshot, "A", "A1a")


def test_check_move_onto_itself_is_rejected(deep_store: TreeStore) -> None:
    with pytest.raises(StructuralViolationError) as exc_info:
        check_move(deep_store.snapshot, "A1", "A1")
    assert str(exc_info.value) == CYCLE_MESSAGE


def test_check_move_with_unknown_ids(deep_store: TreeStore) -> None:
    with pytest.raises(NoteNotFoundError):
        check_move(deep_store.snapshot, "nope", None)
    with pytest.raises(NoteNotFoundError):
        check_move(deep_store.snapshot, "A", "nope")


def test_corrupt_parent_chain_is_reported() -> None:
    """A parent index that loops must not hang the guard."""
    snap = TreeSnapshot(
        records=MappingProxyType({"a": Note(id="a"), "b": Note(id="b")}),
        children=MappingProxyType({None: (), "a": ("b",), "b": ("a",)}),
        parents=MappingProxyType({"a": "b", "b": "a"}),
    )
    with pytest.raises(StructuralViolationError, match="does not terminate"):
        is_within_subtree(snap, "x", "a")
