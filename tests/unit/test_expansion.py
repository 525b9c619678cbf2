"""Tests for expand/collapse state."""

import pytest

from outline_notes.core.expansion import ExpansionState
from outline_notes.core.tree.store import TreeStore
from outline_notes.errors import NoteNotFoundError


def test_initial_state_is_collapsed(deep_store: TreeStore) -> None:
    state = ExpansionState(deep_store)
    assert state.expanded_ids == frozenset()
    assert state.current_level == 0
    assert state.max_depth == 2
    assert state.effective_level == 0


def test_expand_to_level_two_on_three_level_tree(deep_store: TreeStore) -> None:
    state = ExpansionState(deep_store)
    expanded = state.expand_to_level(2)
    assert expanded == {"A", "B", "A1", "A2", "B1"}
    assert "A1a" not in expanded
    assert state.current_level == 2


def test_expand_to_level_is_idempotent(deep_store: TreeStore) -> None:
    state = ExpansionState(deep_store)
    first = state.expand_to_level(1)
    second = state.expand_to_level(1)
    assert first == second == {"A", "B"}


def test_expand_to_level_is_clamped(deep_store: TreeStore) -> None:
    state = ExpansionState(deep_store)
    state.expand_to_level(10)
    assert state.current_level == 2
    state.expand_to_level(-3)
    assert state.current_level == 0
    assert state.expanded_ids == frozenset()


def test_expand_to_level_discards_manual_toggles(deep_store: TreeStore) -> None:
    state = ExpansionState(deep_store)
    state.toggle("A1")
    assert state.expand_to_level(1) == {"A", "B"}


def test_expand_all_and_collapse_all(deep_store: TreeStore) -> None:
    state = ExpansionState(deep_store)
    assert state.expand_all() == frozenset(deep_store.snapshot.records)
    assert state.current_level == 2
    assert state.effective_level == 2
    assert state.collapse_all() == frozenset()
    assert state.current_level == 0


def test_expand_one_more_and_collapse_one(deep_store: TreeStore) -> None:
    state = ExpansionState(deep_store)
    assert state.expand_one_more() == {"A", "B"}
    assert state.current_level == 1
    state.expand_one_more()
    state.expand_one_more()
    assert state.current_level == 2
    state.collapse_one()
    assert state.current_level == 1
    state.collapse_one()
    state.collapse_one()
    assert state.current_level == 0
    assert state.expanded_ids == frozenset()


def test_toggle_flips_membership_without_touching_level(deep_store: TreeStore) -> None:
    state = ExpansionState(deep_store)
    state.expand_to_level(1)
    assert state.toggle("A1") is True
    assert "A1" in state.expanded_ids
    assert state.current_level == 1
    assert state.toggle("A1") is False
    assert "A1" not in state.expanded_ids


def test_effective_level_tracks_canonical_sets(deep_store: TreeStore) -> None:
    state = ExpansionState(deep_store)
    state.expand_to_level(1)
    assert state.effective_level == 1
    state.toggle("A1")
    assert state.effective_level is None
    state.toggle("A1")
    assert state.effective_level == 1


def test_toggle_unknown_note(deep_store: TreeStore) -> None:
    with pytest.raises(NoteNotFoundError):
        ExpansionState(deep_store).toggle("nope")


def test_deleted_notes_are_pruned(deep_store: TreeStore) -> None:
    state = ExpansionState(deep_store)
    state.expand_all()
    deep_store.delete_note("A1")
    assert "A1" not in state.expanded_ids
    assert "A1a" not in state.expanded_ids
    assert state.max_depth == 1
    assert state.current_level == 1


def test_max_depth_follows_moves(store: TreeStore) -> None:
    state = ExpansionState(store)
    assert state.max_depth == 1
    store.add_note("C1")
    assert state.max_depth == 2
