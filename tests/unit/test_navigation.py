"""Tests for tree navigation (breadcrumbs, siblings, depth, traversal)."""

from outline_notes.core.tree.navigation import (
    depth_of,
    get_breadcrumbs,
    get_children,
    get_siblings,
    ids_at_depths_below,
    iter_preorder,
    max_depth,
)
from outline_notes.core.tree.store import TreeSnapshot, TreeStore
from outline_notes.models.note import Breadcrumb


def test_breadcrumbs_for_nested_note(deep_store: TreeStore) -> None:
    crumbs = get_breadcrumbs(deep_store.snapshot, "A1a")
    assert crumbs == (
        Breadcrumb(note_id="A", content="Alpha", depth=0),
        Breadcrumb(note_id="A1", content="Alpha one", depth=1),
    )


def test_breadcrumbs_for_top_level_note_are_empty(deep_store: TreeStore) -> None:
    assert get_breadcrumbs(deep_store.snapshot, "B") == ()


def test_siblings_of_first_child(deep_store: TreeStore) -> None:
    before, after = get_siblings(deep_store.snapshot, "A1")
    assert before == ()
    assert [n.id for n in after] == ["A2"]


def test_siblings_are_limited_by_count(store: TreeStore) -> None:
    for _ in range(5):
        store.add_note(None)
    before, after = get_siblings(store.snapshot, "R2", count=2)
    assert [n.id for n in before] == ["R1"]
    assert len(after) == 2


def test_get_children_in_order_with_limit(deep_store: TreeStore) -> None:
    assert [n.id for n in get_children(deep_store.snapshot, "A")] == ["A1", "A2"]
    assert [n.id for n in get_children(deep_store.snapshot, "A", limit=1)] == ["A1"]
    assert [n.id for n in get_children(deep_store.snapshot, None)] == ["A", "B"]


def test_depth_of(deep_store: TreeStore) -> None:
    snap = deep_store.snapshot
    assert depth_of(snap, "A") == 0
    assert depth_of(snap, "B1") == 1
    assert depth_of(snap, "A1a") == 2


def test_iter_preorder_yields_display_order(deep_store: TreeStore) -> None:
    walked = [(n.id, d) for n, d in iter_preorder(deep_store.snapshot)]
    assert walked == [("A", 0), ("A1", 1), ("A1a", 2), ("A2", 1), ("B", 0), ("B1", 1)]


def test_max_depth(deep_store: TreeStore, store: TreeStore) -> None:
    assert max_depth(deep_store.snapshot) == 2
    assert max_depth(store.snapshot) == 1
    assert max_depth(TreeSnapshot()) == 0


def test_ids_at_depths_below(deep_store: TreeStore) -> None:
    snap = deep_store.snapshot
    assert ids_at_depths_below(snap, 0) == frozenset()
    assert ids_at_depths_below(snap, 1) == {"A", "B"}
    assert ids_at_depths_below(snap, 2) == {"A", "B", "A1", "A2", "B1"}
