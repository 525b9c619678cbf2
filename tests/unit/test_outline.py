"""Tests for outline rendering."""

import pytest

from outline_notes.core.tree.outline import render_outline
from outline_notes.core.tree.store import TreeSnapshot, TreeStore
from outline_notes.errors import NoteNotFoundError


def test_render_whole_tree(deep_store: TreeStore) -> None:
    assert render_outline(deep_store.snapshot) == (
        "- Alpha\n"
        "    - Alpha one\n"
        "        - Alpha one a\n"
        "    - Alpha two\n"
        "- Beta\n"
        "    - Beta one\n"
    )


def test_collapsed_notes_show_truncation_marker(deep_store: TreeStore) -> None:
    text = render_outline(deep_store.snapshot, expanded={"A"})
    assert text == (
        "- Alpha\n"
        "    - Alpha one\n"
        "        - ... (1 more child, id=A1)\n"
        "    - Alpha two\n"
        "- Beta\n"
        "    - ... (1 more child, id=B)\n"
    )


def test_max_depth_below_start_note(deep_store: TreeStore) -> None:
    text = render_outline(deep_store.snapshot, note_id="A", max_depth=0)
    assert text == "- Alpha\n    - ... (2 more children, id=A)\n"


def test_render_subtree_with_ids(deep_store: TreeStore) -> None:
    text = render_outline(deep_store.snapshot, note_id="A1", show_ids=True)
    assert text == "- Alpha one  [A1]\n    - Alpha one a  [A1a]\n"


def test_multiline_content_and_details(store: TreeStore) -> None:
    store.update_note(
        "R2",
        content="Title\nsecond line",
        url="https://example.com",
        url_display_text="Example",
        time_set="09:00",
    )
    text = render_outline(store.snapshot, note_id="R2")
    assert text.splitlines() == [
        "- Title",
        "  second line",
        "  > link: Example <https://example.com>",
        "  > time: 09:00",
    ]
    assert "link" not in render_outline(store.snapshot, note_id="R2", include_details=False)


def test_empty_note_and_empty_tree(store: TreeStore) -> None:
    store.update_note("R2", content="")
    assert render_outline(store.snapshot, note_id="R2") == "- (empty)\n"
    assert render_outline(TreeSnapshot()) == ""


def test_render_unknown_note(store: TreeStore) -> None:
    with pytest.raises(NoteNotFoundError):
        render_outline(store.snapshot, note_id="nope")
