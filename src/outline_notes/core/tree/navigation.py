"""Tree navigation: breadcrumbs, siblings, depth, traversal."""

from collections.abc import Iterator

from outline_notes.core.tree.store import TreeSnapshot
from outline_notes.models.note import Breadcrumb, Note


def get_breadcrumbs(snapshot: TreeSnapshot, note_id: str) -> tuple[Breadcrumb, ...]:
    """Get ancestor breadcrumbs for a note.

    Returns breadcrumbs in order from the top level to the immediate parent
    (excludes the note itself).
    """
    ancestors: list[str] = []
    parent_id = snapshot.parent_of(note_id)
    while parent_id is not None:
        ancestors.append(parent_id)
        parent_id = snapshot.parents[parent_id]
    ancestors.reverse()
    return tuple(
        Breadcrumb(note_id=aid, content=snapshot.records[aid].content, depth=depth)
        for depth, aid in enumerate(ancestors)
    )


def get_siblings(
    snapshot: TreeSnapshot,
    note_id: str,
    *,
    count: int = 3,
) -> tuple[tuple[Note, ...], tuple[Note, ...]]:
    """Get siblings before and after a note.

    Returns (siblings_before, siblings_after) tuples.
    """
    parent_id, index = snapshot.locate(note_id)
    sibling_ids = snapshot.children[parent_id]
    before = sibling_ids[max(0, index - count) : index]
    after = sibling_ids[index + 1 : index + 1 + count]
    return (
        tuple(snapshot.records[i] for i in before),
        tuple(snapshot.records[i] for i in after),
    )


def get_children(
    snapshot: TreeSnapshot,
    parent_id: str | None,
    *,
    limit: int = 50,
) -> tuple[Note, ...]:
    """Get direct children of a note (or the top level), in position order."""
    return tuple(snapshot.records[i] for i in snapshot.children_of(parent_id)[:limit])


def depth_of(snapshot: TreeSnapshot, note_id: str) -> int:
    """Return the 0-based nesting depth of a note."""
    depth = 0
    parent_id = snapshot.parent_of(note_id)
    while parent_id is not None:
        depth += 1
        parent_id = snapshot.parents[parent_id]
    return depth


def iter_preorder(
    snapshot: TreeSnapshot,
    parent_id: str | None = None,
    depth: int = 0,
) -> Iterator[tuple[Note, int]]:
    """Walk notes in display order, yielding (record, depth)."""
    # (explicit stack, trees can be deeper than the recursion limit)
    todo = [(cid, depth) for cid in reversed(snapshot.children_of(parent_id))]
    while todo:
        note_id, level = todo.pop()
        yield snapshot.records[note_id], level
        todo.extend((cid, level + 1) for cid in reversed(snapshot.children.get(note_id, ())))


def max_depth(snapshot: TreeSnapshot) -> int:
    """Deepest nesting level in the tree, 0-based (0 for a flat or empty tree)."""
    return max((depth for _note, depth in iter_preorder(snapshot)), default=0)


def ids_at_depths_below(snapshot: TreeSnapshot, level: int) -> frozenset[str]:
    """IDs of every note at depth ``0..level-1``."""
    if level <= 0:
        return frozenset()
    ids: set[str] = set()
    todo = [(cid, 0) for cid in snapshot.root_ids]
    while todo:
        note_id, depth = todo.pop()
        ids.add(note_id)
        if depth + 1 < level:
            todo.extend((cid, depth + 1) for cid in snapshot.children.get(note_id, ()))
    return frozenset(ids)
