"""Reject moves that would put a note inside its own subtree."""

from outline_notes.core.tree.store import TreeSnapshot
from outline_notes.errors import StructuralViolationError

CYCLE_MESSAGE = "invalid move: cannot move a note into its own descendant"


def is_within_subtree(snapshot: TreeSnapshot, root_id: str, candidate_id: str) -> bool:
    """Return True if ``candidate_id`` is ``root_id`` or one of its descendants.

    Walks the parent index upward from the candidate, so the cost is the
    candidate's depth. The walk is capped at the tree size.
    """
    current: str | None = candidate_id
    for _ in range(len(snapshot) + 1):
        if current is None:
            return False
        if current == root_id:
            return True
        current = snapshot.parents.get(current)
    msg = f"parent chain of {candidate_id!r} does not terminate"
    raise StructuralViolationError(msg)


def check_move(snapshot: TreeSnapshot, note_id: str, target_parent_id: str | None) -> None:
    """Raise StructuralViolationError if the move would create a cycle.

    Moving to the top level is always allowed.
    """
    snapshot.get(note_id)
    if target_parent_id is None:
        return
    snapshot.get(target_parent_id)
    if is_within_subtree(snapshot, note_id, target_parent_id):
        raise StructuralViolationError(CYCLE_MESSAGE)
