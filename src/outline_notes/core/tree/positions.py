"""Renumber sibling lists so positions are sequential from 0."""

from collections.abc import Iterable, Iterator, Mapping, MutableMapping, Sequence
from dataclasses import replace

from outline_notes.models.note import Note


def normalize_positions(
    records: MutableMapping[str, Note],
    children: Mapping[str | None, Sequence[str]],
) -> int:
    """Set ``position`` of every record to its index in its sibling list.

    Walks every sibling list of the arena, root included. Records whose position
    is already right are left untouched so unchanged notes stay shared with the
    previous snapshot.

    Returns:
        Number of records that were renumbered.
    """
    changed = 0
    for sibling_ids in children.values():
        for index, note_id in enumerate(sibling_ids):
            record = records[note_id]
            if record.position != index:
                records[note_id] = replace(record, position=index)
                changed += 1
    return changed


def _by_position(notes: Iterable[Note]) -> list[Note]:
    return sorted(notes, key=lambda n: n.position)


def sort_siblings(notes: Iterable[Note]) -> tuple[Note, ...]:
    """Order a nested note list by prior position and renumber it, at every level.

    Used when a tree comes from outside (import, store load) and positions may
    have gaps or duplicates. Ties keep their input order. Each stack frame holds
    a note, its not yet visited children and the children already rebuilt.
    """
    top: list[Note] = []
    stack: list[tuple[Note | None, Iterator[Note], list[Note]]] = [
        (None, iter(_by_position(notes)), top)
    ]
    while stack:
        note, pending, built = stack[-1]
        child = next(pending, None)
        if child is not None:
            stack.append((child, iter(_by_position(child.children)), []))
            continue
        stack.pop()
        if note is not None:
            siblings = stack[-1][2]
            siblings.append(replace(note, position=len(siblings), children=tuple(built)))
    return tuple(top)


def positions_are_sequential(notes: Sequence[Note]) -> bool:
    """Check that every sibling list in a nested tree is numbered 0..n-1 in order."""
    todo = [notes]
    while todo:
        for index, note in enumerate(todo.pop()):
            if note.position != index:
                return False
            todo.append(note.children)
    return True
