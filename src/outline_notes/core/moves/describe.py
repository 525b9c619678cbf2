"""Human-readable descriptions of moves and pending undos."""

from outline_notes.config import LABEL_PREVIEW_CHARS, ROOT_LABEL
from outline_notes.models.note import UndoRecord


def note_label(content: str) -> str:
    """Short preview of a note's content: first characters plus an ellipsis."""
    first_line = content.split("\n", 1)[0]
    if not first_line.strip():
        return "(empty note)"
    if len(first_line) > LABEL_PREVIEW_CHARS:
        return first_line[:LABEL_PREVIEW_CHARS] + "..."
    return first_line


def format_position(parent_id: str | None, position: int) -> str:
    if parent_id is None:
        return f"root at pos {position}"
    return f"child of {parent_id[:6]}... at pos {position}"


def describe_move(
    label: str,
    source_parent_id: str | None,
    source_position: int,
    target_parent_id: str | None,
    target_position: int,
) -> str:
    """Describe a move, e.g. ``Moving note: "Buy milk" (moving up)`` plus from/to lines."""
    if source_parent_id == target_parent_id:
        if target_position < source_position:
            movement = "moving up"
        elif target_position > source_position:
            movement = "moving down"
        else:
            movement = "no change"
    elif source_parent_id is None:
        movement = "moving to child level"
    elif target_parent_id is None:
        movement = "moving to root level"
    else:
        movement = "moving to different parent"

    return (
        f'Moving note: "{label}" ({movement})\n'
        f"From: {format_position(source_parent_id, source_position)}\n"
        f"To: {format_position(target_parent_id, target_position)}"
    )


def describe_undo(record: UndoRecord) -> str:
    """Fixed-format text for the undo menu entry of a move."""
    if record.target_parent_id is None:
        return f'Undo move of "{record.note_label}" to {ROOT_LABEL}'
    return f'Undo move of "{record.note_label}" into "{record.target_parent_label}"'
