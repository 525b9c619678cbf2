"""Render note subtrees as an indented plain-text outline."""

import io
from collections.abc import Set

from outline_notes.core.tree.store import TreeSnapshot
from outline_notes.models.note import Note


def _details(note: Note) -> list[str]:
    lines: list[str] = []
    if note.url:
        if note.url_display_text:
            lines.append(f"link: {note.url_display_text} <{note.url}>")
        else:
            lines.append(f"link: {note.url}")
    if note.youtube_url:
        lines.append(f"video: {note.youtube_url}")
    if note.time_set:
        lines.append(f"time: {note.time_set}")
    if note.images:
        noun = "image" if len(note.images) == 1 else "images"
        lines.append(f"{len(note.images)} {noun}")
    return lines


def render_outline(
    snapshot: TreeSnapshot,
    *,
    note_id: str | None = None,
    max_depth: int | None = None,
    expanded: Set[str] | None = None,
    include_details: bool = True,
    show_ids: bool = False,
) -> str:
    """Render a note and its descendants (or the whole tree) as an indented outline.

    Args:
        snapshot: Tree to render.
        note_id: Start note; None renders every top-level note.
        max_depth: Max levels below the start to include (None = unlimited).
        expanded: If given, only children of notes in this set are shown.
        include_details: Whether to include link, video, time and image lines.
        show_ids: Append ``[id]`` to every line.

    Returns:
        Outline string with ``- `` bullets, four spaces per level.
    """
    if note_id is None:
        starts = snapshot.root_ids
    else:
        snapshot.get(note_id)
        starts = (note_id,)

    out = io.StringIO()
    todo = [(sid, 0) for sid in reversed(starts)]
    while todo:
        current, depth = todo.pop()
        note = snapshot.records[current]
        indent = "    " * depth

        lines = note.content.split("\n")
        first = lines[0] or "(empty)"
        suffix = f"  [{note.id}]" if show_ids else ""
        out.write(f"{indent}- {first}{suffix}\n")
        for line in lines[1:]:
            out.write(f"{indent}  {line}\n")
        if include_details:
            for line in _details(note):
                out.write(f"{indent}  > {line}\n")

        child_ids = snapshot.children.get(current, ())
        if not child_ids:
            continue
        depth_cut = max_depth is not None and depth >= max_depth
        collapsed = expanded is not None and current not in expanded
        if depth_cut or collapsed:
            # Truncation indicator when children are hidden
            noun = "child" if len(child_ids) == 1 else "children"
            out.write(f"{indent}    - ... ({len(child_ids)} more {noun}, id={current})\n")
            continue
        todo.extend((cid, depth + 1) for cid in reversed(child_ids))

    return out.getvalue()
