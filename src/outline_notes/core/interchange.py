"""Import and export of the ``{"notes": [...]}`` interchange format."""

import uuid
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import replace
from typing import Any

from outline_notes.core.tree.positions import sort_siblings
from outline_notes.models.note import NOTE_FIELDS, ImageRef, Note


def _note_fields(note: Note) -> dict[str, Any]:
    values: dict[str, Any] = {
        "id": note.id,
        "content": note.content,
        "position": note.position,
        "is_discussion": note.is_discussion,
        "time_set": note.time_set,
        "youtube_url": note.youtube_url,
        "url": note.url,
        "url_display_text": note.url_display_text,
        "images": [
            {"id": i.id, "url": i.url, "storage_path": i.storage_path, "position": i.position}
            for i in note.images
        ],
        "children": [],
    }
    return {key: values[key] for key in NOTE_FIELDS}


def note_to_dict(note: Note) -> dict[str, Any]:
    """Serialize a nested note with its fields in interchange order."""
    root = _note_fields(note)
    todo = [(note, root)]
    while todo:
        current, out = todo.pop()
        for child in current.children:
            child_out = _note_fields(child)
            out["children"].append(child_out)
            todo.append((child, child_out))
    return root


def export_notes(notes: Sequence[Note]) -> dict[str, list[dict[str, Any]]]:
    """Export a nested tree as ``{"notes": [...]}``."""
    return {"notes": [note_to_dict(n) for n in notes]}


def _raw_children(raw: Mapping[str, Any]) -> list[Any]:
    children = raw.get("children") or []
    if not isinstance(children, list):
        msg = f"children of note {raw.get('id')!r} is not a list"
        raise ValueError(msg)
    return children


def _parse_note(
    raw: Any,
    id_factory: Callable[[], str] | None,
    keep_images: bool,
) -> Note:
    if not isinstance(raw, Mapping):
        msg = f"note must be an object, got {type(raw).__name__}"
        raise ValueError(msg)
    if id_factory is None and not raw.get("id"):
        msg = "note without an id"
        raise ValueError(msg)

    images: tuple[ImageRef, ...] = ()
    if keep_images:
        images = tuple(
            ImageRef(
                id=str(i["id"]),
                url=i["url"],
                storage_path=i.get("storage_path"),
                position=int(i.get("position", idx)),
            )
            for idx, i in enumerate(raw.get("images") or [])
        )

    return Note(
        id=id_factory() if id_factory else str(raw["id"]),
        content=str(raw.get("content") or ""),
        position=int(raw.get("position", 0)),
        is_discussion=bool(raw.get("is_discussion", False)),
        time_set=raw.get("time_set"),
        youtube_url=raw.get("youtube_url"),
        url=raw.get("url"),
        url_display_text=raw.get("url_display_text"),
        images=images,
    )


def note_from_dict(
    raw: Mapping[str, Any],
    *,
    id_factory: Callable[[], str] | None = None,
    keep_images: bool = True,
) -> Note:
    """Parse one nested note.

    Args:
        raw: Note mapping as found in exported data.
        id_factory: If given, every note gets a fresh ID from it.
        keep_images: If False, image references are dropped.
    """
    end = object()
    # frames of (parsed note, raw children left to parse, parsed children)
    stack: list[tuple[Note, Iterator[Any], list[Note]]] = [
        (_parse_note(raw, id_factory, keep_images), iter(_raw_children(raw)), [])
    ]
    while True:
        note, pending, built = stack[-1]
        child = next(pending, end)
        if child is not end:
            parsed = _parse_note(child, id_factory, keep_images)
            stack.append((parsed, iter(_raw_children(child)), []))
            continue
        stack.pop()
        done = replace(note, children=tuple(built))
        if not stack:
            return done
        stack[-1][2].append(done)


def import_notes(
    data: Any,
    *,
    id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> tuple[Note, ...]:
    """Parse exported data into a fresh tree.

    Every note gets a new ID, the structure and sibling order are kept, and
    image references are dropped since they point into another project.

    Raises:
        ValueError: data is not of the form ``{"notes": [...]}``.
    """
    if not isinstance(data, Mapping):
        msg = "Invalid notes data format: expected an object"
        raise ValueError(msg)
    if "notes" not in data:
        msg = "Invalid notes data format: missing notes array"
        raise ValueError(msg)
    if not isinstance(data["notes"], list):
        msg = "Invalid notes data format: notes is not an array"
        raise ValueError(msg)
    notes = [note_from_dict(n, id_factory=id_factory, keep_images=False) for n in data["notes"]]
    return sort_siblings(notes)


def count_notes(notes: Sequence[Note]) -> int:
    """Total number of notes in a nested tree."""
    total = 0
    todo = list(notes)
    while todo:
        total += 1
        todo.extend(todo.pop().children)
    return total
