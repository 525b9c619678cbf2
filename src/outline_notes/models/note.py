"""Domain models for the notes tree."""

from dataclasses import dataclass

# Serialized field order of a note, shared by export and the project store.
NOTE_FIELDS: tuple[str, ...] = (
    "id",
    "content",
    "position",
    "is_discussion",
    "time_set",
    "youtube_url",
    "url",
    "url_display_text",
    "images",
    "children",
)

# Fields a caller may change through update_note.
EDITABLE_FIELDS: frozenset[str] = frozenset(NOTE_FIELDS) - {"id", "position"}


@dataclass(frozen=True)
class ImageRef:
    """An image attached to a note."""

    id: str
    url: str
    storage_path: str | None = None
    position: int = 0


@dataclass(frozen=True)
class Note:
    """A single node in the outline tree.

    Records held by the tree store always have ``children == ()``; the nested
    form is only built for export and observers.
    """

    id: str
    content: str = ""
    position: int = 0
    is_discussion: bool = False
    time_set: str | None = None
    youtube_url: str | None = None
    url: str | None = None
    url_display_text: str | None = None
    images: tuple[ImageRef, ...] = ()
    children: tuple["Note", ...] = ()


@dataclass(frozen=True)
class UndoRecord:
    """A reversible description of one move."""

    note_id: str
    note_label: str
    previous_parent_id: str | None
    previous_position: int
    target_parent_id: str | None
    target_parent_label: str
    timestamp: float


@dataclass(frozen=True)
class ProjectInfo:
    """Project metadata as returned by the project store."""

    id: str
    name: str
    description: str = ""
    updated_at: int = 0
    note_count: int = 0


@dataclass(frozen=True)
class Breadcrumb:
    """A single ancestor in a breadcrumb trail."""

    note_id: str
    content: str
    depth: int
