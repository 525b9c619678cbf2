"""Canonical ordered tree of notes, kept as immutable snapshots."""

import uuid
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

from loguru import logger

from outline_notes.core.tree.positions import normalize_positions, sort_siblings
from outline_notes.errors import NoteNotFoundError, StructuralViolationError
from outline_notes.models.note import EDITABLE_FIELDS, ImageRef, Note

Listener = Callable[["TreeSnapshot", "TreeSnapshot"], None]


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class TreeSnapshot:
    """One immutable version of the tree.

    ``records`` maps note ID to a childless Note, ``children`` maps a parent ID
    (None for the top level) to the ordered IDs of its children, and
    ``parents`` is the reverse index. Records that did not change are shared
    between consecutive snapshots, so ``old.records[x] is new.records[x]``
    means note ``x`` was not touched.
    """

    records: Mapping[str, Note] = field(default_factory=lambda: MappingProxyType({}))
    children: Mapping[str | None, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({None: ()})
    )
    parents: Mapping[str, str | None] = field(default_factory=lambda: MappingProxyType({}))
    revision: int = 0

    def __contains__(self, note_id: object) -> bool:
        return note_id in self.records

    def __len__(self) -> int:
        return len(self.records)

    @property
    def root_ids(self) -> tuple[str, ...]:
        return self.children.get(None, ())

    def get(self, note_id: str) -> Note:
        """Return the record for a note, raising NoteNotFoundError if absent."""
        try:
            return self.records[note_id]
        except KeyError:
            raise NoteNotFoundError(note_id) from None

    def children_of(self, parent_id: str | None) -> tuple[str, ...]:
        if parent_id is not None and parent_id not in self.records:
            raise NoteNotFoundError(parent_id)
        return self.children.get(parent_id, ())

    def parent_of(self, note_id: str) -> str | None:
        if note_id not in self.parents:
            raise NoteNotFoundError(note_id)
        return self.parents[note_id]

    def locate(self, note_id: str) -> tuple[str | None, int]:
        """Return (parent_id, index) of a note."""
        parent_id = self.parent_of(note_id)
        return parent_id, self.children[parent_id].index(note_id)

    def to_notes(self, parent_id: str | None = None) -> tuple[Note, ...]:
        """Build the nested form of the tree (or of one parent's children).

        Notes are assembled bottom-up from an explicit post-order walk, so any
        depth works.
        """
        top = self.children_of(parent_id)
        built: dict[str, Note] = {}
        todo = [(cid, False) for cid in reversed(top)]
        while todo:
            note_id, ready = todo.pop()
            child_ids = self.children.get(note_id, ())
            if ready:
                record = self.records[note_id]
                if child_ids:
                    record = replace(record, children=tuple(built.pop(c) for c in child_ids))
                built[note_id] = record
            else:
                todo.append((note_id, True))
                todo.extend((cid, False) for cid in reversed(child_ids))
        return tuple(built.pop(cid) for cid in top)

    def subtree(self, note_id: str) -> Note:
        """Return a note with its nested children."""
        return replace(self.get(note_id), children=self.to_notes(note_id))

    @classmethod
    def from_notes(cls, notes: Sequence[Note], *, revision: int = 0) -> "TreeSnapshot":
        """Build a snapshot from a nested tree, ordering siblings by their positions."""
        draft = TreeDraft(cls())
        draft.graft(sort_siblings(notes), None, 0)
        return draft.freeze(revision)


class TreeDraft:
    """Mutable working copy of a snapshot.

    Every mutation of the store goes through a draft; the base snapshot is
    never touched, so a failure halfway leaves the tree as it was.
    """

    def __init__(self, base: TreeSnapshot) -> None:
        self.base = base
        self.records: dict[str, Note] = dict(base.records)
        self.children: dict[str | None, tuple[str, ...]] = dict(base.children)
        self.parents: dict[str, str | None] = dict(base.parents)

    def __contains__(self, note_id: object) -> bool:
        return note_id in self.records

    def require(self, note_id: str) -> Note:
        try:
            return self.records[note_id]
        except KeyError:
            raise NoteNotFoundError(note_id) from None

    def detach(self, note_id: str) -> tuple[str | None, int]:
        """Unlink a note (and its subtree) from its parent; return its old slot."""
        self.require(note_id)
        parent_id = self.parents[note_id]
        siblings = list(self.children[parent_id])
        index = siblings.index(note_id)
        del siblings[index]
        self._set_children(parent_id, siblings)
        return parent_id, index

    def attach(self, note_id: str, parent_id: str | None, index: int | None) -> int:
        """Link a detached note under a parent; return the index actually used."""
        if parent_id is not None:
            self.require(parent_id)
        siblings = list(self.children.get(parent_id, ()))
        if index is None or index < 0 or index > len(siblings):
            index = len(siblings)
        siblings.insert(index, note_id)
        self._set_children(parent_id, siblings)
        self.parents[note_id] = parent_id
        return index

    def graft(self, notes: Sequence[Note], parent_id: str | None, index: int) -> list[str]:
        """Insert nested notes as new records starting at ``index`` under a parent."""
        incoming = [n.id for n in _walk(notes)]
        seen: set[str] = set()
        clashes: set[str] = set()
        for note_id in incoming:
            if note_id in self.records or note_id in seen:
                clashes.add(note_id)
            seen.add(note_id)
        if clashes:
            msg = f"duplicate note ids: {sorted(clashes)!r}"
            raise StructuralViolationError(msg)
        for offset, note in enumerate(notes):
            self._add_record(note, parent_id, index + offset)
        return incoming

    def _add_record(self, note: Note, parent_id: str | None, index: int) -> None:
        todo = [(note, parent_id, index)]
        while todo:
            current, parent, slot = todo.pop()
            self.records[current.id] = replace(current, children=())
            self.attach(current.id, parent, slot)
            # first child is attached first so slots fill in order
            todo.extend((c, current.id, i) for i, c in reversed(list(enumerate(current.children))))

    def drop(self, note_id: str) -> list[str]:
        """Detach a note and delete the records of it and all its descendants."""
        self.detach(note_id)
        removed: list[str] = []
        todo = [note_id]
        while todo:
            current = todo.pop()
            removed.append(current)
            todo.extend(self.children.pop(current, ()))
            del self.records[current]
            del self.parents[current]
        return removed

    def freeze(self, revision: int) -> TreeSnapshot:
        normalize_positions(self.records, self.children)
        return TreeSnapshot(
            records=MappingProxyType(self.records),
            children=MappingProxyType(self.children),
            parents=MappingProxyType(self.parents),
            revision=revision,
        )

    def _set_children(self, parent_id: str | None, siblings: list[str]) -> None:
        if siblings or parent_id is None:
            self.children[parent_id] = tuple(siblings)
        else:
            self.children.pop(parent_id, None)


def _walk(notes: Sequence[Note]) -> Iterator[Note]:
    todo = list(reversed(notes))
    while todo:
        note = todo.pop()
        yield note
        todo.extend(reversed(note.children))


class TreeStore:
    """Owner of the current tree snapshot.

    Mutations build a draft, normalize positions, commit a new snapshot and
    notify listeners with ``(old, new)``.
    """

    def __init__(
        self,
        snapshot: TreeSnapshot | None = None,
        *,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._snapshot = snapshot or TreeSnapshot()
        self._id_factory = id_factory
        self._listeners: list[Listener] = []

    @property
    def snapshot(self) -> TreeSnapshot:
        return self._snapshot

    @property
    def revision(self) -> int:
        return self._snapshot.revision

    def subscribe(self, listener: Listener) -> None:
        """Register a callback invoked after every commit."""
        self._listeners.append(listener)

    def edit(self) -> TreeDraft:
        return TreeDraft(self._snapshot)

    def commit(self, draft: TreeDraft) -> TreeSnapshot:
        """Freeze a draft into the current snapshot and notify listeners."""
        if draft.base is not self._snapshot:
            msg = "draft was built from a stale snapshot"
            raise StructuralViolationError(msg)
        old = self._snapshot
        self._snapshot = draft.freeze(old.revision + 1)
        for listener in self._listeners:
            listener(old, self._snapshot)
        return self._snapshot

    def load(self, notes: Sequence[Note]) -> TreeSnapshot:
        """Replace the whole tree with a nested tree."""
        draft = self.edit()
        draft.records.clear()
        draft.parents.clear()
        draft.children = {None: ()}
        draft.graft(sort_siblings(notes), None, 0)
        return self.commit(draft)

    def add_note(self, parent_id: str | None = None, insert_position: int | None = None) -> Note:
        """Create an empty note under a parent (or at the top level).

        Without ``insert_position`` the note is appended at the top level and
        prepended under a parent.
        """
        draft = self.edit()
        if insert_position is None:
            insert_position = None if parent_id is None else 0
        note = Note(id=self._id_factory())
        draft.records[note.id] = note
        draft.attach(note.id, parent_id, insert_position)
        snapshot = self.commit(draft)
        logger.debug("Added note {} under {}", note.id, parent_id or "root")
        return snapshot.records[note.id]

    def update_note(self, note_id: str, **fields: Any) -> Note:
        """Merge fields into a note; children and images survive unless given."""
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            msg = f"cannot update fields: {sorted(unknown)!r}"
            raise ValueError(msg)

        draft = self.edit()
        record = draft.require(note_id)
        new_children = fields.pop("children", None)
        if "images" in fields:
            fields["images"] = _coerce_images(fields["images"])
        draft.records[note_id] = replace(record, **fields)

        if new_children is not None:
            for child_id in self._snapshot.children_of(note_id):
                draft.drop(child_id)
            draft.graft(sort_siblings(new_children), note_id, 0)

        snapshot = self.commit(draft)
        logger.debug("Updated note {} ({})", note_id, ", ".join(sorted(fields)) or "children")
        return snapshot.records[note_id]

    def delete_note(self, note_id: str, *, cascade: bool = True) -> list[str]:
        """Remove a note.

        With ``cascade=False`` its children take over the slot it occupied, in
        order, instead of being deleted with it.

        Returns:
            IDs of every removed note.
        """
        draft = self.edit()
        draft.require(note_id)
        if cascade:
            removed = draft.drop(note_id)
        else:
            orphans = self._snapshot.children_of(note_id)
            parent_id, index = draft.detach(note_id)
            draft.children.pop(note_id, None)
            del draft.records[note_id]
            del draft.parents[note_id]
            for offset, child_id in enumerate(orphans):
                draft.attach(child_id, parent_id, index + offset)
            removed = [note_id]
        self.commit(draft)
        logger.debug("Deleted {} note(s) at {} (cascade={})", len(removed), note_id, cascade)
        return removed


def _coerce_images(images: Sequence[ImageRef | Mapping[str, Any]]) -> tuple[ImageRef, ...]:
    return tuple(i if isinstance(i, ImageRef) else ImageRef(**i) for i in images)
