"""Editor facade: every UI intent on one object, reported as result dicts."""

import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import asdict
from typing import Any

from loguru import logger

from outline_notes.config import SAVE_DEBOUNCE_SECONDS, UNDO_HISTORY_LIMIT
from outline_notes.core.expansion import ExpansionState
from outline_notes.core.interchange import count_notes, export_notes, import_notes
from outline_notes.core.moves.engine import MoveEngine
from outline_notes.core.persistence.scheduler import PersistenceScheduler
from outline_notes.core.tree.navigation import get_breadcrumbs
from outline_notes.core.tree.outline import render_outline
from outline_notes.core.tree.store import TreeSnapshot, TreeStore
from outline_notes.errors import NotesError, PersistenceError
from outline_notes.models.note import Breadcrumb, Note, ProjectInfo
from outline_notes.protocols import ProjectStoreProtocol


def _failure(error: Exception) -> dict[str, Any]:
    logger.warning("{}", error)
    return {"success": False, "error": str(error)}


def _project_dict(project: ProjectInfo) -> dict[str, Any]:
    return asdict(project)


class NotesEditor:
    """One editing session over a notes tree.

    Intents never raise for expected failures (unknown IDs, invalid moves,
    duplicate drops, store errors); they return ``{"success": False,
    "error": ...}`` and leave the tree unchanged.
    """

    def __init__(
        self,
        project_store: ProjectStoreProtocol | None = None,
        *,
        tree: TreeStore | None = None,
        delay: float = SAVE_DEBOUNCE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        history_limit: int = UNDO_HISTORY_LIMIT,
        on_save_error: Callable[[PersistenceError], None] | None = None,
    ) -> None:
        self.tree = tree or TreeStore()
        self.moves = MoveEngine(self.tree, history_limit=history_limit)
        self.expansion = ExpansionState(self.tree)
        self.persistence = PersistenceScheduler(
            self.tree, project_store, delay=delay, clock=clock, on_error=on_save_error
        )
        self.project_store = project_store
        self._selected_id: str | None = None
        self.tree.subscribe(self._on_tree_changed)

    # --- Read model ---

    @property
    def snapshot(self) -> TreeSnapshot:
        return self.tree.snapshot

    @property
    def notes(self) -> tuple[Note, ...]:
        """The whole tree in nested form."""
        return self.tree.snapshot.to_notes()

    @property
    def expanded_ids(self) -> frozenset[str]:
        return self.expansion.expanded_ids

    @property
    def current_level(self) -> int:
        return self.expansion.current_level

    @property
    def max_depth(self) -> int:
        return self.expansion.max_depth

    @property
    def can_undo(self) -> bool:
        return self.moves.can_undo

    def get_undo_description(self) -> str:
        return self.moves.get_undo_description()

    @property
    def project(self) -> ProjectInfo | None:
        return self.persistence.project

    @property
    def selected_note(self) -> Note | None:
        """The selected note with its subtree, or None."""
        if self._selected_id is None:
            return None
        return self.tree.snapshot.subtree(self._selected_id)

    @property
    def breadcrumbs(self) -> tuple[Breadcrumb, ...]:
        """Ancestors of the selected note, top level first."""
        if self._selected_id is None:
            return ()
        return get_breadcrumbs(self.tree.snapshot, self._selected_id)

    def debug_info(self) -> dict[str, Any]:
        snapshot = self.tree.snapshot
        project = self.persistence.project
        last_error = self.persistence.last_error
        return {
            "revision": snapshot.revision,
            "note_count": len(snapshot),
            "root_count": len(snapshot.root_ids),
            "max_depth": self.expansion.max_depth,
            "current_level": self.expansion.current_level,
            "effective_level": self.expansion.effective_level,
            "expanded_count": len(self.expansion.expanded_ids),
            "undo_depth": len(self.moves.history),
            "undo_description": self.moves.get_undo_description(),
            "selected_id": self._selected_id,
            "project_id": project.id if project else None,
            "dirty": self.persistence.dirty,
            "save_pending": self.persistence.save_pending,
            "last_error": str(last_error) if last_error else None,
        }

    def render(
        self,
        *,
        note_id: str | None = None,
        max_depth: int | None = None,
        use_expansion: bool = True,
        show_ids: bool = False,
    ) -> str:
        """Render the tree as an outline, hiding children of collapsed notes."""
        return render_outline(
            self.tree.snapshot,
            note_id=note_id,
            max_depth=max_depth,
            expanded=self.expansion.expanded_ids if use_expansion else None,
            show_ids=show_ids,
        )

    # --- Tree intents ---

    def add_note(
        self,
        parent_id: str | None = None,
        insert_position: int | None = None,
    ) -> dict[str, Any]:
        """Create an empty note and select it."""
        try:
            note = self.tree.add_note(parent_id, insert_position)
        except NotesError as e:
            return _failure(e)
        self._selected_id = note.id
        return {
            "success": True,
            "note_id": note.id,
            "parent_id": parent_id,
            "position": note.position,
        }

    def update_note(self, note_id: str, **fields: Any) -> dict[str, Any]:
        """Merge fields into a note. Passing ``children`` replaces its subtree."""
        try:
            note = self.tree.update_note(note_id, **fields)
        except (NotesError, ValueError, TypeError) as e:
            return _failure(e)
        return {"success": True, "note_id": note.id}

    def delete_note(self, note_id: str, *, cascade: bool = True) -> dict[str, Any]:
        try:
            removed = self.tree.delete_note(note_id, cascade=cascade)
        except NotesError as e:
            return _failure(e)
        return {"success": True, "deleted": removed, "count": len(removed)}

    def move_note(
        self,
        note_id: str,
        target_parent_id: str | None,
        position: int | None,
        token: str | None = None,
    ) -> dict[str, Any]:
        """Reparent a note. ``moved`` is False when it was already at that slot."""
        try:
            record = self.moves.move(note_id, target_parent_id, position, token=token)
        except NotesError as e:
            return _failure(e)
        parent_id, index = self.tree.snapshot.locate(note_id)
        return {
            "success": True,
            "moved": record is not None,
            "note_id": note_id,
            "parent_id": parent_id,
            "position": index,
        }

    def begin_drag(self, note_id: str) -> dict[str, Any]:
        try:
            token = self.moves.begin_gesture(note_id)
        except NotesError as e:
            return _failure(e)
        return {"success": True, "token": token}

    def end_drag(self, token: str) -> dict[str, Any]:
        self.moves.end_gesture(token)
        return {"success": True}

    def undo_last_action(self) -> dict[str, Any]:
        description = self.moves.get_undo_description()
        try:
            record = self.moves.undo()
        except NotesError as e:
            return _failure(e)
        return {"success": True, "note_id": record.note_id, "description": description}

    def select_note(self, note_id: str | None) -> dict[str, Any]:
        """Select a note (None clears the selection)."""
        if note_id is not None and note_id not in self.tree.snapshot:
            return {"success": False, "error": f"Note '{note_id}' not found."}
        self._selected_id = note_id
        return {
            "success": True,
            "note_id": note_id,
            "breadcrumbs": [asdict(b) for b in self.breadcrumbs],
        }

    # --- Expansion intents ---

    def toggle_expand(self, note_id: str) -> dict[str, Any]:
        try:
            expanded = self.expansion.toggle(note_id)
        except NotesError as e:
            return _failure(e)
        return {"success": True, "note_id": note_id, "expanded": expanded}

    def expand_to_level(self, level: int) -> dict[str, Any]:
        self.expansion.expand_to_level(level)
        return self._expansion_result()

    def expand_all(self) -> dict[str, Any]:
        self.expansion.expand_all()
        return self._expansion_result()

    def collapse_all(self) -> dict[str, Any]:
        self.expansion.collapse_all()
        return self._expansion_result()

    def expand_one_more(self) -> dict[str, Any]:
        self.expansion.expand_one_more()
        return self._expansion_result()

    def collapse_one(self) -> dict[str, Any]:
        self.expansion.collapse_one()
        return self._expansion_result()

    def _expansion_result(self) -> dict[str, Any]:
        return {
            "success": True,
            "level": self.expansion.current_level,
            "max_depth": self.expansion.max_depth,
            "expanded_count": len(self.expansion.expanded_ids),
        }

    # --- Projects and interchange ---

    def create_project(self, name: str, description: str = "") -> dict[str, Any]:
        """Create a project in the store and start editing it with an empty tree."""
        if self.project_store is None:
            return {"success": False, "error": "No project store configured."}
        try:
            info = self.project_store.create(name, description)
        except NotesError as e:
            return _failure(e)
        self._reset(())
        self.persistence.set_project(info)
        return {"success": True, "project": _project_dict(info)}

    def load_project(self, project_id: str) -> dict[str, Any]:
        """Replace the tree with a project's notes from the store."""
        if self.project_store is None:
            return {"success": False, "error": "No project store configured."}
        try:
            info, notes = self.project_store.load(project_id)
            self._reset(notes)
        except NotesError as e:
            return _failure(e)
        self.persistence.set_project(info)
        logger.info("Loaded project {!r} ({} notes)", info.name, len(self.tree.snapshot))
        return {"success": True, "project": _project_dict(info)}

    def save_project(self) -> dict[str, Any]:
        """Save right away (manual save)."""
        try:
            info = self.persistence.flush()
        except PersistenceError as e:
            return _failure(e)
        return {"success": True, "project": _project_dict(info)}

    def tick(self) -> ProjectInfo | None:
        """Drive the debounced autosave; call from the host's event loop."""
        return self.persistence.poll()

    def export_notes(self) -> dict[str, list[dict[str, Any]]]:
        return export_notes(self.tree.snapshot.to_notes())

    def import_notes(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Replace the tree with imported notes (fresh IDs, images dropped)."""
        try:
            notes = import_notes(data)
            self._reset(notes)
        except (NotesError, ValueError, KeyError, TypeError) as e:
            return _failure(e)
        count = count_notes(notes)
        logger.info("Imported {} notes", count)
        return {"success": True, "count": count}

    def _reset(self, notes: Sequence[Note]) -> None:
        self.tree.load(notes)
        self.moves.clear_history()
        self.moves.clear_gestures()
        self.expansion.collapse_all()
        self._selected_id = None

    def _on_tree_changed(self, _old: TreeSnapshot, new: TreeSnapshot) -> None:
        if self._selected_id is not None and self._selected_id not in new:
            self._selected_id = None
