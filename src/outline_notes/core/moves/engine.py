"""Reparent notes, keep a bounded undo history, and collapse duplicate drops."""

import time
import uuid
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from outline_notes.config import ROOT_LABEL, UNDO_HISTORY_LIMIT
from outline_notes.core.moves.describe import describe_move, describe_undo, note_label
from outline_notes.core.tree.guard import check_move, is_within_subtree
from outline_notes.core.tree.store import TreeStore
from outline_notes.errors import DuplicateMoveError, NoteNotFoundError, UndoUnavailableError
from outline_notes.models.note import UndoRecord


@dataclass
class _Gesture:
    """One drag, from drag start to drag end."""

    note_id: str
    moved: bool = False


class MoveEngine:
    """Move notes within a TreeStore and undo the most recent moves.

    A drag-and-drop UI may fire several drop callbacks for a single drag
    (overlapping drop zones). The UI opens a gesture at drag start with
    :meth:`begin_gesture` and passes its token along with every drop; only the
    first move of a gesture is applied, the rest raise DuplicateMoveError.
    Moves without a token always apply.
    """

    def __init__(
        self,
        store: TreeStore,
        *,
        history_limit: int = UNDO_HISTORY_LIMIT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._history: deque[UndoRecord] = deque(maxlen=history_limit)
        self._gestures: dict[str, _Gesture] = {}
        self._clock = clock

    @property
    def history(self) -> tuple[UndoRecord, ...]:
        """Undo records, oldest first."""
        return tuple(self._history)

    @property
    def can_undo(self) -> bool:
        return bool(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    def clear_gestures(self) -> None:
        """Forget every open drag gesture; their tokens are rejected afterwards."""
        self._gestures.clear()

    def begin_gesture(self, note_id: str) -> str:
        """Open a drag gesture for a note and return its token."""
        self._store.snapshot.get(note_id)
        token = uuid.uuid4().hex
        self._gestures[token] = _Gesture(note_id=note_id)
        logger.debug("Drag started for {} (token {})", note_id, token[:8])
        return token

    def end_gesture(self, token: str) -> None:
        """Close a drag gesture. Unknown tokens are ignored."""
        gesture = self._gestures.pop(token, None)
        if gesture is not None:
            logger.debug("Drag ended for {} (moved={})", gesture.note_id, gesture.moved)

    def move(
        self,
        note_id: str,
        target_parent_id: str | None,
        position: int | None,
        *,
        token: str | None = None,
    ) -> UndoRecord | None:
        """Move a note (with its subtree) under a new parent at ``position``.

        ``position`` is the index in the target list once the note has been
        taken out of its old place; out-of-range values append.

        Returns:
            The recorded UndoRecord, or None if the note was already there or
            was dropped onto itself.

        Raises:
            NoteNotFoundError: note or target parent is unknown.
            StructuralViolationError: target is one of the note's descendants.
            DuplicateMoveError: the gesture token was already used or closed.
        """
        if token is not None:
            gesture = self._gestures.get(token)
            if gesture is None or gesture.moved:
                logger.warning("Ignoring duplicate move of {} - gesture already applied", note_id)
                msg = f"move of '{note_id}' already applied for this drag"
                raise DuplicateMoveError(msg)
            record = self._apply(note_id, target_parent_id, position, record_undo=True)
            gesture.moved = True
            return record
        return self._apply(note_id, target_parent_id, position, record_undo=True)

    def undo(self) -> UndoRecord:
        """Revert the most recent move and discard its record.

        If the note's previous parent no longer exists (or now sits inside the
        note's own subtree), the note goes back to the top level instead.
        """
        if not self._history:
            raise UndoUnavailableError()
        record = self._history.pop()
        snapshot = self._store.snapshot

        if record.note_id not in snapshot:
            logger.warning("Dropping undo record: note {} no longer exists", record.note_id)
            raise NoteNotFoundError(record.note_id)

        parent_id = record.previous_parent_id
        if parent_id is not None and parent_id not in snapshot:
            logger.warning(
                "Previous parent {} of note {} is gone, restoring to {}",
                parent_id, record.note_id, ROOT_LABEL,
            )
            parent_id = None
        elif parent_id is not None and is_within_subtree(snapshot, record.note_id, parent_id):
            logger.warning(
                "Previous parent {} is now inside note {}, restoring to {}",
                parent_id, record.note_id, ROOT_LABEL,
            )
            parent_id = None

        self._apply(record.note_id, parent_id, record.previous_position, record_undo=False)
        logger.info("Undid move of {}", record.note_id)
        return record

    def get_undo_description(self) -> str:
        """Text describing what undo would revert, or "" if there is nothing to undo."""
        if not self._history:
            return ""
        return describe_undo(self._history[-1])

    def _apply(
        self,
        note_id: str,
        target_parent_id: str | None,
        position: int | None,
        *,
        record_undo: bool,
    ) -> UndoRecord | None:
        snapshot = self._store.snapshot
        if target_parent_id == note_id:
            snapshot.get(note_id)
            logger.debug("Note {} dropped onto itself, nothing to move", note_id)
            return None
        check_move(snapshot, note_id, target_parent_id)
        source_parent_id, source_index = snapshot.locate(note_id)

        draft = self._store.edit()
        draft.detach(note_id)
        target_index = draft.attach(note_id, target_parent_id, position)
        if target_parent_id == source_parent_id and target_index == source_index:
            logger.debug("Move of {} is a no-op", note_id)
            return None

        label = note_label(snapshot.records[note_id].content)
        record = UndoRecord(
            note_id=note_id,
            note_label=label,
            previous_parent_id=source_parent_id,
            previous_position=source_index,
            target_parent_id=target_parent_id,
            target_parent_label=(
                ROOT_LABEL
                if target_parent_id is None
                else note_label(snapshot.records[target_parent_id].content)
            ),
            timestamp=self._clock(),
        )
        self._store.commit(draft)
        if record_undo:
            self._history.append(record)
        logger.info(
            "{}",
            describe_move(label, source_parent_id, source_index, target_parent_id, target_index),
        )
        return record
