"""Debounced saving of the whole tree to the project store."""

import time
from collections.abc import Callable
from dataclasses import dataclass, replace

from loguru import logger

from outline_notes.config import SAVE_DEBOUNCE_SECONDS
from outline_notes.core.tree.store import TreeSnapshot, TreeStore
from outline_notes.errors import PersistenceError
from outline_notes.models.note import Note, ProjectInfo
from outline_notes.protocols import ProjectStoreProtocol


@dataclass(frozen=True)
class SaveTicket:
    """Everything one save needs, cut at the moment the save starts."""

    seq: int
    revision: int
    project_id: str
    name: str
    description: str
    notes: tuple[Note, ...]


class PersistenceScheduler:
    """Mark the tree dirty on every change and save it once edits go quiet.

    The scheduler is tick-driven: the host calls :meth:`poll` from its event
    loop (or after each command) and :meth:`flush` for a manual save. Saves are
    split into :meth:`begin_save` and :meth:`complete_save` / :meth:`fail_save`
    so the store call may run elsewhere; responses older than the last applied
    one are discarded.

    A failed save leaves the tree dirty and is not retried until the next
    mutation or a manual flush. Local state is never rolled back.
    """

    def __init__(
        self,
        tree: TreeStore,
        project_store: ProjectStoreProtocol | None,
        *,
        delay: float = SAVE_DEBOUNCE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        on_error: Callable[[PersistenceError], None] | None = None,
    ) -> None:
        self._tree = tree
        self._store = project_store
        self._delay = delay
        self._clock = clock
        self._on_error = on_error

        self.project: ProjectInfo | None = None
        self.dirty = False
        self.last_error: PersistenceError | None = None
        self._deadline: float | None = None
        self._next_seq = 1
        self._last_applied_seq = 0

        tree.subscribe(self._on_tree_changed)

    @property
    def save_pending(self) -> bool:
        """True while a debounced save is armed."""
        return self._deadline is not None

    def set_project(self, project: ProjectInfo | None, *, dirty: bool = False) -> None:
        """Switch the save target; ``dirty`` says whether the current tree is unsaved."""
        self.project = project
        self.dirty = dirty
        self.last_error = None
        self._deadline = self._clock() + self._delay if dirty else None

    def mark_dirty(self) -> None:
        """Flag unsaved changes and restart the debounce window."""
        self.dirty = True
        self._deadline = self._clock() + self._delay

    def poll(self) -> ProjectInfo | None:
        """Save if the debounce window has passed. Failures are reported, not raised."""
        if not self.dirty or self._deadline is None or self._clock() < self._deadline:
            return None
        if self.project is None or self._store is None:
            logger.debug("Tree is dirty but there is no project to save into")
            self._deadline = None
            return None
        try:
            return self._save()
        except PersistenceError:
            return None

    def flush(self) -> ProjectInfo:
        """Save right away, bypassing the debounce. Raises PersistenceError on failure."""
        if self._store is None:
            msg = "No project store configured."
            raise PersistenceError(msg)
        if self.project is None:
            msg = "No active project. Create or load a project first."
            raise PersistenceError(msg)
        return self._save()

    def begin_save(self) -> SaveTicket:
        """Cut a ticket for the current tree and disarm the debounce."""
        if self.project is None:
            msg = "No active project. Create or load a project first."
            raise PersistenceError(msg)
        snapshot = self._tree.snapshot
        ticket = SaveTicket(
            seq=self._next_seq,
            revision=snapshot.revision,
            project_id=self.project.id,
            name=self.project.name,
            description=self.project.description,
            notes=snapshot.to_notes(),
        )
        self._next_seq += 1
        self._deadline = None
        return ticket

    def complete_save(self, ticket: SaveTicket, info: ProjectInfo) -> bool:
        """Apply a store response. Returns False if the response was stale."""
        if ticket.seq <= self._last_applied_seq:
            logger.debug(
                "Discarding stale save response #{} (already applied #{})",
                ticket.seq, self._last_applied_seq,
            )
            return False
        self._last_applied_seq = ticket.seq

        if self.project is not None and self.project.id == ticket.project_id:
            if info.name != ticket.name:
                logger.info("Project renamed by store: {!r} -> {!r}", ticket.name, info.name)
            self.project = replace(
                self.project,
                name=info.name,
                description=info.description,
                updated_at=info.updated_at,
                note_count=info.note_count,
            )
            if ticket.revision == self._tree.revision:
                self.dirty = False
        self.last_error = None
        logger.info("Saved project {!r} (revision {})", info.name, ticket.revision)
        return True

    def fail_save(self, ticket: SaveTicket, error: PersistenceError) -> None:
        """Record a failed save; the tree stays dirty."""
        self.last_error = error
        logger.error("Saving project {} failed: {}", ticket.project_id, error)
        if self._on_error is not None:
            self._on_error(error)

    def _save(self) -> ProjectInfo:
        assert self._store is not None
        ticket = self.begin_save()
        try:
            info = self._store.save(
                ticket.project_id, ticket.name, ticket.description, ticket.notes
            )
        except PersistenceError as e:
            self.fail_save(ticket, e)
            raise
        self.complete_save(ticket, info)
        return self.project or info

    def _on_tree_changed(self, _old: TreeSnapshot, _new: TreeSnapshot) -> None:
        self.mark_dirty()
