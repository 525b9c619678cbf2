"""Hierarchical outline notes: tree store, moves with undo, expansion, autosave."""

from outline_notes.core.database.store import SqliteProjectStore
from outline_notes.core.expansion import ExpansionState
from outline_notes.core.moves.engine import MoveEngine
from outline_notes.core.persistence.scheduler import PersistenceScheduler
from outline_notes.core.tree.store import TreeSnapshot, TreeStore
from outline_notes.editor import NotesEditor
from outline_notes.models.note import Note
from outline_notes.protocols import ProjectStoreProtocol

__all__ = [
    "ExpansionState",
    "MoveEngine",
    "Note",
    "NotesEditor",
    "PersistenceScheduler",
    "ProjectStoreProtocol",
    "SqliteProjectStore",
    "TreeSnapshot",
    "TreeStore",
]
