"""Exceptions raised by the notes tree engine."""


class NotesError(Exception):
    """Base class for all outline-notes errors."""


class NoteNotFoundError(NotesError):
    """A mutation targeted a note ID that is not in the tree."""

    def __init__(self, note_id: str) -> None:
        super().__init__(f"Note '{note_id}' not found.")
        self.note_id = note_id


class StructuralViolationError(NotesError):
    """A mutation would break a tree invariant (cycle, duplicate ID)."""


class DuplicateMoveError(NotesError):
    """A second move arrived for a drag gesture that already moved its note."""


class UndoUnavailableError(NotesError):
    """Undo was requested with an empty history."""

    def __init__(self) -> None:
        super().__init__("Nothing to undo.")


class PersistenceError(NotesError):
    """Saving to or loading from the project store failed."""
