"""Protocols for dependency injection in the notes engine."""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from outline_notes.models.note import Note, ProjectInfo


@runtime_checkable
class ProjectStoreProtocol(Protocol):
    """Protocol for project stores the persistence scheduler saves into."""

    def create(self, name: str, description: str = "") -> ProjectInfo:
        """Create an empty project and return its metadata."""
        ...

    def save(
        self,
        project_id: str,
        name: str,
        description: str,
        notes: Sequence[Note],
    ) -> ProjectInfo:
        """Persist the whole tree; the returned name/description may be corrected."""
        ...

    def load(self, project_id: str) -> tuple[ProjectInfo, list[Note]]:
        """Return project metadata and its root notes."""
        ...

    def list_projects(self) -> list[ProjectInfo]:
        """Return all projects, ordered by name."""
        ...
