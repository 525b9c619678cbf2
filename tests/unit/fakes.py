"""Fake implementations for testing the notes engine."""

from collections.abc import Sequence

from outline_notes.core.interchange import count_notes
from outline_notes.errors import PersistenceError
from outline_notes.models.note import Note, ProjectInfo


class FakeClock:
    """Manually advanced clock, usable wherever a ``time.monotonic`` is expected."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProjectStore:
    """In-memory fake for ProjectStoreProtocol.

    Records every save for assertions. Set ``fail_with`` to make saves raise,
    or ``rename_to`` to simulate the store correcting the project name.
    """

    def __init__(self) -> None:
        self.projects: dict[str, ProjectInfo] = {}
        self.notes: dict[str, tuple[Note, ...]] = {}
        self.saves: list[tuple[str, str, str, tuple[Note, ...]]] = []
        self.fail_with: PersistenceError | None = None
        self.rename_to: str | None = None
        self._counter = 0

    def create(self, name: str, description: str = "") -> ProjectInfo:
        self._counter += 1
        info = ProjectInfo(id=f"p{self._counter}", name=name, description=description)
        self.projects[info.id] = info
        self.notes[info.id] = ()
        return info

    def save(
        self,
        project_id: str,
        name: str,
        description: str,
        notes: Sequence[Note],
    ) -> ProjectInfo:
        self.saves.append((project_id, name, description, tuple(notes)))
        if self.fail_with is not None:
            raise self.fail_with
        if project_id not in self.projects:
            msg = f"Project '{project_id}' not found."
            raise PersistenceError(msg)
        info = ProjectInfo(
            id=project_id,
            name=self.rename_to or name,
            description=description,
            updated_at=len(self.saves),
            note_count=count_notes(notes),
        )
        self.projects[project_id] = info
        self.notes[project_id] = tuple(notes)
        return info

    def load(self, project_id: str) -> tuple[ProjectInfo, list[Note]]:
        if project_id not in self.projects:
            msg = f"Project '{project_id}' not found."
            raise PersistenceError(msg)
        return self.projects[project_id], list(self.notes[project_id])

    def list_projects(self) -> list[ProjectInfo]:
        return sorted(self.projects.values(), key=lambda p: p.name)
