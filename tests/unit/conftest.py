"""Shared test fixtures."""

import sqlite3

import pytest

from outline_notes.core.database.schema import create_schema
from outline_notes.core.database.store import SqliteProjectStore
from outline_notes.core.tree.store import TreeSnapshot, TreeStore
from outline_notes.editor import NotesEditor
from outline_notes.models.note import Note
from tests.unit.fakes import FakeClock, FakeProjectStore


def sample_notes() -> list[Note]:
    """Roots R1 (with child C1) and R2."""
    return [
        Note(
            id="R1",
            content="Root one",
            position=0,
            children=(Note(id="C1", content="Child one", position=0),),
        ),
        Note(id="R2", content="Root two", position=1),
    ]


def deep_notes() -> list[Note]:
    """A three-level tree: A > A1 > A1a, A > A2, B > B1."""
    return [
        Note(
            id="A",
            content="Alpha",
            position=0,
            children=(
                Note(
                    id="A1",
                    content="Alpha one",
                    position=0,
                    children=(Note(id="A1a", content="Alpha one a", position=0),),
                ),
                Note(id="A2", content="Alpha two", position=1),
            ),
        ),
        Note(
            id="B",
            content="Beta",
            position=1,
            children=(Note(id="B1", content="Beta one", position=0),),
        ),
    ]


@pytest.fixture
def store() -> TreeStore:
    """Tree store holding the R1/C1/R2 sample tree."""
    return TreeStore(TreeSnapshot.from_notes(sample_notes()))


@pytest.fixture
def deep_store() -> TreeStore:
    """Tree store holding the three-level sample tree."""
    return TreeStore(TreeSnapshot.from_notes(deep_notes()))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_store() -> FakeProjectStore:
    return FakeProjectStore()


@pytest.fixture
def editor(fake_store: FakeProjectStore, clock: FakeClock) -> NotesEditor:
    """Editor with project "Work" loaded, holding the three-level tree."""
    info = fake_store.create("Work")
    fake_store.notes[info.id] = tuple(deep_notes())
    ed = NotesEditor(fake_store, clock=clock)
    ed.load_project(info.id)
    return ed


@pytest.fixture
def db_conn() -> sqlite3.Connection:
    """Return an in-memory DB with the schema created."""
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    return conn


@pytest.fixture
def sqlite_store(db_conn: sqlite3.Connection) -> SqliteProjectStore:
    return SqliteProjectStore(db_conn)
