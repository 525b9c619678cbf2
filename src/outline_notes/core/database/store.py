"""SQLite implementation of the project store."""

import json
import sqlite3
import time
import uuid
from collections import defaultdict
from collections.abc import Iterator, Sequence
from dataclasses import replace
from typing import Any

from loguru import logger

from outline_notes.core.interchange import count_notes
from outline_notes.core.tree.positions import sort_siblings
from outline_notes.errors import PersistenceError
from outline_notes.models.note import ImageRef, Note, ProjectInfo

_META_FIELDS = ("is_discussion", "time_set", "youtube_url", "url", "url_display_text")

NoteRow = tuple[str, str, str | None, str, int, str]
StoredRow = tuple[str, str | None, str, int, str]


def flatten_notes(notes: Sequence[Note], project_id: str) -> list[NoteRow]:
    """Turn a nested tree into flat rows: (id, project_id, parent_id, content, position, meta)."""
    rows: list[NoteRow] = []
    todo: list[tuple[Note, str | None]] = [(n, None) for n in reversed(notes)]
    while todo:
        note, parent_id = todo.pop()
        meta: dict[str, Any] = {name: getattr(note, name) for name in _META_FIELDS}
        meta["images"] = [
            {"id": i.id, "url": i.url, "storage_path": i.storage_path, "position": i.position}
            for i in note.images
        ]
        rows.append(
            (note.id, project_id, parent_id, note.content, note.position, json.dumps(meta))
        )
        todo.extend((c, note.id) for c in reversed(note.children))
    return rows


_Entry = tuple[str, str, int, dict[str, Any]]


def _note_from_row(note_id: str, content: str, position: int, meta: dict[str, Any]) -> Note:
    return Note(
        id=note_id,
        content=content,
        position=position,
        is_discussion=bool(meta.get("is_discussion", False)),
        time_set=meta.get("time_set"),
        youtube_url=meta.get("youtube_url"),
        url=meta.get("url"),
        url_display_text=meta.get("url_display_text"),
        images=tuple(ImageRef(**i) for i in meta.get("images", [])),
    )


def build_note_hierarchy(rows: Sequence[StoredRow]) -> tuple[Note, ...]:
    """Rebuild a nested tree from (id, parent_id, content, position, meta) rows.

    Rows whose parent is missing become top-level notes. Rows that are only
    reachable through a parent cycle are dropped with a warning.
    """
    known = {r[0] for r in rows}
    by_parent: dict[str | None, list[_Entry]] = defaultdict(list)
    for note_id, parent_id, content, position, meta_json in rows:
        try:
            meta = json.loads(meta_json or "{}")
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed meta of note {}", note_id)
            meta = {}
        if parent_id is not None and parent_id not in known:
            logger.warning("Note {} has missing parent {}, moved to top level", note_id, parent_id)
            parent_id = None
        by_parent[parent_id].append((note_id, content, position, meta))

    seen: set[str] = set()
    top: list[Note] = []
    # frames of (note without children, child rows left to build, built children)
    stack: list[tuple[Note | None, Iterator[_Entry], list[Note]]] = [
        (None, iter(by_parent.get(None, [])), top)
    ]
    while stack:
        note, pending, built = stack[-1]
        entry = next(pending, None)
        if entry is not None:
            seen.add(entry[0])
            stack.append((_note_from_row(*entry), iter(by_parent.get(entry[0], [])), []))
            continue
        stack.pop()
        if note is not None:
            stack[-1][2].append(replace(note, children=tuple(built)))

    notes = sort_siblings(top)
    unreachable = known - seen
    if unreachable:
        logger.warning("Dropping notes caught in a parent cycle: {}", sorted(unreachable))
    return notes


class SqliteProjectStore:
    """Project store backed by a SQLite database (schema must already exist).

    Saving replaces every note row of the project. Project names are unique;
    a conflicting name is corrected to ``"name (2)"``, ``"name (3)"``, ...
    and the corrected name is returned to the caller.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def create(self, name: str, description: str = "") -> ProjectInfo:
        name = name.strip()
        if not name:
            msg = "Project name cannot be empty."
            raise PersistenceError(msg)
        now_ms = int(time.time() * 1000)
        project_id = str(uuid.uuid4())
        try:
            unique = self._unique_name(name, exclude_id=None)
            self.conn.execute(
                """INSERT INTO projects (id, name, description, note_count, created_at, updated_at)
                   VALUES (?, ?, ?, 0, ?, ?)""",
                (project_id, unique, description, now_ms, now_ms),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            msg = f"Could not create project {name!r}: {e}"
            raise PersistenceError(msg) from e
        logger.info("Created project {!r} ({})", unique, project_id)
        return ProjectInfo(id=project_id, name=unique, description=description, updated_at=now_ms)

    def save(
        self,
        project_id: str,
        name: str,
        description: str,
        notes: Sequence[Note],
    ) -> ProjectInfo:
        now_ms = int(time.time() * 1000)
        note_count = count_notes(notes)
        try:
            if self._get_info(project_id) is None:
                msg = f"Project '{project_id}' not found."
                raise PersistenceError(msg)
            unique = self._unique_name(name.strip() or "Untitled", exclude_id=project_id)
            self.conn.execute(
                """UPDATE projects SET name = ?, description = ?, note_count = ?, updated_at = ?
                   WHERE id = ?""",
                (unique, description, note_count, now_ms, project_id),
            )
            # Clear and re-insert
            self.conn.execute("DELETE FROM notes WHERE project_id = ?", (project_id,))
            self.conn.executemany(
                """INSERT INTO notes (id, project_id, parent_id, content, position, meta)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                flatten_notes(notes, project_id),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            msg = f"Could not save project {project_id!r}: {e}"
            raise PersistenceError(msg) from e
        logger.debug("Saved {} notes into project {}", note_count, project_id)
        return ProjectInfo(
            id=project_id,
            name=unique,
            description=description,
            updated_at=now_ms,
            note_count=note_count,
        )

    def load(self, project_id: str) -> tuple[ProjectInfo, list[Note]]:
        try:
            info = self._get_info(project_id)
            if info is None:
                msg = f"Project '{project_id}' not found."
                raise PersistenceError(msg)
            rows = self.conn.execute(
                "SELECT id, parent_id, content, position, meta FROM notes "
                "WHERE project_id = ? ORDER BY position",
                (project_id,),
            ).fetchall()
        except sqlite3.Error as e:
            msg = f"Could not load project {project_id!r}: {e}"
            raise PersistenceError(msg) from e
        return info, list(build_note_hierarchy(rows))

    def list_projects(self) -> list[ProjectInfo]:
        rows = self.conn.execute(
            "SELECT id, name, description, updated_at, note_count FROM projects ORDER BY name"
        ).fetchall()
        return [ProjectInfo(*row) for row in rows]

    def find_project(self, ref: str) -> ProjectInfo | None:
        """Resolve a project by ID or exact name."""
        row = self.conn.execute(
            "SELECT id, name, description, updated_at, note_count FROM projects "
            "WHERE id = ? OR name = ?",
            (ref, ref),
        ).fetchone()
        return ProjectInfo(*row) if row else None

    def _get_info(self, project_id: str) -> ProjectInfo | None:
        row = self.conn.execute(
            "SELECT id, name, description, updated_at, note_count FROM projects WHERE id = ?",
            (project_id,),
        ).fetchone()
        return ProjectInfo(*row) if row else None

    def _unique_name(self, name: str, *, exclude_id: str | None) -> str:
        taken = {
            row[0]
            for row in self.conn.execute(
                "SELECT name FROM projects WHERE id IS NOT ?", (exclude_id,)
            ).fetchall()
        }
        candidate = name
        count = 1
        while candidate in taken:
            count += 1
            candidate = f"{name} ({count})"
        return candidate
