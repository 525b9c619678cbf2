"""MCP server exposing the outline-notes editor as tools."""

import asyncio
import contextlib
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from outline_notes.config import DATABASE_FILENAME, resolve_data_directory
from outline_notes.core.database.schema import get_metadata, migrate_schema, set_metadata
from outline_notes.core.database.store import SqliteProjectStore
from outline_notes.core.interchange import export_notes
from outline_notes.core.tree.navigation import depth_of, get_children, get_siblings
from outline_notes.editor import NotesEditor
from outline_notes.errors import PersistenceError

# Metadata key shared with the CLI for the default project
LAST_PROJECT_KEY = "last_project_id"

# Seconds between autosave ticks while the server runs
AUTOSAVE_POLL_SECONDS = 0.25

_EXPAND_ACTIONS = ("level", "all", "none", "more", "less", "toggle")


def _no_project() -> dict[str, Any]:
    return {"error": "No active project. Use notes_open_project_tool or notes_create_project_tool."}


# --- Core functions (testable without MCP context) ---


def notes_list_projects(store: SqliteProjectStore, editor: NotesEditor) -> dict[str, Any]:
    """List all projects with note counts."""
    rows = store.list_projects()
    current = editor.project.id if editor.project else None
    return {
        "projects": [{**asdict(p), "current": p.id == current} for p in rows],
        "count": len(rows),
    }


def notes_open_project(
    conn: sqlite3.Connection,
    store: SqliteProjectStore,
    editor: NotesEditor,
    *,
    project: str,
) -> dict[str, Any]:
    """Save the current project (if dirty) and load another one by name or ID."""
    info = store.find_project(project)
    if info is None:
        return {"error": f"Project '{project}' not found."}
    if editor.project is not None and editor.persistence.dirty:
        saved = editor.save_project()
        if not saved["success"]:
            return {"error": f"Could not save current project: {saved['error']}"}
    result = editor.load_project(info.id)
    if result["success"]:
        set_metadata(conn, LAST_PROJECT_KEY, info.id)
    return result


def notes_create_project(
    conn: sqlite3.Connection,
    editor: NotesEditor,
    *,
    name: str,
    description: str = "",
) -> dict[str, Any]:
    """Create a project and switch to it."""
    result = editor.create_project(name, description)
    if result["success"]:
        set_metadata(conn, LAST_PROJECT_KEY, result["project"]["id"])
    return result


def notes_show(
    editor: NotesEditor,
    *,
    note_id: str | None = None,
    level: int | None = None,
    max_depth: int | None = None,
    output_format: str = "outline",
) -> dict[str, Any]:
    """Show the tree (or one subtree) as an outline or as JSON.

    Args:
        note_id: Start note; None shows the whole project.
        level: Expand to this level first (None keeps the current expansion).
        max_depth: Max levels below the start note to include.
        output_format: "outline" or "json".
    """
    if editor.project is None:
        return _no_project()
    if note_id is not None and note_id not in editor.snapshot:
        return {"error": f"Note '{note_id}' not found."}

    if output_format == "json":
        notes = editor.notes if note_id is None else (editor.snapshot.subtree(note_id),)
        return {"project": editor.project.name, **export_notes(notes)}

    if level is not None:
        editor.expand_to_level(level)
    outline = editor.render(note_id=note_id, max_depth=max_depth, show_ids=True)
    return {
        "project": editor.project.name,
        "content": outline,
        "level": editor.current_level,
        "max_depth": editor.max_depth,
        "note_count": len(editor.snapshot),
    }


def notes_get_note(
    editor: NotesEditor,
    *,
    note_id: str,
    sibling_count: int = 3,
    child_limit: int = 20,
) -> dict[str, Any]:
    """Select a note and return it with breadcrumbs, siblings and children."""
    selected = editor.select_note(note_id)
    if not selected["success"]:
        return {"error": selected["error"]}

    snapshot = editor.snapshot
    note = snapshot.get(note_id)
    before, after = get_siblings(snapshot, note_id, count=sibling_count)
    children = get_children(snapshot, note_id, limit=child_limit)
    return {
        "note": {
            "id": note.id,
            "content": note.content,
            "position": note.position,
            "depth": depth_of(snapshot, note_id),
            "is_discussion": note.is_discussion,
            "url": note.url,
            "url_display_text": note.url_display_text,
            "youtube_url": note.youtube_url,
            "time_set": note.time_set,
            "image_count": len(note.images),
            "child_count": len(snapshot.children_of(note_id)),
        },
        "breadcrumbs": " > ".join(b.content[:40] for b in editor.breadcrumbs),
        "siblings_before": [{"id": s.id, "content": s.content[:80]} for s in before],
        "siblings_after": [{"id": s.id, "content": s.content[:80]} for s in after],
        "children": [
            {"id": c.id, "content": c.content[:80], "child_count": len(snapshot.children_of(c.id))}
            for c in children
        ],
    }


# --- Write core functions ---


def notes_add(
    editor: NotesEditor,
    *,
    content: str = "",
    parent_id: str | None = None,
    position: int | None = None,
) -> dict[str, Any]:
    """Add a note under a parent (or at the top level).

    Args:
        content: Content for the new note.
        parent_id: Parent note ID (None = top level).
        position: Index among siblings (None = end at top level, first under a parent).
    """
    if editor.project is None:
        return _no_project()
    result = editor.add_note(parent_id, position)
    if result["success"] and content:
        updated = editor.update_note(result["note_id"], content=content)
        if not updated["success"]:
            return updated
    return result


def notes_update(
    editor: NotesEditor,
    *,
    note_id: str,
    content: str | None = None,
    url: str | None = None,
    url_display_text: str | None = None,
    youtube_url: str | None = None,
    time_set: str | None = None,
    is_discussion: bool | None = None,
) -> dict[str, Any]:
    """Edit a note's fields; fields left as None are kept."""
    if editor.project is None:
        return _no_project()
    candidates = {
        "content": content,
        "url": url,
        "url_display_text": url_display_text,
        "youtube_url": youtube_url,
        "time_set": time_set,
        "is_discussion": is_discussion,
    }
    fields = {k: v for k, v in candidates.items() if v is not None}
    if not fields:
        return {"success": False, "error": "No fields to update."}
    return editor.update_note(note_id, **fields)


def notes_delete(
    editor: NotesEditor,
    *,
    note_id: str,
    keep_children: bool = False,
) -> dict[str, Any]:
    """Delete a note; with keep_children its children take its place."""
    if editor.project is None:
        return _no_project()
    return editor.delete_note(note_id, cascade=not keep_children)


def notes_move(
    editor: NotesEditor,
    *,
    note_id: str,
    parent_id: str | None = None,
    position: int | None = None,
) -> dict[str, Any]:
    """Move a note with its subtree; the move can be undone with notes_undo."""
    if editor.project is None:
        return _no_project()
    result = editor.move_note(note_id, parent_id, position)
    if result["success"]:
        result["undo"] = editor.get_undo_description()
    return result


def notes_undo(editor: NotesEditor) -> dict[str, Any]:
    """Undo the most recent move."""
    result = editor.undo_last_action()
    if result["success"]:
        result["can_undo"] = editor.can_undo
        result["next_undo"] = editor.get_undo_description()
    return result


def notes_expand(
    editor: NotesEditor,
    *,
    action: str,
    level: int | None = None,
    note_id: str | None = None,
) -> dict[str, Any]:
    """Change which notes are expanded.

    Args:
        action: "level", "all", "none", "more", "less" or "toggle".
        level: Target level for action="level".
        note_id: Note to flip for action="toggle".
    """
    if action == "level":
        if level is None:
            return {"success": False, "error": "action 'level' needs a level."}
        return editor.expand_to_level(level)
    if action == "all":
        return editor.expand_all()
    if action == "none":
        return editor.collapse_all()
    if action == "more":
        return editor.expand_one_more()
    if action == "less":
        return editor.collapse_one()
    if action == "toggle":
        if note_id is None:
            return {"success": False, "error": "action 'toggle' needs a note_id."}
        return editor.toggle_expand(note_id)
    return {"success": False, "error": f"Unknown action {action!r}, use one of {_EXPAND_ACTIONS}."}


def notes_save(editor: NotesEditor) -> dict[str, Any]:
    """Save the active project now."""
    return editor.save_project()


def notes_import(editor: NotesEditor, *, data: dict[str, Any]) -> dict[str, Any]:
    """Replace the active project's notes with imported ones."""
    if editor.project is None:
        return _no_project()
    return editor.import_notes(data)


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    conn: sqlite3.Connection
    store: SqliteProjectStore
    editor: NotesEditor
    data_dir: Path


def _open_last_project(conn: sqlite3.Connection, editor: NotesEditor) -> None:
    project_id = get_metadata(conn, LAST_PROJECT_KEY)
    if project_id is None:
        return
    result = editor.load_project(project_id)
    if not result["success"]:
        logger.warning("Could not reopen last project {}: {}", project_id, result["error"])


async def _autosave_loop(editor: NotesEditor, interval: float = AUTOSAVE_POLL_SECONDS) -> None:
    """Tick the editor forever; a failing tick is logged and the loop goes on."""
    while True:
        await asyncio.sleep(interval)
        try:
            editor.tick()
        except Exception:
            logger.exception("Autosave tick failed")


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Open database and editor on startup; save and close on shutdown."""
    data_dir = resolve_data_directory()
    data_dir.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(data_dir / DATABASE_FILENAME))
    migrate_schema(conn)

    store = SqliteProjectStore(conn)
    editor = NotesEditor(store)
    _open_last_project(conn, editor)
    autosave = asyncio.create_task(_autosave_loop(editor))
    try:
        yield ServerContext(conn=conn, store=store, editor=editor, data_dir=data_dir)
    finally:
        autosave.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await autosave
        try:
            if editor.project is not None and editor.persistence.dirty:
                try:
                    editor.persistence.flush()
                except PersistenceError as e:
                    logger.error("Final save failed: {}", e)
        finally:
            conn.close()


mcp_server = FastMCP(
    "outline-notes",
    instructions="""\
outline-notes is a tree-structured outliner. A project holds a tree of notes;
every note can have children, which can have children of their own.

## Workflow

1. Call notes_list_projects_tool, then notes_open_project_tool (or
   notes_create_project_tool).
2. Call notes_show_tool to see the outline. Every line ends with the note's
   [id]; use those IDs for the write tools.
3. Use level=1 or 2 on large projects; collapsed notes show
   "... (N more children, id=...)".

## Tips
- notes_move_tool moves a note with its whole subtree; notes_undo_tool
  reverts the most recent moves (up to 20).
- Changes are saved automatically shortly after each edit.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def notes_list_projects_tool(ctx: Context) -> dict[str, Any]:
    """List all projects with their note counts."""
    c = _ctx(ctx)
    return notes_list_projects(c.store, c.editor)


@mcp_server.tool()
async def notes_open_project_tool(ctx: Context, project: str) -> dict[str, Any]:
    """Open a project by name or ID. Unsaved changes of the current one are saved first.

    Args:
        project: Project name or ID.
    """
    c = _ctx(ctx)
    return notes_open_project(c.conn, c.store, c.editor, project=project)


@mcp_server.tool()
async def notes_create_project_tool(
    ctx: Context,
    name: str,
    description: str = "",
) -> dict[str, Any]:
    """Create a new, empty project and open it.

    Args:
        name: Project name (made unique if taken).
        description: Optional description.
    """
    c = _ctx(ctx)
    return notes_create_project(c.conn, c.editor, name=name, description=description)


@mcp_server.tool()
async def notes_show_tool(
    ctx: Context,
    note_id: str | None = None,
    level: int | None = None,
    max_depth: int | None = None,
    output_format: str = "outline",
) -> dict[str, Any]:
    """Show the active project's notes.

    Args:
        note_id: Show only this note and its subtree.
        level: Expand to this level first (0 = only top-level notes).
        max_depth: Max levels below the start note.
        output_format: "outline" (readable, with IDs) or "json".
    """
    return notes_show(
        _ctx(ctx).editor,
        note_id=note_id,
        level=level,
        max_depth=max_depth,
        output_format=output_format,
    )


@mcp_server.tool()
async def notes_get_note_tool(
    ctx: Context,
    note_id: str,
    sibling_count: int = 3,
    child_limit: int = 20,
) -> dict[str, Any]:
    """Get a note with breadcrumbs, siblings and children.

    Args:
        note_id: Note ID.
        sibling_count: Siblings before/after to include.
        child_limit: Max direct children to show.
    """
    return notes_get_note(
        _ctx(ctx).editor, note_id=note_id, sibling_count=sibling_count, child_limit=child_limit
    )


@mcp_server.tool()
async def notes_add_tool(
    ctx: Context,
    content: str = "",
    parent_id: str | None = None,
    position: int | None = None,
) -> dict[str, Any]:
    """Add a note.

    Args:
        content: Content for the new note.
        parent_id: Parent note ID (omit for top level).
        position: Index among siblings (omit: end at top level, first under a parent).
    """
    return notes_add(_ctx(ctx).editor, content=content, parent_id=parent_id, position=position)


@mcp_server.tool()
async def notes_update_tool(
    ctx: Context,
    note_id: str,
    content: str | None = None,
    url: str | None = None,
    url_display_text: str | None = None,
    youtube_url: str | None = None,
    time_set: str | None = None,
    is_discussion: bool | None = None,
) -> dict[str, Any]:
    """Edit a note. Omitted fields keep their values; children are never touched.

    Args:
        note_id: Note ID to edit.
        content: New content text.
        url: Link URL.
        url_display_text: Display text for the link.
        youtube_url: YouTube video URL.
        time_set: Time marker.
        is_discussion: Discussion flag.
    """
    return notes_update(
        _ctx(ctx).editor,
        note_id=note_id,
        content=content,
        url=url,
        url_display_text=url_display_text,
        youtube_url=youtube_url,
        time_set=time_set,
        is_discussion=is_discussion,
    )


@mcp_server.tool()
async def notes_delete_tool(
    ctx: Context,
    note_id: str,
    keep_children: bool = False,
) -> dict[str, Any]:
    """Delete a note and its subtree, or only the note with keep_children=true.

    Args:
        note_id: Note ID to delete.
        keep_children: Move the children into the deleted note's place.
    """
    return notes_delete(_ctx(ctx).editor, note_id=note_id, keep_children=keep_children)


@mcp_server.tool()
async def notes_move_tool(
    ctx: Context,
    note_id: str,
    parent_id: str | None = None,
    position: int | None = None,
) -> dict[str, Any]:
    """Move a note with its subtree. A note can't be moved into its own subtree.

    Args:
        note_id: Note ID to move.
        parent_id: New parent note ID (omit for top level).
        position: Index among the new siblings (omit for last).
    """
    return notes_move(_ctx(ctx).editor, note_id=note_id, parent_id=parent_id, position=position)


@mcp_server.tool()
async def notes_undo_tool(ctx: Context) -> dict[str, Any]:
    """Undo the most recent move."""
    return notes_undo(_ctx(ctx).editor)


@mcp_server.tool()
async def notes_expand_tool(
    ctx: Context,
    action: str,
    level: int | None = None,
    note_id: str | None = None,
) -> dict[str, Any]:
    """Expand or collapse notes for notes_show_tool.

    Args:
        action: "level", "all", "none", "more", "less" or "toggle".
        level: Target level for action="level".
        note_id: Note to flip for action="toggle".
    """
    return notes_expand(_ctx(ctx).editor, action=action, level=level, note_id=note_id)


@mcp_server.tool()
async def notes_save_tool(ctx: Context) -> dict[str, Any]:
    """Save the active project now."""
    return notes_save(_ctx(ctx).editor)


@mcp_server.tool()
async def notes_import_tool(ctx: Context, data: dict[str, Any]) -> dict[str, Any]:
    """Replace the active project's notes with exported data ({"notes": [...]}).

    Args:
        data: Exported notes; IDs are regenerated and images dropped.
    """
    return notes_import(_ctx(ctx).editor, data=data)


@mcp_server.tool()
async def notes_debug_tool(ctx: Context) -> dict[str, Any]:
    """Internal editor state (revision, expansion, undo, save status)."""
    return _ctx(ctx).editor.debug_info()


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from outline_notes.logging_config import configure_logging

    configure_logging(verbose=False)
    mcp_server.run(transport="stdio")
