"""CLI for outline-notes (projects, editing, import/export, MCP server)."""

import json
import sqlite3
from pathlib import Path
from typing import Annotated, Any

import typer
from loguru import logger

from outline_notes.config import DATABASE_FILENAME, resolve_data_directory
from outline_notes.core.database.schema import get_metadata, migrate_schema, set_metadata
from outline_notes.core.database.store import SqliteProjectStore
from outline_notes.core.interchange import note_to_dict
from outline_notes.editor import NotesEditor
from outline_notes.logging_config import configure_logging

app = typer.Typer(help="outline-notes: edit hierarchical note outlines from the terminal.")

# Metadata key remembering the project used when --project is omitted
LAST_PROJECT_KEY = "last_project_id"

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Directory with the project database"),
]
ProjectOption = Annotated[
    str | None,
    typer.Option("--project", "-p", help="Project name or ID (default: last used)"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


def _open_db(data_dir: Path | None) -> sqlite3.Connection:
    """Open (and create or migrate) the project database."""
    dst = data_dir or resolve_data_directory()
    dst.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(dst / DATABASE_FILENAME))
    migrate_schema(conn)
    return conn


def _open_editor(conn: sqlite3.Connection, project: str | None) -> NotesEditor:
    """Load a project into a fresh editor, exiting if it can't be found."""
    store = SqliteProjectStore(conn)
    ref = project or get_metadata(conn, LAST_PROJECT_KEY)
    if not ref:
        logger.error("No project selected. Pass --project or run 'create' first.")
        raise typer.Exit(1)
    info = store.find_project(ref)
    if info is None:
        typer.echo(f"Project '{ref}' not found.")
        raise typer.Exit(1)

    editor = NotesEditor(store)
    _check(editor.load_project(info.id))
    set_metadata(conn, LAST_PROJECT_KEY, info.id)
    return editor


def _check(result: dict[str, Any]) -> dict[str, Any]:
    if not result.get("success"):
        typer.echo(f"Error: {result.get('error', 'unknown error')}")
        raise typer.Exit(1)
    return result


def _save(editor: NotesEditor) -> None:
    _check(editor.save_project())


@app.command()
def projects(data_dir: DataDirOption = None) -> None:
    """List all projects."""
    conn = _open_db(data_dir)
    try:
        store = SqliteProjectStore(conn)
        rows = store.list_projects()
        current = get_metadata(conn, LAST_PROJECT_KEY)
        typer.echo(f"{len(rows)} projects:\n")
        for info in rows:
            marker = "*" if info.id == current else " "
            typer.echo(f"{marker} {info.name} - {info.note_count} notes  [id={info.id}]")
    finally:
        conn.close()


@app.command()
def create(
    name: str = typer.Argument(..., help="Project name"),
    description: str = typer.Option("", "--description", "-D", help="Project description"),
    data_dir: DataDirOption = None,
) -> None:
    """Create a project and make it the default."""
    conn = _open_db(data_dir)
    try:
        editor = NotesEditor(SqliteProjectStore(conn))
        result = _check(editor.create_project(name, description))
        project = result["project"]
        set_metadata(conn, LAST_PROJECT_KEY, project["id"])
        typer.echo(f"Created project '{project['name']}' [id={project['id']}]")
    finally:
        conn.close()


@app.command()
def show(
    project: ProjectOption = None,
    note_id: Annotated[
        str | None,
        typer.Option("--note", "-n", help="Show only this note and its subtree"),
    ] = None,
    level: Annotated[
        int | None,
        typer.Option("--level", "-l", help="Expand to this level (default: everything)"),
    ] = None,
    ids: bool = typer.Option(False, "--ids", "-i", help="Show note IDs"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
    data_dir: DataDirOption = None,
) -> None:
    """Show a project's notes as an outline."""
    conn = _open_db(data_dir)
    try:
        editor = _open_editor(conn, project)
        if note_id is not None and note_id not in editor.snapshot:
            typer.echo(f"Note '{note_id}' not found.")
            raise typer.Exit(1)

        if output_json:
            if note_id is None:
                data = editor.export_notes()
            else:
                data = {"notes": [note_to_dict(editor.snapshot.subtree(note_id))]}
            typer.echo(json.dumps(data, indent=2))
            return

        if level is None:
            editor.expand_all()
        else:
            editor.expand_to_level(level)
        text = editor.render(note_id=note_id, show_ids=ids)
        if text:
            typer.echo(text.rstrip("\n"))
        else:
            typer.echo("(no notes)")
    finally:
        conn.close()


@app.command()
def add(
    content: str = typer.Argument("", help="Content of the new note"),
    parent: Annotated[
        str | None,
        typer.Option("--parent", "-P", help="Parent note ID (default: top level)"),
    ] = None,
    position: Annotated[
        int | None,
        typer.Option("--position", help="Index among siblings (default: end, or first child)"),
    ] = None,
    project: ProjectOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Add a note."""
    conn = _open_db(data_dir)
    try:
        editor = _open_editor(conn, project)
        result = _check(editor.add_note(parent, position))
        if content:
            _check(editor.update_note(result["note_id"], content=content))
        _save(editor)
        typer.echo(f"Added note [id={result['note_id']}] at position {result['position']}")
    finally:
        conn.close()


@app.command()
def edit(
    note_id: str = typer.Argument(..., help="Note ID to edit"),
    content: Annotated[str | None, typer.Option("--content", "-c", help="New content")] = None,
    url: Annotated[str | None, typer.Option("--url", help="Link URL")] = None,
    url_text: Annotated[
        str | None, typer.Option("--url-text", help="Display text for the link")
    ] = None,
    youtube: Annotated[str | None, typer.Option("--youtube", help="YouTube URL")] = None,
    time_set: Annotated[str | None, typer.Option("--time", help="Time marker")] = None,
    discussion: Annotated[
        bool | None,
        typer.Option("--discussion/--no-discussion", help="Mark as discussion note"),
    ] = None,
    project: ProjectOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Edit fields of a note; omitted fields are kept."""
    fields: dict[str, Any] = {}
    if content is not None:
        fields["content"] = content
    if url is not None:
        fields["url"] = url or None
    if url_text is not None:
        fields["url_display_text"] = url_text or None
    if youtube is not None:
        fields["youtube_url"] = youtube or None
    if time_set is not None:
        fields["time_set"] = time_set or None
    if discussion is not None:
        fields["is_discussion"] = discussion
    if not fields:
        typer.echo("No fields to update.")
        raise typer.Exit(1)

    conn = _open_db(data_dir)
    try:
        editor = _open_editor(conn, project)
        _check(editor.update_note(note_id, **fields))
        _save(editor)
        typer.echo(f"Updated note [id={note_id}] ({', '.join(sorted(fields))})")
    finally:
        conn.close()


@app.command()
def delete(
    note_id: str = typer.Argument(..., help="Note ID to delete"),
    keep_children: bool = typer.Option(
        False, "--keep-children", "-k", help="Move children into the deleted note's place"
    ),
    project: ProjectOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Delete a note (and by default its subtree)."""
    conn = _open_db(data_dir)
    try:
        editor = _open_editor(conn, project)
        result = _check(editor.delete_note(note_id, cascade=not keep_children))
        _save(editor)
        typer.echo(f"Deleted {result['count']} note(s)")
    finally:
        conn.close()


@app.command()
def move(
    note_id: str = typer.Argument(..., help="Note ID to move"),
    parent: Annotated[
        str | None,
        typer.Option("--parent", "-P", help="New parent note ID (default: top level)"),
    ] = None,
    position: Annotated[
        int | None,
        typer.Option("--position", help="Index among the new siblings (default: end)"),
    ] = None,
    project: ProjectOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Move a note with its subtree under another parent."""
    conn = _open_db(data_dir)
    try:
        editor = _open_editor(conn, project)
        result = _check(editor.move_note(note_id, parent, position))
        if not result["moved"]:
            typer.echo("Note is already there.")
            return
        _save(editor)
        where = f"under {result['parent_id']}" if result["parent_id"] else "at top level"
        typer.echo(f"Moved note [id={note_id}] {where}, position {result['position']}")
    finally:
        conn.close()


@app.command(name="import")
def import_cmd(
    source: Path = typer.Argument(..., help="JSON file with {\"notes\": [...]}"),
    new_project: Annotated[
        str | None,
        typer.Option("--new", "-N", help="Create a new project with this name for the notes"),
    ] = None,
    project: ProjectOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Import notes from a JSON export, replacing the project's notes."""
    if not source.exists():
        logger.error("File not found: {}", source)
        raise typer.Exit(1)
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        typer.echo(f"Error: invalid JSON in {source}: {e}")
        raise typer.Exit(1) from e

    conn = _open_db(data_dir)
    try:
        if new_project:
            editor = NotesEditor(SqliteProjectStore(conn))
            created = _check(editor.create_project(new_project))
            set_metadata(conn, LAST_PROJECT_KEY, created["project"]["id"])
        else:
            editor = _open_editor(conn, project)
        result = _check(editor.import_notes(data))
        _save(editor)
        assert editor.project is not None
        typer.echo(f"Imported {result['count']} notes into '{editor.project.name}'")
    finally:
        conn.close()


@app.command()
def export(
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write to this file instead of stdout"),
    ] = None,
    project: ProjectOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Export a project's notes as JSON."""
    conn = _open_db(data_dir)
    try:
        editor = _open_editor(conn, project)
        text = json.dumps(editor.export_notes(), indent=2)
        if output is None:
            typer.echo(text)
        else:
            output.write_text(text + "\n", encoding="utf-8")
            typer.echo(f"Exported {len(editor.snapshot)} notes to {output}")
    finally:
        conn.close()


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from outline_notes.mcp.server import run_mcp_server

    run_mcp_server()
