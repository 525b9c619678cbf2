"""Tests for database schema creation and migration."""

import sqlite3

from outline_notes.core.database.schema import (
    SCHEMA_VERSION,
    create_schema,
    get_metadata,
    get_schema_version,
    migrate_schema,
    set_metadata,
)


def test_create_schema_creates_tables() -> None:
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    tables = {
        row[0]
        for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    }
    assert {"projects", "notes", "metadata"} <= tables


def test_schema_version_is_recorded() -> None:
    conn = sqlite3.connect(":memory:")
    assert get_schema_version(conn) is None
    create_schema(conn)
    assert get_schema_version(conn) == SCHEMA_VERSION


def test_migrate_schema_is_idempotent() -> None:
    conn = sqlite3.connect(":memory:")
    migrate_schema(conn)
    set_metadata(conn, "last_project_id", "p1")
    migrate_schema(conn)
    assert get_schema_version(conn) == SCHEMA_VERSION
    assert get_metadata(conn, "last_project_id") == "p1"


def test_metadata_roundtrip(db_conn: sqlite3.Connection) -> None:
    assert get_metadata(db_conn, "missing") is None
    set_metadata(db_conn, "key", "one")
    set_metadata(db_conn, "key", "two")
    assert get_metadata(db_conn, "key") == "two"
