"""Configuration constants for outline-notes."""

import os
from pathlib import Path

# Directory with the project database. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/outline-notes").expanduser(),
    Path("~/.outline-notes").expanduser(),
    Path("~/.config/outline-notes").expanduser(),
]

# File name of the SQLite project store inside the data directory.
DATABASE_FILENAME: str = "projects.db"

# Seconds of quiet after the last mutation before the tree is saved.
SAVE_DEBOUNCE_SECONDS: float = float(os.environ.get("OUTLINE_NOTES_DEBOUNCE", "0.8"))

# Number of move records kept for undo.
UNDO_HISTORY_LIMIT: int = 20

# Characters of note content shown in undo/move descriptions.
LABEL_PREVIEW_CHARS: int = 15

# Label used for the top level of the tree in descriptions.
ROOT_LABEL: str = "top level"


def resolve_data_directory() -> Path:
    """Return the data directory: $OUTLINE_NOTES_DATA_DIR, else the first existing candidate.

    Falls back to the first candidate when none of them exist yet.
    """
    env_dir = os.environ.get("OUTLINE_NOTES_DATA_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]
