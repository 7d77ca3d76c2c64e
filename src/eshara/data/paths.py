"""Helpers for resolving data file locations."""
from __future__ import annotations

import sys
from pathlib import Path

STORY_FILENAME = "story.json"


def get_definitions_path(base_path: Path | str | None = None) -> Path:
    """Return the directory containing the bundled story definition."""
    if base_path is not None:
        return Path(base_path)
    if getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS"):
        return Path(sys._MEIPASS) / "data" / "definitions"
    return Path(__file__).resolve().parent / "definitions"


def get_override_dir() -> Path:
    """Return the directory searched for an author-supplied story override."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path.cwd()


def resolve_story_path(explicit: Path | str | None = None) -> Path:
    """Pick the story file to load.

    An explicit path wins, then ``story.json`` beside the executable, then
    the copy bundled with the package.
    """
    if explicit is not None:
        return Path(explicit)
    override = get_override_dir() / STORY_FILENAME
    if override.is_file():
        return override
    return get_definitions_path() / STORY_FILENAME
