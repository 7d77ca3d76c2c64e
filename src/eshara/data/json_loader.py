"""JSON document reading shared by the story repository and the save store."""
from __future__ import annotations

import json
from pathlib import Path

from .errors import DataLoadError


def load_json(path: Path, *, label: str = "story file") -> object:
    """Decode the JSON document at ``path``; ``label`` names it in errors."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DataLoadError(f"The {label} {path} does not exist.") from exc
    except OSError as exc:
        raise DataLoadError(f"The {label} {path} could not be read: {exc}") from exc

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise DataLoadError(
            f"The {label} {path} is not valid JSON (line {exc.lineno}, column {exc.colno}): {exc.msg}"
        ) from exc
