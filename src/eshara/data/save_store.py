"""File-system storage for the single save artifact."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

from eshara.data.errors import DataLoadError
from eshara.data.json_loader import load_json

logger = logging.getLogger(__name__)

CORRUPT_SUFFIX = ".corrupt"


class SaveStore:
    """Reads and atomically writes one JSON save file."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def read(self) -> Dict[str, Any] | None:
        """Return the stored payload, or None when no save exists."""
        if not self._path.exists():
            return None
        payload = load_json(self._path, label="save file")
        if not isinstance(payload, dict):
            raise DataLoadError(f"Save file {self._path} must contain a JSON object.")
        return payload

    def write(self, payload: Dict[str, Any]) -> None:
        """Write via a temp file and os.replace so a crash never truncates the save."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                delete=False,
                dir=self._path.parent,
                prefix=self._path.name,
                suffix=".tmp",
                encoding="utf-8",
            ) as tmp_file:
                tmp_path = Path(tmp_file.name)
                json.dump(payload, tmp_file, indent=2, sort_keys=True)
                tmp_file.write("\n")
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
            os.replace(str(tmp_path), str(self._path))
        except BaseException:
            if tmp_path is not None:
                try:
                    tmp_path.unlink()
                except OSError:
                    pass
            raise

    def delete(self) -> bool:
        """Delete the save if present; return True when a file was removed."""
        try:
            self._path.unlink()
        except FileNotFoundError:
            return False
        logger.info("Deleted save file %s", self._path)
        return True

    def quarantine(self) -> Path | None:
        """Move an unreadable save aside so a fresh session cannot overwrite it."""
        if not self._path.exists():
            return None
        target = self._quarantine_target()
        os.replace(str(self._path), str(target))
        logger.warning("Moved unreadable save %s to %s", self._path, target)
        return target

    def _quarantine_target(self) -> Path:
        """Return the first free ``.corrupt`` name; earlier copies are kept."""
        base = self._path.name + CORRUPT_SUFFIX
        target = self._path.with_name(base)
        index = 1
        while target.exists():
            target = self._path.with_name(f"{base}.{index}")
            index += 1
        return target
