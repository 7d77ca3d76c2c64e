"""Serialization helpers and the save/load facade."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, get_args

from eshara.core.types import HistoryKind
from eshara.data.errors import DataLoadError
from eshara.data.save_store import SaveStore
from eshara.domain.graph import DelayNode, StoryGraph
from eshara.domain.state import GameState, HistoryEntry
from eshara.services.errors import SaveLoadError, SaveWriteError

logger = logging.getLogger(__name__)

SavePayload = Dict[str, Any]
_VALID_HISTORY_KINDS: tuple[str, ...] = get_args(HistoryKind)


class SaveService:
    """Converts runtime state to/from a validated, versioned payload."""

    SAVE_VERSION = 1

    def __init__(self, *, graph: StoryGraph, store: SaveStore) -> None:
        self._graph = graph
        self._store = store

    @property
    def store(self) -> SaveStore:
        return self._store

    def save(self, state: GameState) -> None:
        """Persist ``state``; the previous save survives any failure."""
        try:
            self._store.write(self.serialize(state))
        except OSError as exc:
            raise SaveWriteError(f"Unable to write save file {self._store.path}: {exc}") from exc
        logger.debug("Saved state at node '%s'", state.current_node_id)

    def load(self) -> GameState | None:
        """Return the saved state, or None when no save exists.

        A save that exists but cannot be decoded raises SaveLoadError.
        """
        try:
            payload = self._store.read()
        except DataLoadError as exc:
            raise SaveLoadError(str(exc)) from exc
        if payload is None:
            return None
        return self.deserialize(payload)

    def reset(self) -> bool:
        """Delete the persisted save."""
        return self._store.delete()

    def quarantine(self) -> Path | None:
        return self._store.quarantine()

    def serialize(self, state: GameState) -> SavePayload:
        """Return a JSON-serializable payload for disk persistence."""
        return {
            "save_version": self.SAVE_VERSION,
            "metadata": self._build_metadata(state),
            "state": {
                "current_node_id": state.current_node_id,
                "language": state.language,
                "stats": dict(state.stats),
                "flags": sorted(state.flags),
                "pending_wake_at": _format_dt(state.pending_wake_at),
                "is_terminal": state.is_terminal,
                "ending_id": state.ending_id,
                "history": [
                    {
                        "kind": entry.kind,
                        "node_id": entry.node_id,
                        "at": _format_dt(entry.at),
                        "choice_index": entry.choice_index,
                    }
                    for entry in state.history
                ],
            },
        }

    def deserialize(self, payload: Mapping[str, Any]) -> GameState:
        """Rehydrate a GameState, checking it against the story graph."""
        if not isinstance(payload, Mapping):
            raise SaveLoadError("Save data must be a JSON object.")
        version = payload.get("save_version")
        if version != self.SAVE_VERSION:
            logger.warning("Rejecting save with version %r", version)
            raise SaveLoadError(f"Unsupported save version: {version!r}.")
        state_payload = payload.get("state")
        if not isinstance(state_payload, Mapping):
            raise SaveLoadError("Save data is missing the state section.")

        current_node_id = self._require_str(state_payload.get("current_node_id"), "state.current_node_id")
        self._validate_story_node(current_node_id)
        state = GameState(
            current_node_id=current_node_id,
            language=self._require_str(state_payload.get("language"), "state.language"),
        )
        state.stats = self._coerce_stats(state_payload.get("stats"))
        state.flags = self._coerce_flags(state_payload.get("flags"))
        state.pending_wake_at = self._coerce_optional_dt(
            state_payload.get("pending_wake_at"), "state.pending_wake_at"
        )
        is_terminal = state_payload.get("is_terminal", False)
        if not isinstance(is_terminal, bool):
            raise SaveLoadError("state.is_terminal must be a boolean.")
        state.is_terminal = is_terminal
        ending_id = state_payload.get("ending_id")
        if ending_id is not None:
            ending_id = self._require_str(ending_id, "state.ending_id")
            if ending_id not in self._graph.endings:
                raise SaveLoadError(f"Save references unknown ending '{ending_id}'.")
        state.ending_id = ending_id
        state.history = self._coerce_history(state_payload.get("history"))
        self._validate_consistency(state)
        return state

    def _build_metadata(self, state: GameState) -> Dict[str, Any]:
        return {
            "story_title": self._graph.meta.title.get(state.language),
            "current_node_id": state.current_node_id,
            "ending_id": state.ending_id,
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }

    def _validate_story_node(self, node_id: str) -> None:
        if node_id not in self._graph:
            raise SaveLoadError(f"Save references unknown story node '{node_id}'.")

    def _validate_consistency(self, state: GameState) -> None:
        if state.is_terminal and state.ending_id is None:
            raise SaveLoadError("Terminal save is missing its ending id.")
        if state.pending_wake_at is not None and not isinstance(
            self._graph.get(state.current_node_id), DelayNode
        ):
            raise SaveLoadError("Pending wake time set outside of a delay node.")

    def _coerce_stats(self, value: object) -> Dict[str, int]:
        if not isinstance(value, dict):
            raise SaveLoadError("state.stats must be an object.")
        stats: Dict[str, int] = {}
        for stat_id, stat_def in self._graph.stats.items():
            raw = value.get(stat_id, stat_def.initial)
            if isinstance(raw, bool) or not isinstance(raw, int):
                raise SaveLoadError(f"state.stats.{stat_id} must be an integer.")
            if not stat_def.min <= raw <= stat_def.max:
                raise SaveLoadError(f"state.stats.{stat_id} is out of bounds.")
            stats[stat_id] = raw
        unknown = sorted(set(value) - set(self._graph.stats))
        if unknown:
            raise SaveLoadError(f"Save references unknown stats: {', '.join(unknown)}.")
        return stats

    def _coerce_flags(self, value: object) -> set[str]:
        if not isinstance(value, list):
            raise SaveLoadError("state.flags must be a list.")
        flags = {self._require_str(entry, "state.flags[]") for entry in value}
        unknown = sorted(flags - set(self._graph.flags))
        if unknown:
            raise SaveLoadError(f"Save references unknown flags: {', '.join(unknown)}.")
        return flags

    def _coerce_history(self, value: object) -> List[HistoryEntry]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise SaveLoadError("state.history must be a list.")
        history: List[HistoryEntry] = []
        for index, entry in enumerate(value):
            context = f"state.history[{index}]"
            if not isinstance(entry, dict):
                raise SaveLoadError(f"{context} must be an object.")
            kind = entry.get("kind")
            if kind not in _VALID_HISTORY_KINDS:
                raise SaveLoadError(f"{context}.kind is invalid.")
            choice_index = entry.get("choice_index")
            if choice_index is not None and (
                isinstance(choice_index, bool) or not isinstance(choice_index, int)
            ):
                raise SaveLoadError(f"{context}.choice_index must be an integer.")
            at = self._coerce_optional_dt(entry.get("at"), f"{context}.at")
            if at is None:
                raise SaveLoadError(f"{context}.at is required.")
            history.append(
                HistoryEntry(
                    kind=kind,
                    node_id=self._require_str(entry.get("node_id"), f"{context}.node_id"),
                    at=at,
                    choice_index=choice_index,
                )
            )
        return history

    @staticmethod
    def _coerce_optional_dt(value: object, context: str) -> datetime | None:
        if value is None:
            return None
        if not isinstance(value, str):
            raise SaveLoadError(f"{context} must be an ISO-8601 string.")
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as exc:
            raise SaveLoadError(f"{context} is not a valid timestamp.") from exc
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    @staticmethod
    def _require_str(value: object, context: str) -> str:
        if not isinstance(value, str):
            raise SaveLoadError(f"{context} must be a string.")
        return value


def _format_dt(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
