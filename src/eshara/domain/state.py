"""Domain-level state tracking."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Set

from eshara.core.types import HistoryKind

HISTORY_LIMIT = 500


@dataclass(slots=True)
class HistoryEntry:
    """One line of the play transcript, used to rebuild a backlog on resume."""

    kind: HistoryKind
    node_id: str
    at: datetime
    choice_index: int | None = None


@dataclass
class GameState:
    """Mutable state for a single play session."""

    current_node_id: str
    language: str
    stats: Dict[str, int] = field(default_factory=dict)
    flags: Set[str] = field(default_factory=set)
    pending_wake_at: datetime | None = None
    is_terminal: bool = False
    ending_id: str | None = None
    history: List[HistoryEntry] = field(default_factory=list)

    def has_flag(self, flag_id: str) -> bool:
        return flag_id in self.flags

    def record(
        self, kind: HistoryKind, node_id: str, at: datetime, choice_index: int | None = None
    ) -> None:
        """Append a transcript entry, dropping the oldest past the limit."""
        self.history.append(HistoryEntry(kind=kind, node_id=node_id, at=at, choice_index=choice_index))
        if len(self.history) > HISTORY_LIMIT:
            del self.history[: len(self.history) - HISTORY_LIMIT]
