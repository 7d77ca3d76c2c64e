"""Shared type aliases for the core and domain layers."""
from typing import Literal

EngineStatus = Literal["awaiting_choice", "branching", "delaying", "terminal"]
HistoryKind = Literal["node", "choice", "refusal", "death", "ending"]
Severity = Literal["ERROR", "WARN"]

__all__ = ["EngineStatus", "HistoryKind", "Severity"]
