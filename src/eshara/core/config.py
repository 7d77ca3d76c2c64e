"""Resolved runtime configuration handed to the engine."""
from __future__ import annotations

from dataclasses import dataclass

DEBUG_DELAY_CAP_SECONDS = 5


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Plain values resolved once at startup by the CLI layer.

    Nothing inside the engine re-reads the environment; every toggle flows
    through an instance of this class.
    """

    debug: bool = False
    language: str | None = None
    reset: bool = False
    debug_delay_cap_seconds: int = DEBUG_DELAY_CAP_SECONDS
