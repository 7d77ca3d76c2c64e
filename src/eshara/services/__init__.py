"""Service layer exports."""

from .errors import InvalidChoiceError, SaveLoadError, SaveWriteError, StoryRuntimeError
from .game_engine import (
    ChoiceRefusedEvent,
    DeathCheckTriggeredEvent,
    DelayArmedEvent,
    DelayElapsedEvent,
    EndingReachedEvent,
    FlagSetEvent,
    GameEngine,
    NodeEnteredEvent,
    NodeView,
    SessionStart,
    StatChangedEvent,
    StoryEvent,
    TransitionResult,
)
from .save_service import SaveService
from .scheduler import Scheduler
from .story_graph_validator import Issue, build_story_graph, format_issue, validate_story

__all__ = [
    "ChoiceRefusedEvent",
    "DeathCheckTriggeredEvent",
    "DelayArmedEvent",
    "DelayElapsedEvent",
    "EndingReachedEvent",
    "FlagSetEvent",
    "GameEngine",
    "InvalidChoiceError",
    "Issue",
    "NodeEnteredEvent",
    "NodeView",
    "SaveLoadError",
    "SaveService",
    "SaveWriteError",
    "Scheduler",
    "SessionStart",
    "StatChangedEvent",
    "StoryEvent",
    "StoryRuntimeError",
    "TransitionResult",
    "build_story_graph",
    "format_issue",
    "validate_story",
]
