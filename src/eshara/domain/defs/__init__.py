"""Domain definition exports."""

from .story_def import (
    BranchRuleDef,
    ChoiceDef,
    Condition,
    DeathCheckDef,
    DefaultCondition,
    DelayDef,
    EffectDef,
    EndingDef,
    FlagCondition,
    FlagDef,
    LocalizedText,
    NodeDef,
    RefusalDef,
    StatCondition,
    StatDef,
    StoryDocument,
    StoryMeta,
)

__all__ = [
    "BranchRuleDef",
    "ChoiceDef",
    "Condition",
    "DeathCheckDef",
    "DefaultCondition",
    "DelayDef",
    "EffectDef",
    "EndingDef",
    "FlagCondition",
    "FlagDef",
    "LocalizedText",
    "NodeDef",
    "RefusalDef",
    "StatCondition",
    "StatDef",
    "StoryDocument",
    "StoryMeta",
]
