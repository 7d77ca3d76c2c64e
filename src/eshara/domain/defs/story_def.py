"""Story definition structures produced by the loader."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Union


@dataclass(frozen=True, slots=True)
class LocalizedText:
    """Opaque per-language text passed through to the presentation layer."""

    values: Mapping[str, str]
    default_language: str = "en"

    def get(self, language: str | None = None) -> str:
        """Return the text for ``language``, falling back to the default."""
        if language and language in self.values:
            return self.values[language]
        if self.default_language in self.values:
            return self.values[self.default_language]
        for value in self.values.values():
            return value
        return ""


@dataclass(frozen=True, slots=True)
class StatDef:
    id: str
    initial: int
    min: int
    max: int


@dataclass(frozen=True, slots=True)
class FlagDef:
    id: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class EndingDef:
    id: str
    title: LocalizedText
    category: str
    description: LocalizedText | None = None


@dataclass(frozen=True, slots=True)
class EffectDef:
    """Stat deltas and flags to set; flags are never unset by an effect."""

    stat_deltas: Mapping[str, int] = field(default_factory=dict)
    flags_set: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class StatCondition:
    """True when the stat lies inside the inclusive ``[min, max]`` window."""

    stat_id: str
    min: int | None = None
    max: int | None = None


@dataclass(frozen=True, slots=True)
class FlagCondition:
    flag_id: str
    is_set: bool = True


@dataclass(frozen=True, slots=True)
class DefaultCondition:
    """Always true."""


Condition = Union[StatCondition, FlagCondition, DefaultCondition]


@dataclass(frozen=True, slots=True)
class BranchRuleDef:
    condition: Condition
    next_node_id: str


@dataclass(frozen=True, slots=True)
class ChoiceDef:
    label: LocalizedText
    next_node_id: str
    effect: EffectDef | None = None
    conditions: tuple[Condition, ...] = ()


@dataclass(frozen=True, slots=True)
class DelayDef:
    seconds: int
    message: LocalizedText
    next_node_id: str


@dataclass(frozen=True, slots=True)
class RefusalDef:
    """Redirects an interactive node when a stat is below ``min_value``."""

    stat_id: str
    min_value: int
    next_node_id: str
    message: LocalizedText


@dataclass(frozen=True, slots=True)
class DeathCheckDef:
    stat_id: str
    override_node_id: str


@dataclass(slots=True)
class NodeDef:
    """Story node as authored; shape is checked by the validator."""

    id: str
    act: int = 1
    messages: List[LocalizedText] = field(default_factory=list)
    choices: List[ChoiceDef] = field(default_factory=list)
    on_enter: EffectDef | None = None
    branches: List[BranchRuleDef] | None = None
    delay: DelayDef | None = None
    ending_id: str | None = None
    refusal: RefusalDef | None = None


@dataclass(slots=True)
class StoryMeta:
    title: LocalizedText
    start_node_id: str
    default_language: str = "en"
    languages: List[str] = field(default_factory=lambda: ["en"])


@dataclass(slots=True)
class StoryDocument:
    """Fully parsed story document, not yet validated."""

    meta: StoryMeta
    stats: Dict[str, StatDef] = field(default_factory=dict)
    flags: Dict[str, FlagDef] = field(default_factory=dict)
    endings: Dict[str, EndingDef] = field(default_factory=dict)
    nodes: Dict[str, NodeDef] = field(default_factory=dict)
    death_check: DeathCheckDef | None = None
