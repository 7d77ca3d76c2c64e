"""Validated, read-only story graph with one variant per node shape."""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Union

from eshara.domain.defs import (
    BranchRuleDef,
    ChoiceDef,
    DeathCheckDef,
    DelayDef,
    EffectDef,
    EndingDef,
    FlagDef,
    LocalizedText,
    RefusalDef,
    StatDef,
    StoryMeta,
)


@dataclass(frozen=True, slots=True)
class GraphNode:
    id: str
    act: int
    messages: tuple[LocalizedText, ...]
    on_enter: EffectDef | None


@dataclass(frozen=True, slots=True)
class InteractiveNode(GraphNode):
    choices: tuple[ChoiceDef, ...]
    refusal: RefusalDef | None


@dataclass(frozen=True, slots=True)
class BranchingNode(GraphNode):
    rules: tuple[BranchRuleDef, ...]


@dataclass(frozen=True, slots=True)
class DelayNode(GraphNode):
    delay: DelayDef


@dataclass(frozen=True, slots=True)
class TerminalNode(GraphNode):
    ending_id: str


StoryNode = Union[InteractiveNode, BranchingNode, DelayNode, TerminalNode]


class StoryGraph:
    """Trusted story graph; only the validator should construct one."""

    def __init__(
        self,
        *,
        meta: StoryMeta,
        stats: Mapping[str, StatDef],
        flags: Mapping[str, FlagDef],
        endings: Mapping[str, EndingDef],
        nodes: Mapping[str, StoryNode],
        death_check: DeathCheckDef | None,
    ) -> None:
        self.meta = meta
        self.stats = MappingProxyType(dict(stats))
        self.flags = MappingProxyType(dict(flags))
        self.endings = MappingProxyType(dict(endings))
        self.nodes = MappingProxyType(dict(nodes))
        self.death_check = death_check

    @property
    def start_node_id(self) -> str:
        return self.meta.start_node_id

    def get(self, node_id: str) -> StoryNode:
        """Return a node by id."""
        try:
            return self.nodes[node_id]
        except KeyError as exc:
            raise KeyError(node_id) from exc

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)
