"""Condition evaluation, branch resolution and the death check."""
from __future__ import annotations

from typing import Iterable, Sequence

from eshara.domain.defs import (
    BranchRuleDef,
    ChoiceDef,
    Condition,
    DeathCheckDef,
    DefaultCondition,
    FlagCondition,
    StatCondition,
)
from eshara.domain.state import GameState


class NoMatchingRuleError(LookupError):
    """Raised when no branch rule matches the current state."""


def evaluate_condition(condition: Condition, state: GameState) -> bool:
    """Return True if ``condition`` holds for ``state``. Never mutates state."""
    if isinstance(condition, DefaultCondition):
        return True
    if isinstance(condition, FlagCondition):
        return state.has_flag(condition.flag_id) == condition.is_set
    if isinstance(condition, StatCondition):
        value = state.stats.get(condition.stat_id)
        if value is None:
            return False
        if condition.min is not None and value < condition.min:
            return False
        if condition.max is not None and value > condition.max:
            return False
        return True
    raise TypeError(f"Unsupported condition type: {type(condition).__name__}")


def all_hold(conditions: Iterable[Condition], state: GameState) -> bool:
    return all(evaluate_condition(condition, state) for condition in conditions)


def resolve_branch(rules: Sequence[BranchRuleDef], state: GameState) -> str:
    """Return the next node id of the first rule whose condition holds."""
    for rule in rules:
        if evaluate_condition(rule.condition, state):
            return rule.next_node_id
    raise NoMatchingRuleError("No branch rule matched the current state.")


def available_choices(
    choices: Sequence[ChoiceDef], state: GameState
) -> list[tuple[int, ChoiceDef]]:
    """Return ``(authored_index, choice)`` pairs whose conditions all hold."""
    return [
        (index, choice)
        for index, choice in enumerate(choices)
        if all_hold(choice.conditions, state)
    ]


def check_death(death_check: DeathCheckDef | None, state: GameState) -> str | None:
    """Return the override node id when the vital stat is depleted."""
    if death_check is None:
        return None
    value = state.stats.get(death_check.stat_id)
    if value is not None and value <= 0:
        return death_check.override_node_id
    return None
