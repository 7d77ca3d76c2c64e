"""Pure helpers for applying story effects to game state."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping

from eshara.domain.defs import EffectDef, StatDef
from eshara.domain.state import GameState


@dataclass(slots=True)
class EffectResult:
    """Summary of what an effect actually changed."""

    stat_changes: Dict[str, tuple[int, int]] = field(default_factory=dict)
    flags_added: List[str] = field(default_factory=list)

    @property
    def had_effect(self) -> bool:
        return bool(self.stat_changes or self.flags_added)


def clamp(value: int, minimum: int, maximum: int) -> int:
    return max(minimum, min(maximum, value))


def apply_effect(
    effect: EffectDef | None,
    state: GameState,
    stat_defs: Mapping[str, StatDef],
) -> EffectResult:
    """Apply stat deltas and flag sets to ``state`` in place.

    Stat values are clamped to their declared bounds; flags are only ever
    added. References are trusted, the graph has been validated.
    """

    result = EffectResult()
    if effect is None:
        return result

    for stat_id, delta in effect.stat_deltas.items():
        stat_def = stat_defs[stat_id]
        before = state.stats.get(stat_id, stat_def.initial)
        after = clamp(before + delta, stat_def.min, stat_def.max)
        state.stats[stat_id] = after
        if after != before:
            result.stat_changes[stat_id] = (before, after)

    for flag_id in effect.flags_set:
        if flag_id not in state.flags:
            state.flags.add(flag_id)
            result.flags_added.append(flag_id)

    return result
