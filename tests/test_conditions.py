import pytest

from eshara.domain.conditions import (
    NoMatchingRuleError,
    available_choices,
    check_death,
    evaluate_condition,
    resolve_branch,
)
from eshara.domain.defs import (
    BranchRuleDef,
    ChoiceDef,
    DeathCheckDef,
    DefaultCondition,
    FlagCondition,
    LocalizedText,
    StatCondition,
)
from eshara.domain.state import GameState


def _state(**stats: int) -> GameState:
    return GameState(current_node_id="n", language="en", stats=dict(stats))


def test_stat_condition_bounds_are_inclusive() -> None:
    condition = StatCondition(stat_id="trust", min=3, max=5)

    assert evaluate_condition(condition, _state(trust=3))
    assert evaluate_condition(condition, _state(trust=5))
    assert not evaluate_condition(condition, _state(trust=2))
    assert not evaluate_condition(condition, _state(trust=6))


def test_flag_condition_checks_presence_or_absence() -> None:
    state = _state()
    state.flags.add("met_elara")

    assert evaluate_condition(FlagCondition(flag_id="met_elara"), state)
    assert not evaluate_condition(FlagCondition(flag_id="met_elara", is_set=False), state)
    assert evaluate_condition(FlagCondition(flag_id="other", is_set=False), state)


def test_first_matching_rule_wins() -> None:
    rules = [
        BranchRuleDef(condition=StatCondition(stat_id="trust", min=7), next_node_id="high"),
        BranchRuleDef(condition=StatCondition(stat_id="trust", min=3), next_node_id="mid"),
        BranchRuleDef(condition=DefaultCondition(), next_node_id="low"),
    ]

    assert resolve_branch(rules, _state(trust=9)) == "high"
    assert resolve_branch(rules, _state(trust=4)) == "mid"
    assert resolve_branch(rules, _state(trust=0)) == "low"


def test_resolution_is_deterministic_and_pure() -> None:
    rules = [
        BranchRuleDef(condition=FlagCondition(flag_id="a"), next_node_id="x"),
        BranchRuleDef(condition=DefaultCondition(), next_node_id="y"),
    ]
    state = _state(trust=4)
    results = {resolve_branch(rules, state) for _ in range(10)}

    assert results == {"y"}
    assert state.stats == {"trust": 4}
    assert state.flags == set()


def test_no_matching_rule_raises() -> None:
    rules = [BranchRuleDef(condition=FlagCondition(flag_id="a"), next_node_id="x")]
    with pytest.raises(NoMatchingRuleError):
        resolve_branch(rules, _state())


def test_available_choices_keep_authored_index() -> None:
    choices = [
        ChoiceDef(label=LocalizedText({"en": "A"}), next_node_id="a"),
        ChoiceDef(
            label=LocalizedText({"en": "B"}),
            next_node_id="b",
            conditions=(FlagCondition(flag_id="secret"),),
        ),
        ChoiceDef(label=LocalizedText({"en": "C"}), next_node_id="c"),
    ]

    assert [index for index, _ in available_choices(choices, _state())] == [0, 2]


def test_death_check_fires_at_zero_only() -> None:
    death_check = DeathCheckDef(stat_id="health", override_node_id="gone_dark")

    assert check_death(death_check, _state(health=0)) == "gone_dark"
    assert check_death(death_check, _state(health=1)) is None
    assert check_death(None, _state(health=0)) is None
