from eshara.domain.state import HISTORY_LIMIT, GameState

from tests.helpers.fake_clock import DEFAULT_START


def test_history_is_capped_to_most_recent_entries() -> None:
    state = GameState(current_node_id="start", language="en")
    for index in range(HISTORY_LIMIT + 25):
        state.record("node", f"n{index}", DEFAULT_START)

    assert len(state.history) == HISTORY_LIMIT
    assert state.history[0].node_id == "n25"
    assert state.history[-1].node_id == f"n{HISTORY_LIMIT + 24}"
