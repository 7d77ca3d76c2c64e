"""Story state machine that drives the validated graph."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import List

from eshara.core.clock import Clock, SystemClock
from eshara.core.types import EngineStatus
from eshara.domain.conditions import (
    NoMatchingRuleError,
    available_choices,
    check_death,
    resolve_branch,
)
from eshara.domain.defs import EffectDef
from eshara.domain.effects import apply_effect
from eshara.domain.graph import (
    BranchingNode,
    DelayNode,
    InteractiveNode,
    StoryGraph,
    StoryNode,
    TerminalNode,
)
from eshara.domain.state import GameState
from eshara.services.errors import InvalidChoiceError, SaveLoadError, StoryRuntimeError
from eshara.services.save_service import SaveService
from eshara.services.scheduler import Scheduler

logger = logging.getLogger(__name__)

MAX_AUTO_STEPS = 100


@dataclass(slots=True)
class NodeView:
    """Data returned to the presentation layer for rendering."""

    node_id: str
    act: int
    status: EngineStatus
    messages: List[str]
    choices: List[str]
    wake_at: datetime | None = None
    remaining: timedelta | None = None
    wait_message: str | None = None
    ending_id: str | None = None
    ending_title: str | None = None
    ending_category: str | None = None


@dataclass(slots=True)
class StoryEvent:
    """Base class for story events."""


@dataclass(slots=True)
class NodeEnteredEvent(StoryEvent):
    node_id: str


@dataclass(slots=True)
class StatChangedEvent(StoryEvent):
    stat_id: str
    old_value: int
    new_value: int


@dataclass(slots=True)
class FlagSetEvent(StoryEvent):
    flag_id: str


@dataclass(slots=True)
class DeathCheckTriggeredEvent(StoryEvent):
    stat_id: str
    value: int
    override_node_id: str


@dataclass(slots=True)
class ChoiceRefusedEvent(StoryEvent):
    node_id: str
    refusal_node_id: str
    message: str


@dataclass(slots=True)
class DelayArmedEvent(StoryEvent):
    node_id: str
    wake_at: datetime


@dataclass(slots=True)
class DelayElapsedEvent(StoryEvent):
    node_id: str


@dataclass(slots=True)
class EndingReachedEvent(StoryEvent):
    node_id: str
    ending_id: str


@dataclass(slots=True)
class TransitionResult:
    """Result returned after any engine call that may move the story."""

    events: List[StoryEvent] = field(default_factory=list)
    visited: List[str] = field(default_factory=list)
    progressed: bool = False
    node_view: NodeView | None = None


@dataclass(slots=True)
class SessionStart:
    """Outcome of opening a play session from disk."""

    state: GameState
    resumed: bool
    load_error: str | None = None
    quarantined_path: Path | None = None


class GameEngine:
    """Application service that moves a GameState through the story graph.

    Every call returns to the caller instead of blocking: delays are polled
    with ``check_delay`` and choices arrive through ``choose``. Each
    completed transition is written through the save service.
    """

    def __init__(
        self,
        graph: StoryGraph,
        save_service: SaveService,
        *,
        scheduler: Scheduler | None = None,
        clock: Clock | None = None,
        max_auto_steps: int = MAX_AUTO_STEPS,
    ) -> None:
        self._graph = graph
        self._save_service = save_service
        self._scheduler = scheduler or Scheduler()
        self._clock = clock or SystemClock()
        self._max_auto_steps = max_auto_steps

    @property
    def graph(self) -> StoryGraph:
        return self._graph

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    def open_session(self, language: str | None = None) -> SessionStart:
        """Resume the saved game, or create a fresh state if there is none.

        A corrupt save is moved aside and reported on the result; it is
        never silently overwritten.
        """
        try:
            state = self._save_service.load()
        except SaveLoadError as exc:
            logger.warning("Save could not be loaded: %s", exc)
            quarantined = self._save_service.quarantine()
            return SessionStart(
                state=self.create_state(language),
                resumed=False,
                load_error=str(exc),
                quarantined_path=quarantined,
            )
        if state is None:
            return SessionStart(state=self.create_state(language), resumed=False)
        if language:
            state.language = language
        logger.info("Resumed save at node '%s'", state.current_node_id)
        return SessionStart(state=state, resumed=True)

    def create_state(self, language: str | None = None) -> GameState:
        """Return a fresh state positioned at the start node, not yet entered."""
        return GameState(
            current_node_id=self._graph.start_node_id,
            language=language or self._graph.meta.default_language,
            stats={stat_id: stat.initial for stat_id, stat in self._graph.stats.items()},
        )

    def start(self, state: GameState) -> TransitionResult:
        """Enter the start node of a freshly created state."""
        if state.history:
            raise StoryRuntimeError("Session has already been started.")
        result = TransitionResult(progressed=True)
        self._enter_node(state, state.current_node_id, result)
        result.node_view = self.get_current_view(state)
        return result

    def reset(self) -> bool:
        """Delete the persisted save; the caller decides whether to exit."""
        return self._save_service.reset()

    def status(self, state: GameState) -> EngineStatus:
        if state.is_terminal:
            return "terminal"
        if state.pending_wake_at is not None:
            return "delaying"
        node = self._node(state.current_node_id)
        if isinstance(node, InteractiveNode):
            return "awaiting_choice"
        if isinstance(node, BranchingNode):
            return "branching"
        if isinstance(node, DelayNode):
            return "delaying"
        return "terminal"

    def get_current_view(self, state: GameState) -> NodeView:
        """Return the view model for the currently active node."""
        node = self._node(state.current_node_id)
        status = self.status(state)
        lang = state.language
        view = NodeView(
            node_id=node.id,
            act=node.act,
            status=status,
            messages=[message.get(lang) for message in node.messages],
            choices=[],
        )
        if isinstance(node, InteractiveNode) and status == "awaiting_choice":
            view.choices = [choice.label.get(lang) for _, choice in available_choices(node.choices, state)]
        if isinstance(node, DelayNode):
            view.wait_message = node.delay.message.get(lang)
            if state.pending_wake_at is not None:
                view.wake_at = state.pending_wake_at
                view.remaining = self._scheduler.remaining(state.pending_wake_at, self._clock.now())
        if isinstance(node, TerminalNode):
            ending = self._graph.endings[node.ending_id]
            view.ending_id = ending.id
            view.ending_title = ending.title.get(lang)
            view.ending_category = ending.category
        return view

    def choose(self, state: GameState, choice_index: int) -> TransitionResult:
        """Apply the selected choice and advance the story.

        ``choice_index`` addresses the currently available choices, in the
        order shown by ``get_current_view``.
        """
        if self.status(state) != "awaiting_choice":
            raise InvalidChoiceError(
                f"Story node '{state.current_node_id}' is not waiting for a choice."
            )
        node = self._node(state.current_node_id)
        assert isinstance(node, InteractiveNode)
        offered = available_choices(node.choices, state)
        if not 0 <= choice_index < len(offered):
            raise InvalidChoiceError(
                f"Choice index {choice_index} is invalid for node '{node.id}'."
            )
        authored_index, selected = offered[choice_index]

        result = TransitionResult(progressed=True)
        now = self._clock.now()
        state.record("choice", node.id, now, choice_index=authored_index)
        logger.debug("Choice %d selected at node '%s'", authored_index, node.id)
        next_node_id = selected.next_node_id
        override = self._apply_and_check(selected.effect, state, result, node.id)
        if override is not None:
            next_node_id = override
        self._enter_node(state, next_node_id, result)
        result.node_view = self.get_current_view(state)
        return result

    def check_delay(self, state: GameState) -> TransitionResult:
        """Poll a pending delay; advance exactly once when it has elapsed.

        Nothing is mutated while the delay is still running, so the player
        may leave and come back later.
        """
        result = TransitionResult()
        wake_at = state.pending_wake_at
        if wake_at is None or state.is_terminal:
            result.node_view = self.get_current_view(state)
            return result
        if not self._scheduler.is_elapsed(wake_at, self._clock.now()):
            result.node_view = self.get_current_view(state)
            return result

        node = self._node(state.current_node_id)
        if not isinstance(node, DelayNode):
            raise StoryRuntimeError(
                f"Pending wake time set on non-delay node '{node.id}'."
            )
        state.pending_wake_at = None
        result.progressed = True
        result.events.append(DelayElapsedEvent(node_id=node.id))
        logger.debug("Delay at node '%s' elapsed", node.id)
        self._enter_node(state, node.delay.next_node_id, result)
        result.node_view = self.get_current_view(state)
        return result

    def _enter_node(self, state: GameState, node_id: str, result: TransitionResult) -> None:
        """Move state to the given node, applying auto-advance rules."""
        state.pending_wake_at = None
        next_node_id = node_id
        for _ in range(self._max_auto_steps):
            node = self._node(next_node_id)
            now = self._clock.now()
            state.current_node_id = node.id
            state.record("node", node.id, now)
            result.visited.append(node.id)
            result.events.append(NodeEnteredEvent(node_id=node.id))

            override = self._apply_and_check(node.on_enter, state, result, node.id)
            if override is not None:
                next_node_id = override
                continue

            if isinstance(node, TerminalNode):
                state.is_terminal = True
                state.ending_id = node.ending_id
                state.record("ending", node.id, now)
                result.events.append(EndingReachedEvent(node_id=node.id, ending_id=node.ending_id))
                logger.info("Ending '%s' reached at node '%s'", node.ending_id, node.id)
                self._persist(state)
                return

            if isinstance(node, BranchingNode):
                try:
                    next_node_id = resolve_branch(node.rules, state)
                except NoMatchingRuleError as exc:
                    raise StoryRuntimeError(
                        f"No branch rule matched at node '{node.id}'."
                    ) from exc
                continue

            if isinstance(node, DelayNode):
                wake_at = self._scheduler.arm(node.delay, now)
                state.pending_wake_at = wake_at
                result.events.append(DelayArmedEvent(node_id=node.id, wake_at=wake_at))
                logger.debug("Delay armed at node '%s' until %s", node.id, wake_at.isoformat())
                self._persist(state)
                return

            refusal = node.refusal
            if refusal is not None and state.stats[refusal.stat_id] < refusal.min_value:
                message = refusal.message.get(state.language)
                state.record("refusal", node.id, now)
                result.events.append(
                    ChoiceRefusedEvent(
                        node_id=node.id, refusal_node_id=refusal.next_node_id, message=message
                    )
                )
                logger.info("Choices at node '%s' refused; routing to '%s'", node.id, refusal.next_node_id)
                next_node_id = refusal.next_node_id
                continue

            if not available_choices(node.choices, state):
                raise StoryRuntimeError(f"Story node '{node.id}' offers no available choices.")
            self._persist(state)
            return

        raise StoryRuntimeError(
            f"Auto-advance exceeded {self._max_auto_steps} steps starting at node '{node_id}'."
        )

    def _apply_and_check(
        self,
        effect: EffectDef | None,
        state: GameState,
        result: TransitionResult,
        node_id: str,
    ) -> str | None:
        """Apply ``effect`` then run the death check; return an override node id.

        The death check runs on every transition, with or without an effect.
        """
        applied = apply_effect(effect, state, self._graph.stats)
        for stat_id, (old_value, new_value) in applied.stat_changes.items():
            result.events.append(StatChangedEvent(stat_id=stat_id, old_value=old_value, new_value=new_value))
        for flag_id in applied.flags_added:
            result.events.append(FlagSetEvent(flag_id=flag_id))

        death_check = self._graph.death_check
        override = check_death(death_check, state)
        if override is None or override == node_id:
            return None
        assert death_check is not None
        value = state.stats[death_check.stat_id]
        state.record("death", override, self._clock.now())
        result.events.append(
            DeathCheckTriggeredEvent(stat_id=death_check.stat_id, value=value, override_node_id=override)
        )
        logger.info(
            "Death check triggered at node '%s' (%s=%d); routing to '%s'",
            node_id,
            death_check.stat_id,
            value,
            override,
        )
        return override

    def _node(self, node_id: str) -> StoryNode:
        try:
            return self._graph.get(node_id)
        except KeyError as exc:
            raise StoryRuntimeError(f"Story node '{node_id}' does not exist.") from exc

    def _persist(self, state: GameState) -> None:
        self._save_service.save(state)
