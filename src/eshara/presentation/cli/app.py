"""Console-driven play loop for the story engine."""
from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Sequence

from eshara.core.config import RuntimeConfig
from eshara.data import resolve_story_path
from eshara.data.errors import DataError
from eshara.data.repositories import StoryRepository
from eshara.data.save_store import SaveStore
from eshara.domain.state import GameState
from eshara.presentation.cli import config
from eshara.services import (
    ChoiceRefusedEvent,
    GameEngine,
    NodeEnteredEvent,
    SaveService,
    SaveWriteError,
    Scheduler,
    TransitionResult,
    build_story_graph,
)

_POLL_SECONDS = 30
_DEBUG_POLL_SECONDS = 1


def main(argv: Sequence[str] | None = None) -> int:
    """Start the interactive CLI session and return a process exit code."""
    options = config.resolve_launch_options(argv)
    runtime = options.runtime
    logging.basicConfig(
        level=logging.DEBUG if runtime.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    store = SaveStore(options.save_path or config.get_save_path())

    if runtime.reset:
        removed = store.delete()
        print("Save deleted." if removed else "No save to delete.")
        return 0

    try:
        document = StoryRepository(story_path=resolve_story_path(options.story_path)).load()
        graph = build_story_graph(document)
    except DataError as exc:
        print(f"Unable to load story: {exc}")
        return 1

    if runtime.language and runtime.language not in graph.meta.languages:
        print(
            f"Unsupported language '{runtime.language}'. "
            f"Available: {', '.join(graph.meta.languages)}"
        )
        return 2

    engine = GameEngine(
        graph,
        SaveService(graph=graph, store=store),
        scheduler=Scheduler(runtime),
    )
    try:
        return _run_session(engine, runtime)
    except SaveWriteError as exc:
        print(f"Could not save progress: {exc}")
        return 1
    except KeyboardInterrupt:
        print("\nProgress saved. Goodbye!")
        return 0


def _run_session(engine: GameEngine, runtime: RuntimeConfig) -> int:
    session = engine.open_session(runtime.language)
    state = session.state
    print(f"=== {engine.graph.meta.title.get(state.language)} ===")
    if session.load_error:
        print(f"Your save could not be read ({session.load_error}).")
        if session.quarantined_path:
            print(f"It was kept at {session.quarantined_path}. Starting a new game.")
    if session.resumed:
        view = engine.get_current_view(state)
        _print_messages(view.messages)
    else:
        _render_result(engine, state, engine.start(state))

    while True:
        status = engine.status(state)
        if status == "terminal":
            view = engine.get_current_view(state)
            print(f"\n*** {view.ending_title} ***")
            return 0
        if status == "delaying":
            if not _wait_for_delay(engine, state, runtime):
                print("Progress saved. Come back later.")
                return 0
            continue
        view = engine.get_current_view(state)
        for index, label in enumerate(view.choices, start=1):
            print(f"  {index}. {label}")
        choice_index = _prompt_choice(len(view.choices))
        _render_result(engine, state, engine.choose(state, choice_index))


def _wait_for_delay(engine: GameEngine, state: GameState, runtime: RuntimeConfig) -> bool:
    """Offer to wait; poll until the delay passes. Returns False to quit."""
    view = engine.get_current_view(state)
    if view.wait_message:
        print(f"\n{view.wait_message}")
    print(f"Back in {_format_remaining(view.remaining)}.")
    print("  1. Wait")
    print("  2. Quit")
    if _prompt_choice(2) == 1:
        return False
    poll = _DEBUG_POLL_SECONDS if runtime.debug else _POLL_SECONDS
    while True:
        result = engine.check_delay(state)
        if result.progressed:
            print("\a", end="")
            _render_result(engine, state, result)
            return True
        remaining = result.node_view.remaining if result.node_view else None
        print(f"Waiting... ({_format_remaining(remaining)})")
        time.sleep(min(poll, max(remaining.total_seconds(), 0.1) if remaining else poll))


def _render_result(engine: GameEngine, state: GameState, result: TransitionResult) -> None:
    for event in result.events:
        if isinstance(event, NodeEnteredEvent):
            node = engine.graph.get(event.node_id)
            _print_messages([message.get(state.language) for message in node.messages])
        elif isinstance(event, ChoiceRefusedEvent) and event.message:
            print(f"\n{event.message}")


def _print_messages(messages: Sequence[str]) -> None:
    for message in messages:
        print(f"\n{message}")


def _format_remaining(remaining: timedelta | None) -> str:
    if remaining is None or remaining.total_seconds() <= 0:
        return "any moment now"
    total_minutes = int(remaining.total_seconds()) // 60
    hours, minutes = divmod(total_minutes, 60)
    if hours:
        return f"{hours}h {minutes}min"
    if minutes:
        return f"{minutes} minute{'s' if minutes > 1 else ''}"
    return "less than a minute"


def _prompt_choice(choice_count: int) -> int:
    while True:
        raw = input("Select an option: ").strip()
        try:
            index = int(raw) - 1
        except ValueError:
            print("Please enter a number.")
            continue
        if 0 <= index < choice_count:
            return index
        print(f"Please enter a value between 1 and {choice_count}.")
