from __future__ import annotations

import copy
import json
from pathlib import Path

from eshara.core.config import RuntimeConfig
from eshara.data.repositories import parse_story_document
from eshara.data.save_store import SaveStore
from eshara.domain.graph import StoryGraph
from eshara.services import GameEngine, SaveService, Scheduler, build_story_graph

from tests.helpers.fake_clock import FakeClock

_BASE_STORY = {
    "meta": {
        "title": {"en": "Test Story", "fr": "Histoire Test"},
        "start_node": "start",
        "default_language": "en",
        "languages": ["en", "fr"],
    },
    "stats": {
        "health": {"initial": 1, "min": 0, "max": 10},
        "trust": {"initial": 5, "min": 0, "max": 10},
    },
    "flags": {"met_elara": "Elara introduced herself."},
    "endings": {
        "good": {"title": {"en": "Safe", "fr": "Sauve"}, "category": "good"},
        "alone": {"title": "Alone", "category": "neutral"},
        "dead": {"title": "Gone Dark", "category": "death", "description": "The radio went silent."},
    },
    "death_check": {"stat": "health", "node": "end_dead"},
    "nodes": {
        "start": {
            "messages": [{"en": "Hello?", "fr": "Allo ?"}, "Is anyone there?"],
            "choices": [
                {
                    "label": {"en": "Wait for me.", "fr": "Attends-moi."},
                    "next": "waiting",
                    "effect": {"flags": ["met_elara"]},
                },
                {"label": "Run!", "next": "end_good", "effect": {"stats": {"health": -2}}},
                {"label": "Say the password.", "next": "end_good", "when": [{"flag": "met_elara"}]},
            ],
        },
        "waiting": {
            "messages": ["Hold on."],
            "delay": {"seconds": 300, "message": "Elara is away.", "next": "back"},
        },
        "back": {
            "messages": ["I'm back."],
            "branches": [
                {"when": {"stat": "trust", "min": 6}, "next": "end_good"},
                {"when": "default", "next": "doubt"},
            ],
        },
        "doubt": {
            "messages": ["Can I trust you?"],
            "refusal": {"stat": "trust", "min": 3, "next": "end_alone", "message": "No. I'm on my own."},
            "choices": [{"label": "Yes.", "next": "end_good", "effect": {"stats": {"trust": 1}}}],
        },
        "end_good": {"act": 5, "messages": ["We made it."], "ending": "good"},
        "end_alone": {"act": 5, "messages": ["Goodbye."], "ending": "alone"},
        "end_dead": {"act": 5, "messages": ["So tired..."], "ending": "dead"},
    },
}


def make_story() -> dict:
    """Return a fresh copy of a small story touching every node shape."""
    return copy.deepcopy(_BASE_STORY)


def build_graph(raw: dict | None = None) -> StoryGraph:
    return build_story_graph(parse_story_document(raw if raw is not None else make_story()))


def write_story(path: Path, raw: dict | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(raw if raw is not None else make_story()), encoding="utf-8")
    return path


def make_engine(
    tmp_path: Path,
    raw: dict | None = None,
    *,
    clock: FakeClock | None = None,
    config: RuntimeConfig | None = None,
    max_auto_steps: int | None = None,
) -> tuple[GameEngine, SaveService, FakeClock]:
    graph = build_graph(raw)
    save_service = SaveService(graph=graph, store=SaveStore(tmp_path / "save.json"))
    clock = clock or FakeClock()
    kwargs = {} if max_auto_steps is None else {"max_auto_steps": max_auto_steps}
    engine = GameEngine(
        graph,
        save_service,
        scheduler=Scheduler(config),
        clock=clock,
        **kwargs,
    )
    return engine, save_service, clock
