"""CLI configuration helpers: per-user paths and startup flags."""
from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from eshara.core.config import RuntimeConfig

SAVE_FILENAME = "save.json"
DEBUG_ENV_VAR = "ESHARA_DEBUG"
STORY_ENV_VAR = "ESHARA_STORY"


@dataclass(frozen=True, slots=True)
class LaunchOptions:
    """Everything resolved from argv and the environment at startup."""

    runtime: RuntimeConfig
    story_path: Path | None = None
    save_path: Path | None = None


def get_user_data_dir(environ: Mapping[str, str] | None = None) -> Path:
    """Return the per-user data directory."""
    env = os.environ if environ is None else environ
    if os.name == "nt":
        base = env.get("APPDATA")
        if base:
            return Path(base) / "Eshara"
        return Path.home() / "Eshara"
    return Path.home() / ".config" / "eshara"


def get_save_path(environ: Mapping[str, str] | None = None) -> Path:
    """Return the fixed location of the save artifact."""
    return get_user_data_dir(environ) / SAVE_FILENAME


def _env_flag(value: str | None) -> bool:
    return value is not None and (value == "1" or value.lower() == "true")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="eshara", description="Play the story in a terminal.")
    parser.add_argument("--lang", dest="language", help="Language code, e.g. 'en' or 'fr'.")
    parser.add_argument("--debug", action="store_true", help="Shorten every delay to a few seconds.")
    parser.add_argument("--reset", action="store_true", help="Delete the save file and exit.")
    parser.add_argument("--story", type=Path, help="Path to a story.json overriding the bundled one.")
    parser.add_argument("--save", type=Path, help="Path of the save file.")
    return parser


def resolve_launch_options(
    argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None
) -> LaunchOptions:
    """Resolve CLI flags and environment once; the engine never re-reads them."""
    env = os.environ if environ is None else environ
    args = build_arg_parser().parse_args(argv)
    story_path = args.story
    if story_path is None and env.get(STORY_ENV_VAR):
        story_path = Path(env[STORY_ENV_VAR])
    runtime = RuntimeConfig(
        debug=args.debug or _env_flag(env.get(DEBUG_ENV_VAR)),
        language=args.language.lower() if args.language else None,
        reset=args.reset,
    )
    return LaunchOptions(runtime=runtime, story_path=story_path, save_path=args.save)
