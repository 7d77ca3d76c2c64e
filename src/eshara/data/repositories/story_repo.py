"""Repository for the story document."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List

from eshara.data import paths
from eshara.data.errors import DataValidationError
from eshara.data.repositories.base import RepositoryBase
from eshara.domain.defs import (
    BranchRuleDef,
    ChoiceDef,
    Condition,
    DeathCheckDef,
    DefaultCondition,
    DelayDef,
    EffectDef,
    EndingDef,
    FlagCondition,
    FlagDef,
    LocalizedText,
    NodeDef,
    RefusalDef,
    StatCondition,
    StatDef,
    StoryDocument,
    StoryMeta,
)

DEFAULT_VITAL_STAT = "health"


def parse_story_document(raw: dict[str, object]) -> StoryDocument:
    """Convert a decoded story JSON object into a typed StoryDocument."""
    return StoryRepository.parse_document(raw)


class StoryRepository(RepositoryBase[StoryDocument]):
    """Loads the story document and checks its structure.

    Only JSON shape is enforced here; references between nodes, stats,
    flags and endings are left to the story graph validator.
    """

    def __init__(self, base_path=None, *, story_path: Path | str | None = None) -> None:
        super().__init__(paths.STORY_FILENAME, base_path)
        self._story_path = Path(story_path) if story_path is not None else None

    def _get_file_path(self) -> Path:
        if self._story_path is not None:
            return self._story_path
        return super()._get_file_path()

    def _build(self, raw: dict[str, object]) -> StoryDocument:
        return self.parse_document(raw)

    @classmethod
    def parse_document(cls, raw: dict[str, object]) -> StoryDocument:
        meta_data = cls._require_mapping(raw.get("meta"), "meta")
        meta = cls._parse_meta(meta_data)
        lang = meta.default_language

        stats: Dict[str, StatDef] = {}
        for stat_id, payload in cls._optional_mapping(raw.get("stats"), "stats").items():
            stat_data = cls._require_mapping(payload, f"stat '{stat_id}'")
            stats[stat_id] = StatDef(
                id=stat_id,
                initial=cls._require_int(stat_data.get("initial"), f"stat '{stat_id}' initial"),
                min=cls._require_int(stat_data.get("min"), f"stat '{stat_id}' min"),
                max=cls._require_int(stat_data.get("max"), f"stat '{stat_id}' max"),
            )

        flags: Dict[str, FlagDef] = {}
        for flag_id, description in cls._optional_mapping(raw.get("flags"), "flags").items():
            flags[flag_id] = FlagDef(
                id=flag_id,
                description=cls._require_str(description, f"flag '{flag_id}' description"),
            )

        endings: Dict[str, EndingDef] = {}
        for ending_id, payload in cls._optional_mapping(raw.get("endings"), "endings").items():
            ctx = f"ending '{ending_id}'"
            ending_data = cls._require_mapping(payload, ctx)
            description = None
            if ending_data.get("description") is not None:
                description = cls._parse_text(ending_data["description"], f"{ctx} description", lang)
            endings[ending_id] = EndingDef(
                id=ending_id,
                title=cls._parse_text(ending_data.get("title"), f"{ctx} title", lang),
                category=cls._require_str(ending_data.get("category"), f"{ctx} category"),
                description=description,
            )

        death_check = None
        if raw.get("death_check") is not None:
            death_data = cls._require_mapping(raw["death_check"], "death_check")
            death_check = DeathCheckDef(
                stat_id=cls._require_str(
                    death_data.get("stat", DEFAULT_VITAL_STAT), "death_check stat"
                ),
                override_node_id=cls._require_str(death_data.get("node"), "death_check node"),
            )

        nodes: Dict[str, NodeDef] = {}
        problems: List[str] = []
        for node_id, payload in cls._require_mapping(raw.get("nodes"), "nodes").items():
            try:
                nodes[node_id] = cls._parse_node(node_id, payload, lang)
            except DataValidationError as exc:
                problems.append(str(exc))
        if problems:
            raise DataValidationError(
                f"{len(problems)} story node(s) are malformed:\n" + "\n".join(problems)
            )

        return StoryDocument(
            meta=meta,
            stats=stats,
            flags=flags,
            endings=endings,
            nodes=nodes,
            death_check=death_check,
        )

    @classmethod
    def _parse_meta(cls, meta_data: dict[str, object]) -> StoryMeta:
        default_language = cls._require_str(
            meta_data.get("default_language", "en"), "meta default_language"
        )
        raw_languages = meta_data.get("languages", [default_language])
        if not isinstance(raw_languages, list):
            raise DataValidationError("meta languages must be a list if provided.")
        languages = [
            cls._require_str(entry, f"meta languages[{index}]")
            for index, entry in enumerate(raw_languages)
        ]
        return StoryMeta(
            title=cls._parse_text(meta_data.get("title"), "meta title", default_language),
            start_node_id=cls._require_str(meta_data.get("start_node"), "meta start_node"),
            default_language=default_language,
            languages=languages,
        )

    @classmethod
    def _parse_node(cls, node_id: str, payload: object, lang: str) -> NodeDef:
        ctx = f"story node '{node_id}'"
        node_data = cls._require_mapping(payload, ctx)
        act = cls._require_int(node_data.get("act", 1), f"{ctx} act")

        raw_messages = node_data.get("messages", [])
        if not isinstance(raw_messages, list):
            raise DataValidationError(f"{ctx} messages must be a list if provided.")
        messages = [
            cls._parse_text(entry, f"{ctx} messages[{index}]", lang)
            for index, entry in enumerate(raw_messages)
        ]

        on_enter = cls._parse_effect(node_data.get("on_enter"), f"{ctx} on_enter")
        choices = cls._parse_choices(node_data.get("choices"), ctx, lang)

        branches = None
        if "branches" in node_data:
            branches = cls._parse_branches(node_data["branches"], f"{ctx} branches")

        delay = None
        if node_data.get("delay") is not None:
            delay_data = cls._require_mapping(node_data["delay"], f"{ctx} delay")
            delay = DelayDef(
                seconds=cls._require_int(delay_data.get("seconds"), f"{ctx} delay seconds"),
                message=cls._parse_text(delay_data.get("message", ""), f"{ctx} delay message", lang),
                next_node_id=cls._require_str(delay_data.get("next"), f"{ctx} delay next"),
            )

        ending_id = None
        if node_data.get("ending") is not None:
            ending_id = cls._require_str(node_data["ending"], f"{ctx} ending")

        refusal = None
        if node_data.get("refusal") is not None:
            refusal_data = cls._require_mapping(node_data["refusal"], f"{ctx} refusal")
            refusal = RefusalDef(
                stat_id=cls._require_str(refusal_data.get("stat"), f"{ctx} refusal stat"),
                min_value=cls._require_int(refusal_data.get("min"), f"{ctx} refusal min"),
                next_node_id=cls._require_str(refusal_data.get("next"), f"{ctx} refusal next"),
                message=cls._parse_text(
                    refusal_data.get("message", ""), f"{ctx} refusal message", lang
                ),
            )

        return NodeDef(
            id=node_id,
            act=act,
            messages=messages,
            choices=choices,
            on_enter=on_enter,
            branches=branches,
            delay=delay,
            ending_id=ending_id,
            refusal=refusal,
        )

    @classmethod
    def _parse_choices(cls, raw_choices: object, ctx: str, lang: str) -> List[ChoiceDef]:
        if raw_choices is None:
            return []
        if not isinstance(raw_choices, list):
            raise DataValidationError(f"{ctx} choices must be a list if provided.")
        choices: List[ChoiceDef] = []
        for index, entry in enumerate(raw_choices):
            choice_ctx = f"{ctx} choices[{index}]"
            choice_data = cls._require_mapping(entry, choice_ctx)
            raw_conditions = choice_data.get("when", [])
            if not isinstance(raw_conditions, list):
                raw_conditions = [raw_conditions]
            choices.append(
                ChoiceDef(
                    label=cls._parse_text(choice_data.get("label"), f"{choice_ctx} label", lang),
                    next_node_id=cls._require_str(choice_data.get("next"), f"{choice_ctx} next"),
                    effect=cls._parse_effect(choice_data.get("effect"), f"{choice_ctx} effect"),
                    conditions=tuple(
                        cls._parse_condition(cond, f"{choice_ctx} when[{cond_index}]")
                        for cond_index, cond in enumerate(raw_conditions)
                    ),
                )
            )
        return choices

    @classmethod
    def _parse_branches(cls, raw_branches: object, ctx: str) -> List[BranchRuleDef]:
        if not isinstance(raw_branches, list):
            raise DataValidationError(f"{ctx} must be a list.")
        rules: List[BranchRuleDef] = []
        for index, entry in enumerate(raw_branches):
            rule_ctx = f"{ctx}[{index}]"
            rule_data = cls._require_mapping(entry, rule_ctx)
            rules.append(
                BranchRuleDef(
                    condition=cls._parse_condition(rule_data.get("when"), f"{rule_ctx} when"),
                    next_node_id=cls._require_str(rule_data.get("next"), f"{rule_ctx} next"),
                )
            )
        return rules

    @classmethod
    def _parse_condition(cls, raw: object, ctx: str) -> Condition:
        if raw is None or raw == "default":
            return DefaultCondition()
        data = cls._require_mapping(raw, ctx)
        if "stat" in data:
            bounds = {}
            for key in ("min", "max"):
                if data.get(key) is not None:
                    bounds[key] = cls._require_int(data[key], f"{ctx} {key}")
            return StatCondition(
                stat_id=cls._require_str(data["stat"], f"{ctx} stat"),
                min=bounds.get("min"),
                max=bounds.get("max"),
            )
        if "flag" in data:
            is_set = data.get("set", True)
            if not isinstance(is_set, bool):
                raise DataValidationError(f"{ctx} set must be a boolean.")
            return FlagCondition(flag_id=cls._require_str(data["flag"], f"{ctx} flag"), is_set=is_set)
        raise DataValidationError(f"{ctx} must name a 'stat' or a 'flag', or be 'default'.")

    @classmethod
    def _parse_effect(cls, raw: object, ctx: str) -> EffectDef | None:
        if raw is None:
            return None
        data = cls._require_mapping(raw, ctx)
        stat_deltas = {
            stat_id: cls._require_int(delta, f"{ctx} stats.{stat_id}")
            for stat_id, delta in cls._optional_mapping(data.get("stats"), f"{ctx} stats").items()
        }
        raw_flags = data.get("flags", [])
        if not isinstance(raw_flags, list):
            raise DataValidationError(f"{ctx} flags must be a list if provided.")
        flags = tuple(
            cls._require_str(flag, f"{ctx} flags[{index}]") for index, flag in enumerate(raw_flags)
        )
        return EffectDef(stat_deltas=stat_deltas, flags_set=flags)

    @classmethod
    def _parse_text(cls, raw: object, ctx: str, lang: str) -> LocalizedText:
        if isinstance(raw, str):
            return LocalizedText(values={lang: raw}, default_language=lang)
        data = cls._require_mapping(raw, ctx)
        values = {key: cls._require_str(value, f"{ctx}.{key}") for key, value in data.items()}
        return LocalizedText(values=values, default_language=lang)

    @classmethod
    def _optional_mapping(cls, value: object, context: str) -> dict[str, object]:
        if value is None:
            return {}
        return cls._require_mapping(value, context)
