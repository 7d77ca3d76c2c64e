"""Static story graph validation utilities."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from eshara.core.types import Severity
from eshara.data.errors import StoryValidationError
from eshara.domain.defs import (
    Condition,
    DefaultCondition,
    EffectDef,
    FlagCondition,
    NodeDef,
    StatCondition,
    StoryDocument,
)
from eshara.domain.graph import (
    BranchingNode,
    DelayNode,
    InteractiveNode,
    StoryGraph,
    StoryNode,
    TerminalNode,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Issue:
    severity: Severity
    code: str
    message: str
    context: dict[str, str]


def format_issue(issue: Issue) -> str:
    context = " ".join(f"{key}={value}" for key, value in issue.context.items())
    suffix = f" ({context})" if context else ""
    return f"[{issue.severity}] {issue.code}: {issue.message}{suffix}"


def build_story_graph(
    document: StoryDocument, *, error_on_autoadvance_cycle: bool = False
) -> StoryGraph:
    """Validate ``document`` and return a trusted StoryGraph.

    Raises StoryValidationError listing every ERROR issue. Warnings are
    logged and do not block startup.
    """
    issues = validate_story(document, error_on_autoadvance_cycle=error_on_autoadvance_cycle)
    errors = [issue for issue in issues if issue.severity == "ERROR"]
    for issue in issues:
        if issue.severity == "WARN":
            logger.warning(format_issue(issue))
    if errors:
        raise StoryValidationError(errors)
    nodes = {node_id: _to_graph_node(node) for node_id, node in document.nodes.items()}
    logger.debug("Story graph built: nodes=%d warnings=%d", len(nodes), len(issues))
    return StoryGraph(
        meta=document.meta,
        stats=document.stats,
        flags=document.flags,
        endings=document.endings,
        nodes=nodes,
        death_check=document.death_check,
    )


def validate_story(
    document: StoryDocument, *, error_on_autoadvance_cycle: bool = False
) -> list[Issue]:
    """Return every defect found in ``document``, in a stable order."""
    issues: list[Issue] = []
    node_ids = set(document.nodes)

    if document.meta.start_node_id not in node_ids:
        issues.append(
            Issue(
                severity="ERROR",
                code="MISSING_START_NODE",
                message="Start node does not exist.",
                context={"field_path": "meta.start_node", "referenced_id": document.meta.start_node_id},
            )
        )
    if document.meta.default_language not in document.meta.languages:
        issues.append(
            Issue(
                severity="WARN",
                code="UNKNOWN_DEFAULT_LANGUAGE",
                message="Default language is not listed in meta.languages.",
                context={"language": document.meta.default_language},
            )
        )

    for stat_id in sorted(document.stats):
        stat = document.stats[stat_id]
        if not stat.min <= stat.initial <= stat.max:
            issues.append(
                Issue(
                    severity="ERROR",
                    code="STAT_BOUNDS",
                    message="Stat must satisfy min <= initial <= max.",
                    context={
                        "stat_id": stat_id,
                        "min": str(stat.min),
                        "initial": str(stat.initial),
                        "max": str(stat.max),
                    },
                )
            )

    checker = _NodeChecker(document, issues)
    for node_id in sorted(document.nodes):
        checker.check(document.nodes[node_id])

    _validate_death_check(document, issues)
    _validate_reachability(document, issues)
    _validate_auto_advance_cycles(
        document, issues, error_on_autoadvance_cycle=error_on_autoadvance_cycle
    )
    return issues


class _NodeChecker:
    """Per-node reference and shape checks."""

    def __init__(self, document: StoryDocument, issues: list[Issue]) -> None:
        self._document = document
        self._issues = issues

    def check(self, node: NodeDef) -> None:
        self._check_shape(node)
        self._check_effect(node.id, node.on_enter, "on_enter")
        for index, choice in enumerate(node.choices):
            path = f"choices[{index}]"
            self._check_node_ref(node.id, choice.next_node_id, f"{path}.next")
            self._check_effect(node.id, choice.effect, f"{path}.effect")
            for cond_index, condition in enumerate(choice.conditions):
                self._check_condition(node.id, condition, f"{path}.when[{cond_index}]")
        if node.branches is not None:
            self._check_branches(node)
        if node.delay is not None:
            if node.delay.seconds < 0:
                self._error(node.id, "INVALID_DELAY", "Delay seconds must not be negative.", "delay.seconds")
            self._check_node_ref(node.id, node.delay.next_node_id, "delay.next")
        if node.ending_id is not None and node.ending_id not in self._document.endings:
            self._error(
                node.id,
                "MISSING_ENDING_REF",
                "Node references an undeclared ending.",
                "ending",
                referenced_id=node.ending_id,
            )
        if node.refusal is not None:
            if not node.choices:
                self._error(
                    node.id,
                    "REFUSAL_WITHOUT_CHOICES",
                    "Refusal rules only apply to interactive nodes.",
                    "refusal",
                )
            self._check_stat_ref(node.id, node.refusal.stat_id, "refusal.stat")
            self._check_node_ref(node.id, node.refusal.next_node_id, "refusal.next")

    def _check_shape(self, node: NodeDef) -> None:
        shapes = [
            name
            for name, present in (
                ("choices", bool(node.choices)),
                ("branches", node.branches is not None),
                ("delay", node.delay is not None),
                ("ending", node.ending_id is not None),
            )
            if present
        ]
        if len(shapes) > 1:
            self._error(
                node.id,
                "AMBIGUOUS_NODE_SHAPE",
                "Node must be exactly one of interactive, branching, delaying or terminal.",
                "+".join(shapes),
            )
        elif not shapes:
            self._error(
                node.id,
                "MISSING_NODE_SHAPE",
                "Node has no choices, branches, delay or ending.",
                "node",
            )

    def _check_branches(self, node: NodeDef) -> None:
        rules = node.branches or []
        if not rules:
            self._error(node.id, "EMPTY_BRANCHES", "Branch rule list is empty.", "branches")
            return
        default_index: int | None = None
        for index, rule in enumerate(rules):
            path = f"branches[{index}]"
            if default_index is not None:
                self._issues.append(
                    Issue(
                        severity="WARN",
                        code="UNREACHABLE_BRANCH_RULE",
                        message="Branch rule follows an always-true rule and can never match.",
                        context={"node_id": node.id, "field_path": path},
                    )
                )
            self._check_condition(node.id, rule.condition, f"{path}.when")
            self._check_node_ref(node.id, rule.next_node_id, f"{path}.next")
            if default_index is None and isinstance(rule.condition, DefaultCondition):
                default_index = index
        if default_index is None:
            self._issues.append(
                Issue(
                    severity="WARN",
                    code="BRANCH_WITHOUT_DEFAULT",
                    message="No default rule; node may fail to resolve at runtime.",
                    context={"node_id": node.id, "field_path": "branches"},
                )
            )

    def _check_condition(self, node_id: str, condition: Condition, path: str) -> None:
        if isinstance(condition, StatCondition):
            self._check_stat_ref(node_id, condition.stat_id, f"{path}.stat")
            if condition.min is None and condition.max is None:
                self._error(node_id, "INVALID_STAT_CONDITION", "Stat condition needs min or max.", path)
            elif (
                condition.min is not None
                and condition.max is not None
                and condition.min > condition.max
            ):
                self._error(node_id, "INVALID_STAT_CONDITION", "Stat condition min exceeds max.", path)
        elif isinstance(condition, FlagCondition):
            self._check_flag_ref(node_id, condition.flag_id, f"{path}.flag")

    def _check_effect(self, node_id: str, effect: EffectDef | None, path: str) -> None:
        if effect is None:
            return
        for stat_id in effect.stat_deltas:
            self._check_stat_ref(node_id, stat_id, f"{path}.stats.{stat_id}")
        for index, flag_id in enumerate(effect.flags_set):
            self._check_flag_ref(node_id, flag_id, f"{path}.flags[{index}]")

    def _check_node_ref(self, node_id: str, referenced: str, path: str) -> None:
        if referenced not in self._document.nodes:
            self._error(
                node_id, "MISSING_NODE_REF", "Node references missing node.", path, referenced_id=referenced
            )

    def _check_stat_ref(self, node_id: str, stat_id: str, path: str) -> None:
        if stat_id not in self._document.stats:
            self._error(
                node_id, "UNDECLARED_STAT", "Stat is not declared.", path, referenced_id=stat_id
            )

    def _check_flag_ref(self, node_id: str, flag_id: str, path: str) -> None:
        if flag_id not in self._document.flags:
            self._error(
                node_id, "UNDECLARED_FLAG", "Flag is not declared.", path, referenced_id=flag_id
            )

    def _error(
        self, node_id: str, code: str, message: str, path: str, *, referenced_id: str | None = None
    ) -> None:
        context = {"node_id": node_id, "field_path": path}
        if referenced_id is not None:
            context["referenced_id"] = referenced_id
        self._issues.append(Issue(severity="ERROR", code=code, message=message, context=context))


def _validate_death_check(document: StoryDocument, issues: list[Issue]) -> None:
    death_check = document.death_check
    if death_check is None:
        return
    if death_check.stat_id not in document.stats:
        issues.append(
            Issue(
                severity="ERROR",
                code="UNDECLARED_STAT",
                message="Death check stat is not declared.",
                context={"field_path": "death_check.stat", "referenced_id": death_check.stat_id},
            )
        )
    override = document.nodes.get(death_check.override_node_id)
    if override is None:
        issues.append(
            Issue(
                severity="ERROR",
                code="MISSING_NODE_REF",
                message="Death check override node does not exist.",
                context={"field_path": "death_check.node", "referenced_id": death_check.override_node_id},
            )
        )
    elif override.ending_id is None:
        issues.append(
            Issue(
                severity="ERROR",
                code="DEATH_CHECK_NOT_TERMINAL",
                message="Death check override node must carry an ending.",
                context={"field_path": "death_check.node", "referenced_id": death_check.override_node_id},
            )
        )


def _outgoing(node: NodeDef) -> list[str]:
    targets = [choice.next_node_id for choice in node.choices]
    targets.extend(rule.next_node_id for rule in node.branches or [])
    if node.delay is not None:
        targets.append(node.delay.next_node_id)
    if node.refusal is not None:
        targets.append(node.refusal.next_node_id)
    return targets


def _validate_reachability(document: StoryDocument, issues: list[Issue]) -> None:
    nodes = document.nodes
    stack = [document.meta.start_node_id]
    if document.death_check is not None:
        stack.append(document.death_check.override_node_id)
    reachable: set[str] = set()
    while stack:
        node_id = stack.pop()
        if node_id in reachable or node_id not in nodes:
            continue
        reachable.add(node_id)
        stack.extend(_outgoing(nodes[node_id]))
    for node_id in sorted(set(nodes) - reachable):
        issues.append(
            Issue(
                severity="WARN",
                code="UNREACHABLE_NODE",
                message="Node is unreachable from the start node.",
                context={"node_id": node_id},
            )
        )


def _validate_auto_advance_cycles(
    document: StoryDocument,
    issues: list[Issue],
    *,
    error_on_autoadvance_cycle: bool,
) -> None:
    # Only branching nodes advance without input or a wall-clock wait.
    candidate_ids = {
        node_id
        for node_id, node in document.nodes.items()
        if node.branches and not node.choices and node.delay is None and node.ending_id is None
    }
    adjacency: dict[str, list[str]] = {
        node_id: [
            rule.next_node_id
            for rule in document.nodes[node_id].branches or []
            if rule.next_node_id in candidate_ids
        ]
        for node_id in candidate_ids
    }

    visited: set[str] = set()
    stack: list[str] = []
    stack_set: set[str] = set()
    cycles: list[list[str]] = []

    def dfs(current: str) -> None:
        visited.add(current)
        stack.append(current)
        stack_set.add(current)
        for next_node in adjacency.get(current, []):
            if next_node not in visited:
                dfs(next_node)
            elif next_node in stack_set:
                cycles.append(stack[stack.index(next_node) :])
        stack.pop()
        stack_set.remove(current)

    for node_id in sorted(candidate_ids):
        if node_id not in visited:
            dfs(node_id)

    severity: Severity = "ERROR" if error_on_autoadvance_cycle else "WARN"
    for cycle in cycles:
        cycle_path = " -> ".join(cycle + [cycle[0]])
        issues.append(
            Issue(
                severity=severity,
                code="AUTOADVANCE_CYCLE",
                message="Branching nodes may loop without player input.",
                context={"cycle": cycle_path},
            )
        )


def _to_graph_node(node: NodeDef) -> StoryNode:
    common = dict(
        id=node.id,
        act=node.act,
        messages=tuple(node.messages),
        on_enter=node.on_enter,
    )
    if node.ending_id is not None:
        return TerminalNode(**common, ending_id=node.ending_id)
    if node.branches is not None:
        return BranchingNode(**common, rules=tuple(node.branches))
    if node.delay is not None:
        return DelayNode(**common, delay=node.delay)
    return InteractiveNode(**common, choices=tuple(node.choices), refusal=node.refusal)

