from eshara.data.repositories import StoryRepository
from eshara.domain.graph import DelayNode, InteractiveNode, TerminalNode
from eshara.services.story_graph_validator import build_story_graph, format_issue, validate_story


def test_bundled_story_has_no_errors() -> None:
    document = StoryRepository().load()
    issues = validate_story(document, error_on_autoadvance_cycle=True)
    errors = [issue for issue in issues if issue.severity == "ERROR"]
    assert not errors, "\n".join(format_issue(issue) for issue in errors)


def test_bundled_story_has_no_unreachable_nodes() -> None:
    issues = validate_story(StoryRepository().load())
    unreachable = [issue for issue in issues if issue.code == "UNREACHABLE_NODE"]
    assert not unreachable, "\n".join(format_issue(issue) for issue in unreachable)


def test_bundled_story_is_fully_localized() -> None:
    document = StoryRepository().load()
    languages = set(document.meta.languages)

    assert {"en", "fr"} <= languages
    for node in document.nodes.values():
        for message in node.messages:
            assert set(message.values) == languages, node.id
        for choice in node.choices:
            assert set(choice.label.values) == languages, node.id


def test_bundled_story_covers_every_node_shape() -> None:
    graph = build_story_graph(StoryRepository().load())
    kinds = {type(node) for node in graph.nodes.values()}

    assert {InteractiveNode, DelayNode, TerminalNode} <= kinds
    assert graph.death_check is not None
    assert isinstance(graph.get(graph.death_check.override_node_id), TerminalNode)
