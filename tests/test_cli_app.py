from datetime import timedelta
from pathlib import Path

from eshara.presentation.cli import app
from eshara.presentation.cli.app import _format_remaining

from tests.helpers.story_builders import make_story, write_story


def _feed(monkeypatch, answers: list[str]) -> None:
    replies = iter(answers)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(replies))


def _args(tmp_path: Path, *extra: str) -> list[str]:
    story = write_story(tmp_path / "story.json")
    return ["--story", str(story), "--save", str(tmp_path / "save.json"), *extra]


def test_play_until_death_ending(monkeypatch, tmp_path: Path, capsys) -> None:
    _feed(monkeypatch, ["2"])

    assert app.main(_args(tmp_path)) == 0

    out = capsys.readouterr().out
    assert "=== Test Story ===" in out
    assert "Hello?" in out
    assert "So tired..." in out
    assert "*** Gone Dark ***" in out


def test_quit_during_delay_then_resume(monkeypatch, tmp_path: Path, capsys) -> None:
    _feed(monkeypatch, ["1", "2"])
    assert app.main(_args(tmp_path)) == 0
    assert "Elara is away." in capsys.readouterr().out

    _feed(monkeypatch, ["2"])
    assert app.main(_args(tmp_path)) == 0
    out = capsys.readouterr().out
    assert "Hold on." in out
    assert "Progress saved. Come back later." in out


def test_invalid_input_is_reprompted(monkeypatch, tmp_path: Path, capsys) -> None:
    _feed(monkeypatch, ["x", "9", "2"])
    assert app.main(_args(tmp_path)) == 0

    out = capsys.readouterr().out
    assert "Please enter a number." in out
    assert "Please enter a value between 1 and 2." in out


def test_reset_deletes_save(tmp_path: Path, capsys) -> None:
    save_path = tmp_path / "save.json"
    save_path.write_text("{}", encoding="utf-8")

    assert app.main(["--save", str(save_path), "--reset"]) == 0
    assert not save_path.exists()
    assert "Save deleted." in capsys.readouterr().out


def test_unsupported_language_exits_with_error(tmp_path: Path, capsys) -> None:
    assert app.main(_args(tmp_path, "--lang", "de")) == 2
    assert "Unsupported language 'de'" in capsys.readouterr().out


def test_invalid_story_reports_defects(tmp_path: Path, capsys) -> None:
    raw = make_story()
    raw["meta"]["start_node"] = "nowhere"
    story = write_story(tmp_path / "broken.json", raw)

    assert app.main(["--story", str(story), "--save", str(tmp_path / "save.json")]) == 1
    assert "MISSING_START_NODE" in capsys.readouterr().out


def test_format_remaining() -> None:
    assert _format_remaining(None) == "any moment now"
    assert _format_remaining(timedelta(seconds=30)) == "less than a minute"
    assert _format_remaining(timedelta(minutes=1)) == "1 minute"
    assert _format_remaining(timedelta(minutes=5)) == "5 minutes"
    assert _format_remaining(timedelta(hours=2, minutes=3)) == "2h 3min"
