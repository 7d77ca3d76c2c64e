import sys
from pathlib import Path

from eshara.data import paths


def test_get_definitions_path_base_path(tmp_path: Path) -> None:
    assert paths.get_definitions_path(tmp_path) == tmp_path


def test_get_definitions_path_source_repo_exists() -> None:
    definitions_path = paths.get_definitions_path()
    assert definitions_path.name == "definitions"
    assert (definitions_path / paths.STORY_FILENAME).exists()


def test_get_definitions_path_pyinstaller_meipass(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "_MEIPASS", str(tmp_path), raising=False)
    expected = tmp_path / "data" / "definitions"
    assert paths.get_definitions_path() == expected


def test_resolve_story_path_prefers_explicit(tmp_path: Path) -> None:
    explicit = tmp_path / "custom.json"
    assert paths.resolve_story_path(explicit) == explicit


def test_resolve_story_path_uses_override_beside_cwd(monkeypatch, tmp_path: Path) -> None:
    override = tmp_path / paths.STORY_FILENAME
    override.write_text("{}", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    assert paths.resolve_story_path().resolve() == override.resolve()


def test_resolve_story_path_falls_back_to_bundled(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    resolved = paths.resolve_story_path()
    assert resolved == paths.get_definitions_path() / paths.STORY_FILENAME


def test_override_dir_is_executable_dir_when_frozen(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "executable", str(tmp_path / "eshara.exe"))
    assert paths.get_override_dir() == tmp_path.resolve()
