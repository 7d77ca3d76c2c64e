import json
from pathlib import Path

import pytest

from eshara.data.errors import DataLoadError
from eshara.data.save_store import SaveStore


def test_write_then_read(tmp_path: Path) -> None:
    store = SaveStore(tmp_path / "nested" / "save.json")
    store.write({"save_version": 1, "state": {"current_node_id": "start"}})

    assert store.exists()
    assert store.read() == {"save_version": 1, "state": {"current_node_id": "start"}}
    assert sorted(path.name for path in store.path.parent.iterdir()) == ["save.json"]


def test_write_replaces_existing_file(tmp_path: Path) -> None:
    store = SaveStore(tmp_path / "save.json")
    store.write({"n": 1})
    store.write({"n": 2})
    assert json.loads(store.path.read_text(encoding="utf-8")) == {"n": 2}


def test_read_missing_returns_none(tmp_path: Path) -> None:
    assert SaveStore(tmp_path / "save.json").read() is None


def test_read_non_object_raises(tmp_path: Path) -> None:
    path = tmp_path / "save.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(DataLoadError):
        SaveStore(path).read()


def test_delete(tmp_path: Path) -> None:
    store = SaveStore(tmp_path / "save.json")
    assert not store.delete()
    store.write({})
    assert store.delete()
    assert not store.exists()


def test_quarantine_moves_file_aside(tmp_path: Path) -> None:
    store = SaveStore(tmp_path / "save.json")
    assert store.quarantine() is None

    store.path.write_text("garbage", encoding="utf-8")
    target = store.quarantine()

    assert target == tmp_path / "save.json.corrupt"
    assert target.read_text(encoding="utf-8") == "garbage"
    assert not store.exists()


def test_quarantine_never_replaces_an_earlier_copy(tmp_path: Path) -> None:
    store = SaveStore(tmp_path / "save.json")
    targets = []
    for content in ("one", "two", "three"):
        store.path.write_text(content, encoding="utf-8")
        targets.append(store.quarantine())

    assert [target.name for target in targets] == [
        "save.json.corrupt",
        "save.json.corrupt.1",
        "save.json.corrupt.2",
    ]
    assert [target.read_text(encoding="utf-8") for target in targets] == ["one", "two", "three"]


def test_unserializable_payload_leaves_no_temp_file(tmp_path: Path) -> None:
    store = SaveStore(tmp_path / "save.json")
    store.write({"n": 1})

    with pytest.raises(TypeError):
        store.write({"n": object()})

    assert sorted(path.name for path in tmp_path.iterdir()) == ["save.json"]
    assert store.read() == {"n": 1}


def test_read_invalid_json_names_the_save_file(tmp_path: Path) -> None:
    path = tmp_path / "save.json"
    path.write_text("{ nope", encoding="utf-8")

    with pytest.raises(DataLoadError, match="save file"):
        SaveStore(path).read()
