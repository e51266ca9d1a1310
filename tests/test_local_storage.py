from __future__ import annotations

import json

from streetart.session import SessionFlag
from streetart.storage.local import LocalStorage


def test_set_get_remove(tmp_path) -> None:
    local = LocalStorage(tmp_path / "ls.json")
    assert local.get_item("k") is None

    local.set_item("k", "v")
    local.set_item("other", "w")
    assert local.get_item("k") == "v"
    assert sorted(local.keys()) == ["k", "other"]

    local.remove_item("k")
    local.remove_item("missing")
    assert local.get_item("k") is None
    assert json.loads((tmp_path / "ls.json").read_text(encoding="utf-8")) == {"other": "w"}


def test_values_survive_new_instance(tmp_path) -> None:
    LocalStorage(tmp_path / "ls.json").set_item("k", "значение")
    assert LocalStorage(tmp_path / "ls.json").get_item("k") == "значение"


def test_corrupt_file_reads_as_empty(tmp_path) -> None:
    path = tmp_path / "ls.json"
    path.write_text("{not json", encoding="utf-8")
    local = LocalStorage(path)
    assert local.get_item("k") is None

    local.set_item("k", "v")
    assert local.get_item("k") == "v"


def test_non_object_file_reads_as_empty(tmp_path) -> None:
    path = tmp_path / "ls.json"
    path.write_text("[1, 2]", encoding="utf-8")
    assert LocalStorage(path).keys() == []


def test_session_flag(tmp_path) -> None:
    local = LocalStorage(tmp_path / "ls.json")
    flag = SessionFlag(local)
    assert flag.is_entered is False

    flag.enter()
    assert flag.is_entered is True
    assert local.get_item("streetart_session") == "true"

    flag.leave()
    assert flag.is_entered is False
