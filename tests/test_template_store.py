from __future__ import annotations

import json
from pathlib import Path

import pytest

from caughtwiki.overhaul import TemplateError, TemplateStore

REPO_TEMPLATES = Path(__file__).resolve().parent.parent / "templates"


def _write(path: Path, doc) -> None:
    path.write_text(json.dumps(doc), encoding="utf-8")


def test_from_directory_loads_every_json_file(tmp_path: Path) -> None:
    _write(tmp_path / "b.json", {"name": "beta"})
    _write(tmp_path / "a.json", {"name": "alpha", "roles": [{"name": "Staff"}]})
    (tmp_path / "notes.txt").write_text("ignored")

    store = TemplateStore.from_directory(tmp_path)

    assert store.names() == ["alpha", "beta"]
    assert len(store) == 2
    assert "alpha" in store
    assert store.get("alpha").role_names() == ["Staff"]
    assert store.get("gamma") is None


def test_missing_directory_gives_empty_store(tmp_path: Path) -> None:
    store = TemplateStore.from_directory(tmp_path / "nope")
    assert store.names() == []


def test_invalid_json_is_a_template_error(tmp_path: Path) -> None:
    (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(TemplateError, match="bad.json"):
        TemplateStore.from_directory(tmp_path)


def test_duplicate_template_names_are_rejected(tmp_path: Path) -> None:
    _write(tmp_path / "a.json", {"name": "same"})
    _write(tmp_path / "b.json", {"name": "same"})
    with pytest.raises(TemplateError, match="duplicate template name"):
        TemplateStore.from_directory(tmp_path)


def test_bundled_templates_are_valid() -> None:
    store = TemplateStore.from_directory(REPO_TEMPLATES)
    assert {"community", "esports"} <= set(store.names())


def test_undecodable_file_is_a_template_error(tmp_path: Path) -> None:
    (tmp_path / "latin1.json").write_bytes(b'{"name": "caf\xe9"}')
    with pytest.raises(TemplateError, match="latin1.json"):
        TemplateStore.from_directory(tmp_path)
