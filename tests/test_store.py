"""Tests for the whole-document JSON store."""

import json

import pytest

from eventmap.core.errors import PersistenceError
from eventmap.db.store import JsonDocumentStore, default_document


def test_load_creates_file_from_defaults(tmp_path):
    path = tmp_path / "db.json"
    store = JsonDocumentStore(path, defaults=default_document("password123"))

    document = store.load()

    assert document == {"addresses": [], "rules": "", "adminPassword": "password123"}
    assert json.loads(path.read_text(encoding="utf-8")) == document


def test_load_fills_missing_keys_and_keeps_existing_ones(tmp_path):
    path = tmp_path / "db.json"
    path.write_text(json.dumps({"rules": "Be nice"}), encoding="utf-8")
    store = JsonDocumentStore(path)

    document = store.load()

    assert document["rules"] == "Be nice"
    assert document["addresses"] == []
    assert "adminPassword" in json.loads(path.read_text(encoding="utf-8"))


def test_load_refuses_to_overwrite_a_corrupt_file(tmp_path):
    path = tmp_path / "db.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonDocumentStore(path)

    with pytest.raises(PersistenceError):
        store.load()
    assert path.read_text(encoding="utf-8") == "{not json"


def test_read_returns_a_copy(tmp_path):
    store = JsonDocumentStore(tmp_path / "db.json")
    store.load()

    snapshot = store.read()
    snapshot["addresses"].append({"text": "stray"})

    assert store.read()["addresses"] == []


@pytest.mark.parametrize(
    "bad_document",
    [
        # A set is not JSON serialisable
        {"addresses": {"oops"}, "rules": "", "adminPassword": ""},
        # NaN is not standard JSON
        {"addresses": [{"text": "x", "lat": float("nan"), "lon": 1.0}], "rules": "", "adminPassword": ""},
        # A lone surrogate cannot be encoded as UTF-8
        {"addresses": [], "rules": "\ud800", "adminPassword": ""},
    ],
)
def test_failed_write_leaves_document_untouched(tmp_path, bad_document):
    path = tmp_path / "db.json"
    store = JsonDocumentStore(path)
    store.load()
    store.write_all({"addresses": [{"text": "1 Keep St"}], "rules": "r", "adminPassword": ""})
    before = path.read_text(encoding="utf-8")

    with pytest.raises(PersistenceError):
        store.write_all(bad_document)

    assert path.read_text(encoding="utf-8") == before
    assert store.read()["addresses"] == [{"text": "1 Keep St"}]
    # No temp files are left lying around either
    assert [p.name for p in tmp_path.iterdir()] == ["db.json"]


def test_transaction_discards_changes_when_block_raises(tmp_path):
    store = JsonDocumentStore(tmp_path / "db.json")
    store.load()

    with pytest.raises(RuntimeError):
        with store.transaction() as document:
            document["rules"] = "half done"
            raise RuntimeError("boom")

    assert store.read()["rules"] == ""


def test_transaction_persists_changes(tmp_path):
    path = tmp_path / "db.json"
    store = JsonDocumentStore(path)
    store.load()

    with store.transaction() as document:
        document["rules"] = "No tricks after 8pm"

    reloaded = JsonDocumentStore(path)
    assert reloaded.load()["rules"] == "No tricks after 8pm"
