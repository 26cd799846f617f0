"""Tests for key-value stores."""

import json

from resilient_ai.storage.kv_store import InMemoryKeyValueStore, JsonFileKeyValueStore


def test_in_memory_round_trip():
    store = InMemoryKeyValueStore({"seed": 1})
    store.set("ledger", {"date": "2025-01-01", "cost": 0.5})

    assert store.get("seed") == 1
    assert store.get("ledger") == {"date": "2025-01-01", "cost": 0.5}
    assert store.get("missing") is None


def test_json_file_persists_across_instances(tmp_path):
    path = tmp_path / "nested" / "ledger.json"
    JsonFileKeyValueStore(path).set("ledger", {"date": "2025-01-01", "cost": 0.25})

    assert JsonFileKeyValueStore(path).get("ledger") == {"date": "2025-01-01", "cost": 0.25}
    assert json.loads(path.read_text()) == {"ledger": {"date": "2025-01-01", "cost": 0.25}}


def test_json_file_keeps_other_keys(tmp_path):
    store = JsonFileKeyValueStore(tmp_path / "store.json")
    store.set("a", 1)
    store.set("b", 2)

    assert store.get("a") == 1
    assert store.get("b") == 2


def test_json_file_missing_or_corrupt_reads_empty(tmp_path):
    path = tmp_path / "store.json"
    assert JsonFileKeyValueStore(path).get("a") is None

    path.write_text("{not json")
    assert JsonFileKeyValueStore(path).get("a") is None


def test_json_file_leaves_no_temp_files(tmp_path):
    store = JsonFileKeyValueStore(tmp_path / "store.json")
    store.set("a", 1)

    assert [p.name for p in tmp_path.iterdir()] == ["store.json"]
