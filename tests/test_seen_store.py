# tests/test_seen_store.py
import json
import os

from modules.job_alert.lib.models import SeenEntry
from modules.job_alert.lib.seen_store import SeenJobStore


# ----------------------------------------------------------------------
# 1. Round trip through the JSON file
# ----------------------------------------------------------------------
def test_persist_then_load_round_trip(store, make_job, frozen_utc):
    store.record_job(make_job(1))
    store.record(SeenEntry(id="rss:x", title="Engineer", date_found="2024-12-31T00:00:00Z"))
    assert store.persist() is True

    with open(store.path, encoding="utf-8") as f:
        on_disk = json.load(f)
    assert on_disk == {
        "stub:1": {"id": "stub:1", "title": "Engineer 1", "dateFound": "2025-01-01T00:00:00Z", "company": "Company 1"},
        "rss:x": {"id": "rss:x", "title": "Engineer", "dateFound": "2024-12-31T00:00:00Z"},
    }

    fresh = SeenJobStore(store.path)
    assert fresh.load() == 2
    assert fresh.contains("stub:1") and fresh.contains("rss:x")
    assert fresh.get("stub:1").company == "Company 1"


def test_persist_leaves_no_temp_files(store, make_job, tmp_path):
    store.record_job(make_job(1))
    store.persist()
    store.record_job(make_job(2))
    store.persist()
    assert sorted(os.listdir(tmp_path)) == ["jobs.json"]


def test_unknown_fields_are_ignored(store):
    with open(store.path, "w", encoding="utf-8") as f:
        json.dump({"linkedin:1": {"id": "linkedin:1", "title": "T", "dateFound": "2025-01-01", "extra": [1, 2]}}, f)

    assert store.load() == 1
    entry = store.get("linkedin:1")
    assert entry.title == "T"
    assert entry.to_json() == {"id": "linkedin:1", "title": "T", "dateFound": "2025-01-01"}


# ----------------------------------------------------------------------
# 2. Missing or unreadable file -> empty store, never an exception
# ----------------------------------------------------------------------
def test_missing_file_loads_empty(store):
    assert store.load() == 0
    assert len(store) == 0


def test_corrupt_file_loads_empty(store):
    with open(store.path, "w", encoding="utf-8") as f:
        f.write("{ this is not json")
    assert store.load() == 0
    assert list(store) == []


def test_non_object_file_loads_empty(store):
    with open(store.path, "w", encoding="utf-8") as f:
        json.dump(["stub:1", "stub:2"], f)
    assert store.load() == 0


def test_load_replaces_in_memory_state(store, make_job):
    store.record_job(make_job(1))
    store.persist()
    store.record_job(make_job(2))  # never persisted

    assert store.load() == 1
    assert not store.contains("stub:2")


# ----------------------------------------------------------------------
# 3. Persist failure is reported, memory keeps the entries
# ----------------------------------------------------------------------
def test_persist_failure_returns_false(tmp_path, make_job):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    store = SeenJobStore(str(blocker / "jobs.json"))
    store.record_job(make_job(1))

    assert store.persist() is False
    assert store.contains("stub:1")


def test_persist_creates_parent_directory(tmp_path, make_job):
    store = SeenJobStore(str(tmp_path / "state" / "nested" / "jobs.json"))
    store.record_job(make_job(1))
    assert store.persist() is True
    assert (tmp_path / "state" / "nested" / "jobs.json").exists()


# ----------------------------------------------------------------------
# 4. Clear
# ----------------------------------------------------------------------
def test_clear_returns_count_and_empties(store, make_job):
    for i in range(3):
        store.record_job(make_job(i))
    assert store.clear() == 3
    assert len(store) == 0
    assert store.persist() is True
    with open(store.path, encoding="utf-8") as f:
        assert json.load(f) == {}
