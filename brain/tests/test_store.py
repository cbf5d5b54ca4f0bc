"""Tests for the JSON brain store."""

import json
import logging
from datetime import datetime, timezone

import pytest
from unittest.mock import Mock

from brain.common.schemas import Task
from brain.common.store import BrainStore


@pytest.fixture
def store(tmp_path):
    return BrainStore(tmp_path / "brain.json")


class TestStoreTask:
    def test_defaults_are_filled(self, store):
        entry = store.store_task({"title": "Write report"})
        assert entry["id"]
        assert entry["timestamp"]
        assert entry["status"] == "open"
        assert entry["priority"] == "medium"
        assert entry["type"] == "aufgabe"

    def test_task_model_input(self, store):
        entry = store.store_task(Task(title="Model task", importance_score=8))
        assert entry["importance_score"] == 8
        assert store.list_tasks()[0].title == "Model task"

    def test_unknown_keys_survive(self, store, tmp_path):
        store.store_task({"title": "x", "source_mail": "gm1"})
        data = json.loads((tmp_path / "brain.json").read_text())
        assert data["tasks"][0]["source_mail"] == "gm1"

    @pytest.mark.parametrize("fields,expected", [
        ({"termin_at": "2026-02-06T10:00:00"}, "termin"),
        ({"event_at": "2026-02-06T10:00:00"}, "event"),
        ({"duration_m": 5}, "todo"),
        ({"duration_h": 1}, "aufgabe"),
        ({"type": "custom"}, "custom"),
    ])
    def test_type_detection(self, store, fields, expected):
        assert store.store_task({"title": "t", **fields})["type"] == expected

    def test_persists_across_instances(self, store, tmp_path):
        store.store_task({"title": "keep me"})
        reopened = BrainStore(tmp_path / "brain.json")
        assert [t["title"] for t in reopened.get_tasks()] == ["keep me"]


class TestUpdateDelete:
    def test_update(self, store):
        entry = store.store_task({"title": "draft"})
        assert store.update_task(entry["id"], {"status": "completed", "id": "ignored"}) is True
        updated = store.get_tasks()[0]
        assert updated["status"] == "completed"
        assert updated["id"] == entry["id"]
        assert updated["updated_at"]

    def test_update_unknown(self, store):
        assert store.update_task("nope", {"title": "x"}) is False

    def test_delete(self, store):
        entry = store.store_task({"title": "gone"})
        assert store.delete_task(entry["id"]) is True
        assert store.get_tasks() == []
        assert store.delete_task(entry["id"]) is False


class TestQueries:
    def test_filters(self, store):
        store.store_task({"title": "a", "priority": "high", "category": "work"})
        store.store_task({"title": "b", "priority": "low", "category": "work"})
        store.store_task({"title": "c", "priority": "high", "category": "home", "status": "completed"})

        assert [t["title"] for t in store.get_tasks(priority="high")] == ["a", "c"]
        assert [t["title"] for t in store.get_tasks(status="open", category="work")] == ["a", "b"]
        assert len(store.get_tasks(status="all", priority="all")) == 3

    def test_get_tasks_returns_copies(self, store):
        store.store_task({"title": "a"})
        store.get_tasks()[0]["title"] = "mutated"
        assert store.get_tasks()[0]["title"] == "a"

    def test_list_tasks_skips_malformed(self, tmp_path, caplog):
        path = tmp_path / "brain.json"
        path.write_text(json.dumps({"tasks": [
            {"id": "ok", "title": "fine"},
            {"id": "bad", "title": "broken", "importance_score": "very"},
        ]}))
        with caplog.at_level(logging.WARNING, logger="brain.common.store"):
            tasks = BrainStore(path).list_tasks()
        assert [t.id for t in tasks] == ["ok"]
        assert "Skipping malformed task bad" in caplog.text

    def test_contexts_by_tag(self, store):
        store.store_context({"content": "Prefers mornings", "tags": ["habits"]})
        store.store_context({"content": "Works at Acme", "tags": ["work"]})
        assert [c["content"] for c in store.get_contexts(["work"])] == ["Works at Acme"]
        assert len(store.get_contexts()) == 2

    def test_preferences(self, store):
        entry = store.store_preference("meeting_length", 30, confidence=0.9)
        assert entry["id"] == "meeting_length"
        assert store.get_preferences()["meeting_length"]["value"] == 30
        store.store_preference("meeting_length", 45)
        assert store.get_preferences()["meeting_length"]["confidence"] == 0.5


class TestRefreshUrgency:
    NOW = datetime(2026, 2, 5, 12, 0, tzinfo=timezone.utc)

    def test_due_tasks_are_promoted(self, store):
        store.store_task({"id": "due", "title": "a", "process_at": "2026-02-05T08:00:00Z"})
        store.store_task({"id": "later", "title": "b", "process_at": "2026-02-07T08:00:00Z"})
        store.store_task({"id": "high", "title": "c", "priority": "high", "process_at": "2026-02-01T08:00:00Z"})
        store.store_task({"id": "done", "title": "d", "status": "completed", "process_at": "2026-02-01T08:00:00Z"})

        assert store.refresh_urgency(self.NOW) is True
        priorities = {t["id"]: t["priority"] for t in store.get_tasks()}
        assert priorities == {"due": "urgent", "later": "medium", "high": "high", "done": "medium"}

    def test_nothing_to_do(self, store):
        store.store_task({"title": "no schedule"})
        assert store.refresh_urgency(self.NOW) is False

    def test_idempotent(self, store):
        store.store_task({"title": "a", "process_at": "2026-02-05T08:00:00Z"})
        assert store.refresh_urgency(self.NOW) is True
        assert store.refresh_urgency(self.NOW) is False


class TestIndexing:
    def test_task_description_is_indexed(self, tmp_path):
        index = Mock()
        store = BrainStore(tmp_path / "brain.json", index=index)
        entry = store.store_task({"title": "Budget", "description": "Approve Q3 numbers"})

        text, metadata = index.index.call_args[0]
        assert text == "Budget Approve Q3 numbers"
        assert metadata["type"] == "brain_task"
        assert metadata["brain_id"] == entry["id"]

    def test_task_without_description_is_not_indexed(self, tmp_path):
        index = Mock()
        BrainStore(tmp_path / "brain.json", index=index).store_task({"title": "Budget"})
        index.index.assert_not_called()

    def test_context_is_indexed(self, tmp_path):
        index = Mock()
        BrainStore(tmp_path / "brain.json", index=index).store_context({"content": "Likes tea"})
        assert index.index.call_args[0][1]["type"] == "brain_context"

    def test_index_failure_keeps_entry(self, tmp_path, caplog):
        index = Mock()
        index.index.side_effect = ValueError("no vector")
        store = BrainStore(tmp_path / "brain.json", index=index)
        with caplog.at_level(logging.WARNING, logger="brain.common.store"):
            store.store_task({"title": "a", "description": "b"})
        assert len(store.get_tasks()) == 1
        assert "Memory indexing failed" in caplog.text


class TestLoad:
    def test_corrupt_file_starts_empty(self, tmp_path, caplog):
        path = tmp_path / "brain.json"
        path.write_text("[1, 2")
        with caplog.at_level(logging.WARNING, logger="brain.common.store"):
            store = BrainStore(path)
        assert store.get_tasks() == []
        assert "Failed to load store" in caplog.text

    def test_wrong_top_level_type(self, tmp_path):
        path = tmp_path / "brain.json"
        path.write_text("[]")
        assert BrainStore(path).get_preferences() == {}

    def test_missing_sections(self, tmp_path):
        path = tmp_path / "brain.json"
        path.write_text(json.dumps({"tasks": [{"id": "1", "title": "x"}]}))
        store = BrainStore(path)
        assert len(store.get_tasks()) == 1
        assert store.get_contexts() == []
