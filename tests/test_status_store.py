"""Tests for chainrun.runner.status_store module."""

import json
import logging

import pytest

from chainrun.runner.status_store import (
    BLOCKED,
    COMPLETED,
    FAILED,
    IN_PROGRESS,
    NOT_STARTED,
    StatusStore,
    TaskStatus,
    describe,
)


@pytest.fixture
def store(tmp_path):
    s = StatusStore(tmp_path / "logs" / "task-status.json")
    s.load()
    return s


def _reload(store):
    fresh = StatusStore(store.path)
    fresh.load()
    return fresh


class TestLoad:
    """Test StatusStore.load."""

    def test_missing_file_is_empty(self, store):
        assert store.all() == {}

    def test_corrupt_file_is_empty_and_logged(self, tmp_path, caplog):
        caplog.set_level(logging.ERROR)
        path = tmp_path / "task-status.json"
        path.write_text("{not json")
        store = StatusStore(path)
        assert store.load() == {}
        assert "[status_corruption]" in caplog.text

    def test_non_object_file_is_empty(self, tmp_path, caplog):
        caplog.set_level(logging.ERROR)
        path = tmp_path / "task-status.json"
        path.write_text("[1, 2, 3]")
        assert StatusStore(path).load() == {}
        assert "not a JSON object" in caplog.text

    def test_invalid_entry_is_dropped(self, tmp_path, caplog):
        caplog.set_level(logging.ERROR)
        path = tmp_path / "task-status.json"
        path.write_text(json.dumps({
            "01-a": {"completed": True, "success": True, "attempts": 1},
            "02-b": {"completed": "yes"},
            "03-c": "garbage",
        }))
        table = StatusStore(path).load()
        assert list(table) == ["01-a"]
        assert "Dropping status for 02-b" in caplog.text
        assert "Dropping status for 03-c" in caplog.text

    def test_unknown_keys_are_preserved(self, tmp_path):
        path = tmp_path / "task-status.json"
        path.write_text(json.dumps({
            "01-a": {"completed": True, "success": True, "reviewer": "sam"},
        }))
        store = StatusStore(path)
        store.load()
        store.mark_blocked("02-b", "whatever")
        data = json.loads(path.read_text())
        assert data["01-a"]["reviewer"] == "sam"


class TestMutators:
    """Test mark_* operations."""

    def test_mark_started_increments_attempts(self, store):
        store.mark_started("01-a", total_sections=3)
        store.mark_started("01-a", total_sections=3)
        status = _reload(store).get("01-a")
        assert status.attempts == 2
        assert status.total_sections == 3
        assert status.completed_sections == 0
        assert status.started is not None
        assert describe(status) == IN_PROGRESS

    def test_mark_started_clears_previous_failure(self, store):
        store.mark_started("01-a", total_sections=2)
        store.mark_finished("01-a", success=False, error="boom", failed_section=2)
        store.mark_started("01-a", total_sections=2)
        status = store.get("01-a")
        assert status.error is None
        assert status.failed_section is None
        assert status.completed is False

    def test_section_progress_is_persisted(self, store):
        store.mark_started("01-a", total_sections=3)
        store.mark_section_completed("01-a")
        store.mark_section_completed("01-a")
        assert _reload(store).get("01-a").completed_sections == 2

    def test_mark_finished_success(self, store):
        store.mark_started("01-a", total_sections=1)
        store.mark_section_completed("01-a")
        store.mark_finished("01-a", success=True)
        fresh = _reload(store)
        assert fresh.is_successful("01-a")
        assert fresh.get("01-a").finished is not None
        assert describe(fresh.get("01-a")) == COMPLETED

    def test_mark_finished_failure(self, store):
        store.mark_started("01-a", total_sections=2)
        store.mark_finished("01-a", success=False, error="timed out", failed_section=1)
        status = _reload(store).get("01-a")
        assert not status.succeeded
        assert status.error == "timed out"
        assert status.failed_section == 1
        assert describe(status) == FAILED

    def test_mark_blocked_keeps_first_reason(self, store):
        store.mark_blocked("02-b", "first reason")
        first = store.get("02-b").blocked_at
        store.mark_blocked("02-b", "second reason")
        status = _reload(store).get("02-b")
        assert status.blocked_reason == "first reason"
        assert status.blocked_at == first
        assert describe(status) == BLOCKED

    def test_mark_blocked_keeps_completion_flags(self, store):
        store.mark_started("01-a", total_sections=1)
        store.mark_finished("01-a", success=False, error="x")
        store.mark_blocked("01-a", "reason")
        status = store.get("01-a")
        assert status.completed is True
        assert status.success is False

    def test_blocked_fields_omitted_when_not_blocked(self, store):
        store.mark_started("01-a", total_sections=1)
        data = json.loads(store.path.read_text())
        assert "blocked" not in data["01-a"]
        assert "blocked_reason" not in data["01-a"]


class TestOperatorControls:
    """Test clear_blocked and reset."""

    def test_clear_blocked_keeps_completion(self, store):
        store.mark_started("01-a", total_sections=1)
        store.mark_finished("01-a", success=True)
        store.mark_blocked("02-b", "dep")
        store.mark_blocked("03-c", "dep")

        assert store.clear_blocked() == 2

        fresh = _reload(store)
        assert fresh.is_successful("01-a")
        assert not fresh.get("02-b").blocked
        assert describe(fresh.get("02-b")) == NOT_STARTED

    def test_clear_blocked_without_blocked_tasks_does_not_write(self, store):
        assert store.clear_blocked() == 0
        assert not store.path.exists()

    def test_reset_removes_file(self, store):
        store.mark_started("01-a", total_sections=1)
        assert store.path.exists()
        store.reset()
        assert not store.path.exists()
        assert store.all() == {}

    def test_reset_without_file(self, store):
        store.reset()
        assert not store.path.exists()


class TestSave:
    """Test StatusStore.save."""

    def test_writes_indented_json_without_temp_leftovers(self, store):
        store.mark_started("01-a", total_sections=1)
        text = store.path.read_text()
        assert text.endswith("\n")
        assert '\n  "01-a": {' in text
        assert [p.name for p in store.path.parent.iterdir()] == ["task-status.json"]


class TestDescribe:
    """Test describe helper."""

    def test_none_is_not_started(self):
        assert describe(None) == NOT_STARTED

    def test_blocked_wins_over_completed(self):
        status = TaskStatus(completed=True, success=True, blocked=True)
        assert describe(status) == BLOCKED

    def test_round_trip_keeps_extra(self):
        status = TaskStatus.from_dict({"completed": True, "custom": [1]})
        assert status.extra == {"custom": [1]}
        assert status.to_dict()["custom"] == [1]
