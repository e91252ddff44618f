"""Tests for the undo stack."""

from datetime import datetime

import pytest

from epoch.core.store import add_task, create_task
from epoch.core.tasks import forest_to_dict
from epoch.core.timeline import TimelineEventType, add_event, create_event
from epoch.core.undo import ActionType, UndoEntry, UndoStack

NOW = datetime(2024, 1, 1, 9, 0)


@pytest.fixture
def forest():
    return add_task({}, create_task("Buy milk", "2024-01-01", now=NOW))


@pytest.fixture
def timeline(forest):
    task = forest["2024-01-01"][0]
    return add_event({}, create_event(task.id, task.title, TimelineEventType.CREATED, NOW))


class TestUndoStack:
    def test_empty(self):
        stack = UndoStack()
        assert not stack.can_undo
        assert stack.pop() is None
        assert stack.peek() is None
        assert len(stack) == 0

    def test_lifo(self, forest, timeline):
        stack = UndoStack()
        stack.push(ActionType.CREATE, {}, {})
        stack.push(ActionType.UPDATE, forest, timeline)

        assert stack.pop().action_type == ActionType.UPDATE
        assert stack.pop().action_type == ActionType.CREATE
        assert stack.pop() is None

    def test_snapshot_is_deep_copy(self, forest, timeline):
        stack = UndoStack()
        stack.push(ActionType.UPDATE, forest, timeline)

        forest["2024-01-01"][0].title = "Changed"
        entry = stack.peek()
        assert entry.previous_tasks["2024-01-01"][0].title == "Buy milk"
        assert entry.previous_tasks is not forest

    def test_evicts_oldest_past_depth(self):
        stack = UndoStack(max_depth=3)
        for action in (ActionType.CREATE, ActionType.UPDATE, ActionType.DELETE, ActionType.START):
            stack.push(action, {}, {})

        assert len(stack) == 3
        assert [e.action_type for e in stack.entries] == [
            ActionType.UPDATE,
            ActionType.DELETE,
            ActionType.START,
        ]

    def test_clear(self):
        stack = UndoStack()
        stack.push(ActionType.CREATE, {}, {})
        stack.clear()
        assert not stack.can_undo

    def test_rejects_zero_depth(self):
        with pytest.raises(ValueError):
            UndoStack(max_depth=0)

    def test_initial_entries_trimmed_to_depth(self):
        entries = [UndoEntry(ActionType.CREATE, {}, {}) for _ in range(5)]
        assert len(UndoStack(max_depth=2, entries=entries)) == 2


class TestUndoEntry:
    def test_payload_round_trip(self, forest, timeline):
        entry = UndoEntry(ActionType.ADD_SUBTASK, forest, timeline)
        restored = UndoEntry.from_dict(entry.to_dict())

        assert restored.action_type == ActionType.ADD_SUBTASK
        assert forest_to_dict(restored.previous_tasks) == forest_to_dict(forest)
        assert restored.to_dict() == entry.to_dict()

    def test_missing_snapshots_default_empty(self):
        entry = UndoEntry.from_dict({"action_type": "exclude"})
        assert entry.previous_tasks == {}
        assert entry.previous_timeline == {}
