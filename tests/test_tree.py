"""Tests for task tree utilities."""

from datetime import datetime

import pytest

from epoch.core.tasks import Task, TaskState
from epoch.core.tree import (
    add_subtask_to_tree,
    delete_task_from_tree,
    find_by_title,
    find_root,
    find_task,
    flatten_tasks,
    get_task_stats,
    iter_tasks,
    subtree_ids,
    update_task_in_tree,
)

CREATED = datetime(2024, 1, 1, 8, 0)


def make_task(task_id, title=None, children=None, parent_id=None, state=TaskState.TODO):
    return Task(
        id=task_id,
        title=title or task_id,
        state=state,
        date="2024-01-01",
        created_at=CREATED,
        updated_at=CREATED,
        children=children or [],
        parent_id=parent_id,
    )


@pytest.fixture
def tasks():
    """Two roots; `a` has children a1 (with a1x) and a2."""
    return [
        make_task(
            "a",
            children=[
                make_task("a1", parent_id="a", children=[make_task("a1x", parent_id="a1")]),
                make_task("a2", parent_id="a"),
            ],
        ),
        make_task("b"),
    ]


class TestFindTask:
    def test_finds_root(self, tasks):
        assert find_task(tasks, "b").id == "b"

    def test_finds_nested(self, tasks):
        assert find_task(tasks, "a1x").id == "a1x"

    def test_missing_returns_none(self, tasks):
        assert find_task(tasks, "zzz") is None

    def test_empty_list(self):
        assert find_task([], "a") is None

    def test_find_root_of_nested(self, tasks):
        assert find_root(tasks, "a1x").id == "a"
        assert find_root(tasks, "b").id == "b"
        assert find_root(tasks, "zzz") is None

    def test_find_by_title_preorder(self):
        tasks = [
            make_task("a", children=[make_task("a1", title="Same", parent_id="a")]),
            make_task("b", title="Same"),
        ]
        assert find_by_title(tasks, "Same").id == "a1"


class TestUpdateTaskInTree:
    def test_merges_updates_and_refreshes_updated_at(self, tasks):
        now = datetime(2024, 1, 2, 9, 30)
        updated = update_task_in_tree(tasks, "a1", {"title": "Renamed"}, now=now)

        node = find_task(updated, "a1")
        assert node.title == "Renamed"
        assert node.updated_at == now
        assert node.created_at == CREATED

    def test_does_not_mutate_input(self, tasks):
        update_task_in_tree(tasks, "a1x", {"title": "Renamed"})
        assert find_task(tasks, "a1x").title == "a1x"

    def test_copies_path_and_shares_untouched_subtrees(self, tasks):
        updated = update_task_in_tree(tasks, "a1x", {"title": "Renamed"})

        assert updated is not tasks
        assert updated[0] is not tasks[0]
        assert updated[0].children[0] is not tasks[0].children[0]
        # Siblings off the path are reused
        assert updated[0].children[1] is tasks[0].children[1]
        assert updated[1] is tasks[1]

    def test_missing_id_returns_input(self, tasks):
        assert update_task_in_tree(tasks, "zzz", {"title": "x"}) is tasks


class TestDeleteTaskFromTree:
    def test_removes_node_and_descendants(self, tasks):
        result = delete_task_from_tree(tasks, "a1")

        for task_id in ("a1", "a1x"):
            assert find_task(result, task_id) is None
        assert find_task(result, "a2") is not None

    def test_removes_root(self, tasks):
        result = delete_task_from_tree(tasks, "a")
        assert [t.id for t in result] == ["b"]

    def test_missing_id_is_noop(self, tasks):
        assert delete_task_from_tree(tasks, "zzz") is tasks

    def test_does_not_mutate_input(self, tasks):
        delete_task_from_tree(tasks, "a1")
        assert find_task(tasks, "a1") is not None


class TestAddSubtaskToTree:
    def test_appends_at_end(self, tasks):
        new = make_task("a3", parent_id="a")
        result = add_subtask_to_tree(tasks, "a", new)
        assert [c.id for c in find_task(result, "a").children] == ["a1", "a2", "a3"]

    def test_nested_parent(self, tasks):
        result = add_subtask_to_tree(tasks, "a1x", make_task("deep", parent_id="a1x"))
        assert find_task(result, "deep").parent_id == "a1x"

    def test_missing_parent_returns_input(self, tasks):
        assert add_subtask_to_tree(tasks, "zzz", make_task("x")) is tasks


class TestFlatten:
    def test_preorder(self, tasks):
        assert [t.id for t in flatten_tasks(tasks)] == ["a", "a1", "a1x", "a2", "b"]

    def test_iter_tasks_depths(self, tasks):
        assert [(t.id, d) for t, d in iter_tasks(tasks)] == [
            ("a", 0),
            ("a1", 1),
            ("a1x", 2),
            ("a2", 1),
            ("b", 0),
        ]

    def test_subtree_ids(self, tasks):
        assert subtree_ids(tasks[0]) == ["a", "a1", "a1x", "a2"]


class TestGetTaskStats:
    def test_empty(self):
        stats = get_task_stats([])
        assert (stats.total, stats.completed, stats.percentage) == (0, 0, 0)

    def test_counts_flattened_tree(self, tasks):
        tasks = update_task_in_tree(tasks, "a1x", {"state": TaskState.COMPLETED})
        stats = get_task_stats(tasks)
        assert stats.total == 5
        assert stats.completed == 1
        assert stats.percentage == 20

    def test_only_completed_counts(self):
        tasks = [
            make_task("a", state=TaskState.DELEGATED),
            make_task("b", state=TaskState.DELAYED),
            make_task("c", state=TaskState.COMPLETED),
        ]
        stats = get_task_stats(tasks)
        assert stats.completed == 1
        assert stats.percentage == 33

    def test_rounds_half_up(self):
        tasks = [make_task(str(i)) for i in range(8)]
        tasks[0] = make_task("0", state=TaskState.COMPLETED)
        # 1/8 = 12.5%
        assert get_task_stats(tasks).percentage == 13

    def test_two_thirds(self):
        tasks = [
            make_task("a", state=TaskState.COMPLETED),
            make_task("b", state=TaskState.COMPLETED),
            make_task("c"),
        ]
        assert get_task_stats(tasks).percentage == 67
