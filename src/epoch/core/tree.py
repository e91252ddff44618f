"""
Pure functions over a list of task trees.

Updates never mutate their input: the changed node and every ancestor on its
path are copied, untouched subtrees are shared with the original list.
"""

from dataclasses import replace
from datetime import datetime
from typing import Any, Iterator

from .tasks import Task, TaskState, TaskStats


def find_task(tasks: list[Task], task_id: str) -> Task | None:
    """Depth-first search, parent before children. None if absent."""
    for task in tasks:
        if task.id == task_id:
            return task
        found = find_task(task.children, task_id)
        if found:
            return found
    return None


def contains(tasks: list[Task], task_id: str) -> bool:
    return find_task(tasks, task_id) is not None


def update_task_in_tree(
    tasks: list[Task],
    task_id: str,
    updates: dict[str, Any],
    now: datetime | None = None,
) -> list[Task]:
    """Merge `updates` into the matching node and refresh its `updated_at`."""
    now = now or datetime.now()

    def merge(task: Task) -> Task:
        return replace(task, **{**updates, "updated_at": now})

    return _rebuild(tasks, task_id, merge)


def delete_task_from_tree(tasks: list[Task], task_id: str) -> list[Task]:
    """Remove the node and its subtree. Returns the input list if absent."""
    if not contains(tasks, task_id):
        return tasks

    result = []
    for task in tasks:
        if task.id == task_id:
            continue
        if contains(task.children, task_id):
            task = replace(task, children=delete_task_from_tree(task.children, task_id))
        result.append(task)
    return result


def add_subtask_to_tree(tasks: list[Task], parent_id: str, new_task: Task) -> list[Task]:
    """Append `new_task` to the parent's children. Returns the input list if absent."""

    def append(parent: Task) -> Task:
        return replace(parent, children=[*parent.children, new_task])

    return _rebuild(tasks, parent_id, append)


def _rebuild(tasks: list[Task], task_id: str, change) -> list[Task]:
    if not contains(tasks, task_id):
        return tasks

    result = []
    for task in tasks:
        if task.id == task_id:
            task = change(task)
        elif contains(task.children, task_id):
            task = replace(task, children=_rebuild(task.children, task_id, change))
        result.append(task)
    return result


def iter_tasks(tasks: list[Task], depth: int = 0) -> Iterator[tuple[Task, int]]:
    """Pre-order walk yielding (task, depth)."""
    for task in tasks:
        yield task, depth
        yield from iter_tasks(task.children, depth + 1)


def flatten_tasks(tasks: list[Task]) -> list[Task]:
    """Pre-order traversal, parent before children."""
    return [task for task, _ in iter_tasks(tasks)]


def subtree_ids(task: Task) -> list[str]:
    """Ids of a task and all its descendants."""
    return [t.id for t in flatten_tasks([task])]


def find_root(tasks: list[Task], task_id: str) -> Task | None:
    """The top-level task whose tree contains `task_id`."""
    for task in tasks:
        if task.id == task_id or contains(task.children, task_id):
            return task
    return None


def find_by_title(tasks: list[Task], title: str) -> Task | None:
    """First task in pre-order whose title matches exactly."""
    for task in flatten_tasks(tasks):
        if task.title == title:
            return task
    return None


def get_task_stats(tasks: list[Task]) -> TaskStats:
    """Completion stats over the flattened tree."""
    flat = flatten_tasks(tasks)
    total = len(flat)
    completed = sum(1 for t in flat if t.state == TaskState.COMPLETED)

    return TaskStats(
        total=total,
        completed=completed,
        percentage=0 if total == 0 else _round_half_up(completed / total * 100),
    )


def _round_half_up(value: float) -> int:
    # round() is banker's rounding; percentages round .5 up
    return int(value + 0.5)
