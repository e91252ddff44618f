"""
Task store operations over a TaskForest.

Every function validates before it builds a new forest, so a failure leaves
the caller's forest untouched. The store does not emit timeline events.
"""

from datetime import date, datetime
from typing import Any

from .errors import ParentNotFoundError, TaskNotFoundError, ValidationError
from .tasks import MAX_TITLE_LENGTH, Task, TaskForest, TaskState, TaskStats, new_id
from .tree import (
    add_subtask_to_tree,
    delete_task_from_tree,
    find_task,
    get_task_stats,
    update_task_in_tree,
)

UPDATABLE_FIELDS = frozenset({"title", "state", "start_time", "end_time", "recurrence"})


def validate_title(title: str) -> str:
    """Return the trimmed title, or raise ValidationError."""
    trimmed = (title or "").strip()
    if not trimmed:
        raise ValidationError("Task title cannot be empty")
    if len(trimmed) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Task title cannot exceed {MAX_TITLE_LENGTH} characters")
    return trimmed


def validate_times(start_time: datetime | None, end_time: datetime | None) -> None:
    """End time, when both are set, may not precede start time."""
    if start_time and end_time and end_time < start_time:
        raise ValidationError("End time cannot be before start time")


def validate_date(value: str) -> str:
    try:
        date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date: {value}. Expected valid YYYY-MM-DD format")
    return value


def create_task(
    title: str,
    task_date: str,
    state: TaskState = TaskState.TODO,
    now: datetime | None = None,
) -> Task:
    """Build a new, unattached task."""
    title = validate_title(title)
    validate_date(task_date)
    now = now or datetime.now()
    return Task(
        id=new_id(),
        title=title,
        state=state,
        date=task_date,
        created_at=now,
        updated_at=now,
    )


def locate(forest: TaskForest, task_id: str) -> str | None:
    """Date bucket containing `task_id` anywhere in its trees."""
    for day, tasks in forest.items():
        if find_task(tasks, task_id):
            return day
    return None


def get_task(forest: TaskForest, task_id: str) -> Task:
    day = locate(forest, task_id)
    if day is None:
        raise TaskNotFoundError(task_id)
    return find_task(forest[day], task_id)


def add_task(forest: TaskForest, task: Task) -> TaskForest:
    """Append a root task to its date bucket."""
    return {**forest, task.date: [*forest.get(task.date, []), task]}


def update_task(
    forest: TaskForest,
    task_id: str,
    updates: dict[str, Any],
    now: datetime | None = None,
) -> TaskForest:
    """Merge `updates` into a task wherever it lives."""
    invalid_fields = set(updates) - UPDATABLE_FIELDS
    if invalid_fields:
        raise ValidationError(f"Invalid task fields: {', '.join(sorted(invalid_fields))}")

    day = locate(forest, task_id)
    if day is None:
        raise TaskNotFoundError(task_id)
    task = find_task(forest[day], task_id)

    updates = dict(updates)
    if "title" in updates:
        updates["title"] = validate_title(updates["title"])
    if "state" in updates:
        updates["state"] = TaskState(updates["state"])
    if "start_time" in updates or "end_time" in updates:
        validate_times(
            updates.get("start_time", task.start_time),
            updates.get("end_time", task.end_time),
        )
    if updates.get("recurrence") is not None and task.parent_id is not None:
        raise ValidationError("Only top-level tasks can recur")

    return {**forest, day: update_task_in_tree(forest[day], task_id, updates, now)}


def delete_task(forest: TaskForest, task_id: str) -> TaskForest:
    """
    Remove a task and its subtree. A missing id is a no-op, since an
    occurrence that was never materialized has nothing to delete.
    """
    day = locate(forest, task_id)
    if day is None:
        return forest

    remaining = delete_task_from_tree(forest[day], task_id)
    result = {**forest, day: remaining}
    if not remaining:
        del result[day]
    return result


def attach_subtask(forest: TaskForest, parent_id: str, subtask: Task) -> TaskForest:
    """Append an already-built task under `parent_id`, dated like the parent."""
    day = locate(forest, parent_id)
    if day is None:
        raise ParentNotFoundError(parent_id)
    parent = find_task(forest[day], parent_id)

    child = Task(
        id=subtask.id,
        title=subtask.title,
        state=subtask.state,
        date=parent.date,
        created_at=subtask.created_at,
        updated_at=subtask.updated_at,
        start_time=subtask.start_time,
        end_time=subtask.end_time,
        children=subtask.children,
        parent_id=parent_id,
    )
    return {**forest, day: add_subtask_to_tree(forest[day], parent_id, child)}


def add_subtask(
    forest: TaskForest,
    parent_id: str,
    title: str,
    now: datetime | None = None,
) -> TaskForest:
    """Create a todo subtask under `parent_id`."""
    parent_day = locate(forest, parent_id)
    if parent_day is None:
        raise ParentNotFoundError(parent_id)
    subtask = create_task(title, parent_day, now=now)
    return attach_subtask(forest, parent_id, subtask)


def change_state(
    forest: TaskForest,
    task_id: str,
    new_state: TaskState,
    now: datetime | None = None,
) -> TaskForest:
    """Set the state; finished states stamp `end_time`, todo clears it."""
    new_state = TaskState(new_state)
    now = now or datetime.now()
    return update_task(
        forest,
        task_id,
        {"state": new_state, "end_time": now if new_state.is_finished else None},
        now,
    )


def start_task(
    forest: TaskForest,
    task_id: str,
    start_time: datetime | None = None,
    now: datetime | None = None,
) -> TaskForest:
    """Mark a task in progress: set `start_time`, clear `end_time`, force todo."""
    now = now or datetime.now()
    return update_task(
        forest,
        task_id,
        {"start_time": start_time or now, "end_time": None, "state": TaskState.TODO},
        now,
    )


def unstart_task(forest: TaskForest, task_id: str, now: datetime | None = None) -> TaskForest:
    return update_task(forest, task_id, {"start_time": None}, now)


def exclude_instance(forest: TaskForest, template_id: str, target_date: str) -> TaskForest:
    """Add `target_date` to a template's excluded dates (idempotent)."""
    template = get_task(forest, template_id)
    if template.recurrence is None:
        raise TaskNotFoundError(template_id, f"Recurring task not found: {template_id}")

    pattern = template.recurrence.with_excluded(validate_date(target_date))
    if pattern is template.recurrence:
        return forest
    day = locate(forest, template_id)
    return {**forest, day: update_task_in_tree(forest[day], template_id, {"recurrence": pattern})}


def tasks_for_date(forest: TaskForest, target_date: str) -> list[Task]:
    return forest.get(target_date, [])


def all_tasks(forest: TaskForest) -> list[Task]:
    """All root tasks across every date."""
    return [task for tasks in forest.values() for task in tasks]


def stats_for_date(forest: TaskForest, target_date: str) -> TaskStats:
    return get_task_stats(tasks_for_date(forest, target_date))
