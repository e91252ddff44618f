"""
Recurring task resolution - no I/O dependencies.

Occurrences of a template are computed on read and only persisted
("materialized") when something about a single occurrence changes.
"""

import logging
from datetime import date, datetime
from enum import Enum

from .store import (
    add_task,
    attach_subtask,
    create_task,
    delete_task,
    exclude_instance,
    locate,
    update_task,
    validate_title,
)
from .tasks import Frequency, Task, TaskForest, TaskState, new_id
from .tree import find_by_title, find_task, subtree_ids

logger = logging.getLogger(__name__)


class EditScope(str, Enum):
    """Which occurrences of a recurring task an edit reaches."""

    THIS = "this"
    ALL = "all"
    FROM_TODAY = "from_today"


def _as_date(value: date | str) -> date:
    return value if isinstance(value, date) else date.fromisoformat(value)


def weekday_position(day: date) -> int:
    """1-based position of `day` among the same weekdays of its month."""
    return (day.day - 1) // 7 + 1


def is_due(template: Task, target_date: date | str) -> bool:
    """Whether `template` produces an occurrence on `target_date`."""
    pattern = template.recurrence
    if pattern is None:
        return False

    target = _as_date(target_date)
    start = template.day
    if target.isoformat() in pattern.excluded_dates:
        return False
    if target < start:
        return False
    if pattern.end_date and target > _as_date(pattern.end_date):
        return False

    match pattern.frequency:
        case Frequency.DAILY:
            return True
        case Frequency.WEEKLY:
            return target.weekday() in pattern.days_of_week
        case Frequency.MONTHLY_BY_WEEKDAY:
            return (
                target.weekday() == start.weekday()
                and weekday_position(target) == weekday_position(start)
            )


def _copy_children(children: list[Task], parent_id: str, target_date: str, now: datetime) -> list[Task]:
    copies = []
    for child in children:
        child_id = new_id()
        copies.append(
            Task(
                id=child_id,
                title=child.title,
                state=TaskState.TODO,
                date=target_date,
                created_at=now,
                updated_at=now,
                children=_copy_children(child.children, child_id, target_date, now),
                parent_id=parent_id,
            )
        )
    return copies


def generate_instance(template: Task, target_date: date | str) -> Task:
    """Unpersisted occurrence of `template` on `target_date`, with fresh ids."""
    day = _as_date(target_date).isoformat()
    instance_id = new_id()
    return Task(
        id=instance_id,
        title=template.title,
        state=TaskState.TODO,
        date=day,
        created_at=template.created_at,
        updated_at=template.created_at,
        children=_copy_children(template.children, instance_id, day, template.created_at),
        is_recurring_instance=True,
        recurring_parent_id=template.id,
    )


def templates(forest: TaskForest) -> list[Task]:
    return [task for tasks in forest.values() for task in tasks if task.is_template]


def materialized_instances(forest: TaskForest, template_id: str) -> list[Task]:
    """Persisted occurrences of a template, across all dates."""
    return [
        task
        for tasks in forest.values()
        for task in tasks
        if task.recurring_parent_id == template_id
    ]


def find_materialized(forest: TaskForest, template_id: str, target_date: str) -> Task | None:
    for task in forest.get(target_date, []):
        if task.recurring_parent_id == template_id:
            return task
    return None


def instances_for_date(forest: TaskForest, target_date: date | str) -> list[Task]:
    """
    Ephemeral occurrences due on `target_date`.

    Scans every template; a template's own date is represented by the
    template itself, and a date that already holds a materialized copy is skipped.
    """
    day = _as_date(target_date).isoformat()
    instances = []
    for template in templates(forest):
        if template.date == day:
            continue
        if not is_due(template, day):
            continue
        if find_materialized(forest, template.id, day):
            continue
        instances.append(generate_instance(template, day))
    return instances


def visible_tasks(forest: TaskForest, target_date: date | str) -> list[Task]:
    """Root tasks shown for a date: persisted ones, then ephemeral occurrences."""
    day = _as_date(target_date).isoformat()
    persisted = [
        task
        for task in forest.get(day, [])
        if not (task.is_template and day in task.recurrence.excluded_dates)
    ]
    return persisted + instances_for_date(forest, day)


def materialize(forest: TaskForest, instance: Task) -> TaskForest:
    """Persist an ephemeral occurrence, keeping the ids it was generated with."""
    if locate(forest, instance.id) is not None:
        return forest
    if find_materialized(forest, instance.recurring_parent_id, instance.date):
        return forest
    logger.debug(f"Materializing {instance.recurring_parent_id} on {instance.date}")
    return add_task(forest, instance)


def ensure_persisted(forest: TaskForest, target: Task, root: Task) -> tuple[TaskForest, str]:
    """
    Make sure the tree holding `target` is stored, materializing an
    ephemeral occurrence if needed. Returns the forest and the stored id
    that corresponds to `target`.
    """
    if locate(forest, root.id) is not None or not root.is_recurring_instance:
        return forest, target.id

    existing = find_materialized(forest, root.recurring_parent_id, root.date)
    if existing is None:
        return materialize(forest, root), target.id
    if target.id == root.id:
        return forest, existing.id
    match = find_by_title(existing.children, target.title)
    return forest, match.id if match else target.id


def _template_for(forest: TaskForest, root: Task) -> Task | None:
    template_id = root.template_id
    day = locate(forest, template_id) if template_id else None
    if day is None:
        return None
    template = find_task(forest[day], template_id)
    return template if template.is_template else None


def _qualifying_trees(forest: TaskForest, template: Task, scope: EditScope, today: date) -> list[Task]:
    trees = [template]
    for instance in materialized_instances(forest, template.id):
        if scope is EditScope.FROM_TODAY and instance.day < today:
            continue
        trees.append(instance)
    return trees


def _correlated_ids(trees: list[Task], target: Task, root: Task) -> list[str]:
    # Subtask ids differ per occurrence, so subtasks are matched by title.
    if target.id == root.id:
        return [tree.id for tree in trees]
    ids = []
    for tree in trees:
        match = find_by_title(tree.children, target.title)
        if match:
            ids.append(match.id)
    return ids


def scoped_update(
    forest: TaskForest,
    target: Task,
    root: Task,
    updates: dict,
    scope: EditScope = EditScope.THIS,
    today: date | None = None,
    now: datetime | None = None,
) -> TaskForest:
    """Apply `updates` to `target` and, per `scope`, to its other occurrences."""
    scope = EditScope(scope)
    template = _template_for(forest, root) if root.is_recurring else None

    if template is None or scope is EditScope.THIS:
        forest, target_id = ensure_persisted(forest, target, root)
        return update_task(forest, target_id, updates, now)

    today = today or date.today()
    for task_id in _correlated_ids(_qualifying_trees(forest, template, scope, today), target, root):
        forest = update_task(forest, task_id, updates, now)
    return forest


def scoped_delete(
    forest: TaskForest,
    target: Task,
    root: Task,
    scope: EditScope = EditScope.THIS,
    today: date | None = None,
) -> tuple[TaskForest, list[str]]:
    """
    Delete `target` per `scope`. Returns the new forest and the ids of every
    persisted task removed (subtrees included).

    Deleting a single occurrence of a recurring task excludes its date on
    the template instead of removing the template.
    """
    scope = EditScope(scope)
    template = _template_for(forest, root) if root.is_recurring else None

    if template is None:
        return _delete_ids(forest, [target.id])

    if target.id == root.id:
        if scope is EditScope.THIS:
            forest = exclude_instance(forest, template.id, root.date)
            local = find_materialized(forest, template.id, root.date)
            return _delete_ids(forest, [local.id] if local else [])
        today = today or date.today()
        return _delete_ids(forest, [tree.id for tree in _qualifying_trees(forest, template, scope, today)])

    if scope is EditScope.THIS:
        forest, target_id = ensure_persisted(forest, target, root)
        return _delete_ids(forest, [target_id])

    today = today or date.today()
    trees = _qualifying_trees(forest, template, scope, today)
    return _delete_ids(forest, _correlated_ids(trees, target, root))


def _delete_ids(forest: TaskForest, task_ids: list[str]) -> tuple[TaskForest, list[str]]:
    removed: list[str] = []
    for task_id in task_ids:
        day = locate(forest, task_id)
        if day is None:
            continue
        removed.extend(subtree_ids(find_task(forest[day], task_id)))
        forest = delete_task(forest, task_id)
    return forest, removed


def scoped_add_subtask(
    forest: TaskForest,
    parent: Task,
    root: Task,
    title: str,
    scope: EditScope = EditScope.THIS,
    today: date | None = None,
    now: datetime | None = None,
) -> tuple[TaskForest, list[Task]]:
    """Add a subtask under `parent` per `scope`. Returns the forest and the new subtasks."""
    validate_title(title)
    scope = EditScope(scope)
    template = _template_for(forest, root) if root.is_recurring else None

    if template is None or scope is EditScope.THIS:
        forest, parent_id = ensure_persisted(forest, parent, root)
        parent_ids = [parent_id]
    else:
        today = today or date.today()
        parent_ids = _correlated_ids(_qualifying_trees(forest, template, scope, today), parent, root)

    created = []
    for parent_id in parent_ids:
        subtask = create_task(title, root.date, now=now)
        forest = attach_subtask(forest, parent_id, subtask)
        created.append(find_task(forest[locate(forest, subtask.id)], subtask.id))
    return forest, created
