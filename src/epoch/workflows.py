"""
Shared workflow layer between the core and any front end.

Each command computes the new task forest and timeline from the current
ones, then commits them together with an undo snapshot of the old pair.
Core functions never mutate their inputs, so a command that raises leaves
tasks, timeline and undo history exactly as they were.
"""

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable

from .core import recurrence, store, timeline as tl
from .core.errors import TaskNotFoundError, ValidationError
from .core.recurrence import EditScope
from .core.tasks import RecurrencePattern, Task, TaskForest, TaskState, TaskStats
from .core.timeline import TimelineEvent, TimelineEventType, TimelineLog
from .core.tree import find_by_title, find_root, find_task, get_task_stats, iter_tasks
from .core.undo import DEFAULT_MAX_DEPTH, ActionType, UndoStack
from .ports.state_store import Snapshot, StateStore

logger = logging.getLogger(__name__)


def _day(value: date | str | None, default: date) -> str:
    if value is None:
        return default.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return store.validate_date(value)


def _drop_events(timeline: TimelineLog, task_ids: list[str]) -> TimelineLog:
    for task_id in task_ids:
        timeline = tl.remove_events_by_task_id(timeline, task_id)
    return timeline


class Planner:
    """In-memory planner state plus the commands that change it."""

    def __init__(
        self,
        state_store: StateStore | None = None,
        snapshot: Snapshot | None = None,
        undo_depth: int = DEFAULT_MAX_DEPTH,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.state_store = state_store
        self.clock = clock
        if snapshot is None:
            snapshot = state_store.load() if state_store else Snapshot()
        self.tasks: TaskForest = snapshot.tasks
        self.timeline: TimelineLog = snapshot.timeline
        self.settings = snapshot.settings
        entries = state_store.load_undo() if state_store else []
        self.undo_stack = UndoStack(undo_depth, entries)
        # Ephemeral occurrences handed out by tasks_for_date, by date
        self._ephemeral: dict[str, list[Task]] = {}

    @property
    def today(self) -> date:
        return self.clock().date()

    # ============== Reads ==============

    def tasks_for_date(self, day: date | str | None = None) -> list[Task]:
        """Visible root tasks for a date, including ephemeral occurrences."""
        key = _day(day, self.today)
        visible = recurrence.visible_tasks(self.tasks, key)
        self._ephemeral[key] = [t for t in visible if store.locate(self.tasks, t.id) is None]
        return visible

    def flat_tasks_for_date(self, day: date | str | None = None) -> list[tuple[Task, int]]:
        """Visible tasks in pre-order with their depth, for numbered display."""
        return list(iter_tasks(self.tasks_for_date(day)))

    def stats_for_date(self, day: date | str | None = None) -> TaskStats:
        return get_task_stats(self.tasks_for_date(day))

    def timeline_for_date(self, day: date | str | None = None) -> list[TimelineEvent]:
        """Events of a date ordered by timestamp."""
        key = _day(day, self.today)
        return sorted(tl.events_for_date(self.timeline, key), key=lambda e: e.timestamp)

    def get_task(self, task_id: str) -> Task:
        return self._resolve(task_id)[0]

    # ============== Commands ==============

    def add_task(
        self,
        title: str,
        day: date | str | None = None,
        recurrence_pattern: RecurrencePattern | None = None,
    ) -> Task:
        """Create a root task, optionally recurring."""
        now = self.clock()
        task = store.create_task(title, _day(day, self.today), now=now)
        task.recurrence = recurrence_pattern

        tasks = store.add_task(self.tasks, task)
        timeline = tl.add_event(
            self.timeline, tl.create_event(task.id, task.title, TimelineEventType.CREATED, now)
        )
        self._commit(ActionType.CREATE, tasks, timeline)
        return task

    def set_recurrence(self, task_id: str, pattern: RecurrencePattern | None) -> Task:
        """Make a top-level task recurring, change its pattern, or stop it recurring."""
        target, root = self._resolve(task_id)
        if target.is_recurring_instance or target.id != root.id:
            raise ValidationError("Only top-level, non-occurrence tasks can recur")

        now = self.clock()
        tasks = store.update_task(self.tasks, target.id, {"recurrence": pattern}, now)
        timeline = tl.add_event(
            self.timeline, tl.create_event(target.id, target.title, TimelineEventType.UPDATED, now)
        )
        self._commit(ActionType.UPDATE, tasks, timeline)
        return store.get_task(self.tasks, target.id)

    def edit_task(self, task_id: str, title: str, scope: EditScope = EditScope.THIS) -> Task:
        """Rename a task; `scope` decides which occurrences of a recurring task change."""
        target, root = self._resolve(task_id)
        now = self.clock()
        title = store.validate_title(title)

        tasks = recurrence.scoped_update(
            self.tasks, target, root, {"title": title}, scope, self.today, now
        )
        logged_id = self._logged_id(tasks, target, root, title)
        timeline = tl.add_event(
            self.timeline, tl.create_event(logged_id, title, TimelineEventType.UPDATED, now)
        )
        self._commit(ActionType.UPDATE, tasks, timeline)
        day = store.locate(self.tasks, target.id)
        if day is None:
            return replace(target, title=title)
        return find_task(self.tasks[day], target.id)

    def change_state(self, task_id: str, new_state: TaskState) -> Task:
        """
        Move a task to `new_state`. Entering a finished state logs a matching
        event; going back to todo removes the last event of the old state.
        """
        new_state = TaskState(new_state)
        target, root = self._resolve(task_id)
        if target.state == new_state:
            return target

        now = self.clock()
        tasks, persisted_id = recurrence.ensure_persisted(self.tasks, target, root)
        tasks = store.change_state(tasks, persisted_id, new_state, now)

        timeline = self.timeline
        entered = TimelineEventType.for_state(new_state)
        left = TimelineEventType.for_state(target.state)
        if entered is not None:
            timeline = tl.add_event(
                timeline,
                tl.create_event(persisted_id, target.title, entered, now, target.state, new_state),
            )
        elif left is not None:
            timeline = tl.remove_last_event_by_type(timeline, persisted_id, left)

        self._commit(ActionType.STATE_CHANGE, tasks, timeline)
        return store.get_task(self.tasks, persisted_id)

    def start_task(self, task_id: str, start_time: datetime | None = None) -> Task:
        """Mark a task in progress; a finished task goes back to todo."""
        target, root = self._resolve(task_id)
        now = self.clock()
        tasks, persisted_id = recurrence.ensure_persisted(self.tasks, target, root)
        tasks = store.start_task(tasks, persisted_id, start_time or now, now)

        event = tl.create_event(persisted_id, target.title, TimelineEventType.STARTED, now)
        if target.state != TaskState.TODO:
            event.previous_state = target.state
            event.new_state = TaskState.TODO
        self._commit(ActionType.START, tasks, tl.add_event(self.timeline, event))
        return store.get_task(self.tasks, persisted_id)

    def unstart_task(self, task_id: str) -> Task:
        """Clear the start time and drop the most recent `started` event."""
        target, root = self._resolve(task_id)
        if target.start_time is None:
            raise ValidationError(f"Task has not been started: {target.title}")

        tasks = store.unstart_task(self.tasks, target.id, self.clock())
        timeline = tl.remove_last_event_by_type(self.timeline, target.id, TimelineEventType.STARTED)
        self._commit(ActionType.UNSTART, tasks, timeline)
        return store.get_task(self.tasks, target.id)

    def add_subtask(self, parent_id: str, title: str, scope: EditScope = EditScope.THIS) -> Task:
        """Add a subtask. Returns the subtask created under the targeted occurrence."""
        parent, root = self._resolve(parent_id)
        now = self.clock()
        tasks, created = recurrence.scoped_add_subtask(
            self.tasks, parent, root, title, scope, self.today, now
        )
        if not created:
            raise TaskNotFoundError(parent_id, f"No occurrence holds parent task: {parent.title}")

        timeline = self.timeline
        for subtask in created:
            timeline = tl.add_event(
                timeline, tl.create_event(subtask.id, subtask.title, TimelineEventType.CREATED, now)
            )
        self._commit(ActionType.ADD_SUBTASK, tasks, timeline)

        for subtask in created:
            if subtask.parent_id == parent.id:
                return subtask
        return created[0]

    def delete_task(self, task_id: str, scope: EditScope = EditScope.THIS) -> list[str]:
        """
        Delete a task and its subtree per `scope`, along with their timeline
        events. Returns the ids removed from storage; an unknown id removes
        nothing.
        """
        try:
            target, root = self._resolve(task_id)
        except TaskNotFoundError:
            logger.debug(f"Nothing to delete for {task_id}")
            return []
        tasks, removed = recurrence.scoped_delete(self.tasks, target, root, scope, self.today)

        timeline = _drop_events(self.timeline, removed)

        if tasks is self.tasks and timeline is self.timeline:
            logger.debug(f"Nothing to delete for {task_id}")
            return []
        self._commit(ActionType.DELETE, tasks, timeline)
        return removed

    def exclude_occurrence(self, task_id: str) -> None:
        """
        Skip one date of a recurring task, leaving the other dates alone.
        A materialized copy of that date is removed along with its events.
        """
        target, root = self._resolve(task_id)
        if root.template_id is None:
            raise ValidationError(f"Task does not recur: {root.title}")
        store.get_task(self.tasks, root.template_id)

        # Drops the stored copy of that date as well
        tasks, removed = recurrence.scoped_delete(self.tasks, root, root, EditScope.THIS, self.today)
        if tasks is self.tasks:
            return
        self._commit(ActionType.EXCLUDE, tasks, _drop_events(self.timeline, removed))

    def clear_timeline(self, day: date | str | None = None) -> None:
        """Clear one date's events, or the whole timeline when `day` is None."""
        if day is None:
            timeline: TimelineLog = {}
        else:
            key = _day(day, self.today)
            timeline = {d: events for d, events in self.timeline.items() if d != key}
        self._commit(ActionType.CLEAR_TIMELINE, self.tasks, timeline)

    def undo(self) -> ActionType | None:
        """Restore tasks and timeline to before the last command."""
        entry = self.undo_stack.pop()
        if entry is None:
            return None

        self.tasks = entry.previous_tasks
        self.timeline = entry.previous_timeline
        self._ephemeral.clear()
        logger.info(f"Undid {entry.action_type.value}")
        self._save()
        return entry.action_type

    # ============== Internals ==============

    def _logged_id(self, tasks: TaskForest, target: Task, root: Task, title: str) -> str:
        """
        Id an event about `target` is logged under. An occurrence left
        ephemeral by the edit is logged against its template, or against the
        template subtask now titled `title`.
        """
        if store.locate(tasks, target.id) is not None:
            return target.id
        template = store.get_task(tasks, root.template_id)
        if target.id == root.id:
            return template.id
        match = find_by_title(template.children, title)
        return match.id if match else template.id

    def _resolve(self, task_id: str) -> tuple[Task, Task]:
        """The task for `task_id` and the root of its tree, stored or ephemeral."""
        day = store.locate(self.tasks, task_id)
        if day is not None:
            return find_task(self.tasks[day], task_id), find_root(self.tasks[day], task_id)

        for roots in self._ephemeral.values():
            root = find_root(roots, task_id)
            if root is not None:
                return find_task([root], task_id), root

        raise TaskNotFoundError(task_id)

    def _commit(self, action: ActionType, tasks: TaskForest, timeline: TimelineLog) -> None:
        self.undo_stack.push(action, self.tasks, self.timeline)
        self.tasks = tasks
        self.timeline = timeline
        self._ephemeral.clear()
        logger.debug(f"Committed {action.value}")
        self._save()

    def _save(self) -> None:
        if self.state_store is None:
            return
        self.state_store.save(Snapshot(self.tasks, self.timeline, self.settings))
        self.state_store.save_undo(self.undo_stack.entries)
