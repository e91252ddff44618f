"""Functional core - pure business logic with no I/O."""

from .errors import (
    EpochError,
    ParentNotFoundError,
    StorageError,
    TaskNotFoundError,
    ValidationError,
)
from .tasks import Frequency, RecurrencePattern, Task, TaskForest, TaskState, TaskStats
from .tree import (
    add_subtask_to_tree,
    delete_task_from_tree,
    find_task,
    flatten_tasks,
    get_task_stats,
    update_task_in_tree,
)
from .store import (
    add_subtask,
    change_state,
    create_task,
    delete_task,
    exclude_instance,
    start_task,
    update_task,
)
from .recurrence import EditScope, generate_instance, instances_for_date, is_due, visible_tasks
from .timeline import (
    TimelineEvent,
    TimelineEventType,
    TimelineLog,
    add_event,
    create_event,
    remove_events_by_task_id,
    remove_last_event_by_type,
)
from .undo import ActionType, UndoEntry, UndoStack

__all__ = [
    # Errors
    "EpochError",
    "ParentNotFoundError",
    "StorageError",
    "TaskNotFoundError",
    "ValidationError",
    # Model
    "Frequency",
    "RecurrencePattern",
    "Task",
    "TaskForest",
    "TaskState",
    "TaskStats",
    # Tree
    "add_subtask_to_tree",
    "delete_task_from_tree",
    "find_task",
    "flatten_tasks",
    "get_task_stats",
    "update_task_in_tree",
    # Store
    "add_subtask",
    "change_state",
    "create_task",
    "delete_task",
    "exclude_instance",
    "start_task",
    "update_task",
    # Recurrence
    "EditScope",
    "generate_instance",
    "instances_for_date",
    "is_due",
    "visible_tasks",
    # Timeline
    "TimelineEvent",
    "TimelineEventType",
    "TimelineLog",
    "add_event",
    "create_event",
    "remove_events_by_task_id",
    "remove_last_event_by_type",
    # Undo
    "ActionType",
    "UndoEntry",
    "UndoStack",
]
