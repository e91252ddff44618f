"""Exception hierarchy for the planner core."""


class EpochError(Exception):
    """Base exception for planner failures."""


class ValidationError(ValueError, EpochError):
    """Bad input: invalid title, time ordering, or field."""


class TaskNotFoundError(LookupError, EpochError):
    """An operation targeted a task id that is not in the forest."""

    def __init__(self, task_id: str, message: str | None = None):
        self.task_id = task_id
        super().__init__(message or f"Task not found: {task_id}")


class ParentNotFoundError(TaskNotFoundError):
    """A subtask was added under a parent that cannot be located."""

    def __init__(self, parent_id: str):
        super().__init__(parent_id, f"Parent task not found: {parent_id}")


class StorageError(EpochError):
    """Persisted state could not be loaded or saved."""
