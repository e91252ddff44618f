"""Task domain model - no I/O dependencies."""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping

from .errors import ValidationError

MAX_TITLE_LENGTH = 60


class TaskState(str, Enum):
    """Task lifecycle states. Any state may move to any other."""

    TODO = "todo"
    COMPLETED = "completed"
    DELEGATED = "delegated"
    DELAYED = "delayed"

    @property
    def is_finished(self) -> bool:
        """Finished states carry an end time."""
        match self:
            case TaskState.TODO:
                return False
            case TaskState.COMPLETED | TaskState.DELEGATED | TaskState.DELAYED:
                return True


class Frequency(str, Enum):
    """Supported recurrence frequencies."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY_BY_WEEKDAY = "monthly_by_weekday"


def new_id() -> str:
    return str(uuid.uuid4())


def _parse_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class RecurrencePattern:
    """
    Calendar pattern attached to a template task.

    Weekdays use Python numbering (0=Monday .. 6=Sunday). Dates are ISO strings.
    `excluded_dates` only ever grows; it is the one way to suppress a due occurrence.
    """

    frequency: Frequency
    days_of_week: set[int] = field(default_factory=set)
    end_date: str | None = None
    excluded_dates: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.frequency = Frequency(self.frequency)
        if self.frequency is Frequency.WEEKLY and not self.days_of_week:
            raise ValidationError("Weekly recurrence needs at least one weekday")
        for day in self.days_of_week:
            if not 0 <= day <= 6:
                raise ValidationError(f"Invalid weekday: {day}")
        for value in (self.end_date, *self.excluded_dates):
            if value is None:
                continue
            try:
                date.fromisoformat(value)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid date: {value}. Expected valid YYYY-MM-DD format")

    def with_excluded(self, target_date: str) -> "RecurrencePattern":
        """Copy of this pattern with `target_date` excluded (idempotent)."""
        if target_date in self.excluded_dates:
            return self
        return RecurrencePattern(
            frequency=self.frequency,
            days_of_week=set(self.days_of_week),
            end_date=self.end_date,
            excluded_dates=[*self.excluded_dates, target_date],
        )

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RecurrencePattern":
        return cls(
            frequency=Frequency(payload["frequency"]),
            days_of_week={int(d) for d in payload.get("days_of_week") or []},
            end_date=payload.get("end_date"),
            excluded_dates=[str(d) for d in payload.get("excluded_dates") or []],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "frequency": self.frequency.value,
            "days_of_week": sorted(self.days_of_week),
            "end_date": self.end_date,
            "excluded_dates": list(self.excluded_dates),
        }


@dataclass
class Task:
    """
    A task node. `children` are owned by this task; `parent_id` and
    `recurring_parent_id` are lookups resolved by search.
    """

    id: str
    title: str
    state: TaskState
    date: str
    created_at: datetime
    updated_at: datetime
    start_time: datetime | None = None
    end_time: datetime | None = None
    children: list["Task"] = field(default_factory=list)
    parent_id: str | None = None
    recurrence: RecurrencePattern | None = None
    is_recurring_instance: bool = False
    recurring_parent_id: str | None = None

    def __post_init__(self) -> None:
        self.state = TaskState(self.state)

    @property
    def is_template(self) -> bool:
        return self.recurrence is not None

    @property
    def is_recurring(self) -> bool:
        """True for templates and for their (ephemeral or materialized) instances."""
        return self.is_template or self.is_recurring_instance

    @property
    def template_id(self) -> str | None:
        """Id of the template this task's occurrences come from."""
        if self.is_template:
            return self.id
        return self.recurring_parent_id

    @property
    def in_progress(self) -> bool:
        return self.state == TaskState.TODO and self.start_time is not None

    @property
    def day(self) -> date:
        return date.fromisoformat(self.date)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Task":
        """Create a task (and its subtree) from a dict payload."""
        required_fields = {"id", "title", "state", "date", "created_at"}
        missing = required_fields - set(payload.keys())
        if missing:
            raise ValueError(f"Task missing required fields: {', '.join(sorted(missing))}")

        created_at = _parse_datetime(payload["created_at"])
        recurrence = payload.get("recurrence")
        return cls(
            id=str(payload["id"]),
            title=str(payload["title"]),
            state=TaskState(payload["state"]),
            date=str(payload["date"]),
            created_at=created_at,
            updated_at=_parse_datetime(payload.get("updated_at")) or created_at,
            start_time=_parse_datetime(payload.get("start_time")),
            end_time=_parse_datetime(payload.get("end_time")),
            children=[cls.from_dict(c) for c in payload.get("children") or []],
            parent_id=payload.get("parent_id"),
            recurrence=RecurrencePattern.from_dict(recurrence) if recurrence else None,
            is_recurring_instance=bool(payload.get("is_recurring_instance", False)),
            recurring_parent_id=payload.get("recurring_parent_id"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize task (and its subtree) to a dict payload."""
        return {
            "id": self.id,
            "title": self.title,
            "state": self.state.value,
            "date": self.date,
            "created_at": _format_datetime(self.created_at),
            "updated_at": _format_datetime(self.updated_at),
            "start_time": _format_datetime(self.start_time),
            "end_time": _format_datetime(self.end_time),
            "children": [c.to_dict() for c in self.children],
            "parent_id": self.parent_id,
            "recurrence": self.recurrence.to_dict() if self.recurrence else None,
            "is_recurring_instance": self.is_recurring_instance,
            "recurring_parent_id": self.recurring_parent_id,
        }


@dataclass(frozen=True)
class TaskStats:
    """Completion counts over a flattened task list."""

    total: int
    completed: int
    percentage: int


TaskForest = dict[str, list[Task]]


def forest_from_dict(payload: Mapping[str, Any]) -> TaskForest:
    return {
        str(day): [Task.from_dict(t) for t in tasks]
        for day, tasks in payload.items()
    }


def forest_to_dict(forest: TaskForest) -> dict[str, list[dict[str, Any]]]:
    return {day: [t.to_dict() for t in tasks] for day, tasks in forest.items()}
