"""Per-date activity log - no I/O dependencies."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from .tasks import TaskState, new_id


class TimelineEventType(str, Enum):
    """Kinds of activity recorded against a task."""

    CREATED = "created"
    STARTED = "started"
    COMPLETED = "completed"
    DELEGATED = "delegated"
    DELAYED = "delayed"
    UPDATED = "updated"

    @classmethod
    def for_state(cls, state: TaskState) -> "TimelineEventType | None":
        """Event type logged when a task enters `state`."""
        match TaskState(state):
            case TaskState.COMPLETED:
                return cls.COMPLETED
            case TaskState.DELEGATED:
                return cls.DELEGATED
            case TaskState.DELAYED:
                return cls.DELAYED
            case TaskState.TODO:
                return None


@dataclass
class TimelineEvent:
    """An activity entry. `task_title` is a snapshot taken when logged."""

    id: str
    task_id: str
    task_title: str
    type: TimelineEventType
    timestamp: datetime
    previous_state: TaskState | None = None
    new_state: TaskState | None = None

    @property
    def day(self) -> str:
        """Date bucket, taken from the event's own timestamp."""
        return self.timestamp.date().isoformat()

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "TimelineEvent":
        previous_state = payload.get("previous_state")
        new_state = payload.get("new_state")
        return cls(
            id=str(payload["id"]),
            task_id=str(payload["task_id"]),
            task_title=str(payload["task_title"]),
            type=TimelineEventType(payload["type"]),
            timestamp=datetime.fromisoformat(payload["timestamp"]),
            previous_state=TaskState(previous_state) if previous_state else None,
            new_state=TaskState(new_state) if new_state else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "task_title": self.task_title,
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
            "previous_state": self.previous_state.value if self.previous_state else None,
            "new_state": self.new_state.value if self.new_state else None,
        }


TimelineLog = dict[str, list[TimelineEvent]]


def create_event(
    task_id: str,
    task_title: str,
    event_type: TimelineEventType,
    timestamp: datetime | None = None,
    previous_state: TaskState | None = None,
    new_state: TaskState | None = None,
) -> TimelineEvent:
    return TimelineEvent(
        id=new_id(),
        task_id=task_id,
        task_title=task_title,
        type=TimelineEventType(event_type),
        timestamp=timestamp or datetime.now(),
        previous_state=previous_state,
        new_state=new_state,
    )


def events_for_date(timeline: TimelineLog, target_date: str) -> list[TimelineEvent]:
    """Events of a date in append order. Sorting is left to the reader."""
    return timeline.get(target_date, [])


def add_event(timeline: TimelineLog, event: TimelineEvent) -> TimelineLog:
    """Append `event` under the date of its own timestamp."""
    return {**timeline, event.day: [*timeline.get(event.day, []), event]}


def remove_events_by_task_id(timeline: TimelineLog, task_id: str) -> TimelineLog:
    """Drop every event of a task; dates left empty are dropped too."""
    result: TimelineLog = {}
    for day, events in timeline.items():
        filtered = [e for e in events if e.task_id != task_id]
        if filtered:
            result[day] = filtered
    return result


def remove_last_event_by_type(
    timeline: TimelineLog,
    task_id: str,
    event_type: TimelineEventType,
) -> TimelineLog:
    """
    Remove the single most recent event of `event_type` for a task.

    Dates are scanned newest first and, within the first date holding a
    match, the last matching entry is removed. Older matches stay.
    """
    event_type = TimelineEventType(event_type)
    for day in sorted(timeline, reverse=True):
        events = timeline[day]
        for index in range(len(events) - 1, -1, -1):
            event = events[index]
            if event.task_id == task_id and event.type == event_type:
                remaining = events[:index] + events[index + 1 :]
                result = {**timeline, day: remaining}
                if not remaining:
                    del result[day]
                return result
    return timeline


def format_event(event: TimelineEvent) -> str:
    """One-line description, e.g. `09:30 AM - Completed: Buy milk (todo -> completed)`."""
    time_str = event.timestamp.strftime("%I:%M %p")
    state_info = ""
    if event.new_state:
        previous = event.previous_state.value if event.previous_state else "none"
        state_info = f" ({previous} -> {event.new_state.value})"
    return f"{time_str} - {event.type.value.capitalize()}: {event.task_title}{state_info}"


def timeline_from_dict(payload: Mapping[str, Any]) -> TimelineLog:
    return {
        str(day): [TimelineEvent.from_dict(e) for e in events]
        for day, events in payload.items()
    }


def timeline_to_dict(timeline: TimelineLog) -> dict[str, list[dict[str, Any]]]:
    return {day: [e.to_dict() for e in events] for day, events in timeline.items()}
