"""Bounded undo history of (task forest, timeline) snapshots."""

import copy
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from .tasks import TaskForest, forest_from_dict, forest_to_dict
from .timeline import TimelineLog, timeline_from_dict, timeline_to_dict

DEFAULT_MAX_DEPTH = 50


class ActionType(str, Enum):
    """User actions that can be undone."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    STATE_CHANGE = "state_change"
    START = "start"
    UNSTART = "unstart"
    ADD_SUBTASK = "add_subtask"
    EXCLUDE = "exclude"
    CLEAR_TIMELINE = "clear_timeline"


@dataclass
class UndoEntry:
    """State as it was just before `action_type` ran."""

    action_type: ActionType
    previous_tasks: TaskForest
    previous_timeline: TimelineLog

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "UndoEntry":
        return cls(
            action_type=ActionType(payload["action_type"]),
            previous_tasks=forest_from_dict(payload.get("previous_tasks") or {}),
            previous_timeline=timeline_from_dict(payload.get("previous_timeline") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "action_type": self.action_type.value,
            "previous_tasks": forest_to_dict(self.previous_tasks),
            "previous_timeline": timeline_to_dict(self.previous_timeline),
        }


class UndoStack:
    """
    LIFO of snapshots, capped at `max_depth`; pushing past the cap
    evicts the oldest entry.

    Callers push before mutating, so `pop` yields the state immediately
    preceding the most recent action.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH, entries: list[UndoEntry] | None = None):
        if max_depth < 1:
            raise ValueError(f"Undo depth must be at least 1, got {max_depth}")
        self.max_depth = max_depth
        self._entries: deque[UndoEntry] = deque(entries or [], maxlen=max_depth)

    def push(self, action_type: ActionType, tasks: TaskForest, timeline: TimelineLog) -> None:
        """Record deep copies of the current forest and timeline."""
        self._entries.append(
            UndoEntry(
                action_type=ActionType(action_type),
                previous_tasks=copy.deepcopy(tasks),
                previous_timeline=copy.deepcopy(timeline),
            )
        )

    def pop(self) -> UndoEntry | None:
        """Remove and return the most recent entry, or None when empty."""
        if not self._entries:
            return None
        return self._entries.pop()

    def peek(self) -> UndoEntry | None:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    @property
    def can_undo(self) -> bool:
        return bool(self._entries)

    @property
    def entries(self) -> list[UndoEntry]:
        """Entries oldest first."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
