"""Persisted state interface."""

from dataclasses import dataclass, field
from typing import Any, Protocol

from epoch.core.tasks import TaskForest
from epoch.core.timeline import TimelineLog
from epoch.core.undo import UndoEntry


@dataclass
class Snapshot:
    """Everything the planner loads at startup and saves after each change."""

    tasks: TaskForest = field(default_factory=dict)
    timeline: TimelineLog = field(default_factory=dict)
    settings: dict[str, Any] = field(default_factory=dict)


class StateStore(Protocol):
    """Interface for loading and saving planner state from any backend."""

    def load(self) -> Snapshot:
        """Load tasks, timeline and settings. Empty snapshot if nothing is stored."""
        ...

    def save(self, snapshot: Snapshot) -> None:
        """Persist tasks, timeline and settings."""
        ...

    def load_undo(self) -> list[UndoEntry]:
        """Load undo history, oldest first."""
        ...

    def save_undo(self, entries: list[UndoEntry]) -> None:
        """Persist undo history, oldest first."""
        ...
