"""JSON file state storage adapter."""

import json
import logging
from pathlib import Path
from typing import Any

from epoch.core.errors import StorageError
from epoch.core.tasks import forest_from_dict, forest_to_dict
from epoch.core.timeline import timeline_from_dict, timeline_to_dict
from epoch.core.undo import UndoEntry
from epoch.ports.state_store import Snapshot

logger = logging.getLogger(__name__)

UNDO_FILE_NAME = "undo.json"


class JsonStateStore:
    """
    File-based planner storage.

    Implements StateStore protocol. Tasks, timeline and settings live in one
    JSON document; undo history sits next to it in `undo.json`.
    """

    def __init__(self, data_file: Path | str):
        self.data_file = Path(data_file).expanduser()
        self.undo_file = self.data_file.with_name(UNDO_FILE_NAME)

    def _read(self, path: Path) -> Any:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise StorageError(f"Invalid JSON in {path}: {e}") from e
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def _write(self, path: Path, payload: Any) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(path.suffix + ".tmp")
            tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            raise StorageError(f"Failed to save {path}: {e}") from e

    def load(self) -> Snapshot:
        """Load tasks, timeline and settings. Empty snapshot if the file is missing."""
        if not self.data_file.exists():
            logger.debug(f"No data file at {self.data_file}, starting empty")
            return Snapshot()

        data = self._read(self.data_file)
        if not isinstance(data, dict):
            raise StorageError(f"Invalid data file structure: {self.data_file}")

        try:
            return Snapshot(
                tasks=forest_from_dict(data.get("tasks") or {}),
                timeline=timeline_from_dict(data.get("timeline") or {}),
                settings=dict(data.get("settings") or {}),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Invalid data in {self.data_file}: {e}") from e

    def save(self, snapshot: Snapshot) -> None:
        self._write(
            self.data_file,
            {
                "tasks": forest_to_dict(snapshot.tasks),
                "timeline": timeline_to_dict(snapshot.timeline),
                "settings": snapshot.settings,
            },
        )

    def load_undo(self) -> list[UndoEntry]:
        """Load undo history. A missing or unreadable file means no history."""
        if not self.undo_file.exists():
            return []
        try:
            data = self._read(self.undo_file)
            return [UndoEntry.from_dict(entry) for entry in data.get("entries", [])]
        except (StorageError, AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable undo history {self.undo_file}: {e}")
            return []

    def save_undo(self, entries: list[UndoEntry]) -> None:
        self._write(self.undo_file, {"entries": [entry.to_dict() for entry in entries]})
