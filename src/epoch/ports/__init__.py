"""Ports - interfaces/protocols for external dependencies."""

from .state_store import Snapshot, StateStore
from .update_checker import UpdateChecker, UpdateInfo

__all__ = [
    "Snapshot",
    "StateStore",
    "UpdateChecker",
    "UpdateInfo",
]
