"""Release check interface."""

from dataclasses import dataclass
from typing import Protocol


@dataclass
class UpdateInfo:
    """Result of comparing the running version with the latest release."""

    has_update: bool
    current_version: str
    latest_version: str


class UpdateChecker(Protocol):
    """Interface for looking up the latest published release."""

    def check(self) -> UpdateInfo:
        """Compare the running version with the latest release."""
        ...
